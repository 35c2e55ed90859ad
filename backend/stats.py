"""
Read-side rollups over the attendance ledger. Everything is recomputed on
each call.
"""
from datetime import datetime, timedelta
from typing import Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

import config
from filters import start_of_day
from models import Attendance, Person


def trend_label(day: datetime) -> str:
    """Short day label, e.g. "5 May"."""
    return f"{day.day} {day.strftime('%b')}"


class StatisticsAggregator:
    def __init__(self, db: Session):
        self.db = db

    def _count_since(self, since: datetime) -> int:
        return self.db.query(Attendance).filter(Attendance.timestamp >= since).count()

    def daily_trend(self, now: datetime = None, days: int = None) -> List[Dict]:
        """
        Check-ins per calendar day for the last `days` days, oldest first.
        Each day covers [midnight, next midnight).
        """
        days = config.TREND_DAYS if days is None else days
        today = start_of_day((now or datetime.now()).date())

        trend = []
        for offset in range(days - 1, -1, -1):
            day = today - timedelta(days=offset)
            next_day = day + timedelta(days=1)
            count = self.db.query(Attendance).filter(
                Attendance.timestamp >= day,
                Attendance.timestamp < next_day
            ).count()
            trend.append({"date": trend_label(day), "count": count})
        return trend

    def top_users(self, limit: int = None) -> List[Dict]:
        """Most frequent identities; equal counts are ordered by name."""
        limit = config.TOP_USERS_LIMIT if limit is None else limit
        check_ins = func.count(Attendance.id).label("count")
        rows = (
            self.db.query(Attendance.name, check_ins)
            .group_by(Attendance.name)
            .order_by(check_ins.desc(), Attendance.name.asc())
            .limit(limit)
            .all()
        )
        return [{"name": name, "count": count} for name, count in rows]

    def recent(self, limit: int = None) -> List[Attendance]:
        limit = config.RECENT_CHECK_INS_LIMIT if limit is None else limit
        return (
            self.db.query(Attendance)
            .order_by(Attendance.timestamp.desc(), Attendance.id.desc())
            .limit(limit)
            .all()
        )

    def compute(self, now: datetime = None) -> Dict:
        now = now or datetime.now()
        today = start_of_day(now.date())

        return {
            "totalUsers": self.db.query(Person).count(),
            "totalCheckIns": self.db.query(Attendance).count(),
            "todayCheckIns": self._count_since(today),
            "weekCheckIns": self._count_since(today - timedelta(days=7)),
            "monthCheckIns": self._count_since(today.replace(day=1)),
            "recentCheckIns": self.recent(),
            "dailyTrend": self.daily_trend(now),
            "topUsers": self.top_users(),
        }
