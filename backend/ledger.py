"""
Attendance ledger: check-in with short-window deduplication, and history
queries over the recorded events.
"""
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

import config
from errors import NotFoundError, ValidationError
from filters import AttendanceFilter
from models import Attendance, Person, STATUS_PRESENT

logger = logging.getLogger("attendance.ledger")

CHECK_IN_SUCCESS = "success"
CHECK_IN_SKIPPED = "skipped"

# One lock per identity so the dedup read and the insert happen as a unit.
# Entries live only while some check-in for that name holds or awaits them.
_registry_lock = threading.Lock()
_name_locks: Dict[str, list] = {}  # name -> [lock, users]


@contextmanager
def _locked(name: str):
    with _registry_lock:
        entry = _name_locks.get(name)
        if entry is None:
            entry = _name_locks[name] = [threading.Lock(), 0]
        entry[1] += 1
    try:
        with entry[0]:
            yield
    finally:
        with _registry_lock:
            entry[1] -= 1
            if entry[1] == 0:
                del _name_locks[name]


class CheckInResult:
    def __init__(self, status: str, record: Optional[Attendance] = None):
        self.status = status
        self.record = record

    @property
    def created(self) -> bool:
        return self.status == CHECK_IN_SUCCESS


class AttendanceLedger:
    def __init__(self, db: Session,
                 window_seconds: int = None,
                 require_registered: bool = None):
        self.db = db
        self.window = timedelta(
            seconds=config.CHECK_IN_WINDOW_SECONDS if window_seconds is None else window_seconds
        )
        self.require_registered = (
            config.REQUIRE_REGISTERED_NAME if require_registered is None else require_registered
        )

    def check_in(self, name: str, now: datetime = None) -> CheckInResult:
        """
        Record that `name` was seen at `now`, unless a record for the same
        name already exists within the trailing window. Returns a result with
        status "success" (one row written) or "skipped" (nothing written).
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name is required")
        if name == config.UNKNOWN_LABEL:
            return CheckInResult(CHECK_IN_SKIPPED)

        if self.require_registered:
            known = self.db.query(Person.id).filter(Person.name == name).first()
            if known is None:
                raise NotFoundError("Person not found")

        with _locked(name):
            now = now or datetime.now()
            recent = self.db.query(Attendance).filter(
                Attendance.name == name,
                Attendance.timestamp >= now - self.window
            ).first()

            if recent:
                logger.debug("Skipping check-in for %s, last seen at %s", name, recent.timestamp)
                return CheckInResult(CHECK_IN_SKIPPED)

            record = Attendance(name=name, timestamp=now, status=STATUS_PRESENT)
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)

        logger.info("Checked in %s (record %d)", name, record.id)
        return CheckInResult(CHECK_IN_SUCCESS, record)

    def list(self, filters: AttendanceFilter = None) -> List[Attendance]:
        """All records matching every given filter, most recent first."""
        filters = filters or AttendanceFilter()
        query = self.db.query(Attendance)

        if filters.search:
            query = query.filter(Attendance.name.icontains(filters.search, autoescape=True))
        if filters.start is not None:
            query = query.filter(Attendance.timestamp >= filters.start)
        if filters.end_before is not None:
            query = query.filter(Attendance.timestamp < filters.end_before)

        return query.order_by(Attendance.timestamp.desc(), Attendance.id.desc()).all()

    def count_for(self, name: str) -> int:
        return self.db.query(Attendance).filter(Attendance.name == name).count()

    def purge(self, name: str) -> int:
        """Delete every record for `name`. Caller commits."""
        return self.db.query(Attendance).filter(
            Attendance.name == name
        ).delete(synchronize_session=False)
