"""
SQLAlchemy models for the attendance system.
"""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import declarative_base

Base = declarative_base()

STATUS_PRESENT = "present"


class Person(Base):
    """Registered identity with its reference photos on disk."""
    __tablename__ = "people"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False, index=True)
    photo_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, index=True)


class Attendance(Base):
    """Check-in event. Immutable once written."""
    __tablename__ = "attendance"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)  # Copy of Person.name, not a foreign key
    timestamp = Column(DateTime, nullable=False, index=True)
    status = Column(String, nullable=False, default=STATUS_PRESENT)
