"""
Person directory: registration, listing and removal of identities.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

import config
from errors import ConflictError, NotFoundError, ValidationError
from ledger import AttendanceLedger
from models import Person
from photo_store import PhotoStore

logger = logging.getLogger("attendance.directory")


class PersonDirectory:
    def __init__(self, db: Session, photos: PhotoStore):
        self.db = db
        self.photos = photos

    def register(self, name: str, images: List[str]) -> Person:
        """
        Create a Person from a name and at least one reference image.
        The row is flushed first so a duplicate name fails before any photo
        is written. If the photos or the commit fail, the row is rolled back
        and nothing is left on disk.
        """
        name = (name or "").strip()
        if not name or not images:
            raise ValidationError("Name and at least one image are required")
        if name == config.UNKNOWN_LABEL:
            raise ValidationError(f"\"{name}\" is reserved for unrecognized faces")

        if self.find_by_name(name):
            raise ConflictError("Person with this name already exists")

        person = Person(name=name, photo_count=len(images), created_at=datetime.now())
        try:
            self.db.add(person)
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Person with this name already exists")

        try:
            person.photo_count = self.photos.save(name, images)
        except (OSError, ValidationError):
            self.db.rollback()
            raise

        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            self._discard_photos(name)
            raise

        self.db.refresh(person)
        logger.info("Registered %s with %d photo(s)", name, person.photo_count)
        return person

    def find_by_name(self, name: str) -> Optional[Person]:
        return self.db.query(Person).filter(Person.name == name).first()

    def list(self) -> List[Person]:
        return self.db.query(Person).order_by(Person.created_at.desc(), Person.id.desc()).all()

    def get(self, person_id: int) -> Person:
        person = self.db.query(Person).filter(Person.id == person_id).first()
        if not person:
            raise NotFoundError("Person not found")
        return person

    def delete(self, person_id: int) -> str:
        """
        Remove the person, every attendance record under their name and
        their photo directory. The database change stands even when the
        photos cannot be removed. Returns the deleted name.
        """
        person = self.get(person_id)
        name = person.name

        removed = AttendanceLedger(self.db).purge(name)
        self.db.delete(person)
        self.db.commit()
        logger.info("Deleted %s and %d attendance record(s)", name, removed)

        self._discard_photos(name)
        return name

    def _discard_photos(self, name: str):
        try:
            self.photos.delete(name)
        except (OSError, ValidationError) as e:
            logger.warning("Could not remove photos for %s: %s", name, e)
