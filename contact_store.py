"""Contact store for wei.

Owns the persisted ``Person`` records and their ordering. The list is ordered
by ``sort_order`` ascending: the person contacted longest ago comes first,
and touching someone sends them to the bottom.

Mutations commit before returning. Database errors are logged and come back
as failed ``Result`` objects; nothing is raised to the caller.
"""

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Generic, List, Optional, TypeVar, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from database import Person, utcnow
from logger_config import setup_logger

logger = setup_logger(__name__, 'store.log')

T = TypeVar("T")

# Smallest step between two ordering keys
SORT_ORDER_STEP = timedelta(microseconds=1)


class ErrorKind(str, enum.Enum):
    NOT_FOUND = "not_found"
    PERSISTENCE = "persistence"


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a store operation."""

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str, kind: ErrorKind = ErrorKind.PERSISTENCE) -> "Result[T]":
        return cls(ok=False, error=error, kind=kind)


def _person_id(person: Union[Person, str]) -> str:
    return person if isinstance(person, str) else person.id


class ContactStore:
    """Repository for people, built around an injected session factory."""

    def __init__(self, session_factory: sessionmaker, clock: Callable[[], datetime] = utcnow):
        self._session_factory = session_factory
        self._clock = clock

    def _next_sort_order(self, db: Session) -> datetime:
        """``now``, nudged past the current maximum so keys never collide."""
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        latest = db.query(Person.sort_order).order_by(Person.sort_order.desc()).limit(1).scalar()
        if latest is not None and now <= latest:
            now = latest + SORT_ORDER_STEP
        return now

    def create(self, name: Optional[str]) -> Result[Person]:
        """Add a person at the bottom of the list.

        Args:
            name: Free-text name, not validated (empty and None are allowed)

        Returns:
            Result[Person]: The stored person on success
        """
        db = self._session_factory()
        try:
            person = Person(
                id=str(uuid.uuid4()),
                name=name,
                sort_order=self._next_sort_order(db),
            )
            db.add(person)
            db.commit()
            db.refresh(person)
            logger.info(f"Created person {person.id}")
            return Result.success(person)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error creating person: {str(e)}")
            return Result.failure(f"Error creating person: {str(e)}")
        finally:
            db.close()

    def list(self) -> List[Person]:
        """All people, most "due" first."""
        db = self._session_factory()
        try:
            return db.query(Person).order_by(Person.sort_order.asc()).all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing people: {str(e)}")
            return []
        finally:
            db.close()

    def get(self, person_id: str) -> Optional[Person]:
        db = self._session_factory()
        try:
            return db.query(Person).filter(Person.id == person_id).first()
        except SQLAlchemyError as e:
            logger.error(f"Error loading person {person_id}: {str(e)}")
            return None
        finally:
            db.close()

    def count(self) -> int:
        db = self._session_factory()
        try:
            return db.query(Person).count()
        except SQLAlchemyError as e:
            logger.error(f"Error counting people: {str(e)}")
            return 0
        finally:
            db.close()

    def touch(self, person: Union[Person, str]) -> Result[Person]:
        """Mark a person as contacted: their ordering key becomes ``now``.

        A missing record is a no-op that is logged and reported as
        ``ErrorKind.NOT_FOUND``.
        """
        person_id = _person_id(person)
        db = self._session_factory()
        try:
            record = db.query(Person).filter(Person.id == person_id).first()
            if record is None:
                logger.warning(f"Touch ignored, person {person_id} not found")
                return Result.failure(f"Person {person_id} not found", ErrorKind.NOT_FOUND)

            record.sort_order = self._next_sort_order(db)
            db.commit()
            db.refresh(record)
            logger.info(f"Touched person {person_id}")
            return Result.success(record)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error touching person {person_id}: {str(e)}")
            return Result.failure(f"Error touching person: {str(e)}")
        finally:
            db.close()

    def delete(self, person: Union[Person, str]) -> Result[bool]:
        """Remove a person for good.

        Returns:
            Result[bool]: value is True if a row was removed, False if it was
            already gone
        """
        person_id = _person_id(person)
        db = self._session_factory()
        try:
            record = db.query(Person).filter(Person.id == person_id).first()
            if record is None:
                logger.info(f"Delete ignored, person {person_id} already gone")
                return Result.success(False)

            db.delete(record)
            db.commit()
            logger.info(f"Deleted person {person_id}")
            return Result.success(True)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error deleting person {person_id}: {str(e)}")
            return Result.failure(f"Error deleting person: {str(e)}")
        finally:
            db.close()
