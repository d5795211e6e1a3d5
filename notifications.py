"""Local notification center for wei.

Plays the part of the host notification API: it answers permission
requests, keeps pending notification requests in the database and fires
them when their trigger comes due.

Requests are described with Pydantic models (content + trigger) and stored
as ``PendingNotification`` rows. Every failure is logged and reported
through the optional completion callback; nothing is raised to the caller.
"""

import enum
from datetime import datetime, timedelta, timezone
from typing import Annotated, Any, Callable, Dict, Iterable, List, Literal, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from config import settings
from database import PendingNotification, utcnow
from logger_config import setup_logger

logger = setup_logger(__name__, 'notifications.log')

DEFAULT_SOUND = "default"

# Repeating interval triggers shorter than this are rejected
MIN_REPEAT_INTERVAL_SECONDS = 60


class AuthorizationOption(str, enum.Enum):
    """What the app asks permission for"""
    ALERT = "alert"
    BADGE = "badge"
    SOUND = "sound"


class AuthorizationStatus(str, enum.Enum):
    NOT_DETERMINED = "not_determined"
    AUTHORIZED = "authorized"
    DENIED = "denied"


class NotificationContent(BaseModel):
    """Copy shown when the notification fires."""

    title: str = Field("", description="Notification title")
    subtitle: str = Field("", description="Line shown under the title")
    sound: Optional[str] = Field(DEFAULT_SOUND, description="Sound name, None for silent")


class TimeIntervalTrigger(BaseModel):
    """Fires a fixed number of seconds after the request is added."""

    type: Literal["interval"] = "interval"
    interval_seconds: float = Field(..., gt=0, description="Delay in seconds")
    repeats: bool = False

    @model_validator(mode="after")
    def check_repeat_interval(self):
        if self.repeats and self.interval_seconds < MIN_REPEAT_INTERVAL_SECONDS:
            raise ValueError(
                f"repeating interval must be at least {MIN_REPEAT_INTERVAL_SECONDS} seconds"
            )
        return self

    def next_fire_date(self, after: datetime) -> datetime:
        return after + timedelta(seconds=self.interval_seconds)


class CalendarTrigger(BaseModel):
    """Fires when the wall clock matches weekday/hour/minute.

    Weekdays are numbered 1 (Sunday) through 7 (Saturday).
    """

    type: Literal["calendar"] = "calendar"
    weekday: int = Field(..., ge=1, le=7, description="1 = Sunday ... 7 = Saturday")
    hour: int = Field(..., ge=0, le=23)
    minute: int = Field(0, ge=0, le=59)
    repeats: bool = False
    timezone: str = Field(default_factory=lambda: settings.TIMEZONE, validate_default=True)

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown timezone: {value}")
        return value

    @property
    def python_weekday(self) -> int:
        """Same day in ``datetime.weekday()`` numbering (0 = Monday)."""
        return (self.weekday + 5) % 7

    def next_fire_date(self, after: datetime) -> datetime:
        """First matching moment strictly after ``after``, returned in UTC."""
        if after.tzinfo is None:
            after = after.replace(tzinfo=timezone.utc)
        local = after.astimezone(ZoneInfo(self.timezone))
        days_ahead = (self.python_weekday - local.weekday()) % 7
        candidate = (local + timedelta(days=days_ahead)).replace(
            hour=self.hour, minute=self.minute, second=0, microsecond=0
        )
        if candidate <= local:
            candidate += timedelta(days=7)
        return candidate.astimezone(timezone.utc)


Trigger = Annotated[Union[TimeIntervalTrigger, CalendarTrigger], Field(discriminator="type")]

_trigger_adapter = TypeAdapter(Trigger)


def parse_trigger(data: Dict[str, Any]) -> Union[TimeIntervalTrigger, CalendarTrigger]:
    """Rebuild a trigger from its stored JSON form."""
    return _trigger_adapter.validate_python(data)


class NotificationRequest(BaseModel):
    """Identifier + content + trigger, handed to ``NotificationCenter.add``."""

    identifier: str = Field(..., min_length=1)
    content: NotificationContent
    trigger: Trigger
    user_info: Dict[str, Any] = Field(default_factory=dict)


class DeliveredNotification(BaseModel):
    """A notification that just fired."""

    request_id: str
    content: NotificationContent
    delivered_at: datetime
    user_info: Dict[str, Any] = Field(default_factory=dict)
    repeats: bool = False


def request_from_row(row: PendingNotification) -> NotificationRequest:
    """Convert a stored row back into a request model."""
    return NotificationRequest(
        identifier=row.id,
        content=NotificationContent(title=row.title, subtitle=row.subtitle, sound=row.sound),
        trigger=parse_trigger(row.trigger),
        user_info=row.user_info or {},
    )


class NotificationCenter:
    """Database-backed stand-in for the host notification API."""

    def __init__(
        self,
        session_factory: sessionmaker,
        authorized: Optional[bool] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self._grant = settings.NOTIFICATIONS_AUTHORIZED if authorized is None else authorized
        self._status = AuthorizationStatus.NOT_DETERMINED
        self._clock = clock

    @property
    def authorization_status(self) -> AuthorizationStatus:
        return self._status

    def request_authorization(
        self,
        options: Iterable[AuthorizationOption] = (
            AuthorizationOption.ALERT,
            AuthorizationOption.BADGE,
            AuthorizationOption.SOUND,
        ),
        completion: Optional[Callable[[bool, Optional[str]], None]] = None,
    ) -> bool:
        """Ask for permission. The first answer sticks for the life of the center.

        Args:
            options: Requested capabilities
            completion: Called with (granted, error message)

        Returns:
            bool: True if notifications are authorized
        """
        if self._status is AuthorizationStatus.NOT_DETERMINED:
            self._status = (
                AuthorizationStatus.AUTHORIZED if self._grant else AuthorizationStatus.DENIED
            )
            requested = ", ".join(option.value for option in options)
            logger.info(f"Notification authorization for [{requested}]: {self._status.value}")

        granted = self._status is AuthorizationStatus.AUTHORIZED
        if completion is not None:
            completion(granted, None if granted else "Notification permission denied")
        return granted

    def add(
        self,
        request: NotificationRequest,
        completion: Optional[Callable[[Optional[str]], None]] = None,
    ) -> bool:
        """Schedule a request.

        Requests added without permission are dropped silently (DEBUG log only).

        Returns:
            bool: True if the request is now pending
        """
        if self._status is not AuthorizationStatus.AUTHORIZED:
            logger.debug(f"Dropping notification {request.identifier}: not authorized")
            if completion is not None:
                completion("Notifications are not authorized")
            return False

        now = self._clock()
        trigger = request.trigger
        try:
            next_fire_at = trigger.next_fire_date(now)
        except (ValueError, KeyError) as e:
            logger.error(f"Cannot compute fire date for notification {request.identifier}: {str(e)}")
            if completion is not None:
                completion(str(e))
            return False

        db = self._session_factory()
        try:
            db.add(PendingNotification(
                id=request.identifier,
                title=request.content.title,
                subtitle=request.content.subtitle,
                sound=request.content.sound,
                user_info=request.user_info,
                trigger_type=trigger.type,
                trigger=trigger.model_dump(),
                repeats=trigger.repeats,
                next_fire_at=next_fire_at,
                delivered_count=0,
                created_at=now,
            ))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to add notification {request.identifier}: {str(e)}")
            if completion is not None:
                completion(str(e))
            return False
        finally:
            db.close()

        if completion is not None:
            completion(None)
        return True

    def pending_requests(self) -> List[PendingNotification]:
        """All pending requests, soonest first."""
        db = self._session_factory()
        try:
            return db.query(PendingNotification).order_by(
                PendingNotification.next_fire_at,
                PendingNotification.created_at,
            ).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to list pending notifications: {str(e)}")
            return []
        finally:
            db.close()

    def remove_pending(self, identifiers: Iterable[str]) -> int:
        """Cancel pending requests by identifier. Unknown identifiers are ignored."""
        identifiers = list(identifiers)
        if not identifiers:
            return 0
        return self._delete_where(PendingNotification.id.in_(identifiers))

    def remove_all_pending(self) -> int:
        return self._delete_where(None)

    def _delete_where(self, criterion) -> int:
        db = self._session_factory()
        try:
            query = db.query(PendingNotification)
            if criterion is not None:
                query = query.filter(criterion)
            removed = query.delete(synchronize_session=False)
            db.commit()
            logger.info(f"Removed {removed} pending notification(s)")
            return removed
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to remove pending notifications: {str(e)}")
            return 0
        finally:
            db.close()

    def deliver_due(self, now: Optional[datetime] = None) -> List[DeliveredNotification]:
        """Fire every request whose time has come.

        One-shot requests are removed after firing; repeating ones move on to
        their next fire date after ``now``, so missed occurrences fire once.
        """
        now = now or self._clock()
        db = self._session_factory()
        try:
            due = db.query(PendingNotification).filter(
                PendingNotification.next_fire_at <= now
            ).order_by(PendingNotification.next_fire_at).all()

            delivered = []
            for row in due:
                delivered.append(DeliveredNotification(
                    request_id=row.id,
                    content=NotificationContent(
                        title=row.title, subtitle=row.subtitle, sound=row.sound
                    ),
                    delivered_at=now,
                    user_info=row.user_info or {},
                    repeats=row.repeats,
                ))
                if row.repeats:
                    try:
                        row.next_fire_at = parse_trigger(row.trigger).next_fire_date(now)
                    except (ValueError, KeyError) as e:
                        logger.error(f"Cannot reschedule notification {row.id}, removing it: {str(e)}")
                        db.delete(row)
                        continue
                    row.delivered_count = (row.delivered_count or 0) + 1
                    row.last_delivered_at = now
                else:
                    db.delete(row)

            db.commit()
            return delivered
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to deliver due notifications: {str(e)}")
            return []
        finally:
            db.close()
