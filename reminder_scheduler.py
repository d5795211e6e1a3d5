"""Reminder scheduler for wei.

When someone is added, a reminder to reach out to them is scheduled at a
random weekday and hour (Sunday-Friday, 8:00-17:00), repeating weekly.

Each call is independent: a fresh random identifier every time, no
de-duplication and no cancellation of earlier reminders for the same person.
"""

import random
import uuid
from typing import Optional, Tuple, Union

from config import settings
from logger_config import setup_logger
from notifications import (
    CalendarTrigger,
    NotificationCenter,
    NotificationContent,
    NotificationRequest,
    TimeIntervalTrigger,
    DEFAULT_SOUND,
)

logger = setup_logger(__name__, 'scheduler.log')

REMINDER_TITLE = "wei?"
REMINDER_SUBTITLE = "Surprise someone by sending a quick message!"

# Half-open ranges [start, stop)
WEEKDAY_RANGE = (1, 7)
HOUR_RANGE = (8, 18)

TRIGGER_MODE_CALENDAR = "calendar"
TRIGGER_MODE_INTERVAL = "interval"


class ReminderScheduler:
    """Turns "person added" into a pending notification request."""

    def __init__(
        self,
        notification_center: NotificationCenter,
        rng: Optional[random.Random] = None,
        trigger_mode: Optional[str] = None,
        debug_delay_seconds: Optional[float] = None,
    ):
        self.notification_center = notification_center
        self._rng = rng or random.Random()
        self.trigger_mode = (trigger_mode or settings.REMINDER_TRIGGER_MODE).lower()
        if self.trigger_mode not in (TRIGGER_MODE_CALENDAR, TRIGGER_MODE_INTERVAL):
            raise ValueError(f"Unknown reminder trigger mode: {self.trigger_mode}")
        self.debug_delay_seconds = (
            settings.REMINDER_DEBUG_DELAY_SECONDS if debug_delay_seconds is None
            else debug_delay_seconds
        )

    def random_slot(self) -> Tuple[int, int]:
        """Pick (weekday, hour) for the reminder."""
        weekday = self._rng.randrange(*WEEKDAY_RANGE)
        hour = self._rng.randrange(*HOUR_RANGE)
        return weekday, hour

    def build_content(self) -> NotificationContent:
        return NotificationContent(
            title=REMINDER_TITLE,
            subtitle=REMINDER_SUBTITLE,
            sound=DEFAULT_SOUND,
        )

    def build_trigger(self, weekday: int, hour: int) -> Union[CalendarTrigger, TimeIntervalTrigger]:
        if self.trigger_mode == TRIGGER_MODE_INTERVAL:
            # One-shot short delay, used to see a reminder fire right away
            return TimeIntervalTrigger(interval_seconds=self.debug_delay_seconds, repeats=False)
        return CalendarTrigger(weekday=weekday, hour=hour, repeats=True)

    def schedule_reminder(self, contact_name: Optional[str]) -> Optional[NotificationRequest]:
        """Schedule a reminder to reach out to ``contact_name``.

        Permission is requested first; the answer is only logged; the
        notification center drops the request itself when it is denied.

        Args:
            contact_name: Name of the person just added (may be empty)

        Returns:
            Optional[NotificationRequest]: The request if it is now pending,
            None if it could not be built or the notification center dropped it
        """
        self.notification_center.request_authorization(completion=_log_authorization)

        weekday, hour = self.random_slot()
        try:
            request = NotificationRequest(
                identifier=str(uuid.uuid4()),
                content=self.build_content(),
                trigger=self.build_trigger(weekday, hour),
                user_info={"contact_name": contact_name, "weekday": weekday, "hour": hour},
            )
        except ValueError as e:
            logger.error(f"Reminder not scheduled, invalid trigger: {str(e)}")
            return None

        def log_result(error: Optional[str]) -> None:
            if error:
                logger.info(f"Reminder {request.identifier} not scheduled: {error}")
            else:
                logger.info(
                    f"Reminder {request.identifier} scheduled "
                    f"({request.trigger.type}, weekday={weekday}, hour={hour})"
                )

        if self.notification_center.add(request, completion=log_result):
            return request
        return None


def _log_authorization(granted: bool, error: Optional[str]) -> None:
    if granted:
        logger.debug("Notifications authorized")
    elif error:
        logger.info(error)
