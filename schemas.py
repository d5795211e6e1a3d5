"""Pydantic schemas for wei.

This module defines request and response schemas for the REST API.
The fallback display name lives here, at the presentation boundary; the
stored ``name`` stays exactly what the user typed (or NULL).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

FALLBACK_DISPLAY_NAME = "Dr. Strange?!"

HELP_TEXT = [
    "This is wei — a simple app for spontaneous connection.",
    "It doesn't do much.",
    "Add people and it will remind you to reach out at a random time every week. "
    "After you contact someone (outside the app), tap their name to send them to "
    "the bottom of the list. That's it.",
    "The name `wei` is an homage to the way people answer the phone in Chinese "
    "culture. I hope these simple reminders help you stay connected with the "
    "people you care about.",
]


def render_name(name: Optional[str]) -> str:
    """Name to show for a person; empty or missing names get the fallback."""
    if name is None or not name.strip():
        return FALLBACK_DISPLAY_NAME
    return name


class PersonCreate(BaseModel):
    """Schema for adding a person.

    No validation on name: empty strings and null are accepted.
    """

    name: Optional[str] = Field(
        None,
        description="Person's name",
        examples=["Alice", "Mom"]
    )


class PersonResponse(BaseModel):
    """Schema for person responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Unique person ID")
    name: Optional[str] = Field(None, description="Name as entered")
    sort_order: datetime = Field(..., description="Ordering key, oldest first")

    @computed_field
    @property
    def display_name(self) -> str:
        return render_name(self.name)


class PendingNotificationResponse(BaseModel):
    """Schema for a pending reminder."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Notification request identifier")
    title: str
    subtitle: str
    sound: Optional[str] = None
    trigger_type: str = Field(..., description="'interval' or 'calendar'")
    trigger: Dict[str, Any] = Field(..., description="Trigger parameters")
    repeats: bool
    next_fire_at: datetime = Field(..., description="Next time this notification fires")
    delivered_count: int = 0
    user_info: Dict[str, Any] = Field(default_factory=dict)


class ScheduledReminder(BaseModel):
    """Reminder scheduled together with a new person."""

    identifier: str
    trigger: Dict[str, Any]


class PersonCreatedResponse(BaseModel):
    """Schema returned when a person is added."""

    person: PersonResponse
    reminder: Optional[ScheduledReminder] = Field(
        None,
        description="Scheduled reminder, null when notifications are not authorized"
    )


class DeleteResponse(BaseModel):
    message: str
    person_id: str
    deleted: bool


class HelpResponse(BaseModel):
    title: str = "People"
    paragraphs: List[str] = Field(default_factory=lambda: list(HELP_TEXT))
