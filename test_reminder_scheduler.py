"""Tests for the reminder scheduler."""

import random

import pytest

from notifications import CalendarTrigger, NotificationCenter, TimeIntervalTrigger
from reminder_scheduler import (
    HOUR_RANGE,
    REMINDER_SUBTITLE,
    REMINDER_TITLE,
    WEEKDAY_RANGE,
    ReminderScheduler,
)


class RecordingRandom:
    """randrange stand-in returning fixed values and recording the ranges asked for."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = []

    def randrange(self, start, stop):
        self.calls.append((start, stop))
        return self.values.pop(0)


def test_schedule_reminder_creates_one_pending_request(scheduler, center):
    request = scheduler.schedule_reminder("Alice")

    assert request is not None
    pending = center.pending_requests()
    assert [p.id for p in pending] == [request.identifier]
    assert pending[0].user_info["contact_name"] == "Alice"


def test_two_calls_make_two_independent_requests(scheduler, center):
    first = scheduler.schedule_reminder("Alice")
    second = scheduler.schedule_reminder("Alice")

    assert first.identifier != second.identifier
    assert len(center.pending_requests()) == 2


def test_fixed_copy_and_sound(scheduler, center):
    scheduler.schedule_reminder("Bob")

    row = center.pending_requests()[0]
    assert row.title == REMINDER_TITLE == "wei?"
    assert row.subtitle == REMINDER_SUBTITLE
    assert row.sound == "default"


def test_random_slot_ranges(center):
    rng = RecordingRandom([3, 15])
    scheduler = ReminderScheduler(center, rng=rng, trigger_mode="calendar")

    assert scheduler.random_slot() == (3, 15)
    assert rng.calls == [WEEKDAY_RANGE, HOUR_RANGE] == [(1, 7), (8, 18)]


def test_random_slot_stays_in_range(center):
    scheduler = ReminderScheduler(center, rng=random.Random(1234))

    for _ in range(500):
        weekday, hour = scheduler.random_slot()
        assert 1 <= weekday < 7
        assert 8 <= hour < 18


def test_calendar_trigger_carries_slot_and_repeats_weekly(center):
    scheduler = ReminderScheduler(center, rng=RecordingRandom([2, 9]), trigger_mode="calendar")

    request = scheduler.schedule_reminder("Alice")

    assert isinstance(request.trigger, CalendarTrigger)
    assert (request.trigger.weekday, request.trigger.hour) == (2, 9)
    assert request.trigger.repeats is True
    row = center.pending_requests()[0]
    assert row.trigger_type == "calendar"
    assert row.repeats is True


def test_interval_mode_uses_short_one_shot_trigger(center, clock):
    scheduler = ReminderScheduler(center, trigger_mode="interval", debug_delay_seconds=3)

    request = scheduler.schedule_reminder("Alice")

    assert isinstance(request.trigger, TimeIntervalTrigger)
    assert request.trigger.interval_seconds == 3
    assert request.trigger.repeats is False
    assert center.pending_requests()[0].next_fire_at == clock.advance(seconds=3)


def test_unknown_trigger_mode_rejected(center):
    with pytest.raises(ValueError):
        ReminderScheduler(center, trigger_mode="hourly")


def test_denied_permission_drops_request_without_error(session_factory, clock):
    center = NotificationCenter(session_factory, authorized=False, clock=clock)
    scheduler = ReminderScheduler(center, rng=random.Random(3))

    assert scheduler.schedule_reminder("Alice") is None
    assert center.pending_requests() == []


def test_bad_timezone_leaves_person_and_returns_none(monkeypatch, store, center):
    import config
    monkeypatch.setattr(config.settings, "TIMEZONE", "Mars/Olympus")
    scheduler = ReminderScheduler(center, rng=random.Random(5), trigger_mode="calendar")

    assert store.create("Alice").ok
    assert scheduler.schedule_reminder("Alice") is None

    assert [p.name for p in store.list()] == ["Alice"]
    assert center.pending_requests() == []


def test_non_positive_debug_delay_returns_none(center):
    scheduler = ReminderScheduler(center, trigger_mode="interval", debug_delay_seconds=0)

    assert scheduler.schedule_reminder("Alice") is None
    assert center.pending_requests() == []
