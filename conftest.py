"""Shared pytest fixtures: in-memory database, fake clock, wired services."""

import random
from datetime import datetime, timedelta, timezone

import pytest

import database
from contact_store import ContactStore
from notifications import NotificationCenter
from reminder_scheduler import ReminderScheduler

# A Monday
START = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session_factory():
    return database.build_session_factory("sqlite://")


@pytest.fixture
def store(session_factory, clock):
    return ContactStore(session_factory, clock=clock)


@pytest.fixture
def center(session_factory, clock):
    return NotificationCenter(session_factory, authorized=True, clock=clock)


@pytest.fixture
def scheduler(center):
    return ReminderScheduler(center, rng=random.Random(7), trigger_mode="calendar")
