"""Tests for the contact store: ordering, touch, delete and failure handling."""

from datetime import datetime

import database
from contact_store import ContactStore, ErrorKind


def names(store):
    return [p.name for p in store.list()]


def test_list_follows_creation_order(store, clock):
    for name in ["Alice", "Bob", "Carol", "Dan"]:
        assert store.create(name).ok
        clock.advance(seconds=1)

    assert names(store) == ["Alice", "Bob", "Carol", "Dan"]


def test_creation_order_holds_within_one_clock_tick(store):
    # FakeClock never advances here: every create sees the same "now"
    for name in ["a", "b", "c", "d", "e"]:
        store.create(name)

    people = store.list()
    assert [p.name for p in people] == ["a", "b", "c", "d", "e"]
    orders = [p.sort_order for p in people]
    assert orders == sorted(orders)
    assert len(set(orders)) == len(orders)


def test_create_round_trip(store):
    first = store.create("Alice").value
    second = store.create("Alice").value

    assert first.id != second.id
    assert isinstance(first.sort_order, datetime)
    assert first.sort_order.tzinfo is not None

    listed = store.list()
    assert [p.id for p in listed] == [first.id, second.id]
    assert all(p.name == "Alice" for p in listed)


def test_create_accepts_empty_and_missing_names(store):
    assert store.create("").ok
    assert store.create(None).ok

    assert names(store) == ["", None]


def test_alice_bob_scenario(store, clock):
    alice = store.create("Alice").value
    clock.advance(seconds=1)
    bob = store.create("Bob").value
    assert names(store) == ["Alice", "Bob"]

    clock.advance(seconds=1)
    assert store.touch(alice).ok
    assert names(store) == ["Bob", "Alice"]

    assert store.delete(bob).value is True
    assert names(store) == ["Alice"]


def test_touch_moves_to_end_and_keeps_others(store, clock):
    people = []
    for name in ["a", "b", "c", "d"]:
        people.append(store.create(name).value)
        clock.advance(minutes=1)

    result = store.touch(people[1].id)

    assert result.ok
    assert result.value.id == people[1].id
    assert names(store) == ["a", "c", "d", "b"]


def test_touch_with_clock_behind_latest_still_moves_to_end(store, clock):
    store.create("a")
    clock.advance(hours=1)
    store.create("b")
    clock.advance(hours=-2)

    store.touch(store.list()[1])

    assert names(store) == ["a", "b"]
    store.touch(store.list()[0])
    assert names(store) == ["b", "a"]


def test_touch_missing_person_is_reported_not_raised(store):
    store.create("Alice")

    result = store.touch("no-such-id")

    assert not result.ok
    assert result.kind is ErrorKind.NOT_FOUND
    assert names(store) == ["Alice"]


def test_delete_removes_exactly_one_and_repeats_are_noops(store):
    alice = store.create("Alice").value
    store.create("Bob")

    assert store.delete(alice).value is True
    assert store.count() == 1
    assert store.get(alice.id) is None

    again = store.delete(alice)
    assert again.ok
    assert again.value is False
    assert names(store) == ["Bob"]


def test_persistence_errors_come_back_as_results(session_factory, clock):
    store = ContactStore(session_factory, clock=clock)
    person = store.create("Alice").value

    # Pull the tables out from under the store
    database.Base.metadata.drop_all(bind=session_factory.kw["bind"])

    created = store.create("Bob")
    assert not created.ok
    assert created.kind is ErrorKind.PERSISTENCE
    assert "Error creating person" in created.error

    assert not store.touch(person).ok
    assert not store.delete(person).ok
    assert store.list() == []
    assert store.get(person.id) is None
    assert store.count() == 0
