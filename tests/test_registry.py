"""Broadcast registry tests: channel bookkeeping and fan-out.

Subscribers are FakeSubscriber handles from conftest, so nothing here
touches a socket.
"""

import random

import pytest

from oldrao.services.events import BroadcastRegistry, SubscriberClosed


# ═══════════════════════════════════════════════════════════
# Subscribe / unsubscribe
# ═══════════════════════════════════════════════════════════


def test_order_channel_created_on_first_subscribe(make_subscriber):
    registry = BroadcastRegistry()
    a = make_subscriber("a")

    assert "507f" not in registry.order_channels
    registry.subscribe_order("507f", a)

    assert registry.order_channels == {"507f"}
    assert registry.is_order_subscriber("507f", a)


def test_subscribe_is_idempotent(make_subscriber):
    registry = BroadcastRegistry()
    a = make_subscriber("a")

    registry.subscribe_order("1", a)
    registry.subscribe_order("1", a)
    registry.subscribe_admin(a)
    registry.subscribe_admin(a)

    assert registry.order_subscriber_count("1") == 1
    assert registry.admin_subscriber_count == 1


def test_last_unsubscribe_removes_channel_key(make_subscriber):
    registry = BroadcastRegistry()
    a, b = make_subscriber("a"), make_subscriber("b")
    registry.subscribe_order("1", a)
    registry.subscribe_order("1", b)

    registry.unsubscribe_order("1", a)
    assert registry.order_channels == {"1"}

    registry.unsubscribe_order("1", b)
    assert registry.order_channels == frozenset()
    assert registry.order_subscriber_count("1") == 0


def test_unsubscribe_non_member_is_noop(make_subscriber):
    registry = BroadcastRegistry()
    a, stranger = make_subscriber("a"), make_subscriber("stranger")
    registry.subscribe_order("1", a)

    registry.unsubscribe_order("1", stranger)
    registry.unsubscribe_order("never-opened", stranger)
    registry.unsubscribe_admin(stranger)

    assert registry.order_channels == {"1"}
    assert registry.is_order_subscriber("1", a)
    assert "never-opened" not in registry.order_channels


def test_empty_order_id_rejected(make_subscriber):
    registry = BroadcastRegistry()
    with pytest.raises(ValueError):
        registry.subscribe_order("", make_subscriber())


def test_malformed_order_id_is_just_a_key(make_subscriber):
    registry = BroadcastRegistry()
    a = make_subscriber()
    registry.subscribe_order("not-an-order id!", a)
    registry.publish_to_order("not-an-order id!", "status-update", {"id": "x", "status": "Pending"})
    assert len(a.events) == 1


@pytest.mark.parametrize("seed", [1, 7, 42, 2024])
def test_replayed_operations_match_net_membership(make_subscriber, seed):
    """Random subscribe/unsubscribe sequences leave exactly the net members."""
    rng = random.Random(seed)
    registry = BroadcastRegistry()
    pool = [make_subscriber(str(i)) for i in range(6)]
    keys = ["1", "2", "3"]
    expected: dict[str, set] = {k: set() for k in keys}

    for _ in range(200):
        key = rng.choice(keys)
        sub = rng.choice(pool)
        if rng.random() < 0.5:
            registry.subscribe_order(key, sub)
            expected[key].add(sub)
        else:
            registry.unsubscribe_order(key, sub)
            expected[key].discard(sub)

    for key in keys:
        assert registry.order_subscriber_count(key) == len(expected[key])
        for sub in pool:
            assert registry.is_order_subscriber(key, sub) == (sub in expected[key])
    assert registry.order_channels == {k for k, subs in expected.items() if subs}


# ═══════════════════════════════════════════════════════════
# Publishing
# ═══════════════════════════════════════════════════════════


def test_publish_to_order_reaches_only_that_order(make_subscriber):
    registry = BroadcastRegistry()
    a, b = make_subscriber("a"), make_subscriber("b")
    registry.subscribe_order("507f", a)
    registry.subscribe_order("999", b)

    payload = {"id": "507f", "status": "Preparing"}
    delivered = registry.publish_to_order("507f", "status-update", payload)

    assert delivered == 1
    assert a.events == [("status-update", payload)]
    assert b.events == []


def test_publish_to_order_reaches_every_subscriber_once(make_subscriber):
    registry = BroadcastRegistry()
    viewers = [make_subscriber(str(i)) for i in range(3)]
    for v in viewers:
        registry.subscribe_order("12", v)

    registry.publish_to_order("12", "status-update", {"id": "12", "status": "Completed"})

    for v in viewers:
        assert v.events == [("status-update", {"id": "12", "status": "Completed"})]


def test_publish_to_admins_ignores_order_channels(make_subscriber):
    registry = BroadcastRegistry()
    a, b, c = make_subscriber("a"), make_subscriber("b"), make_subscriber("c")
    registry.subscribe_admin(a)
    registry.subscribe_admin(b)
    registry.subscribe_order("507f", c)

    payload = {"id": "3", "total": 260.0, "name": "Ravi", "createdAt": None, "status": "Pending"}
    delivered = registry.publish_to_admins("new-order", payload)

    assert delivered == 2
    assert a.events == [("new-order", payload)]
    assert b.events == [("new-order", payload)]
    assert c.events == []


def test_admin_and_order_membership_are_independent(make_subscriber):
    registry = BroadcastRegistry()
    a = make_subscriber()
    registry.subscribe_admin(a)
    registry.subscribe_order("5", a)

    registry.publish_to_admins("new-contact", {"id": "1"})
    registry.publish_to_order("5", "status-update", {"id": "5", "status": "Preparing"})
    registry.unsubscribe_order("5", a)

    assert len(a.events) == 2
    assert registry.is_admin_subscriber(a)


def test_publish_without_subscribers_creates_nothing():
    registry = BroadcastRegistry()

    assert registry.publish_to_order("ghost", "status-update", {"id": "ghost"}) == 0
    assert registry.publish_to_admins("new-order", {"id": "1"}) == 0
    assert registry.order_channels == frozenset()


def test_publish_after_disconnect_is_silent(make_subscriber):
    registry = BroadcastRegistry()
    a = make_subscriber()
    registry.subscribe_order("1", a)
    registry.unsubscribe_order("1", a)
    a.close()

    assert registry.publish_to_order("1", "status-update", {"id": "1", "status": "Cancelled"}) == 0
    assert a.events == []


# ═══════════════════════════════════════════════════════════
# Failing subscribers
# ═══════════════════════════════════════════════════════════


class ExplodingSubscriber:
    def __init__(self, exc):
        self.exc = exc
        self.closed = False

    def send(self, event, payload):
        raise self.exc

    def close(self):
        self.closed = True


@pytest.mark.parametrize("exc", [SubscriberClosed("gone"), BrokenPipeError("reset by peer")])
def test_failed_send_drops_subscriber_without_raising(make_subscriber, exc):
    registry = BroadcastRegistry()
    dead = ExplodingSubscriber(exc)
    alive = make_subscriber("alive")
    registry.subscribe_order("1", dead)
    registry.subscribe_order("1", alive)
    registry.subscribe_admin(dead)

    assert registry.publish_to_order("1", "status-update", {"id": "1", "status": "Preparing"}) == 1
    assert registry.publish_to_admins("status-update", {"id": "1", "status": "Preparing"}) == 0

    assert dead.closed
    assert not registry.is_order_subscriber("1", dead)
    assert not registry.is_admin_subscriber(dead)
    assert alive.events == [("status-update", {"id": "1", "status": "Preparing"})]


def test_closed_subscriber_last_in_channel_removes_key(make_subscriber):
    registry = BroadcastRegistry()
    a = make_subscriber()
    registry.subscribe_order("1", a)
    a.close()  # transport died without a disconnect callback

    registry.publish_to_order("1", "status-update", {"id": "1", "status": "Completed"})

    assert registry.order_channels == frozenset()


def test_close_disconnects_everyone(make_subscriber):
    registry = BroadcastRegistry()
    a, b = make_subscriber("a"), make_subscriber("b")
    registry.subscribe_order("1", a)
    registry.subscribe_admin(b)

    registry.close()

    assert a.closed and b.closed
    assert registry.total_subscribers == 0
    assert registry.order_channels == frozenset()


def test_subscribe_after_close_is_refused(make_subscriber):
    registry = BroadcastRegistry()
    registry.close()
    late_viewer, late_admin = make_subscriber("viewer"), make_subscriber("admin")

    registry.subscribe_order("1", late_viewer)
    registry.subscribe_admin(late_admin)

    assert registry.closed
    assert late_viewer.closed and late_admin.closed
    assert registry.order_channels == frozenset()
    assert registry.total_subscribers == 0
