"""Tests for the event bus."""

from wacore.events import EventBus, Events


def test_subscription_order_and_wildcard_last():
    bus = EventBus()
    calls = []
    bus.on("*", lambda event, payload: calls.append(("*", event, payload)))
    bus.on(Events.QR, lambda payload: calls.append(("first", payload)))
    bus.on(Events.QR, lambda payload: calls.append(("second", payload)))

    assert bus.emit(Events.QR, "data") == 3
    assert calls == [("first", "data"), ("second", "data"), ("*", Events.QR, "data")]


def test_no_subscribers():
    bus = EventBus()
    assert bus.emit(Events.LOGOUT) == 0
    assert bus.get_stats()["events_emitted"] == 1


def test_raising_handler_isolated():
    bus = EventBus()
    calls = []

    def broken(payload):
        raise RuntimeError("boom")

    bus.on(Events.ERROR, broken)
    bus.on(Events.ERROR, calls.append)
    bus.emit(Events.ERROR, {"error": "x"})

    assert calls == [{"error": "x"}]
    assert bus.handler_errors == 1


def test_on_returns_handler_for_off():
    bus = EventBus()
    seen = []
    handler = bus.on(Events.LOGOUT, lambda payload: seen.append(payload))

    bus.emit(Events.LOGOUT)
    bus.off(Events.LOGOUT, handler)
    bus.emit(Events.LOGOUT)
    assert seen == [None]


def test_once():
    bus = EventBus()
    seen = []
    bus.once(Events.QR, seen.append)
    bus.emit(Events.QR, 1)
    bus.emit(Events.QR, 2)
    assert seen == [1]
    assert bus.listener_count(Events.QR) == 0


def test_once_can_be_removed_before_firing():
    bus = EventBus()
    seen = []

    def handler(payload):
        seen.append(payload)

    bus.once(Events.QR, handler)
    bus.off(Events.QR, handler)
    bus.emit(Events.QR, 1)
    assert seen == []
    assert bus.listener_count(Events.QR) == 0


def test_off_single_and_all():
    bus = EventBus()
    seen = []
    keep = bus.on(Events.QR, lambda payload: seen.append("keep"))
    drop = bus.on(Events.QR, lambda payload: seen.append("drop"))

    bus.off(Events.QR, drop)
    bus.emit(Events.QR)
    assert seen == ["keep"]

    bus.off(Events.QR)
    bus.emit(Events.QR)
    assert seen == ["keep"]
    assert bus.listener_count(Events.QR) == 0
    assert keep is not drop


def test_off_unknown_is_noop():
    bus = EventBus()
    bus.off(Events.QR, print)
    bus.off("never-subscribed")


def test_clear():
    bus = EventBus()
    bus.on(Events.QR, print)
    bus.on("*", print)
    bus.clear()
    assert bus.get_stats()["subscriptions"] == 0
