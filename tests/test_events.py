from __future__ import annotations

import pytest

from ioloop.core.events import EventEmitter


def test_callbacks_run_in_subscription_order_with_payload() -> None:
    emitter = EventEmitter()
    seen: list[tuple[str, object]] = []

    emitter.subscribe("data", lambda chunk: seen.append(("first", chunk)))
    emitter.subscribe("data", lambda chunk: seen.append(("second", chunk)))

    emitter.publish("data", b"abc")

    assert seen == [("first", b"abc"), ("second", b"abc")]


def test_subscribe_returns_emitter_for_chaining() -> None:
    emitter = EventEmitter()
    hits: list[str] = []

    result = emitter.subscribe("a", lambda: hits.append("a")).subscribe("b", lambda: hits.append("b"))

    assert result is emitter
    emitter.publish("b")
    emitter.publish("a")
    assert hits == ["b", "a"]


def test_duplicate_subscriptions_all_fire() -> None:
    emitter = EventEmitter()
    hits: list[int] = []

    def cb() -> None:
        hits.append(1)

    emitter.subscribe("drain", cb).subscribe("drain", cb)
    emitter.publish("drain")

    assert hits == [1, 1]
    assert emitter.listener_count("drain") == 2


def test_publish_without_subscribers_is_noop() -> None:
    emitter = EventEmitter()
    emitter.publish("nobody-listens", 1, 2, 3)
    assert emitter.listener_count("nobody-listens") == 0


def test_return_values_are_ignored() -> None:
    emitter = EventEmitter()
    emitter.subscribe("x", lambda: "ignored")

    assert emitter.publish("x") is None


def test_callback_exception_propagates_and_stops_later_callbacks() -> None:
    emitter = EventEmitter()
    hits: list[str] = []

    def boom() -> None:
        raise RuntimeError("callback fault")

    emitter.subscribe("data", boom)
    emitter.subscribe("data", lambda: hits.append("late"))

    with pytest.raises(RuntimeError) as e:
        emitter.publish("data")

    assert "callback fault" in str(e.value)
    assert hits == []


def test_subscribing_during_publish_takes_effect_next_time() -> None:
    emitter = EventEmitter()
    hits: list[str] = []

    def add_more() -> None:
        hits.append("outer")
        emitter.subscribe("evt", lambda: hits.append("inner"))

    emitter.subscribe("evt", add_more)

    emitter.publish("evt")
    assert hits == ["outer"]

    hits.clear()
    emitter.publish("evt")
    # The callback added in the first round runs; the one added just now waits.
    assert hits == ["outer", "inner"]


def test_unsubscribe_removes_one_registration() -> None:
    emitter = EventEmitter()
    hits: list[str] = []

    def a() -> None:
        hits.append("a")

    def b() -> None:
        hits.append("b")

    emitter.subscribe("evt", a).subscribe("evt", b)
    emitter.unsubscribe("evt", a)
    emitter.unsubscribe("evt", lambda: None)  # unknown callbacks are ignored
    emitter.publish("evt")
    assert hits == ["b"]
    assert emitter.listener_count("evt") == 1


def test_custom_event_types_are_supported() -> None:
    emitter = EventEmitter()
    lines: list[str] = []

    emitter.subscribe("line", lines.append)
    emitter.publish("line", "hello")

    assert lines == ["hello"]
