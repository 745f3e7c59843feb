from __future__ import annotations

import threading
import time

import pytest

from worksense.broker.manager import BrokerConnectionManager
from worksense.broker.transport import BrokerOptions
from worksense.core.enums import ConnectionPhase
from worksense.core.exceptions import BrokerConnectionError

TOPIC = "esp32c3/events"


def _wait_for(predicate, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        time.sleep(0.005)


def test_connect_is_idempotent(managers, fake_transports):
    manager = managers()

    manager.connect()
    manager.connect()

    assert len(fake_transports) == 1
    assert fake_transports[0].started == 1
    assert manager.get_connection_state().connected is True
    assert manager.get_connection_state().phase == ConnectionPhase.CONNECTED


def test_concurrent_connect_calls_share_one_attempt(managers, fake_transports):
    manager = managers(auto_connect=False)
    errors: list[Exception] = []

    def worker():
        try:
            manager.connect(timeout=2)
        except Exception as exc:  # pragma: no cover - surfaced by the assert below
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()

    _wait_for(lambda: fake_transports and fake_transports[0].handlers is not None)
    assert manager.get_connection_state().connecting is True
    fake_transports[0].reconnect()

    for t in threads:
        t.join(timeout=2)

    assert errors == []
    assert len(fake_transports) == 1
    assert manager.get_connection_state().connected is True


def test_two_subscribers_share_one_broker_subscription(managers, fake_transports):
    manager = managers()
    manager.connect()
    transport = fake_transports[0]

    dispose_a = manager.subscribe(TOPIC, lambda t, p: None)
    dispose_b = manager.subscribe(TOPIC, lambda t, p: None)
    assert transport.subscribed == [TOPIC]

    assert dispose_a() is True
    assert transport.unsubscribed == []
    assert manager.subscribed_topics() == [TOPIC]

    assert dispose_b() is True
    assert transport.unsubscribed == [TOPIC]
    assert manager.subscribed_topics() == []

    # disposing twice is harmless
    assert dispose_b() is False
    assert transport.unsubscribed == [TOPIC]


def test_reconnect_resubscribes_each_topic_once(managers, fake_transports):
    manager = managers()
    received: list[bytes] = []
    manager.subscribe(TOPIC, lambda t, p: received.append(p))
    manager.subscribe(TOPIC, lambda t, p: None)
    manager.subscribe("other/topic", lambda t, p: None)

    manager.connect()
    transport = fake_transports[0]
    assert sorted(transport.subscribed) == sorted([TOPIC, "other/topic"])

    transport.drop()
    state = manager.get_connection_state()
    assert state.connected is False
    assert state.phase == ConnectionPhase.RECONNECTING
    assert state.last_error == "connection lost"

    transport.reconnect()
    assert transport.subscribed.count(TOPIC) == 2
    assert transport.subscribed.count("other/topic") == 2

    transport.deliver(TOPIC, b"after-reconnect")
    assert received == [b"after-reconnect"]


def test_connect_during_reconnect_joins_the_transport_retry(managers, fake_transports):
    manager = managers()
    manager.connect()
    transport = fake_transports[0]
    transport.drop()

    done = threading.Event()

    def worker():
        manager.connect(timeout=2)
        done.set()

    t = threading.Thread(target=worker)
    t.start()
    time.sleep(0.05)
    assert not done.is_set()

    transport.reconnect()
    t.join(timeout=2)

    assert done.is_set()
    assert len(fake_transports) == 1


def test_offline_publishes_are_bounded_and_flushed_on_connect(managers, fake_transports):
    manager = managers(max_queue_size=10)

    for i in range(15):
        assert manager.publish("acks", f"m{i}") is False
    assert manager.queued_messages == 10

    manager.connect()
    published = [p.decode() for _, p in fake_transports[0].published]
    assert published == [f"m{i}" for i in range(5, 15)]
    assert manager.queued_messages == 0

    assert manager.publish("acks", b"live") is True
    assert fake_transports[0].published[-1] == ("acks", b"live")


def test_failing_callback_does_not_block_other_subscribers(managers, fake_transports):
    manager = managers()
    manager.connect()
    seen: list[str] = []

    def broken(topic, payload):
        raise RuntimeError("boom")

    manager.subscribe(TOPIC, broken)
    manager.subscribe(TOPIC, lambda t, p: seen.append(t))

    fake_transports[0].deliver(TOPIC, b"{}")

    assert seen == [TOPIC]


def test_wildcard_subscription_receives_matching_topics(managers, fake_transports):
    manager = managers()
    manager.connect()
    seen: list[str] = []
    manager.subscribe("devices/+/events", lambda t, p: seen.append(t))

    fake_transports[0].deliver("devices/esp32/events", b"{}")
    fake_transports[0].deliver("devices/esp32/status", b"{}")

    assert seen == ["devices/esp32/events"]


def test_unsubscribed_callback_gets_no_further_messages(managers, fake_transports):
    manager = managers()
    manager.connect()
    seen: list[bytes] = []
    dispose = manager.subscribe(TOPIC, lambda t, p: seen.append(p))

    fake_transports[0].deliver(TOPIC, b"1")
    dispose()
    fake_transports[0].deliver(TOPIC, b"2")

    assert seen == [b"1"]


def test_listeners_observe_every_transition(managers, fake_transports):
    manager = managers()
    phases: list[ConnectionPhase] = []
    remove = manager.add_connection_listener(lambda s: phases.append(s.phase))

    manager.connect()
    fake_transports[0].drop()
    fake_transports[0].reconnect()

    assert phases == [
        ConnectionPhase.CONNECTING,
        ConnectionPhase.CONNECTED,
        ConnectionPhase.OFFLINE,
        ConnectionPhase.RECONNECTING,
        ConnectionPhase.CONNECTED,
    ]

    remove()
    fake_transports[0].drop()
    assert len(phases) == 5


def test_transport_start_failure_rejects_connect_and_releases_connection(fake_transports):
    class ExplodingTransport:
        def __init__(self, options):
            pass

        def start(self, handlers):
            raise OSError("network unreachable")

        def stop(self):
            pass

    manager = BrokerConnectionManager(BrokerOptions(connect_timeout=1), transport_factory=ExplodingTransport)
    phases: list[ConnectionPhase] = []
    manager.add_connection_listener(lambda s: phases.append(s.phase))
    try:
        with pytest.raises(BrokerConnectionError):
            manager.connect()

        state = manager.get_connection_state()
        assert state.phase == ConnectionPhase.ERROR
        assert "network unreachable" in state.last_error
        assert phases[-1] == ConnectionPhase.ERROR
    finally:
        manager.disconnect()

    # the slot is free again: the second manager reaches its own transport
    other = BrokerConnectionManager(BrokerOptions(connect_timeout=1), transport_factory=ExplodingTransport)
    with pytest.raises(BrokerConnectionError, match="network unreachable"):
        other.connect()
    other.disconnect()


def test_broker_error_fails_waiting_connect(managers, fake_transports):
    manager = managers(auto_connect=False)
    outcome: list[Exception] = []

    def worker():
        try:
            manager.connect(timeout=2)
        except BrokerConnectionError as exc:
            outcome.append(exc)

    t = threading.Thread(target=worker)
    t.start()
    _wait_for(lambda: fake_transports and fake_transports[0].handlers is not None)
    fake_transports[0].fail(BrokerConnectionError("not authorised"))
    t.join(timeout=2)

    assert len(outcome) == 1
    assert manager.get_connection_state().last_error == "not authorised"


def test_connect_failure_while_transport_retries_reports_reconnecting(managers, fake_transports):
    manager = managers(auto_connect=False)
    phases: list[ConnectionPhase] = []
    manager.add_connection_listener(lambda s: phases.append(s.phase))

    with pytest.raises(BrokerConnectionError):
        manager.connect(timeout=0.05)
    fake_transports[0].fail(BrokerConnectionError("Could not reach broker"))

    state = manager.get_connection_state()
    assert phases[-2:] == [ConnectionPhase.ERROR, ConnectionPhase.RECONNECTING]
    assert state.connecting is True
    assert state.last_error == "Could not reach broker"

    # the retry succeeds and a later connect() joins it
    fake_transports[0].reconnect()
    manager.connect(timeout=0.5)
    assert manager.get_connection_state().phase == ConnectionPhase.CONNECTED
    assert len(fake_transports) == 1


def test_connect_times_out(managers, fake_transports):
    manager = managers(auto_connect=False)

    with pytest.raises(BrokerConnectionError):
        manager.connect(timeout=0.05)


def test_only_one_manager_may_hold_the_connection(managers, fake_transports):
    first = managers()
    second = managers()
    first.connect()

    with pytest.raises(BrokerConnectionError):
        second.connect()

    first.disconnect()
    second.connect()
    assert second.get_connection_state().connected is True


def test_disconnect_returns_to_a_fresh_state(managers, fake_transports):
    manager = managers()
    manager.subscribe(TOPIC, lambda t, p: None)
    manager.connect()
    manager.publish("acks", b"x")

    manager.disconnect()

    state = manager.get_connection_state()
    assert state.connected is False
    assert state.phase == ConnectionPhase.DISCONNECTED
    assert manager.subscribed_topics() == []
    assert fake_transports[0].stopped == 1

    manager.connect()
    assert len(fake_transports) == 2
    assert fake_transports[1].subscribed == []


def test_events_from_a_stale_transport_are_ignored(managers, fake_transports):
    manager = managers()
    manager.connect()
    stale = fake_transports[0]
    manager.disconnect()
    manager.connect()

    stale.drop()

    assert manager.get_connection_state().connected is True
