from __future__ import annotations

import pytest

from worksense.broker.manager import BrokerConnectionManager
from worksense.broker.transport import BrokerOptions, TransportHandlers
from worksense.core.exceptions import StoreUnavailableError
from worksense.employees.repository import InMemoryEmployeeDirectory


class FakeTransport:
    """In-process stand-in for the paho transport.

    Records every broker call; tests drive connection events by hand.
    """

    instances: list["FakeTransport"] = []

    def __init__(self, options: BrokerOptions, *, auto_connect: bool = True):
        self.options = options
        self.auto_connect = auto_connect
        self.handlers: TransportHandlers | None = None
        self.subscribed: list[str] = []
        self.unsubscribed: list[str] = []
        self.published: list[tuple[str, bytes]] = []
        self.started = 0
        self.stopped = 0
        FakeTransport.instances.append(self)

    def start(self, handlers: TransportHandlers) -> None:
        self.handlers = handlers
        self.started += 1
        if self.auto_connect:
            handlers.on_connect()

    def subscribe(self, topic: str, qos: int = 0) -> None:
        self.subscribed.append(topic)

    def unsubscribe(self, topic: str) -> None:
        self.unsubscribed.append(topic)

    def publish(self, topic: str, payload: bytes, qos: int = 0) -> None:
        self.published.append((topic, payload))

    def stop(self) -> None:
        self.stopped += 1

    # test drivers

    def drop(self, reason: str = "connection lost") -> None:
        self.handlers.on_disconnect(reason)

    def reconnect(self) -> None:
        self.handlers.on_connect()

    def deliver(self, topic: str, payload: bytes) -> None:
        self.handlers.on_message(topic, payload)

    def fail(self, exc: Exception) -> None:
        self.handlers.on_error(exc)


class OutageDirectory(InMemoryEmployeeDirectory):
    """In-memory directory that can be switched to behave like an unreachable MySQL."""

    down = False

    def _check(self):
        if self.down:
            raise StoreUnavailableError("MySQL unreachable")

    def get_by_id(self, employee_id):
        self._check()
        return super().get_by_id(employee_id)

    def get_by_uid(self, rfid_uid):
        self._check()
        return super().get_by_uid(rfid_uid)

    def list_active(self):
        self._check()
        return super().list_active()


@pytest.fixture
def fake_transports():
    FakeTransport.instances = []
    yield FakeTransport.instances
    FakeTransport.instances = []


@pytest.fixture
def managers(fake_transports):
    """Factory for managers that are always disconnected afterwards."""
    created: list[BrokerConnectionManager] = []

    def make(*, auto_connect: bool = True, max_queue_size: int = 100, **kwargs) -> BrokerConnectionManager:
        options = BrokerOptions(max_queue_size=max_queue_size, connect_timeout=1, **kwargs)
        manager = BrokerConnectionManager(
            options,
            transport_factory=lambda opts: FakeTransport(opts, auto_connect=auto_connect),
        )
        created.append(manager)
        return manager

    yield make
    for manager in created:
        manager.disconnect()


@pytest.fixture(autouse=True)
def release_broker_slot():
    yield
    BrokerConnectionManager._holder = None
