from __future__ import annotations

import functools
import logging
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, replace
from typing import Callable, ClassVar, Optional

from paho.mqtt.client import topic_matches_sub

from ..common.validators import require_non_empty
from ..core.enums import ConnectionPhase
from ..core.exceptions import BrokerConnectionError
from .paho_transport import PahoTransport
from .queue import OfflineQueue
from .transport import BrokerOptions, BrokerTransport, TransportHandlers

logger = logging.getLogger(__name__)

MessageCallback = Callable[[str, bytes], None]
StateListener = Callable[["ConnectionState"], None]
TransportFactory = Callable[[BrokerOptions], BrokerTransport]


@dataclass(frozen=True)
class ConnectionState:
    connected: bool = False
    connecting: bool = False
    last_error: Optional[str] = None
    phase: ConnectionPhase = ConnectionPhase.IDLE

    def as_dict(self) -> dict:
        return {
            "connected": self.connected,
            "connecting": self.connecting,
            "lastError": self.last_error,
            "phase": self.phase.value,
        }


class BrokerConnectionManager:
    """Owns the single physical connection to the message broker.

    Any number of in-process subscribers share that connection. Topic
    subscriptions are reference counted: the broker-level subscription lives
    while at least one local callback depends on it, and every registered
    topic is subscribed again after a reconnect because broker-side
    subscriptions do not survive one.

    Only one manager per process may hold the physical connection at a time;
    ``connect()`` on a second instance raises ``BrokerConnectionError`` until
    the first one calls ``disconnect()``.
    """

    _holder: ClassVar[Optional["BrokerConnectionManager"]] = None
    _holder_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, options: Optional[BrokerOptions] = None, *, transport_factory: Optional[TransportFactory] = None):
        self._options = options or BrokerOptions()
        self._transport_factory: TransportFactory = transport_factory or PahoTransport
        self._lock = threading.RLock()
        self._transport: Optional[BrokerTransport] = None
        self._pending: Optional[Future] = None
        self._subscribers: dict[str, list[MessageCallback]] = {}
        self._listeners: list[StateListener] = []
        self._state = ConnectionState()
        self._queue = OfflineQueue(self._options.max_queue_size)

    # ----- lifecycle -----

    def connect(self, options: Optional[BrokerOptions] = None, *, timeout: Optional[float] = None) -> None:
        """Connect, or join the attempt already in flight.

        Blocks until the connection is up. Raises ``BrokerConnectionError`` when
        the attempt fails or does not finish within ``timeout`` seconds.
        """
        transport_to_start: Optional[BrokerTransport] = None
        state: Optional[ConnectionState] = None

        with self._lock:
            if self._transport is not None and self._state.connected:
                return

            if self._pending is None:
                if self._transport is None:
                    self._claim_connection()
                    if options is not None:
                        self._options = options
                        self._queue.resize(options.max_queue_size)
                    self._transport = self._transport_factory(self._options)
                    transport_to_start = self._transport
                    state = self._set_state(connected=False, connecting=True, last_error=None, phase=ConnectionPhase.CONNECTING)
                self._pending = Future()
            pending = self._pending
            wait = float(timeout if timeout is not None else self._options.connect_timeout)

        if state is not None:
            self._notify(state)

        if transport_to_start is not None:
            try:
                transport_to_start.start(self._handlers_for(transport_to_start))
            except Exception as exc:
                logger.exception("Broker transport failed to start")
                self._handle_error(transport_to_start, exc, fatal=True)

        try:
            pending.result(timeout=wait)
        except FutureTimeoutError as exc:
            raise BrokerConnectionError(f"Timed out after {wait:g}s waiting for the broker") from exc

    def disconnect(self) -> None:
        """Tear down the connection and clear every registry."""
        with self._lock:
            transport, self._transport = self._transport, None
            pending, self._pending = self._pending, None
            self._subscribers.clear()
            self._queue.clear()
            state = self._set_state(connected=False, connecting=False, last_error=None, phase=ConnectionPhase.DISCONNECTED)
            listeners = list(self._listeners)
            self._listeners.clear()
            self._release_connection()

        if transport is not None:
            try:
                transport.stop()
            except Exception:
                logger.exception("Error while stopping broker transport")
            logger.info("Broker connection closed")

        self._notify(state, listeners)
        if pending is not None and not pending.done():
            pending.set_exception(BrokerConnectionError("Disconnected before the connection was established"))

    # ----- subscriptions -----

    def subscribe(self, topic: str, callback: MessageCallback) -> Callable[[], bool]:
        """Register ``callback`` for ``topic``; returns a disposer for it."""
        topic = require_non_empty(topic, "topic")
        with self._lock:
            callbacks = self._subscribers.setdefault(topic, [])
            first = not callbacks
            if callback not in callbacks:
                callbacks.append(callback)
            if first and self._transport is not None and self._state.connected:
                self._broker_call("subscribe", self._transport.subscribe, topic, self._options.qos)
                logger.info("Subscribed to %s", topic)
        return functools.partial(self.unsubscribe, topic, callback)

    def unsubscribe(self, topic: str, callback: MessageCallback) -> bool:
        with self._lock:
            callbacks = self._subscribers.get(topic)
            if not callbacks or callback not in callbacks:
                return False
            callbacks.remove(callback)
            if not callbacks:
                del self._subscribers[topic]
                if self._transport is not None and self._state.connected:
                    self._broker_call("unsubscribe", self._transport.unsubscribe, topic)
                    logger.info("Unsubscribed from %s", topic)
            return True

    def subscribed_topics(self) -> list[str]:
        with self._lock:
            return list(self._subscribers)

    def publish(self, topic: str, payload: bytes | str) -> bool:
        """Publish now when connected, otherwise queue for the next connect.

        Returns True when the message went to the broker immediately.
        """
        data = payload.encode("utf-8") if isinstance(payload, str) else bytes(payload)
        with self._lock:
            if self._transport is not None and self._state.connected:
                self._broker_call("publish", self._transport.publish, topic, data, self._options.qos)
                return True
            self._queue.put(topic, data)
            return False

    @property
    def queued_messages(self) -> int:
        with self._lock:
            return len(self._queue)

    # ----- connection state -----

    def add_connection_listener(self, callback: StateListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(callback)

        def remove() -> None:
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return remove

    def get_connection_state(self) -> ConnectionState:
        with self._lock:
            return self._state

    # ----- transport events -----

    def _handlers_for(self, transport: BrokerTransport) -> TransportHandlers:
        return TransportHandlers(
            on_connect=functools.partial(self._handle_connected, transport),
            on_disconnect=functools.partial(self._handle_disconnected, transport),
            on_message=functools.partial(self._handle_message, transport),
            on_error=functools.partial(self._handle_error, transport),
        )

    def _handle_connected(self, transport: BrokerTransport) -> None:
        with self._lock:
            if transport is not self._transport:
                return
            state = self._set_state(connected=True, connecting=False, last_error=None, phase=ConnectionPhase.CONNECTED)
            for topic in list(self._subscribers):
                self._broker_call("subscribe", transport.subscribe, topic, self._options.qos)
                logger.info("Resubscribed to %s", topic)
            for message in self._queue.drain():
                self._broker_call("publish", transport.publish, message.topic, message.payload, self._options.qos)
            pending, self._pending = self._pending, None

        logger.info("Broker connected")
        self._notify(state)
        if pending is not None and not pending.done():
            pending.set_result(None)

    def _handle_disconnected(self, transport: BrokerTransport, reason: Optional[str]) -> None:
        with self._lock:
            if transport is not self._transport:
                return
            offline = self._set_state(
                connected=False,
                connecting=False,
                last_error=reason or self._state.last_error,
                phase=ConnectionPhase.OFFLINE,
            )
            reconnecting = None
            if reason is not None:
                # The transport retries by itself; connect() callers join that attempt.
                reconnecting = self._set_state(connecting=True, phase=ConnectionPhase.RECONNECTING)
                if self._pending is None:
                    self._pending = Future()

        logger.warning("Broker offline (%s)", reason or "closed")
        self._notify(offline)
        if reconnecting is not None:
            self._notify(reconnecting)

    def _handle_message(self, transport: BrokerTransport, topic: str, payload: bytes) -> None:
        with self._lock:
            if transport is not self._transport:
                return
            callbacks = [
                cb
                for subscription, registered in self._subscribers.items()
                if subscription == topic or topic_matches_sub(subscription, topic)
                for cb in registered
            ]

        for callback in callbacks:
            try:
                callback(topic, payload)
            except Exception:
                logger.exception("Subscriber callback failed for topic %s", topic)

    def _handle_error(self, transport: BrokerTransport, exc: Exception, *, fatal: bool = False) -> None:
        with self._lock:
            if transport is not self._transport:
                return
            state = self._set_state(connected=False, connecting=False, last_error=str(exc), phase=ConnectionPhase.ERROR)
            pending, self._pending = self._pending, None
            reconnecting = None
            if fatal:
                self._transport = None
                self._release_connection()
            else:
                # The transport is still alive and keeps retrying.
                reconnecting = self._set_state(connecting=True, phase=ConnectionPhase.RECONNECTING)

        logger.warning("Broker connection error: %s", exc)
        self._notify(state)
        if reconnecting is not None:
            self._notify(reconnecting)
        if pending is not None and not pending.done():
            pending.set_exception(BrokerConnectionError(str(exc)))

    # ----- helpers -----

    def _set_state(self, **changes) -> ConnectionState:
        self._state = replace(self._state, **changes)
        return self._state

    def _notify(self, state: ConnectionState, listeners: Optional[list[StateListener]] = None) -> None:
        if listeners is None:
            with self._lock:
                listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(state)
            except Exception:
                logger.exception("Connection listener failed")

    def _broker_call(self, what: str, fn, *args) -> None:
        # Best effort: the broker acknowledgement is not awaited.
        try:
            fn(*args)
        except Exception:
            logger.exception("Broker %s failed for %s", what, args[0] if args else "-")

    def _claim_connection(self) -> None:
        cls = BrokerConnectionManager
        with cls._holder_lock:
            if cls._holder is not None and cls._holder is not self:
                raise BrokerConnectionError("Another connection manager already holds the broker connection")
            cls._holder = self

    def _release_connection(self) -> None:
        cls = BrokerConnectionManager
        with cls._holder_lock:
            if cls._holder is self:
                cls._holder = None
