from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Protocol

from ..core import constants


@dataclass(frozen=True)
class BrokerOptions:
    """Connection options for the presence broker."""

    host: str = "localhost"
    port: int = 1883
    transport: str = "tcp"
    ws_path: str = "/mqtt"
    use_tls: bool = False
    verify_tls: bool = True
    username: str = ""
    password: str = ""
    client_id: Optional[str] = None
    clean_session: bool = True
    keepalive: int = constants.DEFAULT_KEEPALIVE_SECONDS
    reconnect_period: int = constants.DEFAULT_RECONNECT_PERIOD_SECONDS
    connect_timeout: int = constants.DEFAULT_CONNECT_TIMEOUT_SECONDS
    max_queue_size: int = constants.DEFAULT_MAX_QUEUE_SIZE
    qos: int = 0

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "BrokerOptions":
        known = {k: v for k, v in values.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass(frozen=True)
class TransportHandlers:
    """Callbacks a transport uses to report what happens on the wire.

    ``on_disconnect`` receives ``None`` for a requested disconnect and a reason
    string when the link dropped and the transport is reconnecting by itself.
    """

    on_connect: Callable[[], None]
    on_disconnect: Callable[[Optional[str]], None]
    on_message: Callable[[str, bytes], None]
    on_error: Callable[[Exception], None]


class BrokerTransport(Protocol):
    def start(self, handlers: TransportHandlers) -> None:
        raise NotImplementedError

    def subscribe(self, topic: str, qos: int = 0) -> None:
        raise NotImplementedError

    def unsubscribe(self, topic: str) -> None:
        raise NotImplementedError

    def publish(self, topic: str, payload: bytes, qos: int = 0) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        raise NotImplementedError
