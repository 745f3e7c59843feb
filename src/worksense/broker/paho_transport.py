from __future__ import annotations

import logging
import ssl
import uuid
from typing import Optional

import paho.mqtt.client as mqtt

from ..core.exceptions import BrokerConnectionError
from .transport import BrokerOptions, TransportHandlers

logger = logging.getLogger(__name__)


class PahoTransport:
    """MQTT transport backed by paho-mqtt's threaded network loop.

    paho reconnects on its own after an unexpected drop, waiting at most
    ``reconnect_period`` seconds between attempts.
    """

    def __init__(self, options: BrokerOptions):
        self._options = options
        self._client: Optional[mqtt.Client] = None

    def _build_client(self) -> mqtt.Client:
        o = self._options
        client_id = o.client_id or f"worksense-{uuid.uuid4().hex[:12]}"
        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id,
            clean_session=o.clean_session,
            transport=o.transport,
        )
        if o.transport == "websockets":
            client.ws_set_options(path=o.ws_path)
        if o.use_tls:
            if o.verify_tls:
                client.tls_set()
            else:
                client.tls_set(cert_reqs=ssl.CERT_NONE)
                client.tls_insecure_set(True)
        if o.username:
            client.username_pw_set(o.username, o.password or None)
        client.reconnect_delay_set(min_delay=1, max_delay=max(1, int(o.reconnect_period)))
        return client

    def start(self, handlers: TransportHandlers) -> None:
        client = self._build_client()

        def on_connect(_client, _userdata, _flags, reason_code, _properties):
            if reason_code.is_failure:
                handlers.on_error(BrokerConnectionError(f"Broker refused connection: {reason_code}"))
                return
            handlers.on_connect()

        def on_connect_fail(_client, _userdata):
            handlers.on_error(BrokerConnectionError("Could not reach broker"))

        def on_disconnect(_client, _userdata, _flags, reason_code, _properties):
            handlers.on_disconnect(str(reason_code) if reason_code.is_failure else None)

        def on_message(_client, _userdata, message):
            handlers.on_message(message.topic, message.payload)

        client.on_connect = on_connect
        client.on_connect_fail = on_connect_fail
        client.on_disconnect = on_disconnect
        client.on_message = on_message

        self._client = client
        logger.info("Connecting to broker %s:%s (%s)", self._options.host, self._options.port, self._options.transport)
        client.connect_async(self._options.host, int(self._options.port), keepalive=int(self._options.keepalive))
        client.loop_start()

    def subscribe(self, topic: str, qos: int = 0) -> None:
        if self._client is not None:
            self._client.subscribe(topic, qos=qos)

    def unsubscribe(self, topic: str) -> None:
        if self._client is not None:
            self._client.unsubscribe(topic)

    def publish(self, topic: str, payload: bytes, qos: int = 0) -> None:
        if self._client is not None:
            self._client.publish(topic, payload, qos=qos)

    def stop(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        client.disconnect()
        client.loop_stop()
