"""MQTT transport for Venus OS.

This module provides :class:`MqttClient`, which reads catalog registers from
the MQTT broker running on a GX device.  Unlike Modbus there is no request
and response: the client subscribes to the expected topics, publishes a
keepalive so the GX device replays its current values, and collects messages
until every expected topic has arrived or the read timeout fires.

paho-mqtt runs its network loop in a background thread.  Callbacks hand
messages to the asyncio loop with ``call_soon_threadsafe``; all collection
state lives on the event loop.

Example:
    portal_id = await MqttClient.discover_portal_id("192.168.1.50")
    async with mqtt_session("192.168.1.50", 1883, portal_id) as client:
        results = await client.read_registers(
            "com.victronenergy.battery", 512, battery.registers
        )
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Hashable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import paho.mqtt.client as mqtt

from pyvictron.constants import (
    DEFAULT_MQTT_PORT,
    MQTT_CONNECT_TIMEOUT,
    MQTT_KEEPALIVE,
    MQTT_READ_TIMEOUT,
)

from .exceptions import TransportConnectionError, TransportTimeoutError
from .topics import (
    SERIAL_TOPIC_PATTERN,
    build_topic,
    discovery_topic,
    keepalive_topic,
    normalize_path,
    parse_payload,
    parse_topic,
    service_type_from_service,
    value_to_result,
    wildcard_topic,
)

if TYPE_CHECKING:
    from pyvictron.registers.definitions import RegisterDefinition

    from .data import RegisterReadResult

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class ServiceInstance:
    """A service type and device instance seen on the broker."""

    service_type: str
    device_instance: str


class _MessageCollector:
    """Completion object for one subscribe-and-wait call.

    Messages are reduced to a key by *key_for_topic* (None drops the message)
    and stored in ``received``.  The collector completes when every key in
    *expected* has arrived, when *limit* keys have arrived, or when the timer
    started by :meth:`wait` fires, whichever happens first.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        key_for_topic: Callable[[str], Hashable | None],
        *,
        expected: set[Hashable] | None = None,
        limit: int | None = None,
        keep_first: bool = False,
    ) -> None:
        self._key_for_topic = key_for_topic
        self.expected = frozenset(expected) if expected is not None else None
        self.limit = limit
        self.keep_first = keep_first
        self.received: dict[Hashable, Any] = {}
        self._future: asyncio.Future[bool] = loop.create_future()
        self._timer: asyncio.TimerHandle | None = None
        self._loop = loop

    @property
    def done(self) -> bool:
        return self._future.done()

    def _is_complete(self) -> bool:
        if self.expected is not None and self.expected <= self.received.keys():
            return True
        return self.limit is not None and len(self.received) >= self.limit

    def feed(self, topic: str, value: Any) -> None:
        if self._future.done():
            return
        key = self._key_for_topic(topic)
        if key is None:
            return
        if self.expected is not None and key not in self.expected:
            return
        if self.keep_first and key in self.received:
            return
        self.received[key] = value
        if self._is_complete():
            self._future.set_result(True)

    def fail(self, err: Exception) -> None:
        if not self._future.done():
            self._future.set_exception(err)

    def _expire(self) -> None:
        if not self._future.done():
            self._future.set_result(False)

    async def wait(self, timeout: float) -> bool:
        """Wait for completion; returns False if the timer fired first."""
        if self._is_complete() and not self._future.done():
            self._future.set_result(True)
        self._timer = self._loop.call_later(timeout, self._expire)
        try:
            return await self._future
        finally:
            self._timer.cancel()


class MqttClient:
    """Venus OS MQTT client for one portal ID.

    Each read subscribes, publishes a keepalive, waits, then unsubscribes.
    Topics that never produce a message resolve to ``"Not available"``; a
    read never fails only because data is missing.
    """

    def __init__(
        self,
        portal_id: str,
        *,
        connect_timeout: float = MQTT_CONNECT_TIMEOUT,
        read_timeout: float = MQTT_READ_TIMEOUT,
    ) -> None:
        """Initialize the client without connecting.

        Args:
            portal_id: Portal ID namespacing all topics of the GX device
            connect_timeout: Seconds allowed to reach the broker
            read_timeout: Seconds to wait for messages in each read
        """
        self._portal_id = portal_id
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout
        self._client: mqtt.Client | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._connect_future: asyncio.Future[None] | None = None
        self._collectors: set[_MessageCollector] = set()
        self._connected = False

    @property
    def portal_id(self) -> str:
        return self._portal_id

    @property
    def is_connected(self) -> bool:
        """True once the broker has accepted the connection."""
        return self._client is not None and self._connected

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    async def connect(self, host: str, port: int = DEFAULT_MQTT_PORT) -> None:
        """Connect to the broker and start the network loop.

        Raises:
            TransportConnectionError: If the broker refuses the connection or
                does not answer within the connect timeout
        """
        self._loop = asyncio.get_running_loop()
        self._connect_future = self._loop.create_future()

        client = mqtt.Client(callback_api_version=mqtt.CallbackAPIVersion.VERSION2)
        client.on_connect = self._on_connect
        client.on_connect_fail = self._on_connect_fail
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        self._client = client

        try:
            client.connect_async(host, port, keepalive=MQTT_KEEPALIVE)
            client.loop_start()
            await asyncio.wait_for(self._connect_future, timeout=self._connect_timeout)
        except TimeoutError as err:
            await self.close()
            _LOGGER.error("MQTT connection timeout to %s:%s", host, port)
            raise TransportConnectionError(f"MQTT connection timeout to {host}:{port}") from err
        except TransportConnectionError:
            await self.close()
            raise
        except OSError as err:
            await self.close()
            _LOGGER.error("Failed to connect to MQTT broker at %s:%s: %s", host, port, err)
            raise TransportConnectionError(
                f"Failed to connect to MQTT broker at {host}:{port}: {err}"
            ) from err

        _LOGGER.info("MQTT client connected to %s:%s (portal %s)", host, port, self._portal_id)

    async def close(self) -> None:
        """Disconnect and stop the network loop. Safe to call more than once."""
        client, self._client = self._client, None
        self._connected = False
        if client is None:
            return
        for collector in list(self._collectors):
            collector.fail(TransportConnectionError("MQTT client closed"))
        client.disconnect()
        await asyncio.to_thread(client.loop_stop)
        _LOGGER.debug("MQTT client disconnected (portal %s)", self._portal_id)

    async def __aenter__(self) -> MqttClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # paho callbacks (network thread)
    # ------------------------------------------------------------------

    def _call_in_loop(self, callback: Callable[..., None], *args: Any) -> None:
        if self._loop is None:
            return
        try:
            self._loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            # Event loop already closed; nothing is waiting any more.
            _LOGGER.debug("Dropping MQTT callback after event loop shutdown")

    def _on_connect(
        self,
        client: mqtt.Client,
        userdata: Any,
        flags: Any,
        reason_code: Any,
        properties: Any = None,
    ) -> None:
        self._call_in_loop(self._resolve_connect, reason_code)

    def _on_connect_fail(self, client: mqtt.Client, userdata: Any) -> None:
        self._call_in_loop(self._resolve_connect, "connection refused")

    def _on_disconnect(
        self,
        client: mqtt.Client,
        userdata: Any,
        flags: Any,
        reason_code: Any,
        properties: Any = None,
    ) -> None:
        if getattr(reason_code, "is_failure", False):
            self._call_in_loop(self._fail_collectors, reason_code)

    def _on_message(self, client: mqtt.Client, userdata: Any, message: Any) -> None:
        self._call_in_loop(self._dispatch, message.topic, message.payload)

    # ------------------------------------------------------------------
    # Event loop side
    # ------------------------------------------------------------------

    def _resolve_connect(self, reason_code: Any) -> None:
        failed = isinstance(reason_code, str) or getattr(reason_code, "is_failure", False)
        # paho reconnects on its own; a later CONNACK restores the flag.
        self._connected = self._client is not None and not failed
        future = self._connect_future
        if future is None or future.done():
            return
        if failed:
            future.set_exception(
                TransportConnectionError(f"MQTT connection failed: {reason_code}")
            )
        else:
            future.set_result(None)

    def _fail_collectors(self, reason_code: Any) -> None:
        self._connected = False
        for collector in list(self._collectors):
            collector.fail(TransportConnectionError(f"MQTT connection lost: {reason_code}"))

    def _dispatch(self, topic: str, payload: bytes) -> None:
        if not self._collectors:
            return
        value = parse_payload(payload)
        for collector in list(self._collectors):
            collector.feed(topic, value)

    def _require_client(self) -> tuple[mqtt.Client, asyncio.AbstractEventLoop]:
        if self._client is None or self._loop is None or not self._connected:
            raise TransportConnectionError("MQTT client not connected")
        return self._client, self._loop

    async def _collect(
        self,
        collector: _MessageCollector,
        topic_filters: Sequence[str],
        *,
        keepalive: bool = True,
    ) -> bool:
        client, _ = self._require_client()
        self._collectors.add(collector)
        try:
            for topic_filter in topic_filters:
                client.subscribe(topic_filter)
            if keepalive:
                client.publish(keepalive_topic(self._portal_id), "")
            complete = await collector.wait(self._read_timeout)
            _LOGGER.debug(
                "Collected %d values for %d topic filters (%s)",
                len(collector.received),
                len(topic_filters),
                "complete" if complete else "timeout",
            )
            return complete
        finally:
            self._collectors.discard(collector)
            if self._client is not None:
                for topic_filter in topic_filters:
                    self._client.unsubscribe(topic_filter)

    def _new_collector(
        self,
        key_for_topic: Callable[[str], Hashable | None],
        **kwargs: Any,
    ) -> _MessageCollector:
        _, loop = self._require_client()
        return _MessageCollector(loop, key_for_topic, **kwargs)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def read_registers(
        self,
        service: str,
        device_instance: str | int,
        definitions: Sequence[RegisterDefinition],
    ) -> list[RegisterReadResult]:
        """Read registers of one known device instance.

        Returns:
            One result per definition, in the order given. Values are the
            ones published by Venus OS, without catalog scaling.
        """
        service_type = service_type_from_service(service)
        topics = [
            build_topic(self._portal_id, service_type, device_instance, reg.dbus_path)
            for reg in definitions
        ]
        collector = self._new_collector(lambda topic: topic, expected=set(topics))
        await self._collect(collector, sorted(set(topics)))

        return [
            value_to_result(reg, collector.received.get(topic))
            for reg, topic in zip(definitions, topics, strict=True)
        ]

    async def read_registers_wildcard(
        self,
        service: str,
        definitions: Sequence[RegisterDefinition],
    ) -> list[RegisterReadResult]:
        """Read registers when the device instance is not known.

        Subscribes to every instance of the service type and keeps the first
        value seen for each D-Bus path.
        """
        service_type = service_type_from_service(service)
        paths = [normalize_path(reg.dbus_path) for reg in definitions]

        def key_for_topic(topic: str) -> str | None:
            parts = parse_topic(topic)
            return parts.dbus_path if parts is not None else None

        collector = self._new_collector(key_for_topic, expected=set(paths), keep_first=True)
        await self._collect(collector, [wildcard_topic(self._portal_id, service_type)])

        return [
            value_to_result(reg, collector.received.get(path))
            for reg, path in zip(definitions, paths, strict=True)
        ]

    async def discover_services(self) -> list[ServiceInstance]:
        """List every service type and device instance publishing data.

        Always waits for the full read timeout.
        """

        def key_for_topic(topic: str) -> ServiceInstance | None:
            parts = parse_topic(topic)
            if parts is None:
                return None
            return ServiceInstance(parts.service_type, parts.device_instance)

        collector = self._new_collector(key_for_topic)
        await self._collect(collector, [discovery_topic(self._portal_id)])
        return sorted(collector.received)  # type: ignore[type-var]

    @classmethod
    async def discover_portal_id(
        cls,
        host: str,
        port: int = DEFAULT_MQTT_PORT,
        *,
        connect_timeout: float = MQTT_CONNECT_TIMEOUT,
        read_timeout: float = MQTT_READ_TIMEOUT,
    ) -> str:
        """Learn the portal ID from the GX device's serial number topic.

        Raises:
            TransportConnectionError: If the broker cannot be reached
            TransportTimeoutError: If no serial number message arrives
        """

        def key_for_topic(topic: str) -> str | None:
            parts = topic.split("/")
            return parts[1] if len(parts) >= 2 else None

        client = cls("", connect_timeout=connect_timeout, read_timeout=read_timeout)
        await client.connect(host, port)
        try:
            collector = client._new_collector(key_for_topic, limit=1)
            await client._collect(collector, [SERIAL_TOPIC_PATTERN], keepalive=False)
        finally:
            await client.close()

        if not collector.received:
            raise TransportTimeoutError("Portal ID discovery timeout - no MQTT data received")
        portal_id = str(next(iter(collector.received)))
        _LOGGER.info("Discovered portal ID %s on %s:%s", portal_id, host, port)
        return portal_id


@asynccontextmanager
async def mqtt_session(
    host: str,
    port: int,
    portal_id: str,
    *,
    connect_timeout: float = MQTT_CONNECT_TIMEOUT,
    read_timeout: float = MQTT_READ_TIMEOUT,
) -> AsyncIterator[MqttClient]:
    """Connect to the broker and always disconnect when the block exits."""
    client = MqttClient(portal_id, connect_timeout=connect_timeout, read_timeout=read_timeout)
    try:
        await client.connect(host, port)
        yield client
    finally:
        await client.close()


__all__ = ["MqttClient", "ServiceInstance", "mqtt_session"]
