"""MQTT bus client.

Topic layout under the configured root (default ``lifx``)::

    {root}/driver/{driver}/announce                      retained
    {root}/driver/{driver}/status                        retained, online/offline (LWT)
    {root}/device/{device}/announce                      retained
    {root}/device/{device}/channel/{channel}/announce    retained
    {root}/device/{device}/channel/{channel}             JSON-RPC commands (subscribed)
    {root}/device/{device}/channel/{channel}/event/{ev}  events

Commands carry ``{"method": str, "params": any, "id": any}``. Events carry
``{"jsonrpc": "2.0", "params": <payload>, "time": <epoch ms>}``.
"""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Awaitable, Callable, Mapping
from json import JSONDecodeError
from typing import Any

import aiomqtt

from lifx_driver.const import LIFX_VERSION, STATUS_OFFLINE, STATUS_ONLINE
from lifx_driver.correlation import correlation_context
from lifx_driver.exceptions import BootstrapError
from lifx_driver.logging_abstraction import get_logger
from lifx_driver.structs import DriverConfig

logger = get_logger(__name__)

CommandHandler = Callable[[str, Any], Awaitable[None]]


class ChannelBus:
    """Publish handle for one announced channel."""

    lp: str = "ChannelBus:"

    def __init__(self, bus: BusClient, device_id: str, channel: str) -> None:
        self.bus = bus
        self.device_id = device_id
        self.channel = channel

    @property
    def topic(self) -> str:
        return f"{self.bus.topic}/device/{self.device_id}/channel/{self.channel}"

    async def send_event(self, event: str, payload: Mapping[str, object]) -> None:
        body = {
            "jsonrpc": "2.0",
            "params": dict(payload),
            "time": int(time.time() * 1000),
        }
        _ = await self.bus.publish_json(f"{self.topic}/event/{event}", body)


class DeviceBus:
    """Announcement handle for one device; hands out ChannelBus objects."""

    def __init__(self, bus: BusClient, device_id: str, name: str) -> None:
        self.bus = bus
        self.device_id = device_id
        self.name = name

    async def announce_channel(
        self,
        channel: str,
        capability: str,
        methods: list[str],
        events: list[str],
        handler: CommandHandler,
    ) -> ChannelBus:
        lp = f"{self.bus.lp}announce_channel:"
        channel_bus = ChannelBus(self.bus, self.device_id, channel)
        self.bus.register_handler(self.device_id, channel, handler)
        body = {
            "channel": channel,
            "protocol": capability,
            "supportedMethods": methods,
            "supportedEvents": events,
        }
        if not await self.bus.publish_json(f"{channel_bus.topic}/announce", body, retain=True):
            raise BootstrapError("announce", f"channel {channel} of {self.device_id}")
        logger.debug("%s [%s] %s methods=%s", lp, self.device_id, channel, methods)
        return channel_bus


class BusClient:
    """aiomqtt wrapper: connection, announcements, command routing and publishing."""

    lp: str = "bus:"

    def __init__(self, config: DriverConfig) -> None:
        self.config = config
        self.topic: str = config.topic
        self.driver_name: str = config.driver_name
        self.client: aiomqtt.Client | None = None
        self._connected: bool = False
        self._handlers: dict[tuple[str, str], CommandHandler] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def status_topic(self) -> str:
        return f"{self.topic}/driver/{self.driver_name}/status"

    @property
    def command_topic(self) -> str:
        return f"{self.topic}/device/+/channel/+"

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        """Connect to the broker and mark the driver online.

        Raises:
            BootstrapError: the broker refused or could not be reached

        """
        lp = f"{self.lp}connect:"
        logger.debug("%s Connecting to MQTT broker %s:%s...", lp, self.config.mqtt_host, self.config.mqtt_port)
        self.client = aiomqtt.Client(
            hostname=self.config.mqtt_host,
            port=self.config.mqtt_port,
            username=self.config.mqtt_user,
            password=self.config.mqtt_pass,
            identifier=f"{self.driver_name}-{self.config.client_suffix}",
            will=aiomqtt.Will(topic=self.status_topic, payload=STATUS_OFFLINE, qos=0, retain=True),
        )
        try:
            _ = await self.client.__aenter__()
        except aiomqtt.MqttError as e:
            logger.exception("%s Connection failed [MqttError]", lp)
            if "code:134" in str(e):
                logger.error("%s Bad username or password (username: %s)", lp, self.config.mqtt_user)
            self.client = None
            raise BootstrapError("connect", str(e)) from e

        self._connected = True
        logger.info("%s Connected to MQTT broker: %s port: %s", lp, self.config.mqtt_host, self.config.mqtt_port)
        if not await self.publish(self.status_topic, STATUS_ONLINE, retain=True):
            raise BootstrapError("connect", "could not publish online status")

    async def disconnect(self) -> None:
        lp = f"{self.lp}disconnect:"
        if self.client is None:
            return
        if self._connected:
            _ = await self.publish(self.status_topic, STATUS_OFFLINE, retain=True)
        try:
            await self.client.__aexit__(None, None, None)
        except aiomqtt.MqttError as e:
            logger.warning("%s MQTT disconnect failed: %s", lp, e)
        else:
            logger.info("%s Disconnected from MQTT broker", lp)
        finally:
            self._connected = False
            self.client = None

    async def publish(self, topic: str, payload: bytes, retain: bool = False) -> bool:
        """Publish raw bytes; failures are logged and reported as False."""
        lp = f"{self.lp}publish:"
        if not self._connected or self.client is None:
            logger.debug("%s not connected, dropping message for %s", lp, topic)
            return False
        try:
            await self.client.publish(topic, payload, qos=0, retain=retain)
        except aiomqtt.MqttCodeError as e:
            logger.warning("%s [MqttCodeError] -> %s", lp, e)
        except aiomqtt.MqttError as e:
            logger.warning("%s [MqttError] -> %s", lp, e)
            self._connected = False
        else:
            return True
        return False

    async def publish_json(self, topic: str, body: Mapping[str, object], retain: bool = False) -> bool:
        return await self.publish(topic, json.dumps(body).encode(), retain=retain)

    async def announce_driver(self) -> None:
        body = {"name": self.driver_name, "version": LIFX_VERSION}
        if not await self.publish_json(f"{self.topic}/driver/{self.driver_name}/announce", body, retain=True):
            raise BootstrapError("announce", f"driver {self.driver_name}")

    async def announce_device(self, device_id: str, name: str, signatures: Mapping[str, str]) -> DeviceBus:
        lp = f"{self.lp}announce_device:"
        body = {"id": device_id, "name": name, "signatures": dict(signatures)}
        if not await self.publish_json(f"{self.topic}/device/{device_id}/announce", body, retain=True):
            raise BootstrapError("announce", f"device {device_id}")
        logger.info("%s [%s] '%s'", lp, device_id, name)
        return DeviceBus(self, device_id, name)

    def register_handler(self, device_id: str, channel: str, handler: CommandHandler) -> None:
        self._handlers[device_id, channel] = handler

    def route(self, topic: str, payload: bytes | bytearray) -> tuple[CommandHandler, str, Any] | None:
        """Resolve a command message to ``(handler, method, params)``.

        Returns None for anything that is not a well-formed command for a
        registered channel; the reason is logged.
        """
        lp = f"{self.lp}route:"
        # The root may itself contain "/", so match it as a prefix
        root = f"{self.topic}/"
        parts = topic.removeprefix(root).split("/") if topic.startswith(root) else []
        # device/{id}/channel/{channel}
        if len(parts) != 4 or parts[0] != "device" or parts[2] != "channel":
            logger.debug("%s ignoring topic %s", lp, topic)
            return None
        device_id, channel = parts[1], parts[3]
        handler = self._handlers.get((device_id, channel))
        if handler is None:
            logger.warning("%s no handler for device=%s channel=%s", lp, device_id, channel)
            return None

        try:
            body = json.loads(payload)
        except (JSONDecodeError, UnicodeDecodeError) as e:
            logger.error("%s invalid JSON on %s: %s", lp, topic, e)
            return None
        if not isinstance(body, dict) or not isinstance(body.get("method"), str):
            logger.error("%s missing method on %s: %s", lp, topic, body)
            return None
        return handler, body["method"], body.get("params")

    async def _run_command(self, handler: CommandHandler, topic: str, method: str, params: Any) -> None:
        lp = f"{self.lp}rcv:"
        with correlation_context():
            logger.debug("%s %s %s", lp, topic, method, extra={"topic": topic, "method": method})
            try:
                await handler(method, params)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("%s command %s on %s failed", lp, method, topic)

    def dispatch(self, topic: str, payload: bytes | bytearray) -> asyncio.Task[None] | None:
        """Start a task for one inbound message; returns it, or None if it was not routable."""
        routed = self.route(topic, payload)
        if routed is None:
            return None
        handler, method, params = routed
        task = asyncio.create_task(self._run_command(handler, topic, method, params))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def receive_forever(self) -> None:
        """Subscribe to command topics and dispatch messages until cancelled."""
        lp = f"{self.lp}rcv:"
        assert self.client is not None, "client must be connected"
        await self.client.subscribe(self.command_topic, qos=0)
        logger.info("%s Subscribed to %s. Waiting for commands...", lp, self.command_topic)
        try:
            async for message in self.client.messages:
                payload = message.payload
                if not isinstance(payload, (bytes, bytearray)) or not payload:
                    logger.debug("%s empty payload on %s, skipping", lp, message.topic.value)
                    continue
                _ = self.dispatch(message.topic.value, payload)
        except asyncio.CancelledError:
            logger.debug("%s receiver cancelled, propagating...", lp)
            raise
        except aiomqtt.MqttError as e:
            logger.warning("%s MQTT error: %s", lp, e)
            raise
