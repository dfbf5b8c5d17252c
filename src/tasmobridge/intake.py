"""MQTT subscription feeding discovery payloads into the registry."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any

import aiomqtt

from tasmobridge.config import MqttConfig

logger = logging.getLogger(__name__)

DiscoveryCallback = Callable[[dict[str, Any], Any], object]


def discovery_topics(prefix: str) -> list[str]:
    """Subscriptions for ``<prefix>/<component>/[<node>/]<object>/config``."""
    return [f"{prefix}/+/+/config", f"{prefix}/+/+/+/config"]


def component_from_topic(topic: str, prefix: str) -> str | None:
    parts = topic.split("/")
    if len(parts) < 4 or parts[0] != prefix or parts[-1] != "config":
        return None
    return parts[1]


def decode_payload(topic: str, payload: Any, prefix: str) -> dict[str, Any] | None:
    """Decode one discovery message, or None if it carries no announcement."""
    if not payload:
        # retained config cleared by the device
        logger.debug("Empty discovery payload on %s, skipping", topic)
        return None

    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8", errors="replace")

    try:
        data = json.loads(payload)
    except (TypeError, json.JSONDecodeError) as exc:
        logger.warning("Undecodable discovery payload on %s: %s", topic, exc)
        return None

    if not isinstance(data, dict):
        logger.warning("Discovery payload on %s is not an object, skipping", topic)
        return None

    component = component_from_topic(topic, prefix)
    if component and "device_type" not in data:
        data["device_type"] = component
    return data


class DiscoveryIntake:
    """Subscribes to the discovery prefix and reports every announcement.

    ``on_discovery`` is called with the decoded payload and the connected
    client, which serves as the transport session for the announced device.
    """

    def __init__(self, config: MqttConfig, on_discovery: DiscoveryCallback) -> None:
        self._config = config
        self._on_discovery = on_discovery
        self.client: aiomqtt.Client | None = None

    def _build_client(self) -> aiomqtt.Client:
        return aiomqtt.Client(
            hostname=self._config.host,
            port=self._config.port,
            username=self._config.username,
            password=self._config.password,
        )

    async def _consume(self, client: aiomqtt.Client) -> None:
        prefix = self._config.discovery_prefix
        for topic in discovery_topics(prefix):
            await client.subscribe(topic)
        logger.info(
            "Subscribed to %s, waiting for discovery messages...",
            discovery_topics(prefix),
        )

        async for message in client.messages:
            topic = message.topic.value
            data = decode_payload(topic, message.payload, prefix)
            if data is None:
                continue
            self._on_discovery(data, client)

    async def run(self) -> None:
        """Consume discovery messages, reconnecting after broker errors."""
        while True:
            try:
                async with self._build_client() as client:
                    self.client = client
                    logger.info(
                        "Connected to MQTT broker %s:%d",
                        self._config.host,
                        self._config.port,
                    )
                    await self._consume(client)
            except aiomqtt.MqttError as exc:
                logger.warning(
                    "MQTT connection lost (%s), reconnecting in %.0f seconds...",
                    exc,
                    self._config.reconnect_delay,
                )
                await asyncio.sleep(self._config.reconnect_delay)
            finally:
                self.client = None
