"""Service handlers, one per sub-device.

A handler ties one ``unique_id`` of an accessory to a service of the matching
kind and follows the sub-device's topics. Mapping payloads onto service
characteristics happens on the accessory side.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar

from tasmobridge.models import Accessory, DeviceType, DiscoveryMessage

logger = logging.getLogger(__name__)


def _payload_text(value: Any, default: str) -> str:
    if value is None or value == "":
        return default
    return str(value)


class ServiceHandler:
    service_type: ClassVar[str] = ""

    def __init__(self, session: Any, accessory: Accessory, unique_id: str) -> None:
        self.session = session
        self.accessory = accessory
        self.unique_id = unique_id
        self.topics: list[str] = []
        self.refresh(session)

    @property
    def message(self) -> DiscoveryMessage:
        return self.accessory.devices[self.unique_id]

    @property
    def name(self) -> str:
        return self.message.name or self.unique_id

    def watched_topics(self) -> list[str]:
        """Topics the sub-device reports on."""
        message = self.message
        extra = message.model_extra or {}
        candidates = [
            message.state_topic,
            extra.get("availability_topic"),
            extra.get("json_attributes_topic"),
        ]
        return [topic for topic in candidates if isinstance(topic, str) and topic]

    def refresh(self, session: Any = None) -> None:
        """Pick up the latest stored message and transport session."""
        if session is not None:
            self.session = session
        self.topics = self.watched_topics()
        logger.debug(
            "%s service '%s' following %s", self.service_type, self.name, self.topics
        )


class SwitchService(ServiceHandler):
    service_type = "Switch"

    @property
    def payload_on(self) -> str:
        return _payload_text(self.message.payload_on, "ON")

    @property
    def payload_off(self) -> str:
        return _payload_text(self.message.payload_off, "OFF")


class LightService(ServiceHandler):
    service_type = "Lightbulb"

    @property
    def dimmable(self) -> bool:
        return "brightness_command_topic" in (self.message.model_extra or {})


class SensorService(ServiceHandler):
    service_type = "Sensor"


class BinarySensorService(ServiceHandler):
    service_type = "BinarySensor"


SERVICE_HANDLERS: dict[DeviceType, type[ServiceHandler]] = {
    DeviceType.SWITCH: SwitchService,
    DeviceType.LIGHT: LightService,
    DeviceType.SENSOR: SensorService,
    DeviceType.BINARY_SENSOR: BinarySensorService,
}
