"""Canonical discovery message."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from tasmobridge.errors import MalformedDiscoveryError


class DeviceType(StrEnum):
    """Device kinds with a service handler."""

    SWITCH = "switch"
    LIGHT = "light"
    SENSOR = "sensor"
    BINARY_SENSOR = "binary_sensor"


def _as_text(value: Any) -> str | None:
    # firmware sends numbers and nulls where text is expected
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float)):
        return str(value)
    return None


class DeviceInfo(BaseModel):
    model_config = {"extra": "allow", "coerce_numbers_to_str": True}

    identifiers: list[str] = Field(default_factory=list)
    name: str | None = None
    model: str | None = None
    sw_version: str | None = None
    manufacturer: str | None = None

    @field_validator("name", "model", "sw_version", "manufacturer", mode="before")
    @classmethod
    def lenient_text(cls, value: Any) -> str | None:
        return _as_text(value)


class DiscoveryMessage(BaseModel):
    """Normalized discovery payload for one sub-device.

    Unknown keys are kept as extra fields so that newer firmware attributes
    survive a round trip through the accessory cache. Descriptive fields are
    lenient; only ``unique_id`` and the device identifier are required.
    """

    model_config = {"extra": "allow", "coerce_numbers_to_str": True}

    name: str | None = None
    unique_id: str
    device_type: str | None = None
    device_class: str | None = None
    payload_on: Any = None
    payload_off: Any = None
    state_topic: str | None = None
    device: DeviceInfo | None = None

    @field_validator(
        "name", "device_type", "device_class", "state_topic", mode="before"
    )
    @classmethod
    def lenient_text(cls, value: Any) -> str | None:
        return _as_text(value)

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> DiscoveryMessage:
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise MalformedDiscoveryError(f"Invalid discovery payload\n{exc}") from exc

    @property
    def identity(self) -> str:
        """Firmware identifier shared by all sub-devices of one unit."""
        if self.device is None or not self.device.identifiers:
            raise MalformedDiscoveryError(
                f"Discovery message '{self.unique_id}' has no device identifiers"
            )
        return self.device.identifiers[0]
