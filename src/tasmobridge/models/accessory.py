from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from .message import DiscoveryMessage


class Accessory(BaseModel):
    """Registered accessory of one physical device.

    ``devices`` maps each sub-device ``unique_id`` to its latest discovery
    message. ``session`` and ``timer_slot`` only live in memory.
    """

    display_name: str
    uuid: str
    devices: dict[str, DiscoveryMessage] = Field(default_factory=dict)
    session: Any = Field(default=None, exclude=True)
    timer_slot: int | None = Field(default=None, exclude=True)


class AccessoryCache(BaseModel):
    """On-disk form of the registered accessories."""

    accessories: list[Accessory] = Field(default_factory=list)
