"""Data models for tasmobridge."""

from tasmobridge.models.accessory import Accessory, AccessoryCache
from tasmobridge.models.message import DeviceInfo, DeviceType, DiscoveryMessage

__all__ = [
    "Accessory",
    "AccessoryCache",
    "DeviceInfo",
    "DeviceType",
    "DiscoveryMessage",
]
