"""tasmobridge - bridge Tasmota MQTT discovery to a persistent accessory registry."""

from __future__ import annotations

from importlib.metadata import version

from .config import BridgeConfig, MqttConfig, Settings, get_settings
from .core import AccessoryRegistry, ServiceDispatcher, normalize_message
from .errors import MalformedDiscoveryError
from .models import Accessory, DeviceType, DiscoveryMessage
from .storage import AccessoryStore

__all__ = [
    "Accessory",
    "AccessoryRegistry",
    "AccessoryStore",
    "BridgeConfig",
    "DeviceType",
    "DiscoveryMessage",
    "MalformedDiscoveryError",
    "MqttConfig",
    "ServiceDispatcher",
    "Settings",
    "__version__",
    "get_settings",
    "normalize_message",
]

__version__ = version("tasmobridge")
