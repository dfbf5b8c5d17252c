from __future__ import annotations

from .dispatcher import ServiceDispatcher
from .lifecycle import ExpiryScheduler
from .normalizer import normalize_message, rename_keys, replace_placeholder
from .registry import AccessoryRegistry, Resolution

__all__ = [
    "AccessoryRegistry",
    "ExpiryScheduler",
    "Resolution",
    "ServiceDispatcher",
    "normalize_message",
    "rename_keys",
    "replace_placeholder",
]
