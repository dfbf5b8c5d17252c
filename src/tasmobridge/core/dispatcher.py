from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from tasmobridge.models import Accessory, DeviceType
from tasmobridge.services import SERVICE_HANDLERS, ServiceHandler

logger = logging.getLogger(__name__)

HandlerFactory = Callable[[Any, Accessory, str], ServiceHandler]


class ServiceDispatcher:
    """Keeps exactly one live handler per sub-device ``unique_id``."""

    def __init__(
        self, factories: Mapping[DeviceType, HandlerFactory] | None = None
    ) -> None:
        self._factories: Mapping[DeviceType, HandlerFactory] = (
            SERVICE_HANDLERS if factories is None else factories
        )
        self._handlers: dict[str, ServiceHandler] = {}

    def __len__(self) -> int:
        return len(self._handlers)

    def get(self, unique_id: str) -> ServiceHandler | None:
        return self._handlers.get(unique_id)

    def route(
        self,
        session: Any,
        accessory: Accessory,
        unique_id: str,
        device_type: str | None,
    ) -> ServiceHandler | None:
        """Refresh the handler of ``unique_id`` or create one for ``device_type``."""
        handler = self._handlers.get(unique_id)
        if handler is not None:
            logger.debug("Refreshing service: %s", unique_id)
            handler.refresh(session)
            return handler

        try:
            factory = self._factories[DeviceType(device_type)]
        except (KeyError, ValueError):
            logger.warning("Unhandled Tasmota device type '%s'", device_type)
            return None

        logger.info("Creating service: %s (%s)", unique_id, device_type)
        handler = factory(session, accessory, unique_id)
        self._handlers[unique_id] = handler
        return handler

    def discard(self, unique_id: str) -> None:
        self._handlers.pop(unique_id, None)
