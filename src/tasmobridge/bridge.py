"""Bridge runtime: restore cached accessories, then consume discovery."""

from __future__ import annotations

import logging
from typing import Any

from tasmobridge.config import Settings
from tasmobridge.core import AccessoryRegistry
from tasmobridge.intake import DiscoveryIntake
from tasmobridge.storage import HostPlatform

logger = logging.getLogger(__name__)


class Bridge:
    def __init__(
        self,
        settings: Settings,
        host: HostPlatform,
        intake: DiscoveryIntake | None = None,
    ) -> None:
        self.settings = settings
        self.host = host
        self.registry = AccessoryRegistry(host, settings.bridge.cleanup_seconds)
        self.intake = intake or DiscoveryIntake(settings.mqtt, self.on_discovery)

    def on_discovery(self, payload: dict[str, Any], session: Any) -> None:
        self.registry.handle_discovery(payload, session)

    def restore(self) -> int:
        """Hand every cached accessory to the registry. Returns the count."""
        accessories = self.host.load_accessories()
        for accessory in accessories:
            self.registry.configure_accessory(accessory)
        return len(accessories)

    async def run(self) -> None:
        # new accessories may only be registered once the cache is restored
        restored = self.restore()
        logger.info(
            "Restored %d cached accessories, cleanup after %sh of silence",
            restored,
            self.settings.bridge.cleanup,
        )
        try:
            await self.intake.run()
        finally:
            self.registry.close()
