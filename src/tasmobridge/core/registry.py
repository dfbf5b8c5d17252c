from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from tasmobridge.core.dispatcher import ServiceDispatcher
from tasmobridge.core.lifecycle import ExpiryScheduler, TimerLoop
from tasmobridge.core.normalizer import normalize_message
from tasmobridge.errors import MalformedDiscoveryError
from tasmobridge.models import Accessory, DiscoveryMessage
from tasmobridge.storage import HostPlatform

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    accessory: Accessory
    is_new: bool


class AccessoryRegistry:
    """Maps physical devices to registered accessories.

    The first discovery of an identity registers an accessory with the host,
    every later one updates it. The registry owns the accessory collection,
    the handler table (through its dispatcher) and the expiry timers; all of
    them are mutated only from the event loop delivering discovery messages.
    """

    def __init__(
        self,
        host: HostPlatform,
        cleanup_seconds: float,
        dispatcher: ServiceDispatcher | None = None,
        loop: TimerLoop | None = None,
    ) -> None:
        self._host = host
        self._dispatcher = dispatcher or ServiceDispatcher()
        self._scheduler = ExpiryScheduler(cleanup_seconds, self._evict, loop=loop)
        self._accessories: dict[str, Accessory] = {}

    @property
    def accessories(self) -> list[Accessory]:
        return list(self._accessories.values())

    @property
    def dispatcher(self) -> ServiceDispatcher:
        return self._dispatcher

    @property
    def scheduler(self) -> ExpiryScheduler:
        return self._scheduler

    def get(self, uuid: str) -> Accessory | None:
        return self._accessories.get(uuid)

    def configure_accessory(self, accessory: Accessory) -> None:
        """Restore an accessory from the host's cache.

        Its last announcement time is unknown, so a full expiry window starts
        now.
        """
        logger.info("Loading accessory from cache: %s", accessory.display_name)
        self._scheduler.arm(accessory)
        self._accessories[accessory.uuid] = accessory

    def resolve(self, message: DiscoveryMessage, session: Any = None) -> Resolution:
        identity = message.identity
        uuid = self._host.generate_identity(identity)
        unique_id = message.unique_id

        existing = self._accessories.get(uuid)
        if existing is not None:
            existing.session = session
            existing.devices[unique_id] = message
            self._scheduler.rearm(existing)
            self._dispatcher.route(session, existing, unique_id, message.device_type)
            self._host.update_accessories([existing])
            return Resolution(existing, is_new=False)

        accessory = Accessory(
            display_name=message.name or identity,
            uuid=uuid,
            devices={unique_id: message},
            session=session,
        )
        logger.info("Adding new accessory: %s", accessory.display_name)
        self._dispatcher.route(session, accessory, unique_id, message.device_type)
        self._scheduler.arm(accessory)
        try:
            self._host.register_accessories([accessory])
        except (OSError, ValueError):
            # not registered, so nothing may outlive this message
            self._scheduler.cancel(accessory)
            self._dispatcher.discard(unique_id)
            raise
        self._accessories[uuid] = accessory
        return Resolution(accessory, is_new=True)

    def handle_discovery(
        self, raw: Mapping[str, Any], session: Any = None
    ) -> Resolution | None:
        """Run one raw discovery payload through the pipeline.

        A malformed payload is logged and dropped. A host platform failure is
        logged as well and only costs this message: a failed update keeps the
        new state in memory for the next update to persist, a failed
        registration leaves nothing behind.
        """
        try:
            if not isinstance(raw, Mapping):
                raise MalformedDiscoveryError(
                    f"Discovery payload must be an object, got {type(raw).__name__}"
                )
            message = DiscoveryMessage.from_payload(normalize_message(raw))
            logger.debug("Discovered %s: %s", message.name, message.unique_id)
            return self.resolve(message, session)
        except MalformedDiscoveryError as exc:
            logger.warning("Dropping discovery message: %s", exc)
            return None
        except (OSError, ValueError) as exc:
            logger.error("Host platform failed on discovery message: %s", exc)
            return None

    def close(self) -> None:
        self._scheduler.close()

    def _evict(self, accessory: Accessory) -> None:
        try:
            self._host.unregister_accessories([accessory])
        except (OSError, ValueError) as exc:
            logger.error("Failed to unregister %s: %s", accessory.display_name, exc)
        self._accessories.pop(accessory.uuid, None)
        for unique_id in accessory.devices:
            self._dispatcher.discard(unique_id)
