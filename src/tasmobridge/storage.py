"""Accessory cache: the host platform tasmobridge registers accessories with."""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from tasmobridge.models import Accessory, AccessoryCache

logger = logging.getLogger(__name__)

ACCESSORIES_FILE = "accessories.json"

# uuid5 namespace for accessory identities; changing it orphans every cache
IDENTITY_NAMESPACE = uuid.UUID("6f1b7c3e-2a44-5d8e-9b0a-7c1d2e3f4a5b")


class HostPlatform(Protocol):
    def generate_identity(self, seed: str) -> str: ...

    def load_accessories(self) -> list[Accessory]: ...

    def register_accessories(self, accessories: Iterable[Accessory]) -> None: ...

    def update_accessories(self, accessories: Iterable[Accessory]) -> None: ...

    def unregister_accessories(self, accessories: Iterable[Accessory]) -> None: ...


class AccessoryStore:
    """JSON-file backed accessory cache.

    Registered accessories survive restarts; ``load_accessories`` hands them
    back at startup so they can be restored before discovery begins.
    """

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = data_dir
        self._path = data_dir / ACCESSORIES_FILE
        self._accessories: dict[str, Accessory] = {}

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    @property
    def accessories_path(self) -> Path:
        return self._path

    def generate_identity(self, seed: str) -> str:
        return str(uuid.uuid5(IDENTITY_NAMESPACE, seed))

    def load_accessories(self) -> list[Accessory]:
        if not self._path.exists():
            self._accessories = {}
            return []

        try:
            with self._path.open("r") as handle:
                data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ValueError(
                f"Invalid JSON in accessory cache: {self._path}\n{exc}"
            ) from exc

        try:
            cache = AccessoryCache.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid accessory cache: {self._path}\n{exc}") from exc

        self._accessories = {item.uuid: item for item in cache.accessories}
        return list(self._accessories.values())

    def register_accessories(self, accessories: Iterable[Accessory]) -> None:
        added = list(accessories)
        for accessory in added:
            if accessory.uuid in self._accessories:
                raise ValueError(
                    f"Accessory {accessory.display_name} ({accessory.uuid}) "
                    "is already registered"
                )
        for accessory in added:
            self._accessories[accessory.uuid] = accessory
        try:
            self._save()
        except OSError:
            for accessory in added:
                del self._accessories[accessory.uuid]
            raise
        for accessory in added:
            logger.debug("Registered accessory %s", accessory.display_name)

    def update_accessories(self, accessories: Iterable[Accessory]) -> None:
        for accessory in accessories:
            self._accessories[accessory.uuid] = accessory
        self._save()

    def unregister_accessories(self, accessories: Iterable[Accessory]) -> None:
        for accessory in accessories:
            if self._accessories.pop(accessory.uuid, None) is not None:
                logger.debug("Unregistered accessory %s", accessory.display_name)
        self._save()

    def _save(self) -> None:
        cache = AccessoryCache(
            accessories=sorted(self._accessories.values(), key=lambda a: a.uuid)
        )
        self._data_dir.mkdir(parents=True, exist_ok=True)
        with self._path.open("w") as handle:
            json.dump(cache.model_dump(mode="json"), handle, indent=2)
