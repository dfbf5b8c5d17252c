from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable
from typing import Any

import pytest

from tasmobridge.config import get_settings
from tasmobridge.models import Accessory


@pytest.fixture(autouse=True)
def _isolate_settings_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("TASMOBRIDGE_CONFIG", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FakeTimer:
    def __init__(self, when: float, callback: Callable[..., object], args: tuple):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeLoop:
    """Manual clock standing in for the event loop's ``call_later``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[FakeTimer] = []

    def call_later(
        self, delay: float, callback: Callable[..., object], *args: object
    ) -> FakeTimer:
        timer = FakeTimer(self.now + delay, callback, args)
        self.timers.append(timer)
        return timer

    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self.pending() if t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.when)
            self.now = timer.when
            timer.fired = True
            timer.callback(*timer.args)
        self.now = target


class RecordingHost:
    """In-memory host platform recording every call."""

    def __init__(self, cached: list[Accessory] | None = None) -> None:
        self.cached = cached or []
        self.registered: list[Accessory] = []
        self.updated: list[Accessory] = []
        self.unregistered: list[Accessory] = []

    def generate_identity(self, seed: str) -> str:
        return str(uuid.uuid5(uuid.NAMESPACE_OID, seed))

    def load_accessories(self) -> list[Accessory]:
        return list(self.cached)

    def register_accessories(self, accessories: Iterable[Accessory]) -> None:
        self.registered.extend(accessories)

    def update_accessories(self, accessories: Iterable[Accessory]) -> None:
        self.updated.extend(accessories)

    def unregister_accessories(self, accessories: Iterable[Accessory]) -> None:
        self.unregistered.extend(accessories)


@pytest.fixture
def fake_loop() -> FakeLoop:
    return FakeLoop()


@pytest.fixture
def host() -> RecordingHost:
    return RecordingHost()


def plug_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "uniq_id": "A1_relay",
        "name": "Plug",
        "dev": {"ids": ["A1"]},
        "device_type": "switch",
    }
    payload.update(overrides)
    return payload
