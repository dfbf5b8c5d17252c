"""Expiry timers for accessories that stop announcing themselves."""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Callable
from typing import Protocol

from tasmobridge.models import Accessory

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class TimerLoop(Protocol):
    def call_later(
        self, delay: float, callback: Callable[..., object], *args: object
    ) -> TimerHandle: ...


class ExpiryScheduler:
    """One cancellable expiry timer per accessory.

    Every ``arm`` mints a fresh slot id and cancels the accessory's previous
    slot, so a stale slot can never cancel or fire in place of a newer one.
    Fired slots stay in the table as ``None``; cancelled slots are removed.

    Timers run on the event loop that delivers discovery messages, and are
    only touched from that loop.
    """

    def __init__(
        self,
        timeout: float,
        on_expire: Callable[[Accessory], None],
        loop: TimerLoop | None = None,
    ) -> None:
        self._timeout = timeout
        self._on_expire = on_expire
        self._loop = loop
        self._slots = itertools.count(1)
        self._timers: dict[int, TimerHandle | None] = {}

    @property
    def timeout(self) -> float:
        """Seconds of silence before an accessory expires."""
        return self._timeout

    @property
    def timers(self) -> dict[int, TimerHandle | None]:
        return self._timers

    def _get_loop(self) -> TimerLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def arm(self, accessory: Accessory) -> int:
        """Start a new expiry window for ``accessory`` and return its slot id."""
        self.cancel(accessory)

        slot = next(self._slots)
        self._timers[slot] = self._get_loop().call_later(
            self._timeout, self.expire, accessory, slot
        )
        accessory.timer_slot = slot
        logger.debug(
            "Armed expiry slot %d for %s (%.0fs)",
            slot,
            accessory.display_name,
            self._timeout,
        )
        return slot

    def rearm(self, accessory: Accessory) -> int:
        """Cancel the running window of ``accessory`` and start over."""
        return self.arm(accessory)

    def cancel(self, accessory: Accessory) -> None:
        slot = accessory.timer_slot
        if slot is None:
            return
        handle = self._timers.pop(slot, None)
        if handle is not None:
            handle.cancel()
        accessory.timer_slot = None

    def expire(self, accessory: Accessory, slot: int) -> None:
        """Timer callback; ignored unless ``slot`` is still live."""
        if self._timers.get(slot) is None:
            return

        logger.error("Removing %s", accessory.display_name)
        self._timers[slot] = None
        if accessory.timer_slot == slot:
            accessory.timer_slot = None
        self._on_expire(accessory)

    def close(self) -> None:
        """Cancel every live timer."""
        for slot, handle in self._timers.items():
            if handle is not None:
                handle.cancel()
                self._timers[slot] = None
        logger.debug("Expiry scheduler closed")
