from __future__ import annotations

import logging
from typing import Any

import pytest
from conftest import FakeLoop, RecordingHost, plug_payload

from tasmobridge.core import AccessoryRegistry, ServiceDispatcher
from tasmobridge.errors import MalformedDiscoveryError
from tasmobridge.models import Accessory, DeviceType, DiscoveryMessage
from tasmobridge.services import SwitchService

DAY = 24 * 3600


@pytest.fixture
def registry(host: RecordingHost, fake_loop: FakeLoop) -> AccessoryRegistry:
    return AccessoryRegistry(host, DAY, loop=fake_loop)


def test_first_discovery_registers_accessory(
    registry: AccessoryRegistry, host: RecordingHost
):
    resolution = registry.handle_discovery(plug_payload(), session="mqtt")

    assert resolution is not None
    assert resolution.is_new
    accessory = resolution.accessory
    assert accessory.uuid == host.generate_identity("A1")
    assert accessory.display_name == "Plug"
    assert accessory.session == "mqtt"
    assert accessory.devices["A1_relay"].device_type == "switch"
    assert host.registered == [accessory]
    assert host.updated == []
    assert registry.accessories == [accessory]
    assert isinstance(registry.dispatcher.get("A1_relay"), SwitchService)


def test_repeated_discovery_updates_and_refreshes(
    registry: AccessoryRegistry, host: RecordingHost
):
    first = registry.handle_discovery(plug_payload(), session="s1")
    handler = registry.dispatcher.get("A1_relay")
    second = registry.handle_discovery(plug_payload(), session="s2")

    assert first is not None and second is not None
    assert not second.is_new
    assert second.accessory is first.accessory
    assert second.accessory.session == "s2"
    assert registry.dispatcher.get("A1_relay") is handler
    assert len(host.registered) == 1
    assert host.updated == [first.accessory]


def test_many_messages_register_exactly_once(
    registry: AccessoryRegistry, host: RecordingHost
):
    payloads = [
        plug_payload(uniq_id=f"A1_relay{index % 3}", name=f"Relay {index}")
        for index in range(10)
    ]

    results = [registry.handle_discovery(payload) for payload in payloads]

    assert [r.is_new for r in results if r] == [True] + [False] * 9
    assert len(host.registered) == 1
    assert len(host.updated) == 9
    assert len(registry.accessories) == 1
    assert set(registry.accessories[0].devices) == {
        "A1_relay0",
        "A1_relay1",
        "A1_relay2",
    }
    assert len(registry.dispatcher) == 3


def test_one_handler_per_sub_device():
    constructed: list[str] = []

    class RecordingHandler:
        def __init__(self, session, accessory, unique_id):
            constructed.append(unique_id)
            self.refreshes = 0

        def refresh(self, session=None):
            self.refreshes += 1

    dispatcher = ServiceDispatcher({DeviceType.SWITCH: RecordingHandler})
    registry = AccessoryRegistry(RecordingHost(), DAY, dispatcher, loop=FakeLoop())

    for _ in range(4):
        registry.handle_discovery(plug_payload())

    assert constructed == ["A1_relay"]
    handler = dispatcher.get("A1_relay")
    assert handler is not None
    assert handler.refreshes == 3


def test_message_overwrites_previous_sub_device_entry(registry: AccessoryRegistry):
    registry.handle_discovery(plug_payload(name="Old"))
    resolution = registry.handle_discovery(plug_payload(name="New"))

    assert resolution is not None
    assert resolution.accessory.devices["A1_relay"].name == "New"


def test_separate_units_get_separate_accessories(
    registry: AccessoryRegistry, host: RecordingHost
):
    registry.handle_discovery(plug_payload())
    registry.handle_discovery(plug_payload(uniq_id="B2_relay", dev={"ids": ["B2"]}))

    assert len(host.registered) == 2
    assert len(registry.accessories) == 2


def test_missing_identifiers_is_malformed(
    registry: AccessoryRegistry, host: RecordingHost
):
    message = DiscoveryMessage.from_payload({"unique_id": "A1_relay", "device": {}})

    with pytest.raises(MalformedDiscoveryError):
        registry.resolve(message)

    assert host.registered == []
    assert registry.accessories == []
    assert len(registry.dispatcher) == 0


@pytest.mark.parametrize(
    "payload",
    [
        {"uniq_id": "A1_relay", "name": "Plug", "device_type": "switch"},
        {"uniq_id": "A1_relay", "dev": {"ids": []}},
        {"name": "Plug", "dev": {"ids": ["A1"]}},
        {"uniq_id": "A1_relay", "dev": {"ids": "A1"}},
    ],
)
def test_malformed_payload_is_dropped(
    payload, registry: AccessoryRegistry, host: RecordingHost, caplog
):
    with caplog.at_level(logging.WARNING, logger="tasmobridge.core.registry"):
        assert registry.handle_discovery(payload) is None

    assert "Dropping discovery message" in caplog.text
    assert host.registered == []
    assert registry.accessories == []
    assert registry.scheduler.timers == {}


def test_malformed_message_does_not_stop_pipeline(
    registry: AccessoryRegistry, host: RecordingHost
):
    registry.handle_discovery({"uniq_id": "broken"})
    resolution = registry.handle_discovery(plug_payload())

    assert resolution is not None and resolution.is_new
    assert len(host.registered) == 1


def test_non_mapping_payload_is_dropped(registry: AccessoryRegistry):
    payload: Any = ["not", "an", "object"]

    assert registry.handle_discovery(payload) is None


def test_unknown_device_type_still_updates_registry(
    registry: AccessoryRegistry, host: RecordingHost, caplog
):
    with caplog.at_level(logging.WARNING):
        resolution = registry.handle_discovery(plug_payload(device_type="fan"))

    assert resolution is not None and resolution.is_new
    assert registry.dispatcher.get("A1_relay") is None
    assert host.registered == [resolution.accessory]
    assert "Unhandled Tasmota device type" in caplog.text


def test_insecure_topic_still_registers(
    registry: AccessoryRegistry, host: RecordingHost, caplog
):
    with caplog.at_level(logging.WARNING):
        resolution = registry.handle_discovery(
            plug_payload(stat_t="sonoff/tele/STATE")
        )

    assert resolution is not None and resolution.is_new
    assert resolution.accessory.devices["A1_relay"].state_topic == "sonoff/tele/STATE"
    assert "incorrectly configured" in caplog.text


def test_every_resolve_rearms_timer(
    registry: AccessoryRegistry, fake_loop: FakeLoop
):
    first = registry.handle_discovery(plug_payload())
    assert first is not None
    first_slot = first.accessory.timer_slot

    registry.handle_discovery(plug_payload())

    assert first.accessory.timer_slot != first_slot
    assert fake_loop.timers[0].cancelled
    assert len(fake_loop.pending()) == 1


def test_silent_accessory_is_evicted_once(
    registry: AccessoryRegistry, host: RecordingHost, fake_loop: FakeLoop
):
    resolution = registry.handle_discovery(plug_payload())
    assert resolution is not None

    fake_loop.advance(DAY)
    fake_loop.advance(DAY * 3)

    assert host.unregistered == [resolution.accessory]
    assert registry.accessories == []
    assert registry.dispatcher.get("A1_relay") is None


def test_announcement_before_deadline_prevents_eviction(
    registry: AccessoryRegistry, host: RecordingHost, fake_loop: FakeLoop
):
    registry.handle_discovery(plug_payload())

    fake_loop.advance(DAY - 1)
    registry.handle_discovery(plug_payload())
    fake_loop.advance(1)

    assert host.unregistered == []
    assert len(registry.accessories) == 1


def test_evicted_device_registers_again_on_return(
    registry: AccessoryRegistry, host: RecordingHost, fake_loop: FakeLoop
):
    registry.handle_discovery(plug_payload())
    fake_loop.advance(DAY)

    resolution = registry.handle_discovery(plug_payload())

    assert resolution is not None and resolution.is_new
    assert len(host.registered) == 2


def test_restored_accessory_is_updated_not_registered(
    registry: AccessoryRegistry, host: RecordingHost, fake_loop: FakeLoop
):
    cached = Accessory(display_name="Plug", uuid=host.generate_identity("A1"))
    registry.configure_accessory(cached)

    assert cached.timer_slot is not None
    assert len(fake_loop.pending()) == 1

    resolution = registry.handle_discovery(plug_payload(), session="mqtt")

    assert resolution is not None
    assert not resolution.is_new
    assert resolution.accessory is cached
    assert host.registered == []
    assert host.updated == [cached]
    assert isinstance(registry.dispatcher.get("A1_relay"), SwitchService)


def test_restored_accessory_that_never_returns_is_reaped(
    registry: AccessoryRegistry, host: RecordingHost, fake_loop: FakeLoop
):
    cached = Accessory(display_name="Ghost", uuid="uuid-ghost")
    registry.configure_accessory(cached)

    fake_loop.advance(DAY)

    assert host.unregistered == [cached]
    assert registry.get("uuid-ghost") is None


def test_close_stops_all_timers(
    registry: AccessoryRegistry, host: RecordingHost, fake_loop: FakeLoop
):
    registry.handle_discovery(plug_payload())
    registry.close()

    fake_loop.advance(DAY * 2)

    assert host.unregistered == []


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": None},
        {"name": 7},
        {"pl_on": 1, "pl_off": 0},
        {"dev": {"ids": [123456], "sw": 9.1}},
        {"dev_cla": None, "stat_t": None},
    ],
)
def test_loose_field_types_still_register(
    overrides, registry: AccessoryRegistry, host: RecordingHost
):
    resolution = registry.handle_discovery(plug_payload(**overrides))

    assert resolution is not None and resolution.is_new
    assert host.registered == [resolution.accessory]
    assert "A1_relay" in resolution.accessory.devices


def test_numeric_fields_keep_their_values(registry: AccessoryRegistry):
    resolution = registry.handle_discovery(
        plug_payload(name=None, pl_on=1, dev={"ids": [123456]})
    )

    assert resolution is not None
    message = resolution.accessory.devices["A1_relay"]
    assert message.identity == "123456"
    assert message.payload_on == 1
    assert resolution.accessory.display_name == "123456"
    handler = registry.dispatcher.get("A1_relay")
    assert isinstance(handler, SwitchService)
    assert handler.payload_on == "1"


class FailingHost(RecordingHost):
    def __init__(self, fail_on: str) -> None:
        super().__init__()
        self.fail_on = fail_on

    def register_accessories(self, accessories):
        if self.fail_on == "register":
            raise OSError("disk full")
        super().register_accessories(accessories)

    def update_accessories(self, accessories):
        if self.fail_on == "update":
            raise OSError("disk full")
        super().update_accessories(accessories)

    def unregister_accessories(self, accessories):
        if self.fail_on == "unregister":
            raise OSError("disk full")
        super().unregister_accessories(accessories)


def test_failed_update_is_contained(fake_loop: FakeLoop, caplog):
    host = FailingHost("update")
    registry = AccessoryRegistry(host, DAY, loop=fake_loop)
    registry.handle_discovery(plug_payload(name="Old"))

    with caplog.at_level(logging.ERROR, logger="tasmobridge.core.registry"):
        assert registry.handle_discovery(plug_payload(name="New")) is None

    assert "disk full" in caplog.text
    accessory = registry.accessories[0]
    assert accessory.devices["A1_relay"].name == "New"
    assert len(fake_loop.pending()) == 1


def test_failed_registration_leaves_nothing_behind(fake_loop: FakeLoop):
    host = FailingHost("register")
    registry = AccessoryRegistry(host, DAY, loop=fake_loop)

    assert registry.handle_discovery(plug_payload()) is None

    assert registry.accessories == []
    assert len(registry.dispatcher) == 0
    assert registry.scheduler.timers == {}
    assert fake_loop.pending() == []

    host.fail_on = ""
    resolution = registry.handle_discovery(plug_payload())

    assert resolution is not None and resolution.is_new
    assert host.registered == [resolution.accessory]


def test_failed_unregister_still_evicts(fake_loop: FakeLoop, caplog):
    host = FailingHost("unregister")
    registry = AccessoryRegistry(host, DAY, loop=fake_loop)
    registry.handle_discovery(plug_payload())

    with caplog.at_level(logging.ERROR, logger="tasmobridge.core.registry"):
        fake_loop.advance(DAY)

    assert "Failed to unregister" in caplog.text
    assert registry.accessories == []
    assert registry.dispatcher.get("A1_relay") is None
