"""Discovery payload normalization.

Tasmota firmware announces its entities with Home Assistant discovery
payloads, but different releases use different spellings: abbreviated keys
(``uniq_id``, ``dev``, ``stat_t``), long keys (``unique_id``), and a ``~``
base topic that the other topic fields refer to. Everything downstream works
on the long-key form with ``~`` expanded.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)

PLACEHOLDER_KEY = "~"

KEY_TRANSLATION: dict[str, str] = {
    "uniq_id": "unique_id",
    "dev_cla": "device_class",
    "pl_on": "payload_on",
    "pl_off": "payload_off",
    "dev": "device",
    "mdl": "model",
    "sw": "sw_version",
    "mf": "manufacturer",
    "ids": "identifiers",
    "stat_t": "state_topic",
    "cmd_t": "command_topic",
    "avty_t": "availability_topic",
    "pl_avail": "payload_available",
    "pl_not_avail": "payload_not_available",
    "val_tpl": "value_template",
    "unit_of_meas": "unit_of_measurement",
    "json_attr_t": "json_attributes_topic",
    "json_attr_tpl": "json_attributes_template",
    "bri_cmd_t": "brightness_command_topic",
    "bri_stat_t": "brightness_state_topic",
    "bri_scl": "brightness_scale",
    "bri_val_tpl": "brightness_value_template",
    "clrm_cmd_t": "color_mode_command_topic",
    "clrm_stat_t": "color_mode_state_topic",
    "rgb_cmd_t": "rgb_command_topic",
    "rgb_stat_t": "rgb_state_topic",
    "clr_temp_cmd_t": "color_temp_command_topic",
    "clr_temp_stat_t": "color_temp_state_topic",
    "fx_cmd_t": "effect_command_topic",
    "fx_list": "effect_list",
    "opt": "optimistic",
    "frc_upd": "force_update",
    "ic": "icon",
    "cns": "connections",
    "stat_val_tpl": "state_value_template",
    "stat_on": "state_on",
    "stat_off": "state_off",
    "pl_prs": "payload_press",
    "off_dly": "off_delay",
    "exp_aft": "expire_after",
    "ret": "retain",
}

# Firmware defaults shared by every unflashed unit, so several devices end up
# reporting on the same topic.
INSECURE_STATE_TOPICS = frozenset({"sonoff/tele/STATE", "tasmota/tele/STATE"})


def rename_keys(node: Any, table: Mapping[str, str] = KEY_TRANSLATION) -> Any:
    """Return a copy of ``node`` with mapping keys translated through ``table``.

    Mappings and lists are walked recursively; scalars are returned as-is.
    Shared and cyclic substructures are copied once.
    """
    memo: dict[int, Any] = {}

    def _walk(value: Any) -> Any:
        if isinstance(value, Mapping):
            if id(value) in memo:
                return memo[id(value)]
            result: dict[str, Any] = {}
            memo[id(value)] = result
            for key, item in value.items():
                result[table.get(key, key)] = _walk(item)
            return result
        if isinstance(value, list):
            if id(value) in memo:
                return memo[id(value)]
            items: list[Any] = []
            memo[id(value)] = items
            items.extend(_walk(item) for item in value)
            return items
        return value

    return _walk(node)


def replace_placeholder(
    node: Mapping[str, Any], token: str, value: str
) -> dict[str, Any]:
    """Replace ``token`` case-insensitively in every string of ``node``.

    Nested mappings are visited, list values are carried over untouched.
    """
    pattern = re.compile(re.escape(token), re.IGNORECASE)
    memo: dict[int, dict[str, Any]] = {}

    def _walk(mapping: Mapping[str, Any]) -> dict[str, Any]:
        if id(mapping) in memo:
            return memo[id(mapping)]
        result: dict[str, Any] = {}
        memo[id(mapping)] = result
        for key, item in mapping.items():
            if isinstance(item, str):
                # callable replacement, so backslashes in value stay literal
                result[key] = pattern.sub(lambda _match: value, item)
            elif isinstance(item, Mapping):
                result[key] = _walk(item)
            else:
                result[key] = item
        return result

    return _walk(node)


def normalize_message(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Translate a raw discovery payload into the canonical key set.

    The input is not modified. A declared ``~`` value is substituted into all
    string fields. An insecure default state topic is reported but does not
    stop normalization.
    """
    message: dict[str, Any] = rename_keys(raw)

    placeholder = message.get(PLACEHOLDER_KEY)
    if placeholder:
        message = replace_placeholder(message, PLACEHOLDER_KEY, str(placeholder))

    if message.get("state_topic") in INSECURE_STATE_TOPICS:
        logger.warning(
            "%s has an incorrectly configured MQTT topic '%s', please make it unique",
            message.get("name", "<unnamed>"),
            message["state_topic"],
        )

    return message
