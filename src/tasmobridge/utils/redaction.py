from __future__ import annotations

import string
from dataclasses import dataclass, field


@dataclass
class Redactor:
    enabled: bool = True
    _identifier_map: dict[str, int] = field(default_factory=dict)
    _identifier_counter: int = 0

    def redact_identifier(self, identifier: str) -> str:
        """Mask the device-specific half of a MAC-style identifier.

        The same identifier always maps to the same placeholder so that
        sub-devices of one unit stay recognizable.
        """
        if not self.enabled:
            return identifier
        cleaned = identifier.replace(":", "")
        if len(cleaned) != 12 or not all(ch in string.hexdigits for ch in cleaned):
            return identifier
        counter = self._identifier_map.get(identifier)
        if counter is None:
            self._identifier_counter += 1
            counter = self._identifier_counter
            self._identifier_map[identifier] = counter
        return f"{cleaned[:6].upper()}xxxx{counter:02d}"

    def redact_unique_id(self, unique_id: str) -> str:
        """Redact the identifier prefix of ``<identifier>_<suffix>`` ids."""
        if not self.enabled:
            return unique_id
        identifier, sep, suffix = unique_id.partition("_")
        return f"{self.redact_identifier(identifier)}{sep}{suffix}"
