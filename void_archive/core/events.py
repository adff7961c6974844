from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any


class GameEventType(StrEnum):
    # Act 1
    elara_first_contact = "elara_first_contact"
    hidden_directory_found = "hidden_directory_found"
    system_log_read = "system_log_read"
    secure_directory_accessed = "secure_directory_accessed"

    # Act 2 (reserved)
    logic_seal_broken = "logic_seal_broken"
    data_seal_broken = "data_seal_broken"
    power_seal_broken = "power_seal_broken"

    # Act 3 (reserved)
    elara_revealed = "elara_revealed"
    final_choice = "final_choice"


@dataclass(frozen=True, slots=True)
class GameEvent:
    type: GameEventType
    data: dict[str, Any] = field(default_factory=dict)
    ts: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @staticmethod
    def now(*, type: GameEventType, data: dict[str, Any] | None = None) -> "GameEvent":
        return GameEvent(type=type, data=dict(data or {}), ts=datetime.now(timezone.utc))
