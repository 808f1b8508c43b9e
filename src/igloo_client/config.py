from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path.home() / ".igloo_client.json"


@dataclass
class IglooConfig:
    initial_check_delay_s: float = 5.0
    check_interval_s: float = 30.0
    daily_rent: int = 10_000
    minimum_balance_to_rent: int = 70_000
    grace_period_hours: int = 12
    total_igloos: int = 10
    reserved_igloo_ids: List[str] = field(default_factory=lambda: ["igloo3", "igloo8"])
    rentable_igloo_ids: List[str] = field(
        default_factory=lambda: [
            "igloo1",
            "igloo2",
            "igloo4",
            "igloo5",
            "igloo6",
            "igloo7",
            "igloo9",
            "igloo10",
        ]
    )

    def __post_init__(self) -> None:
        if self.initial_check_delay_s < 0 or self.check_interval_s <= 0:
            raise ValueError("eligibility check delays must be positive")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "IglooConfig":
        """Build a config from known keys in ``data``, ignoring the rest."""

        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})

    def is_reserved(self, space_id: str) -> bool:
        return space_id in self.reserved_igloo_ids

    def is_rentable(self, space_id: str) -> bool:
        return space_id in self.rentable_igloo_ids


def load_settings(path: Path | str = DEFAULT_CONFIG_FILE) -> Dict[str, Any]:
    """Read the igloo client JSON file; a missing, unreadable or non-object file yields ``{}``."""

    settings_path = Path(path).expanduser()
    try:
        raw = settings_path.read_text(encoding="utf-8")
        data = json.loads(raw)
    except (OSError, json.JSONDecodeError) as exc:
        logger.debug("ignoring igloo settings at %s: %s", settings_path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def load_config(path: Path | str = DEFAULT_CONFIG_FILE) -> IglooConfig:
    return IglooConfig.from_mapping(load_settings(path))
