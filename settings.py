from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import FrozenSet, Optional

from models.records import SampleQuality


_STORE_PATH_ENV = "READING_STORE_PATH"
_DEFAULT_PERIOD_ENV = "DEFAULT_PERIOD"
_ACCEPTED_QUALITIES_ENV = "AGGREGATE_ACCEPTED_QUALITIES"
_THRESHOLDS_PATH_ENV = "RISK_THRESHOLDS_PATH"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_PERIOD_TOKENS = ("1h", "6h", "24h", "7d", "30d")


@dataclass(frozen=True)
class Settings:
    store_path: Optional[str]
    default_period: str
    accepted_qualities: FrozenSet[SampleQuality]
    thresholds_path: Optional[str]
    log_level: str


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_default_period(default: str) -> str:
    value = os.getenv(_DEFAULT_PERIOD_ENV)
    if value is None:
        return default
    candidate = value.strip().lower()
    return candidate if candidate in _PERIOD_TOKENS else default


def _read_accepted_qualities(default: FrozenSet[SampleQuality]) -> FrozenSet[SampleQuality]:
    value = os.getenv(_ACCEPTED_QUALITIES_ENV)
    if value is None:
        return default
    parsed = set()
    for item in value.split(","):
        candidate = item.strip().lower()
        if not candidate:
            continue
        try:
            parsed.add(SampleQuality(candidate))
        except ValueError:
            return default
    return frozenset(parsed) if parsed else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        store_path=_read_optional_env(_STORE_PATH_ENV, "./tmp/readings.json"),
        default_period=_read_default_period("24h"),
        accepted_qualities=_read_accepted_qualities(frozenset({SampleQuality.ok})),
        thresholds_path=_read_optional_env(_THRESHOLDS_PATH_ENV, None),
        log_level=_read_log_level("INFO"),
    )
