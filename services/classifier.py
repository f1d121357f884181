"""Threshold-based flood risk classification."""

from __future__ import annotations

import json
import math
from bisect import bisect_right
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple, Type

from services.errors import InvalidMetric, InvalidThresholdTable, UnknownRiskLabel
from settings import get_settings


class RiskLevel(str, Enum):
    """Canonical ordered risk scale, lowest severity first."""

    low = "low"
    moderate = "moderate"
    high = "high"
    extreme = "extreme"

    @property
    def rank(self) -> int:
        return _RANKS[self]


_RANKS: Dict[RiskLevel, int] = {level: index for index, level in enumerate(RiskLevel)}


@dataclass(frozen=True)
class RiskStyle:
    label: str
    color: str


_STYLES: Dict[RiskLevel, RiskStyle] = {
    RiskLevel.low: RiskStyle(label="Low risk", color="#22c55e"),
    RiskLevel.moderate: RiskStyle(label="Moderate risk", color="#eab308"),
    RiskLevel.high: RiskStyle(label="High risk", color="#f97316"),
    RiskLevel.extreme: RiskStyle(label="Extreme risk", color="#ef4444"),
}


def level_style(level: RiskLevel) -> RiskStyle:
    """Display label and legend color for ``level``."""
    return _STYLES[RiskLevel(level)]


class ThresholdTable:
    """Ordered ``(upper_bound, level)`` pairs; the last bound is unbounded.

    A metric belongs to the first level whose upper bound is strictly greater
    than it, so a value sitting exactly on a bound is reported at the higher
    level. ``scale`` is the ordered enum the levels are drawn from.
    """

    __slots__ = ("_bounds", "_levels", "_scale")

    def __init__(
        self,
        pairs: Iterable[Tuple[float, Enum]],
        scale: Type[Enum] = RiskLevel,
    ) -> None:
        order = {level: index for index, level in enumerate(scale)}
        bounds: list[float] = []
        levels: list[Enum] = []
        for bound, level in pairs:
            bound = float(bound)
            if math.isnan(bound):
                raise InvalidThresholdTable("Threshold bounds must be numbers.")
            try:
                level = scale(level)
            except ValueError as exc:
                raise InvalidThresholdTable(f"Unknown {scale.__name__} {level!r}.") from exc
            if bounds and bound <= bounds[-1]:
                raise InvalidThresholdTable("Threshold bounds must be strictly increasing.")
            if levels and order[level] <= order[levels[-1]]:
                raise InvalidThresholdTable("Threshold levels must increase in severity.")
            bounds.append(bound)
            levels.append(level)

        if not bounds:
            raise InvalidThresholdTable("Threshold table must not be empty.")
        if bounds[-1] != math.inf:
            raise InvalidThresholdTable("The last threshold must be unbounded.")

        self._bounds: Tuple[float, ...] = tuple(bounds)
        self._levels: Tuple[Enum, ...] = tuple(levels)
        self._scale = scale

    @property
    def pairs(self) -> Tuple[Tuple[float, Enum], ...]:
        return tuple(zip(self._bounds, self._levels))

    def classify(self, metric: float) -> RiskLevel:
        return classify(metric, self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ThresholdTable):
            return NotImplemented
        return self.pairs == other.pairs

    def __hash__(self) -> int:
        return hash(self.pairs)

    def __repr__(self) -> str:
        return f"ThresholdTable({list(self.pairs)!r})"


def classify(metric: float, thresholds: ThresholdTable) -> RiskLevel:
    """Map ``metric`` to a risk level; non-finite input raises ``InvalidMetric``."""
    try:
        value = float(metric)
    except (TypeError, ValueError) as exc:
        raise InvalidMetric(f"Risk metric must be a number, got {metric!r}.") from exc
    if not math.isfinite(value):
        raise InvalidMetric(f"Risk metric must be finite, got {value!r}.")
    index = bisect_right(thresholds._bounds, value)
    return thresholds._levels[index]


# Water level in metres, rainfall in millimetres, flood probability in [0, 1].
DEFAULT_THRESHOLDS: Dict[str, ThresholdTable] = {
    "water_level": ThresholdTable(
        [
            (1.8, RiskLevel.low),
            (2.0, RiskLevel.moderate),
            (2.5, RiskLevel.high),
            (math.inf, RiskLevel.extreme),
        ]
    ),
    "rainfall": ThresholdTable(
        [
            (5.0, RiskLevel.low),
            (10.0, RiskLevel.moderate),
            (20.0, RiskLevel.high),
            (math.inf, RiskLevel.extreme),
        ]
    ),
    "flood_probability": ThresholdTable(
        [
            (0.15, RiskLevel.low),
            (0.3, RiskLevel.moderate),
            (0.7, RiskLevel.high),
            (math.inf, RiskLevel.extreme),
        ]
    ),
}


class AlertLevel(str, Enum):
    """Public warning stage raised from a flood probability."""

    none = "none"
    watch = "watch"
    warning = "warning"
    emergency = "emergency"


# Flood probability in [0, 1]; shares the strict upper bound of the risk tables.
ALERT_THRESHOLDS = ThresholdTable(
    [
        (0.2, AlertLevel.none),
        (0.4, AlertLevel.watch),
        (0.7, AlertLevel.warning),
        (math.inf, AlertLevel.emergency),
    ],
    scale=AlertLevel,
)


def classify_alert(probability: float, thresholds: ThresholdTable = ALERT_THRESHOLDS) -> AlertLevel:
    level = classify(probability, thresholds)
    if not 0.0 <= float(probability) <= 1.0:
        raise InvalidMetric(f"Flood probability must lie in [0, 1], got {probability!r}.")
    return AlertLevel(level)


def parse_threshold_tables(payload: Mapping[str, Sequence[Sequence[object]]]) -> Dict[str, ThresholdTable]:
    """Build tables from ``{"kind": [[bound, "level"], ...]}``; a null bound is unbounded."""
    tables: Dict[str, ThresholdTable] = {}
    for kind, rows in payload.items():
        pairs = []
        for row in rows:
            if len(row) != 2:
                raise InvalidThresholdTable(
                    f"Threshold rows for {kind!r} must be [bound, level] pairs."
                )
            bound, level = row
            pairs.append((math.inf if bound is None else float(bound), level))
        tables[kind] = ThresholdTable(pairs)
    return tables


def load_threshold_tables(path: Path) -> Dict[str, ThresholdTable]:
    """Read threshold overrides from ``path`` merged over the defaults."""
    try:
        payload = json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise InvalidThresholdTable(f"Threshold file {path} is not valid JSON.") from exc
    if not isinstance(payload, dict):
        raise InvalidThresholdTable(f"Threshold file {path} must contain an object.")
    tables = dict(DEFAULT_THRESHOLDS)
    tables.update(parse_threshold_tables(payload))
    return tables


@lru_cache
def build_default_thresholds(path: Optional[str] = None) -> Mapping[str, ThresholdTable]:
    settings = get_settings()
    source = settings.thresholds_path if path is None else path
    if not source:
        return MappingProxyType(dict(DEFAULT_THRESHOLDS))
    return MappingProxyType(load_threshold_tables(Path(source)))


# External label sets found on stored predictions, forecasts and barangays.
_INBOUND_VOCABULARIES: Dict[str, Dict[str, RiskLevel]] = {
    "prediction": {
        "none": RiskLevel.low,
        "low": RiskLevel.low,
        "moderate": RiskLevel.moderate,
        "high": RiskLevel.high,
        "critical": RiskLevel.extreme,
    },
    "forecast": {
        "low": RiskLevel.low,
        "moderate": RiskLevel.moderate,
        "high": RiskLevel.high,
        "severe": RiskLevel.high,
        "extreme": RiskLevel.extreme,
    },
    "barangay": {
        "low": RiskLevel.low,
        "moderate": RiskLevel.moderate,
        "high": RiskLevel.high,
        "very_high": RiskLevel.extreme,
    },
}

_OUTBOUND_VOCABULARIES: Dict[str, Dict[RiskLevel, str]] = {
    "prediction": {
        RiskLevel.low: "low",
        RiskLevel.moderate: "moderate",
        RiskLevel.high: "high",
        RiskLevel.extreme: "critical",
    },
    "forecast": {
        RiskLevel.low: "low",
        RiskLevel.moderate: "moderate",
        RiskLevel.high: "high",
        RiskLevel.extreme: "extreme",
    },
    "barangay": {
        RiskLevel.low: "low",
        RiskLevel.moderate: "moderate",
        RiskLevel.high: "high",
        RiskLevel.extreme: "very_high",
    },
}

VOCABULARIES: Tuple[str, ...] = tuple(_INBOUND_VOCABULARIES)


def from_vocabulary(label: str, vocabulary: str) -> RiskLevel:
    """Translate an external risk label into the canonical scale."""
    mapping = _INBOUND_VOCABULARIES.get(vocabulary)
    if mapping is None:
        raise UnknownRiskLabel(f"Unknown risk vocabulary {vocabulary!r}.")
    level = mapping.get(label.strip().lower())
    if level is None:
        raise UnknownRiskLabel(
            f"Label {label!r} is not part of the {vocabulary!r} vocabulary."
        )
    return level


def to_vocabulary(level: RiskLevel, vocabulary: str) -> str:
    """Translate a canonical level into an external vocabulary's label."""
    mapping = _OUTBOUND_VOCABULARIES.get(vocabulary)
    if mapping is None:
        raise UnknownRiskLabel(f"Unknown risk vocabulary {vocabulary!r}.")
    return mapping[RiskLevel(level)]


def at_or_above(level: Optional[RiskLevel], minimum: RiskLevel) -> bool:
    if level is None:
        return False
    return RiskLevel(level).rank >= RiskLevel(minimum).rank


@dataclass(frozen=True)
class RiskSummary:
    counts: Dict[RiskLevel, int] = field(default_factory=dict)
    highest: Optional[RiskLevel] = None


def summarize_levels(levels: Iterable[Optional[RiskLevel]]) -> RiskSummary:
    """Count levels per severity and report the most severe one seen.

    ``None`` entries stand for locations without data and are skipped.
    """
    counts = {level: 0 for level in RiskLevel}
    highest: Optional[RiskLevel] = None
    for level in levels:
        if level is None:
            continue
        level = RiskLevel(level)
        counts[level] += 1
        if highest is None or level.rank > highest.rank:
            highest = level
    return RiskSummary(counts=counts, highest=highest)
