"""Exceptions raised by the aggregation and classification services."""

from __future__ import annotations


class MonitoringError(ValueError):
    """Base class for caller-correctable monitoring errors."""


class InvalidWindowSpec(MonitoringError):
    """Raised for unknown period tokens or empty/inverted explicit bounds."""


class InvalidMetric(MonitoringError):
    """Raised when a non-finite metric reaches the risk classifier."""


class InvalidThresholdTable(MonitoringError):
    """Raised when a threshold table is not strictly increasing or not total."""


class UnknownRiskLabel(MonitoringError):
    """Raised when an external risk label has no canonical counterpart."""
