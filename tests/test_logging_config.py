from __future__ import annotations

import logging

from logging_config import ContextualFormatter
from services.classifier import RiskLevel


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="services.monitoring",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Computed barangay risk",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_known_context() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    line = formatter.format(
        _record(barangay="Tumana", risk_level=RiskLevel.high, unrelated="x", sensor_id=None)
    )

    assert line == "Computed barangay risk | barangay=Tumana risk_level=high"


def test_formatter_without_context_leaves_message() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    assert formatter.format(_record()) == "Computed barangay risk"
