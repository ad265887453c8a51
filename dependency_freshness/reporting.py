"""
Reporting helpers for freshness results.
"""

from __future__ import annotations

import logging
from typing import Iterable

import pandas as pd

from .models import StatRow, StatsReport
from .time_utils import classify_age, humanize_age


logger = logging.getLogger(__name__)

STAT_COLUMNS = [
    "package",
    "is_dev",
    "target_version",
    "max_satisfied_version",
    "max_satisfied_published_at",
    "max_satisfied_age",
    "latest_version",
    "latest_published_at",
    "latest_age",
    "max_satisfied_status",
    "latest_status",
]


def stats_to_dataframe(rows: Iterable[StatRow]) -> pd.DataFrame:
    records = []
    for row in rows:
        record = row.to_dict()
        record["max_satisfied_status"] = classify_age(row.max_satisfied_age).value
        record["latest_status"] = classify_age(row.latest_age).value
        records.append(record)

    df = pd.DataFrame.from_records(records, columns=STAT_COLUMNS)
    for col in ("max_satisfied_published_at", "latest_published_at"):
        df[col] = pd.to_datetime(df[col], utc=True)
    for col in ("max_satisfied_age", "latest_age"):
        df[col] = df[col].astype("int64")
    return df


def log_summary(report: StatsReport) -> None:
    counters = report.counters
    logger.info("=" * 60)
    logger.info("DEPENDENCY FRESHNESS")
    logger.info("=" * 60)
    logger.info(
        "Dependencies: %d (%d dev, %d regular)",
        counters.total, counters.dev, counters.regular,
    )
    logger.info("Resolved: %d", len(report.rows))
    logger.info("Unresolved: %d", len(report.unresolved))
    for item in report.unresolved:
        logger.info("  %s (%s): %s", item.dependency.name, item.dependency.requested_range, item.reason.value)
    if report.rows:
        oldest = max(report.rows, key=lambda row: row.max_satisfied_age)
        logger.info("-" * 60)
        logger.info(
            "Oldest allowed version: %s@%s, published %s ago",
            oldest.package, oldest.max_satisfied_version, humanize_age(oldest.max_satisfied_age),
        )
    logger.info("=" * 60)
