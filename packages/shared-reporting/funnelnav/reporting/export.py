"""
Tabular export of attribution decisions.

One row per client: the client's original fields followed by the
attribution columns. Evidence is flattened with a ``details_`` prefix.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import pandas as pd

if TYPE_CHECKING:
    from funnelnav.attribution.report import AttributionReport

ATTRIBUTION_COLUMNS = [
    "attribution_source",
    "attribution_method",
    "attribution_confidence",
    "cross_pipeline_note",
]


def _flatten(row: dict[str, Any]) -> dict[str, Any]:
    details = row.pop("attribution_details", None) or {}
    for key, value in details.items():
        if isinstance(value, dict):
            for sub_key, sub_value in value.items():
                row[f"details_{key}_{sub_key}"] = sub_value
        else:
            row[f"details_{key}"] = value
    return row


def to_dataframe(report: AttributionReport) -> pd.DataFrame:
    """
    Flatten per-client decisions into a DataFrame.

    Args:
        report: Report returned by the attribution engine

    Returns:
        DataFrame with one row per client
    """
    rows = [_flatten(decision.to_dict()) for decision in report.decisions]
    df = pd.DataFrame(rows)
    if df.empty:
        return pd.DataFrame(columns=ATTRIBUTION_COLUMNS)
    return df


def summary_dataframe(report: AttributionReport) -> pd.DataFrame:
    """
    Per-source client counts and revenue.

    Returns:
        DataFrame indexed by source with ``clients`` and ``revenue`` columns
    """
    df = pd.DataFrame(
        {
            "clients": pd.Series(report.attribution_breakdown, dtype="int64"),
            "revenue": pd.Series(report.revenue_breakdown, dtype="float64"),
        }
    )
    df.index.name = "source"
    return df


def export_csv(report: AttributionReport, path: Path | str) -> Path:
    """
    Write per-client decisions to a CSV file.

    Args:
        report: Report returned by the attribution engine
        path: Output file path

    Returns:
        Path of the written file
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    to_dataframe(report).to_csv(path, index=False)
    return path
