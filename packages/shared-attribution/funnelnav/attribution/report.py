"""
Report aggregation - summarize per-client decisions.

Counts and revenue are computed from the returned decision list only; the
aggregator keeps no state between runs.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from funnelnav.attribution.schema import (
    AttributionDecision,
    AttributionMethod,
    AttributionSource,
    EmailEvidence,
)

logger = logging.getLogger(__name__)

METHODOLOGY = [
    "Waterfall attribution with pipeline-specific timing analysis",
    "Cross-pipeline timing checks prevent double attribution",
    "V1/V2 statistics → Email Outreach - Old Method",
    "V3 statistics → Email Outreach - New Method",
    "Instagram attribution with Spotify ID matching",
    "Audit attribution with timing validation",
    "Invitation code matching as fallback for email outreach",
]


@dataclass
class AttributionReport:
    """Aggregate result of one attribution run."""

    processing_date: datetime
    total_clients: int
    attributed_clients: int
    attribution_rate: float  # 0.0 - 1.0
    attribution_breakdown: dict[str, int]
    revenue_breakdown: dict[str, float]
    decisions: list[AttributionDecision] = field(default_factory=list)
    data_sources_summary: dict[str, int] = field(default_factory=dict)
    variant_breakdown: dict[str, int] = field(default_factory=dict)
    cross_pipeline_overrides: int = 0
    funnel_metrics: dict[str, Any] = field(default_factory=dict)

    @property
    def unattributed_clients(self) -> int:
        """Return the number of clients with no attribution."""
        return self.attribution_breakdown.get(AttributionSource.UNATTRIBUTED.value, 0)

    @property
    def attribution_rate_display(self) -> str:
        """Return the rate as a percentage string, e.g. ``"71.7%"``."""
        return f"{self.attribution_rate * 100:.1f}%"

    @property
    def total_revenue(self) -> float:
        """Return revenue summed over all sources."""
        return sum(self.revenue_breakdown.values())

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "processing_date": self.processing_date.isoformat(),
            "total_clients": self.total_clients,
            "attributed_clients": self.attributed_clients,
            "attribution_rate": self.attribution_rate_display,
            "attribution_breakdown": dict(self.attribution_breakdown),
            "revenue_breakdown": dict(self.revenue_breakdown),
            "attributed_clients_data": [d.to_dict() for d in self.decisions],
            "data_sources_summary": dict(self.data_sources_summary),
            "variant_breakdown": dict(self.variant_breakdown),
            "cross_pipeline_overrides": self.cross_pipeline_overrides,
            "funnel_metrics": dict(self.funnel_metrics),
            "methodology": list(METHODOLOGY),
        }


def build_report(
    decisions: list[AttributionDecision],
    data_sources_summary: dict[str, int] | None = None,
    processing_date: datetime | None = None,
    funnel_metrics: dict[str, Any] | None = None,
) -> AttributionReport:
    """Aggregate per-client decisions into a report.

    Args:
        decisions: One decision per client, in client order.
        data_sources_summary: Record counts per input source.
        processing_date: Completion timestamp (defaults to now, UTC).
        funnel_metrics: Per-channel outreach funnels (see ``funnel.py``).

    Returns:
        AttributionReport with per-source counts and revenue.
    """
    counts: Counter[str] = Counter()
    revenue: dict[str, float] = {source.value: 0.0 for source in AttributionSource}
    variants: Counter[str] = Counter()
    overrides = 0

    for decision in decisions:
        key = decision.source.value
        counts[key] += 1
        revenue[key] += decision.client.revenue_value

        if decision.method == AttributionMethod.CROSS_PIPELINE_TIMING:
            overrides += 1
        if isinstance(decision.evidence, EmailEvidence):
            variants[decision.evidence.variant.label] += 1

    breakdown = {source.value: counts[source.value] for source in AttributionSource}

    total = len(decisions)
    attributed = total - breakdown[AttributionSource.UNATTRIBUTED.value]
    rate = attributed / total if total else 0.0

    report = AttributionReport(
        processing_date=processing_date or datetime.now(UTC),
        total_clients=total,
        attributed_clients=attributed,
        attribution_rate=rate,
        attribution_breakdown=breakdown,
        revenue_breakdown=revenue,
        decisions=list(decisions),
        data_sources_summary=dict(data_sources_summary or {}),
        variant_breakdown=dict(sorted(variants.items())),
        cross_pipeline_overrides=overrides,
        funnel_metrics=dict(funnel_metrics or {}),
    )

    logger.info(
        f"Attribution report: {attributed}/{total} clients attributed "
        f"({report.attribution_rate_display})"
    )
    logger.info(f"Pipeline breakdown: {breakdown}")
    return report
