"""
Funnel metrics - per-channel outreach volume next to attribution results.

Attribution answers "which channel gets the credit". The funnel answers
"how much outreach did each channel do and how much of it responded":

- Email: contacted and replied counts per sequence group
- Instagram: campaign delivery status counts (or lead count when no
  status exports were supplied)
- Royalty audits: requests, attributed conversions and referral sources

Rates are percentages rounded to one decimal.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from funnelnav.attribution.normalizer import AttributionInput
from funnelnav.attribution.parsing import is_blank
from funnelnav.attribution.schema import (
    AttributionDecision,
    AttributionSource,
    AuditEvidence,
    CampaignKind,
    ContactTouchpoint,
    ContactVersion,
)

logger = logging.getLogger(__name__)

EMAIL_FUNNELS: dict[str, tuple[ContactVersion, ...]] = {
    "email_outreach_old": (ContactVersion.V1, ContactVersion.V2),
    "email_outreach_new_main": (ContactVersion.V3,),
    "email_outreach_new_sub": (ContactVersion.V3_SUBSEQUENCE,),
}

CAMPAIGN_LABELS = {
    CampaignKind.REPORT_LINK: "Report Link Campaign",
    CampaignKind.AUDIT_LINK: "Audit Link Campaign",
}
CAMPAIGN_STATUSES = ("pending", "completed", "failed", "revoked")
DEFAULT_CAMPAIGN_STATUS = "pending"

UNKNOWN_REFERRAL = "unknown"


def _percent(part: int, whole: int) -> float:
    if not whole:
        return 0.0
    return round(part / whole * 100, 1)


def _referral_key(value: str | None) -> str:
    if is_blank(value) or value.strip().lower() == "null":
        return UNKNOWN_REFERRAL
    return value.strip()


def email_funnel(touchpoints: list[ContactTouchpoint]) -> dict[str, Any]:
    """Summarize contacted and replied counts for a group of touchpoints."""
    contacted = len(touchpoints)
    replied = sum(1 for t in touchpoints if not is_blank(t.replied_date))
    return {
        "total_contacted": contacted,
        "total_replied": replied,
        "reply_rate": _percent(replied, contacted),
    }


def instagram_funnel(bundle: AttributionInput) -> dict[str, Any]:
    """Summarize Instagram campaign delivery.

    Status exports are preferred. Without any, the funnel falls back to the
    number of leads.
    """
    campaigns: dict[str, dict[str, int]] = {}
    totals: Counter[str] = Counter()

    for kind, label in CAMPAIGN_LABELS.items():
        statuses = bundle.statuses_for(kind)
        if not statuses:
            continue
        counts = Counter(
            (status.status or DEFAULT_CAMPAIGN_STATUS).lower() for status in statuses
        )
        campaigns[label] = {
            "total_leads": len(statuses),
            **{name: counts[name] for name in CAMPAIGN_STATUSES},
        }
        totals["total_leads"] += len(statuses)
        totals.update({name: counts[name] for name in CAMPAIGN_STATUSES})

    if not campaigns:
        return {
            "data_source": "convrt_leads_csv",
            "total_leads": len(bundle.instagram_leads),
        }

    total = totals["total_leads"]
    return {
        "data_source": "convrt_status_json",
        "total_leads": total,
        "completed_count": totals["completed"],
        "failed_count": totals["failed"],
        "pending_count": totals["pending"],
        "revoked_count": totals["revoked"],
        "completion_rate": _percent(totals["completed"], total),
        "failure_rate": _percent(totals["failed"], total),
        "campaigns": campaigns,
    }


def audit_funnel(
    bundle: AttributionInput,
    decisions: list[AttributionDecision],
) -> dict[str, Any]:
    """Summarize audit requests, attributed audits and referral sources."""
    requests = Counter(_referral_key(audit.referral_source) for audit in bundle.audits)
    attributed: Counter[str] = Counter()
    for decision in decisions:
        if decision.source != AttributionSource.AUDIT:
            continue
        referral = None
        if isinstance(decision.evidence, AuditEvidence):
            referral = decision.evidence.referral_source
        attributed[_referral_key(referral)] += 1

    total = len(bundle.audits)
    converted = sum(attributed.values())
    breakdown = {
        source: {
            "count": count,
            "percentage": _percent(count, total),
            "attributed_count": attributed[source],
            "conversion_rate": _percent(attributed[source], count),
        }
        for source, count in requests.most_common()
    }

    return {
        "total_audits": total,
        "converted_audits": converted,
        "conversion_rate": _percent(converted, total),
        "referral_source_breakdown": breakdown,
    }


def calculate_funnel_metrics(
    bundle: AttributionInput,
    decisions: list[AttributionDecision],
) -> dict[str, Any]:
    """Compute funnel metrics for every outreach channel.

    Args:
        bundle: Parsed input of the run.
        decisions: Decisions of the same run (used for audit conversions).

    Returns:
        Dictionary keyed by funnel name.
    """
    metrics: dict[str, Any] = {}
    for name, versions in EMAIL_FUNNELS.items():
        touchpoints = [t for version in versions for t in bundle.touchpoints_for(version)]
        metrics[name] = email_funnel(touchpoints)

    metrics["instagram_outreach"] = instagram_funnel(bundle)
    metrics["royalty_audits"] = audit_funnel(bundle, decisions)

    logger.debug(f"Funnel metrics computed for {len(metrics)} funnels")
    return metrics
