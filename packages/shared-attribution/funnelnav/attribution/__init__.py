"""
FunnelNav Attribution - waterfall attribution of converted clients.

Provides:
- Typed input records normalized from outreach, Instagram and audit exports
- Channel matchers (email old/new method, Instagram, royalty audit, invitation code)
- Cross-pipeline timing disambiguation
- Report aggregation

There is no click tracking between outreach and signup. Each client is
credited to one channel from indirect signals only: timestamps, shared
identifiers (email, Spotify ID, invitation code) and subject line patterns.

Usage:
    from funnelnav.attribution import run_attribution

    report = run_attribution({
        "clients": clients,
        "v1ContactStats": v1_stats,
        "v2ContactStats": v2_stats,
        "v3ContactStats": v3_stats,
        "v3SubsequenceStats": v3_subsequence_stats,
        "convrtLeads": leads,
        "convrtAuditStatus": audit_status,
        "convrtReportStatus": report_status,
        "audits": audits,
        "contacts": contacts,
    })
    print(report.attribution_rate_display)
"""

from funnelnav.attribution.config import AttributionConfig
from funnelnav.attribution.exceptions import (
    AttributionError,
    ConfigError,
    DateParseError,
    InputShapeError,
)
from funnelnav.attribution.normalizer import AttributionInput, load_bundle
from funnelnav.attribution.report import AttributionReport, build_report
from funnelnav.attribution.schema import (
    AttributionDecision,
    AttributionMethod,
    AttributionSource,
    Client,
    ContactVersion,
)
from funnelnav.attribution.waterfall import WaterfallAttribution, run_attribution

__all__ = [
    # Schema
    "AttributionDecision",
    "AttributionMethod",
    "AttributionSource",
    "Client",
    "ContactVersion",
    # Input
    "AttributionInput",
    "load_bundle",
    # Engine
    "AttributionConfig",
    "WaterfallAttribution",
    "run_attribution",
    # Report
    "AttributionReport",
    "build_report",
    # Errors
    "AttributionError",
    "ConfigError",
    "DateParseError",
    "InputShapeError",
]
