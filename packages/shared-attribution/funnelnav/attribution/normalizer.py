"""
Input bundle normalization - turn raw export lists into typed records.

The engine receives one in-memory bundle with a list per data source.
Each list may be a list of dicts or a pandas DataFrame. Lists that are
missing or have the wrong shape are treated as empty: a bad export must
not abort the run.

Bundle keys (camelCase as produced by the upload step, snake_case also accepted):
- clients
- v1ContactStats, v2ContactStats, v3ContactStats, v3SubsequenceStats
- convrtLeads, convrtAuditStatus, convrtReportStatus
- audits
- contacts (optional, for the invitation code fallback)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from funnelnav.attribution.exceptions import InputShapeError
from funnelnav.attribution.schema import (
    AuditRequest,
    CampaignKind,
    CampaignStatus,
    Client,
    ContactTouchpoint,
    ContactVersion,
    InstagramLead,
    InviteContact,
)

logger = logging.getLogger(__name__)

# Touchpoint lists in waterfall scan order
TOUCHPOINT_KEYS: dict[ContactVersion, tuple[str, str]] = {
    ContactVersion.V1: ("v1ContactStats", "v1_contact_stats"),
    ContactVersion.V2: ("v2ContactStats", "v2_contact_stats"),
    ContactVersion.V3: ("v3ContactStats", "v3_contact_stats"),
    ContactVersion.V3_SUBSEQUENCE: ("v3SubsequenceStats", "v3_subsequence_stats"),
}

CAMPAIGN_STATUS_KEYS: dict[CampaignKind, tuple[str, str]] = {
    CampaignKind.AUDIT_LINK: ("convrtAuditStatus", "convrt_audit_status"),
    CampaignKind.REPORT_LINK: ("convrtReportStatus", "convrt_report_status"),
}


@dataclass(frozen=True)
class AttributionInput:
    """Fully parsed, read-only input for one attribution run."""

    clients: tuple[Client, ...] = ()
    touchpoints: dict[ContactVersion, tuple[ContactTouchpoint, ...]] = field(
        default_factory=dict
    )
    instagram_leads: tuple[InstagramLead, ...] = ()
    campaign_statuses: dict[CampaignKind, tuple[CampaignStatus, ...]] = field(
        default_factory=dict
    )
    audits: tuple[AuditRequest, ...] = ()
    contacts: tuple[InviteContact, ...] = ()

    def touchpoints_for(self, version: ContactVersion) -> tuple[ContactTouchpoint, ...]:
        """Return the touchpoints of one sequence version."""
        return self.touchpoints.get(version, ())

    def statuses_for(self, kind: CampaignKind) -> tuple[CampaignStatus, ...]:
        """Return the campaign statuses of one campaign type."""
        return self.campaign_statuses.get(kind, ())

    def summary(self) -> dict[str, int]:
        """Return record counts per data source."""
        return {
            "clients": len(self.clients),
            "contacts": len(self.contacts),
            "v1_contact_stats": len(self.touchpoints_for(ContactVersion.V1)),
            "v2_contact_stats": len(self.touchpoints_for(ContactVersion.V2)),
            "v3_contact_stats": len(self.touchpoints_for(ContactVersion.V3)),
            "v3_subsequence_stats": len(
                self.touchpoints_for(ContactVersion.V3_SUBSEQUENCE)
            ),
            "convrt_leads": len(self.instagram_leads),
            "convrt_audit_status": len(self.statuses_for(CampaignKind.AUDIT_LINK)),
            "convrt_report_status": len(self.statuses_for(CampaignKind.REPORT_LINK)),
            "audits": len(self.audits),
        }


def _to_records(
    value: Any,
    name: str,
    strict: bool = False,
) -> list[dict[str, Any]]:
    """Convert one bundle entry to a list of row dicts.

    Args:
        value: List of dicts, DataFrame or None.
        name: Bundle key (for log messages).
        strict: Raise instead of coercing unexpected shapes.

    Returns:
        List of row dictionaries. Missing values (NaN/NaT) become None.

    Raises:
        InputShapeError: In strict mode, if the value is not list-like.
    """
    if value is None:
        return []

    if isinstance(value, pd.DataFrame):
        df = value.astype(object).where(pd.notna(value), None)
        return df.to_dict(orient="records")

    if isinstance(value, (list, tuple)):
        records = []
        skipped = 0
        for row in value:
            if isinstance(row, Mapping):
                records.append(dict(row))
            else:
                skipped += 1
        if skipped:
            if strict:
                raise InputShapeError(f"{name} contains {skipped} non-object rows")
            logger.warning(f"Skipped {skipped} non-object rows in {name}")
        return records

    if strict:
        raise InputShapeError(
            f"{name} must be a list or DataFrame, got {type(value).__name__}"
        )
    logger.warning(
        f"Expected a list for {name}, got {type(value).__name__}; treating as empty"
    )
    return []


def _get(data: Mapping[str, Any], keys: tuple[str, ...]) -> tuple[Any, str]:
    for key in keys:
        if key in data:
            return data[key], key
    return None, keys[0]


def load_bundle(data: Any, strict: bool = False) -> AttributionInput:
    """Normalize a raw input bundle.

    Args:
        data: Mapping of bundle keys to lists of rows or DataFrames.
        strict: Raise InputShapeError on wrong shapes instead of coercing.

    Returns:
        AttributionInput with typed, read-only records.

    Raises:
        InputShapeError: In strict mode, if the bundle or an entry is malformed.

    Example:
        >>> bundle = load_bundle({
        ...     "clients": [{"email": "a@example.com", "signup_date": "15/01/2025"}],
        ...     "v1ContactStats": [],
        ... })
        >>> len(bundle.clients)
        1
    """
    if not isinstance(data, Mapping):
        if strict:
            raise InputShapeError(
                f"Input bundle must be a mapping, got {type(data).__name__}"
            )
        logger.warning(
            f"Input bundle must be a mapping, got {type(data).__name__}; "
            "processing zero clients"
        )
        return AttributionInput()

    def rows(*keys: str) -> list[dict[str, Any]]:
        value, key = _get(data, keys)
        return _to_records(value, key, strict=strict)

    clients = tuple(Client.from_dict(row) for row in rows("clients"))
    if "clients" not in data:
        logger.warning("Input bundle has no clients; processing zero clients")

    touchpoints = {
        version: tuple(
            ContactTouchpoint.from_dict(row, version) for row in rows(*keys)
        )
        for version, keys in TOUCHPOINT_KEYS.items()
    }

    campaign_statuses = {
        kind: tuple(CampaignStatus.from_dict(row, kind) for row in rows(*keys))
        for kind, keys in CAMPAIGN_STATUS_KEYS.items()
    }

    bundle = AttributionInput(
        clients=clients,
        touchpoints=touchpoints,
        instagram_leads=tuple(
            InstagramLead.from_dict(row) for row in rows("convrtLeads", "convrt_leads")
        ),
        campaign_statuses=campaign_statuses,
        audits=tuple(AuditRequest.from_dict(row) for row in rows("audits")),
        contacts=tuple(InviteContact.from_dict(row) for row in rows("contacts")),
    )

    logger.info(f"Loaded data sources: {bundle.summary()}")
    return bundle
