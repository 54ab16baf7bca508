"""Hash indices over the input bundle.

Built once per run so that every matcher lookup is a dictionary access
instead of a scan over the full data source. Lookups return the same
record a first-match scan in source order would return.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime

from funnelnav.attribution.exceptions import DateParseError
from funnelnav.attribution.normalizer import AttributionInput
from funnelnav.attribution.parsing import parse_channel_date
from funnelnav.attribution.schema import (
    AuditRequest,
    CampaignKind,
    CampaignStatus,
    ContactTouchpoint,
    ContactVersion,
    InstagramLead,
    InviteContact,
)

logger = logging.getLogger(__name__)


class _StatusIndex:
    """First-match lookup of campaign statuses by handle or full name."""

    def __init__(self, statuses: tuple[CampaignStatus, ...]) -> None:
        self._by_handle: dict[str, int] = {}
        self._by_full_name: dict[str, int] = {}
        self._statuses = statuses

        for position, status in enumerate(statuses):
            if status.handle:
                self._by_handle.setdefault(status.handle, position)
            if status.full_name:
                self._by_full_name.setdefault(status.full_name, position)

    def find(self, handle: str | None, full_name: str | None) -> CampaignStatus | None:
        """Return the earliest status matching the handle or the full name."""
        positions = []
        if handle and handle in self._by_handle:
            positions.append(self._by_handle[handle])
        if full_name and full_name in self._by_full_name:
            positions.append(self._by_full_name[full_name])
        if not positions:
            return None
        return self._statuses[min(positions)]


class AttributionIndex:
    """Read-only lookup tables for one attribution run.

    Note:
        Instances are never mutated after construction, so a single index
        can be shared by worker threads evaluating different clients.

    Example:
        >>> index = AttributionIndex(load_bundle(data))
        >>> index.touchpoints("artist@example.com", ContactVersion.V1)
        [ContactTouchpoint(...)]
    """

    def __init__(self, bundle: AttributionInput) -> None:
        """Build all indices from a normalized bundle.

        Args:
            bundle: Normalized input bundle.
        """
        self.bundle = bundle

        self._touchpoints: dict[ContactVersion, dict[str, list[ContactTouchpoint]]] = {}
        self._earliest_email: dict[str, datetime] = {}
        self._leads: dict[str, InstagramLead] = {}
        self._statuses: dict[CampaignKind, _StatusIndex] = {}
        self._audits: dict[str, AuditRequest] = {}
        self._contacts: dict[str, InviteContact] = {}

        self._index_touchpoints()
        self._index_instagram()
        self._index_audits()
        self._index_contacts()

    def _index_touchpoints(self) -> None:
        invalid_dates = 0
        for version in ContactVersion:
            by_email: dict[str, list[ContactTouchpoint]] = defaultdict(list)
            for touchpoint in self.bundle.touchpoints_for(version):
                if not touchpoint.contact_email:
                    continue
                by_email[touchpoint.contact_email].append(touchpoint)

                try:
                    contacted = parse_channel_date(touchpoint.contacted_date)
                except DateParseError:
                    invalid_dates += 1
                    continue
                if contacted is None:
                    continue
                current = self._earliest_email.get(touchpoint.contact_email)
                if current is None or contacted < current:
                    self._earliest_email[touchpoint.contact_email] = contacted
            self._touchpoints[version] = dict(by_email)

        if invalid_dates:
            logger.warning(f"Ignored {invalid_dates} touchpoints with invalid contacted dates")

    def _index_instagram(self) -> None:
        for lead in self.bundle.instagram_leads:
            if lead.spotify_id:
                self._leads.setdefault(lead.spotify_id, lead)

        for kind in CampaignKind:
            self._statuses[kind] = _StatusIndex(self.bundle.statuses_for(kind))

    def _index_audits(self) -> None:
        for audit in self.bundle.audits:
            if audit.spotify_id:
                self._audits.setdefault(audit.spotify_id, audit)

    def _index_contacts(self) -> None:
        for contact in self.bundle.contacts:
            code = contact.invitation_code
            if code:
                self._contacts.setdefault(code, contact)

    def touchpoints(self, email: str, version: ContactVersion) -> list[ContactTouchpoint]:
        """Return a client's touchpoints of one version, in source order."""
        return self._touchpoints.get(version, {}).get(email, [])

    def earliest_email_date(self, email: str) -> datetime | None:
        """Return the earliest valid contacted date across all email versions."""
        return self._earliest_email.get(email)

    def instagram_lead(self, spotify_id: str) -> InstagramLead | None:
        """Return the first Instagram lead with this Spotify ID."""
        return self._leads.get(spotify_id)

    def campaign_status(
        self,
        kind: CampaignKind,
        lead: InstagramLead,
    ) -> CampaignStatus | None:
        """Return the first status of ``kind`` joined to a lead by handle or full name."""
        return self._statuses[kind].find(lead.handle, lead.full_name)

    def audit(self, spotify_id: str) -> AuditRequest | None:
        """Return the first audit request with this Spotify ID."""
        return self._audits.get(spotify_id)

    def invite_contact(self, invitation_code: str) -> InviteContact | None:
        """Return the first contact whose report link carries this code."""
        return self._contacts.get(invitation_code)
