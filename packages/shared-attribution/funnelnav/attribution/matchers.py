"""Channel matchers.

Each matcher answers one question independently: did this client have a
qualifying touchpoint on this channel, and if so, what is the evidence?
Matchers never raise for bad data. A malformed date or a missing
identifier simply means "no match".
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, ClassVar

from funnelnav.attribution.config import AttributionConfig
from funnelnav.attribution.exceptions import DateParseError
from funnelnav.attribution.index import AttributionIndex
from funnelnav.attribution.parsing import days_difference, parse_channel_date
from funnelnav.attribution.schema import (
    AttributionDecision,
    AttributionMethod,
    AttributionSource,
    AuditEvidence,
    CampaignKind,
    Client,
    ContactTouchpoint,
    ContactVersion,
    EmailEvidence,
    Evidence,
    InstagramEvidence,
    InvitationEvidence,
)
from funnelnav.attribution.variants import classify_variant

logger = logging.getLogger(__name__)


def _safe_channel_date(value: Any) -> datetime | None:
    """Parse a channel date, treating malformed values as missing."""
    try:
        return parse_channel_date(value)
    except DateParseError:
        logger.debug(f"Ignoring malformed date: {value!r}")
        return None


def _email_evidence(
    touchpoint: ContactTouchpoint,
    contacted: datetime,
    days: int,
) -> EmailEvidence:
    return EmailEvidence(
        days_difference=days,
        contacted_date=contacted,
        variant=classify_variant(touchpoint.subject, touchpoint.content),
        version=touchpoint.version,
        from_email=touchpoint.from_email,
        opened_date=touchpoint.opened_date,
        replied_date=touchpoint.replied_date,
    )


class ChannelMatcher(ABC):
    """Abstract base class for channel matchers.

    Subclasses must implement:
    - try_match(): Return evidence for a client, or None

    Subclasses must set the class attributes:
    - name: Short identifier used in logs
    - source: Channel credited on a match
    - method: Matching method recorded on the decision
    - confidence: Fixed confidence of the method

    Example:
        class EmailOldMatcher(EmailMatcher):
            name = "email_old"
            versions = (ContactVersion.V1, ContactVersion.V2)
    """

    name: ClassVar[str]
    source: ClassVar[AttributionSource]
    method: ClassVar[AttributionMethod]
    confidence: ClassVar[float]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        """Validate that concrete subclasses define their class attributes."""
        super().__init_subclass__(**kwargs)
        # Skip validation for abstract subclasses
        if ABC in cls.__bases__:
            return
        for attribute in ("name", "source", "method", "confidence"):
            if getattr(cls, attribute, None) is None:
                raise TypeError(f"{cls.__name__} must define a '{attribute}' class attribute")

    def __init__(self, index: AttributionIndex, config: AttributionConfig) -> None:
        """Initialize matcher.

        Args:
            index: Lookup tables for the current run.
            config: Timing windows and cutoffs.
        """
        self.index = index
        self.config = config

    @abstractmethod
    def try_match(self, client: Client, signup_date: datetime) -> Evidence | None:
        """Return evidence that the client was reached on this channel.

        Args:
            client: Client to attribute.
            signup_date: Parsed signup date (12:00 UTC).

        Returns:
            Channel evidence, or None if the client does not qualify.
        """
        pass  # pragma: no cover

    def source_for(self, evidence: Evidence) -> AttributionSource:
        """Return the channel credited for this evidence."""
        return self.source

    def decide(
        self,
        client: Client,
        evidence: Evidence,
        method: AttributionMethod | None = None,
        note: str | None = None,
    ) -> AttributionDecision:
        """Build the attribution decision for accepted evidence."""
        return AttributionDecision(
            client=client,
            source=self.source_for(evidence),
            method=method or self.method,
            confidence=self.confidence,
            evidence=evidence,
            cross_pipeline_note=note,
        )


class EmailMatcher(ChannelMatcher, ABC):
    """Match clients to email touchpoints sent shortly before signup.

    Touchpoints are scanned version by version in source order and the
    first one inside the window wins, even if a later row is older.
    """

    versions: ClassVar[tuple[ContactVersion, ...]]
    method = AttributionMethod.TIMING_ANALYSIS
    confidence = 0.90

    def try_match(self, client: Client, signup_date: datetime) -> EmailEvidence | None:
        if not client.email:
            return None

        window_min, window_max = self.config.email_window

        for version in self.versions:
            for touchpoint in self.index.touchpoints(client.email, version):
                contacted = _safe_channel_date(touchpoint.contacted_date)
                if contacted is None:
                    continue

                days = days_difference(contacted, signup_date)
                if window_min <= days <= window_max:
                    return _email_evidence(touchpoint, contacted, days)

        return None

    def earliest(self, client: Client, signup_date: datetime) -> EmailEvidence | None:
        """Return evidence for the client's earliest touchpoint before signup.

        Only the lower bound of the email window applies: touchpoints sent
        fewer than ``email_window_min_days`` before signup are skipped, but
        there is no upper bound. Ties keep source order.
        """
        if not client.email:
            return None

        window_min = self.config.email_window_min_days
        earliest: tuple[datetime, ContactTouchpoint] | None = None
        for version in self.versions:
            for touchpoint in self.index.touchpoints(client.email, version):
                contacted = _safe_channel_date(touchpoint.contacted_date)
                if contacted is None:
                    continue
                if days_difference(contacted, signup_date) < window_min:
                    continue
                if earliest is None or contacted < earliest[0]:
                    earliest = (contacted, touchpoint)

        if earliest is None:
            return None

        contacted, touchpoint = earliest
        return _email_evidence(
            touchpoint, contacted, days_difference(contacted, signup_date)
        )

    def source_for(self, evidence: Evidence) -> AttributionSource:
        if isinstance(evidence, EmailEvidence):
            return evidence.version.source
        return self.source


class EmailOldMatcher(EmailMatcher):
    """V1 and V2 sequences."""

    name = "email_old"
    source = AttributionSource.EMAIL_OLD
    versions = (ContactVersion.V1, ContactVersion.V2)


class EmailNewMatcher(EmailMatcher):
    """V3 main sequence and its subsequence."""

    name = "email_new"
    source = AttributionSource.EMAIL_NEW
    versions = (ContactVersion.V3, ContactVersion.V3_SUBSEQUENCE)


class EmailAnyMatcher(EmailMatcher):
    """All email sequences; the credited channel follows the matched version."""

    name = "email_any"
    source = AttributionSource.EMAIL_OLD
    versions = (
        ContactVersion.V1,
        ContactVersion.V2,
        ContactVersion.V3,
        ContactVersion.V3_SUBSEQUENCE,
    )


class InstagramMatcher(ChannelMatcher):
    """Match clients to Instagram leads by Spotify ID.

    No timing window is applied here; the disambiguator compares the
    campaign "sent" date against other channels.
    """

    name = "instagram"
    source = AttributionSource.INSTAGRAM
    method = AttributionMethod.SPOTIFY_ID_MATCHING
    confidence = 0.75

    def try_match(self, client: Client, signup_date: datetime) -> InstagramEvidence | None:
        return self.lookup(client)

    def lookup(self, client: Client) -> InstagramEvidence | None:
        """Return the client's Instagram lead joined to its campaign status."""
        if not client.spotify_id:
            return None

        lead = self.index.instagram_lead(client.spotify_id)
        if lead is None:
            return None

        audit_status = self.index.campaign_status(CampaignKind.AUDIT_LINK, lead)
        report_status = self.index.campaign_status(CampaignKind.REPORT_LINK, lead)

        def status_field(name: str) -> Any:
            # Audit-link status first, report-link status as fallback
            for status in (audit_status, report_status):
                if status is not None:
                    value = getattr(status, name)
                    if value:
                        return value
            return None

        return InstagramEvidence(
            spotify_id=client.spotify_id,
            handle=lead.handle,
            method=lead.method,
            campaign_id=status_field("campaign_id"),
            contacted_date=status_field("sent"),
            replied_date=status_field("replied"),
            blocked=status_field("blocked"),
        )

    def contact_date(self, client: Client) -> datetime | None:
        """Return the date the client was messaged on Instagram, if known."""
        evidence = self.lookup(client)
        if evidence is None:
            return None
        return _safe_channel_date(evidence.contacted_date)


class AuditMatcher(ChannelMatcher):
    """Match clients to inbound audit requests close to signup.

    The window straddles zero: an audit may come shortly before or
    shortly after the signup.
    """

    name = "audit"
    source = AttributionSource.AUDIT
    method = AttributionMethod.AUDIT_TIMING
    confidence = 0.70

    def try_match(self, client: Client, signup_date: datetime) -> AuditEvidence | None:
        if not client.spotify_id:
            return None

        audit = self.index.audit(client.spotify_id)
        if audit is None:
            return None

        audit_date = _safe_channel_date(audit.created_at)
        if audit_date is None:
            return None

        days = days_difference(audit_date, signup_date)
        window_min, window_max = self.config.audit_window
        if not window_min <= days <= window_max:
            return None

        return AuditEvidence(
            audit_date=audit_date,
            days_difference=days,
            referral_source=audit.referral_source,
            artist_name=audit.artist_name,
            has_sent_webhook=audit.has_sent_webhook,
        )


class InvitationMatcher(ChannelMatcher):
    """Match clients to outreach contacts by invitation code.

    Identity alone is enough; no timing window. Contacts created on or
    after the new-method cutoff are credited to the new email method.
    """

    name = "invitation"
    source = AttributionSource.EMAIL_OLD
    method = AttributionMethod.INVITATION_CODE
    confidence = 0.85

    def try_match(self, client: Client, signup_date: datetime) -> InvitationEvidence | None:
        if not client.invitation_code:
            return None

        contact = self.index.invite_contact(client.invitation_code)
        if contact is None:
            return None

        created = _safe_channel_date(contact.created_at)
        is_new_method = created is not None and created >= self.config.new_method_cutoff

        return InvitationEvidence(
            invitation_code=client.invitation_code,
            contact_email=contact.email,
            is_new_method=is_new_method,
            report_link=contact.report_link,
        )

    def source_for(self, evidence: Evidence) -> AttributionSource:
        if isinstance(evidence, InvitationEvidence) and evidence.is_new_method:
            return AttributionSource.EMAIL_NEW
        return AttributionSource.EMAIL_OLD
