"""
Attribution schema - input records and attribution decisions.

Input records are built from heterogeneous exports:
- Client list (CRM export, DD/MM/YYYY dates)
- Email outreach statistics, one list per sequence version (V1, V2, V3, V3 subsequence)
- Instagram leads and campaign status lists (Convrt)
- Inbound royalty audit requests
- Outreach contacts carrying invitation report links

Every record keeps its original row in ``raw_data`` so the report can merge
client fields back into the output. Records are frozen: the engine never
mutates its inputs.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from funnelnav.attribution.parsing import (
    extract_invitation_code,
    extract_spotify_id,
    is_blank,
    normalize_email,
    parse_amount,
    parse_flag,
)

if TYPE_CHECKING:
    from funnelnav.attribution.variants import VariantMatch


class AttributionSource(str, Enum):
    """Channel a client is attributed to."""

    EMAIL_OLD = "Email Outreach - Old Method"
    EMAIL_NEW = "Email Outreach - New Method"
    INSTAGRAM = "Instagram Outreach"
    AUDIT = "Royalty Audit"
    UNATTRIBUTED = "Unattributed"


class AttributionMethod(str, Enum):
    """Matcher that produced an attribution decision."""

    TIMING_ANALYSIS = "timing_analysis"  # Email sent inside the signup window
    SPOTIFY_ID_MATCHING = "spotify_id_matching"  # Instagram lead with same Spotify ID
    AUDIT_TIMING = "audit_timing"  # Audit request near signup
    INVITATION_CODE = "invitation_code"  # Report link code matches client code
    CROSS_PIPELINE_TIMING = "cross_pipeline_timing"  # Earlier contact on another channel
    NONE = "none"


class ContactVersion(str, Enum):
    """Email sequence version, taken from the list a record came from."""

    V1 = "V1"
    V2 = "V2"
    V3 = "V3"
    V3_SUBSEQUENCE = "V3_Subsequence"

    @property
    def source(self) -> AttributionSource:
        """Return the email channel this version belongs to."""
        if self in (ContactVersion.V3, ContactVersion.V3_SUBSEQUENCE):
            return AttributionSource.EMAIL_NEW
        return AttributionSource.EMAIL_OLD


class CampaignKind(str, Enum):
    """Instagram campaign type a status record belongs to."""

    AUDIT_LINK = "audit_link"
    REPORT_LINK = "report_link"


def _first(data: dict[str, Any], *keys: str) -> Any:
    """Return the first non-blank value among ``keys``."""
    for key in keys:
        value = data.get(key)
        if not is_blank(value):
            return value
    return None


def _text(value: Any) -> str | None:
    if is_blank(value):
        return None
    return str(value).strip()


@dataclass(frozen=True)
class Client:
    """A converted customer to attribute.

    Example:
        client = Client(
            email="artist@example.com",
            spotify_id="4Z8W4fKeB5YxbusRsdQVPb",
            signup_date="15/01/2025",
            revenue="120.50",
        )
    """

    email: str = ""
    spotify_id: str | None = None
    invitation_code: str | None = None
    signup_date: Any = None  # DD/MM/YYYY
    revenue: Any = None
    raw_data: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def revenue_value(self) -> float:
        """Return revenue as float; absent or invalid values count as 0."""
        return parse_amount(self.revenue)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Client:
        """Create Client from a raw export row."""
        return cls(
            email=normalize_email(data.get("email")),
            spotify_id=_text(data.get("spotify_id")),
            invitation_code=_text(_first(data, "invitation_code", "invitation")),
            signup_date=_first(data, "signup_date", "created_at"),
            revenue=data.get("revenue"),
            raw_data=dict(data),
        )


@dataclass(frozen=True)
class ContactTouchpoint:
    """A single email outreach contact from a sequence statistics export."""

    contact_email: str
    contacted_date: Any
    version: ContactVersion
    from_email: str | None = None
    subject: str | None = None
    content: str | None = None
    opened_date: Any = None
    replied_date: Any = None
    raw_data: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any], version: ContactVersion) -> ContactTouchpoint:
        """Create ContactTouchpoint from a sequence statistics row.

        Accepts both the outreach tool's CSV headers ("Contact email address",
        "Contacted date", ...) and snake_case keys. When no subject column
        is present the "From email" column is classified instead.
        """
        from_email = _text(_first(data, "From email", "from_email"))
        return cls(
            contact_email=normalize_email(
                _first(data, "Contact email address", "contact_email", "email")
            ),
            contacted_date=_first(data, "Contacted date", "contacted_date"),
            version=version,
            from_email=from_email,
            subject=_text(_first(data, "Email subject", "subject")) or from_email,
            content=_text(_first(data, "Email content", "content")),
            opened_date=_first(data, "Opened date", "opened_date"),
            replied_date=_first(data, "Replied date", "replied_date"),
            raw_data=dict(data),
        )


@dataclass(frozen=True)
class InstagramLead:
    """An Instagram outreach lead."""

    spotify_id: str | None
    handle: str | None = None
    full_name: str | None = None
    method: str | None = None  # Campaign type that generated the lead

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InstagramLead:
        """Create InstagramLead, deriving the Spotify ID from the artist URL if needed."""
        spotify_id = _text(data.get("spotify_id")) or extract_spotify_id(
            _first(data, "artist_spotify_url", "spotify_url")
        )
        return cls(
            spotify_id=spotify_id,
            handle=_text(data.get("handle")),
            full_name=_text(data.get("full_name")),
            method=_text(data.get("method")),
        )


@dataclass(frozen=True)
class CampaignStatus:
    """Delivery status of an Instagram campaign message."""

    kind: CampaignKind
    handle: str | None = None
    full_name: str | None = None
    sent: Any = None
    replied: Any = None
    blocked: Any = None
    campaign_id: str | None = None
    status: str | None = None  # pending, completed, failed or revoked

    @classmethod
    def from_dict(cls, data: dict[str, Any], kind: CampaignKind) -> CampaignStatus:
        """Create CampaignStatus from a campaign export row."""
        return cls(
            kind=kind,
            handle=_text(data.get("handle")),
            full_name=_text(data.get("full_name")),
            sent=data.get("sent"),
            replied=data.get("replied"),
            blocked=data.get("blocked"),
            campaign_id=_text(data.get("campaign_id")),
            status=_text(data.get("status")),
        )


@dataclass(frozen=True)
class AuditRequest:
    """An inbound royalty audit request."""

    spotify_id: str | None
    created_at: Any = None
    referral_source: str | None = None
    artist_name: str | None = None
    has_sent_webhook: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuditRequest:
        """Create AuditRequest from an audit export row."""
        return cls(
            spotify_id=_text(data.get("spotify_id")),
            created_at=data.get("created_at"),
            referral_source=_text(data.get("referral_source")),
            artist_name=_text(data.get("artist_name")),
            has_sent_webhook=parse_flag(data.get("has_sent_webhook")),
        )


@dataclass(frozen=True)
class InviteContact:
    """An outreach contact whose custom variables hold a report link."""

    email: str
    created_at: Any = None
    report_link: str | None = None

    @property
    def invitation_code(self) -> str | None:
        """Return the invitation code embedded in the report link."""
        return extract_invitation_code(self.report_link)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InviteContact:
        """Create InviteContact from an outreach contact row."""
        custom_vars = _first(data, "customVars", "custom_vars")
        report_link = None
        if isinstance(custom_vars, dict):
            report_link = custom_vars.get("report_link")
        if is_blank(report_link):
            report_link = data.get("report_link")
        return cls(
            email=normalize_email(data.get("email")),
            created_at=_first(data, "created_at", "createdAt"),
            report_link=_text(report_link),
        )


@dataclass(frozen=True)
class EmailEvidence:
    """Evidence for an email attribution."""

    days_difference: int
    contacted_date: datetime
    variant: VariantMatch
    version: ContactVersion
    from_email: str | None = None
    opened_date: Any = None
    replied_date: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "days_difference": self.days_difference,
            "contacted_date": self.contacted_date.isoformat(),
            "variant": self.variant.to_dict(),
            "version": self.version.value,
            "from_email": self.from_email,
            "opened_date": _serialize(self.opened_date),
            "replied_date": _serialize(self.replied_date),
        }


@dataclass(frozen=True)
class InstagramEvidence:
    """Evidence for an Instagram attribution."""

    spotify_id: str
    handle: str | None = None
    method: str | None = None
    campaign_id: str | None = None
    contacted_date: Any = None  # "sent" of the joined campaign status
    replied_date: Any = None
    blocked: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "spotify_id": self.spotify_id,
            "handle": self.handle,
            "method": self.method,
            "campaign_id": self.campaign_id,
            "contacted_date": _serialize(self.contacted_date),
            "replied_date": _serialize(self.replied_date),
            "blocked": _serialize(self.blocked),
        }


@dataclass(frozen=True)
class AuditEvidence:
    """Evidence for a royalty audit attribution."""

    audit_date: datetime
    days_difference: int
    referral_source: str | None = None
    artist_name: str | None = None
    has_sent_webhook: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "audit_date": self.audit_date.isoformat(),
            "days_difference": self.days_difference,
            "referral_source": self.referral_source,
            "artist_name": self.artist_name,
            "has_sent_webhook": self.has_sent_webhook,
        }


@dataclass(frozen=True)
class InvitationEvidence:
    """Evidence for an invitation code attribution."""

    invitation_code: str
    contact_email: str
    is_new_method: bool
    report_link: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "invitation_code": self.invitation_code,
            "contact_email": self.contact_email,
            "is_new_method": self.is_new_method,
            "report_link": self.report_link,
        }


Evidence = EmailEvidence | InstagramEvidence | AuditEvidence | InvitationEvidence


@dataclass(frozen=True)
class AttributionDecision:
    """The single attribution decision for a client."""

    client: Client
    source: AttributionSource
    method: AttributionMethod
    confidence: float
    evidence: Evidence | None = None
    cross_pipeline_note: str | None = None

    @property
    def is_attributed(self) -> bool:
        """Return True unless the client is unattributed."""
        return self.source != AttributionSource.UNATTRIBUTED

    @classmethod
    def unattributed(cls, client: Client) -> AttributionDecision:
        """Build the fallback decision for a client with no match."""
        return cls(
            client=client,
            source=AttributionSource.UNATTRIBUTED,
            method=AttributionMethod.NONE,
            confidence=0.0,
        )

    def to_dict(self) -> dict[str, Any]:
        """Merge the decision into the client's original fields."""
        return {
            **{key: _serialize(value) for key, value in self.client.raw_data.items()},
            "attribution_source": self.source.value,
            "attribution_method": self.method.value,
            "attribution_confidence": self.confidence,
            "attribution_details": self.evidence.to_dict() if self.evidence else None,
            "cross_pipeline_note": self.cross_pipeline_note,
        }


def _serialize(value: Any) -> Any:
    """Make a raw export value JSON friendly."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, float) and math.isnan(value):
        return None
    return value
