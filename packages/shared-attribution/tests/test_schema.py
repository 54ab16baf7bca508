"""Tests for attribution schema records and decisions."""

from datetime import UTC, datetime

import pytest
from funnelnav.attribution.schema import (
    AttributionDecision,
    AttributionMethod,
    AttributionSource,
    AuditEvidence,
    AuditRequest,
    CampaignKind,
    CampaignStatus,
    Client,
    ContactTouchpoint,
    ContactVersion,
    InstagramLead,
    InvitationEvidence,
    InviteContact,
)


class TestEnums:
    """Test schema enums."""

    def test_source_values(self):
        """Test channel display names."""
        assert [s.value for s in AttributionSource] == [
            "Email Outreach - Old Method",
            "Email Outreach - New Method",
            "Instagram Outreach",
            "Royalty Audit",
            "Unattributed",
        ]

    def test_method_values(self):
        """Test method identifiers."""
        assert AttributionMethod.TIMING_ANALYSIS.value == "timing_analysis"
        assert AttributionMethod.CROSS_PIPELINE_TIMING.value == "cross_pipeline_timing"
        assert AttributionMethod.NONE.value == "none"

    @pytest.mark.parametrize(
        ("version", "source"),
        [
            (ContactVersion.V1, AttributionSource.EMAIL_OLD),
            (ContactVersion.V2, AttributionSource.EMAIL_OLD),
            (ContactVersion.V3, AttributionSource.EMAIL_NEW),
            (ContactVersion.V3_SUBSEQUENCE, AttributionSource.EMAIL_NEW),
        ],
    )
    def test_version_source(self, version, source):
        """Test each sequence version maps to its email channel."""
        assert version.source == source


class TestClient:
    """Test Client."""

    def test_from_dict(self):
        """Test building a client from an export row."""
        row = {
            "email": "  Artist@Example.com ",
            "spotify_id": "SPOT1",
            "invitation_code": "CODE1",
            "signup_date": "15/01/2025",
            "revenue": "99.5",
            "plan": "pro",
        }
        client = Client.from_dict(row)

        assert client.email == "artist@example.com"
        assert client.spotify_id == "SPOT1"
        assert client.invitation_code == "CODE1"
        assert client.signup_date == "15/01/2025"
        assert client.revenue_value == 99.5
        assert client.raw_data["plan"] == "pro"

    def test_aliases(self):
        """Test created_at and invitation fallbacks."""
        client = Client.from_dict(
            {"email": "a@example.com", "created_at": "01/02/2025", "invitation": "XYZ"}
        )

        assert client.signup_date == "01/02/2025"
        assert client.invitation_code == "XYZ"

    def test_blank_identifiers(self):
        """Test blank identifiers become None."""
        client = Client.from_dict({"email": None, "spotify_id": "  "})

        assert client.email == ""
        assert client.spotify_id is None

    @pytest.mark.parametrize(
        ("revenue", "expected"),
        [
            ("120.50", 120.5),
            (42, 42.0),
            (None, 0.0),
            ("", 0.0),
            ("abc", 0.0),
            (float("nan"), 0.0),
            ("inf", 0.0),
            ("1,200", 1200.0),
            ("1,234.50", 1234.5),
        ],
    )
    def test_revenue_value(self, revenue, expected):
        """Test revenue coercion."""
        assert Client(revenue=revenue).revenue_value == expected

    def test_raw_data_is_copied(self):
        """Test the client keeps its own copy of the row."""
        row = {"email": "a@example.com"}
        client = Client.from_dict(row)
        row["email"] = "changed@example.com"

        assert client.raw_data["email"] == "a@example.com"


class TestContactTouchpoint:
    """Test ContactTouchpoint."""

    def test_csv_headers(self, make_touchpoint):
        """Test the outreach tool's CSV headers."""
        row = make_touchpoint(
            "Artist@Example.com",
            "2025-01-10T09:00:00Z",
            subject="Missing publishing royalties",
            content="Hi",
            **{"Opened date": "2025-01-11"},
        )
        touchpoint = ContactTouchpoint.from_dict(row, ContactVersion.V3)

        assert touchpoint.contact_email == "artist@example.com"
        assert touchpoint.contacted_date == "2025-01-10T09:00:00Z"
        assert touchpoint.version == ContactVersion.V3
        assert touchpoint.subject == "Missing publishing royalties"
        assert touchpoint.content == "Hi"
        assert touchpoint.from_email == "outreach@example.com"
        assert touchpoint.opened_date == "2025-01-11"

    def test_snake_case_keys(self):
        """Test snake_case keys."""
        touchpoint = ContactTouchpoint.from_dict(
            {"contact_email": "a@example.com", "contacted_date": "2025-01-10", "subject": "Hi"},
            ContactVersion.V1,
        )

        assert touchpoint.contact_email == "a@example.com"
        assert touchpoint.subject == "Hi"

    def test_subject_falls_back_to_from_email(self):
        """Test rows without a subject classify the From email column."""
        touchpoint = ContactTouchpoint.from_dict(
            {"contact_email": "a@example.com", "From email": "royalties@example.com"},
            ContactVersion.V1,
        )

        assert touchpoint.subject == "royalties@example.com"


class TestInstagramRecords:
    """Test InstagramLead and CampaignStatus."""

    def test_lead_spotify_id_from_url(self):
        """Test the Spotify ID is derived from the artist URL."""
        lead = InstagramLead.from_dict(
            {
                "artist_spotify_url": "https://open.spotify.com/artist/4Z8W4fKeB5YxbusRsdQVPb",
                "handle": "@artist",
            }
        )

        assert lead.spotify_id == "4Z8W4fKeB5YxbusRsdQVPb"
        assert lead.handle == "@artist"

    def test_lead_explicit_spotify_id(self):
        """Test an explicit spotify_id takes precedence over the URL."""
        lead = InstagramLead.from_dict(
            {
                "spotify_id": "EXPLICIT",
                "artist_spotify_url": "https://open.spotify.com/artist/FROMURL",
            }
        )

        assert lead.spotify_id == "EXPLICIT"

    def test_campaign_status(self):
        """Test campaign status rows."""
        status = CampaignStatus.from_dict(
            {"handle": "@artist", "sent": "2025-01-01", "campaign_id": "C1"},
            CampaignKind.REPORT_LINK,
        )

        assert status.kind == CampaignKind.REPORT_LINK
        assert status.sent == "2025-01-01"
        assert status.full_name is None
        assert status.campaign_id == "C1"
        assert status.status is None

    def test_campaign_status_delivery_status(self):
        """Test the delivery status is kept for the funnel."""
        status = CampaignStatus.from_dict({"handle": "@artist", "status": " completed "}, CampaignKind.AUDIT_LINK)

        assert status.status == "completed"


class TestAuditAndContacts:
    """Test AuditRequest and InviteContact."""

    def test_audit_request(self):
        """Test audit rows."""
        audit = AuditRequest.from_dict(
            {"spotify_id": "S1", "created_at": "2025-01-01", "has_sent_webhook": None}
        )

        assert audit.spotify_id == "S1"
        assert audit.has_sent_webhook is False

    @pytest.mark.parametrize(
        ("flag", "expected"),
        [("true", True), ("false", False), ("0", False), ("1", True), (True, True)],
    )
    def test_audit_webhook_flag_spellings(self, flag, expected):
        """Test has_sent_webhook parses string spellings."""
        audit = AuditRequest.from_dict({"spotify_id": "S1", "has_sent_webhook": flag})

        assert audit.has_sent_webhook is expected

    def test_invite_contact_custom_vars(self):
        """Test report links inside customVars."""
        contact = InviteContact.from_dict(
            {
                "email": "a@example.com",
                "created_at": "2025-04-01",
                "customVars": {"report_link": "https://pub.example.com/report/abc123"},
            }
        )

        assert contact.report_link == "https://pub.example.com/report/abc123"
        assert contact.invitation_code == "abc123"

    def test_invite_contact_snake_case(self):
        """Test custom_vars and top-level report_link."""
        contact = InviteContact.from_dict(
            {"email": "a@example.com", "report_link": "https://pub.example.com/report/xyz"}
        )

        assert contact.invitation_code == "xyz"

    def test_invite_contact_without_link(self):
        """Test contacts without a report link have no code."""
        contact = InviteContact.from_dict({"email": "a@example.com", "customVars": "n/a"})

        assert contact.report_link is None
        assert contact.invitation_code is None


class TestAttributionDecision:
    """Test AttributionDecision."""

    def test_unattributed(self):
        """Test the fallback decision."""
        decision = AttributionDecision.unattributed(Client(email="a@example.com"))

        assert decision.source == AttributionSource.UNATTRIBUTED
        assert decision.method == AttributionMethod.NONE
        assert decision.confidence == 0.0
        assert decision.evidence is None
        assert not decision.is_attributed

    def test_to_dict_merges_client_fields(self):
        """Test the decision is merged into the original client row."""
        client = Client.from_dict(
            {"email": "a@example.com", "signup_date": "15/01/2025", "revenue": float("nan")}
        )
        evidence = AuditEvidence(
            audit_date=datetime(2025, 1, 10, 12, tzinfo=UTC),
            days_difference=5,
            referral_source="google",
        )
        decision = AttributionDecision(
            client=client,
            source=AttributionSource.AUDIT,
            method=AttributionMethod.AUDIT_TIMING,
            confidence=0.70,
            evidence=evidence,
        )

        result = decision.to_dict()

        assert result["email"] == "a@example.com"
        assert result["signup_date"] == "15/01/2025"
        assert result["revenue"] is None
        assert result["attribution_source"] == "Royalty Audit"
        assert result["attribution_method"] == "audit_timing"
        assert result["attribution_confidence"] == 0.70
        assert result["attribution_details"]["audit_date"] == "2025-01-10T12:00:00+00:00"
        assert result["attribution_details"]["days_difference"] == 5
        assert result["cross_pipeline_note"] is None

    def test_invitation_evidence_to_dict(self):
        """Test invitation evidence serialization."""
        evidence = InvitationEvidence(
            invitation_code="CODE",
            contact_email="a@example.com",
            is_new_method=True,
            report_link="https://pub.example.com/report/CODE",
        )

        assert evidence.to_dict() == {
            "invitation_code": "CODE",
            "contact_email": "a@example.com",
            "is_new_method": True,
            "report_link": "https://pub.example.com/report/CODE",
        }
