"""Shared pytest fixtures for FunnelNav packages."""

from datetime import UTC, datetime, timedelta

import pytest

SIGNUP = datetime(2025, 6, 15, 12, 0, 0, tzinfo=UTC)
SIGNUP_STR = "15/06/2025"
INVITE_CODE = "a1b2c3d4-e5f6-4a7b-8c9d-0e1f2a3b4c5d"


@pytest.fixture
def signup():
    """Signup date shared by the sample clients (12:00 UTC)."""
    return SIGNUP


@pytest.fixture
def days_before():
    """Return an ISO timestamp ``n`` days before the sample signup date."""

    def _days_before(n: int, time: str = "09:30:00") -> str:
        day = (SIGNUP - timedelta(days=n)).date()
        return f"{day.isoformat()}T{time}Z"

    return _days_before


@pytest.fixture
def make_client():
    """Factory for raw client rows."""

    def _make_client(email: str, **fields):
        row = {"email": email, "signup_date": SIGNUP_STR, "revenue": "100"}
        row.update(fields)
        return row

    return _make_client


@pytest.fixture
def make_touchpoint():
    """Factory for raw sequence statistics rows (outreach CSV headers)."""

    def _make_touchpoint(email: str, contacted: str, subject: str = "", content: str = "", **fields):
        row = {
            "Contact email address": email,
            "Contacted date": contacted,
            "Email subject": subject,
            "Email content": content,
            "From email": "outreach@example.com",
            "Opened date": None,
            "Replied date": None,
        }
        row.update(fields)
        return row

    return _make_touchpoint


@pytest.fixture
def sample_bundle(days_before, make_client, make_touchpoint):
    """Bundle with one client per channel plus two unattributed clients."""
    return {
        "clients": [
            make_client("old@example.com", revenue="100"),
            make_client("new@example.com", revenue=250.5),
            make_client("insta@example.com", spotify_id="SPOTIFYIG01", revenue="75"),
            make_client("audit@example.com", spotify_id="SPOTIFYAUDIT01", revenue="abc"),
            make_client("invite@example.com", invitation_code=INVITE_CODE, revenue=None),
            make_client("nobody@example.com", revenue="10"),
            make_client("nodate@example.com", signup_date="", revenue="5"),
        ],
        "v1ContactStats": [
            make_touchpoint(
                "old@example.com",
                days_before(10),
                subject="Mechanical royalties tied to your music",
            ),
        ],
        "v2ContactStats": [],
        "v3ContactStats": [
            make_touchpoint(
                "new@example.com",
                days_before(20),
                subject="Missing publishing royalties for Artist",
            ),
        ],
        "v3SubsequenceStats": [],
        "convrtLeads": [
            {
                "spotify_id": "SPOTIFYIG01",
                "handle": "@insta_artist",
                "full_name": "Insta Artist",
                "method": "audit_link",
            },
        ],
        "convrtAuditStatus": [
            {
                "handle": "@insta_artist",
                "full_name": "Insta Artist",
                "sent": days_before(30),
                "replied": days_before(28),
                "blocked": False,
                "campaign_id": "CAMP-IG-1",
            },
        ],
        "convrtReportStatus": [],
        "audits": [
            {
                "spotify_id": "SPOTIFYAUDIT01",
                "created_at": days_before(5),
                "referral_source": "google",
                "artist_name": "Audit Artist",
                "has_sent_webhook": True,
            },
        ],
        "contacts": [
            {
                "email": "invite@example.com",
                "created_at": "2025-04-01T10:00:00Z",
                "customVars": {"report_link": f"https://invite.example.com/{INVITE_CODE}"},
            },
        ],
    }
