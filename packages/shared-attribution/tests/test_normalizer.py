"""Tests for input bundle normalization."""

import logging

import pandas as pd
import pytest
from funnelnav.attribution.exceptions import InputShapeError
from funnelnav.attribution.normalizer import AttributionInput, load_bundle
from funnelnav.attribution.schema import CampaignKind, ContactVersion


class TestLoadBundle:
    """Test load_bundle."""

    def test_sample_bundle(self, sample_bundle):
        """Test every data source is parsed."""
        bundle = load_bundle(sample_bundle)

        assert len(bundle.clients) == 7
        assert len(bundle.touchpoints_for(ContactVersion.V1)) == 1
        assert len(bundle.touchpoints_for(ContactVersion.V3)) == 1
        assert len(bundle.instagram_leads) == 1
        assert len(bundle.statuses_for(CampaignKind.AUDIT_LINK)) == 1
        assert len(bundle.audits) == 1
        assert len(bundle.contacts) == 1

    def test_summary(self, sample_bundle):
        """Test record counts per data source."""
        assert load_bundle(sample_bundle).summary() == {
            "clients": 7,
            "contacts": 1,
            "v1_contact_stats": 1,
            "v2_contact_stats": 0,
            "v3_contact_stats": 1,
            "v3_subsequence_stats": 0,
            "convrt_leads": 1,
            "convrt_audit_status": 1,
            "convrt_report_status": 0,
            "audits": 1,
        }

    def test_snake_case_keys(self, make_client, make_touchpoint):
        """Test snake_case bundle keys."""
        bundle = load_bundle(
            {
                "clients": [make_client("a@example.com")],
                "v3_subsequence_stats": [make_touchpoint("a@example.com", "2025-06-01")],
                "convrt_report_status": [{"handle": "@a", "sent": "2025-06-01"}],
            }
        )

        assert len(bundle.touchpoints_for(ContactVersion.V3_SUBSEQUENCE)) == 1
        assert len(bundle.statuses_for(CampaignKind.REPORT_LINK)) == 1

    def test_dataframe_input(self):
        """Test DataFrames are accepted and NaN becomes None."""
        clients = pd.DataFrame(
            [
                {"email": "a@example.com", "signup_date": "15/06/2025", "spotify_id": "S1"},
                {"email": "b@example.com", "signup_date": "16/06/2025", "spotify_id": None},
            ]
        )

        bundle = load_bundle({"clients": clients})

        assert [c.email for c in bundle.clients] == ["a@example.com", "b@example.com"]
        assert bundle.clients[1].spotify_id is None
        assert bundle.clients[1].raw_data["spotify_id"] is None

    def test_missing_lists_are_empty(self, make_client):
        """Test absent data sources are treated as empty."""
        bundle = load_bundle({"clients": [make_client("a@example.com")]})

        assert len(bundle.clients) == 1
        assert bundle.touchpoints_for(ContactVersion.V1) == ()
        assert bundle.audits == ()

    def test_wrong_shape_is_empty(self, make_client, caplog):
        """Test a non-list data source is treated as empty."""
        with caplog.at_level(logging.WARNING):
            bundle = load_bundle(
                {"clients": [make_client("a@example.com")], "audits": "not a list"}
            )

        assert bundle.audits == ()
        assert "audits" in caplog.text

    def test_non_object_rows_skipped(self, make_client):
        """Test rows that are not objects are skipped."""
        bundle = load_bundle({"clients": [make_client("a@example.com"), "junk", 42]})

        assert len(bundle.clients) == 1

    def test_missing_clients(self, caplog):
        """Test a bundle without clients processes zero clients."""
        with caplog.at_level(logging.WARNING):
            bundle = load_bundle({"audits": []})

        assert bundle.clients == ()
        assert "no clients" in caplog.text

    @pytest.mark.parametrize("data", [None, [], "bundle", 42])
    def test_non_mapping_bundle(self, data):
        """Test a bundle that is not a mapping yields an empty input."""
        assert load_bundle(data) == AttributionInput()


class TestStrictMode:
    """Test load_bundle(strict=True)."""

    def test_non_mapping_raises(self):
        """Test a non-mapping bundle raises."""
        with pytest.raises(InputShapeError):
            load_bundle([], strict=True)

    def test_wrong_shape_raises(self):
        """Test a non-list data source raises."""
        with pytest.raises(InputShapeError, match="audits"):
            load_bundle({"clients": [], "audits": {"spotify_id": "S1"}}, strict=True)

    def test_non_object_rows_raise(self):
        """Test non-object rows raise."""
        with pytest.raises(InputShapeError, match="clients"):
            load_bundle({"clients": ["junk"]}, strict=True)

    def test_valid_bundle(self, sample_bundle):
        """Test a valid bundle loads in strict mode."""
        assert len(load_bundle(sample_bundle, strict=True).clients) == 7
