"""Cross-pipeline timing disambiguation.

Outreach teams often target the same artist through several campaigns, so
a client can qualify for more than one channel. Before crediting Instagram
or an inbound audit, check whether another channel reached the client
first and, if so, credit that channel instead.

Comparisons are strict: a contact at the same instant as the competing
event does not override the channel under consideration.
"""

from __future__ import annotations

import logging
from datetime import datetime

from funnelnav.attribution.index import AttributionIndex
from funnelnav.attribution.matchers import (
    AuditMatcher,
    EmailAnyMatcher,
    InstagramMatcher,
)
from funnelnav.attribution.schema import (
    AttributionDecision,
    AttributionMethod,
    AuditEvidence,
    Client,
    EmailEvidence,
    Evidence,
    InstagramEvidence,
)

logger = logging.getLogger(__name__)

EMAIL_BEFORE_INSTAGRAM = "Email contact preceded Instagram contact"
EMAIL_BEFORE_AUDIT = "Email contact preceded audit request"
INSTAGRAM_BEFORE_AUDIT = "Instagram contact preceded audit request"


class CrossPipelineDisambiguator:
    """Decide which channel was the true first contact for a client.

    Example:
        >>> disambiguator = CrossPipelineDisambiguator(index, email_any, instagram, audit)
        >>> decision = disambiguator.resolve(client, signup_date, instagram_evidence)
        >>> decision.method
        <AttributionMethod.CROSS_PIPELINE_TIMING: 'cross_pipeline_timing'>
    """

    def __init__(
        self,
        index: AttributionIndex,
        email: EmailAnyMatcher,
        instagram: InstagramMatcher,
        audit: AuditMatcher,
    ) -> None:
        self.index = index
        self.email = email
        self.instagram = instagram
        self.audit = audit

    def email_contact_date(self, client: Client, signup_date: datetime) -> datetime | None:
        """Return the client's earliest email contact sent before signup.

        Emails sent after the signup cannot have led to it and are ignored.
        """
        if not client.email or self.index.earliest_email_date(client.email) is None:
            return None
        evidence = self.email.earliest(client, signup_date)
        return evidence.contacted_date if evidence else None

    def resolve(
        self,
        client: Client,
        signup_date: datetime,
        evidence: Evidence,
    ) -> AttributionDecision | None:
        """Resolve an Instagram or audit candidate.

        Args:
            client: Client being attributed.
            signup_date: Parsed signup date.
            evidence: Evidence accepted by the Instagram or audit matcher.

        Returns:
            The final decision, or None if an earlier channel was found but
            no evidence could be derived for it.
        """
        if isinstance(evidence, InstagramEvidence):
            return self._resolve_instagram(client, signup_date, evidence)
        if isinstance(evidence, AuditEvidence):
            return self._resolve_audit(client, signup_date, evidence)
        raise TypeError(f"Cannot disambiguate {type(evidence).__name__}")

    def _email_override(
        self,
        client: Client,
        signup_date: datetime,
        note: str,
    ) -> AttributionDecision | None:
        email_evidence: EmailEvidence | None = self.email.try_match(
            client, signup_date
        ) or self.email.earliest(client, signup_date)
        if email_evidence is None:
            return None
        logger.debug(f"Cross-pipeline override for {client.email}: {note}")
        return self.email.decide(
            client,
            email_evidence,
            method=AttributionMethod.CROSS_PIPELINE_TIMING,
            note=note,
        )

    def _resolve_instagram(
        self,
        client: Client,
        signup_date: datetime,
        evidence: InstagramEvidence,
    ) -> AttributionDecision | None:
        email_date = self.email_contact_date(client, signup_date)
        instagram_date = self.instagram.contact_date(client)

        if email_date and instagram_date and email_date < instagram_date:
            return self._email_override(client, signup_date, EMAIL_BEFORE_INSTAGRAM)

        return self.instagram.decide(client, evidence)

    def _resolve_audit(
        self,
        client: Client,
        signup_date: datetime,
        evidence: AuditEvidence,
    ) -> AttributionDecision | None:
        email_date = self.email_contact_date(client, signup_date)
        instagram_date = self.instagram.contact_date(client)

        # Email only wins the comparison when strictly earlier than Instagram
        if email_date and (instagram_date is None or email_date < instagram_date):
            earlier_date, earlier_channel = email_date, "email"
        elif instagram_date:
            earlier_date, earlier_channel = instagram_date, "instagram"
        else:
            return self.audit.decide(client, evidence)

        if not earlier_date < evidence.audit_date:
            return self.audit.decide(client, evidence)

        if earlier_channel == "email":
            return self._email_override(client, signup_date, EMAIL_BEFORE_AUDIT)

        instagram_evidence = self.instagram.lookup(client)
        if instagram_evidence is None:
            return None
        logger.debug(f"Cross-pipeline override for {client.email}: {INSTAGRAM_BEFORE_AUDIT}")
        return self.instagram.decide(
            client,
            instagram_evidence,
            method=AttributionMethod.CROSS_PIPELINE_TIMING,
            note=INSTAGRAM_BEFORE_AUDIT,
        )
