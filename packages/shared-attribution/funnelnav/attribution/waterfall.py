"""Waterfall attribution orchestrator.

Each client is tried against the channel matchers in fixed priority order
and the first accepted match wins:

1. Email Outreach - Old Method (V1/V2 sequences)
2. Email Outreach - New Method (V3 sequences)
3. Instagram Outreach (cross-pipeline timing check)
4. Royalty Audit (cross-pipeline timing check)
5. Invitation code fallback
6. Unattributed
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from funnelnav.attribution.config import AttributionConfig
from funnelnav.attribution.disambiguator import CrossPipelineDisambiguator
from funnelnav.attribution.exceptions import DateParseError
from funnelnav.attribution.funnel import calculate_funnel_metrics
from funnelnav.attribution.index import AttributionIndex
from funnelnav.attribution.matchers import (
    AuditMatcher,
    ChannelMatcher,
    EmailAnyMatcher,
    EmailNewMatcher,
    EmailOldMatcher,
    InstagramMatcher,
    InvitationMatcher,
)
from funnelnav.attribution.normalizer import AttributionInput, load_bundle
from funnelnav.attribution.parsing import parse_client_date
from funnelnav.attribution.report import AttributionReport, build_report
from funnelnav.attribution.schema import AttributionDecision, AttributionSource, Client

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[dict[str, Any]], None]

# Channels whose candidates go through the cross-pipeline timing check
DISAMBIGUATED_SOURCES = (AttributionSource.INSTAGRAM, AttributionSource.AUDIT)


class RunStatus(str, Enum):
    """Stage of an attribution run, reported through the progress callback."""

    LOADING = "loading"
    ATTRIBUTING = "attributing"
    REPORTING = "reporting"
    COMPLETED = "completed"


PROGRESS_MILESTONES: dict[RunStatus, tuple[str, int]] = {
    RunStatus.LOADING: ("Loading all data sources...", 0),
    RunStatus.ATTRIBUTING: ("Processing waterfall attribution...", 20),
    RunStatus.REPORTING: ("Generating final report...", 80),
    RunStatus.COMPLETED: ("Attribution processing complete", 100),
}


class WaterfallAttribution:
    """Attribute clients to a single channel using priority-ordered matching.

    The per-client evaluation reads only the run's immutable index, so
    clients can be evaluated in any order or in parallel.

    Example:
        >>> engine = WaterfallAttribution(progress_callback=print)
        >>> report = engine.run(bundle)
        >>> report.attribution_rate_display
        '71.7%'
    """

    def __init__(
        self,
        config: AttributionConfig | None = None,
        progress_callback: ProgressCallback | None = None,
        max_workers: int | None = None,
    ):
        """Initialize the engine.

        Args:
            config: Timing windows and cutoffs (default: AttributionConfig()).
            progress_callback: Called with ``{"message", "progress"}`` at each milestone.
            max_workers: Evaluate clients on this many threads (default: sequential).
        """
        self.config = config or AttributionConfig()
        self.progress_callback = progress_callback
        self.max_workers = max_workers

    def report_progress(self, status: RunStatus) -> None:
        """Notify the progress callback, if any."""
        message, progress = PROGRESS_MILESTONES[status]
        if self.progress_callback is None:
            return
        try:
            self.progress_callback({"message": message, "progress": progress})
        except Exception as e:
            logger.warning(f"Progress callback failed at {status.value}: {e}")

    def run(self, data: Any) -> AttributionReport:
        """Run attribution over a raw input bundle.

        Args:
            data: Raw bundle (see ``load_bundle``) or an AttributionInput.

        Returns:
            AttributionReport with one decision per client.
        """
        logger.info("Starting waterfall attribution processing")

        self.report_progress(RunStatus.LOADING)
        bundle = data if isinstance(data, AttributionInput) else load_bundle(data)

        self.report_progress(RunStatus.ATTRIBUTING)
        decisions = self.attribute(bundle)

        self.report_progress(RunStatus.REPORTING)
        report = build_report(
            decisions,
            data_sources_summary=bundle.summary(),
            processing_date=datetime.now(UTC),
            funnel_metrics=calculate_funnel_metrics(bundle, decisions),
        )

        self.report_progress(RunStatus.COMPLETED)
        return report

    def attribute(self, bundle: AttributionInput) -> list[AttributionDecision]:
        """Return one decision per client, in client order."""
        run = _WaterfallRun(AttributionIndex(bundle), self.config)

        logger.info(f"Attributing {len(bundle.clients)} clients")
        if self.max_workers and self.max_workers > 1 and len(bundle.clients) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                return list(executor.map(run.attribute_client, bundle.clients))
        return [run.attribute_client(client) for client in bundle.clients]


class _WaterfallRun:
    """Matchers and indices bound to one input bundle."""

    def __init__(self, index: AttributionIndex, config: AttributionConfig) -> None:
        self.steps: list[ChannelMatcher] = [
            EmailOldMatcher(index, config),
            EmailNewMatcher(index, config),
            InstagramMatcher(index, config),
            AuditMatcher(index, config),
            InvitationMatcher(index, config),
        ]
        self.disambiguator = CrossPipelineDisambiguator(
            index,
            email=EmailAnyMatcher(index, config),
            instagram=InstagramMatcher(index, config),
            audit=AuditMatcher(index, config),
        )

    def attribute_client(self, client: Client) -> AttributionDecision:
        """Attribute one client; failures only affect this client."""
        try:
            return self._evaluate(client)
        except Exception:
            logger.exception(f"Attribution failed for {client.email or '<no email>'}")
            return AttributionDecision.unattributed(client)

    def _evaluate(self, client: Client) -> AttributionDecision:
        try:
            signup_date = parse_client_date(client.signup_date)
        except DateParseError:
            logger.debug(f"Invalid signup date for {client.email}: {client.signup_date!r}")
            signup_date = None

        if signup_date is None:
            return AttributionDecision.unattributed(client)

        for matcher in self.steps:
            evidence = matcher.try_match(client, signup_date)
            if evidence is None:
                continue

            if matcher.source in DISAMBIGUATED_SOURCES:
                decision = self.disambiguator.resolve(client, signup_date, evidence)
                if decision is None:
                    continue
            else:
                decision = matcher.decide(client, evidence)

            logger.debug(
                f"{client.email}: {decision.source.value} via {decision.method.value}"
            )
            return decision

        return AttributionDecision.unattributed(client)


def run_attribution(
    data: Any,
    config: AttributionConfig | None = None,
    progress_callback: ProgressCallback | None = None,
    max_workers: int | None = None,
) -> AttributionReport:
    """Run waterfall attribution over a raw input bundle.

    Example:
        report = run_attribution({
            "clients": clients,
            "v1ContactStats": v1_stats,
            "v3ContactStats": v3_stats,
            "convrtLeads": leads,
            "audits": audits,
        })
        print(report.to_dict()["attribution_rate"])
    """
    engine = WaterfallAttribution(
        config=config,
        progress_callback=progress_callback,
        max_workers=max_workers,
    )
    return engine.run(data)
