"""Pipeline orchestrator: wires all 6 stages together."""

from __future__ import annotations

import time

import httpx
import structlog

from affiliate_redirect.config import settings
from affiliate_redirect.models import (
    Credentials,
    Normalized,
    PartnerRegistry,
    PipelineResult,
    RedirectDecision,
    RedirectOutcome,
    RedirectRequest,
    RejectReason,
    TargetRejected,
    Unmatched,
)
from affiliate_redirect.pipeline import stage1_normalize, stage2_sanitize, stage3_expand
from affiliate_redirect.pipeline import stage4_classify, stage5_build, stage6_dispatch

logger = structlog.get_logger(__name__)


async def _resolve(
    request: RedirectRequest,
    registry: PartnerRegistry,
    credentials: Credentials,
    enforce_allowlist: bool,
    transport: httpx.AsyncBaseTransport | None,
) -> RedirectOutcome:
    if not request.target or not request.target.strip():
        return TargetRejected(reason=RejectReason.MISSING_URL)

    # ------------------------------------------------------------------ #
    # Stage 1: Normalize (the only terminal failure point)                #
    # ------------------------------------------------------------------ #
    normalized = stage1_normalize.normalize_target(request.target)
    if isinstance(normalized, TargetRejected):
        return normalized

    # ------------------------------------------------------------------ #
    # Stage 2: Sanitize                                                    #
    # ------------------------------------------------------------------ #
    url = stage2_sanitize.sanitize_query(
        normalized.url, settings.attribution_source, settings.attribution_medium
    )
    host = normalized.host

    # ------------------------------------------------------------------ #
    # Stage 3: Expand brand shortlinks                                     #
    # ------------------------------------------------------------------ #
    expansion = await stage3_expand.expand_shortlink(
        url,
        registry.shortlinks,
        hop_timeout=settings.expansion_hop_timeout_seconds,
        budget=settings.expansion_budget_seconds,
        transport=transport,
    )
    expanded = False
    if expansion.expanded:
        # The resolved URL came from a third-party Location header; it gets the
        # same treatment as client input before it is used.
        resolved = stage1_normalize.normalize_target(expansion.url)
        if isinstance(resolved, Normalized):
            url = stage2_sanitize.sanitize_query(
                resolved.url, settings.attribution_source, settings.attribution_medium
            )
            host = resolved.host
            expanded = True

    # ------------------------------------------------------------------ #
    # Stage 4: Classify                                                    #
    # ------------------------------------------------------------------ #
    classification = stage4_classify.classify(host, registry)
    if isinstance(classification, Unmatched) and enforce_allowlist:
        return TargetRejected(reason=RejectReason.DOMAIN_NOT_ALLOWED, host=host)

    # ------------------------------------------------------------------ #
    # Stage 5: Build                                                       #
    # ------------------------------------------------------------------ #
    link = stage5_build.build_affiliate_url(url, classification, credentials)

    return RedirectDecision(
        location=link.url,
        host=host,
        network=link.network,
        is_affiliate=link.is_affiliate,
        expanded=expanded,
    )


async def run_pipeline(
    request: RedirectRequest,
    registry: PartnerRegistry,
    credentials: Credentials,
    enforce_allowlist: bool = False,
    transport: httpx.AsyncBaseTransport | None = None,
) -> PipelineResult:
    """Resolve *request* into a redirect decision or a rejection.

    Stages:
        1. Normalize the raw target (terminal on failure).
        2. Sanitize the query string.
        3. Expand brand shortlinks (degrades silently).
        4. Classify the host against the registry.
        5. Build the affiliate URL (degrades to passthrough).
        6. Record the decision in the structured log.

    Args:
        request:           Inbound redirect request.
        registry:          Static partner registry.
        credentials:       Process-wide network credentials.
        enforce_allowlist: Reject unclassified hosts with 403 instead of
                           passing them through.
        transport:         Optional httpx transport for shortlink hops.

    Returns:
        :class:`PipelineResult` carrying the outcome and its log event. The
        event is not forwarded to the webhook here; that is left to the
        caller so it can happen after the response is sent.
    """
    t_start = time.perf_counter()
    log = logger.bind(correlation_id=request.correlation_id)

    outcome = await _resolve(request, registry, credentials, enforce_allowlist, transport)

    event = stage6_dispatch.make_event(request, outcome)
    stage6_dispatch.record_event(event, enabled=settings.log_enabled)

    elapsed_ms = (time.perf_counter() - t_start) * 1000
    if isinstance(outcome, TargetRejected):
        log.info("pipeline.rejected", reason=outcome.reason.value, latency_ms=round(elapsed_ms, 1))
    else:
        log.info(
            "pipeline.complete",
            host=outcome.host,
            network=event.network,
            is_affiliate=outcome.is_affiliate,
            latency_ms=round(elapsed_ms, 1),
        )
    return PipelineResult(outcome=outcome, event=event)
