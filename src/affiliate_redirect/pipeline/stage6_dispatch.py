"""Stage 6: Decision record: local structured log plus optional webhook."""

from __future__ import annotations

from datetime import datetime, timezone

import httpx
import structlog

from affiliate_redirect.models import LogEvent, RedirectDecision, RedirectOutcome, RedirectRequest
from affiliate_redirect.services.webhook import WebhookClient

logger = structlog.get_logger(__name__)


def make_event(request: RedirectRequest, outcome: RedirectOutcome) -> LogEvent:
    """Describe *outcome* as a write-once :class:`LogEvent`."""
    now = datetime.now(timezone.utc)
    if isinstance(outcome, RedirectDecision):
        return LogEvent(
            timestamp=now,
            outcome="redirect",
            status=outcome.status_code,
            host=outcome.host,
            network=outcome.network.value if outcome.network else "none",
            is_affiliate=outcome.is_affiliate,
            correlation_id=request.correlation_id,
            user_agent=request.user_agent[:256],
        )
    return LogEvent(
        timestamp=now,
        outcome="rejected",
        status=outcome.status_code,
        host=outcome.host,
        reason=outcome.reason.value,
        correlation_id=request.correlation_id,
        user_agent=request.user_agent[:256],
    )


def record_event(event: LogEvent, enabled: bool) -> None:
    """Write *event* to the local structured log if logging is enabled.

    The record is nested under ``decision`` so its own ``timestamp`` is not
    replaced by the time the log line was written.
    """
    if not enabled:
        return
    logger.info("redirect.decision", decision=event.model_dump(mode="json"))


async def forward_event(
    event: LogEvent,
    webhook_url: str,
    timeout: float,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """POST *event* to the webhook exactly once.

    Runs after the response has been sent. Failures are logged and
    swallowed; there is no retry.

    Args:
        event:       Decision record.
        webhook_url: Endpoint receiving the JSON payload.
        timeout:     Request timeout in seconds.
        transport:   Optional httpx transport override.

    Returns:
        ``True`` if the webhook accepted the event.
    """
    try:
        async with WebhookClient(webhook_url, timeout=timeout, transport=transport) as client:
            await client.post(event.model_dump(mode="json"))
    except Exception as exc:  # noqa: BLE001
        logger.warning("dispatch.failed", error=str(exc), correlation_id=event.correlation_id)
        return False
    logger.debug("dispatch.sent", correlation_id=event.correlation_id)
    return True
