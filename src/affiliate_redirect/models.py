"""Pydantic v2 data models for the redirect pipeline."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Partner registry
# ---------------------------------------------------------------------------


class NetworkKind(str, Enum):
    """Supported affiliate networks."""

    AWIN = "awin"
    CJ = "cj"
    AMAZON = "amazon"


class AwinParams(BaseModel):
    """AWIN programme: merchant id is per advertiser."""

    model_config = ConfigDict(frozen=True)

    network: Literal["awin"] = "awin"
    mid: Optional[str] = None

    @field_validator("mid", mode="before")
    @classmethod
    def _coerce_mid(cls, value: object) -> Optional[str]:
        # YAML hands numeric ids over as int.
        if value is None:
            return None
        return str(value).strip() or None


class CjParams(BaseModel):
    """CJ programme: the publisher id is process-wide."""

    model_config = ConfigDict(frozen=True)

    network: Literal["cj"] = "cj"


class AmazonParams(BaseModel):
    """Amazon Associates: the partner tag is process-wide."""

    model_config = ConfigDict(frozen=True)

    network: Literal["amazon"] = "amazon"


NetworkParams = Annotated[
    Union[AwinParams, CjParams, AmazonParams],
    Field(discriminator="network"),
]


def _clean_domain(value: str) -> str:
    return value.strip().strip(".").lower()


class PartnerEntry(BaseModel):
    """One registry row: a shop domain and how to track it."""

    model_config = ConfigDict(frozen=True)

    domain: str = Field(..., min_length=1)
    params: NetworkParams

    @field_validator("domain")
    @classmethod
    def _normalise_domain(cls, value: str) -> str:
        return _clean_domain(value)

    @property
    def network(self) -> NetworkKind:
        return NetworkKind(self.params.network)


class ShortlinkRule(BaseModel):
    """A brand short-domain and the root domain its links resolve to."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(..., min_length=1)
    root: str = Field(..., min_length=1)

    @field_validator("host", "root")
    @classmethod
    def _normalise(cls, value: str) -> str:
        return _clean_domain(value)


class PartnerRegistry(BaseModel):
    """Immutable lookup table, built once at startup.

    ``entries`` are kept sorted longest domain first so the first suffix hit
    is always the most specific one.
    """

    model_config = ConfigDict(frozen=True)

    entries: tuple[PartnerEntry, ...] = ()
    shortlinks: tuple[ShortlinkRule, ...] = ()

    @field_validator("entries")
    @classmethod
    def _sort_entries(cls, value: tuple[PartnerEntry, ...]) -> tuple[PartnerEntry, ...]:
        return tuple(sorted(value, key=lambda e: (-len(e.domain), e.domain)))


class Credentials(BaseModel):
    """Process-wide network credentials. Blank values count as missing."""

    model_config = ConfigDict(frozen=True)

    awin_affiliate_id: Optional[str] = None
    cj_publisher_id: Optional[str] = None
    amazon_partner_tag: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> Optional[str]:
        if value is None:
            return None
        return str(value).strip() or None


# ---------------------------------------------------------------------------
# Intermediate pipeline models
# ---------------------------------------------------------------------------


class RejectReason(str, Enum):
    """Stable machine-readable reason codes for rejected requests."""

    MISSING_URL = "missing_url"
    INVALID_URL = "invalid_url"
    BAD_PROTOCOL = "bad_protocol"
    DOMAIN_NOT_ALLOWED = "domain_not_allowed"


class RedirectRequest(BaseModel):
    """Inbound redirect request, as extracted from the HTTP layer."""

    model_config = ConfigDict(frozen=True)

    target: Optional[str] = None
    correlation_id: Optional[str] = None
    wants_json: bool = False
    user_agent: str = ""


class Normalized(BaseModel):
    """A well-formed absolute http(s) URL."""

    model_config = ConfigDict(frozen=True)

    url: str
    host: str


class TargetRejected(BaseModel):
    """Terminal pipeline outcome: the request cannot be redirected."""

    model_config = ConfigDict(frozen=True)

    reason: RejectReason
    host: str = ""

    @property
    def status_code(self) -> int:
        return 403 if self.reason is RejectReason.DOMAIN_NOT_ALLOWED else 400


class ExpansionResult(BaseModel):
    """Outcome of shortlink expansion; always carries a usable URL."""

    model_config = ConfigDict(frozen=True)

    url: str
    hops: int = 0
    expanded: bool = False
    degraded: bool = False
    error: Optional[str] = None


class Matched(BaseModel):
    """The host belongs to a known partner."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["matched"] = "matched"
    domain: str
    params: NetworkParams

    @property
    def network(self) -> NetworkKind:
        return NetworkKind(self.params.network)


class Unmatched(BaseModel):
    """The host is not in the registry."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["unmatched"] = "unmatched"


Classification = Union[Matched, Unmatched]


class AffiliateLink(BaseModel):
    """Final outbound URL and whether tracking was applied."""

    model_config = ConfigDict(frozen=True)

    url: str
    network: Optional[NetworkKind] = None
    is_affiliate: bool = False


class RedirectDecision(BaseModel):
    """Successful pipeline outcome."""

    model_config = ConfigDict(frozen=True)

    location: str
    host: str
    network: Optional[NetworkKind] = None
    is_affiliate: bool = False
    expanded: bool = False
    status_code: int = 302


RedirectOutcome = Union[RedirectDecision, TargetRejected]


class LogEvent(BaseModel):
    """Structured decision record emitted once per request."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    outcome: Literal["redirect", "rejected"]
    status: int
    host: str = ""
    network: str = "none"
    is_affiliate: bool = False
    reason: Optional[str] = None
    correlation_id: Optional[str] = None
    user_agent: str = ""


class PipelineResult(BaseModel):
    """What the orchestrator hands back to the HTTP layer."""

    model_config = ConfigDict(frozen=True)

    outcome: RedirectOutcome
    event: LogEvent


# ---------------------------------------------------------------------------
# API response models
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """JSON body for a rejected redirect."""

    ok: bool = False
    service: str = "2list-redirect"
    reason: str
    host: str = ""
    message: str


class HealthResponse(BaseModel):
    """Response from GET /health."""

    ok: bool
    ts: int


class WhoAmIResponse(BaseModel):
    """Response from GET /whoami."""

    ok: bool
    env: str
    commit: str
    now: int
