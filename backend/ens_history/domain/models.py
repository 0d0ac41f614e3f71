"""Typed domain representations shared by ingestion, reconciliation, and APIs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


@dataclass(frozen=True, slots=True)
class TransferEvent:
    """One ownership-change event for a domain, as indexed by the subgraph."""

    owner_address: str
    block_number: int
    transaction_hash: str
    domain_id: str | None = None
    domain_name: str | None = None


@dataclass(frozen=True, slots=True)
class RegistrationRecord:
    """A (re-)registration of a domain with its registrant and expiry."""

    registrant_address: str
    registration_date: datetime
    expiry_date: datetime | None = None


@dataclass(frozen=True, slots=True)
class DomainRecord:
    """Domain row with its present on-chain owner."""

    node: str
    name: str
    owner_address: str | None
    created_at: datetime | None = None


@dataclass(slots=True)
class DomainSnapshot:
    """Everything the subgraph returned for one domain lookup."""

    domain: DomainRecord
    transfers: list[TransferEvent] = field(default_factory=list)
    registrations: list[RegistrationRecord] = field(default_factory=list)


@dataclass(slots=True)
class OwnershipPeriod:
    """A contiguous span of time attributed to one owner."""

    owner_address: str
    start: datetime
    end: datetime | None = None
    transaction_hash: str = ""
    block_number: int = 0
    is_marketplace: bool = False
    marketplace_label: str | None = None
    avatar: str | None = None

    @property
    def owner_key(self) -> str:
        return self.owner_address.lower()


@dataclass(slots=True)
class ReconciledTimeline:
    """Closed historical periods plus the single current period."""

    historical_periods: list[OwnershipPeriod]
    current_period: OwnershipPeriod
    expiry_date: datetime | None = None


@dataclass(slots=True)
class DomainHistory:
    name: str
    timeline: ReconciledTimeline


@dataclass(frozen=True, slots=True)
class DisplayPeriod:
    """Rendering-ready period; dormant entries fill gaps between owners."""

    owner_address: str
    start: datetime
    end: datetime | None
    duration: timedelta
    is_dormant: bool = False
    is_current: bool = False
    transaction_hash: str = ""
    block_number: int = 0
    is_marketplace: bool = False
    marketplace_label: str | None = None
    avatar: str | None = None

    @property
    def duration_ms(self) -> int:
        return self.duration // timedelta(milliseconds=1)


@dataclass(slots=True)
class DisplaySummary:
    """Whole-timeline figures; ``weights`` and ``offsets`` align with the periods."""

    born_on: datetime | None
    lifespan: timedelta
    approximate_age_years: int | None
    years: list[int] = field(default_factory=list)
    weights: list[float] = field(default_factory=list)
    offsets: list[float] = field(default_factory=list)


@dataclass(slots=True)
class DomainTimeline:
    name: str
    periods: list[DisplayPeriod]
    summary: DisplaySummary
    expiry_date: datetime | None = None


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    name: str
    transfer_count: int


@dataclass(slots=True)
class Leaderboard:
    entries: list[LeaderboardEntry]
    total_transfers_analyzed: int
