"""Domain models for ENS ownership history."""

from .models import (
    ZERO_ADDRESS,
    DisplayPeriod,
    DisplaySummary,
    DomainHistory,
    DomainRecord,
    DomainSnapshot,
    DomainTimeline,
    Leaderboard,
    LeaderboardEntry,
    OwnershipPeriod,
    ReconciledTimeline,
    RegistrationRecord,
    TransferEvent,
)

__all__ = [
    "ZERO_ADDRESS",
    "DisplayPeriod",
    "DisplaySummary",
    "DomainHistory",
    "DomainRecord",
    "DomainSnapshot",
    "DomainTimeline",
    "Leaderboard",
    "LeaderboardEntry",
    "OwnershipPeriod",
    "ReconciledTimeline",
    "RegistrationRecord",
    "TransferEvent",
]
