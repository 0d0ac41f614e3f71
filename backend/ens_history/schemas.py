from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator


class OwnerPeriod(BaseModel):
    owner_address: str
    start: datetime
    end: datetime | None = None
    transaction_hash: str = ""
    block_number: str = "0"
    is_marketplace: bool = False
    marketplace_label: str | None = None
    avatar: str | None = None

    model_config = {"from_attributes": True}

    @field_validator("block_number", mode="before")
    @classmethod
    def _stringify_block(cls, value: Any) -> str:
        # Block heights are sent as decimal strings to avoid precision loss in JS clients.
        if value is None:
            return "0"
        return str(value)


class HistoryResponse(BaseModel):
    name: str
    owners: list[OwnerPeriod]
    current_owner: OwnerPeriod
    expiry_date: datetime | None = None


class TimelinePeriod(OwnerPeriod):
    is_dormant: bool = False
    is_current: bool = False
    duration_ms: int
    weight: float = 0.0
    offset: float = 0.0


class TimelineSummary(BaseModel):
    born_on: datetime | None = None
    lifespan_ms: int
    lifespan_text: str
    approximate_age_years: int | None = None
    years: list[int] = Field(default_factory=list)


class TimelineResponse(BaseModel):
    name: str
    periods: list[TimelinePeriod]
    summary: TimelineSummary
    expiry_date: datetime | None = None


class LeaderboardEntry(BaseModel):
    name: str
    transfer_count: int

    model_config = {"from_attributes": True}


class LeaderboardResponse(BaseModel):
    leaderboard: list[LeaderboardEntry]
    total_transfers_analyzed: int
