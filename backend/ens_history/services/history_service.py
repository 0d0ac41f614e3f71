"""Look up a domain and reconcile its ownership history."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import httpx
from loguru import logger

from ens_history.domain import (
    ZERO_ADDRESS,
    DomainHistory,
    DomainSnapshot,
    DomainTimeline,
    OwnershipPeriod,
)
from ens_history.errors import NotFoundError, SubgraphQueryError, UnresolvedOwnerError
from ens_ingestion.normalize import namehash, normalize_name

from .display import build_display, summarize_display
from .timeline import reconcile

if TYPE_CHECKING:
    from ens_ingestion.avatar import AvatarClient
    from ens_ingestion.blocks import BlockTimestampSource
    from ens_ingestion.client import SubgraphClient


class HistoryService:
    """Facade combining the subgraph, block timestamps, and avatars with the reconciler."""

    def __init__(
        self,
        subgraph: "SubgraphClient",
        *,
        timestamps: "BlockTimestampSource | None" = None,
        avatars: "AvatarClient | None" = None,
    ) -> None:
        self._subgraph = subgraph
        self._timestamps = timestamps
        self._avatars = avatars

    def load_snapshot(self, name: str) -> tuple[str, DomainSnapshot]:
        normalized = normalize_name(name)
        snapshot = self._subgraph.fetch_domain_by_name(normalized)
        if snapshot is None:
            # Subdomains are not always indexed by name; retry by node.
            try:
                snapshot = self._subgraph.fetch_domain_by_namehash(namehash(normalized))
            except (httpx.HTTPError, SubgraphQueryError) as exc:
                logger.warning("Namehash lookup for {} failed: {}", normalized, exc)
                snapshot = None

        if snapshot is None:
            raise NotFoundError(normalized)
        owner = snapshot.domain.owner_address
        if not owner or owner.lower() == ZERO_ADDRESS:
            raise UnresolvedOwnerError(normalized)
        return normalized, snapshot

    def get_history(self, name: str, *, now: datetime | None = None) -> DomainHistory:
        normalized, snapshot = self.load_snapshot(name)

        block_timestamps = None
        if self._timestamps is not None:
            block_timestamps = self._timestamps.lookup_many(
                transfer.block_number for transfer in snapshot.transfers
            )

        timeline = reconcile(
            snapshot.transfers,
            snapshot.registrations,
            snapshot.domain.owner_address,
            block_timestamps=block_timestamps,
            created_at=snapshot.domain.created_at,
            now=now,
        )
        self._attach_avatar(timeline.current_period)
        logger.info(
            "Reconciled {}: {} historical periods, current owner {}",
            normalized,
            len(timeline.historical_periods),
            timeline.current_period.owner_address,
        )
        return DomainHistory(name=normalized, timeline=timeline)

    def get_timeline(self, name: str, *, now: datetime | None = None) -> DomainTimeline:
        now = now or datetime.now(timezone.utc)
        history = self.get_history(name, now=now)
        timeline = history.timeline
        periods = build_display(timeline.historical_periods, timeline.current_period, now)
        return DomainTimeline(
            name=history.name,
            periods=periods,
            summary=summarize_display(periods, now),
            expiry_date=timeline.expiry_date,
        )

    def _attach_avatar(self, period: OwnershipPeriod) -> None:
        if self._avatars is None:
            return
        avatar = self._avatars.fetch_avatar(period.owner_address)
        if avatar:
            period.avatar = avatar


__all__ = ["HistoryService"]
