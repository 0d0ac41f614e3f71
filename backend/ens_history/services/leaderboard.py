"""Most-traded domains, counted from a sample of the global transfer log."""

from __future__ import annotations

import time
from collections import defaultdict
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx
from loguru import logger

from ens_history.core.config import settings
from ens_history.domain import Leaderboard, LeaderboardEntry, TransferEvent
from ens_history.errors import SubgraphQueryError

if TYPE_CHECKING:
    from ens_ingestion.client import SubgraphClient


def count_ownership_changes(
    transfers: Iterable[TransferEvent], *, top_n: int = 10
) -> list[LeaderboardEntry]:
    """Count owner transitions per domain and return the ``top_n`` busiest.

    Repeated consecutive owners are collapsed, so only genuine hand-offs
    count. Transfers without a domain name are ignored.
    """

    by_domain: dict[str, list[TransferEvent]] = defaultdict(list)
    for transfer in transfers:
        if transfer.domain_name:
            by_domain[transfer.domain_name.lower()].append(transfer)

    counts: dict[str, int] = {}
    for name, domain_transfers in by_domain.items():
        changes = 0
        previous_owner: str | None = None
        for transfer in sorted(domain_transfers, key=lambda item: item.block_number):
            owner = transfer.owner_address.lower()
            if previous_owner is not None and owner != previous_owner:
                changes += 1
            previous_owner = owner
        if changes > 0:
            counts[name] = changes

    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)[:top_n]
    return [LeaderboardEntry(name=name, transfer_count=count) for name, count in ranked]


class LeaderboardCache:
    """Single-slot cache with a fixed time-to-live.

    Owned by the serving layer. Concurrent rebuilds are tolerated: the last
    writer wins and readers may briefly see a stale value.
    """

    def __init__(self, ttl_seconds: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._value: Leaderboard | None = None
        self._stored_at = 0.0

    def get(self) -> Leaderboard | None:
        if self._value is None:
            return None
        if self._clock() - self._stored_at >= self._ttl:
            return None
        return self._value

    def set(self, value: Leaderboard) -> None:
        self._value = value
        self._stored_at = self._clock()

    def clear(self) -> None:
        self._value = None


@dataclass(slots=True)
class LeaderboardOptions:
    batch_size: int = 1000
    batches_per_direction: int = 5
    top_n: int = 10

    @classmethod
    def from_settings(cls) -> "LeaderboardOptions":
        return cls(
            batch_size=settings.leaderboard_batch_size,
            batches_per_direction=settings.leaderboard_batches_per_direction,
            top_n=settings.leaderboard_top_n,
        )


class LeaderboardService:
    """Build (or serve from cache) the most-transferred domains leaderboard."""

    def __init__(
        self,
        client: "SubgraphClient",
        cache: LeaderboardCache,
        options: LeaderboardOptions | None = None,
    ) -> None:
        self._client = client
        self._cache = cache
        self._options = options or LeaderboardOptions.from_settings()

    def get(self) -> Leaderboard:
        cached = self._cache.get()
        if cached is not None:
            return cached
        leaderboard = self.build()
        self._cache.set(leaderboard)
        return leaderboard

    def build(self) -> Leaderboard:
        transfers: list[TransferEvent] = []
        # Newest transfers first, then the oldest for coverage of early names.
        self._fetch_direction("desc", transfers)
        self._fetch_direction("asc", transfers)

        entries = count_ownership_changes(transfers, top_n=self._options.top_n)
        logger.info(
            "Built leaderboard with {} entries from {} transfers", len(entries), len(transfers)
        )
        return Leaderboard(entries=entries, total_transfers_analyzed=len(transfers))

    def _fetch_direction(self, order_direction: str, sink: list[TransferEvent]) -> None:
        batch_size = self._options.batch_size
        for batch in range(self._options.batches_per_direction):
            try:
                page = self._client.fetch_transfer_page(
                    first=batch_size,
                    skip=batch * batch_size,
                    order_direction=order_direction,
                )
            except (httpx.HTTPError, SubgraphQueryError) as exc:
                logger.warning(
                    "Stopping {} transfer sampling at batch {}: {}", order_direction, batch, exc
                )
                return
            if not page:
                return
            sink.extend(page)
            if len(page) < batch_size:
                return


__all__ = [
    "LeaderboardCache",
    "LeaderboardOptions",
    "LeaderboardService",
    "count_ownership_changes",
]
