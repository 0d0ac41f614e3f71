from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from ens_history.domain import Leaderboard, LeaderboardEntry, TransferEvent
from ens_history.errors import RateLimitedError, SubgraphQueryError
from ens_history.services.leaderboard import (
    LeaderboardCache,
    LeaderboardOptions,
    LeaderboardService,
    count_ownership_changes,
)

ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20


def transfer(name: str | None, owner: str, block: int) -> TransferEvent:
    return TransferEvent(
        owner_address=owner,
        block_number=block,
        transaction_hash="0x",
        domain_name=name,
    )


class FakeClock:
    def __init__(self) -> None:
        self.value = 0.0

    def __call__(self) -> float:
        return self.value


def test_count_ownership_changes_ranks_domains():
    transfers = [
        transfer("busy.eth", ALICE, 1),
        transfer("busy.eth", BOB, 2),
        transfer("Busy.eth", ALICE, 3),
        transfer("idle.eth", ALICE, 1),
        transfer("idle.eth", ALICE, 2),
        transfer("late.eth", BOB, 9),
        transfer("late.eth", ALICE, 4),
        transfer(None, BOB, 5),
    ]

    entries = count_ownership_changes(transfers)

    assert entries == [
        LeaderboardEntry(name="busy.eth", transfer_count=2),
        LeaderboardEntry(name="late.eth", transfer_count=1),
    ]
    assert count_ownership_changes(transfers, top_n=1) == entries[:1]


def test_cache_expires_after_ttl():
    clock = FakeClock()
    cache = LeaderboardCache(10, clock=clock)
    leaderboard = Leaderboard(entries=[], total_transfers_analyzed=0)

    assert cache.get() is None
    cache.set(leaderboard)
    clock.value = 9.5
    assert cache.get() is leaderboard
    clock.value = 10
    assert cache.get() is None

    cache.set(leaderboard)
    cache.clear()
    assert cache.get() is None


@pytest.fixture
def options() -> LeaderboardOptions:
    return LeaderboardOptions(batch_size=2, batches_per_direction=2, top_n=5)


def test_build_samples_both_ends_of_the_log(options):
    pages = {
        ("desc", 0): [transfer("x.eth", ALICE, 10), transfer("x.eth", BOB, 11)],
        ("desc", 2): [transfer("y.eth", ALICE, 5)],
    }
    client = MagicMock()

    def fetch(*, first, skip, order_direction):
        assert first == 2
        if order_direction == "asc":
            raise SubgraphQueryError("indexer unavailable")
        return pages[(order_direction, skip)]

    client.fetch_transfer_page.side_effect = fetch
    service = LeaderboardService(client, LeaderboardCache(60), options)

    leaderboard = service.build()

    assert leaderboard.total_transfers_analyzed == 3
    assert leaderboard.entries == [LeaderboardEntry(name="x.eth", transfer_count=1)]
    assert client.fetch_transfer_page.call_count == 3


def test_get_serves_from_cache(options):
    client = MagicMock()
    client.fetch_transfer_page.return_value = []
    service = LeaderboardService(client, LeaderboardCache(60), options)

    first = service.get()
    second = service.get()

    assert first is second
    assert client.fetch_transfer_page.call_count == 2


def test_rate_limit_is_propagated(options):
    client = MagicMock()
    client.fetch_transfer_page.side_effect = RateLimitedError()
    cache = LeaderboardCache(60)
    service = LeaderboardService(client, cache, options)

    with pytest.raises(RateLimitedError):
        service.get()
    assert cache.get() is None


def test_options_follow_settings(test_settings):
    options = LeaderboardOptions.from_settings()

    assert options.batch_size == 2
    assert options.batches_per_direction == 2
    assert options.top_n == 3
