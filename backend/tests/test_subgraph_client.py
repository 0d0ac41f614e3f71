from __future__ import annotations

import json

import httpx
import pytest

from ens_history.errors import RateLimitedError, SubgraphQueryError
from ens_history.services.leaderboard import LeaderboardCache, LeaderboardOptions, LeaderboardService
from ens_ingestion.client import GET_TRANSFERS_PAGE, SubgraphClient


def make_client(handler, **kwargs) -> SubgraphClient:
    return SubgraphClient(
        url="https://subgraph.test/ens",
        headers=kwargs.pop("headers", {}),
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_fetch_domain_by_name_lowercases_and_parses(sample_domain_payload):
    captured: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(json.loads(request.content))
        return httpx.Response(200, json={"data": sample_domain_payload})

    with make_client(handler) as client:
        snapshot = client.fetch_domain_by_name("Example.ETH")

    assert captured[0]["variables"] == {"name": "example.eth", "first": 1000}
    assert snapshot is not None
    assert snapshot.domain.name == "example.eth"
    assert len(snapshot.transfers) == 3


def test_missing_domain_returns_none():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": {"domains": [], "registrations": [], "transfers": []}})

    with make_client(handler) as client:
        assert client.fetch_domain_by_name("missing.eth") is None


def test_rate_limit_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"message": "slow down"})

    with make_client(handler) as client, pytest.raises(RateLimitedError):
        client.fetch_domain_by_name("busy.eth")


def test_graphql_errors_raise():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"errors": [{"message": "boom"}, "bad field"]})

    with make_client(handler) as client, pytest.raises(SubgraphQueryError, match="boom; bad field"):
        client.fetch_domain_by_namehash("0x01")


def test_server_errors_raise_http_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="bad gateway")

    with make_client(handler) as client, pytest.raises(httpx.HTTPStatusError):
        client.fetch_domain_by_name("example.eth")


def test_fetch_transfer_page_sends_paging_variables():
    captured: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(json.loads(request.content))
        return httpx.Response(
            200,
            json={
                "data": {
                    "transfers": [
                        {
                            "domain": {"id": "0x01", "name": "x.eth"},
                            "blockNumber": "7",
                            "transactionID": "0xaa",
                            "owner": {"id": "0xbb"},
                        }
                    ]
                }
            },
        )

    with make_client(handler) as client:
        page = client.fetch_transfer_page(first=50, skip=100, order_direction="asc")

    assert captured[0]["query"] == GET_TRANSFERS_PAGE
    assert captured[0]["variables"] == {"first": 50, "skip": 100, "orderDirection": "asc"}
    assert [(item.domain_name, item.block_number) for item in page] == [("x.eth", 7)]


def test_configured_headers_are_sent():
    seen: list[str | None] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("authorization"))
        return httpx.Response(200, json={"data": {}})

    with make_client(handler, headers={"Authorization": "Bearer key"}) as client:
        assert client.fetch_transfer_page(first=1, skip=0) == []

    assert seen == ["Bearer key"]


def test_non_json_body_raises_query_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>bad gateway</html>")

    with make_client(handler) as client, pytest.raises(SubgraphQueryError, match="non-JSON"):
        client.fetch_domain_by_name("example.eth")


def test_leaderboard_keeps_pages_fetched_before_a_bad_response():
    def handler(request: httpx.Request) -> httpx.Response:
        variables = json.loads(request.content)["variables"]
        if variables["skip"] > 0:
            return httpx.Response(200, text="<html>bad gateway</html>")
        transfers = [
            {
                "domain": {"id": "0x01", "name": "x.eth"},
                "blockNumber": str(10 + index),
                "transactionID": f"0x{index:02x}",
                "owner": {"id": owner},
            }
            for index, owner in enumerate(("0xaa", "0xbb"))
        ]
        return httpx.Response(200, json={"data": {"transfers": transfers}})

    options = LeaderboardOptions(batch_size=2, batches_per_direction=2, top_n=5)
    with make_client(handler) as client:
        leaderboard = LeaderboardService(client, LeaderboardCache(60), options).build()

    assert leaderboard.total_transfers_analyzed == 4
    assert leaderboard.entries[0].name == "x.eth"
