from __future__ import annotations

import httpx

from ens_ingestion.avatar import AvatarClient

OWNER = "0xd8da6bf26964af9d7eed9e03e53415d37aa96045"


def make_client(handler) -> AvatarClient:
    return AvatarClient(base_url="https://avatars.test", transport=httpx.MockTransport(handler))


def test_fetch_avatar_returns_small_image():
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(200, json={"avatar_small": "https://img.test/a.png"})

    with make_client(handler) as client:
        assert client.fetch_avatar(OWNER) == "https://img.test/a.png"
    assert paths == [f"/{OWNER}"]


def test_missing_avatar_is_none():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"address": OWNER})

    with make_client(handler) as client:
        assert client.fetch_avatar(OWNER) is None


def test_error_status_is_none():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": "not found"})

    with make_client(handler) as client:
        assert client.fetch_avatar(OWNER) is None


def test_non_json_body_is_none():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html></html>")

    with make_client(handler) as client:
        assert client.fetch_avatar(OWNER) is None


def test_transport_failure_is_none():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with make_client(handler) as client:
        assert client.fetch_avatar(OWNER) is None
