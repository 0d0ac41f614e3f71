from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from ens_history.core.config import settings
from ens_history.domain import DomainSnapshot, TransferEvent
from ens_history.errors import RateLimitedError, SubgraphQueryError

from .normalize import (
    normalize_snapshot_by_name,
    normalize_snapshot_by_namehash,
    normalize_transfers,
)

TRANSFER_FIELDS = """
      id
      domain {
        id
        name
      }
      blockNumber
      transactionID
      owner {
        id
      }
"""

GET_DOMAIN_BY_NAME = f"""
  query GetDomainByName($name: String!, $first: Int!) {{
    domains(where: {{ name: $name }}) {{
      id
      name
      owner {{
        id
      }}
      createdAt
    }}
    registrations(where: {{ domain_: {{ name: $name }} }}) {{
      registrationDate
      expiryDate
      registrant {{
        id
      }}
    }}
    transfers(
      first: $first
      where: {{ domain_: {{ name: $name }} }}
      orderBy: blockNumber
      orderDirection: asc
    ) {{{TRANSFER_FIELDS}    }}
  }}
"""

GET_DOMAIN_BY_NAMEHASH = f"""
  query GetDomainHistory($nameHash: String!, $first: Int!) {{
    domain(id: $nameHash) {{
      id
      name
      owner {{
        id
      }}
      createdAt
      registrations {{
        registrationDate
        expiryDate
        registrant {{
          id
        }}
      }}
    }}
    transfers(
      first: $first
      where: {{ domain: $nameHash }}
      orderBy: blockNumber
      orderDirection: asc
    ) {{{TRANSFER_FIELDS}    }}
  }}
"""

GET_TRANSFERS_PAGE = f"""
  query GetTransfersWithDomains($first: Int!, $skip: Int!, $orderDirection: String!) {{
    transfers(
      first: $first
      skip: $skip
      orderBy: blockNumber
      orderDirection: $orderDirection
    ) {{{TRANSFER_FIELDS}    }}
  }}
"""

MAX_TRANSFERS_PER_DOMAIN = 1000


class SubgraphClient:
    """Thin wrapper around the ENS subgraph GraphQL endpoint."""

    def __init__(
        self,
        *,
        url: str | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = url or settings.subgraph_url
        self.headers = settings.subgraph_headers if headers is None else headers
        self.timeout = timeout or settings.http_timeout_seconds
        self.client = httpx.Client(headers=self.headers, timeout=self.timeout, transport=transport)

    def execute(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        logger.info("Subgraph POST {} variables={}", self.url, variables)
        response = self.client.post(self.url, json={"query": query, "variables": variables})
        if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
            raise RateLimitedError()
        response.raise_for_status()

        try:
            payload = response.json()
        except ValueError as exc:
            raise SubgraphQueryError("Subgraph returned a non-JSON response") from exc
        if not isinstance(payload, dict):
            raise SubgraphQueryError("Subgraph returned a non-object payload")
        errors = payload.get("errors")
        if errors:
            messages = [
                str(error.get("message")) if isinstance(error, dict) else str(error)
                for error in errors
            ]
            raise SubgraphQueryError("; ".join(messages))
        data = payload.get("data")
        return data if isinstance(data, dict) else {}

    def fetch_domain_by_name(self, name: str) -> DomainSnapshot | None:
        data = self.execute(
            GET_DOMAIN_BY_NAME,
            {"name": name.lower(), "first": MAX_TRANSFERS_PER_DOMAIN},
        )
        return normalize_snapshot_by_name(data)

    def fetch_domain_by_namehash(self, node: str) -> DomainSnapshot | None:
        data = self.execute(
            GET_DOMAIN_BY_NAMEHASH,
            {"nameHash": node, "first": MAX_TRANSFERS_PER_DOMAIN},
        )
        return normalize_snapshot_by_namehash(data)

    def fetch_transfer_page(
        self, *, first: int, skip: int, order_direction: str = "desc"
    ) -> list[TransferEvent]:
        data = self.execute(
            GET_TRANSFERS_PAGE,
            {"first": first, "skip": skip, "orderDirection": order_direction},
        )
        return normalize_transfers(data.get("transfers"))

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "SubgraphClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
