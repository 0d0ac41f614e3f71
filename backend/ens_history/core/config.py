from functools import lru_cache
from typing import Any

from pydantic import AnyUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    debug: bool = Field(False, description="Enable FastAPI debug mode")
    environment: str = Field(
        default="development",
        description="Runtime environment (development|staging|production)",
    )
    the_graph_api_key: str | None = Field(
        default=None,
        description="The Graph gateway API key; enables the decentralized network endpoint",
    )
    subgraph_id: str = Field(
        default="5XqPmWe6gjyrJtFn9cLy237i4cWw2j9HcUJEXsP5qGtH",
        description="ENS subgraph deployment identifier on The Graph network",
    )
    subgraph_gateway_base_url: AnyUrl | str = Field(
        default="https://gateway.thegraph.com/api",
        description="Base URL of The Graph gateway (API key and subgraph id are appended)",
    )
    subgraph_hosted_url: AnyUrl | str = Field(
        default="https://api.thegraph.com/subgraphs/name/ensdomains/ens",
        description="Rate-limited hosted service endpoint used when no API key is configured",
    )
    rpc_url: AnyUrl | str | None = Field(
        default=None,
        description="Ethereum mainnet JSON-RPC endpoint used for block timestamps",
    )
    ensdata_base_url: AnyUrl | str = Field(
        default="https://api.ensdata.net",
        description="Base URL for the ensdata.net avatar lookup",
    )
    http_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout applied to outbound HTTP calls",
        gt=0,
    )
    timestamp_lookup_workers: int = Field(
        default=8,
        description="Number of block timestamp lookups issued concurrently",
        ge=1,
    )
    leaderboard_cache_ttl_seconds: float = Field(
        default=30 * 60,
        description="How long a computed leaderboard is served before it is rebuilt",
        gt=0,
    )
    leaderboard_batch_size: int = Field(
        default=1000,
        description="Number of transfers fetched per leaderboard page",
        ge=1,
    )
    leaderboard_batches_per_direction: int = Field(
        default=5,
        description="Pages fetched from each end (newest and oldest) of the transfer log",
        ge=1,
    )
    leaderboard_top_n: int = Field(
        default=10,
        description="Number of domains kept in the leaderboard",
        ge=1,
    )

    @field_validator("the_graph_api_key", "rpc_url", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def subgraph_url(self) -> str:
        if self.the_graph_api_key:
            base = str(self.subgraph_gateway_base_url).rstrip("/")
            return f"{base}/{self.the_graph_api_key}/subgraphs/id/{self.subgraph_id}"
        return str(self.subgraph_hosted_url)

    @property
    def subgraph_headers(self) -> dict[str, str]:
        # Gateway URLs carry the key in the path; other endpoints take a bearer token.
        if self.the_graph_api_key and "gateway.thegraph.com" not in self.subgraph_url:
            return {"Authorization": f"Bearer {self.the_graph_api_key}"}
        return {}


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
