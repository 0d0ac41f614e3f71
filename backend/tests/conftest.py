from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest

from ens_history.core.config import Settings

FIXED_NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


@pytest.fixture
def sample_domain_payload() -> dict[str, object]:
    path = Path(__file__).parent / "data" / "sample_domain.json"
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def test_settings(monkeypatch) -> Settings:
    settings = Settings(
        _env_file=None,
        the_graph_api_key=None,
        rpc_url=None,
        subgraph_hosted_url="https://subgraph.test/ens",
        ensdata_base_url="https://avatars.test",
        leaderboard_batch_size=2,
        leaderboard_batches_per_direction=2,
        leaderboard_top_n=3,
    )
    monkeypatch.setattr("ens_history.core.config.get_settings", lambda: settings)
    for module in (
        "ens_history.core.config",
        "ens_history.services.leaderboard",
        "ens_ingestion.client",
        "ens_ingestion.blocks",
        "ens_ingestion.avatar",
    ):
        monkeypatch.setattr(f"{module}.settings", settings)
    return settings
