from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from ens_history.domain import DomainHistory, OwnershipPeriod, ReconciledTimeline
from ens_history.errors import NotFoundError
from scripts import lookup_history

OWNER = "0xd8da6bf26964af9d7eed9e03e53415d37aa96045"


@pytest.fixture
def history_service(monkeypatch):
    service = MagicMock()
    monkeypatch.setattr(lookup_history, "SubgraphClient", MagicMock())
    monkeypatch.setattr(lookup_history, "AvatarClient", MagicMock())
    monkeypatch.setattr(lookup_history, "HistoryService", MagicMock(return_value=service))
    monkeypatch.setattr(lookup_history, "get_settings", lambda: MagicMock(rpc_url=None))
    return service


def test_prints_history_as_json(monkeypatch, capsys, history_service):
    history_service.get_history.return_value = DomainHistory(
        name="example.eth",
        timeline=ReconciledTimeline(
            historical_periods=[],
            current_period=OwnershipPeriod(OWNER, start=datetime(2020, 1, 1, tzinfo=timezone.utc)),
        ),
    )
    monkeypatch.setattr(sys, "argv", ["lookup_history.py", "example", "--now", "2024-06-01T00:00:00Z"])

    assert lookup_history.main() == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["name"] == "example.eth"
    assert payload["current_owner"]["owner_address"] == OWNER
    history_service.get_history.assert_called_once_with(
        "example", now=datetime(2024, 6, 1, tzinfo=timezone.utc)
    )


def test_lookup_failure_exits_non_zero(monkeypatch, history_service):
    history_service.get_history.side_effect = NotFoundError("missing.eth")
    monkeypatch.setattr(sys, "argv", ["lookup_history.py", "missing"])

    assert lookup_history.main() == 1
