from __future__ import annotations

from ens_history.domain import TransferEvent
from ens_history.services.marketplace import (
    NOT_MARKETPLACE,
    classify,
    is_transient_hop,
    lookup_marketplace,
)

ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
CAROL = "0x" + "c3" * 20


def transfer(owner: str, block: int) -> TransferEvent:
    return TransferEvent(owner_address=owner, block_number=block, transaction_hash="0x")


def test_lookup_is_case_insensitive():
    assert lookup_marketplace("0x7BE8076F4EA4A4AD08075C2508E481D6C946D12B") == "OpenSea Wyvern"
    assert lookup_marketplace(ALICE) is None


def test_known_contract_is_flagged_without_neighbours():
    result = classify(transfer("0x00000000000000ADc04C56Bf30aC9d3c0aAF14dC", 5))

    assert result.is_marketplace is True
    assert result.label == "OpenSea Seaport V6"


def test_hop_window_is_inclusive():
    assert is_transient_hop(transfer(CAROL, 110), transfer(ALICE, 100), transfer(BOB, 120))
    assert not is_transient_hop(transfer(CAROL, 111), transfer(ALICE, 100), transfer(BOB, 121))
    assert not is_transient_hop(transfer(CAROL, 110), transfer(ALICE, 100), transfer(BOB, 121))


def test_hop_requires_a_different_holder():
    assert not is_transient_hop(transfer(ALICE, 101), transfer(ALICE, 100), transfer(BOB, 102))
    assert not is_transient_hop(transfer(BOB, 101), transfer(ALICE, 100), transfer(BOB, 102))


def test_edges_of_the_log_are_never_hops():
    assert classify(transfer(CAROL, 101), None, transfer(BOB, 102)) == NOT_MARKETPLACE
    assert classify(transfer(CAROL, 101), transfer(ALICE, 100), None) == NOT_MARKETPLACE


def test_transient_holder_gets_generic_label():
    result = classify(transfer(CAROL, 101), transfer(ALICE, 100), transfer(BOB, 102))

    assert result.is_marketplace is True
    assert result.label == "Marketplace"


def test_classification_is_deterministic():
    args = (transfer(CAROL, 101), transfer(ALICE, 100), transfer(BOB, 102))

    assert classify(*args) == classify(*args)
