"""Flag transfers that are marketplace/escrow hops rather than real owner changes."""

from __future__ import annotations

from dataclasses import dataclass

from ens_history.domain import TransferEvent

# Known marketplace and escrow contracts, keyed by lower-cased address.
MARKETPLACE_CONTRACTS: dict[str, str] = {
    # OpenSea Seaport
    "0x00000000006c3852cbef3e08e8df289169ede581": "OpenSea Seaport",
    "0x00000000006cee72100d161c57ada5bb2be1ca79": "OpenSea Seaport V1",
    "0x00000000006c7676171937c444f6bde3d6282": "OpenSea Seaport V3",
    "0x0000000000000ad24e80fd803c6ac37206a45f15": "OpenSea Seaport V4",
    "0x00000000000001ad428e4906ae43d8f9852d0dd6": "OpenSea Seaport V5",
    "0x00000000000000adc04c56bf30ac9d3c0aaf14dc": "OpenSea Seaport V6",
    # OpenSea Wyvern (legacy)
    "0x7be8076f4ea4a4ad08075c2508e481d6c946d12b": "OpenSea Wyvern",
    "0x7f268357a8c2552623316e2562d90e642bb538e5": "OpenSea Wyvern V2",
    "0x495f947276749ce646f68ac8c248420045cb7b5e": "OpenSea Shared Storefront",
}

MARKETPLACE_PROXIMITY_BLOCKS = 10
GENERIC_MARKETPLACE_LABEL = "Marketplace"


@dataclass(frozen=True, slots=True)
class MarketplaceClassification:
    is_marketplace: bool
    label: str | None = None


NOT_MARKETPLACE = MarketplaceClassification(is_marketplace=False)


def lookup_marketplace(address: str) -> str | None:
    """Return the label of a known marketplace contract, if ``address`` is one."""

    return MARKETPLACE_CONTRACTS.get(address.lower())


def is_transient_hop(
    transfer: TransferEvent,
    previous: TransferEvent,
    next_: TransferEvent,
    *,
    proximity: int = MARKETPLACE_PROXIMITY_BLOCKS,
) -> bool:
    """Return True when ``transfer`` is a short-lived intermediate holder.

    Both neighbours must sit within ``proximity`` blocks and the holder must
    differ from each of them. This is a best-effort approximation of escrow
    behaviour, not a verified signal.
    """

    if transfer.block_number - previous.block_number > proximity:
        return False
    if next_.block_number - transfer.block_number > proximity:
        return False
    owner = transfer.owner_address.lower()
    return owner != previous.owner_address.lower() and owner != next_.owner_address.lower()


def classify(
    transfer: TransferEvent,
    previous: TransferEvent | None = None,
    next_: TransferEvent | None = None,
) -> MarketplaceClassification:
    label = lookup_marketplace(transfer.owner_address)
    if label:
        return MarketplaceClassification(is_marketplace=True, label=label)

    if previous is not None and next_ is not None and is_transient_hop(transfer, previous, next_):
        return MarketplaceClassification(is_marketplace=True, label=GENERIC_MARKETPLACE_LABEL)

    return NOT_MARKETPLACE


__all__ = [
    "GENERIC_MARKETPLACE_LABEL",
    "MARKETPLACE_CONTRACTS",
    "MARKETPLACE_PROXIMITY_BLOCKS",
    "MarketplaceClassification",
    "classify",
    "is_transient_hop",
    "lookup_marketplace",
]
