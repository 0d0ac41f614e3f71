from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from loguru import logger
from web3 import Web3

from ens_history.domain import (
    DomainRecord,
    DomainSnapshot,
    RegistrationRecord,
    TransferEvent,
)

ENS_ROOT_SUFFIX = ".eth"
_EMPTY_NODE = b"\x00" * 32


def normalize_name(name: str) -> str:
    """Trim whitespace and default bare labels to the ``.eth`` root."""

    cleaned = name.strip()
    if not cleaned.lower().endswith(ENS_ROOT_SUFFIX):
        cleaned = f"{cleaned}{ENS_ROOT_SUFFIX}"
    return cleaned


def namehash(name: str) -> str:
    """Return the EIP-137 namehash of ``name`` as a 0x-prefixed hex string."""

    node = _EMPTY_NODE
    if name:
        for label in reversed(name.lower().split(".")):
            label_hash = bytes(Web3.keccak(text=label))
            node = bytes(Web3.keccak(node + label_hash))
    return "0x" + node.hex()


def _nested_id(value: Any) -> str | None:
    if isinstance(value, dict):
        raw = value.get("id")
        return str(raw) if raw else None
    return None


def _parse_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(str(value))
    except (TypeError, ValueError):
        return None


def _parse_unix_timestamp(value: Any) -> datetime | None:
    seconds = _parse_int(value)
    if seconds is None or seconds <= 0:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def normalize_transfer(raw_transfer: dict[str, Any]) -> TransferEvent | None:
    owner = _nested_id(raw_transfer.get("owner"))
    block_number = _parse_int(raw_transfer.get("blockNumber"))
    if not owner or block_number is None:
        logger.warning("Discarding malformed transfer record {}", raw_transfer.get("id"))
        return None

    domain = raw_transfer.get("domain") if isinstance(raw_transfer.get("domain"), dict) else {}
    return TransferEvent(
        owner_address=owner,
        block_number=block_number,
        transaction_hash=str(raw_transfer.get("transactionID") or ""),
        domain_id=domain.get("id"),
        domain_name=domain.get("name"),
    )


def normalize_registration(raw_registration: dict[str, Any]) -> RegistrationRecord | None:
    registrant = _nested_id(raw_registration.get("registrant"))
    registered_at = _parse_unix_timestamp(raw_registration.get("registrationDate"))
    if not registrant or registered_at is None:
        logger.warning("Discarding malformed registration record for registrant {}", registrant)
        return None
    return RegistrationRecord(
        registrant_address=registrant,
        registration_date=registered_at,
        expiry_date=_parse_unix_timestamp(raw_registration.get("expiryDate")),
    )


def normalize_domain(raw_domain: dict[str, Any]) -> DomainRecord:
    return DomainRecord(
        node=str(raw_domain.get("id") or ""),
        name=str(raw_domain.get("name") or ""),
        owner_address=_nested_id(raw_domain.get("owner")),
        created_at=_parse_unix_timestamp(raw_domain.get("createdAt")),
    )


def normalize_transfers(raw_transfers: Any) -> list[TransferEvent]:
    if not isinstance(raw_transfers, list):
        return []
    transfers = (normalize_transfer(item) for item in raw_transfers if isinstance(item, dict))
    return [transfer for transfer in transfers if transfer is not None]


def normalize_registrations(raw_registrations: Any) -> list[RegistrationRecord]:
    if not isinstance(raw_registrations, list):
        return []
    registrations = (
        normalize_registration(item) for item in raw_registrations if isinstance(item, dict)
    )
    return [registration for registration in registrations if registration is not None]


def normalize_snapshot_by_name(payload: dict[str, Any]) -> DomainSnapshot | None:
    """Build a snapshot from the name-keyed query (``domains`` list shape)."""

    domains = payload.get("domains")
    if not isinstance(domains, list) or not domains or not isinstance(domains[0], dict):
        return None
    return DomainSnapshot(
        domain=normalize_domain(domains[0]),
        transfers=normalize_transfers(payload.get("transfers")),
        registrations=normalize_registrations(payload.get("registrations")),
    )


def normalize_snapshot_by_namehash(payload: dict[str, Any]) -> DomainSnapshot | None:
    """Build a snapshot from the node-keyed query (single ``domain`` shape)."""

    raw_domain = payload.get("domain")
    if not isinstance(raw_domain, dict):
        return None
    return DomainSnapshot(
        domain=normalize_domain(raw_domain),
        transfers=normalize_transfers(payload.get("transfers")),
        registrations=normalize_registrations(raw_domain.get("registrations")),
    )
