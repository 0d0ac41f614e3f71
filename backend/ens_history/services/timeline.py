"""Reconcile a domain's transfer log into an ordered ownership timeline.

Three sources disagree in practice: the subgraph's transfer events, the
registration records, and the domain's present owner. The reconciler applies
a fixed sequence of steps so the result always satisfies the same shape:
historical periods ordered by start, back to back, each with a positive
duration, followed by exactly one current period held by the present owner.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from loguru import logger

from ens_history.domain import (
    OwnershipPeriod,
    ReconciledTimeline,
    RegistrationRecord,
    TransferEvent,
)

from .marketplace import MarketplaceClassification, classify

ETHEREUM_GENESIS_INSTANT = datetime(2015, 7, 30, tzinfo=timezone.utc)
AVERAGE_BLOCK_INTERVAL = timedelta(seconds=12)
EARLIEST_PLAUSIBLE_YEAR = 2015
EXPIRY_GRACE = timedelta(days=1)


def estimate_block_instant(block_number: int) -> datetime:
    """Linear estimate of a mainnet block's time from its height."""

    return ETHEREUM_GENESIS_INSTANT + block_number * AVERAGE_BLOCK_INTERVAL


def is_plausible_date(value: datetime, *, now: datetime) -> bool:
    return EARLIEST_PLAUSIBLE_YEAR <= value.year <= now.year + 1


def latest_registration(
    registrations: Sequence[RegistrationRecord], *, now: datetime
) -> RegistrationRecord | None:
    """Return the most recent registration with a plausible date."""

    valid: list[RegistrationRecord] = []
    for registration in registrations:
        if is_plausible_date(registration.registration_date, now=now):
            valid.append(registration)
        else:
            logger.warning(
                "Discarding registration by {} with implausible date {}",
                registration.registrant_address,
                registration.registration_date.isoformat(),
            )
    if not valid:
        return None
    return max(valid, key=lambda registration: registration.registration_date)


def resolve_expiry(registration: RegistrationRecord | None, *, now: datetime) -> datetime | None:
    if registration is None or registration.expiry_date is None:
        return None
    expiry = registration.expiry_date
    if expiry.year < EARLIEST_PLAUSIBLE_YEAR or expiry <= now - EXPIRY_GRACE:
        return None
    return expiry


def is_duplicate_transfer(previous: TransferEvent, transfer: TransferEvent) -> bool:
    return (
        previous.block_number == transfer.block_number
        and previous.owner_address.lower() == transfer.owner_address.lower()
    )


def dedupe_transfers(transfers: Sequence[TransferEvent]) -> list[TransferEvent]:
    """Drop indexer duplicates: same block and same owner as the preceding transfer."""

    kept: list[TransferEvent] = []
    for transfer in transfers:
        if kept and is_duplicate_transfer(kept[-1], transfer):
            continue
        kept.append(transfer)
    return kept


def resolve_transfer_instants(
    transfers: Sequence[TransferEvent],
    block_timestamps: Mapping[int, datetime | None] | None,
    *,
    estimate_base: datetime | None = None,
) -> list[datetime]:
    """Resolve a calendar instant for every transfer.

    With a timestamp mapping, looked-up block times are used and failed
    lookups (missing or ``None``) fall back to :func:`estimate_block_instant`.
    Without one, instants are laid out from ``estimate_base`` using block
    deltas from the earliest transfer.
    """

    if not transfers:
        return []

    if block_timestamps is None:
        earliest_block = min(transfer.block_number for transfer in transfers)
        base = estimate_base or estimate_block_instant(earliest_block)
        return [
            base + (transfer.block_number - earliest_block) * AVERAGE_BLOCK_INTERVAL
            for transfer in transfers
        ]

    instants: list[datetime] = []
    estimated = 0
    for transfer in transfers:
        instant = block_timestamps.get(transfer.block_number)
        if instant is None:
            estimated += 1
            instant = estimate_block_instant(transfer.block_number)
        instants.append(instant)
    if estimated:
        logger.info(
            "Estimated {} of {} transfer timestamps from block height",
            estimated,
            len(transfers),
        )
    return instants


def classify_transfers(transfers: Sequence[TransferEvent]) -> list[MarketplaceClassification]:
    classifications: list[MarketplaceClassification] = []
    for index, transfer in enumerate(transfers):
        previous = transfers[index - 1] if index > 0 else None
        next_ = transfers[index + 1] if index < len(transfers) - 1 else None
        classifications.append(classify(transfer, previous, next_))
    return classifications


def build_periods(
    transfers: Sequence[TransferEvent],
    instants: Sequence[datetime],
    classifications: Sequence[MarketplaceClassification],
) -> list[OwnershipPeriod]:
    """Open one period per transfer, each ending where the next one starts."""

    periods: list[OwnershipPeriod] = []
    for index, transfer in enumerate(transfers):
        end = instants[index + 1] if index < len(transfers) - 1 else None
        classification = classifications[index]
        periods.append(
            OwnershipPeriod(
                owner_address=transfer.owner_address,
                start=instants[index],
                end=end,
                transaction_hash=transfer.transaction_hash,
                block_number=transfer.block_number,
                is_marketplace=classification.is_marketplace,
                marketplace_label=classification.label,
            )
        )
    return periods


def apply_registration(
    periods: list[OwnershipPeriod],
    registration: RegistrationRecord | None,
    present_owner: str,
) -> list[OwnershipPeriod]:
    """Anchor the start of the timeline on the registration record."""

    if registration is None:
        return periods

    registrant = registration.registrant_address
    registered_at = registration.registration_date
    registrant_is_present_owner = registrant.lower() == present_owner.lower()

    if not periods:
        if registrant_is_present_owner:
            return [OwnershipPeriod(owner_address=registrant, start=registered_at)]
        return periods

    first = periods[0]
    same_day = first.start.astimezone(timezone.utc).date() == registered_at.astimezone(
        timezone.utc
    ).date()
    if first.owner_key == registrant.lower() and same_day:
        periods[0] = replace(first, start=registered_at)
    elif registered_at < first.start and not registrant_is_present_owner:
        periods.insert(
            0,
            OwnershipPeriod(owner_address=registrant, start=registered_at, end=first.start),
        )
    return periods


def consolidate_periods(periods: Sequence[OwnershipPeriod]) -> list[OwnershipPeriod]:
    """Merge consecutive periods held by the same owner.

    The merged period keeps the first member's start and metadata and takes
    the latest end; an open member leaves the merged period open.
    """

    consolidated: list[OwnershipPeriod] = []
    for period in periods:
        if consolidated and consolidated[-1].owner_key == period.owner_key:
            last = consolidated[-1]
            if last.end is None or period.end is None:
                end = None
            else:
                end = max(last.end, period.end)
            consolidated[-1] = replace(last, start=min(last.start, period.start), end=end)
            continue
        consolidated.append(replace(period))
    return consolidated


def drop_degenerate_periods(periods: Sequence[OwnershipPeriod]) -> list[OwnershipPeriod]:
    return [period for period in periods if period.end is None or period.end > period.start]


def _link_historical(
    historical: list[OwnershipPeriod], current: OwnershipPeriod
) -> tuple[list[OwnershipPeriod], OwnershipPeriod]:
    # Each historical period ends exactly where its successor (or the current period) begins.
    while True:
        if historical and historical[-1].owner_key == current.owner_key:
            current = replace(current, start=historical.pop().start)
            continue
        for index, period in enumerate(historical):
            successor_start = (
                historical[index + 1].start if index < len(historical) - 1 else current.start
            )
            period.end = successor_start
        linked = consolidate_periods(drop_degenerate_periods(historical))
        if len(linked) == len(historical):
            return linked, current
        historical = linked


def resolve_current_period(
    periods: list[OwnershipPeriod],
    present_owner: str,
    *,
    registration: RegistrationRecord | None,
    expiry: datetime | None,
    fallback_start: datetime,
) -> tuple[list[OwnershipPeriod], OwnershipPeriod]:
    """Split periods into history and the present owner's current period.

    When the last period already belongs to the present owner it becomes
    current, with its start advanced to a newer registration by that owner.
    Otherwise the transfer log lags the chain and a current period is
    synthesized after the last recorded period; a newer registration by the
    present owner is used as its start when available. The two rules never
    apply to the same period.
    """

    fresh_registration: datetime | None = None
    if registration is not None and registration.registrant_address.lower() == present_owner.lower():
        fresh_registration = registration.registration_date

    def _current_end(start: datetime) -> datetime | None:
        return expiry if expiry is not None and expiry > start else None

    if not periods:
        start = fallback_start
        current = OwnershipPeriod(owner_address=present_owner, start=start, end=_current_end(start))
        return [], current

    last = periods[-1]
    if last.owner_key == present_owner.lower():
        start = last.start
        if fresh_registration is not None and fresh_registration > start:
            logger.debug(
                "Advancing current period start for {} to registration at {}",
                present_owner,
                fresh_registration.isoformat(),
            )
            start = fresh_registration
        current = replace(
            last, owner_address=present_owner, start=start, end=_current_end(start)
        )
        historical = [replace(period) for period in periods[:-1]]
    else:
        start = last.end or last.start
        if fresh_registration is not None and fresh_registration > start:
            start = fresh_registration
        if start == last.start:
            logger.warning(
                "Transfer to {} at {} superseded by present owner {}; holder dropped from history",
                last.owner_address,
                last.start.isoformat(),
                present_owner,
            )
        logger.info(
            "Present owner {} missing from transfer log; synthesizing current period from {}",
            present_owner,
            start.isoformat(),
        )
        current = OwnershipPeriod(owner_address=present_owner, start=start, end=_current_end(start))
        historical = [replace(period) for period in periods]

    historical.sort(key=lambda period: period.start)
    return _link_historical(historical, current)


def reconcile(
    transfers: Sequence[TransferEvent],
    registrations: Sequence[RegistrationRecord],
    current_owner: str,
    *,
    block_timestamps: Mapping[int, datetime | None] | None = None,
    created_at: datetime | None = None,
    now: datetime | None = None,
) -> ReconciledTimeline:
    """Build the ownership timeline for one domain.

    ``block_timestamps`` maps block numbers to looked-up instants (``None`` for
    failed lookups). Pass ``None`` when no timestamp source is configured at
    all; instants are then estimated from registration or creation metadata.
    """

    now = now or datetime.now(timezone.utc)
    registration = latest_registration(registrations, now=now)
    expiry = resolve_expiry(registration, now=now)
    if created_at is not None and not is_plausible_date(created_at, now=now):
        logger.warning("Discarding implausible creation date {}", created_at.isoformat())
        created_at = None

    ordered = sorted(transfers, key=lambda transfer: transfer.block_number)
    estimate_base = registration.registration_date if registration else created_at
    instants = resolve_transfer_instants(ordered, block_timestamps, estimate_base=estimate_base)

    unique: list[TransferEvent] = []
    unique_instants: list[datetime] = []
    for transfer, instant in zip(ordered, instants):
        if unique and is_duplicate_transfer(unique[-1], transfer):
            continue
        unique.append(transfer)
        unique_instants.append(instant)
    if len(unique) != len(ordered):
        logger.debug("Dropped {} duplicate transfer events", len(ordered) - len(unique))

    periods = build_periods(unique, unique_instants, classify_transfers(unique))
    periods = drop_degenerate_periods(periods)

    periods = apply_registration(periods, registration, current_owner)
    periods.sort(key=lambda period: period.start)
    periods = drop_degenerate_periods(consolidate_periods(periods))

    historical, current = resolve_current_period(
        periods,
        current_owner,
        registration=registration,
        expiry=expiry,
        fallback_start=estimate_base or now,
    )
    return ReconciledTimeline(
        historical_periods=historical,
        current_period=current,
        expiry_date=expiry,
    )


__all__ = [
    "AVERAGE_BLOCK_INTERVAL",
    "ETHEREUM_GENESIS_INSTANT",
    "apply_registration",
    "build_periods",
    "classify_transfers",
    "consolidate_periods",
    "dedupe_transfers",
    "drop_degenerate_periods",
    "estimate_block_instant",
    "is_duplicate_transfer",
    "latest_registration",
    "reconcile",
    "resolve_current_period",
    "resolve_expiry",
    "resolve_transfer_instants",
]
