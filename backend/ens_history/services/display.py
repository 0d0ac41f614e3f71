"""Turn a reconciled timeline into a gap-aware sequence for rendering."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

from ens_history.domain import ZERO_ADDRESS, DisplayPeriod, DisplaySummary, OwnershipPeriod

NO_OWNER_ADDRESS = ZERO_ADDRESS

_DAY = timedelta(days=1)
_YEAR_DAYS = 365
_MONTH_DAYS = 30
_WEEK_DAYS = 7


def period_key(period: OwnershipPeriod) -> tuple[str, datetime]:
    return period.owner_address.lower(), period.start


def _ordered_unique(
    historical: Sequence[OwnershipPeriod], current: OwnershipPeriod | None
) -> list[OwnershipPeriod]:
    candidates = list(historical)
    if current is not None:
        candidates.append(current)
    candidates.sort(key=lambda period: period.start)

    seen: set[tuple[str, datetime]] = set()
    unique: list[OwnershipPeriod] = []
    for period in candidates:
        key = period_key(period)
        if key in seen:
            continue
        seen.add(key)
        unique.append(period)
    return unique


def build_display(
    historical: Sequence[OwnershipPeriod],
    current: OwnershipPeriod | None,
    now: datetime,
) -> list[DisplayPeriod]:
    """Merge history and the current period, oldest first, filling gaps.

    The current period's duration is always measured up to ``now``; its
    expiry-based end is kept only for the visual span. Gaps between a
    period's end and the next start become dormant periods owned by
    :data:`NO_OWNER_ADDRESS`. Callers wanting newest-first reverse the result.
    """

    periods = _ordered_unique(historical, current)
    current_key = period_key(current) if current is not None else None

    display: list[DisplayPeriod] = []
    # End of the last period actually emitted; gaps are measured from here.
    previous_end: datetime | None = None
    for period in periods:
        is_current = period_key(period) == current_key
        end = period.end
        if end is None and is_current:
            end = current.end

        if is_current or end is None:
            duration = now - period.start
        else:
            duration = end - period.start
        if duration <= timedelta(0):
            continue

        if previous_end is not None and period.start > previous_end:
            display.append(
                DisplayPeriod(
                    owner_address=NO_OWNER_ADDRESS,
                    start=previous_end,
                    end=period.start,
                    duration=period.start - previous_end,
                    is_dormant=True,
                )
            )

        display.append(
            DisplayPeriod(
                owner_address=period.owner_address,
                start=period.start,
                end=end,
                duration=duration,
                is_current=is_current,
                transaction_hash=period.transaction_hash,
                block_number=period.block_number,
                is_marketplace=period.is_marketplace,
                marketplace_label=period.marketplace_label,
                avatar=period.avatar,
            )
        )

        previous_end = end or now
    return display


def summarize_display(periods: Sequence[DisplayPeriod], now: datetime) -> DisplaySummary:
    """Lifespan figures plus each period's share of the lifespan."""

    if not periods:
        return DisplaySummary(born_on=None, lifespan=timedelta(0), approximate_age_years=None)

    born_on = min(period.start for period in periods)
    lifespan = now - born_on

    years: set[int] = set()
    for period in periods:
        years.add(period.start.year)
        if period.end is not None:
            years.add(period.end.year)

    if lifespan > timedelta(0):
        weights = [period.duration / lifespan for period in periods]
        offsets = [(period.start - born_on) / lifespan for period in periods]
    else:
        weights = [0.0 for _ in periods]
        offsets = [0.0 for _ in periods]

    return DisplaySummary(
        born_on=born_on,
        lifespan=lifespan,
        approximate_age_years=lifespan // timedelta(days=_YEAR_DAYS),
        years=sorted(years),
        weights=weights,
        offsets=offsets,
    )


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count > 1 else ''}"


def format_duration(duration: timedelta) -> str:
    """Render a duration as e.g. ``"1 year, 2 months, and 3 days"``."""

    total_days = max(duration // _DAY, 0)
    years, remainder = divmod(total_days, _YEAR_DAYS)
    months, remainder = divmod(remainder, _MONTH_DAYS)
    weeks, days = divmod(remainder, _WEEK_DAYS)

    parts = [
        _plural(count, unit)
        for count, unit in ((years, "year"), (months, "month"), (weeks, "week"), (days, "day"))
        if count > 0
    ]
    if not parts:
        return "Less than a day"
    if len(parts) == 1:
        return parts[0]
    if len(parts) == 2:
        return f"{parts[0]} and {parts[1]}"
    return f"{', '.join(parts[:-1])}, and {parts[-1]}"


__all__ = [
    "NO_OWNER_ADDRESS",
    "build_display",
    "format_duration",
    "period_key",
    "summarize_display",
]
