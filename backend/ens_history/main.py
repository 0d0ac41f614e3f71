from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import timedelta
from typing import Annotated

import httpx
from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from loguru import logger

from ens_ingestion.avatar import AvatarClient
from ens_ingestion.blocks import BlockTimestampSource
from ens_ingestion.client import SubgraphClient

from . import schemas
from .core.config import settings
from .domain import DomainHistory, DomainTimeline
from .errors import EnsHistoryError, NotFoundError, RateLimitedError, UnresolvedOwnerError
from .services.display import format_duration
from .services.history_service import HistoryService
from .services.leaderboard import LeaderboardCache, LeaderboardService

LEADERBOARD_CACHE_CONTROL = "public, s-maxage=1800, stale-while-revalidate=3600"

app = FastAPI(title="ENS History API", version="0.1.0", debug=settings.debug)
app.state.leaderboard_cache = LeaderboardCache(settings.leaderboard_cache_ttl_seconds)


@app.get("/healthz", tags=["system"])
def healthcheck() -> dict[str, str]:
    """Basic readiness probe consumed by infrastructure monitors."""

    return {"status": "ok"}


def _history_service() -> Iterator[HistoryService]:
    """Provide the history service wired with live upstream clients."""

    timestamps = BlockTimestampSource() if settings.rpc_url else None
    with SubgraphClient() as subgraph, AvatarClient() as avatars:
        yield HistoryService(subgraph, timestamps=timestamps, avatars=avatars)


def _leaderboard_cache(request: Request) -> LeaderboardCache:
    return request.app.state.leaderboard_cache


def _leaderboard_service(
    cache: LeaderboardCache = Depends(_leaderboard_cache),
) -> Iterator[LeaderboardService]:
    with SubgraphClient() as subgraph:
        yield LeaderboardService(subgraph, cache)


def _required_name(
    name: Annotated[
        str | None,
        Query(description="ENS name, with or without .eth", examples=["vitalik"]),
    ] = None,
) -> str:
    if not name or not name.strip():
        raise HTTPException(status_code=400, detail="ENS name is required")
    return name


@contextmanager
def _translate_errors(fallback_message: str) -> Iterator[None]:
    """Map history failures onto HTTP responses."""

    try:
        yield
    except (NotFoundError, UnresolvedOwnerError) as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except RateLimitedError as exc:
        raise HTTPException(status_code=429, detail=str(exc)) from exc
    except (EnsHistoryError, httpx.HTTPError) as exc:
        logger.exception(fallback_message)
        raise HTTPException(status_code=500, detail=str(exc) or fallback_message) from exc


def build_history_response(history: DomainHistory) -> schemas.HistoryResponse:
    timeline = history.timeline
    return schemas.HistoryResponse(
        name=history.name,
        owners=[schemas.OwnerPeriod.model_validate(period) for period in timeline.historical_periods],
        current_owner=schemas.OwnerPeriod.model_validate(timeline.current_period),
        expiry_date=timeline.expiry_date,
    )


def build_timeline_response(timeline: DomainTimeline) -> schemas.TimelineResponse:
    summary = timeline.summary
    periods = [
        schemas.TimelinePeriod.model_validate(period).model_copy(
            update={"weight": weight, "offset": offset}
        )
        for period, weight, offset in zip(timeline.periods, summary.weights, summary.offsets)
    ]
    return schemas.TimelineResponse(
        name=timeline.name,
        periods=periods,
        summary=schemas.TimelineSummary(
            born_on=summary.born_on,
            lifespan_ms=summary.lifespan // timedelta(milliseconds=1),
            lifespan_text=format_duration(summary.lifespan),
            approximate_age_years=summary.approximate_age_years,
            years=summary.years,
        ),
        expiry_date=timeline.expiry_date,
    )


@app.get("/ens", response_model=schemas.HistoryResponse, tags=["ens"])
def get_history(
    name: str = Depends(_required_name),
    service: HistoryService = Depends(_history_service),
):
    """Return historical owners and the current owner of an ENS name."""

    with _translate_errors("Failed to fetch ENS history"):
        history = service.get_history(name)
    return build_history_response(history)


@app.get("/ens/timeline", response_model=schemas.TimelineResponse, tags=["ens"])
def get_timeline(
    name: str = Depends(_required_name),
    service: HistoryService = Depends(_history_service),
):
    """Return the display timeline, oldest first, with dormant gaps filled in."""

    with _translate_errors("Failed to fetch ENS history"):
        timeline = service.get_timeline(name)
    return build_timeline_response(timeline)


@app.get("/leaderboard", response_model=schemas.LeaderboardResponse, tags=["leaderboard"])
def get_leaderboard(
    response: Response,
    service: LeaderboardService = Depends(_leaderboard_service),
):
    """Return the most frequently traded domains in a sample of recent and early transfers."""

    with _translate_errors("Failed to fetch leaderboard"):
        leaderboard = service.get()
    response.headers["Cache-Control"] = LEADERBOARD_CACHE_CONTROL
    return schemas.LeaderboardResponse(
        leaderboard=[schemas.LeaderboardEntry.model_validate(entry) for entry in leaderboard.entries],
        total_transfers_analyzed=leaderboard.total_transfers_analyzed,
    )
