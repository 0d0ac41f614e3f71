import argparse
import json
import sys
from datetime import datetime, timezone

from loguru import logger

from ens_history import schemas
from ens_history.core.config import get_settings
from ens_history.errors import EnsHistoryError
from ens_history.main import build_history_response, build_timeline_response
from ens_history.services.history_service import HistoryService
from ens_history.services.leaderboard import LeaderboardCache, LeaderboardService
from ens_ingestion.avatar import AvatarClient
from ens_ingestion.blocks import BlockTimestampSource
from ens_ingestion.client import SubgraphClient


def _parse_datetime(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Print the ownership history of an ENS name")
    parser.add_argument("name", nargs="?", help="ENS name, with or without the .eth suffix")
    parser.add_argument(
        "--timeline",
        action="store_true",
        help="Print display periods (oldest first, dormant gaps included) instead of raw history",
    )
    parser.add_argument(
        "--leaderboard",
        action="store_true",
        help="Print the most frequently traded domains instead of a single name",
    )
    parser.add_argument(
        "--now",
        type=_parse_datetime,
        default=None,
        help="Reference instant (ISO-8601) used for expiry checks and current-period durations",
    )
    parser.add_argument(
        "--no-avatar",
        action="store_true",
        help="Skip the avatar lookup for the current owner",
    )
    args = parser.parse_args()
    if not args.leaderboard and not args.name:
        parser.error("an ENS name is required unless --leaderboard is given")
    return args


def main() -> int:
    args = parse_args()
    settings = get_settings()

    if settings.rpc_url is None:
        logger.warning("RPC_URL is not configured; transfer times will be estimated from block height")

    try:
        with SubgraphClient() as subgraph:
            if args.leaderboard:
                service = LeaderboardService(
                    subgraph, LeaderboardCache(settings.leaderboard_cache_ttl_seconds)
                )
                leaderboard = service.build()
                payload = schemas.LeaderboardResponse(
                    leaderboard=[
                        schemas.LeaderboardEntry.model_validate(entry)
                        for entry in leaderboard.entries
                    ],
                    total_transfers_analyzed=leaderboard.total_transfers_analyzed,
                )
            else:
                timestamps = BlockTimestampSource() if settings.rpc_url else None
                with AvatarClient() as avatars:
                    history_service = HistoryService(
                        subgraph,
                        timestamps=timestamps,
                        avatars=None if args.no_avatar else avatars,
                    )
                    if args.timeline:
                        payload = build_timeline_response(
                            history_service.get_timeline(args.name, now=args.now)
                        )
                    else:
                        payload = build_history_response(
                            history_service.get_history(args.name, now=args.now)
                        )
    except EnsHistoryError as exc:
        logger.error("{}", exc)
        return 1

    print(json.dumps(payload.model_dump(mode="json"), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
