from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone

from loguru import logger
from web3 import Web3

from ens_history.core.config import settings


class BlockTimestampSource:
    """Resolve block numbers to their mined time over Ethereum JSON-RPC."""

    def __init__(
        self,
        rpc_url: str | None = None,
        *,
        max_workers: int | None = None,
        timeout: float | None = None,
        web3_factory: Callable[[], Web3] | None = None,
    ) -> None:
        resolved_url = rpc_url or settings.rpc_url
        if not resolved_url and web3_factory is None:
            raise ValueError("An RPC URL is required to look up block timestamps")
        self.rpc_url = str(resolved_url) if resolved_url else None
        self.max_workers = max_workers or settings.timestamp_lookup_workers
        self.timeout = timeout or settings.http_timeout_seconds
        self._web3_factory = web3_factory or self._default_web3

    def _default_web3(self) -> Web3:
        # One provider per lookup keeps worker threads from sharing a session.
        return Web3(Web3.HTTPProvider(self.rpc_url, request_kwargs={"timeout": self.timeout}))

    def lookup(self, block_number: int) -> datetime:
        block = self._web3_factory().eth.get_block(block_number)
        return datetime.fromtimestamp(int(block["timestamp"]), tz=timezone.utc)

    def lookup_many(self, block_numbers: Iterable[int]) -> dict[int, datetime | None]:
        """Fan out one lookup per distinct block and wait for the whole batch.

        A failed lookup maps to ``None`` so callers can estimate that block
        alone; it never fails the batch.
        """

        unique_blocks = sorted(set(block_numbers))
        if not unique_blocks:
            return {}

        results: dict[int, datetime | None] = {}
        failed: list[int] = []
        workers = min(self.max_workers, len(unique_blocks))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(self.lookup, block): block for block in unique_blocks}
            for future in as_completed(futures):
                block = futures[future]
                try:
                    results[block] = future.result()
                except Exception as exc:  # noqa: BLE001 - any RPC failure degrades to an estimate
                    logger.debug("Block {} timestamp lookup failed: {}", block, exc)
                    results[block] = None
                    failed.append(block)

        if failed:
            logger.warning(
                "Timestamp lookup failed for {} of {} blocks; falling back to estimates",
                len(failed),
                len(unique_blocks),
            )
        return results
