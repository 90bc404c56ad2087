"""Live validator indexer.

Runs the indexer engine on a fixed interval against the configured chain and
database. One cycle runs eagerly at startup; after that a new cycle is
triggered every INDEXER_INTERVAL_SECONDS. Each trigger runs as its own task,
so a slow cycle never delays the timer; an overlapping trigger simply finds
the engine busy and returns.

A cycle that fails is not retried here. The next tick starts again from the
engine's checkpoint.

Usage:
    python -m src.live
"""

from collections.abc import Callable
import signal
import sys

import asyncio

from src.data.chain.reader import ChainReader, RPCChainReader
from src.data.validators.store import LedgerStore, SQLLedgerStore
from src.helpers.config import get_float_env, get_int_env, get_rpc_url
from src.helpers.constants import (
    CYCLE_INTERVAL_SECONDS,
    DEFAULT_TIMEOUT,
    INDEXER_BATCH_SIZE,
    LOOKBACK_BLOCKS,
    MAX_MISSING_BLOCK_ATTEMPTS,
)
from src.helpers.db import dispose_engine
from src.helpers.logging import get_logger
from src.indexer.engine import IndexerEngine
from src.indexer.models import CycleResult, CycleStatus

logger = get_logger(__name__)


def log_cycle_result(result: CycleResult) -> None:
    """Log a cycle outcome at a level matching its severity."""
    match result.status:
        case CycleStatus.FAILED:
            logger.error(
                "Indexer cycle failed at block %s: %s",
                result.last_processed_block,
                result.error,
            )
        case CycleStatus.PARTIAL:
            stopped_at = next(
                (n for n, o in result.outcomes.items() if not o.advances_checkpoint),
                None,
            )
            logger.warning(
                "Indexer cycle stopped at block %s (%s); checkpoint %s",
                stopped_at,
                result.outcomes.get(stopped_at) if stopped_at is not None else None,
                result.last_processed_block,
            )
        case CycleStatus.COMPLETED:
            logger.info(
                "Indexed %s blocks up to %s (head %s), %s validators updated",
                result.blocks_indexed,
                result.last_processed_block,
                result.head,
                result.validators_updated,
            )
        case _:
            logger.debug("Indexer cycle: %s", result.status.value)


class IndexerScheduler:
    """Periodic trigger for IndexerEngine.run_cycle."""

    def __init__(
        self,
        engine: IndexerEngine,
        interval_seconds: float = CYCLE_INTERVAL_SECONDS,
        on_result: Callable[[CycleResult], None] = log_cycle_result,
    ) -> None:
        """Initialize the scheduler.

        Args:
            engine: Engine whose cycle is triggered
            interval_seconds: Seconds between triggers
            on_result: Callback receiving every cycle result

        Raises:
            ValueError: If interval_seconds is not positive
        """
        if interval_seconds <= 0:
            msg = f"interval_seconds must be positive, got {interval_seconds}"
            raise ValueError(msg)

        self.engine = engine
        self.interval_seconds = interval_seconds
        self.on_result = on_result
        self.ticks = 0
        self._stop = asyncio.Event()
        self._pending: set[asyncio.Task[CycleResult]] = set()

    async def tick(self) -> CycleResult:
        """Run one cycle and report its result."""
        self.ticks += 1
        result = await self.engine.run_cycle()
        self.on_result(result)
        return result

    def trigger(self) -> asyncio.Task[CycleResult]:
        """Start a cycle in the background without waiting for it."""
        task = asyncio.create_task(self.tick())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def shutdown(self) -> None:
        """Ask the run loop to stop after the current wait."""
        if not self._stop.is_set():
            logger.info("Shutdown signal received, stopping...")
        self._stop.set()

    async def run(self) -> None:
        """Trigger cycles until shutdown, then wait for in-flight cycles."""
        logger.info(
            "Indexer scheduler started (interval %ss)", self.interval_seconds
        )
        try:
            self.trigger()
            while not self._stop.is_set():
                try:
                    await asyncio.wait_for(
                        self._stop.wait(), timeout=self.interval_seconds
                    )
                except TimeoutError:
                    logger.info("Running indexer cycle (scheduled)")
                    self.trigger()
        finally:
            if self._pending:
                await asyncio.gather(*self._pending, return_exceptions=True)
            logger.info("Indexer scheduler stopped")


def build_engine(chain: ChainReader, store: LedgerStore) -> IndexerEngine:
    """Create an engine using INDEXER_* environment settings."""
    return IndexerEngine(
        chain,
        store,
        batch_size=get_int_env("INDEXER_BATCH_SIZE", INDEXER_BATCH_SIZE),
        lookback=get_int_env("INDEXER_LOOKBACK", LOOKBACK_BLOCKS),
        max_missing_attempts=get_int_env(
            "INDEXER_MAX_MISSING_ATTEMPTS", MAX_MISSING_BLOCK_ATTEMPTS
        ),
    )


async def main() -> None:
    """Main entry point."""
    chain = RPCChainReader(
        get_rpc_url(), timeout=get_float_env("RPC_TIMEOUT", DEFAULT_TIMEOUT)
    )
    store = SQLLedgerStore()
    try:
        engine = build_engine(chain, store)

        try:
            await engine.initialize()
            logger.info("Indexer initialized")
        except Exception:
            # Chain or database may be down; run_cycle retries the setup
            logger.warning("Indexer init failed, will retry on next cycle", exc_info=True)

        scheduler = IndexerScheduler(
            engine,
            interval_seconds=get_float_env(
                "INDEXER_INTERVAL_SECONDS", CYCLE_INTERVAL_SECONDS
            ),
        )

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, scheduler.shutdown)

        await scheduler.run()
    finally:
        await chain.aclose()
        await dispose_engine()


def run() -> None:
    """Console-script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, exiting...")
    except Exception:
        logger.exception("Fatal error")
        sys.exit(1)


if __name__ == "__main__":
    run()
