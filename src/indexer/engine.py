"""Block indexer engine.

Walks the chain in small batches, credits every block to the address in its
miner field, appends it to the block log and recomputes validator uptime.

Checkpoint rules:
- ``last_processed_block`` only moves forward, and only after the block's
  validator and block-log writes have been committed.
- A block that fails, is missing, or has no producer ends the batch. The next
  scheduled cycle starts again from ``last_processed_block + 1``; there is no
  retry loop inside a cycle.
- ``run_cycle`` never raises. Every outcome is returned as a ``CycleResult``.
"""

from src.data.chain.reader import ChainReader
from src.data.validators.store import LedgerStore
from src.helpers.constants import (
    INDEXER_BATCH_SIZE,
    LOOKBACK_BLOCKS,
    MAX_MISSING_BLOCK_ATTEMPTS,
)
from src.helpers.logging import get_logger
from src.helpers.parsers import timestamp_to_datetime
from src.indexer.models import BlockOutcome, CycleResult, CycleStatus, IndexerStatus

logger = get_logger(__name__)


def expected_blocks_per_validator(total_indexed_blocks: int, validator_count: int) -> int:
    """Equal-share expectation of blocks per validator, never below 1.

    Args:
        total_indexed_blocks: Size of the indexed range
        validator_count: Number of known validators (must be positive)

    Returns:
        int: floor(total / count), floored at 1
    """
    return max(1, total_indexed_blocks // validator_count)


def compute_uptime(produced_blocks: int, expected_blocks: int) -> tuple[int, float]:
    """Derive missed blocks and uptime percentage for one validator.

    Args:
        produced_blocks: Blocks attributed to the validator
        expected_blocks: Equal-share expectation (at least 1)

    Returns:
        tuple[int, float]: (missed_blocks, uptime_percentage), uptime capped
        at 100 and rounded to two decimals

    Example:
        >>> compute_uptime(45, 50)
        (5, 90.0)
    """
    missed = max(0, expected_blocks - produced_blocks)
    uptime = round(min(100.0, produced_blocks / expected_blocks * 100), 2)
    return missed, uptime


class IndexerEngine:
    """Owns the indexer checkpoint and drives polling cycles."""

    def __init__(
        self,
        chain: ChainReader,
        store: LedgerStore,
        *,
        batch_size: int = INDEXER_BATCH_SIZE,
        lookback: int = LOOKBACK_BLOCKS,
        max_missing_attempts: int = MAX_MISSING_BLOCK_ATTEMPTS,
    ) -> None:
        """Initialize the engine.

        Args:
            chain: Source of chain head and blocks
            store: Persistence for validators and block logs
            batch_size: Maximum blocks processed per cycle
            lookback: Blocks behind head where a cold start begins
            max_missing_attempts: Consecutive misses after which a missing
                block is skipped; 0 keeps retrying it forever

        Raises:
            ValueError: If batch_size < 1, or lookback or
                max_missing_attempts is negative
        """
        if batch_size < 1:
            msg = f"batch_size must be at least 1, got {batch_size}"
            raise ValueError(msg)
        if lookback < 0:
            msg = f"lookback cannot be negative, got {lookback}"
            raise ValueError(msg)
        if max_missing_attempts < 0:
            msg = f"max_missing_attempts cannot be negative, got {max_missing_attempts}"
            raise ValueError(msg)

        self.chain = chain
        self.store = store
        self.batch_size = batch_size
        self.lookback = lookback
        self.max_missing_attempts = max_missing_attempts

        self.is_running = False
        self.schema_ready = False
        self.initialized = False
        self.last_processed_block = 0
        self.index_start_block = 0

        # block number -> consecutive cycles it was missing
        self._missing_attempts: dict[int, int] = {}

    async def prepare(self) -> None:
        """Create the ledger schema once; repeated until it succeeds."""
        if self.schema_ready:
            return
        await self.store.create_tables()
        self.schema_ready = True

    async def initialize(self) -> None:
        """Load the checkpoint from the block log, or start near the chain head.

        The schema is prepared first, so a store that was unreachable at
        startup is set up by whichever cycle first reaches it.

        Raises:
            Exception: Whatever the store or chain reader raises; the caller
                decides whether that is fatal
        """
        await self.prepare()
        latest = await self.store.latest_block_log()
        if latest is not None:
            last_block = latest.block_number
            # Approximation: the true start of indexing is not persisted
            start_block = last_block - self.lookback
            logger.info("Indexer resuming from block %s", last_block)
        else:
            head = await self.chain.current_height()
            last_block = max(0, head - self.lookback)
            start_block = last_block
            logger.info(
                "Indexer starting fresh from block %s (head %s)", last_block, head
            )

        if self.initialized:
            last_block = max(last_block, self.last_processed_block)

        self.last_processed_block = last_block
        self.index_start_block = start_block
        self.initialized = True

    async def run_cycle(self) -> CycleResult:
        """Index the next batch of blocks and refresh uptime stats.

        Returns immediately with ``SKIPPED_BUSY`` if another cycle is in
        flight. Never raises.

        Returns:
            CycleResult: What the cycle did
        """
        # No await between the check and the set: atomic on the event loop
        if self.is_running:
            logger.debug("Indexer cycle already running, skipping")
            return CycleResult(
                status=CycleStatus.SKIPPED_BUSY,
                last_processed_block=self.last_processed_block,
            )

        self.is_running = True
        result = CycleResult(
            status=CycleStatus.FAILED,
            last_processed_block=self.last_processed_block,
        )
        try:
            await self._run_cycle(result)
        except Exception as e:
            logger.exception("Indexer cycle failed")
            result.status = CycleStatus.FAILED
            result.error = str(e) or type(e).__name__
        finally:
            result.last_processed_block = self.last_processed_block
            self.is_running = False

        return result

    async def _run_cycle(self, result: CycleResult) -> None:
        if not self.initialized:
            await self.initialize()

        head = await self.chain.current_height()
        result.head = head

        if head <= self.last_processed_block:
            logger.debug("No new blocks to process (latest: %s)", head)
            result.status = CycleStatus.NO_NEW_BLOCKS
        else:
            start_block = self.last_processed_block + 1
            end_block = min(head, start_block + self.batch_size - 1)
            result.start_block = start_block
            result.end_block = end_block
            logger.info(
                "Indexing blocks %s-%s (latest: %s)", start_block, end_block, head
            )

            result.status = CycleStatus.COMPLETED
            for block_number in range(start_block, end_block + 1):
                outcome = await self._process_block(block_number)
                result.outcomes[block_number] = outcome
                if not outcome.advances_checkpoint:
                    result.status = CycleStatus.PARTIAL
                    break
                self.last_processed_block = block_number

        result.validators_updated = await self.update_uptime_stats()

    async def _process_block(self, block_number: int) -> BlockOutcome:
        """Attribute one block to its producer and persist it."""
        try:
            block = await self.chain.block_at(block_number)
            if block is None:
                logger.warning("Block %s not found, skipping", block_number)
                return self._record_missing(block_number, BlockOutcome.MISSING_BLOCK)

            if block.producer is None:
                logger.warning("Block %s has no miner field", block_number)
                return self._record_missing(
                    block_number, BlockOutcome.MISSING_PRODUCER
                )

            await self.store.upsert_validator(block.producer)
            await self.store.insert_block_log(
                block_number,
                block.producer,
                timestamp_to_datetime(block.timestamp_seconds),
            )
        except Exception:
            logger.exception("Failed to process block %s", block_number)
            return BlockOutcome.FAILED

        self._missing_attempts.pop(block_number, None)
        logger.debug("Indexed block %s -> validator %s", block_number, block.producer)
        return BlockOutcome.INDEXED

    def _record_missing(self, block_number: int, outcome: BlockOutcome) -> BlockOutcome:
        if self.max_missing_attempts == 0:
            return outcome

        attempts = self._missing_attempts.get(block_number, 0) + 1
        if attempts < self.max_missing_attempts:
            self._missing_attempts[block_number] = attempts
            return outcome

        self._missing_attempts.pop(block_number, None)
        logger.warning(
            "Block %s still %s after %s attempts, skipping past it",
            block_number,
            outcome.value,
            attempts,
        )
        return BlockOutcome.GAP_SKIPPED

    async def update_uptime_stats(self) -> int:
        """Recompute stats for every validator from block-log counts.

        Full recomputation: running it twice without new blocks writes the
        same values.

        Returns:
            int: Number of validators updated (0 if none are known)
        """
        validators = await self.store.all_validators()
        if not validators:
            return 0

        total_indexed_blocks = max(
            1, self.last_processed_block - self.index_start_block
        )
        expected_blocks = expected_blocks_per_validator(
            total_indexed_blocks, len(validators)
        )

        for validator in validators:
            produced_blocks = await self.store.block_count_for(validator.address)
            missed_blocks, uptime = compute_uptime(produced_blocks, expected_blocks)
            await self.store.update_validator_stats(
                validator.address, produced_blocks, missed_blocks, uptime
            )

        logger.info(
            "Updated uptime stats for %s validators (indexed range: %s blocks)",
            len(validators),
            total_indexed_blocks,
        )
        return len(validators)

    def get_status(self) -> IndexerStatus:
        """Snapshot of the running flag and checkpoint."""
        return IndexerStatus(
            is_running=self.is_running,
            last_processed_block=self.last_processed_block,
        )


__all__ = [
    "IndexerEngine",
    "compute_uptime",
    "expected_blocks_per_validator",
]
