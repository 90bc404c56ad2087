"""Pydantic models describing indexer state and cycle outcomes."""

from enum import StrEnum

from pydantic import BaseModel, Field


class BlockOutcome(StrEnum):
    """What happened to one block number within a cycle."""

    INDEXED = "indexed"
    MISSING_BLOCK = "missing_block"
    MISSING_PRODUCER = "missing_producer"
    GAP_SKIPPED = "gap_skipped"
    FAILED = "failed"

    @property
    def advances_checkpoint(self) -> bool:
        return self in {BlockOutcome.INDEXED, BlockOutcome.GAP_SKIPPED}


class CycleStatus(StrEnum):
    """Overall result of one run_cycle call."""

    SKIPPED_BUSY = "skipped_busy"
    NO_NEW_BLOCKS = "no_new_blocks"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class IndexerStatus(BaseModel):
    """Read-only snapshot for health checks."""

    is_running: bool
    last_processed_block: int


class CycleResult(BaseModel):
    """Outcome of one indexer cycle, logged by the caller."""

    status: CycleStatus
    head: int | None = None
    start_block: int | None = None
    end_block: int | None = None
    last_processed_block: int
    outcomes: dict[int, BlockOutcome] = Field(default_factory=dict)
    validators_updated: int = 0
    error: str | None = None

    @property
    def blocks_indexed(self) -> int:
        return sum(1 for o in self.outcomes.values() if o is BlockOutcome.INDEXED)


__all__ = ["BlockOutcome", "CycleResult", "CycleStatus", "IndexerStatus"]
