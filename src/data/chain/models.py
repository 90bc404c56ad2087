"""Pydantic models for blocks read from the chain."""

from pydantic import BaseModel

from src.helpers.models import RpcBlock
from src.helpers.parsers import normalize_address, parse_hex_int


class ChainBlock(BaseModel):
    """A block as seen by the indexer: height, producer and production time."""

    number: int
    producer: str | None = None  # lowercase miner address, None if absent
    timestamp_seconds: int

    @classmethod
    def from_rpc(cls, rpc_block: RpcBlock) -> "ChainBlock":
        """Build from a raw eth_getBlockByNumber result."""
        return cls(
            number=parse_hex_int(rpc_block.number),
            producer=normalize_address(rpc_block.miner),
            timestamp_seconds=parse_hex_int(rpc_block.timestamp),
        )
