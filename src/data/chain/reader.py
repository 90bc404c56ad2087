"""Read-only access to the chain: current head and blocks by number."""

from types import TracebackType
from typing import Protocol, Self

import httpx

from src.data.chain.models import ChainBlock
from src.helpers.constants import (
    CONNECTION_TIMEOUT,
    DEFAULT_TIMEOUT,
    MAX_CONNECTIONS,
    MAX_KEEPALIVE_CONNECTIONS,
)
from src.helpers.logging import get_logger
from src.helpers.models import RpcBlock
from src.helpers.parsers import mask_rpc_url
from src.helpers.rpc import RPCClient

logger = get_logger(__name__)


class ChainReader(Protocol):
    """Capability the indexer needs from the chain."""

    async def current_height(self) -> int:
        """Return the current head block number."""
        ...

    async def block_at(self, number: int) -> ChainBlock | None:
        """Return the block at a height, or None if the node does not have it."""
        ...


class RPCChainReader:
    """ChainReader backed by a JSON-RPC endpoint."""

    def __init__(
        self,
        rpc_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the chain reader.

        Args:
            rpc_url: JSON-RPC endpoint URL
            timeout: Per-request timeout in seconds
            http_client: Optional HTTP client to reuse (owned by the caller)

        Raises:
            ValueError: If rpc_url is empty
        """
        self.rpc_client = RPCClient(rpc_url, timeout=timeout)
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=CONNECTION_TIMEOUT),
            limits=httpx.Limits(
                max_keepalive_connections=MAX_KEEPALIVE_CONNECTIONS,
                max_connections=MAX_CONNECTIONS,
            ),
        )
        logger.info("Chain reader using RPC %s", mask_rpc_url(rpc_url))

    async def current_height(self) -> int:
        """Return the latest block number reported by the node."""
        return await self.rpc_client.get_block_number(self.http_client)

    async def block_at(self, number: int) -> ChainBlock | None:
        """Fetch a block header and reduce it to what the indexer needs.

        Args:
            number: Block height

        Returns:
            ChainBlock, or None if the node returned null for this height

        Raises:
            httpx.HTTPError: If the HTTP request fails
            ValueError: If the node returns a JSON-RPC error
            pydantic.ValidationError: If the block object is malformed
        """
        raw = await self.rpc_client.get_block_by_number(self.http_client, number)
        if raw is None:
            return None
        return ChainBlock.from_rpc(RpcBlock.model_validate(raw))

    async def aclose(self) -> None:
        """Close the HTTP client if this reader created it."""
        if self._owns_client:
            await self.http_client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()


__all__ = ["ChainReader", "RPCChainReader"]
