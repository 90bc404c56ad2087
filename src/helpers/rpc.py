"""JSON-RPC client utilities for EVM chains."""

from typing import Any

import httpx

from src.helpers.constants import DEFAULT_TIMEOUT
from src.helpers.parsers import parse_hex_int
from src.helpers.rpc_models import (
    EthBlockNumberRequest,
    EthGetBlockByNumberRequest,
    JsonRpcRequest,
    JsonRpcResponse,
)


class RPCClient:
    """JSON-RPC 2.0 client for an EVM-compatible node."""

    def __init__(self, rpc_url: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        """Initialize RPC client.

        Args:
            rpc_url: JSON-RPC endpoint URL
            timeout: Default timeout for requests in seconds

        Raises:
            ValueError: If rpc_url is empty or None
        """
        if not rpc_url:
            msg = "RPC URL cannot be empty"
            raise ValueError(msg)

        self.rpc_url = rpc_url
        self.timeout = timeout

    async def send(self, client: httpx.AsyncClient, request: JsonRpcRequest) -> Any:
        """Send a prepared JSON-RPC request.

        Args:
            client: HTTP client instance
            request: Request model to send

        Returns:
            RPC result value (None when the node returns null)

        Raises:
            httpx.HTTPError: If the HTTP request fails
            ValueError: If the RPC response contains an error
        """
        response = await client.post(
            self.rpc_url,
            json=request.model_dump(),
            timeout=self.timeout,
        )
        response.raise_for_status()
        envelope = JsonRpcResponse.model_validate(response.json())

        if envelope.error is not None:
            msg = f"RPC error: {envelope.error.code} {envelope.error.message}"
            raise ValueError(msg)

        return envelope.result

    async def get_block_number(self, client: httpx.AsyncClient) -> int:
        """Get the latest block number.

        Args:
            client: HTTP client instance

        Returns:
            Latest block number
        """
        result = await self.send(client, EthBlockNumberRequest(id=1))
        return parse_hex_int(result)

    async def get_block_by_number(
        self,
        client: httpx.AsyncClient,
        block_number: int,
        *,
        full_transactions: bool = False,
    ) -> dict[str, Any] | None:
        """Get a block by number.

        Args:
            client: HTTP client instance
            block_number: Block height to fetch
            full_transactions: Whether to include full transaction objects

        Returns:
            Raw block object, or None if the node does not have the block
        """
        request = EthGetBlockByNumberRequest.for_block(
            block_number, full_transactions=full_transactions
        )
        result = await self.send(client, request)
        return result or None


__all__ = ["RPCClient"]
