"""Tests for the JSON-RPC chain reader."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from src.data.chain.reader import RPCChainReader

RPC_URL = "https://arc-testnet.g.alchemy.com/v2/secret"


def http_client_returning(*results: Any) -> AsyncMock:
    """AsyncClient mock answering successive posts with the given results."""
    mock_http_client = AsyncMock(spec=httpx.AsyncClient)
    responses = []
    for result in results:
        response = MagicMock()
        response.json.return_value = {"jsonrpc": "2.0", "id": 1, "result": result}
        responses.append(response)
    mock_http_client.post.side_effect = responses
    return mock_http_client


class TestRPCChainReader:
    """Tests for RPCChainReader."""

    @pytest.mark.asyncio
    async def test_current_height(self) -> None:
        """Test the head is decoded from eth_blockNumber."""
        reader = RPCChainReader(RPC_URL, http_client=http_client_returning("0x1f4"))

        assert await reader.current_height() == 500

    @pytest.mark.asyncio
    async def test_block_at(self) -> None:
        """Test a block is reduced to number, producer and timestamp."""
        http_client = http_client_returning(
            {
                "number": "0x64",
                "hash": "0x" + "1" * 64,
                "parentHash": "0x" + "0" * 64,
                "miner": "0xABCDEF0000000000000000000000000000000001",
                "timestamp": "0x6553f100",
                "transactions": [],
            }
        )
        reader = RPCChainReader(RPC_URL, http_client=http_client)

        block = await reader.block_at(100)

        assert block is not None
        assert block.number == 100
        assert block.producer == "0xabcdef0000000000000000000000000000000001"
        assert block.timestamp_seconds == 1_700_000_000
        sent = http_client.post.call_args.kwargs["json"]
        assert sent["params"] == ["0x64", False]

    @pytest.mark.asyncio
    async def test_block_at_missing_block(self) -> None:
        """Test a null result means the node does not have the block."""
        reader = RPCChainReader(RPC_URL, http_client=http_client_returning(None))

        assert await reader.block_at(10**9) is None

    @pytest.mark.asyncio
    async def test_block_at_without_miner(self) -> None:
        """Test a block without a miner field has no producer."""
        reader = RPCChainReader(
            RPC_URL,
            http_client=http_client_returning({"number": "0x2a", "timestamp": "0x1"}),
        )

        block = await reader.block_at(42)

        assert block is not None
        assert block.producer is None

    @pytest.mark.asyncio
    async def test_transport_errors_propagate(self) -> None:
        """Test network failures are raised to the caller."""
        http_client = AsyncMock(spec=httpx.AsyncClient)
        http_client.post.side_effect = httpx.ReadTimeout("timed out")
        reader = RPCChainReader(RPC_URL, http_client=http_client)

        with pytest.raises(httpx.ReadTimeout):
            await reader.current_height()

    @pytest.mark.asyncio
    async def test_borrowed_client_not_closed(self) -> None:
        """Test a caller-provided client is left open."""
        http_client = AsyncMock(spec=httpx.AsyncClient)

        async with RPCChainReader(RPC_URL, http_client=http_client):
            pass

        http_client.aclose.assert_not_called()

    @pytest.mark.asyncio
    async def test_owned_client_closed(self) -> None:
        """Test the reader closes the client it created."""
        reader = RPCChainReader(RPC_URL, timeout=5.0)

        await reader.aclose()

        assert reader.http_client.is_closed

    def test_empty_url_raises(self) -> None:
        """Test an empty RPC URL is rejected."""
        with pytest.raises(ValueError, match="RPC URL cannot be empty"):
            RPCChainReader("")

    def test_logs_masked_url(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test the API key segment never reaches the log."""
        with caplog.at_level("INFO"):
            RPCChainReader(RPC_URL, http_client=AsyncMock(spec=httpx.AsyncClient))

        assert "v2/***" in caplog.text
        assert "secret" not in caplog.text
