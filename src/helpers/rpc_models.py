"""Pydantic models for JSON-RPC requests and responses."""

from typing import Any

from pydantic import BaseModel, Field


class JsonRpcRequest(BaseModel):
    """JSON-RPC 2.0 request model."""

    jsonrpc: str = Field(default="2.0", description="JSON-RPC version")
    method: str = Field(..., description="Method name to call")
    params: list[Any] = Field(
        default_factory=list, description="Method parameters"
    )
    id: int | str = Field(..., description="Request ID")


class JsonRpcError(BaseModel):
    """Error object of a JSON-RPC 2.0 response."""

    code: int
    message: str
    data: Any | None = None


class JsonRpcResponse(BaseModel):
    """JSON-RPC 2.0 response envelope."""

    jsonrpc: str = "2.0"
    id: int | str | None = None
    result: Any | None = None
    error: JsonRpcError | None = None


class EthBlockNumberRequest(JsonRpcRequest):
    """JSON-RPC request for eth_blockNumber."""

    method: str = Field(default="eth_blockNumber", frozen=True)
    params: list[Any] = Field(default_factory=list, frozen=True)


class EthGetBlockByNumberRequest(JsonRpcRequest):
    """JSON-RPC request for eth_getBlockByNumber."""

    method: str = Field(default="eth_getBlockByNumber", frozen=True)

    @classmethod
    def for_block(
        cls, block_number: int, *, full_transactions: bool = False, request_id: int = 1
    ) -> "EthGetBlockByNumberRequest":
        """Build a request for a single block by number."""
        return cls(params=[hex(block_number), full_transactions], id=request_id)


__all__ = [
    "EthBlockNumberRequest",
    "EthGetBlockByNumberRequest",
    "JsonRpcError",
    "JsonRpcRequest",
    "JsonRpcResponse",
]
