"""Common Pydantic models for data structures used across the application."""

from pydantic import BaseModel, ConfigDict, Field


class RpcBlock(BaseModel):
    """Block object returned by eth_getBlockByNumber (header fields only)."""

    number: str = Field(..., description="Block number as hex string")
    hash: str | None = Field(default=None, description="Block hash")
    parent_hash: str | None = Field(
        default=None, description="Parent block hash", alias="parentHash"
    )
    miner: str | None = Field(default=None, description="Miner/validator address")
    timestamp: str = Field(..., description="Block timestamp as hex string")
    extra_data: str | None = Field(
        default=None, description="Extra data field", alias="extraData"
    )
    gas_limit: str | None = Field(
        default=None, description="Gas limit as hex string", alias="gasLimit"
    )
    gas_used: str | None = Field(
        default=None, description="Gas used as hex string", alias="gasUsed"
    )

    model_config = ConfigDict(extra="allow", populate_by_name=True)


__all__ = ["RpcBlock"]
