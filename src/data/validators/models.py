"""Pydantic models for validators and block logs."""

# Pydantic needs this at runtime to validate the datetime fields
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


class Validator(BaseModel):
    """Validator row with its derived stats."""

    model_config = ConfigDict(from_attributes=True)

    address: str
    total_blocks: int = Field(default=0, ge=0)
    missed_blocks: int = Field(default=0, ge=0)
    uptime_percentage: float = Field(default=0.0, ge=0, le=100)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class BlockLogEntry(BaseModel):
    """One block attributed to its producer."""

    model_config = ConfigDict(from_attributes=True)

    block_number: int = Field(ge=0)
    validator: str
    timestamp: datetime


class NetworkStats(BaseModel):
    """Aggregate figures across all validators."""

    total_validators: int = 0
    avg_uptime: float = 0.0
    total_blocks: int = 0
    total_missed: int = 0
