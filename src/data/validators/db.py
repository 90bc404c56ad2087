"""Database models for validators and the block attribution log."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from src.helpers.constants import ADDRESS_LENGTH
from src.helpers.db import Base


class ValidatorDB(Base):
    """Block producer with derived uptime statistics."""

    __tablename__ = "validators"

    address: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), primary_key=True)
    total_blocks: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    missed_blocks: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    uptime_percentage: Mapped[float] = mapped_column(
        Numeric(5, 2, asdecimal=False), nullable=False, default=0
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class BlockLogDB(Base):
    """Append-only log of blocks attributed to a validator."""

    __tablename__ = "block_logs"

    block_number: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    validator: Mapped[str] = mapped_column(
        String(ADDRESS_LENGTH),
        ForeignKey("validators.address"),
        nullable=False,
        index=True,
    )
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
