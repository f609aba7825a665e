from sqlalchemy import Column, String, Float, Integer, BigInteger, Text, DateTime, Index, UniqueConstraint
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class Setting(Base):
    """Operational key-value settings (aggregator URL, whale threshold)."""
    __tablename__ = "settings"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Price(Base):
    """
    Spot price observed at the start of an ingestion run.
    The row is written last in the snapshot transaction and marks the
    snapshot with the same timestamp as complete.
    """
    __tablename__ = "prices"
    __table_args__ = (
        UniqueConstraint("base_coin", "timestamp", name="uq_prices_base_coin_timestamp"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    base_coin = Column(String(20), nullable=False, index=True)
    quote_coin = Column(String(20), nullable=False, default="USD")
    price = Column(Float, nullable=False)
    timestamp = Column(BigInteger, nullable=False)  # ms since epoch


class LiquidationHeatmapEntry(Base):
    """One liquidation-density bin of a heatmap snapshot."""
    __tablename__ = "liquidation_heatmap_entries"
    __table_args__ = (
        Index("ix_liquidation_heatmap_entries_coin_timestamp", "coin", "timestamp"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    coin = Column(String(20), nullable=False)
    price_bin_start = Column(Float, nullable=False)
    price_bin_end = Column(Float, nullable=False)
    liquidation_value = Column(Float, nullable=False)
    positions_count = Column(Integer, nullable=True)
    most_impacted_segment = Column(Integer, nullable=True)
    price_bin_index = Column(Integer, nullable=True)
    timestamp = Column(BigInteger, nullable=False)  # shared with one Price row
