from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal, Optional


class HeatmapBin(BaseModel):
    """
    One bin of the aggregator's liquidation heatmap, as received on the wire
    (camelCase) and accepted by field name as well.
    """
    model_config = ConfigDict(populate_by_name=True)

    coin: Optional[str] = None
    price_bin_start: float = Field(alias="priceBinStart")
    price_bin_end: float = Field(alias="priceBinEnd")
    liquidation_value: float = Field(alias="liquidationValue")
    positions_count: Optional[int] = Field(default=None, alias="positionsCount")
    most_impacted_segment: Optional[int] = Field(default=None, alias="mostImpactedSegment")
    price_bin_index: Optional[int] = Field(default=None, alias="priceBinIndex")


class HeatmapResponse(BaseModel):
    heatmap: List[HeatmapBin]


class PricePoint(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    base_coin: str
    quote_coin: str = "USD"
    price: float
    timestamp: int


class HeatmapEntry(BaseModel):
    """A persisted heatmap bin, detached from the ORM session."""
    model_config = ConfigDict(from_attributes=True)

    coin: str
    price_bin_start: float
    price_bin_end: float
    liquidation_value: float
    positions_count: Optional[int] = None
    most_impacted_segment: Optional[int] = None
    price_bin_index: Optional[int] = None
    timestamp: int


class Snapshot(BaseModel):
    """All bins for one coin at one timestamp, plus the price at that timestamp."""
    price: PricePoint
    entries: List[HeatmapEntry] = Field(default_factory=list)


class NearestLevels(BaseModel):
    """Closest bins below (bids) and above (asks) a reference price, nearest first."""
    bids: List[HeatmapEntry] = Field(default_factory=list)
    asks: List[HeatmapEntry] = Field(default_factory=list)


class SnapshotDiff(BaseModel):
    bid_deltas: List[float] = Field(default_factory=list)
    ask_deltas: List[float] = Field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return any(d != 0 for d in self.bid_deltas) or any(d != 0 for d in self.ask_deltas)


class PipelineSettings(BaseModel):
    """Operational settings resolved once per run by the caller."""
    aggregator_base_url: str
    whale_threshold: float


class IngestionResult(BaseModel):
    symbol: str
    timestamp: int
    price: float
    raw_count: int
    stored_count: int


class DeliveryResult(BaseModel):
    chat_id: str
    ok: bool
    error: Optional[str] = None


class DetectionResult(BaseModel):
    symbol: str
    status: Literal["no_history", "insufficient_data", "unchanged", "notified"]
    diff: Optional[SnapshotDiff] = None
    deliveries: List[DeliveryResult] = Field(default_factory=list)
