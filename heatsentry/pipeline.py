"""
Ingestion pipeline: fetch price -> fetch heatmap -> filter -> persist.

Linear and terminal on the first failure. A partial snapshot is never
written: the store commits entries and price together or not at all.
"""
import asyncio
import logging
import time
from typing import Callable, Optional

import aiohttp

from config import config
from heatsentry.errors import HeatSentryError, PipelineTimeoutError
from heatsentry.schemas import IngestionResult, PipelineSettings
from heatsentry.services.heatmap_fetcher import HeatmapFetcher
from heatsentry.services.heatmap_filter import filter_heatmap
from heatsentry.services.price_fetcher import PriceFetcher
from heatsentry.services.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


class IngestionPipeline:
    def __init__(
        self,
        settings: PipelineSettings,
        price_fetcher: Optional[PriceFetcher] = None,
        heatmap_fetcher: Optional[HeatmapFetcher] = None,
        store: Optional[SnapshotStore] = None,
        session: Optional[aiohttp.ClientSession] = None,
        timeout_sec: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.price_fetcher = price_fetcher or PriceFetcher(session=session)
        self.heatmap_fetcher = heatmap_fetcher or HeatmapFetcher(settings.aggregator_base_url, session=session)
        self.store = store or SnapshotStore()
        self.timeout_sec = timeout_sec or config.PIPELINE_TIMEOUT_SEC
        self.clock = clock
        self._stage = None

    async def run(self, symbol: str) -> IngestionResult:
        symbol = symbol.upper()
        self._stage = None
        try:
            return await asyncio.wait_for(self._run(symbol), timeout=self.timeout_sec)
        except asyncio.TimeoutError:
            stage = self._stage or "start"
            logger.error("❌ Heatmap ingestion for %s exceeded %ss deadline at %s", symbol, self.timeout_sec, stage)
            raise PipelineTimeoutError(f"ingestion for {symbol} exceeded {self.timeout_sec}s at {stage}") from None

    async def _run(self, symbol: str) -> IngestionResult:
        # One timestamp for the whole run; price and bins share it.
        timestamp = int(self.clock() * 1000)
        self._stage = "fetch_price"
        try:
            price = await self.price_fetcher.fetch_price(symbol)

            self._stage = "fetch_heatmap"
            body = await self.heatmap_fetcher.fetch_heatmap(symbol)

            self._stage = "filter_heatmap"
            bins = filter_heatmap(body, self.settings.whale_threshold)
            raw_count = len(body["heatmap"])

            self._stage = "persist_snapshot"
            snapshot = self.store.save_snapshot(symbol, price, bins, timestamp)
        except HeatSentryError as e:
            logger.error("❌ Heatmap ingestion for %s failed at %s: %s: %s", symbol, self._stage, type(e).__name__, e)
            raise
        except Exception as e:
            logger.exception("❌ Heatmap ingestion for %s crashed at %s: %s", symbol, self._stage, e)
            raise

        logger.info(
            "✅ Stored %s snapshot ts=%s price=%s bins=%d/%d (threshold %s)",
            symbol, timestamp, price, len(snapshot.entries), raw_count, self.settings.whale_threshold,
        )
        return IngestionResult(
            symbol=symbol,
            timestamp=timestamp,
            price=price,
            raw_count=raw_count,
            stored_count=len(snapshot.entries),
        )
