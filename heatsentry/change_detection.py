"""
Change detection: compare the two most recent snapshots of a coin and
alert when the nearest liquidation walls moved.
"""
import logging
from typing import Optional

from config import config
from heatsentry.change_notifier import ChangeNotifier
from heatsentry.errors import InsufficientDataError
from heatsentry.levels import compare_levels, nearest_levels
from heatsentry.schemas import DetectionResult
from heatsentry.services.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


class ChangeDetector:
    def __init__(
        self,
        notifier: ChangeNotifier,
        store: Optional[SnapshotStore] = None,
        level_count: Optional[int] = None,
    ):
        self.notifier = notifier
        self.store = store or SnapshotStore()
        self.level_count = level_count or config.HEATMAP_LEVEL_COUNT

    async def run(self, symbol: str) -> DetectionResult:
        symbol = symbol.upper()
        snapshots = self.store.recent_snapshots(symbol, count=2)
        if len(snapshots) < 2:
            logger.info("Only %d snapshot(s) for %s, nothing to compare", len(snapshots), symbol)
            return DetectionResult(symbol=symbol, status="no_history")

        newer, older = snapshots
        older_levels = nearest_levels(older.price.price, older.entries, self.level_count)
        newer_levels = nearest_levels(newer.price.price, newer.entries, self.level_count)

        try:
            diff = compare_levels(older_levels, newer_levels)
        except InsufficientDataError as e:
            logger.info("Skipping %s heatmap diff (%s -> %s): %s", symbol, older.price.timestamp, newer.price.timestamp, e)
            return DetectionResult(symbol=symbol, status="insufficient_data")

        logger.debug("%s heatmap diff bids=%s asks=%s", symbol, diff.bid_deltas, diff.ask_deltas)
        if not diff.has_changes:
            return DetectionResult(symbol=symbol, status="unchanged", diff=diff)

        logger.info("📣 %s liquidation walls moved: bids=%s asks=%s", symbol, diff.bid_deltas, diff.ask_deltas)
        deliveries = await self.notifier.notify(symbol, diff, newer.price, newer_levels)
        return DetectionResult(symbol=symbol, status="notified", diff=diff, deliveries=deliveries)
