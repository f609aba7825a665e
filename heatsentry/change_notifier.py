"""
Formats liquidation-wall movement reports and fans them out to recipients.
"""
import asyncio
import logging
from typing import List, Sequence

from heatsentry.schemas import DeliveryResult, HeatmapEntry, NearestLevels, PricePoint, SnapshotDiff

logger = logging.getLogger(__name__)

_COMPACT_SUFFIXES = ["", "K", "M", "B", "T"]


def format_compact(value: float) -> str:
    """Short notional notation: 950 -> '950', 50000 -> '50K', 1234567 -> '1.23M'."""
    sign = "-" if value < 0 else ""
    v = abs(value)
    i = 0
    while v >= 1000 and i < len(_COMPACT_SUFFIXES) - 1:
        v /= 1000
        i += 1
    v = round(v, 2)
    # 999_999 rounds up to 1000K; promote to the next unit
    if v >= 1000 and i < len(_COMPACT_SUFFIXES) - 1:
        v = round(v / 1000, 2)
        i += 1
    text = f"{v:.2f}".rstrip("0").rstrip(".")
    return f"{sign}{text}{_COMPACT_SUFFIXES[i]}"


def format_number(value: float) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


def _level_line(entry: HeatmapEntry, delta: float) -> str:
    return (
        f"{format_number(entry.price_bin_start)} - {format_number(entry.price_bin_end)} "
        f"({format_compact(entry.liquidation_value)}) Change: {delta:.2f}"
    )


def format_report(symbol: str, diff: SnapshotDiff, price: PricePoint, levels: NearestLevels) -> str:
    """
    Asks furthest-to-nearest, then price, then bids nearest-to-furthest,
    so the report reads top-down like a price ladder.
    """
    ask_lines = [_level_line(e, d) for e, d in zip(levels.asks, diff.ask_deltas)]
    bid_lines = [_level_line(e, d) for e, d in zip(levels.bids, diff.bid_deltas)]
    return "\n".join([
        f"<b>Liquidation Heat Map Change for {symbol}</b>",
        *reversed(ask_lines),
        f"Price: {format_number(price.price)}",
        *bid_lines,
    ])


class ChangeNotifier:
    def __init__(self, channel, recipients: Sequence[str]):
        self.channel = channel
        self.recipients = [str(r) for r in recipients]

    async def _deliver(self, chat_id: str, text: str) -> DeliveryResult:
        try:
            result = await self.channel.send(chat_id, text)
            if not isinstance(result, DeliveryResult):
                result = DeliveryResult(chat_id=chat_id, ok=False, error=f"unexpected channel result: {result!r}")
        except Exception as e:
            result = DeliveryResult(chat_id=chat_id, ok=False, error=str(e))
        if not result.ok:
            logger.warning("Heatmap alert not delivered to %s: %s", chat_id, result.error)
        return result

    async def broadcast(self, text: str) -> List[DeliveryResult]:
        """Send to every recipient concurrently and wait for all outcomes."""
        if not self.recipients:
            logger.warning("No recipients configured, heatmap alert dropped")
            return []
        results = await asyncio.gather(*(self._deliver(r, text) for r in self.recipients))
        delivered = sum(1 for r in results if r.ok)
        logger.info("Heatmap alert delivered to %d/%d recipients", delivered, len(results))
        return list(results)

    async def notify(self, symbol: str, diff: SnapshotDiff, price: PricePoint, levels: NearestLevels) -> List[DeliveryResult]:
        if not diff.has_changes:
            return []
        return await self.broadcast(format_report(symbol, diff, price, levels))
