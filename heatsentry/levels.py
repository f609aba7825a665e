"""
Nearest liquidation levels around price and their movement between snapshots.

Sign convention for deltas (positive = the wall moved away from price):
    bid_delta[i] = older.bids[i].price_bin_start - newer.bids[i].price_bin_start
    ask_delta[i] = newer.asks[i].price_bin_end   - older.asks[i].price_bin_end
"""
from typing import Iterable, List

from heatsentry.errors import InsufficientDataError
from heatsentry.schemas import HeatmapEntry, NearestLevels, SnapshotDiff

DEFAULT_LEVEL_COUNT = 3


def nearest_levels(price: float, entries: Iterable[HeatmapEntry], count: int = DEFAULT_LEVEL_COUNT) -> NearestLevels:
    """
    Up to `count` bins strictly below price (bids) and strictly above (asks),
    closest first. The bin containing price belongs to neither side.
    Equal sort keys keep their input order (sorted() is stable).
    """
    entries = list(entries)
    below = [e for e in entries if e.price_bin_end < price]
    above = [e for e in entries if e.price_bin_start > price]

    bids = sorted(below, key=lambda e: e.price_bin_end, reverse=True)[:count]
    asks = sorted(above, key=lambda e: e.price_bin_start)[:count]
    return NearestLevels(bids=bids, asks=asks)


def _check_aligned(side: str, older: List[HeatmapEntry], newer: List[HeatmapEntry]):
    if len(older) != len(newer):
        raise InsufficientDataError(
            f"{side} level count changed between snapshots ({len(older)} -> {len(newer)})"
        )


def compare_levels(older: NearestLevels, newer: NearestLevels) -> SnapshotDiff:
    """Position-aligned deltas between two chronologically adjacent selections."""
    _check_aligned("bid", older.bids, newer.bids)
    _check_aligned("ask", older.asks, newer.asks)

    return SnapshotDiff(
        bid_deltas=[o.price_bin_start - n.price_bin_start for o, n in zip(older.bids, newer.bids)],
        ask_deltas=[n.price_bin_end - o.price_bin_end for o, n in zip(older.asks, newer.asks)],
    )
