"""
Snapshot Store - append-only persistence of prices and heatmap bins.

A snapshot is written in one transaction: heatmap entries first, the price
row last. Readers key off price rows, so a snapshot without its price row is
never observed as complete.
"""
import logging
from contextlib import contextmanager
from typing import Callable, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from heatsentry.errors import PersistenceError
from heatsentry.schemas import HeatmapBin, HeatmapEntry, PricePoint, Snapshot
from models import LiquidationHeatmapEntry, Price

logger = logging.getLogger(__name__)

HISTORY_CHUNK_SIZE = 40


class SnapshotStore:
    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        self._session_factory = session_factory

    @contextmanager
    def _session(self):
        if self._session_factory is None:
            from database import get_session_factory
            self._session_factory = get_session_factory()
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Snapshot store error: {e}") from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def save_snapshot(self, symbol: str, price: float, bins: Iterable[HeatmapBin], timestamp: int) -> Snapshot:
        """Persist one price and its filtered bins under a single timestamp."""
        symbol = symbol.upper()
        rows = []
        for b in bins:
            if b.coin and b.coin.upper() != symbol:
                logger.warning("Heatmap bin coin %s does not match %s, storing under %s", b.coin, symbol, symbol)
            rows.append(LiquidationHeatmapEntry(
                coin=symbol,
                price_bin_start=b.price_bin_start,
                price_bin_end=b.price_bin_end,
                liquidation_value=b.liquidation_value,
                positions_count=b.positions_count,
                most_impacted_segment=b.most_impacted_segment,
                price_bin_index=b.price_bin_index,
                timestamp=timestamp,
            ))
        price_row = Price(base_coin=symbol, quote_coin="USD", price=price, timestamp=timestamp)

        with self._session() as db:
            db.add_all(rows)
            db.flush()
            db.add(price_row)
            db.flush()
            snapshot = Snapshot(
                price=PricePoint.model_validate(price_row),
                entries=[HeatmapEntry.model_validate(r) for r in rows],
            )
        return snapshot

    def latest_prices(self, coin: str, limit: int = 2, offset: int = 0) -> List[PricePoint]:
        """Price rows for `coin`, newest first."""
        with self._session() as db:
            rows = (
                db.query(Price)
                .filter(Price.base_coin == coin.upper())
                .order_by(Price.timestamp.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            return [PricePoint.model_validate(r) for r in rows]

    def entries_at(self, coin: str, timestamp: int) -> List[HeatmapEntry]:
        with self._session() as db:
            rows = (
                db.query(LiquidationHeatmapEntry)
                .filter(
                    LiquidationHeatmapEntry.coin == coin.upper(),
                    LiquidationHeatmapEntry.timestamp == timestamp,
                )
                .order_by(LiquidationHeatmapEntry.id.asc())
                .all()
            )
            return [HeatmapEntry.model_validate(r) for r in rows]

    def get_snapshot(self, coin: str, timestamp: int) -> Optional[Snapshot]:
        with self._session() as db:
            row = (
                db.query(Price)
                .filter(Price.base_coin == coin.upper(), Price.timestamp == timestamp)
                .first()
            )
            price = PricePoint.model_validate(row) if row else None
        if price is None:
            return None
        return Snapshot(price=price, entries=self.entries_at(coin, timestamp))

    def recent_snapshots(self, coin: str, count: int = 2) -> List[Snapshot]:
        """
        Up to `count` most recent complete snapshots, newest first.
        Fewer are returned when history is short; that is not an error.
        """
        return [
            Snapshot(price=p, entries=self.entries_at(coin, p.timestamp))
            for p in self.latest_prices(coin, limit=count)
        ]

    def load_history(self, coin: str, offset: int = 0, limit: int = 160) -> Tuple[List[PricePoint], List[HeatmapEntry]]:
        """
        A window of recent history for charting: prices in ascending time
        order and every heatmap entry under those timestamps.
        """
        prices = self.latest_prices(coin, limit=limit, offset=offset)
        timestamps = [p.timestamp for p in prices]

        entries: List[HeatmapEntry] = []
        with self._session() as db:
            for i in range(0, len(timestamps), HISTORY_CHUNK_SIZE):
                chunk = timestamps[i:i + HISTORY_CHUNK_SIZE]
                rows = (
                    db.query(LiquidationHeatmapEntry)
                    .filter(
                        LiquidationHeatmapEntry.coin == coin.upper(),
                        LiquidationHeatmapEntry.timestamp.in_(chunk),
                    )
                    .order_by(LiquidationHeatmapEntry.timestamp.asc(), LiquidationHeatmapEntry.id.asc())
                    .all()
                )
                entries.extend(HeatmapEntry.model_validate(r) for r in rows)

        entries.sort(key=lambda e: e.timestamp)
        return list(reversed(prices)), entries
