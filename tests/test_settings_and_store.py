import pytest

from heatsentry.errors import ConfigInvalidError, ConfigMissingError, PersistenceError
from heatsentry.schemas import HeatmapBin
from heatsentry.services import snapshot_store
from heatsentry.services.settings_service import load_pipeline_settings
from models import LiquidationHeatmapEntry, Price, Setting


def _put(session_factory, **values):
    db = session_factory()
    for key, value in values.items():
        db.merge(Setting(key=key, value=value))
    db.commit()
    db.close()


def _bin(start, end, liq=10_000.0):
    return HeatmapBin(coin="ETH", price_bin_start=start, price_bin_end=end, liquidation_value=liq)


def test_load_pipeline_settings(session_factory):
    _put(session_factory, hypertracker_api_url="https://agg.test/", hypertracker_whale_threshold="1000")
    db = session_factory()
    settings = load_pipeline_settings(db)
    db.close()

    assert settings.aggregator_base_url == "https://agg.test"
    assert settings.whale_threshold == 1000.0


def test_load_pipeline_settings_missing_rows(session_factory):
    db = session_factory()
    with pytest.raises(ConfigMissingError) as exc:
        load_pipeline_settings(db)
    db.close()
    assert exc.value.key == "hypertracker_api_url"

    _put(session_factory, hypertracker_api_url="https://agg.test")
    db = session_factory()
    with pytest.raises(ConfigMissingError) as exc:
        load_pipeline_settings(db)
    db.close()
    assert exc.value.key == "hypertracker_whale_threshold"


@pytest.mark.parametrize("value", ["abc", "", "nan", "inf"])
def test_load_pipeline_settings_bad_threshold(session_factory, value):
    _put(session_factory, hypertracker_api_url="https://agg.test", hypertracker_whale_threshold=value)
    db = session_factory()
    with pytest.raises(ConfigInvalidError):
        load_pipeline_settings(db)
    db.close()


def test_load_pipeline_settings_bad_url(session_factory):
    _put(session_factory, hypertracker_api_url="agg.test", hypertracker_whale_threshold="1")
    db = session_factory()
    with pytest.raises(ConfigInvalidError):
        load_pipeline_settings(db)
    db.close()


def test_save_snapshot_shares_one_timestamp(store, session_factory):
    snap = store.save_snapshot("eth", 3000.0, [_bin(2900, 2950), _bin(3050, 3100)], 1_000)

    assert snap.price.base_coin == "ETH"
    assert snap.price.quote_coin == "USD"
    assert {e.timestamp for e in snap.entries} == {1_000}

    db = session_factory()
    assert db.query(Price).count() == 1
    assert db.query(LiquidationHeatmapEntry).filter_by(timestamp=1_000, coin="ETH").count() == 2
    db.close()


def test_save_snapshot_is_atomic(store, session_factory):
    store.save_snapshot("ETH", 3000.0, [_bin(2900, 2950)], 1_000)

    # Same (coin, timestamp) violates the price uniqueness; nothing from the
    # second attempt may survive.
    with pytest.raises(PersistenceError):
        store.save_snapshot("ETH", 3001.0, [_bin(2800, 2850), _bin(3100, 3150)], 1_000)

    db = session_factory()
    assert db.query(Price).count() == 1
    assert db.query(LiquidationHeatmapEntry).count() == 1
    db.close()


def test_recent_snapshots_newest_first(store):
    assert store.recent_snapshots("ETH") == []

    store.save_snapshot("ETH", 3000.0, [_bin(2900, 2950)], 1_000)
    only = store.recent_snapshots("ETH")
    assert len(only) == 1

    store.save_snapshot("ETH", 3010.0, [_bin(2870, 2920), _bin(3050, 3100)], 2_000)
    store.save_snapshot("BTC", 60000.0, [_bin(59000, 59500)], 3_000)
    store.save_snapshot("ETH", 3020.0, [_bin(2880, 2930)], 3_000)

    newer, older = store.recent_snapshots("ETH", count=2)
    assert newer.price.timestamp == 3_000 and older.price.timestamp == 2_000
    assert [e.price_bin_start for e in older.entries] == [2870, 3050]
    assert all(e.coin == "ETH" for e in newer.entries)


def test_get_snapshot(store):
    assert store.get_snapshot("ETH", 1_000) is None
    store.save_snapshot("ETH", 3000.0, [_bin(2900, 2950)], 1_000)
    snap = store.get_snapshot("ETH", 1_000)
    assert snap.price.price == 3000.0
    assert len(snap.entries) == 1


def test_load_history_window_in_chunks(store, monkeypatch):
    monkeypatch.setattr(snapshot_store, "HISTORY_CHUNK_SIZE", 2)
    for i in range(5):
        store.save_snapshot("ETH", 3000.0 + i, [_bin(2900 + i, 2950 + i), _bin(3050, 3100)], 1_000 * (i + 1))

    prices, entries = store.load_history("ETH", offset=1, limit=3)

    assert [p.timestamp for p in prices] == [2_000, 3_000, 4_000]
    assert len(entries) == 6
    assert [e.timestamp for e in entries] == sorted(e.timestamp for e in entries)
    assert {e.timestamp for e in entries} == {2_000, 3_000, 4_000}


def test_normalize_database_url():
    from database import normalize_database_url

    assert normalize_database_url("postgres://u:p@h/db") == "postgresql://u:p@h/db"
    assert normalize_database_url("sqlite://") == "sqlite://"
