import pytest

from heatsentry.errors import InsufficientDataError, UpstreamError
from heatsentry.levels import compare_levels, nearest_levels
from heatsentry.schemas import HeatmapEntry, NearestLevels
from heatsentry.services.heatmap_filter import filter_heatmap


def _entry(start, end, liq=10_000.0, ts=1, idx=None):
    return HeatmapEntry(
        coin="ETH",
        price_bin_start=start,
        price_bin_end=end,
        liquidation_value=liq,
        price_bin_index=idx,
        timestamp=ts,
    )


def _raw(start, end, liq):
    return {"coin": "ETH", "priceBinStart": start, "priceBinEnd": end, "liquidationValue": liq}


def test_filter_keeps_order_and_threshold():
    body = {"heatmap": [
        _raw(2900, 2950, 50_000),
        _raw(3050, 3100, 80_000),
        _raw(2800, 2850, 500),
        _raw(3100, 3150, 1_000),
    ]}
    kept = filter_heatmap(body, 1_000)

    assert [(b.price_bin_start, b.liquidation_value) for b in kept] == [
        (2900, 50_000), (3050, 80_000), (3100, 1_000),
    ]
    assert all(b.liquidation_value >= 1_000 for b in kept)


def test_filter_maps_wire_fields():
    body = {"heatmap": [{
        "coin": "ETH", "priceBinStart": 1.0, "priceBinEnd": 2.0, "liquidationValue": 5.0,
        "positionsCount": 7, "mostImpactedSegment": 2, "priceBinIndex": 41,
    }]}
    (b,) = filter_heatmap(body, 0)
    assert b.positions_count == 7
    assert b.most_impacted_segment == 2
    assert b.price_bin_index == 41


def test_filter_rejects_malformed_body():
    with pytest.raises(UpstreamError):
        filter_heatmap({"levels": []}, 0)
    with pytest.raises(UpstreamError):
        filter_heatmap({"heatmap": [{"priceBinStart": "x"}]}, 0)


def test_nearest_levels_ordering_and_count():
    entries = [
        _entry(2700, 2750), _entry(2900, 2950), _entry(2800, 2850), _entry(2600, 2650),
        _entry(3200, 3250), _entry(3050, 3100), _entry(3150, 3200), _entry(3300, 3350),
    ]
    levels = nearest_levels(3000, entries, count=3)

    assert [b.price_bin_end for b in levels.bids] == [2950, 2850, 2750]
    assert [a.price_bin_start for a in levels.asks] == [3050, 3150, 3200]
    for lo, hi in zip(levels.bids, levels.bids[1:]):
        assert lo.price_bin_end > hi.price_bin_end
    for lo, hi in zip(levels.asks, levels.asks[1:]):
        assert lo.price_bin_start < hi.price_bin_start


def test_nearest_levels_excludes_straddling_bin():
    straddle = _entry(2990, 3010)
    edge_low = _entry(2950, 3000)   # end == price
    edge_high = _entry(3000, 3050)  # start == price
    levels = nearest_levels(3000, [straddle, edge_low, edge_high, _entry(2900, 2950)])

    assert straddle not in levels.bids + levels.asks
    assert edge_low not in levels.bids + levels.asks
    assert edge_high not in levels.bids + levels.asks
    assert [b.price_bin_start for b in levels.bids] == [2900]
    assert levels.asks == []


def test_nearest_levels_is_repeatable_and_short_when_sparse():
    entries = [_entry(2900, 2950), _entry(3050, 3100)]
    first = nearest_levels(3000, entries)
    second = nearest_levels(3000, entries)
    assert first == second
    assert len(first.bids) == 1 and len(first.asks) == 1


def test_nearest_levels_ties_keep_input_order():
    a = _entry(2900, 2950, idx=1)
    b = _entry(2910, 2950, idx=2)
    levels = nearest_levels(3000, [a, b])
    assert [e.price_bin_index for e in levels.bids] == [1, 2]


def test_compare_levels_sign_convention():
    older = NearestLevels(bids=[_entry(100, 120)], asks=[_entry(180, 200)])
    newer = NearestLevels(bids=[_entry(95, 115)], asks=[_entry(190, 210)])

    diff = compare_levels(older, newer)
    assert diff.bid_deltas == [5]
    assert diff.ask_deltas == [10]
    assert diff.has_changes


def test_compare_levels_identical_has_no_changes():
    levels = NearestLevels(bids=[_entry(100, 120)], asks=[_entry(180, 200)])
    diff = compare_levels(levels, levels)
    assert diff.bid_deltas == [0] and diff.ask_deltas == [0]
    assert not diff.has_changes


def test_compare_levels_count_mismatch_is_insufficient_data():
    older = NearestLevels(bids=[_entry(100, 120), _entry(80, 90)], asks=[])
    newer = NearestLevels(bids=[_entry(100, 120)], asks=[])
    with pytest.raises(InsufficientDataError):
        compare_levels(older, newer)

    with pytest.raises(InsufficientDataError):
        compare_levels(NearestLevels(asks=[_entry(180, 200)]), NearestLevels())
