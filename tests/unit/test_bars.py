"""Tests for price bar parsing and series validation."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from factories import T0, make_bars
from trade_analytics.core.errors import (
    InsufficientDataError,
    MalformedBarError,
    UnsortedPriceSeriesError,
)
from trade_analytics.replay.bars import parse_bar, parse_bars


def _raw(close=100, **overrides):
    bar = {
        "time": [2024, 1, 2, 9, 30],
        "open": close,
        "high": close,
        "low": close,
        "close": close,
        "volume": 500,
    }
    bar.update(overrides)
    return bar


class TestParseBar:
    def test_component_list(self):
        bar = parse_bar(_raw(time=[2024, 1, 2, 9, 30, 15]))
        assert bar.timestamp == datetime(2024, 1, 2, 9, 30, 15, tzinfo=timezone.utc)
        assert bar.close == Decimal("100")
        assert bar.volume == 500

    def test_iso_timestamp(self):
        bar = parse_bar(_raw(time=None, timestamp="2024-01-02T09:30:00+00:00"))
        assert bar.timestamp == T0

    def test_naive_timestamp_gets_default_zone(self):
        bar = parse_bar(_raw(time=None, timestamp=datetime(2024, 1, 2, 9, 30)))
        assert bar.timestamp.tzinfo is timezone.utc

    def test_custom_zone(self):
        tz = timezone(timedelta(hours=5, minutes=30))
        bar = parse_bar(_raw(), tz=tz)
        assert bar.timestamp.utcoffset() == timedelta(hours=5, minutes=30)

    def test_float_prices_have_no_binary_artefacts(self):
        bar = parse_bar(_raw(close=0.1, open=0.1, high=0.1, low=0.1))
        assert bar.close == Decimal("0.1")

    def test_price_bar_passthrough(self):
        [bar] = make_bars([42])
        assert parse_bar(bar) is bar

    @pytest.mark.parametrize(
        "overrides",
        [
            {"time": None},
            {"time": [2024, 1, 2, 9]},
            {"time": [2024, 13, 2, 9, 30]},
            {"time": [2024, 1, 2, "9", 30]},
            {"time": [2024, 1, 2, True, 30]},
            {"time": "2024-01-02"},
            {"time": None, "timestamp": "not a date"},
            {"close": None},
            {"high": "abc"},
            {"low": float("nan")},
            {"close": 0},
            {"close": -1},
        ],
    )
    def test_malformed(self, overrides):
        with pytest.raises(MalformedBarError):
            parse_bar(_raw(**overrides))

    def test_unsupported_type(self):
        with pytest.raises(MalformedBarError):
            parse_bar(["not", "a", "bar"])


class TestParseBars:
    def test_valid_series(self):
        bars, skipped = parse_bars(make_bars([100, 101, 102]))
        assert len(bars) == 3
        assert skipped == 0

    def test_skips_malformed_bars(self):
        raw = [
            _raw(time=[2024, 1, 2, 9, 30]),
            _raw(time=[2024, 1, 2]),
            _raw(time=[2024, 1, 2, 10, 30], close="x"),
            _raw(time=[2024, 1, 2, 11, 30]),
        ]
        bars, skipped = parse_bars(raw)
        assert skipped == 2
        assert [b.timestamp.hour for b in bars] == [9, 11]

    def test_all_malformed(self):
        with pytest.raises(InsufficientDataError, match="malformed"):
            parse_bars([_raw(time=None), _raw(close=None)])

    @pytest.mark.parametrize("count", [0, 1])
    def test_too_few_bars(self, count):
        with pytest.raises(InsufficientDataError):
            parse_bars(make_bars([100] * count))

    def test_one_valid_after_skipping(self):
        with pytest.raises(InsufficientDataError):
            parse_bars([_raw(), _raw(time=None)])

    def test_unsorted(self):
        bars = make_bars([100, 101, 102])
        with pytest.raises(UnsortedPriceSeriesError):
            parse_bars([bars[1], bars[0], bars[2]])

    def test_duplicate_timestamps_rejected(self):
        [bar] = make_bars([100])
        with pytest.raises(UnsortedPriceSeriesError):
            parse_bars([bar, bar])
