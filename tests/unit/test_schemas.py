"""
Unit Tests for Normalized Schemas

Run with:
    pytest tests/unit/test_schemas.py -v
"""

import pytest
from pydantic import ValidationError

from core.schemas import (
    AssetBinding,
    Bar,
    IndicatorConfig,
    OptionalLegConfig,
    PairConfig,
    PairSnapshot,
    PipelineConfig,
    Quote,
)


class TestMarketData:
    """Tests for Quote and Bar"""

    def test_quote_time_in_seconds(self):
        assert Quote(timestamp_ms=1704067200123, price=1.0).time == 1704067200

    def test_bar_from_quote_is_degenerate(self):
        """Verify a bar synthesized from a quote has one price and no volume"""
        bar = Bar.from_quote(Quote(timestamp_ms=1704067200000, price=0.25))

        assert bar.time == 1704067200
        assert bar.open == bar.high == bar.low == bar.close == 0.25
        assert bar.volume == 0.0

    def test_bar_rejects_negative_prices(self):
        with pytest.raises(ValidationError):
            Bar(time=0, open=-1.0, high=1.0, low=1.0, close=1.0)

    def test_bar_is_immutable(self):
        bar = Bar(time=0, open=1.0, high=1.0, low=1.0, close=1.0)
        with pytest.raises(ValidationError):
            bar.close = 2.0


class TestPairConfig:
    """Tests for pair configuration"""

    def test_source_is_lowercased(self):
        assert AssetBinding(symbol="BTC", source="CryptoCompare").source == "cryptocompare"

    def test_optional_name_defaults_from_direction(self):
        """Verify the optional ratio name follows as_numerator"""
        pair = PairConfig(
            name="CHZ/BTC",
            numerator=AssetBinding(symbol="BTC", source="cryptocompare"),
            denominator=AssetBinding(symbol="CHZ", source="cryptocompare"),
            optional_leg=OptionalLegConfig(asset=AssetBinding(symbol="pepper", source="coingecko")),
        )

        assert pair.optional_name == "PEPPER/CHZ"
        assert len(pair.bindings()) == 3

        flipped = pair.model_copy(update={
            "optional_leg": OptionalLegConfig(
                asset=AssetBinding(symbol="pepper", source="coingecko"), as_numerator=False
            )
        })
        assert flipped.optional_name == "CHZ/PEPPER"

    def test_no_optional_leg(self):
        pair = PairConfig(
            name="ETH/BTC",
            numerator=AssetBinding(symbol="ETH", source="cryptocompare"),
            denominator=AssetBinding(symbol="BTC", source="cryptocompare"),
        )

        assert pair.optional_name is None
        assert len(pair.bindings()) == 2


class TestPipelineConfig:
    """Tests for per-run configuration"""

    def test_defaults(self):
        config = PipelineConfig()

        assert config.lookback == 365
        assert config.interval == "1D"
        assert [i.label for i in config.indicators] == ["SMA 20", "SMA 50"]

    def test_interval_uppercased_and_lookback_parsed(self):
        config = PipelineConfig(lookback="MAX", interval="1w")

        assert config.lookback == "max"
        assert config.interval == "1W"

    @pytest.mark.parametrize("kwargs", [
        {"interval": "2H"},
        {"lookback": 0},
        {"lookback": "forever"},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValidationError):
            PipelineConfig(**kwargs)

    def test_indicator_period_must_be_positive(self):
        with pytest.raises(ValidationError):
            IndicatorConfig(kind="ema", period=0)

    def test_indicator_label(self):
        assert IndicatorConfig(kind="ema", period=12).label == "EMA 12"


class TestPairSnapshot:
    """Tests for limited-data flags"""

    def test_empty_snapshot_is_limited(self):
        snapshot = PairSnapshot(pair="CHZ/BTC", interval="1D", lookback=30)

        assert snapshot.limited_data is True
        assert snapshot.optional_limited_data is False

    def test_degraded_optional_leg_is_limited(self):
        snapshot = PairSnapshot(
            pair="CHZ/BTC", interval="1D", lookback=30,
            optional_status="degraded", optional_reason="timeout"
        )

        assert snapshot.optional_limited_data is True
