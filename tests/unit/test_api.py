"""
Unit Tests for the HTTP API

The global orchestrator is replaced with one wired to the dummy sources
from conftest.py, so no request leaves the process.

Run with:
    pytest tests/unit/test_api.py -v
"""

import pytest
from fastapi.testclient import TestClient

import app.main
from core.exceptions import FetchFailed, RateLimited
from core.pipeline import PipelineOrchestrator
from core.schemas import AssetBinding, PairConfig, PipelineConfig


@pytest.fixture
def orchestrator(pair, plain_pair, source_manager, monkeypatch):
    orchestrator = PipelineOrchestrator(
        pairs=[pair, plain_pair],
        sources=source_manager,
        config=PipelineConfig(lookback=60, interval="1D")
    )
    monkeypatch.setattr(app.main, "orchestrator", orchestrator)
    return orchestrator


@pytest.fixture
def client(orchestrator):
    with TestClient(app.main.app) as client:
        yield client


# ============================================
# System Endpoints
# ============================================

class TestSystemEndpoints:
    """Tests for / and /health"""

    def test_root(self, client):
        data = client.get("/").json()

        assert data["status"] == "operational"
        assert data["pairs"] == ["CHZ/BTC", "ETH/BTC"]
        assert data["sources"] == ["ohlc", "quotes"]
        assert data["ohlcv_sources"] == ["ohlc"]

    def test_health_before_any_run(self, client):
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["pairs"] == {"CHZ/BTC": "idle", "ETH/BTC": "idle"}

    def test_health_degraded_after_failure(self, client, ohlc_source):
        ohlc_source.errors["ETH"] = FetchFailed("ohlc", "ETH", 500, "Internal Server Error")
        client.get("/pairs/ETH-BTC")

        data = client.get("/health").json()

        assert data["status"] == "degraded"
        assert data["pairs"]["ETH/BTC"] == "failed"

    def test_startup_rejects_unregistered_source(self, source_manager, monkeypatch):
        """Verify pairs are checked against the orchestrator's own registry"""
        pair = PairConfig(
            name="ETH/BTC",
            numerator=AssetBinding(symbol="ETH", source="cryptocompare"),
            denominator=AssetBinding(symbol="BTC", source="ohlc"),
        )
        orchestrator = PipelineOrchestrator(pairs=[pair], sources=source_manager)
        monkeypatch.setattr(app.main, "orchestrator", orchestrator)

        with pytest.raises(ValueError, match="unknown source 'cryptocompare'"):
            with TestClient(app.main.app):
                pass


# ============================================
# Pair Endpoints
# ============================================

class TestPairEndpoints:
    """Tests for fetching pairs"""

    def test_get_pair_line(self, client):
        response = client.get("/pairs/CHZ-BTC", params={"lookback": "60"})

        assert response.status_code == 200
        data = response.json()
        assert data["pair"] == "CHZ/BTC"
        assert data["interval"] == "1D"
        assert [s["label"] for s in data["series"]] == ["CHZ/BTC", "CHZ/PEPPER"]
        assert len(data["series"][0]["line"]) == 60
        assert data["series"][0]["line"][0]["value"] == pytest.approx(50.0)
        assert set(data["series"][0]["overlays"]) == {"SMA 20", "SMA 50"}

    def test_get_pair_candles(self, client):
        data = client.get("/pairs/chz-btc", params={"mode": "candles", "interval": "1w"}).json()

        series = data["series"][0]
        assert data["interval"] == "1W"
        assert series["line"] == []
        assert len(series["candles"]) == 9
        assert {"time", "open", "high", "low", "close"} <= set(series["candles"][0])

    def test_degraded_optional_leg(self, client, quote_source):
        quote_source.errors["pepper"] = RateLimited("quotes", "pepper")

        data = client.get("/pairs/CHZ-BTC").json()

        optional = data["series"][1]
        assert optional["status"] == "degraded"
        assert optional["limited_data"] is True
        assert optional["line"] == []
        assert len(data["series"][0]["line"]) == 60

    @pytest.mark.parametrize("params", [
        {"interval": "2H"},
        {"lookback": "abc"},
        {"lookback": "0"},
    ])
    def test_invalid_selection(self, client, params):
        assert client.get("/pairs/CHZ-BTC", params=params).status_code == 400

    def test_invalid_mode(self, client):
        assert client.get("/pairs/CHZ-BTC", params={"mode": "area"}).status_code == 422

    def test_unknown_pair(self, client):
        response = client.get("/pairs/DOGE-BTC")

        assert response.status_code == 404
        assert "not tracked" in response.json()["detail"]

    def test_rate_limited_required_leg(self, client, ohlc_source):
        ohlc_source.errors["CHZ"] = RateLimited("ohlc", "CHZ")

        response = client.get("/pairs/CHZ-BTC")

        assert response.status_code == 429
        detail = response.json()["detail"]
        assert detail["kind"] == "RateLimited"
        assert detail["asset"] == "CHZ"
        assert "Rate limit exceeded" in detail["message"]

    def test_fetch_failed_required_leg(self, client, ohlc_source):
        ohlc_source.errors["BTC"] = FetchFailed("ohlc", "BTC", 503, "Service Unavailable")

        response = client.get("/pairs/CHZ-BTC")

        assert response.status_code == 502
        assert response.json()["detail"]["kind"] == "FetchFailed"

    def test_list_pairs(self, client):
        client.get("/pairs/CHZ-BTC")

        data = client.get("/pairs").json()

        status = {item["pair"]: item for item in data}
        assert status["CHZ/BTC"]["stage"] == "ready"
        assert status["CHZ/BTC"]["cached"]["bars"]["optional"] == 60
        assert status["ETH/BTC"]["cached"] is None


# ============================================
# Recompute Endpoints
# ============================================

class TestRecomputeEndpoints:
    """Tests for views and indicator changes"""

    def test_view_weekly(self, client, ohlc_source):
        client.get("/pairs/CHZ-BTC")
        calls = len(ohlc_source.calls)

        response = client.get("/pairs/CHZ-BTC/view", params={"interval": "1W"})

        assert response.status_code == 200
        assert len(response.json()["series"][0]["line"]) == 9
        assert len(ohlc_source.calls) == calls

    def test_view_needs_fetch(self, client):
        client.get("/pairs/CHZ-BTC")

        assert client.get("/pairs/CHZ-BTC/view", params={"interval": "1H"}).status_code == 409

    def test_view_before_fetch(self, client):
        assert client.get("/pairs/CHZ-BTC/view", params={"interval": "1W"}).status_code == 409

    def test_set_indicators(self, client):
        client.get("/pairs/CHZ-BTC")

        response = client.post(
            "/pairs/CHZ-BTC/indicators",
            json=[{"kind": "ema", "period": 10}, {"kind": "sma", "period": 5, "visible": False}]
        )

        assert response.status_code == 200
        assert set(response.json()["series"][0]["overlays"]) == {"EMA 10"}

    def test_set_invalid_indicator(self, client):
        client.get("/pairs/CHZ-BTC")

        response = client.post("/pairs/CHZ-BTC/indicators", json=[{"kind": "wma", "period": 10}])

        assert response.status_code == 422

    def test_toggle_indicator(self, client):
        client.get("/pairs/CHZ-BTC")

        response = client.post("/pairs/CHZ-BTC/indicators/SMA 50", params={"visible": "false"})

        assert response.status_code == 200
        assert set(response.json()["series"][0]["overlays"]) == {"SMA 20"}

    def test_toggle_unknown_indicator(self, client):
        client.get("/pairs/CHZ-BTC")

        response = client.post("/pairs/CHZ-BTC/indicators/EMA 200", params={"visible": "true"})

        assert response.status_code == 404

    def test_view_unknown_interval(self, client):
        client.get("/pairs/CHZ-BTC")

        assert client.get("/pairs/CHZ-BTC/view", params={"interval": "3D"}).status_code == 400
