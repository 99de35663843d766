"""
FastAPI Application - Cross-Asset Ratio Chart API

Serves day-aligned ratio series, their moving-average overlays and volume
histograms to a charting frontend.

Features:
    - Ratio series per tracked pair (line or candlestick projection)
    - Optional third leg shown as its own ratio, degrading to "limited data"
    - Indicator toggles and interval views recomputed from cached bars

Usage:
    uvicorn app.main:app --reload --host 0.0.0.0 --port 8000

Docs:
    - Swagger: http://localhost:8000/docs
    - ReDoc: http://localhost:8000/redoc
"""

from contextlib import asynccontextmanager
from typing import List, Literal, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings, validate_configuration
from core.exceptions import FetchFailed, ProviderError, RateLimited, SourceError
from core.intervals import get_interval
from core.logging import logger
from core.pipeline import PairPipeline, PipelineBusy, PipelineOrchestrator
from core.projections import build_chart_payload
from core.schemas import ChartPayload, IndicatorConfig, PipelineConfig


# ============================================
# Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    logger.info("=== Application Starting ===")
    try:
        validate_configuration(orchestrator.sources, orchestrator.pairs)
        await orchestrator.initialize()
        logger.info("=== Started Successfully ===")
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise

    yield

    logger.info("=== Shutting Down ===")
    try:
        await orchestrator.shutdown()
        logger.info("=== Shutdown Complete ===")
    except Exception as e:
        logger.error(f"Shutdown error: {e}")


# ============================================
# FastAPI Application
# ============================================

app = FastAPI(
    title="Pairwatch Ratio Chart API",
    description=(
        "Cross-asset ratio series with moving-average overlays.\n\n"
        "## REST Endpoints\n"
        "- `GET /pairs` - Tracked pairs and their pipeline status\n"
        "- `GET /pairs/{pair}` - Fetch and derive a pair (`lookback`, `interval`, `mode`)\n"
        "- `GET /pairs/{pair}/view` - Show cached bars at another interval\n"
        "- `POST /pairs/{pair}/indicators` - Replace indicator configuration\n"
        "- `POST /pairs/{pair}/indicators/{label}` - Show or hide one overlay\n"
        "- `GET /health` - Health check\n\n"
        "Pair names contain a slash; pass them with a dash in paths (`CHZ-BTC`)."
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

orchestrator = PipelineOrchestrator()  # Global pipeline orchestrator


# ============================================
# Helpers
# ============================================

def _pipeline(pair: str) -> PairPipeline:
    try:
        return orchestrator.get_pipeline(pair.replace("-", "/"))
    except KeyError as e:
        raise HTTPException(status_code=404, detail=e.args[0])


def _source_error(e: SourceError) -> HTTPException:
    """Map a source error to an HTTP error, keeping its kind for display."""
    if isinstance(e, RateLimited):
        status_code = 429
    elif isinstance(e, (FetchFailed, ProviderError)):
        status_code = 502
    else:
        status_code = 500
    return HTTPException(
        status_code=status_code,
        detail={"kind": e.kind, "provider": e.provider, "asset": e.asset, "message": e.message}
    )


# ============================================
# System Endpoints
# ============================================

@app.get("/", tags=["System"])
async def root():
    """API information and tracked pairs."""
    return {
        "name": "Pairwatch Ratio Chart API",
        "version": "1.0.0",
        "status": "operational",
        "docs": "/docs",
        "pairs": orchestrator.list_pairs(),
        "sources": orchestrator.sources.list_sources(),
        "ohlcv_sources": orchestrator.sources.get_sources_with_feature("ohlcv")
    }


@app.get("/health", tags=["System"])
async def health_check():
    """Pipeline stages of every tracked pair."""
    stages = {name: pipeline.stage.value for name, pipeline in orchestrator.pipelines.items()}
    return {
        "status": "degraded" if "failed" in stages.values() else "healthy",
        "pairs": stages
    }


# ============================================
# Pair Endpoints
# ============================================

@app.get("/pairs", tags=["Pairs"])
async def list_pairs():
    """Tracked pairs with their stage, last error and cached data."""
    return [pipeline.status() for pipeline in orchestrator.pipelines.values()]


@app.get("/pairs/{pair}", response_model=ChartPayload, tags=["Pairs"])
async def get_pair(
    pair: str,
    lookback: Optional[str] = Query(default=None, description="Days of history or 'max'"),
    interval: Optional[str] = Query(default=None, description="1H, 4H, 1D or 1W"),
    mode: Literal["line", "candles"] = Query(default="line", description="line or candles")
):
    """
    Fetch both legs (and the optional leg), derive ratios and overlays.

    Examples:
        GET /pairs/CHZ-BTC
        GET /pairs/CHZ-BTC?lookback=max&interval=1W&mode=candles
    """
    pipeline = _pipeline(pair)

    try:
        config = PipelineConfig(
            lookback=lookback or pipeline.config.lookback,
            interval=interval or pipeline.config.interval,
            indicators=pipeline.config.indicators
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        snapshot = await pipeline.run(config)
    except SourceError as e:
        logger.error(f"Pair {pipeline.pair.name} failed: {e}")
        raise _source_error(e)

    return build_chart_payload(snapshot, mode)


@app.get("/pairs/{pair}/view", response_model=ChartPayload, tags=["Pairs"])
async def view_pair(
    pair: str,
    interval: str = Query(..., description="1H, 4H, 1D or 1W"),
    mode: Literal["line", "candles"] = Query(default="line", description="line or candles")
):
    """
    Re-aggregate cached bars without fetching (1H <-> 4H, 1D <-> 1W).

    Example:
        GET /pairs/CHZ-BTC/view?interval=1W
    """
    pipeline = _pipeline(pair)
    try:
        get_interval(interval)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        snapshot = pipeline.regroup(interval)
        return build_chart_payload(snapshot, mode)
    except (PipelineBusy, ValueError) as e:
        raise HTTPException(status_code=409, detail=str(e))


@app.post("/pairs/{pair}/indicators", response_model=ChartPayload, tags=["Indicators"])
async def set_indicators(
    pair: str,
    indicators: List[IndicatorConfig],
    mode: Literal["line", "candles"] = Query(default="line", description="line or candles")
):
    """
    Replace the indicator configuration and recompute overlays from cache.

    Example body:
        [{"kind": "sma", "period": 20}, {"kind": "ema", "period": 50, "visible": false}]
    """
    pipeline = _pipeline(pair)
    try:
        return build_chart_payload(pipeline.set_indicators(indicators), mode)
    except (PipelineBusy, ValueError) as e:
        raise HTTPException(status_code=409, detail=str(e))


@app.post("/pairs/{pair}/indicators/{label}", response_model=ChartPayload, tags=["Indicators"])
async def toggle_indicator(
    pair: str,
    label: str,
    visible: bool = Query(..., description="Show (true) or hide (false) the overlay"),
    mode: Literal["line", "candles"] = Query(default="line", description="line or candles")
):
    """
    Show or hide one overlay.

    Example:
        POST /pairs/CHZ-BTC/indicators/SMA%2050?visible=false
    """
    pipeline = _pipeline(pair)
    try:
        return build_chart_payload(pipeline.toggle_indicator(label, visible), mode)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=e.args[0])
    except (PipelineBusy, ValueError) as e:
        raise HTTPException(status_code=409, detail=str(e))
