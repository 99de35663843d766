"""
Pair Pipeline - Fetch, Derive and Serve Ratio Series

A PairPipeline drives one tracked pair through its stages:

    idle -> fetching_required_legs -> fetching_optional_leg -> deriving -> ready
    idle -> fetching_required_legs -> failed

Failure policy:
    - Required legs (numerator, denominator) are fetched concurrently. The
      first failure aborts the run: the stage becomes `failed` and the error
      (RateLimited, FetchFailed, ProviderError, ...) is re-raised unmodified.
    - The optional leg is fetched after the required legs succeed. Its
      outcome is a tagged result, Ok(bars) or Degraded(reason); a degraded
      leg becomes an empty series and never fails the run.

Raw bars are kept in a RawBarCache owned by the pipeline, so indicator
changes and interval views are recomputed synchronously without touching
the sources.

PipelineOrchestrator owns one PairPipeline per configured pair. Pairs share
no state and run independently.

Usage:
    orchestrator = PipelineOrchestrator()
    await orchestrator.initialize()

    snapshot = await orchestrator.run_pair("CHZ/BTC", PipelineConfig(lookback=90, interval="4H"))
    pipeline = orchestrator.get_pipeline("CHZ/BTC")
    snapshot = pipeline.toggle_indicator("SMA 50", visible=False)
    snapshot = pipeline.regroup("1H")
"""

import asyncio
from typing import Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel

from core.aggregation import aggregate
from core.config import settings
from core.indicators import compute_overlays
from core.intervals import get_interval
from core.logging import get_logger, log_stage_transition
from core.ratio import compute_ratio
from core.schemas import (
    Bar,
    IndicatorConfig,
    PairConfig,
    PairSnapshot,
    PipelineConfig,
    PipelineStage,
)
from core.source_manager import SourceManager
from storage.bar_cache import RawBarCache


# ============================================
# Optional Leg Outcome
# ============================================

class Ok(BaseModel):
    """Optional leg fetched successfully."""

    status: Literal["ok"] = "ok"
    bars: List[Bar]
    granularity: str


class Degraded(BaseModel):
    """Optional leg unavailable; the pipeline continues with an empty series."""

    status: Literal["degraded"] = "degraded"
    reason: str


LegOutcome = Union[Ok, Degraded]


class PipelineBusy(RuntimeError):
    """Raised when a recompute is requested while a fetch is in flight."""


# ============================================
# Pair Pipeline
# ============================================

class PairPipeline:
    """
    Pipeline of a single tracked pair.

    Attributes:
        pair: Pair configuration
        sources: Registry the pair's asset bindings resolve against
        config: Pipeline configuration of the last run or recompute
        stage: Current PipelineStage
        cache: Raw bars of the last successful fetch (None before)
        snapshot: Last Ready snapshot (None before)
        last_error: Error of the last failed run (None otherwise)

    Example:
        >>> pipeline = PairPipeline(pair, SourceManager())
        >>> snapshot = await pipeline.run()
        >>> snapshot.ratio[-1].value
        2093458.12
    """

    def __init__(self, pair: PairConfig, sources: SourceManager, config: Optional[PipelineConfig] = None):
        self.pair = pair
        self.sources = sources
        self.config = config or settings.default_pipeline_config()
        self.stage = PipelineStage.IDLE
        self.cache: Optional[RawBarCache] = None
        self.snapshot: Optional[PairSnapshot] = None
        self.last_error: Optional[Exception] = None
        self._lock = asyncio.Lock()
        self.logger = get_logger(__name__)

    def _set_stage(self, stage: PipelineStage) -> None:
        log_stage_transition(self.logger, self.pair.name, self.stage.value, stage.value)
        self.stage = stage

    @property
    def busy(self) -> bool:
        """True while a fetch is in flight."""
        return self._lock.locked()

    # ============================================
    # Fetch Stages
    # ============================================

    async def run(self, config: Optional[PipelineConfig] = None) -> PairSnapshot:
        """
        Fetch every leg, derive the ratio series and return a Ready snapshot.

        Runs of the same pair are serialized; each successful run replaces
        the cache entirely.

        Args:
            config: Lookback, interval and indicators (defaults to the current config)

        Returns:
            PairSnapshot: The new Ready snapshot

        Raises:
            RateLimited, FetchFailed, ProviderError: A required leg failed
        """
        config = config or self.config

        async with self._lock:
            self.last_error = None
            self._set_stage(PipelineStage.FETCHING_REQUIRED_LEGS)

            try:
                numerator, denominator = await self._fetch_required(config)
            except Exception as e:
                self.last_error = e
                self._set_stage(PipelineStage.FAILED)
                self.logger.error(f"{self.pair.name}: required leg failed: {e}")
                raise

            granularity = {
                "numerator": self._source_of("numerator").base_granularity(config.interval),
                "denominator": self._source_of("denominator").base_granularity(config.interval),
            }

            optional_bars: List[Bar] = []
            optional_status = "absent"
            optional_reason = None
            if self.pair.optional_leg is not None:
                self._set_stage(PipelineStage.FETCHING_OPTIONAL_LEG)
                outcome = await self._fetch_optional(config)
                optional_status = outcome.status
                if isinstance(outcome, Ok):
                    optional_bars = outcome.bars
                    granularity["optional"] = outcome.granularity
                else:
                    optional_reason = outcome.reason

            self.cache = RawBarCache(
                lookback=config.lookback,
                interval=config.interval,
                numerator=numerator,
                denominator=denominator,
                optional=optional_bars,
                granularity=granularity,
                optional_status=optional_status,
                optional_reason=optional_reason,
            )
            self.logger.info(f"{self.pair.name}: cached raw bars {self.cache.bar_counts}")

            return self._derive(config)

    async def _fetch_required(self, config: PipelineConfig) -> Tuple[List[Bar], List[Bar]]:
        numerator_source = self._source_of("numerator")
        denominator_source = self._source_of("denominator")

        numerator, denominator = await asyncio.gather(
            numerator_source.fetch_raw_bars(self.pair.numerator.symbol, config.lookback, config.interval),
            denominator_source.fetch_raw_bars(self.pair.denominator.symbol, config.lookback, config.interval),
        )
        return numerator, denominator

    async def _fetch_optional(self, config: PipelineConfig) -> LegOutcome:
        leg = self.pair.optional_leg
        try:
            source = self._source_of("optional")
            bars = await source.fetch_raw_bars(leg.asset.symbol, config.lookback, config.interval)
            granularity = source.base_granularity(config.interval)
        except Exception as e:
            self.logger.warning(f"{self.pair.name}: {leg.asset.symbol} data may be limited: {e}")
            return Degraded(reason=str(e))
        return Ok(bars=bars, granularity=granularity)

    def _source_of(self, leg: str):
        if leg == "optional":
            binding = self.pair.optional_leg.asset
        else:
            binding = getattr(self.pair, leg)
        return self.sources.get_source(binding.source)

    # ============================================
    # Derive Stage
    # ============================================

    def _derive(self, config: PipelineConfig) -> PairSnapshot:
        self._set_stage(PipelineStage.DERIVING)
        cache = self.cache

        numerator = aggregate(cache.numerator, self._source_of("numerator").group_size(config.interval))
        denominator = aggregate(cache.denominator, self._source_of("denominator").group_size(config.interval))

        ratio = compute_ratio(numerator, denominator)
        overlays = compute_overlays(ratio, config.indicators)

        optional_ratio = []
        leg = self.pair.optional_leg
        if leg is not None and cache.optional:
            optional = aggregate(cache.optional, self._source_of("optional").group_size(config.interval))
            anchor = numerator if leg.pair_with == "numerator" else denominator
            if leg.as_numerator:
                optional_ratio = compute_ratio(optional, anchor)
            else:
                optional_ratio = compute_ratio(anchor, optional)

        snapshot = PairSnapshot(
            pair=self.pair.name,
            interval=config.interval,
            lookback=cache.lookback,
            ratio=ratio,
            overlays=overlays,
            optional_label=self.pair.optional_name,
            optional_ratio=optional_ratio,
            optional_overlays=compute_overlays(optional_ratio, config.indicators),
            optional_status=cache.optional_status,
            optional_reason=cache.optional_reason,
        )

        if snapshot.limited_data:
            self.logger.warning(f"{self.pair.name}: limited data available, ratio series is empty")
        if snapshot.optional_limited_data:
            self.logger.warning(f"{self.pair.name}: limited {snapshot.optional_label} data available")

        self.config = config
        self.snapshot = snapshot
        self._set_stage(PipelineStage.READY)
        self.logger.info(
            f"{self.pair.name}: ready ({len(ratio)} ratio bars, "
            f"{len(optional_ratio)} optional bars, interval={config.interval})"
        )
        return snapshot

    # ============================================
    # Recompute Without Re-fetch
    # ============================================

    def _require_cache(self) -> RawBarCache:
        if self.busy:
            raise PipelineBusy(f"{self.pair.name}: a fetch is in progress")
        if self.cache is None:
            raise ValueError(f"{self.pair.name}: no data fetched yet")
        return self.cache

    def set_indicators(self, indicators: List[IndicatorConfig]) -> PairSnapshot:
        """
        Replace the indicator configuration and recompute overlays from cache.

        Raises:
            ValueError: Nothing has been fetched yet
            PipelineBusy: A fetch is in flight
        """
        self._require_cache()
        return self._derive(self.config.model_copy(update={"indicators": list(indicators)}))

    def toggle_indicator(self, label: str, visible: bool) -> PairSnapshot:
        """
        Show or hide one overlay, e.g. toggle_indicator("SMA 50", False).

        Raises:
            KeyError: No indicator with that label is configured
        """
        self._require_cache()
        label = label.upper()
        if label not in {indicator.label for indicator in self.config.indicators}:
            raise KeyError(f"Indicator '{label}' is not configured for {self.pair.name}")

        indicators = [
            indicator.model_copy(update={"visible": visible}) if indicator.label == label else indicator
            for indicator in self.config.indicators
        ]
        return self.set_indicators(indicators)

    def regroup(self, interval: str) -> PairSnapshot:
        """
        Show cached bars at another interval (1H <-> 4H, 1D <-> 1W).

        Raises:
            ValueError: Unsupported interval, nothing cached, or the interval
                        needs bars of another granularity (a new fetch)
        """
        cache = self._require_cache()
        interval = interval.upper()
        get_interval(interval)

        needed = {
            "numerator": self._source_of("numerator").base_granularity(interval),
            "denominator": self._source_of("denominator").base_granularity(interval),
        }
        if "optional" in cache.granularity:
            needed["optional"] = self._source_of("optional").base_granularity(interval)
        if not cache.serves(needed):
            raise ValueError(
                f"{self.pair.name}: cached {cache.interval} bars cannot be shown as {interval}; fetch again"
            )

        return self._derive(self.config.model_copy(update={"interval": interval}))

    def status(self) -> Dict[str, object]:
        """Stage, last error and cache summary for display."""
        return {
            "pair": self.pair.name,
            "stage": self.stage.value,
            "error": None if self.last_error is None else {
                "kind": type(self.last_error).__name__,
                "message": str(self.last_error),
            },
            "cached": None if self.cache is None else {
                "interval": self.cache.interval,
                "lookback": self.cache.lookback,
                "bars": self.cache.bar_counts,
                "fetched_at": self.cache.fetched_at.isoformat(),
            },
        }


# ============================================
# Orchestrator
# ============================================

class PipelineOrchestrator:
    """
    Owns one PairPipeline per tracked pair.

    Example:
        >>> orchestrator = PipelineOrchestrator()
        >>> await orchestrator.initialize()
        >>> results = await orchestrator.run_all()
        >>> for name, result in results.items():
        ...     print(name, "failed" if isinstance(result, Exception) else len(result.ratio))
    """

    def __init__(
        self,
        pairs: Optional[List[PairConfig]] = None,
        sources: Optional[SourceManager] = None,
        config: Optional[PipelineConfig] = None
    ):
        self.sources = sources or SourceManager()
        self.pairs: List[PairConfig] = list(pairs if pairs is not None else settings.tracked_pairs)
        self.pipelines: Dict[str, PairPipeline] = {
            pair.name: PairPipeline(pair, self.sources, config) for pair in self.pairs
        }
        self.logger = get_logger(__name__)

    async def initialize(self) -> None:
        await self.sources.initialize_all()

    async def shutdown(self) -> None:
        await self.sources.shutdown_all()

    def list_pairs(self) -> List[str]:
        return list(self.pipelines.keys())

    def get_pipeline(self, name: str) -> PairPipeline:
        """
        Raises:
            KeyError: The pair is not tracked
        """
        for pair_name, pipeline in self.pipelines.items():
            if pair_name.upper() == name.upper():
                return pipeline
        raise KeyError(f"Pair '{name}' is not tracked. Available pairs: {', '.join(self.pipelines)}")

    async def run_pair(self, name: str, config: Optional[PipelineConfig] = None) -> PairSnapshot:
        """Run one pair; required-leg errors propagate unmodified."""
        return await self.get_pipeline(name).run(config)

    async def run_all(self, config: Optional[PipelineConfig] = None) -> Dict[str, Union[PairSnapshot, Exception]]:
        """
        Run every pair concurrently.

        Returns:
            Pair name -> snapshot, or the error that failed that pair
        """
        names = list(self.pipelines.keys())
        results = await asyncio.gather(
            *(self.pipelines[name].run(config) for name in names),
            return_exceptions=True
        )

        for name, result in zip(names, results):
            if isinstance(result, Exception):
                self.logger.error(f"{name}: run failed ({type(result).__name__}): {result}")

        return dict(zip(names, results))
