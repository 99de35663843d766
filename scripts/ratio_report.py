#!/usr/bin/env python3
"""
Print a summary of a tracked pair without starting the server.

Runs the pair pipeline once against the live providers and reports:
- latest ratio value and its date
- first/last date and number of ratio bars
- latest value of every visible overlay
- state of the optional leg ("limited data" when degraded or empty)

Usage examples:
  python scripts/ratio_report.py
  python scripts/ratio_report.py --pair CHZ/BTC --lookback max --interval 1W
  python scripts/ratio_report.py --lookback 30 --interval 4H --ema 12,26 --print-sample 5
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from core.config import settings
from core.exceptions import SourceError
from core.pipeline import PipelineOrchestrator
from core.schemas import IndicatorConfig, PipelineConfig, RatioBar
from core.utils.time import format_date


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Fetch a tracked pair and print its ratio summary.")
    p.add_argument("--pair", default=None, help="Pair name (default: first tracked pair)")
    p.add_argument("--lookback", default=settings.default_lookback, help="Days of history or 'max'")
    p.add_argument("--interval", default=settings.default_interval, help="Interval (1H, 4H, 1D, 1W)")
    p.add_argument("--sma", default=None, help="Comma-separated SMA periods (default: configured periods)")
    p.add_argument("--ema", default=None, help="Comma-separated EMA periods")
    p.add_argument("--print-sample", type=int, default=0, help="Print last N ratio bars")
    return p.parse_args()


def parse_periods(value: Optional[str]) -> List[int]:
    if not value:
        return []
    return [int(p.strip()) for p in value.split(",") if p.strip()]


def build_indicators(args: argparse.Namespace) -> List[IndicatorConfig]:
    sma_periods = parse_periods(args.sma) if args.sma else settings.periods_list
    indicators = [IndicatorConfig(kind="sma", period=p) for p in sma_periods]
    indicators += [IndicatorConfig(kind="ema", period=p) for p in parse_periods(args.ema)]
    return indicators


def print_series(label: str, series: List[RatioBar], overlays: dict, sample: int) -> None:
    if not series:
        print(f"[Warn] {label}: limited data available")
        return

    first, last = series[0], series[-1]
    print(f"[Info] {label}: {len(series)} bars, {format_date(first.time)} -> {format_date(last.time)}")
    print(f"       latest {last.value:,.8g} ({format_date(last.time)})")

    for name, points in overlays.items():
        if points:
            print(f"       {name}: {points[-1].value:,.8g}")
        else:
            print(f"       {name}: not enough bars")

    for bar in series[-sample:] if sample > 0 else []:
        print(f"       {format_date(bar.time)}  o={bar.open:.8g} h={bar.high:.8g} "
              f"l={bar.low:.8g} c={bar.close:.8g} v={bar.volume:,.0f}")


async def run(args: argparse.Namespace) -> int:
    try:
        config = PipelineConfig(
            lookback=args.lookback,
            interval=args.interval,
            indicators=build_indicators(args)
        )
    except ValueError as e:
        print(f"[Error] Invalid arguments: {e}")
        return 2

    orchestrator = PipelineOrchestrator()
    try:
        pipeline = orchestrator.get_pipeline(args.pair or orchestrator.list_pairs()[0])
    except KeyError as e:
        print(f"[Error] {e.args[0]}")
        return 2

    print(f"[Info] {pipeline.pair.name}: lookback={config.lookback} interval={config.interval}")

    await orchestrator.initialize()
    try:
        snapshot = await pipeline.run(config)
    except SourceError as e:
        print(f"[Error] {e.kind}: {e.message}")
        return 1
    finally:
        await orchestrator.shutdown()

    print_series(snapshot.pair, snapshot.ratio, snapshot.overlays, args.print_sample)

    if snapshot.optional_status == "degraded":
        print(f"[Warn] {snapshot.optional_label}: limited data available ({snapshot.optional_reason})")
    elif snapshot.optional_status == "ok":
        print_series(snapshot.optional_label, snapshot.optional_ratio, snapshot.optional_overlays, args.print_sample)

    return 0


def main() -> int:
    return asyncio.run(run(parse_args()))


if __name__ == "__main__":
    sys.exit(main())
