#!/usr/bin/env python3
"""Build an interactive time series of inundated pixels from Sentinel-1 SAR.

Steps:
1. Search Sentinel-1 images over the region and date range (STAC, or a local
   directory of GeoTIFFs)
2. Suppress speckle with a circular focal median
3. Classify water with a fixed dB threshold
4. Count water pixels in the region for every acquisition
5. Plot the counts; clicking a point shows that date's image and water mask
"""

from __future__ import annotations

import argparse
from pathlib import Path
from time import perf_counter
from typing import List, Optional

from sarwater import config
from sarwater.controller import SeriesController
from sarwater.errors import ConfigError
from sarwater.pipeline import run_pipeline
from sarwater.source import GeoTiffSource, StacSource


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Classify water in Sentinel-1 images and chart inundated pixels over time",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--config-dir", type=Path, default=Path("."), help="Directory containing params.yaml")
    parser.add_argument("--data-dir", type=Path, help="Local Sentinel-1 GeoTIFFs instead of the STAC search")
    parser.add_argument("--start-date", help="First date YYYY-MM-DD (inclusive)")
    parser.add_argument("--end-date", help="Last date YYYY-MM-DD (exclusive)")
    parser.add_argument("--polarization", help="Polarization tag (VV, VH, HH, HV)")
    parser.add_argument("--threshold", type=float, help="Water threshold in dB")
    parser.add_argument("--radius", type=float, help="Speckle filter radius in metres")
    parser.add_argument("--scale", type=float, help="Aggregation pixel size in metres")
    parser.add_argument("--workers", type=int, help="Parallel workers")
    parser.add_argument("--no-show", action="store_true", help="Print the series without opening the viewer")
    parser.add_argument("--preview", action="store_true", help="Show raw vs filtered first image")
    parser.add_argument("--verbose", action="store_true", help="Print progress information")
    return parser.parse_args(argv)


OVERRIDES = {
    "data_dir": "data_dir",
    "start_date": "date_start",
    "end_date": "date_stop",
    "polarization": "polarization",
    "threshold": "threshold",
    "radius": "radius",
    "scale": "scale",
    "workers": "workers",
}


def load_params(args: argparse.Namespace) -> argparse.Namespace:
    ps = config.getPS(str(args.config_dir))
    for arg_key, ps_key in OVERRIDES.items():
        value = getattr(args, arg_key)
        if value is not None:
            setattr(ps, ps_key, str(value.absolute()) if isinstance(value, Path) else value)
    return config.validate(ps)


def build_source(ps: argparse.Namespace, log_fn):
    common = dict(
        polarization=ps.polarization,
        instrument_mode=ps.instrument_mode,
        workers=ps.workers,
        log_fn=log_fn,
    )
    if ps.data_dir:
        return GeoTiffSource(ps.data_dir, ps.region, ps.date_start, ps.date_stop, linear=ps.linear, **common)
    return StacSource(
        ps.region,
        ps.date_start,
        ps.date_stop,
        stac_url=ps.stac_url,
        collection=ps.collection,
        max_items=ps.max_items,
        **common,
    )


def print_series(series) -> None:
    print(f"{'Date (UTC)':<22s}{'Water pixels':>14s}")
    for point in series:
        print(f"{point.timestamp:%Y-%m-%d %H:%M:%S}   {point.count:>14d}")


def main(argv: Optional[List[str]] = None) -> int:
    start_time = perf_counter()
    args = parse_args(argv)

    def log(message: str) -> None:
        if args.verbose:
            print(message)

    try:
        ps = load_params(args)
        source = build_source(ps, log)
    except ConfigError as exc:
        print(f"Configuration error: {exc}")
        return 2

    result = run_pipeline(
        source,
        radius=ps.radius,
        threshold=ps.threshold,
        scale=ps.scale,
        workers=ps.workers,
        log_fn=log,
    )

    print(f"Processed {len(result.series)} image(s) in {perf_counter() - start_time:.2f}s")
    if result.empty:
        print("No water time series to show.")
        return 0
    print_series(result.series)

    if args.no_show:
        return 0

    from sarwater.viewer import SeriesViewer, plot_first_image

    if args.preview:
        plot_first_image(result.classified, raw_band=result.raw_band)
    controller = SeriesController.from_result(result)
    SeriesViewer(controller).show()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
