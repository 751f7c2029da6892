"""Reduce each classified image to one water-pixel count per acquisition."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from rasterio.features import geometry_mask
from rasterio.transform import from_origin

from sarwater.classify import WATER_BAND
from sarwater.raster import RasterImage
from sarwater.utils import map_images, meters_to_crs_units, noop_log, resample_to_grid

DEFAULT_SCALE = 100.0  # metres per pixel


@dataclass(frozen=True)
class SeriesPoint:
    timestamp: datetime
    count: int


def target_grid(bounds: Sequence[float], res_x: float, res_y: float) -> Tuple[object, Tuple[int, int]]:
    """Grid of ``res_x`` x ``res_y`` cells anchored at the upper-left of ``bounds``."""
    minx, miny, maxx, maxy = bounds
    width = max(1, int(math.ceil((maxx - minx) / res_x - 1e-9)))
    height = max(1, int(math.ceil((maxy - miny) / res_y - 1e-9)))
    return from_origin(minx, maxy, res_x, res_y), (height, width)


def count_water_pixels(image: RasterImage, region, scale: Optional[float] = DEFAULT_SCALE,
                       band: str = WATER_BAND) -> int:
    """
    Sum the water band over ``region`` at ``scale`` metres per pixel.

    Masked pixels contribute nothing and water pixels contribute 1, so the sum
    is the number of water pixels whose centres fall inside the region. When
    ``scale`` matches the native pixel size (or is None) the image grid is
    used directly; otherwise the band is resampled (nearest) onto a grid
    anchored at the region's upper-left corner.
    """
    values = np.ma.filled(image.select(band), 0).astype(np.uint8)
    geom = region.to_crs(image.crs)
    native = (abs(image.transform.a), abs(image.transform.e))

    if scale is None:
        res = native
    else:
        res = meters_to_crs_units(scale, image.crs, region.centroid[1])

    if np.allclose(res, native, rtol=1e-6, atol=0):
        transform, shape, grid = image.transform, image.shape, values
    else:
        transform, shape = target_grid(geom.bounds, *res)
        grid = resample_to_grid(values, image.transform, image.crs, transform, shape)

    inside = geometry_mask([geom], out_shape=shape, transform=transform, invert=True)
    return int(grid[inside].sum(dtype=np.int64))


def aggregate_series(images: Sequence[RasterImage], region, scale: Optional[float] = DEFAULT_SCALE,
                     band: str = WATER_BAND, workers: Optional[int] = None,
                     log_fn: Callable[[str], None] = noop_log) -> List[SeriesPoint]:
    """One SeriesPoint per image, in input order; duplicates are kept."""

    def reduce_one(image: RasterImage) -> SeriesPoint:
        return SeriesPoint(image.timestamp, count_water_pixels(image, region, scale, band))

    return map_images(reduce_one, images, workers=workers, log_fn=log_fn, stage='count')


def series_to_frame(series: Sequence[SeriesPoint]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "timestamp": pd.to_datetime([p.timestamp for p in series], utc=True),
            "count": np.array([p.count for p in series], dtype=np.int64),
        }
    )
