"""Speckle suppression with a circular focal median.

Radius is a ground distance; it is turned into pixels from the image's pixel
size. At image borders the nearest pixel is replicated (scipy
``mode="nearest"``). Masked pixels are ignored inside the window and stay
masked in the output, so the filtered band has the raw band's footprint.
"""

from __future__ import annotations

import warnings
from typing import Optional, Tuple

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view
from scipy import ndimage

from sarwater.raster import RasterImage
from sarwater.utils import pixel_size_meters

DEFAULT_RADIUS = 100.0  # metres
FILTERED_SUFFIX = "_Filtered"

# Rows of sliding windows evaluated at once by the NaN-aware median
CHUNK_ROWS = 64


def circular_footprint(radius: float, pixel_size: Tuple[float, float]) -> np.ndarray:
    """Boolean footprint of the pixels whose centres lie within ``radius`` metres."""
    if radius <= 0:
        raise ValueError(f"radius must be positive, got {radius}")
    px, py = pixel_size
    rx, ry = radius / px, radius / py
    # tolerance keeps radii that are exact pixel multiples from rounding down
    nx, ny = int(np.floor(rx + 1e-9)), int(np.floor(ry + 1e-9))
    if nx < 1 and ny < 1:
        return np.ones((1, 1), dtype=bool)
    yy, xx = np.mgrid[-ny:ny + 1, -nx:nx + 1]
    return (xx / rx) ** 2 + (yy / ry) ** 2 <= 1.0 + 1e-9


def _nan_median(values: np.ndarray, footprint: np.ndarray) -> np.ndarray:
    ny, nx = footprint.shape[0] // 2, footprint.shape[1] // 2
    padded = np.pad(values, ((ny, ny), (nx, nx)), mode="edge")
    windows = sliding_window_view(padded, footprint.shape)
    out = np.empty(values.shape, dtype=np.float32)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", category=RuntimeWarning)  # all-NaN windows
        for start in range(0, values.shape[0], CHUNK_ROWS):
            stop = min(start + CHUNK_ROWS, values.shape[0])
            out[start:stop] = np.nanmedian(windows[start:stop][..., footprint], axis=-1)
    return out


def focal_median(data: np.ma.MaskedArray, footprint: np.ndarray) -> np.ma.MaskedArray:
    mask = np.ma.getmaskarray(data)
    values = np.ma.asarray(data, dtype=np.float32).filled(np.nan)
    if footprint.size == 1:
        filtered = values.copy()
    elif mask.any():
        filtered = _nan_median(values, footprint)
    else:
        filtered = ndimage.median_filter(values, footprint=footprint, mode="nearest")
    return np.ma.masked_array(filtered, mask=mask.copy())


def filter_speckle(image: RasterImage, band: str = "VV", radius: float = DEFAULT_RADIUS,
                   output_band: Optional[str] = None) -> RasterImage:
    """Return ``image`` with a focal-median copy of ``band`` added as ``output_band``."""
    output_band = output_band or f"{band}{FILTERED_SUFFIX}"
    raw = image.select(band)
    west, south, east, north = image.footprint_lonlat
    pixel_size = pixel_size_meters(image.transform, image.crs, 0.5 * (south + north))
    footprint = circular_footprint(radius, pixel_size)
    return image.add_band(output_band, focal_median(raw, footprint))
