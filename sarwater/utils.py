#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Extra functions for sarwater: unit conversions, grid resampling and the
per-image parallel map used by every pipeline stage.
"""

from __future__ import annotations

import math
import os
import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date, datetime, timezone
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np
from pyproj import CRS
from rasterio.warp import reproject, Resampling

from sarwater.errors import DateRangeError

# Approximate: 1 degree lat ~ 111320 m; 1 degree lon ~ 111320 * cos(lat) m
METERS_PER_DEGREE_LAT = 111320.0

nproc = max(1, (os.cpu_count() or 2) - 1)


def noop_log(message: str) -> None:
    pass


def meters_per_degree(lat: float) -> Tuple[float, float]:
    """Return (meters per degree lon, meters per degree lat) at ``lat``."""
    return METERS_PER_DEGREE_LAT * math.cos(math.radians(lat)), METERS_PER_DEGREE_LAT


def is_geographic(crs) -> bool:
    return CRS.from_user_input(crs).is_geographic


def pixel_size_meters(transform, crs, lat: float) -> Tuple[float, float]:
    """Ground size (x, y) of one pixel in metres."""
    res_x, res_y = abs(transform.a), abs(transform.e)
    if is_geographic(crs):
        m_lon, m_lat = meters_per_degree(lat)
        return res_x * m_lon, res_y * m_lat
    return res_x, res_y


def meters_to_crs_units(distance: float, crs, lat: float) -> Tuple[float, float]:
    """Convert a ground distance into (x, y) CRS units at ``lat``."""
    if is_geographic(crs):
        m_lon, m_lat = meters_per_degree(lat)
        return distance / m_lon, distance / m_lat
    return distance, distance


def linear_to_db(lin_array: np.ma.MaskedArray) -> np.ma.MaskedArray:
    """Convert linear power to dB, masking non-positive and non-finite values."""
    lin = np.ma.masked_invalid(np.ma.asarray(lin_array, dtype=np.float32))
    lin = np.ma.masked_less_equal(lin, 0)
    db = np.ma.masked_array(np.zeros(lin.shape, dtype=np.float32), mask=np.ma.getmaskarray(lin))
    valid = ~np.ma.getmaskarray(lin)
    db.data[valid] = 10.0 * np.log10(lin.data[valid])
    return db


def resample_to_grid(data: np.ndarray, src_transform, src_crs, dst_transform, dst_shape, dst_crs=None,
                     fill=0) -> np.ndarray:
    """
    Resample ``data`` onto another grid with nearest neighbour.
    Cells outside the source footprint receive ``fill``.
    """
    destination = np.full(dst_shape, fill, dtype=data.dtype)
    reproject(
        source=data,
        destination=destination,
        src_transform=src_transform,
        src_crs=src_crs,
        dst_transform=dst_transform,
        dst_crs=dst_crs or src_crs,
        src_nodata=fill,
        dst_nodata=fill,
        resampling=Resampling.nearest,
    )
    return destination


def parse_date(value) -> datetime:
    """Parse YYYY-MM-DD, YYYYMMDD, a date or a datetime into an aware UTC datetime."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    text = str(value).strip()
    for fmt in ("%Y-%m-%d", "%Y%m%d", "%Y-%m-%dT%H:%M:%S"):
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    raise DateRangeError(f"Could not parse date '{value}' (expected YYYY-MM-DD or YYYYMMDD)")


def extract_timestamp_from_filename(filename: str) -> Optional[datetime]:
    """Extract the first YYYYMMDDTHHMMSS token (Sentinel-1 naming) from a filename."""
    match = re.search(r'(\d{8}T\d{6})', filename)
    if not match:
        return None
    return datetime.strptime(match.group(1), '%Y%m%dT%H%M%S').replace(tzinfo=timezone.utc)


def map_images(fn: Callable, images: Sequence, workers: Optional[int] = None,
               log_fn: Callable[[str], None] = noop_log, stage: str = 'process') -> List:
    """
    Apply ``fn`` to every image in parallel and return the results in input order.

    An image whose call raises is reported and left out; the rest continue.
    """
    if not images:
        return []
    workers = workers or nproc
    results = [None] * len(images)
    failed = [False] * len(images)

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(fn, image): idx for idx, image in enumerate(images)}
        for future in as_completed(futures):
            idx = futures[future]
            try:
                results[idx] = future.result()
            except Exception as exc:
                failed[idx] = True
                print(f"Warning: failed to {stage} {describe(images[idx])}: {exc}")

    kept = [res for res, bad in zip(results, failed) if not bad]
    log_fn(f"{stage}: {len(kept)}/{len(images)} image(s) succeeded")
    return kept


def describe(image) -> str:
    meta = getattr(image, 'metadata', None)
    if meta is None:
        return repr(image)
    return f"{meta.scene_id or 'image'} ({meta.timestamp:%Y-%m-%d %H:%M:%S})"
