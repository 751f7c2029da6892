#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Sentinel-1 image sources.

Every source is a filtered, chronologically ordered view over a catalog:
images whose footprint intersects the region, whose acquisition time is in
[date_start, date_stop) and whose polarization list carries the requested tag.
No match gives an empty list rather than an error.
"""

from __future__ import annotations

import glob
import os
import re
import time
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Sequence

import numpy as np
import planetary_computer
import rasterio
from pystac_client import Client
from rasterio.warp import transform_bounds
from rasterio.windows import Window

from sarwater.errors import ConfigError, DateRangeError, PolarizationError
from sarwater.raster import AcquisitionMetadata, RasterImage
from sarwater.region import Region
from sarwater.utils import (
    extract_timestamp_from_filename,
    linear_to_db,
    map_images,
    noop_log,
    parse_date,
)

POLARIZATIONS = ('VV', 'VH', 'HH', 'HV')
INSTRUMENT_MODES = ('IW', 'EW', 'SM', 'WV')

STAC_URL = "https://planetarycomputer.microsoft.com/api/stac/v1"
S1_COLLECTION = "sentinel-1-rtc"


def validate_polarization(polarization: str) -> str:
    tag = str(polarization).strip().upper()
    if tag not in POLARIZATIONS:
        raise PolarizationError(f"Unrecognized polarization '{polarization}'; expected one of {POLARIZATIONS}")
    return tag


def validate_instrument_mode(instrument_mode: Optional[str]) -> Optional[str]:
    if not instrument_mode:
        return None
    mode = str(instrument_mode).strip().upper()
    if mode not in INSTRUMENT_MODES:
        raise ConfigError(f"Unrecognized instrument mode '{instrument_mode}'; expected one of {INSTRUMENT_MODES}")
    return mode


def validate_date_range(date_start, date_stop):
    start, stop = parse_date(date_start), parse_date(date_stop)
    if start >= stop:
        raise DateRangeError(f"date_start {start:%Y-%m-%d} must be before date_stop {stop:%Y-%m-%d}")
    return start, stop


class ImageSource:
    """
    Base class for image sources. Subclasses yield candidate images from
    ``_candidates``; filtering and ordering happen here.

    Args:
        region: Region, WKT string or closed vertex list (lon, lat)
        date_start: inclusive start date
        date_stop: exclusive stop date
        polarization: required polarization tag (e.g. 'VV')
        instrument_mode: optional acquisition mode tag (e.g. 'IW')
    """

    def __init__(self, region, date_start, date_stop, polarization: str = 'VV',
                 instrument_mode: Optional[str] = None, log_fn: Callable[[str], None] = noop_log):
        self.region = Region.coerce(region)
        self.date_start, self.date_stop = validate_date_range(date_start, date_stop)
        self.polarization = validate_polarization(polarization)
        self.instrument_mode = validate_instrument_mode(instrument_mode)
        self.log_fn = log_fn

    def _candidates(self) -> Iterable[RasterImage]:
        raise NotImplementedError

    def matches_metadata(self, meta: AcquisitionMetadata) -> bool:
        if not (self.date_start <= meta.timestamp < self.date_stop):
            return False
        if self.polarization not in meta.polarizations:
            return False
        if self.instrument_mode and meta.instrument_mode != self.instrument_mode:
            return False
        return True

    def matches(self, image: RasterImage) -> bool:
        return self.matches_metadata(image.metadata) and self.region.intersects_bounds(image.footprint_lonlat)

    def images(self) -> List[RasterImage]:
        found = [img for img in self._candidates() if self.matches(img)]
        # stable: equal timestamps keep catalog order
        found.sort(key=lambda img: img.timestamp)
        if not found:
            print(f"No {self.polarization} images found between {self.date_start:%Y-%m-%d} "
                  f"and {self.date_stop:%Y-%m-%d} for the region.")
        else:
            self.log_fn(f"Found {len(found)} {self.polarization} image(s)")
        return found


class InMemorySource(ImageSource):
    """Filtered view over images already held in memory."""

    def __init__(self, catalog: Sequence[RasterImage], region, date_start, date_stop, **kwargs):
        super().__init__(region, date_start, date_stop, **kwargs)
        self.catalog = list(catalog)

    def _candidates(self):
        return self.catalog


def _window_for_region(src, region: Region) -> Optional[Window]:
    """Pixel window covering the region bounds, or None when they miss the raster."""
    left, bottom, right, top = transform_bounds("EPSG:4326", src.crs, *region.bounds)
    row_start, col_start = src.index(left, top)
    row_stop, col_stop = src.index(right, bottom)
    row_start, row_stop = sorted((row_start, row_stop))
    col_start, col_stop = sorted((col_start, col_stop))
    row_start, col_start = max(row_start, 0), max(col_start, 0)
    row_stop, col_stop = min(row_stop + 1, src.height), min(col_stop + 1, src.width)
    if row_stop <= row_start or col_stop <= col_start:
        return None
    return Window.from_slices((row_start, row_stop), (col_start, col_stop))


def read_band(href: str, region: Region, linear: bool = False):
    """
    Read band 1 of ``href`` over the region bounds.

    Returns (masked dB array, window transform, crs), or None when the raster
    does not overlap the region.
    """
    with rasterio.open(href) as src:
        window = _window_for_region(src, region)
        if window is None:
            return None
        data = src.read(1, window=window, masked=True).astype(np.float32)
        transform = src.window_transform(window)
        crs = src.crs
    if linear:
        data = linear_to_db(data)
    else:
        data = np.ma.masked_invalid(data)
    return data, transform, crs


class _Entry:
    """Catalog reference paired with its parsed metadata, for reading and warnings."""

    def __init__(self, ref, metadata: AcquisitionMetadata):
        self.ref = ref
        self.metadata = metadata


class GeoTiffSource(ImageSource):
    """
    Single-band backscatter GeoTIFFs in a directory, named the Sentinel-1 way, e.g.
    ``S1A_IW_GRDH_1SDV_20200712T092345_..._VV.tif``.

    The acquisition time comes from the first YYYYMMDDTHHMMSS token and the
    polarization from the ``_VV``/``_VH``/``_HH``/``_HV`` token.
    """

    def __init__(self, data_dir, region, date_start, date_stop, linear: bool = False,
                 workers: Optional[int] = None, **kwargs):
        super().__init__(region, date_start, date_stop, **kwargs)
        self.data_dir = str(data_dir)
        self.linear = linear
        self.workers = workers

    def metadata_from_filename(self, path: str) -> Optional[AcquisitionMetadata]:
        name = os.path.basename(path)
        timestamp = extract_timestamp_from_filename(name)
        if timestamp is None:
            return None
        pols = tuple(re.findall(r'_(VV|VH|HH|HV)(?=[_.])', name.upper()))
        mode = re.search(r'_(IW|EW|SM|WV)_', name.upper())
        return AcquisitionMetadata(
            timestamp=timestamp,
            polarizations=pols,
            instrument_mode=mode.group(1) if mode else None,
            scene_id=os.path.splitext(name)[0],
        )

    def _load(self, entry) -> Optional[RasterImage]:
        read = read_band(entry.ref, self.region, linear=self.linear)
        if read is None:
            self.log_fn(f"Skipping {entry.ref}: outside the region")
            return None
        data, transform, crs = read
        return RasterImage(entry.metadata, {self.polarization: data}, transform, crs)

    def _candidates(self):
        entries = []
        for path in sorted(glob.glob(os.path.join(self.data_dir, '*.tif'))):
            meta = self.metadata_from_filename(path)
            if meta is None:
                self.log_fn(f"Skipping {path}: no acquisition time in filename")
                continue
            if self.matches_metadata(meta):
                entries.append(_Entry(path, meta))
        self.log_fn(f"Reading {len(entries)} GeoTIFF(s) from {self.data_dir}")
        loaded = map_images(self._load, entries, workers=self.workers, log_fn=self.log_fn, stage='read')
        return [img for img in loaded if img is not None]


def _item_timestamp(item) -> datetime:
    start = item.properties.get('start_datetime')
    if start:
        return datetime.fromisoformat(start.replace('Z', '+00:00'))
    return parse_date(item.datetime)


class StacSource(ImageSource):
    """
    Sentinel-1 RTC scenes from the Microsoft Planetary Computer STAC API.
    RTC assets are linear power and are converted to dB after reading.
    """

    def __init__(self, region, date_start, date_stop, stac_url: str = STAC_URL,
                 collection: str = S1_COLLECTION, max_items: Optional[int] = None,
                 workers: Optional[int] = None, max_retries: int = 3, retry_delay: float = 5,
                 **kwargs):
        super().__init__(region, date_start, date_stop, **kwargs)
        self.stac_url = stac_url
        self.collection = collection
        self.max_items = max_items
        self.workers = workers
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    def search(self) -> list:
        date_range = f"{self.date_start:%Y-%m-%dT%H:%M:%SZ}/{self.date_stop:%Y-%m-%dT%H:%M:%SZ}"
        client = Client.open(self.stac_url, modifier=planetary_computer.sign_inplace)

        retry_delay = self.retry_delay
        for attempt in range(self.max_retries):
            try:
                search = client.search(
                    collections=[self.collection],
                    intersects=self.region.__geo_interface__,
                    datetime=date_range,
                    max_items=self.max_items,
                )
                items = list(search.items())
                self.log_fn(f"Number of STAC results: {len(items)}")
                return items
            except Exception as e:
                print(f"Attempt {attempt+1}/{self.max_retries} failed with error: {str(e)}")
                if attempt < self.max_retries - 1:
                    print(f"Retrying in {retry_delay} seconds...")
                    time.sleep(retry_delay)
                    retry_delay *= 2  # Exponential backoff
        raise RuntimeError(f"STAC search failed after {self.max_retries} attempts for {date_range}")

    def item_metadata(self, item) -> AcquisitionMetadata:
        props = item.properties
        return AcquisitionMetadata(
            timestamp=_item_timestamp(item),
            polarizations=tuple(p.upper() for p in props.get('sar:polarizations', ())),
            instrument_mode=props.get('sar:instrument_mode'),
            scene_id=item.id,
        )

    def _load(self, entry: _Entry) -> Optional[RasterImage]:
        asset = entry.ref.assets.get(self.polarization.lower())
        if asset is None:
            raise KeyError(f"asset '{self.polarization.lower()}' missing")
        read = read_band(asset.href, self.region, linear=True)
        if read is None:
            self.log_fn(f"Skipping {entry.ref.id}: outside the region")
            return None
        data, transform, crs = read
        return RasterImage(entry.metadata, {self.polarization: data}, transform, crs)

    def _candidates(self):
        entries = []
        for item in self.search():
            meta = self.item_metadata(item)
            if self.matches_metadata(meta):
                entries.append(_Entry(item, meta))
        self.log_fn(f"Reading {len(entries)} {self.polarization} asset(s)")
        loaded = map_images(self._load, entries, workers=self.workers, log_fn=self.log_fn, stage='read')
        return [img for img in loaded if img is not None]
