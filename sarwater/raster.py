"""In-memory raster model: acquisition metadata plus named masked bands."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Mapping, Optional, Tuple

import numpy as np
from rasterio.features import geometry_mask
from rasterio.transform import array_bounds
from rasterio.warp import transform_bounds

from sarwater.utils import parse_date


@dataclass(frozen=True)
class AcquisitionMetadata:
    """Per-image acquisition properties. ``timestamp`` is the series time key."""
    timestamp: datetime
    polarizations: Tuple[str, ...] = ("VV",)
    instrument_mode: Optional[str] = "IW"
    scene_id: Optional[str] = None

    def __post_init__(self):
        # naive timestamps are taken as UTC so they compare with the date range
        object.__setattr__(self, "timestamp", parse_date(self.timestamp))


@dataclass(frozen=True)
class RasterImage:
    """
    A stack of 2-D bands sharing one grid.

    Bands are ``numpy.ma.MaskedArray``; a masked pixel is absent and is
    never counted by reductions. Derived bands are appended with
    :meth:`add_band`, which returns a new image and leaves this one as is.
    """
    metadata: AcquisitionMetadata
    bands: Mapping[str, np.ma.MaskedArray]
    transform: object
    crs: object = "EPSG:4326"
    _order: Tuple[str, ...] = field(default=(), repr=False, compare=False)

    def __post_init__(self):
        bands: Dict[str, np.ma.MaskedArray] = {}
        shape = None
        for name, data in dict(self.bands).items():
            arr = np.ma.asarray(data)
            if arr.ndim != 2:
                raise ValueError(f"Band '{name}' must be 2-D, got shape {arr.shape}")
            if shape is None:
                shape = arr.shape
            elif arr.shape != shape:
                raise ValueError(f"Band '{name}' shape {arr.shape} does not match {shape}")
            bands[name] = arr
        if not bands:
            raise ValueError("RasterImage needs at least one band")
        object.__setattr__(self, "bands", bands)
        object.__setattr__(self, "_order", tuple(bands))

    @property
    def timestamp(self) -> datetime:
        return self.metadata.timestamp

    @property
    def band_names(self) -> Tuple[str, ...]:
        return self._order

    @property
    def shape(self) -> Tuple[int, int]:
        first = next(iter(self.bands.values()))
        return first.shape

    def select(self, name: str) -> np.ma.MaskedArray:
        try:
            return self.bands[name]
        except KeyError:
            raise KeyError(f"Band '{name}' not found; available bands: {list(self._order)}") from None

    def add_band(self, name: str, data) -> "RasterImage":
        if name in self.bands:
            raise ValueError(f"Band '{name}' already exists")
        data = np.ma.asarray(data)
        if data.shape != self.shape:
            raise ValueError(f"Band '{name}' shape {data.shape} does not match image shape {self.shape}")
        bands = dict(self.bands)
        bands[name] = data
        return RasterImage(self.metadata, bands, self.transform, self.crs)

    @property
    def footprint(self) -> Tuple[float, float, float, float]:
        """(left, bottom, right, top) in the image CRS."""
        height, width = self.shape
        west, south, east, north = array_bounds(height, width, self.transform)
        return west, south, east, north

    @property
    def footprint_lonlat(self) -> Tuple[float, float, float, float]:
        return transform_bounds(self.crs, "EPSG:4326", *self.footprint)

    def region_mask(self, region) -> np.ndarray:
        """Boolean grid, True where the pixel centre lies outside ``region``."""
        geom = region.to_crs(self.crs)
        return geometry_mask([geom], out_shape=self.shape, transform=self.transform)

    def clip(self, region) -> "RasterImage":
        """Mask every band outside ``region``."""
        outside = self.region_mask(region)
        bands = {}
        for name, data in self.bands.items():
            bands[name] = np.ma.masked_array(data.data, mask=np.ma.getmaskarray(data) | outside)
        return RasterImage(self.metadata, bands, self.transform, self.crs)
