"""Synthetic Sentinel-1 rasters near the equator, in EPSG:4326."""

from datetime import datetime, timezone

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest
import rasterio
from rasterio.transform import from_origin

from sarwater.raster import AcquisitionMetadata, RasterImage
from sarwater.region import Region
from sarwater.utils import METERS_PER_DEGREE_LAT


def degrees(meters):
    return meters / METERS_PER_DEGREE_LAT


PIXEL_100M = degrees(100.0)
PIXEL_200M = degrees(200.0)
PIXEL_10M = degrees(10.0)

WEST, NORTH = 10.0, 0.0


def ts(*args):
    return datetime(*args, tzinfo=timezone.utc)


def make_image(values, timestamp, pixel=PIXEL_100M, mask=None, polarizations=("VV", "VH"),
               mode="IW", scene_id=None, band="VV", west=WEST, north=NORTH):
    data = np.ma.masked_array(np.asarray(values, dtype=np.float32),
                              mask=np.zeros(np.shape(values), bool) if mask is None else mask)
    meta = AcquisitionMetadata(timestamp, tuple(polarizations), mode, scene_id)
    return RasterImage(meta, {band: data}, from_origin(west, north, pixel, pixel), "EPSG:4326")


def uniform_image(value, timestamp, shape=(10, 10), **kwargs):
    return make_image(np.full(shape, value, dtype=np.float32), timestamp, **kwargs)


def patch_image(n_water, timestamp, shape=(10, 10), land=-5.0, water=-25.0, **kwargs):
    """Image with the first ``n_water`` pixels (row-major) below the water threshold."""
    values = np.full(shape, land, dtype=np.float32)
    values.flat[:n_water] = water
    return make_image(values, timestamp, **kwargs)


def footprint_region(image):
    return Region.from_bounds(*image.footprint)


def write_geotiff(path, data, pixel=PIXEL_100M, west=WEST, north=NORTH, nodata=None):
    data = np.asarray(data, dtype=np.float32)
    with rasterio.open(
        path, "w", driver="GTiff", height=data.shape[0], width=data.shape[1], count=1,
        dtype="float32", crs="EPSG:4326", transform=from_origin(west, north, pixel, pixel),
        nodata=nodata,
    ) as dst:
        dst.write(data, 1)
    return path


@pytest.fixture
def region_10x10():
    """Region matching the footprint of a 10x10 image of 100 m pixels."""
    return Region.from_bounds(WEST, NORTH - 10 * PIXEL_100M, WEST + 10 * PIXEL_100M, NORTH)
