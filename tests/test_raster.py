from datetime import datetime

import numpy as np
import pytest

from conftest import PIXEL_100M, WEST, NORTH, make_image, ts, uniform_image
from sarwater.region import Region


def test_add_band_is_non_destructive():
    image = uniform_image(-10.0, ts(2020, 1, 1))
    extended = image.add_band("Extra", np.ma.zeros(image.shape))
    assert image.band_names == ("VV",)
    assert extended.band_names == ("VV", "Extra")
    assert extended.select("VV") is image.select("VV")


def test_add_band_rejects_duplicates_and_shape_mismatch():
    image = uniform_image(-10.0, ts(2020, 1, 1))
    with pytest.raises(ValueError, match="already exists"):
        image.add_band("VV", np.ma.zeros(image.shape))
    with pytest.raises(ValueError, match="shape"):
        image.add_band("Other", np.ma.zeros((3, 3)))


def test_select_unknown_band_lists_available():
    image = uniform_image(-10.0, ts(2020, 1, 1))
    with pytest.raises(KeyError, match="VV"):
        image.select("Water")


def test_footprint_matches_transform():
    image = uniform_image(-10.0, ts(2020, 1, 1), shape=(4, 6))
    west, south, east, north = image.footprint
    assert west == pytest.approx(WEST)
    assert north == pytest.approx(NORTH)
    assert east == pytest.approx(WEST + 6 * PIXEL_100M)
    assert south == pytest.approx(NORTH - 4 * PIXEL_100M)
    assert image.footprint_lonlat == pytest.approx(image.footprint)


def test_clip_masks_pixels_outside_region():
    image = make_image(np.zeros((4, 4)), ts(2020, 1, 1))
    west, south, east, north = image.footprint
    left_half = Region.from_bounds(west, south, west + 2 * PIXEL_100M, north)
    clipped = image.clip(left_half)
    mask = np.ma.getmaskarray(clipped.select("VV"))
    assert not mask[:, :2].any()
    assert mask[:, 2:].all()
    # original untouched
    assert not np.ma.getmaskarray(image.select("VV")).any()


def test_empty_band_mapping_is_rejected():
    image = uniform_image(-10.0, ts(2020, 1, 1))
    with pytest.raises(ValueError):
        type(image)(image.metadata, {}, image.transform, image.crs)


def test_naive_timestamp_is_taken_as_utc():
    image = uniform_image(-10.0, datetime(2020, 6, 1, 9))
    assert image.timestamp == ts(2020, 6, 1, 9)
    assert image.timestamp.tzinfo is not None
