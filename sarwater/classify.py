"""Fixed-threshold water classification of denoised backscatter.

Calm water reflects the radar pulse away from the sensor, so it returns low
backscatter. Pixels below the threshold are water (1); all other pixels,
including masked input, are masked out of the water band rather than set to 0,
so a sum over the band counts water pixels only. -16 dB is an approximation
and pixels near it will be misclassified either way.
"""

from __future__ import annotations

import numpy as np

from sarwater.raster import RasterImage

THRESHOLD_DB = -16.0
WATER_BAND = "Water"


def water_mask(denoised: np.ma.MaskedArray, threshold: float = THRESHOLD_DB) -> np.ma.MaskedArray:
    denoised = np.ma.asarray(denoised)
    is_water = np.ma.filled(denoised < threshold, False)
    ones = np.ones(denoised.shape, dtype=np.uint8)
    return np.ma.masked_array(ones, mask=~is_water)


def classify_water(image: RasterImage, band: str = "VV_Filtered", threshold: float = THRESHOLD_DB,
                   output_band: str = WATER_BAND) -> RasterImage:
    return image.add_band(output_band, water_mask(image.select(band), threshold))
