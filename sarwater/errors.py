"""Configuration errors raised before any image is processed.

Problems with a single image (a failed read, filter or count) are not
exceptions here: they are reported as warnings and the image is skipped.
"""


class ConfigError(ValueError):
    """Invalid run configuration; aborts pipeline construction."""


class MalformedRegionError(ConfigError):
    """Region ring is not closed, is self-intersecting or has no area."""


class DateRangeError(ConfigError):
    """Date range is unparseable or start is not before stop."""


class PolarizationError(ConfigError):
    """Polarization tag is not one of the Sentinel-1 tags."""
