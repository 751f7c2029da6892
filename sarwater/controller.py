"""Chart-facing side of the series: selection handling and displayed layers.

The controller owns the displayed layer set and the date label. A selection
replaces both wholesale; nothing accumulates across selections. Events are
handled synchronously, one at a time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from sarwater.aggregate import DEFAULT_SCALE, SeriesPoint, aggregate_series, series_to_frame
from sarwater.classify import WATER_BAND
from sarwater.raster import RasterImage
from sarwater.region import Region

IDLE = "idle"
SELECTED = "selected"

DEFAULT_LABEL = "Click a point on the chart to show the image for that date."
LABEL_FORMAT = "%a, %d %b %Y %H:%M:%S GMT"

SAR_VIS = {"min": -20, "max": 0}
WATER_VIS = {"min": 0, "max": 1, "palette": ["#FFFFFF", "#0000FF"]}

CHART_OPTIONS = {
    "title": "Inundated Pixels",
    "hAxis": {"title": "Date"},
    "vAxis": {"title": "Number of Inundated Pixels"},
    "lineWidth": 2,
}


@dataclass(frozen=True)
class SelectionEvent:
    """Chart click: x value (timestamp), y value and series name. No timestamp means cleared."""
    timestamp: Optional[datetime] = None
    value: Optional[float] = None
    series_name: Optional[str] = None


@dataclass(frozen=True)
class Layer:
    name: str
    image: RasterImage
    band: str
    vis: Dict = field(default_factory=dict)

    @property
    def data(self) -> np.ma.MaskedArray:
        return self.image.select(self.band)


def format_label(timestamp: datetime) -> str:
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(timezone.utc)
    return timestamp.strftime(LABEL_FORMAT)


class SeriesController:
    """
    Bridges the aggregated series to an interactive display.

    Args:
        classified: classified images (output of the water classifier), in series order
        region: region of interest used to clip the water overlay
        raw_band: band shown as the background layer
        water_band: band shown as the overlay
        series: precomputed series; computed from ``classified`` when omitted
        scale: aggregation scale used when the series is computed here
        display: optional object with ``show_layers(layers)`` and ``set_label(text)``
    """

    def __init__(self, classified: Sequence[RasterImage], region, raw_band: str = "VV",
                 water_band: str = WATER_BAND, series: Optional[Sequence[SeriesPoint]] = None,
                 scale: Optional[float] = DEFAULT_SCALE, display=None):
        self.classified: Tuple[RasterImage, ...] = tuple(classified)
        self.region = Region.coerce(region)
        self.raw_band = raw_band
        self.water_band = water_band
        if series is None:
            series = aggregate_series(self.classified, self.region, scale=scale, band=water_band)
        self.series: Tuple[SeriesPoint, ...] = tuple(series)
        self.display = display

        self.layers: Tuple[Layer, ...] = ()
        self.label: str = DEFAULT_LABEL
        self.state: str = IDLE
        self.selected: Optional[datetime] = None

    @classmethod
    def from_result(cls, result, display=None) -> "SeriesController":
        return cls(result.classified, result.region, raw_band=result.raw_band,
                   water_band=result.water_band, series=result.series, display=display)

    @property
    def chart_options(self) -> Dict:
        return dict(CHART_OPTIONS)

    def chart_data(self) -> pd.DataFrame:
        return series_to_frame(self.series)

    def find_image(self, timestamp: datetime) -> Optional[RasterImage]:
        """First classified image whose timestamp equals ``timestamp`` exactly."""
        for image in self.classified:
            if image.timestamp == timestamp:
                return image
        return None

    def on_select(self, event: SelectionEvent) -> bool:
        """
        Handle a chart selection. Returns True when the displayed layers changed.
        """
        if event is None or event.timestamp is None:
            # Selection cleared: layers and label stay as they are
            self.state = IDLE
            self.selected = None
            return False

        image = self.find_image(event.timestamp)
        if image is None:
            print(f"Warning: no classified image for {event.timestamp}; display unchanged")
            return False

        background = Layer(self.raw_band, image, self.raw_band, dict(SAR_VIS))
        overlay = Layer("Water", image.clip(self.region), self.water_band, dict(WATER_VIS))
        self.layers = (background, overlay)
        self.label = format_label(event.timestamp)
        self.state = SELECTED
        self.selected = event.timestamp

        if self.display is not None:
            self.display.show_layers(self.layers)
            self.display.set_label(self.label)
        return True
