#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Matplotlib front end for the water time series.

The chart of inundated pixels sits under a map panel. Clicking a point on the
chart selects that date and the map shows its SAR image with the water
classification on top. A right-click on the chart clears the selection.
"""

from __future__ import annotations

from typing import Optional, Sequence

from matplotlib import pyplot as plt
from matplotlib.colors import ListedColormap

from sarwater.controller import SelectionEvent, SeriesController
from sarwater.raster import RasterImage

PREVIEW_VIS = {"min": -18, "max": 0}


def layer_extent(image: RasterImage):
    """imshow extent [left, right, bottom, top] in the image CRS."""
    west, south, east, north = image.footprint
    return [west, east, south, north]


def draw_layer(ax, layer):
    vis = layer.vis
    if "palette" in vis:
        cmap = ListedColormap(vis["palette"])
    else:
        cmap = plt.get_cmap("gray")
    cmap = cmap.with_extremes(bad=(0, 0, 0, 0))  # masked pixels are transparent
    return ax.imshow(layer.data, extent=layer_extent(layer.image), origin="upper",
                     cmap=cmap, vmin=vis.get("min"), vmax=vis.get("max"), interpolation="nearest")


def draw_region(ax, region, crs):
    x, y = region.to_crs(crs).exterior.xy
    ax.plot(x, y, color="#8B0000", linewidth=1, linestyle="--")


def plot_series(ax, series, options):
    times = [p.timestamp for p in series]
    counts = [p.count for p in series]
    (line,) = ax.plot(times, counts, marker="o", linestyle="-",
                      linewidth=options.get("lineWidth", 2), picker=5)
    ax.set_title(options.get("title", ""))
    ax.set_xlabel(options.get("hAxis", {}).get("title", ""))
    ax.set_ylabel(options.get("vAxis", {}).get("title", ""))
    ax.grid(True)
    return line


class SeriesViewer:
    """Chart + map window acting as the controller's display."""

    def __init__(self, controller: SeriesController, figsize=(10, 9)):
        self.controller = controller
        self.fig, (self.ax_map, self.ax_chart) = plt.subplots(
            2, 1, figsize=figsize, gridspec_kw={"height_ratios": [3, 1]}
        )
        self.line = plot_series(self.ax_chart, controller.series, controller.chart_options)
        self.label_text = self.fig.text(0.01, 0.01, controller.label, fontsize=9)
        self._draw_roi()
        controller.display = self

        self.fig.canvas.mpl_connect("pick_event", self.on_pick)
        self.fig.canvas.mpl_connect("button_press_event", self.on_button)
        self.fig.tight_layout(rect=(0, 0.03, 1, 1))

    def _draw_roi(self):
        self.ax_map.set_title("ROI")
        draw_region(self.ax_map, self.controller.region, "EPSG:4326")
        self.ax_map.set_xlabel("Longitude")
        self.ax_map.set_ylabel("Latitude")

    def selection_for_index(self, index: int) -> SelectionEvent:
        point = self.controller.series[index]
        return SelectionEvent(point.timestamp, point.count, "Water")

    def on_pick(self, event):
        if event.artist is not self.line or len(event.ind) == 0:
            return
        self.controller.on_select(self.selection_for_index(int(event.ind[0])))

    def on_button(self, event):
        if event.inaxes is self.ax_chart and event.button == 3:
            self.controller.on_select(SelectionEvent())

    def show_layers(self, layers: Sequence):
        self.ax_map.clear()
        for layer in layers:
            draw_layer(self.ax_map, layer)
        if layers:
            crs = layers[0].image.crs
            draw_region(self.ax_map, self.controller.region, crs)
            self.ax_map.set_title(layers[0].image.metadata.scene_id or "")
        self.fig.canvas.draw_idle()

    def set_label(self, text: str):
        self.label_text.set_text(text)
        self.fig.canvas.draw_idle()

    def show(self):
        plt.show()


def plot_first_image(images: Sequence[RasterImage], raw_band: str = "VV",
                     filtered_band: Optional[str] = None, output_path=None):
    """Raw vs speckle-filtered view of the first image in the series."""
    if not images:
        print("No images to preview.")
        return None
    image = images[0]
    filtered_band = filtered_band or f"{raw_band}_Filtered"
    panels = [(raw_band, "SAR image"), (filtered_band, "Filtered SAR image")]
    panels = [(band, title) for band, title in panels if band in image.bands]

    fig, axes = plt.subplots(1, len(panels), figsize=(6 * len(panels), 5), squeeze=False)
    for ax, (band, title) in zip(axes[0], panels):
        im = ax.imshow(image.select(band), extent=layer_extent(image), cmap="gray",
                       vmin=PREVIEW_VIS["min"], vmax=PREVIEW_VIS["max"])
        ax.set_title(f"{title} ({image.timestamp:%Y-%m-%d})")
        fig.colorbar(im, ax=ax, label="dB")

    if output_path:
        plt.savefig(output_path, dpi=300, bbox_inches="tight")
        print(f"Figure saved to {output_path}")
    return fig
