from types import SimpleNamespace

import matplotlib.pyplot as plt
import pytest

from conftest import footprint_region, patch_image, ts
from sarwater.classify import classify_water
from sarwater.controller import DEFAULT_LABEL, IDLE, SELECTED, SeriesController
from sarwater.speckle import filter_speckle
from sarwater.viewer import SeriesViewer, plot_first_image


@pytest.fixture
def viewer():
    images = [
        classify_water(filter_speckle(patch_image(n, ts(2020, 7, d, 9, 23, 45)), radius=20))
        for n, d in ((5, 3), (0, 15), (12, 27))
    ]
    v = SeriesViewer(SeriesController(images, footprint_region(images[0])))
    yield v
    plt.close(v.fig)


def test_viewer_registers_as_display(viewer):
    assert viewer.controller.display is viewer
    assert viewer.label_text.get_text() == DEFAULT_LABEL
    assert list(viewer.line.get_ydata()) == [5, 0, 12]
    assert viewer.ax_chart.get_title() == "Inundated Pixels"


def test_pick_selects_point(viewer):
    viewer.on_pick(SimpleNamespace(artist=viewer.line, ind=[2]))
    assert viewer.controller.state == SELECTED
    assert viewer.controller.selected == ts(2020, 7, 27, 9, 23, 45)
    assert viewer.label_text.get_text() == "Mon, 27 Jul 2020 09:23:45 GMT"
    assert len(viewer.ax_map.images) == 2


def test_pick_on_other_artist_is_ignored(viewer):
    viewer.on_pick(SimpleNamespace(artist=object(), ind=[0]))
    assert viewer.controller.state == IDLE


def test_right_click_clears_selection_but_keeps_map(viewer):
    viewer.on_pick(SimpleNamespace(artist=viewer.line, ind=[0]))
    label = viewer.label_text.get_text()
    viewer.on_button(SimpleNamespace(inaxes=viewer.ax_chart, button=3))
    assert viewer.controller.state == IDLE
    assert viewer.label_text.get_text() == label
    assert len(viewer.ax_map.images) == 2


def test_plot_first_image(tmp_path):
    image = filter_speckle(patch_image(10, ts(2020, 1, 1)), radius=20)
    out = tmp_path / "preview.png"
    fig = plot_first_image([image], output_path=out)
    assert len(fig.axes) == 4  # two panels and their colorbars
    assert out.exists()
    plt.close(fig)
    assert plot_first_image([]) is None
