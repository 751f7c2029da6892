import numpy as np
import pytest

from conftest import PIXEL_200M, footprint_region, make_image, patch_image, ts, uniform_image
from sarwater.aggregate import SeriesPoint
from sarwater.controller import SelectionEvent, SeriesController
from sarwater.pipeline import PipelineResult, classify_collection, filter_collection, process_image, run_pipeline
from sarwater.region import Region
from sarwater.source import InMemorySource
from sarwater.utils import map_images, noop_log


def coarse(value, timestamp, **kwargs):
    return uniform_image(value, timestamp, pixel=PIXEL_200M, **kwargs)


def test_single_land_image_counts_zero():
    image = coarse(-5.0, ts(2020, 6, 1, 9))
    src = InMemorySource([image], footprint_region(image), "2020-06-01", "2020-06-02")
    result = run_pipeline(src, scale=200)
    assert result.series == (SeriesPoint(ts(2020, 6, 1, 9), 0),)
    assert len(result.classified) == 1


def test_single_water_image_counts_region_pixels_at_scale():
    image = coarse(-25.0, ts(2020, 6, 1, 9))
    src = InMemorySource([image], footprint_region(image), "2020-06-01", "2020-06-02")
    assert run_pipeline(src, scale=200).series[0].count == 100
    # 200 m pixels counted on a 100 m grid
    assert run_pipeline(src, scale=100).series[0].count == 400


def test_single_pixel_region():
    image = coarse(-25.0, ts(2020, 6, 1, 9))
    west, south, east, north = image.footprint
    region = Region.from_bounds(west + 4 * PIXEL_200M, north - 5 * PIXEL_200M,
                                west + 5 * PIXEL_200M, north - 4 * PIXEL_200M)
    result = run_pipeline([image], region=region, scale=200)
    assert result.series[0].count == 1


def test_three_dates_and_selection_of_dry_date():
    t1, t2, t3 = ts(2020, 7, 3, 9, 23), ts(2020, 7, 15, 9, 23), ts(2020, 7, 27, 9, 23)
    catalog = [patch_image(n, t, pixel=PIXEL_200M) for n, t in ((12, t3), (5, t1), (0, t2))]
    region = footprint_region(catalog[0])
    result = run_pipeline(InMemorySource(catalog, region, "2020-07-01", "2020-08-01"), scale=200)

    assert list(result.series) == [SeriesPoint(t1, 5), SeriesPoint(t2, 0), SeriesPoint(t3, 12)]
    assert [img.timestamp for img in result.classified] == [t1, t2, t3]

    controller = SeriesController.from_result(result)
    assert controller.on_select(SelectionEvent(t2, 0))
    background, overlay = controller.layers
    assert background.image.timestamp == t2
    assert overlay.data.count() == 0


def test_failed_image_is_dropped_from_both_outputs(capsys):
    good = coarse(-25.0, ts(2020, 1, 1))
    wrong_band = make_image(np.full((10, 10), -25.0), ts(2020, 1, 2), pixel=PIXEL_200M, band="VH")
    later = coarse(-5.0, ts(2020, 1, 3))
    result = run_pipeline([good, wrong_band, later], region=footprint_region(good), scale=200)
    assert [p.timestamp for p in result.series] == [ts(2020, 1, 1), ts(2020, 1, 3)]
    assert [img.timestamp for img in result.classified] == [ts(2020, 1, 1), ts(2020, 1, 3)]
    assert "Warning: failed to process" in capsys.readouterr().out


def test_empty_source_gives_empty_result():
    image = coarse(-25.0, ts(2020, 1, 1))
    src = InMemorySource([image], footprint_region(image), "2021-01-01", "2021-02-01")
    result = run_pipeline(src)
    assert isinstance(result, PipelineResult)
    assert result.empty
    assert result.classified == ()


def test_list_input_requires_region():
    with pytest.raises(ValueError):
        run_pipeline([coarse(-25.0, ts(2020, 1, 1))])


def test_process_image_uses_band_names():
    image = make_image(np.full((10, 10), -25.0), ts(2020, 1, 1), pixel=PIXEL_200M, band="VH")
    out, point = process_image(image, footprint_region(image), band="VH", scale=200)
    assert out.band_names == ("VH", "VH_Filtered", "Water")
    assert point.count == 100


def test_collection_stages_preserve_order():
    images = [coarse(-25.0, ts(2020, 1, d)) for d in (1, 2, 3, 4)]
    filtered = filter_collection(images, workers=3)
    classified = classify_collection(filtered, workers=3)
    assert [img.timestamp for img in classified] == [img.timestamp for img in images]
    assert all(img.band_names == ("VV", "VV_Filtered", "Water") for img in classified)


def test_map_images_logs_through_supplied_callable():
    messages = []
    assert map_images(lambda x: x * 2, [1, 2, 3], log_fn=messages.append, stage="double") == [2, 4, 6]
    assert messages == ["double: 3/3 image(s) succeeded"]
    assert noop_log("ignored") is None
