import pytest

from region_translator.region_mapper import (
    Point,
    Rect,
    Region,
    fit_rect,
    full_frame,
    region_from_drag,
    to_display_space,
    to_source_space,
)


def _as_tuple(rect):
    return rect.x, rect.y, rect.width, rect.height


def test_to_source_space_scales_both_axes():
    display = Rect(0, 0, 640, 360)
    p = to_source_space(Point(320, 180), display, (1920, 1080))
    assert p == Point(960, 540)


def test_to_source_space_subtracts_display_origin():
    display = Rect(100, 50, 400, 300)
    p = to_source_space(Point(150, 80), display, (800, 600))
    assert p == Point(100, 60)


def test_degenerate_display_maps_to_origin():
    assert to_source_space(Point(10, 10), Rect(0, 0, 0, 0), (640, 480)) == Point(0, 0)
    assert to_source_space(Point(10, 10), Rect(0, 0, 100, 100), (0, 480)) == Point(0, 0)


def test_display_space_inverts_source_space():
    display = Rect(20, 10, 640, 360)
    region = Region(960, 540, 192, 108)
    rect = to_display_space(region, display, (1920, 1080))
    assert _as_tuple(rect) == pytest.approx((340, 190, 64, 36))


def test_display_space_degenerate_is_empty():
    assert to_display_space(Region(0, 0, 10, 10), Rect(0, 0, 0, 0), (640, 480)).is_empty


@pytest.mark.parametrize(
    "start, end",
    [
        (Point(10, 20), Point(110, 120)),
        (Point(110, 120), Point(10, 20)),
        (Point(110, 20), Point(10, 120)),
    ],
)
def test_region_from_drag_any_direction(start, end):
    assert region_from_drag(start, end) == Region(10, 20, 100, 100)


def test_small_drag_is_not_a_region():
    assert region_from_drag(Point(0, 0), Point(49, 200)) is None
    assert region_from_drag(Point(0, 0), Point(200, 49)) is None
    assert region_from_drag(Point(0, 0), Point(50, 50)) == Region(0, 0, 50, 50)


def test_region_from_drag_rounds_to_pixels():
    assert region_from_drag(Point(10.4, 10.6), Point(90.6, 90.4)) == Region(10, 11, 80, 80)


def test_clamped_clips_to_frame():
    assert Region(-10, -10, 100, 100).clamped(50, 50) == Region(0, 0, 50, 50)
    assert Region(600, 10, 100, 100).clamped(640, 480) == Region(600, 10, 40, 100)
    assert Region(700, 10, 100, 100).clamped(640, 480) is None


def test_full_frame():
    assert full_frame(640, 480).as_tuple() == (0, 0, 640, 480)


def test_fit_rect_letterboxes_wide_source():
    rect = fit_rect((1920, 1080), 640, 640)
    assert _as_tuple(rect) == pytest.approx((0, 140, 640, 360))


def test_fit_rect_pillarboxes_tall_source():
    rect = fit_rect((480, 640), 600, 320)
    assert _as_tuple(rect) == pytest.approx((180, 0, 240, 320))


def test_fit_rect_without_source_is_empty():
    assert fit_rect((0, 0), 640, 480).is_empty
