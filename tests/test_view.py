import pytest

from RootFinderVisualizer.view import ZOOM_IN_FACTOR, ZOOM_OUT_FACTOR, ViewWindow


def test_pixel_to_complex_corners():
    view = ViewWindow()
    assert view.pixel_to_complex(0, 0, 400, 400) == complex(-2, -2)
    assert view.pixel_to_complex(399, 399, 400, 400) == complex(2, 2)
    assert view.pixel_to_complex(1, 1, 3, 3) == complex(0, 0)


def test_single_pixel_axes_map_to_the_minimum():
    view = ViewWindow(1.0, 3.0, -1.0, 5.0)
    assert view.pixel_to_complex(0, 0, 1, 1) == complex(1.0, -1.0)
    assert view.pixel_to_complex(0, 0, 1, 10) == complex(1.0, -1.0)


def test_zoom_keeps_the_centre():
    view = ViewWindow(-1.0, 3.0, 0.0, 2.0)
    zoomed = view.zoom(ZOOM_IN_FACTOR)
    assert zoomed.center == pytest.approx(view.center)
    assert zoomed.width == pytest.approx(4.0 * 0.9)
    assert zoomed.height == pytest.approx(2.0 * 0.9)
    assert view.zoom(ZOOM_OUT_FACTOR).width == pytest.approx(4.0 * 1.1)


def test_pan_moves_the_window_against_the_drag():
    view = ViewWindow()
    panned = view.pan(40, -100, 400, 400)
    assert panned.as_tuple() == pytest.approx((-2.4, 1.6, -1.0, 3.0))
    # Panning returns a new window
    assert view.as_tuple() == (-2.0, 2.0, -2.0, 2.0)


def test_box_select_any_corner_order():
    view = ViewWindow()
    expected = (-2.0, 0.0, -2.0, 0.0)
    assert view.box_select(0, 0, 200, 200, 400, 400).as_tuple() == pytest.approx(expected)
    assert view.box_select(200, 200, 0, 0, 400, 400).as_tuple() == pytest.approx(expected)


def test_box_select_clamps_to_the_canvas():
    view = ViewWindow()
    selected = view.box_select(-50, -50, 200, 200, 400, 400)
    assert selected.as_tuple() == pytest.approx((-2.0, 0.0, -2.0, 0.0))
    selected = view.box_select(300, 100, 900, 300, 400, 400)
    assert selected.as_tuple() == pytest.approx((1.0, 2.0, -1.0, 1.0))


def test_degenerate_box_keeps_the_view():
    view = ViewWindow()
    assert view.box_select(10, 10, 10, 200, 400, 400) is view
    assert view.box_select(500, 10, 600, 200, 400, 400) is view
