import cmath

import numpy as np
import pytest

from RootFinderVisualizer.basins import (
    ESCAPED,
    ImageEvent,
    ProgressEvent,
    RenderRequest,
    RootRegistry,
    apply_basin_palette,
    compute_basins,
    newton_orbit,
    preview_iterations,
    render_basins,
    secant_orbit,
)
from RootFinderVisualizer.expression import ParseError
from RootFinderVisualizer.palettes import ESCAPE_COLOR, get_default_palette
from RootFinderVisualizer.view import ViewWindow

PROBE_VIEW = ViewWindow(-1.0, 1.0, -1.0, 1.0)


def probe(method='newton', **kwargs):
    return RenderRequest(expr="z^3 - 1", method=method, width=3, height=3, view=PROBE_VIEW, **kwargs)


def test_newton_probe_finds_at_most_the_three_cube_roots():
    image = compute_basins(probe())
    assert 1 <= len(image.roots) <= 3
    for root in image.roots:
        assert abs(root ** 3 - 1) < 1e-3
    cube_roots = [cmath.exp(2j * cmath.pi * k / 3) for k in range(3)]
    for root in image.roots:
        assert min(abs(root - r) for r in cube_roots) < 1e-3


def test_renders_are_deterministic():
    request = RenderRequest(expr="z^3 - 1", width=24, height=17, max_iter=30)
    first = compute_basins(request)
    second = compute_basins(request)
    assert first.pixels == second.pixels
    assert first.roots == second.roots


def test_progress_is_monotone_and_image_has_full_size():
    request = RenderRequest(expr="z^3 - 1", width=10, height=45, max_iter=20)
    events = list(render_basins(request))
    progress = [e.percent for e in events if isinstance(e, ProgressEvent)]
    assert progress == pytest.approx([100 * 20 / 45, 100 * 40 / 45, 100.0])
    assert progress == sorted(progress)
    image = events[-1]
    assert isinstance(image, ImageEvent)
    assert len(image.pixels) == 10 * 45 * 4
    assert image.to_array().shape == (45, 10, 4)
    assert (image.to_array()[:, :, 3] == 255).all()


def test_messages():
    assert ProgressEvent(50.0).as_message() == {'type': 'progress', 'progress': 50.0}
    image = compute_basins(probe())
    message = image.as_message()
    assert message['type'] == 'image'
    assert (message['width'], message['height']) == (3, 3)
    assert len(message['pixels']) == 3 * 3 * 4


def test_pixel_already_on_a_root_gets_the_first_colour():
    request = RenderRequest(expr="z^3 - 1", width=1, height=1, view=ViewWindow(1.0, 2.0, 0.0, 1.0))
    image = compute_basins(request)
    assert image.roots == (1 + 0j,)
    assert tuple(image.to_array()[0, 0]) == (16, 185, 129, 255)


def test_cancelled_before_first_row_yields_nothing():
    events = list(render_basins(probe(), should_continue=lambda: False))
    assert events == []


def test_cancelled_between_rows_has_no_image():
    rows = []

    def should_continue():
        rows.append(1)
        return len(rows) <= 25

    request = RenderRequest(expr="z^3 - 1", width=4, height=60, max_iter=10)
    events = list(render_basins(request, should_continue=should_continue))
    assert [type(e) for e in events] == [ProgressEvent]
    assert not any(isinstance(e, ImageEvent) for e in events)


def test_secant_render():
    image = compute_basins(probe('secant'))
    assert len(image.pixels) == 3 * 3 * 4
    assert image.roots


def test_picard_default_map():
    request = RenderRequest(expr="z - 0.5", method='picard', width=5, height=5)
    image = compute_basins(request)
    assert len(image.roots) == 1
    assert image.roots[0] == pytest.approx(0.5)


def test_picard_with_unparsable_map_uses_default(caplog):
    default = compute_basins(RenderRequest(expr="z - 0.5", method='picard', width=5, height=5))
    fallback = compute_basins(RenderRequest(expr="z - 0.5", method='picard', width=5, height=5,
                                            phi_expr="z +* 1"))
    assert fallback.pixels == default.pixels
    assert "Ignoring formula" in caplog.text


def test_picard_with_map():
    request = RenderRequest(expr="z^2 - 2", method='picard', width=4, height=4,
                            view=ViewWindow(1.0, 2.0, -0.1, 0.1), phi_expr="(z + 2/z) / 2")
    image = compute_basins(request)
    assert len(image.roots) == 1
    assert image.roots[0] == pytest.approx(2 ** 0.5)


def test_unparsable_expression_raises():
    with pytest.raises(ParseError):
        list(render_basins(RenderRequest(expr="z +* 1", width=2, height=2)))


def test_invalid_requests():
    with pytest.raises(ValueError):
        RenderRequest(method='bisection')
    with pytest.raises(ValueError):
        RenderRequest(width=0)
    with pytest.raises(ValueError):
        RenderRequest(max_iter=-1)


def test_root_registry_clusters_in_discovery_order():
    registry = RootRegistry()
    assert registry.classify(1 + 0j) == 0
    assert registry.classify(1 + 5e-4j) == 0
    assert registry.classify(-1 + 0j) == 1
    assert registry.classify(complex(float('nan'), 0)) == ESCAPED
    assert registry.classify(complex(float('inf'), 0)) == ESCAPED
    assert len(registry) == 2


def test_newton_orbit_escapes_on_zero_derivative():
    z, k = newton_orbit(0j, lambda z: z ** 3 - 1, lambda z: 3 * z ** 2, 50, 1e-6)
    assert not cmath.isfinite(z)
    assert k == 1


def test_secant_orbit_stops_on_tiny_denominator():
    z, k = secant_orbit(3 + 0j, lambda z: 1 + 0j, 50, 1e-6)
    assert z == 3 + 0j
    assert k == 0


def test_palette_kernel_brightens_and_clamps():
    root_index = np.array([[0, 1], [ESCAPED, 7]], dtype=np.int32)
    iterations = np.array([[0, 10], [5, 10]], dtype=np.int32)
    out = np.zeros((2, 2, 4), dtype=np.uint8)
    apply_basin_palette(root_index, iterations, 10, get_default_palette(),
                        np.array(ESCAPE_COLOR, dtype=np.uint8), out)
    assert tuple(out[0, 0]) == (16, 185, 129, 255)
    assert tuple(out[0, 1]) == (109, 180, 255, 255)
    assert tuple(out[1, 0]) == (49, 49, 52, 255)
    # Root indices wrap around the six colours
    assert tuple(out[1, 1]) == tuple(out[0, 1])


def test_preview_iterations():
    assert preview_iterations(50) == 16
    assert preview_iterations(12) == 10
