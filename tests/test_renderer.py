from RootFinderVisualizer.basins import RenderRequest
from RootFinderVisualizer.expression import ParseError
from RootFinderVisualizer.renderer import BasinRenderer

TIMEOUT = 60


def test_result_is_delivered_once():
    renderer = BasinRenderer()
    request = RenderRequest(expr="z^3 - 1", width=6, height=6, max_iter=20)
    generation = renderer.compute_async(request)
    assert generation == 1
    assert renderer.wait(TIMEOUT)

    image, rendered = renderer.get_result()
    assert rendered == request
    assert len(image.pixels) == 6 * 6 * 4
    assert renderer.get_progress() == 100.0
    assert renderer.get_result() == (None, None)


def test_latest_request_supersedes_earlier_ones():
    renderer = BasinRenderer()
    slow = RenderRequest(expr="z^3 - 1", width=80, height=80, max_iter=50)
    fast = RenderRequest(expr="z^4 - 1", width=8, height=8, max_iter=20, palette='Pastel')
    renderer.compute_async(slow)
    renderer.compute_async(slow)
    latest = renderer.compute_async(fast)
    assert latest == 3
    assert renderer.wait(TIMEOUT)

    image, rendered = renderer.get_result()
    assert rendered == fast
    assert renderer.result_generation == latest
    assert (image.width, image.height) == (8, 8)
    assert renderer.get_result() == (None, None)


def test_stale_generation_is_not_current():
    renderer = BasinRenderer()
    first = renderer.compute_async(RenderRequest(width=4, height=4, max_iter=5))
    second = renderer.compute_async(RenderRequest(width=4, height=4, max_iter=6))
    assert not renderer.is_current(first)
    assert renderer.is_current(second)
    assert renderer.wait(TIMEOUT)


def test_parse_error_is_reported():
    renderer = BasinRenderer()
    renderer.compute_async(RenderRequest(expr="z +* 1", width=4, height=4))
    assert renderer.wait(TIMEOUT)
    assert isinstance(renderer.get_error(), ParseError)
    assert renderer.get_result() == (None, None)


def test_preview_renders_with_fewer_iterations():
    renderer = BasinRenderer()
    renderer.compute_async(RenderRequest(width=4, height=4, max_iter=60), preview=True)
    assert renderer.wait(TIMEOUT)
    _, rendered = renderer.get_result()
    assert rendered.max_iter == 20
