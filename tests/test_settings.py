import pytest

from RootFinderVisualizer.engine import IterationController
from RootFinderVisualizer.settings import (
    build_engine,
    fractal_request,
    get_preset,
    get_presets,
    iteration_settings,
    load_settings,
)
from RootFinderVisualizer.view import ViewWindow


def test_shipped_settings_load():
    settings = load_settings()
    assert settings is not None
    names = [preset.name for preset in get_presets(settings)]
    assert names == ["x^3 - 2x - 5", "sin(x) * x", "e^x - 3x", "custom"]


def test_missing_or_malformed_file_returns_none(tmp_path, caplog):
    assert load_settings(str(tmp_path / "missing.json")) is None
    broken = tmp_path / "broken.json"
    broken.write_text("{ not json")
    assert load_settings(str(broken)) is None
    assert "Could not load" in caplog.text


def test_defaults_without_settings():
    assert get_presets(None)[0].name == "x^3 - 2x - 5"
    assert iteration_settings(None)['delay_ms'] == 300
    request = fractal_request(None)
    assert request.expr == "z^3 - 1"
    assert request.method == 'newton'
    assert (request.width, request.height) == (400, 400)
    assert request.max_iter == 50
    assert request.tol == 1e-6
    assert request.view == ViewWindow(-2, 2, -2, 2)


def test_partial_settings_fall_back_per_key():
    request = fractal_request({'fractal': {'max_iter': 80}})
    assert request.max_iter == 80
    assert request.expr == "z^3 - 1"


def test_fractal_request_overrides():
    request = fractal_request(load_settings(), method='secant', width=10, height=12, expr=None)
    assert request.method == 'secant'
    assert (request.width, request.height) == (10, 12)
    assert request.expr == "z^3 - 1"


def test_preset_lookup():
    settings = load_settings()
    preset = get_preset("sin(x) * x", settings)
    assert preset.bracket == (1, 5)
    assert preset.x1 == 2.5
    assert preset.phi == "x - 0.5*sin(x)*x"
    with pytest.raises(KeyError):
        get_preset("tan(x)", settings)


def test_build_engine_uses_preset_seeds_and_plot_range():
    settings = load_settings()
    engine = build_engine(get_preset("x^3 - 2x - 5", settings), settings=settings)
    assert engine.method_name == 'newton'
    assert engine.x0 == 10.0
    assert engine.x1 == 9.0
    assert engine.bound_scale == 10.0
    controller = IterationController(engine, delay_ms=0)
    assert controller.run().is_converged
    assert engine.history[-1].x == pytest.approx(2.0945515, abs=1e-6)


@pytest.mark.parametrize("method", ['bisection', 'regula-falsi', 'secant', 'picard', 'aitken'])
def test_presets_converge(method):
    settings = load_settings()
    engine = build_engine(get_preset("x^3 - 2x - 5", settings), method=method, settings=settings)
    controller = IterationController(engine, delay_ms=0)
    assert controller.run(max_steps=500).is_converged
    assert engine.history[-1].x == pytest.approx(2.0945515, abs=1e-4)


def test_custom_preset_without_formula_uses_first_preset():
    settings = load_settings()
    engine = build_engine(get_preset("custom", settings), settings=settings)
    assert engine.function.text == "x^3 - 2*x - 5"
    assert engine.bracket.a == -3.0


def test_overrides_win_over_the_preset():
    engine = build_engine(get_presets()[0], method='bisection', bracket=(2, 3), eps=1e-3, x0=None)
    assert (engine.bracket.a, engine.bracket.b) == (2.0, 3.0)
    assert engine.eps == 1e-3
    assert engine.x0 == 10.0
