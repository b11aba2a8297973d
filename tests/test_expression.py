import math

import pytest

from RootFinderVisualizer.expression import (
    EvalError,
    ParseError,
    central_difference,
    compile_expression,
    derivative,
    prepare_formula,
    try_compile,
)


def test_prepare_formula_normalizes_notation():
    assert prepare_formula(" x² · 3 − 1 ") == "x**2 * 3 - 1"
    assert prepare_formula("z^3 - 1") == "z**3 - 1"


def test_real_evaluation_with_implicit_multiplication():
    f = compile_expression("x^3 - 2x - 5")
    assert f.real(2.0) == pytest.approx(-1.0)
    assert f(3.0) == pytest.approx(16.0)


def test_complex_evaluation():
    f = compile_expression("z^3 - 1", "z")
    assert f.complex(1j) == pytest.approx(-1 - 1j)
    assert f.complex(1) == pytest.approx(0)


def test_named_functions_and_constants():
    f = compile_expression("sin(x) * x + ln(e) + cbrt(8)")
    assert f.real(math.pi / 2) == pytest.approx(math.pi / 2 + 1 + 2)


def test_domain_errors_become_nan():
    f = compile_expression("log(x)")
    assert math.isnan(f.real(-1.0))
    assert math.isnan(compile_expression("sqrt(x)").real(-4.0))


def test_strict_eval_raises():
    f = compile_expression("log(x)")
    assert f.eval({'x': math.e}) == pytest.approx(1.0)
    with pytest.raises(EvalError):
        f.eval({'x': -1.0})
    with pytest.raises(EvalError):
        f.eval({'y': 1.0})


def test_complex_binding_evaluates_in_the_complex_plane():
    f = compile_expression("log(x)")
    assert f.eval({'x': complex(-1, 0)}) == pytest.approx(complex(0, math.pi))


@pytest.mark.parametrize("text", ["", "   ", "x +* 2", "x + y", "sin("])
def test_parse_errors(text):
    with pytest.raises(ParseError):
        compile_expression(text)


def test_derivative_is_symbolic():
    df = derivative("x^3 - 2x - 5")
    assert df.real(2.0) == pytest.approx(10.0)
    dz = derivative("z^3 - 1", "z")
    assert dz.complex(1j) == pytest.approx(-3)


def test_derivative_without_closed_form_raises():
    with pytest.raises(ParseError):
        derivative("abs(x)")


def test_try_compile_logs_and_returns_none(caplog):
    assert try_compile(None) is None
    assert try_compile("") is None
    assert try_compile("x +* 1") is None
    assert "Ignoring formula" in caplog.text


def test_central_difference_real_and_complex():
    assert central_difference(lambda x: x * x, 3.0) == pytest.approx(6.0, rel=1e-6)
    assert central_difference(lambda z: z * z, 1j) == pytest.approx(2j, rel=1e-6)
    assert math.isnan(central_difference(compile_expression("log(x)").real, 0.0))
