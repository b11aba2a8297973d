"""
Expression compilation and evaluation.

Turns user-typed formulas such as ``x^3 - 2x - 5`` or ``z^3 - 1`` into
callables that can be evaluated at real or complex points. Parsing and
differentiation are done with SymPy; evaluation uses ``math`` for real
arguments and ``cmath`` for complex ones, so a single formula can drive both
the real-line iterations and the complex basin renderer.

Evaluation failures never propagate into the numerical code: ``real()`` and
``complex()`` return NaN, which the iteration methods interpret as numeric
instability. ``eval()`` is the strict variant that raises ``EvalError``.
"""

import cmath
import logging
import math

import sympy
from sympy.parsing.sympy_parser import (
    parse_expr,
    standard_transformations,
    implicit_multiplication_application,
)

logger = logging.getLogger(__name__)


NAN = float('nan')
COMPLEX_NAN = complex(NAN, NAN)

# Step used by the central-difference derivative fallback
DIFF_STEP = 1e-6

_TRANSFORMATIONS = standard_transformations + (implicit_multiplication_application,)

# Names a formula may reference, besides its variable
_SAFE_MATH_NAMESPACE = {
    'sin': sympy.sin,
    'cos': sympy.cos,
    'tan': sympy.tan,
    'exp': sympy.exp,
    'log': sympy.log,
    'ln': sympy.log,
    'sqrt': sympy.sqrt,
    'cbrt': sympy.cbrt,
    'abs': sympy.Abs,
    'sinh': sympy.sinh,
    'cosh': sympy.cosh,
    'tanh': sympy.tanh,
    'asin': sympy.asin,
    'acos': sympy.acos,
    'atan': sympy.atan,
    'pi': sympy.pi,
    'e': sympy.E,
    'i': sympy.I,
}

# Exceptions math/cmath raise for points outside a function's domain
_EVAL_FAILURES = (ArithmeticError, ValueError, TypeError)


class ParseError(ValueError):
    """Raised when a formula cannot be parsed or compiled."""

    def __init__(self, text, reason):
        super().__init__(f"Cannot parse '{text}': {reason}")
        self.text = text
        self.reason = reason


class EvalError(ArithmeticError):
    """Raised by Evaluable.eval when a point is outside the formula's domain."""


def prepare_formula(formula_str):
    """
    Normalize common mathematical notation to Python syntax.

    Handles ``^`` for powers, unicode superscripts and multiplication signs.
    Implicit multiplication (``2x``, ``3(x+1)``) is left to the parser.
    """
    f = formula_str.strip()
    f = f.replace('·', '*').replace('×', '*').replace('−', '-')
    f = f.replace('²', '^2').replace('³', '^3').replace('⁴', '^4')
    f = f.replace('^', '**')
    return f


def is_finite(value):
    """True for finite real or complex numbers."""
    if isinstance(value, complex):
        return cmath.isfinite(value)
    return math.isfinite(value)


class Evaluable:
    """
    A compiled formula in a single variable.

    Usage:
        f = compile_expression("x^3 - 2x - 5")
        f.real(2.0)              # -1.0
        f.complex(1j)            # (-5-3j)
        f.eval({'x': 2.0})       # strict, raises EvalError

    Attributes:
        text: The formula as typed by the user
        var: Name of the free variable
        expr: The SymPy expression
    """

    def __init__(self, text, expr, var):
        self.text = text
        self.expr = expr
        self.var = var
        symbol = sympy.Symbol(var)
        self._real_fn = sympy.lambdify(symbol, expr, modules=[math])
        self._complex_fn = sympy.lambdify(symbol, expr, modules=[cmath])

    def __repr__(self):
        return f"Evaluable({self.text!r}, var={self.var!r})"

    def eval(self, bindings):
        """
        Evaluate at the point bound to this formula's variable.

        Real bindings give a float, complex bindings a complex.

        Raises:
            EvalError: if the point is outside the formula's domain
        """
        try:
            value = bindings[self.var]
        except KeyError:
            raise EvalError(f"No value bound for '{self.var}'") from None
        if isinstance(value, complex):
            return self._eval_complex(value)
        return self._eval_real(value)

    def real(self, x):
        """Evaluate at a real point, NaN if undefined there."""
        try:
            return self._eval_real(x)
        except EvalError:
            return NAN

    def complex(self, z):
        """Evaluate at a complex point, complex NaN if undefined there."""
        try:
            return self._eval_complex(z)
        except EvalError:
            return COMPLEX_NAN

    __call__ = real

    def _eval_real(self, x):
        try:
            value = self._real_fn(float(x))
        except _EVAL_FAILURES as e:
            raise EvalError(str(e)) from e
        if isinstance(value, complex):
            # Real-valued evaluation only; x**0.5 of a negative lands here
            if value.imag != 0:
                return NAN
            value = value.real
        try:
            return float(value)
        except _EVAL_FAILURES as e:
            raise EvalError(str(e)) from e

    def _eval_complex(self, z):
        try:
            return complex(self._complex_fn(complex(z)))
        except _EVAL_FAILURES as e:
            raise EvalError(str(e)) from e


def _parse(text, var):
    if text is None or not text.strip():
        raise ParseError(text or '', 'empty expression')
    namespace = dict(_SAFE_MATH_NAMESPACE)
    namespace[var] = sympy.Symbol(var)
    try:
        expr = parse_expr(prepare_formula(text), local_dict=namespace,
                          transformations=_TRANSFORMATIONS)
    except Exception as e:
        # parse_expr surfaces tokenizer, syntax and sympify errors alike
        raise ParseError(text, str(e) or type(e).__name__) from e
    if not isinstance(expr, sympy.Expr):
        raise ParseError(text, 'not a numeric expression')
    unknown = {s.name for s in expr.free_symbols} - {var}
    if unknown:
        raise ParseError(text, f"unknown symbol(s): {', '.join(sorted(unknown))}")
    return expr


def compile_expression(text, var='x'):
    """
    Compile a formula into an Evaluable.

    Args:
        text: Formula as typed, e.g. "x^3 - 2x - 5"
        var: Name of the free variable ('x' for real views, 'z' for fractals)

    Returns:
        Evaluable

    Raises:
        ParseError: if the formula is malformed or uses unknown names
    """
    expr = _parse(text, var)
    try:
        return Evaluable(text, expr, var)
    except Exception as e:
        raise ParseError(text, str(e)) from e


def derivative(text, var='x'):
    """
    Compile the symbolic derivative of a formula.

    Raises:
        ParseError: if the formula is malformed or the derivative cannot
            be compiled to a numeric function
    """
    expr = _parse(text, var)
    d_expr = sympy.diff(expr, sympy.Symbol(var))
    if d_expr.has(sympy.Derivative):
        raise ParseError(text, 'derivative has no closed form')
    try:
        return Evaluable(f"d/d{var}[{text}]", d_expr, var)
    except Exception as e:
        raise ParseError(text, str(e)) from e


def try_compile(text, var='x'):
    """Compile a formula, returning None instead of raising ParseError."""
    if text is None or not text.strip():
        return None
    try:
        return compile_expression(text, var)
    except ParseError as e:
        logger.warning("Ignoring formula: %s", e)
        return None


def central_difference(fn, x, h=DIFF_STEP):
    """
    Numeric derivative of fn at x by central differences.

    Works for real and complex x. Returns NaN (complex NaN for complex x)
    when either sample is not finite.
    """
    fp = fn(x + h)
    fm = fn(x - h)
    if not (is_finite(fp) and is_finite(fm)):
        return COMPLEX_NAN if isinstance(x, complex) else NAN
    return (fp - fm) / (2 * h)
