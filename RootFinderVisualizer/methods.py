"""
Root-finding iteration methods.

Each method is a class with a single ``step(engine)`` that reads the engine's
state (history, seeds, bracket, damping) and returns a StepOutcome describing
the next point. Methods never modify the engine; RootIterationEngine applies
a successful outcome, so a failed step leaves history and bracket untouched.

Supported methods:
- bisection:      halve a sign-change bracket
- regula-falsi:   secant line through the bracket endpoints
- secant:         secant through the two most recent points
- newton:         tangent step, secant fallback when f' is unusable
- newton-damped:  Newton step scaled by a damping factor
- picard:         fixed-point iteration x <- phi(x)
- aitken:         Picard with Aitken delta-squared acceleration
"""

import math
from dataclasses import dataclass
from enum import Enum


# Denominators and derivatives below this are treated as zero
TINY = 1e-14


class FailureReason(Enum):
    BRACKET_INVALID = 'bracket-invalid'
    NUMERIC_INSTABILITY = 'numeric-instability'
    DIVERGENCE = 'divergence'


class StepStatus(Enum):
    CONTINUED = 'continued'
    CONVERGED = 'converged'
    FAILED = 'failed'


@dataclass(frozen=True)
class IterationStep:
    """One recorded iterate: the point, f at the point, and the step error."""

    x: float
    fx: float
    err: float


@dataclass(frozen=True)
class Bracket:
    """Interval [a, b] expected to contain a sign change of f."""

    a: float
    b: float

    @property
    def width(self):
        return abs(self.b - self.a)


@dataclass(frozen=True)
class StepOutcome:
    """
    Result of one step() call.

    Attributes:
        status: CONTINUED, CONVERGED or FAILED
        step: The new IterationStep (None when failed)
        reason: FailureReason when failed
        message: Human readable description of a failure
        bracket: Updated bracket for bracketing methods
    """

    status: StepStatus
    step: IterationStep = None
    reason: FailureReason = None
    message: str = ''
    bracket: Bracket = None

    @classmethod
    def failed(cls, reason, message):
        return cls(StepStatus.FAILED, reason=reason, message=message)

    @property
    def is_failed(self):
        return self.status is StepStatus.FAILED

    @property
    def is_converged(self):
        return self.status is StepStatus.CONVERGED

    @property
    def is_terminal(self):
        return self.status is not StepStatus.CONTINUED


def _instability(message):
    return StepOutcome.failed(FailureReason.NUMERIC_INSTABILITY, message)


class IterationMethod:
    """
    Base class for a root-finding method.

    Subclasses set ``name`` and ``label`` and implement ``step``.
    ``uses_bracket`` marks methods that read and update the engine's bracket.
    """

    name = None
    label = None
    uses_bracket = False

    def step(self, engine):
        raise NotImplementedError

    def current_points(self, engine):
        """Return (x_n, x_{n-1}): the last two recorded points, seeded by x0."""
        history = engine.history
        xn = history[-1].x if history else engine.x0
        xn_1 = history[-2].x if len(history) > 1 else engine.x0
        return xn, xn_1

    def advance(self, engine, xn, x_next, bracket=None):
        """Shared tail of the open methods: divergence check and convergence test."""
        fx_next = engine.f(x_next)
        err = abs(x_next - xn)
        if not math.isfinite(x_next) or not math.isfinite(fx_next):
            return StepOutcome.failed(FailureReason.DIVERGENCE,
                                      'iteration diverged or produced NaN')
        status = StepStatus.CONVERGED if err < engine.eps else StepStatus.CONTINUED
        return StepOutcome(status, step=IterationStep(x_next, fx_next, err), bracket=bracket)

    def guarded(self, engine, xn, candidate, message):
        """Run a candidate through the StabilityGuard and finish the step."""
        move = engine.guard.attempt_move(xn, candidate, engine.bound_scale)
        if not move.accepted:
            return _instability(message)
        return self.advance(engine, xn, move.value)


class Bisection(IterationMethod):
    name = 'bisection'
    label = 'Bisection'
    uses_bracket = True

    def step(self, engine):
        a, b = engine.bracket.a, engine.bracket.b
        fa, fb = engine.f(a), engine.f(b)
        if not math.isfinite(fa) or not math.isfinite(fb):
            return _instability('bisection failed: f is not finite at the bracket endpoints')
        if fa * fb > 0:
            return StepOutcome.failed(FailureReason.BRACKET_INVALID,
                                      'bisection failed: bracket has no sign change (f(a)*f(b) > 0)')
        c = (a + b) / 2
        fc = engine.f(c)
        prev_x = engine.history[-1].x if engine.history else None
        err = abs(c - prev_x) if prev_x is not None else abs(b - a) / 2
        bracket = Bracket(a, c) if fa * fc < 0 else Bracket(c, b)
        # The first midpoint has nothing to be compared against
        converged = prev_x is not None and err < engine.eps
        status = StepStatus.CONVERGED if converged else StepStatus.CONTINUED
        return StepOutcome(status, step=IterationStep(c, fc, err), bracket=bracket)


class RegulaFalsi(IterationMethod):
    """
    False position. Keeps the classic behaviour of retaining one endpoint
    for many steps on convex functions; no Illinois correction.
    """

    name = 'regula-falsi'
    label = 'Regula falsi'
    uses_bracket = True

    def step(self, engine):
        a, b = engine.bracket.a, engine.bracket.b
        fa, fb = engine.f(a), engine.f(b)
        if not math.isfinite(fa) or not math.isfinite(fb):
            return _instability('regula falsi failed: f is not finite at the bracket endpoints')
        if fa * fb > 0:
            return StepOutcome.failed(FailureReason.BRACKET_INVALID,
                                      'regula falsi failed: bracket has no sign change (f(a)*f(b) > 0)')
        if fb == fa:
            return _instability('regula falsi failed: f(a) == f(b)')
        c = b - fb * (b - a) / (fb - fa)
        fc = engine.f(c)
        bracket = Bracket(a, c) if fa * fc < 0 else Bracket(c, b)
        xn, _ = self.current_points(engine)
        return self.advance(engine, xn, c, bracket=bracket)


class Secant(IterationMethod):
    name = 'secant'
    label = 'Secant'

    def current_points(self, engine):
        history = engine.history
        if not history:
            return engine.x1, engine.x0
        if len(history) == 1:
            # Second step pairs the first iterate with the x0 seed
            return history[0].x, engine.x0
        return history[-1].x, history[-2].x

    def step(self, engine):
        xn, xn_1 = self.current_points(engine)
        fxn, fxn_1 = engine.f(xn), engine.f(xn_1)
        denom = fxn - fxn_1
        if not math.isfinite(fxn) or not math.isfinite(fxn_1) or abs(denom) < TINY:
            return _instability('secant failed: denominator too small or not finite')
        candidate = xn - fxn * (xn - xn_1) / denom
        return self.guarded(engine, xn, candidate,
                            'secant failed: denominator too small or not finite')


class Newton(IterationMethod):
    name = 'newton'
    label = 'Newton'

    def scale(self, engine, xn, raw):
        return raw

    def step(self, engine):
        message = 'iteration failed: function or derivative is numerically unstable'
        xn, xn_1 = self.current_points(engine)
        fx = engine.f(xn)
        dfx = engine.df(xn)
        if not math.isfinite(fx) or not math.isfinite(dfx) or abs(dfx) < TINY:
            # Fall back to a secant step through the two latest points
            if not engine.history:
                return _instability(message)
            fxn_1 = engine.f(xn_1)
            denom = fx - fxn_1
            if not math.isfinite(fxn_1) or not abs(denom) > TINY:
                return _instability(message)
            raw = xn - fx * (xn - xn_1) / denom
        else:
            raw = xn - fx / dfx
        return self.guarded(engine, xn, self.scale(engine, xn, raw), message)


class DampedNewton(Newton):
    name = 'newton-damped'
    label = 'Damped Newton'

    def scale(self, engine, xn, raw):
        return xn + engine.damping * (raw - xn)


class Picard(IterationMethod):
    name = 'picard'
    label = 'Fixed point (Picard)'

    def step(self, engine):
        xn, _ = self.current_points(engine)
        s1 = engine.phi(xn)
        if not math.isfinite(s1):
            return _instability('iteration failed: phi(x) is not finite')
        return self.advance(engine, xn, s1)


class Aitken(IterationMethod):
    name = 'aitken'
    label = 'Aitken acceleration'

    def step(self, engine):
        xn, _ = self.current_points(engine)
        s1 = engine.phi(xn)
        if not math.isfinite(s1):
            return _instability('iteration failed: phi(x) is not finite')
        s2 = engine.phi(s1)
        s3 = engine.phi(s2)
        denom = s3 - 2 * s2 + s1
        if not math.isfinite(denom) or abs(denom) < TINY:
            return _instability('Aitken acceleration failed: denominator too small')
        return self.advance(engine, xn, s1 - (s2 - s1) ** 2 / denom)


# Registry of all iteration methods.
# Keys are method names as used in settings and on the command line.
METHODS = {
    cls.name: cls for cls in (
        Bisection, RegulaFalsi, Secant, Newton, DampedNewton, Picard, Aitken,
    )
}

# Alternative spellings accepted by get_method
_ALIASES = {
    'regula': 'regula-falsi',
    'false-position': 'regula-falsi',
    'damped': 'newton-damped',
    'fixed-point': 'picard',
}


def get_method(name):
    """
    Get a method instance by name.

    Raises:
        KeyError if name is not a known method
    """
    key = name.strip().lower().replace('_', '-')
    key = _ALIASES.get(key, key)
    return METHODS[key]()


def list_method_names():
    """Get list of available method names."""
    return list(METHODS.keys())


def sign_change_intervals(f, a, b, step):
    """
    Scan [a, b] in increments of step for sign changes of f.

    Returns:
        List of (left, right) sub-intervals where f changes sign or is zero
        at an endpoint; these make good starting brackets.
    """
    if step <= 0 or b <= a:
        return []
    count = int(math.floor((b - a) / step + 1e-9))
    intervals = []
    prev_x, prev_y = a, f(a)
    for k in range(1, count + 1):
        x = a + k * step
        y = f(x)
        if prev_y == 0 or y == 0 or (prev_y < 0 < y) or (prev_y > 0 > y):
            intervals.append((prev_x, x))
        prev_x, prev_y = x, y
    return intervals
