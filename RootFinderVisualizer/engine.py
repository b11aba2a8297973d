"""
Steppable root-finding engine and its cadence controller.

RootIterationEngine owns the state of one run (history, bracket, seeds) and
advances it one step at a time with the selected IterationMethod.
IterationController drives an engine from an external clock: the app (or the
command line runner) calls ``tick(now_ms)`` every frame and the controller
steps at most once per ``delay_ms``.

Usage:
    engine = RootIterationEngine.from_expression("x^3 - 2x - 5", method="newton", x0=10)
    controller = IterationController(engine, delay_ms=300)
    controller.start()

    # In your main loop:
    outcome = controller.tick(pygame.time.get_ticks())
    if controller.finished:
        print(controller.status, engine.history[-1])
"""

import logging
from enum import Enum

from .expression import (
    Evaluable,
    EvalError,
    ParseError,
    central_difference,
    compile_expression,
    derivative as compile_derivative,
    try_compile,
)
from .methods import Bracket, StepStatus, get_method
from .stability import StabilityGuard

logger = logging.getLogger(__name__)


def _as_real_function(fn):
    """Wrap a callable so evaluation errors become NaN."""
    if isinstance(fn, Evaluable):
        return fn.real

    def safe(x):
        try:
            return float(fn(x))
        except (ArithmeticError, ValueError, TypeError):
            return float('nan')
    return safe


class RootIterationEngine:
    """
    State machine for one real-valued root-finding run.

    Attributes:
        method: The active IterationMethod
        history: Recorded IterationSteps, oldest first
        bracket: Current Bracket (bracketing methods only)
        x0, x1: Seed points (x1 is only used by the secant method)
        damping: Damping factor lambda for newton-damped
        eps: Stop threshold on the step error
        bound_scale: Scale for the StabilityGuard's largest step
    """

    DEFAULT_BRACKET = (-3.0, 3.0)
    DEFAULT_EPS = 1e-6
    # Half of the default plotting range [-10, 10]
    DEFAULT_BOUND_SCALE = 10.0

    def __init__(self, function, method='newton', x0=0.0, x1=1.0, bracket=None,
                 damping=1.0, eps=None, phi=None, derivative=None, bound_scale=None):
        """
        Initialize the engine.

        Args:
            function: f as an Evaluable or a plain callable of one float
            method: Method name (see methods.METHODS)
            x0, x1: Seed points
            bracket: (a, b) starting bracket for bisection/regula falsi
            damping: Damping factor for newton-damped (1.0 is plain Newton)
            eps: Stop threshold (default 1e-6)
            phi: Fixed-point map for picard/aitken (default x - f(x))
            derivative: f' as an Evaluable or callable (default: central differences)
            bound_scale: StabilityGuard scale (default 10, half of [-10, 10])
        """
        self.function = function
        self.f = _as_real_function(function)
        self.derivative = derivative
        self._phi = _as_real_function(phi) if phi is not None else None
        self.x0 = float(x0)
        self.x1 = float(x1)
        a, b = bracket if bracket is not None else self.DEFAULT_BRACKET
        self.initial_bracket = Bracket(float(a), float(b))
        self.bracket = self.initial_bracket
        self.damping = float(damping)
        self.eps = self.DEFAULT_EPS if eps is None else float(eps)
        self.bound_scale = self.DEFAULT_BOUND_SCALE if bound_scale is None else float(bound_scale)
        self.guard = StabilityGuard(self.f)
        self.method = get_method(method)
        self.history = []

    @classmethod
    def from_expression(cls, expr, method='newton', phi_expr=None, var='x', **kwargs):
        """
        Build an engine from formula text.

        The derivative is compiled symbolically when possible. A phi formula
        that fails to parse is ignored and the default map x - f(x) is used.

        Raises:
            ParseError: if expr itself cannot be parsed
        """
        function = compile_expression(expr, var)
        try:
            df = compile_derivative(expr, var)
        except ParseError as e:
            logger.warning("No symbolic derivative (%s), using central differences", e.reason)
            df = None
        phi = try_compile(phi_expr, var)
        return cls(function, method=method, phi=phi, derivative=df, **kwargs)

    @property
    def method_name(self):
        return self.method.name

    @property
    def last_step(self):
        return self.history[-1] if self.history else None

    def df(self, x):
        """f'(x), falling back to central differences when unavailable."""
        if self.derivative is not None:
            try:
                if isinstance(self.derivative, Evaluable):
                    return self.derivative.eval({self.derivative.var: float(x)})
                return float(self.derivative(x))
            except (EvalError, ArithmeticError, ValueError):
                pass
        return central_difference(self.f, x)

    def phi(self, x):
        """Fixed-point map: the user's phi, or x - f(x)."""
        if self._phi is not None:
            return self._phi(x)
        return x - self.f(x)

    def step(self):
        """
        Advance one step.

        Returns:
            StepOutcome. On FAILED nothing is recorded and the bracket is
            left as it was; otherwise the new step is appended to history.
        """
        outcome = self.method.step(self)
        if outcome.is_failed:
            logger.debug("%s step failed: %s", self.method.name, outcome.message)
            return outcome
        self.history.append(outcome.step)
        if outcome.bracket is not None:
            self.bracket = outcome.bracket
        logger.debug("%s step %d: x=%.12g err=%.3g", self.method.name,
                     len(self.history), outcome.step.x, outcome.step.err)
        return outcome

    def reset(self):
        """Clear history and restore the initial bracket."""
        self.history = []
        self.bracket = self.initial_bracket

    def set_method(self, name):
        """Select a method; always resets the run since seed needs differ."""
        self.method = get_method(name)
        self.reset()

    def configure(self, x0=None, x1=None, bracket=None, damping=None, eps=None,
                  phi=None, bound_scale=None):
        """
        Update run parameters. Arguments left as None keep their value.

        A new bracket replaces both the initial and the current bracket.
        Passing phi='' clears a user-supplied fixed-point map.
        """
        if x0 is not None:
            self.x0 = float(x0)
        if x1 is not None:
            self.x1 = float(x1)
        if bracket is not None:
            a, b = bracket
            self.initial_bracket = Bracket(float(a), float(b))
            self.bracket = self.initial_bracket
        if damping is not None:
            self.damping = float(damping)
        if eps is not None:
            self.eps = float(eps)
        if bound_scale is not None:
            self.bound_scale = float(bound_scale)
        if phi is not None:
            if isinstance(phi, str):
                var = getattr(self.function, 'var', 'x')
                phi = try_compile(phi, var)
            self._phi = _as_real_function(phi) if phi else None


class ControllerStatus(Enum):
    IDLE = 'idle'
    RUNNING = 'running'
    PAUSED = 'paused'
    CONVERGED = 'converged'
    FAILED = 'failed'


class IterationController:
    """
    Drives a RootIterationEngine at a fixed cadence.

    All calls are expected from one thread (the app's main loop), so start,
    pause, resume and reset are naturally serialized with tick.
    """

    DEFAULT_DELAY_MS = 300

    def __init__(self, engine, delay_ms=None):
        self.engine = engine
        self.delay_ms = self.DEFAULT_DELAY_MS if delay_ms is None else max(0, delay_ms)
        self.status = ControllerStatus.IDLE
        self.last_outcome = None
        self.stop_reason = None
        self._last_tick = None

    @property
    def running(self):
        return self.status is ControllerStatus.RUNNING

    @property
    def finished(self):
        return self.status in (ControllerStatus.CONVERGED, ControllerStatus.FAILED)

    @property
    def history(self):
        return self.engine.history

    @property
    def bracket(self):
        return self.engine.bracket

    def start(self):
        """Start a fresh run from the seeds and the initial bracket."""
        self.engine.reset()
        self.last_outcome = None
        self.stop_reason = None
        self._last_tick = None
        self.status = ControllerStatus.RUNNING

    def pause(self):
        if self.status is ControllerStatus.RUNNING:
            self.status = ControllerStatus.PAUSED

    def resume(self):
        if self.status is ControllerStatus.PAUSED:
            self._last_tick = None
            self.status = ControllerStatus.RUNNING

    def reset(self):
        """Stop and clear the run."""
        self.engine.reset()
        self.last_outcome = None
        self.stop_reason = None
        self._last_tick = None
        self.status = ControllerStatus.IDLE

    def select_method(self, name):
        self.engine.set_method(name)
        self.reset()

    def tick(self, now_ms):
        """
        Step the engine if running and the cadence allows it.

        Args:
            now_ms: Current time in milliseconds (any monotonic clock)

        Returns:
            The StepOutcome if a step was taken, else None
        """
        if self.status is not ControllerStatus.RUNNING:
            return None
        if self._last_tick is not None and now_ms - self._last_tick < self.delay_ms:
            return None
        self._last_tick = now_ms
        return self._apply(self.engine.step())

    def run(self, max_steps=100):
        """Step without waiting until the run ends or max_steps is reached."""
        if self.status is ControllerStatus.IDLE:
            self.start()
        for _ in range(max_steps):
            if self.status is not ControllerStatus.RUNNING:
                break
            self._apply(self.engine.step())
        return self.last_outcome

    def _apply(self, outcome):
        self.last_outcome = outcome
        if outcome.status is StepStatus.CONVERGED:
            self.status = ControllerStatus.CONVERGED
            self.stop_reason = 'error below threshold'
            logger.info("%s converged to %.12g after %d steps", self.engine.method_name,
                        outcome.step.x, len(self.engine.history))
        elif outcome.status is StepStatus.FAILED:
            self.status = ControllerStatus.FAILED
            self.stop_reason = outcome.message
            logger.info("%s stopped: %s", self.engine.method_name, outcome.message)
        return outcome
