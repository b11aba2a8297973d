"""
Step-size guard for the open (non-bracketing) iteration methods.

Newton, secant and damped Newton can propose a point far outside the region
of interest, or one where the function is undefined. The guard pulls such a
proposal back toward the current point by repeated halving before the step
is recorded.
"""

import math
from dataclasses import dataclass


MAX_HALVINGS = 20


@dataclass(frozen=True)
class MoveResult:
    """Outcome of a guarded move: the point to use and whether it is usable."""

    value: float
    accepted: bool


class StabilityGuard:
    """
    Bounded geometric back-off for a proposed iteration step.

    Args:
        function: Real-valued callable returning NaN/inf where undefined
        max_halvings: How many times the displacement may be halved
    """

    def __init__(self, function, max_halvings=MAX_HALVINGS):
        self.function = function
        self.max_halvings = max_halvings

    def _acceptable(self, target, step, max_step):
        return (math.isfinite(target) and abs(step) <= max_step
                and math.isfinite(self.function(target)))

    def attempt_move(self, current, target, bound_scale):
        """
        Move from current toward target, halving the step until it is usable.

        A step is usable when the target is finite, no further than
        max(1, bound_scale) from current, and the function is finite there.

        Args:
            current: Current iterate x_n
            target: Raw proposal for x_{n+1}
            bound_scale: Caller's scale for the largest allowed step
                (half the plotting range)

        Returns:
            MoveResult. accepted is False when 20 halvings did not help; the
            caller must then report numeric instability and record nothing.
        """
        max_step = max(1.0, bound_scale)
        step = target - current
        candidate = target
        tries = 0
        while not self._acceptable(candidate, step, max_step) and tries < self.max_halvings:
            step *= 0.5
            candidate = current + step
            tries += 1
        return MoveResult(candidate, self._acceptable(candidate, step, max_step))
