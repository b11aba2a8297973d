"""
Basin-of-attraction computation over the complex plane.

For every pixel of a grid the chosen iteration (Newton, secant or Picard) is
run from the pixel's complex coordinate until |f(z)| < tol or max_iter steps.
The terminal value is matched against the roots discovered so far in this
render; the pixel takes the palette colour of its root, brightened by the
number of iterations used.

render_basins() is a generator: it yields a ProgressEvent every 20 rows (and
after the last row) and finishes with one ImageEvent holding the RGBA buffer.
It can be stopped between rows through a should_continue callback, which is
how BasinRenderer drops superseded renders.

The per-pixel iteration evaluates user formulas and stays in Python; the
colouring pass is a Numba kernel over the whole buffer.
"""

import cmath
import logging
import math
import time
from dataclasses import dataclass, field

import numpy as np
from numba import jit, prange

from .expression import (
    ParseError,
    central_difference,
    compile_expression,
    derivative as compile_derivative,
    try_compile,
)
from .palettes import ESCAPE_COLOR, get_default_palette, get_palette
from .view import ViewWindow

logger = logging.getLogger(__name__)


BASIN_METHODS = ('newton', 'secant', 'picard')

# Terminal values closer than this are the same root
CLUSTER_RADIUS = 1e-3
# Offset of the secant method's initial previous point
SECANT_SHADOW = complex(1e-3, 1e-3)
# Secant denominators below this end the pixel's iteration
SECANT_TINY = 1e-12
# Rows between progress events
PROGRESS_ROWS = 20
# Brightening added per channel at max_iter iterations
BRIGHTEN = 50.0

# root_index value for pixels whose iteration left the finite numbers
ESCAPED = -1


@dataclass(frozen=True)
class RenderRequest:
    """
    Parameters of one basin render. Immutable; a render reads nothing else.

    Attributes:
        expr: Formula in z, e.g. "z^3 - 1"
        method: 'newton', 'secant' or 'picard'
        width, height: Grid size in pixels
        max_iter: Iteration budget per pixel
        tol: Convergence threshold on |f(z)|
        view: Region of the complex plane
        phi_expr: Optional fixed-point map in z for 'picard'
        palette: Palette name (see palettes.PALETTES)
    """

    expr: str = 'z^3 - 1'
    method: str = 'newton'
    width: int = 400
    height: int = 400
    max_iter: int = 50
    tol: float = 1e-6
    view: ViewWindow = field(default_factory=ViewWindow)
    phi_expr: str = None
    palette: str = 'Emerald'

    def __post_init__(self):
        if self.method not in BASIN_METHODS:
            raise ValueError(f"Unknown basin method '{self.method}', expected one of {BASIN_METHODS}")
        if self.width < 1 or self.height < 1:
            raise ValueError(f"Grid must be at least 1x1, got {self.width}x{self.height}")
        if self.max_iter < 0:
            raise ValueError(f"max_iter must be non-negative, got {self.max_iter}")


@dataclass(frozen=True)
class ProgressEvent:
    """Share of rows finished, 0..100."""

    percent: float

    def as_message(self):
        return {'type': 'progress', 'progress': self.percent}


@dataclass(frozen=True)
class ImageEvent:
    """
    Final result of a render.

    Attributes:
        width, height: Grid size
        pixels: RGBA bytes, row-major, width * height * 4 long
        roots: Discovered roots in discovery order (index = palette slot)
    """

    width: int
    height: int
    pixels: bytes
    roots: tuple = ()

    def as_message(self):
        return {'type': 'image', 'width': self.width, 'height': self.height, 'pixels': self.pixels}

    def to_array(self):
        """The pixel buffer as a (height, width, 4) uint8 array (read-only view)."""
        return np.frombuffer(self.pixels, dtype=np.uint8).reshape(self.height, self.width, 4)


class RootRegistry:
    """
    Roots discovered during one render, in discovery order.

    A value joins the first root within CLUSTER_RADIUS, otherwise it becomes
    a new root. Registry growth depends only on the order values are
    classified in, which is the fixed row-major scan order.
    """

    def __init__(self, radius=CLUSTER_RADIUS):
        self.radius = radius
        self.roots = []

    def __len__(self):
        return len(self.roots)

    def classify(self, z):
        """Return the root index for z, or ESCAPED for non-finite z."""
        if not cmath.isfinite(z):
            return ESCAPED
        for idx, root in enumerate(self.roots):
            if abs(z - root) < self.radius:
                return idx
        self.roots.append(z)
        return len(self.roots) - 1


def newton_orbit(z, f, df, max_iter, tol):
    """Iterate z <- z - f(z)/f'(z). Returns (terminal z, iterations used)."""
    k = 0
    while k < max_iter:
        fz = f(z)
        if abs(fz) < tol:
            break
        dfz = df(z)
        z = z - fz / dfz if dfz != 0 else complex(math.inf, math.inf)
        k += 1
        if not cmath.isfinite(z):
            break
    return z, k


def secant_orbit(z, f, max_iter, tol):
    """
    Secant iteration with a shadow previous point at z + SECANT_SHADOW.

    A vanishing denominator stops the iteration at the current z.
    """
    z_prev = z + SECANT_SHADOW
    f_prev = f(z_prev)
    k = 0
    while k < max_iter:
        fz = f(z)
        if abs(fz) < tol:
            break
        denom = fz - f_prev
        d = abs(denom)
        if not math.isfinite(d) or d < SECANT_TINY:
            break
        z, z_prev, f_prev = z - fz * (z - z_prev) / denom, z, fz
        k += 1
        if not cmath.isfinite(z):
            break
    return z, k


def picard_orbit(z, f, phi, max_iter, tol):
    """Iterate z <- phi(z), or z <- z - f(z) without a map."""
    k = 0
    while k < max_iter:
        fz = f(z)
        if abs(fz) < tol:
            break
        z = phi(z) if phi is not None else z - fz
        k += 1
        if not cmath.isfinite(z):
            break
    return z, k


@jit(nopython=True, parallel=True, cache=True)
def apply_basin_palette(root_index, iterations, max_iter, palette, escape_color, out):
    """
    Colour a basin map.

    Each pixel gets palette[root mod N] (escape_color for ESCAPED pixels)
    plus 50 * iterations / max_iter per channel, clamped to 255; alpha 255.

    Args:
        root_index: 2D int32 array of root indices
        iterations: 2D int32 array of iterations used
        max_iter: Iteration budget of the render
        palette: Nx3 uint8 array of RGB colors
        escape_color: uint8 array of 3 for escaped pixels
        out: Output RGBA image array (height, width, 4), modified in place
    """
    height, width = root_index.shape
    num_colors = palette.shape[0]

    for py in prange(height):
        for px in range(width):
            idx = root_index[py, px]
            shade = 0.0
            if max_iter > 0:
                shade = BRIGHTEN * iterations[py, px] / max_iter
            for c in range(3):
                if idx < 0:
                    base = escape_color[c]
                else:
                    base = palette[idx % num_colors, c]
                v = base + shade
                if v > 255.0:
                    v = 255.0
                out[py, px, c] = np.uint8(v + 0.5)
            out[py, px, 3] = 255


def warmup_jit():
    """
    Warm up JIT compilation with small dummy arrays.

    Call this once at startup to pre-compile the Numba kernel,
    avoiding a delay on the first render.
    """
    out = np.zeros((2, 2, 4), dtype=np.uint8)
    apply_basin_palette(
        np.zeros((2, 2), dtype=np.int32), np.zeros((2, 2), dtype=np.int32), 10,
        get_default_palette(), np.array(ESCAPE_COLOR, dtype=np.uint8), out
    )


def _compile_request(request):
    """Compile f, f' and phi for a request. f must parse, the rest may fall back."""
    f_expr = compile_expression(request.expr, 'z')
    f = f_expr.complex

    df = None
    if request.method == 'newton':
        try:
            df = compile_derivative(request.expr, 'z').complex
        except ParseError as e:
            logger.warning("No symbolic derivative (%s), using central differences", e.reason)
            df = lambda z: central_difference(f, z)

    phi = None
    if request.method == 'picard':
        phi_expr = try_compile(request.phi_expr, 'z')
        if phi_expr is not None:
            phi = phi_expr.complex
    return f, df, phi


def render_basins(request, should_continue=None):
    """
    Compute a basin image, yielding progress along the way.

    Args:
        request: RenderRequest
        should_continue: Optional callable checked before each row; when it
            returns False the generator stops without an ImageEvent

    Yields:
        ProgressEvent after every 20th row and the last row, then one
        ImageEvent

    Raises:
        ParseError: if request.expr cannot be parsed (on first iteration)
    """
    f, df, phi = _compile_request(request)
    width, height, max_iter, tol = request.width, request.height, request.max_iter, request.tol
    view = request.view

    registry = RootRegistry()
    root_index = np.empty((height, width), dtype=np.int32)
    iterations = np.empty((height, width), dtype=np.int32)

    start = time.perf_counter()
    logger.info("Rendering %s basins of '%s' at %dx%d, max_iter=%d",
                request.method, request.expr, width, height, max_iter)

    for j in range(height):
        if should_continue is not None and not should_continue():
            logger.debug("Render of '%s' cancelled at row %d", request.expr, j)
            return
        for i in range(width):
            z = view.pixel_to_complex(i, j, width, height)
            if request.method == 'newton':
                z, k = newton_orbit(z, f, df, max_iter, tol)
            elif request.method == 'secant':
                z, k = secant_orbit(z, f, max_iter, tol)
            else:
                z, k = picard_orbit(z, f, phi, max_iter, tol)
            root_index[j, i] = registry.classify(z)
            iterations[j, i] = k
        if (j + 1) % PROGRESS_ROWS == 0 or j == height - 1:
            yield ProgressEvent(100.0 * (j + 1) / height)

    try:
        palette = get_palette(request.palette)
    except KeyError:
        logger.warning("Unknown palette '%s', using default", request.palette)
        palette = get_default_palette()

    out = np.empty((height, width, 4), dtype=np.uint8)
    apply_basin_palette(root_index, iterations, max_iter, palette,
                        np.array(ESCAPE_COLOR, dtype=np.uint8), out)

    logger.info("Rendered %dx%d in %.2fs, %d root(s) found",
                width, height, time.perf_counter() - start, len(registry))
    yield ImageEvent(width, height, out.tobytes(), tuple(registry.roots))


def preview_iterations(max_iter):
    """Reduced iteration budget for renders made while the user is dragging."""
    return max(10, max_iter // 3)


def compute_basins(request):
    """Run render_basins to completion and return its ImageEvent."""
    image = None
    for event in render_basins(request):
        if isinstance(event, ImageEvent):
            image = event
    return image


__all__ = [
    'BASIN_METHODS',
    'CLUSTER_RADIUS',
    'ESCAPED',
    'ImageEvent',
    'ProgressEvent',
    'RenderRequest',
    'RootRegistry',
    'apply_basin_palette',
    'compute_basins',
    'newton_orbit',
    'picard_orbit',
    'preview_iterations',
    'render_basins',
    'secant_orbit',
    'warmup_jit',
]
