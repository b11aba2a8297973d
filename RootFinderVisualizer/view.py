"""View window over the complex plane and its pan / zoom / box-select updates."""

from __future__ import annotations

from dataclasses import dataclass, replace


# Wheel zoom factors (scroll up = zoom in)
ZOOM_IN_FACTOR = 0.9
ZOOM_OUT_FACTOR = 1.1


@dataclass(frozen=True)
class ViewWindow:
    """Axis-aligned rectangle in the complex plane shown by a basin render."""

    min_re: float = -2.0
    max_re: float = 2.0
    min_im: float = -2.0
    max_im: float = 2.0

    @property
    def width(self) -> float:
        return self.max_re - self.min_re

    @property
    def height(self) -> float:
        return self.max_im - self.min_im

    @property
    def center(self) -> complex:
        return complex((self.min_re + self.max_re) / 2, (self.min_im + self.max_im) / 2)

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.min_re, self.max_re, self.min_im, self.max_im)

    def pixel_to_complex(self, i: int, j: int, width: int, height: int) -> complex:
        """
        Map pixel column i, row j of a width x height grid to the plane.

        Row 0 is min_im. A grid that is one pixel wide (or tall) samples
        min_re (or min_im).
        """
        re = self.min_re + i / (width - 1) * self.width if width > 1 else self.min_re
        im = self.min_im + j / (height - 1) * self.height if height > 1 else self.min_im
        return complex(re, im)

    def zoom(self, factor: float) -> ViewWindow:
        """Scale the window about its centre; factor < 1 zooms in."""
        c = self.center
        w = self.width * factor
        h = self.height * factor
        return ViewWindow(c.real - w / 2, c.real + w / 2, c.imag - h / 2, c.imag + h / 2)

    def pan(self, dx_px: float, dy_px: float, width_px: int, height_px: int) -> ViewWindow:
        """
        Shift the window by a mouse drag of (dx_px, dy_px) on a canvas.

        The point under the cursor follows the cursor; canvas rows grow
        with the imaginary axis.
        """
        shift_re = -dx_px / width_px * self.width
        shift_im = -dy_px / height_px * self.height
        return replace(
            self,
            min_re=self.min_re + shift_re,
            max_re=self.max_re + shift_re,
            min_im=self.min_im + shift_im,
            max_im=self.max_im + shift_im,
        )

    def box_select(self, x0: float, y0: float, x1: float, y1: float,
                   width_px: int, height_px: int) -> ViewWindow:
        """
        Zoom to a rectangle dragged on the canvas.

        Corners may come in any order and are clamped to the canvas. A
        degenerate (zero-area) box leaves the window unchanged.
        """
        def clamp(v, hi):
            return min(max(v, 0), hi)

        left, right = sorted((clamp(x0, width_px), clamp(x1, width_px)))
        top, bottom = sorted((clamp(y0, height_px), clamp(y1, height_px)))
        if right - left <= 0 or bottom - top <= 0:
            return self
        return ViewWindow(
            self.min_re + left / width_px * self.width,
            self.min_re + right / width_px * self.width,
            self.min_im + top / height_px * self.height,
            self.min_im + bottom / height_px * self.height,
        )
