"""
Palette definitions for basin-of-attraction rendering.

Each palette function returns a numpy array of shape (6, 3) with RGB values
(uint8). Root number k of a render is painted with entry k mod 6, so the
order of the entries matters: the first discovered root always gets the
first colour.

To add a new palette:
1. Define a create_palette_xxx() function that returns the color array
2. Add it to the PALETTES dictionary at the bottom of this file
"""

import numpy as np


NUM_COLORS = 6

# Pixels whose iteration ran off to infinity or NaN
ESCAPE_COLOR = (24, 24, 27)


def create_palette_emerald():
    """
    Default palette: emerald, blue, rose, amber, indigo, violet.

    Saturated mid-brightness colours that leave headroom for the
    iteration-count brightening.
    """
    return np.array([
        [16, 185, 129],
        [59, 130, 246],
        [244, 63, 94],
        [234, 179, 8],
        [99, 102, 241],
        [147, 51, 234],
    ], dtype=np.uint8)


def create_palette_hues():
    """
    Hue wheel: six evenly spaced hues at 75% value.

    Neighbouring basins get maximally different hues.
    """
    colors = np.zeros((NUM_COLORS, 3), dtype=np.uint8)
    for i in range(NUM_COLORS):
        h = i / NUM_COLORS
        sector = int(h * 6)
        f = h * 6 - sector
        v, q, t = 190, round(190 * (1 - f)), round(190 * f)
        colors[i] = [
            (v, q, 0, 0, t, v)[sector],
            (t, v, v, q, 0, 0)[sector],
            (0, 0, t, v, v, q)[sector],
        ]
    return colors


def create_palette_pastel():
    """Pastel: soft tints, good for printing."""
    return np.array([
        [134, 203, 170],
        [140, 170, 220],
        [222, 140, 150],
        [220, 200, 120],
        [170, 160, 210],
        [200, 160, 190],
    ], dtype=np.uint8)


def create_palette_grayscale():
    """
    Grayscale: six grey levels.

    Shows the basin structure without hue; the brightening then reads as
    convergence speed.
    """
    levels = np.linspace(40, 190, NUM_COLORS).astype(np.uint8)
    return np.stack([levels, levels, levels], axis=1)


# Registry of all available palettes.
# Keys are display names, values are factory functions.
PALETTES = {
    'Emerald': create_palette_emerald,
    'Hues': create_palette_hues,
    'Pastel': create_palette_pastel,
    'Grayscale': create_palette_grayscale,
}


def get_palette(name):
    """
    Get a palette by name.

    Args:
        name: Key from PALETTES dictionary

    Returns:
        Palette array (6, 3) of uint8 RGB values

    Raises:
        KeyError if name not found
    """
    return PALETTES[name]()


def get_default_palette():
    """Get the default palette (Emerald)."""
    return create_palette_emerald()


def list_palette_names():
    """Get list of available palette names."""
    return list(PALETTES.keys())
