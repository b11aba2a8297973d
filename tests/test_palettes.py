import numpy as np
import pytest

from RootFinderVisualizer.palettes import (
    NUM_COLORS,
    PALETTES,
    get_default_palette,
    get_palette,
    list_palette_names,
)


def test_registry_names():
    assert list_palette_names() == list(PALETTES.keys())
    assert 'Emerald' in list_palette_names()


@pytest.mark.parametrize("name", list(PALETTES.keys()))
def test_palette_shape_and_dtype(name):
    palette = get_palette(name)
    assert palette.shape == (NUM_COLORS, 3)
    assert palette.dtype == np.uint8


def test_palettes_have_distinct_colours():
    for name in list_palette_names():
        palette = get_palette(name)
        assert len({tuple(row) for row in palette}) == NUM_COLORS


def test_default_palette_order():
    palette = get_default_palette()
    assert tuple(palette[0]) == (16, 185, 129)
    assert tuple(palette[5]) == (147, 51, 234)


def test_unknown_palette():
    with pytest.raises(KeyError):
        get_palette('Nope')
