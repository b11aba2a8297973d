"""
Settings shipped with the package: root-iteration presets and fractal defaults.

settings.json sits next to this file. load_settings() returns None when the
file is missing or malformed, and the helpers below then fall back to the
built-in DEFAULT_SETTINGS.
"""

import copy
import json
import logging
import os
from dataclasses import dataclass

from .basins import RenderRequest
from .engine import RootIterationEngine
from .view import ViewWindow

logger = logging.getLogger(__name__)


SETTINGS_PATH = os.path.join(os.path.dirname(__file__), 'settings.json')

DEFAULT_SETTINGS = {
    'presets': [
        {'name': 'x^3 - 2x - 5', 'expr': 'x^3 - 2*x - 5', 'bracket': [1, 8],
         'x0': 10, 'x1': 9, 'phi': 'cbrt(2*x+5)'},
    ],
    'iteration': {
        'method': 'newton',
        'eps': 1e-6,
        'damping': 1.0,
        'delay_ms': 300,
        'plot_range': [-10, 10],
        'scan_step': 0.2,
    },
    'fractal': {
        'expr': 'z^3 - 1',
        'method': 'newton',
        'resolution': 400,
        'max_iter': 50,
        'tol': 1e-6,
        'view': [-2, 2, -2, 2],
        'palette': 'Emerald',
    },
}


def load_settings(path=None):
    """Load settings from settings.json (or path). Returns None on failure."""
    settings_path = path or SETTINGS_PATH
    try:
        with open(settings_path, 'r') as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not load %s: %s", settings_path, e)
        return None


def _section(settings, name):
    """Merge one section of loaded settings over the built-in defaults."""
    merged = copy.deepcopy(DEFAULT_SETTINGS[name])
    if settings and isinstance(settings.get(name), dict):
        merged.update(settings[name])
    return merged


@dataclass(frozen=True)
class Preset:
    """A starting configuration for the root-iteration view."""

    name: str
    expr: str
    bracket: tuple = (-3.0, 3.0)
    x0: float = 0.0
    x1: float = 1.0
    phi: str = ''

    @classmethod
    def from_dict(cls, data):
        return cls(
            name=data['name'],
            expr=data.get('expr', ''),
            bracket=tuple(data.get('bracket', (-3.0, 3.0))),
            x0=float(data.get('x0', 0.0)),
            x1=float(data.get('x1', 1.0)),
            phi=data.get('phi', ''),
        )


def get_presets(settings=None):
    """Presets from loaded settings, or the built-in ones."""
    entries = settings.get('presets') if settings else None
    if not entries:
        entries = DEFAULT_SETTINGS['presets']
    return [Preset.from_dict(entry) for entry in entries]


def get_preset(name, settings=None):
    """
    Look up a preset by name.

    Raises:
        KeyError if no preset has that name
    """
    for preset in get_presets(settings):
        if preset.name == name:
            return preset
    raise KeyError(name)


def build_engine(preset, method=None, settings=None, expr=None, **overrides):
    """
    Create a RootIterationEngine for a preset.

    An empty expression (the custom slot before anything is typed) uses the
    first preset's formula. Keyword overrides (x0, x1, bracket, damping,
    eps, bound_scale) win over the preset and the iteration settings.
    """
    iteration = _section(settings, 'iteration')
    text = expr if expr else preset.expr
    if not text or not text.strip():
        text = get_presets(settings)[0].expr
    a, b = iteration['plot_range']
    kwargs = {
        'x0': preset.x0,
        'x1': preset.x1,
        'bracket': preset.bracket,
        'damping': iteration['damping'],
        'eps': iteration['eps'],
        # Largest guarded step is half the plotting range
        'bound_scale': (b - a) / 2,
    }
    kwargs.update({k: v for k, v in overrides.items() if v is not None})
    return RootIterationEngine.from_expression(
        text, method=method or iteration['method'], phi_expr=preset.phi or None, **kwargs
    )


def fractal_request(settings=None, **overrides):
    """
    Build the default RenderRequest from the fractal settings.

    Keyword overrides are applied to the request (e.g. method='secant').
    """
    fractal = _section(settings, 'fractal')
    resolution = int(fractal['resolution'])
    request = dict(
        expr=fractal['expr'],
        method=fractal['method'],
        width=resolution,
        height=resolution,
        max_iter=int(fractal['max_iter']),
        tol=float(fractal['tol']),
        view=ViewWindow(*fractal['view']),
        palette=fractal['palette'],
    )
    request.update({k: v for k, v in overrides.items() if v is not None})
    return RenderRequest(**request)


def iteration_settings(settings=None):
    """The 'iteration' section merged over the defaults."""
    return _section(settings, 'iteration')
