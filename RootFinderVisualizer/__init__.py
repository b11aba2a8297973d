"""
Root Finder Visualizer Package

Steppable real root-finding iterations (bisection, regula falsi, secant,
Newton, damped Newton, Picard, Aitken) and an interactive viewer of their
basins of attraction in the complex plane, using SymPy to compile formulas,
Numba for the colouring kernel and Pygame for display.

Quick Start:
    from RootFinderVisualizer import run
    run()

Or from command line:
    python -m RootFinderVisualizer
    python -m RootFinderVisualizer iterate --method bisection

Package Structure:
    - expression.py: Formula parsing, evaluation and derivatives
    - stability.py: Step-size guard for the open methods
    - methods.py: One class per iteration method, plus the method registry
    - engine.py: Steppable engine and its cadence controller
    - basins.py: Basin-of-attraction computation and colouring
    - palettes.py: Basin colour palettes
    - renderer.py: Background rendering with supersession
    - view.py: Complex-plane window with pan / zoom / box select
    - settings.py: Presets and defaults from settings.json
    - app.py: Interactive viewer and event loop
    - cli.py: Command line interface

Controls:
    - Scroll: Zoom in/out about the view centre
    - Drag: Pan around (B toggles box-select zoom)
    - N / S / P: Newton, secant, Picard
    - [ / ]: Fewer / more iterations
    - C: Next palette
    - R: Reset to default view
    - Ctrl/Cmd+S: Save image
    - ESC: Quit
"""

from .app import run, BasinApp
from .basins import RenderRequest, ProgressEvent, ImageEvent, RootRegistry, render_basins, compute_basins
from .engine import RootIterationEngine, IterationController, ControllerStatus
from .expression import ParseError, EvalError, Evaluable, compile_expression, derivative
from .methods import METHODS, FailureReason, StepStatus, get_method, list_method_names, sign_change_intervals
from .palettes import PALETTES, get_palette, list_palette_names
from .renderer import BasinRenderer
from .stability import StabilityGuard
from .view import ViewWindow

__version__ = "1.0.0"
__all__ = [
    "run",
    "BasinApp",
    "BasinRenderer",
    "RenderRequest",
    "ProgressEvent",
    "ImageEvent",
    "RootRegistry",
    "render_basins",
    "compute_basins",
    "RootIterationEngine",
    "IterationController",
    "ControllerStatus",
    "ParseError",
    "EvalError",
    "Evaluable",
    "compile_expression",
    "derivative",
    "METHODS",
    "FailureReason",
    "StepStatus",
    "get_method",
    "list_method_names",
    "sign_change_intervals",
    "PALETTES",
    "get_palette",
    "list_palette_names",
    "StabilityGuard",
    "ViewWindow",
]
