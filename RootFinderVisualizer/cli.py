"""
Command line interface.

    python -m RootFinderVisualizer                 # interactive basin viewer
    python -m RootFinderVisualizer fractal --expr "z^4 - 1" --method secant
    python -m RootFinderVisualizer render --output basins.png --size 800
    python -m RootFinderVisualizer iterate --preset "x^3 - 2x - 5" --method bisection
"""

import logging
import sys
import time
from argparse import ArgumentParser

from .basins import BASIN_METHODS, ImageEvent, ProgressEvent, render_basins
from .engine import ControllerStatus, IterationController
from .expression import ParseError
from .methods import list_method_names, sign_change_intervals
from .palettes import list_palette_names
from .settings import build_engine, fractal_request, get_preset, get_presets, iteration_settings, load_settings
from .view import ViewWindow


def _add_fractal_arguments(parser):
    parser.add_argument('--expr', type=str, help='function of z whose roots are drawn, e.g. "z^3 - 1"')
    parser.add_argument('--method', type=str, choices=BASIN_METHODS, help='iteration run at every pixel')
    parser.add_argument('--phi', type=str, dest='phi_expr', help='fixed-point map in z for --method picard')
    parser.add_argument('--size', type=int, help='width and height of the image in pixels')
    parser.add_argument('--max-iter', type=int, dest='max_iter', help='iteration budget per pixel')
    parser.add_argument('--tol', type=float, help='stop once |f(z)| is below this')
    parser.add_argument('--view', type=float, nargs=4, metavar=('MIN_RE', 'MAX_RE', 'MIN_IM', 'MAX_IM'),
                        help='region of the complex plane')
    parser.add_argument('--palette', type=str, choices=list_palette_names(), help='basin colours')


def build_parser():
    parser = ArgumentParser(prog='RootFinderVisualizer',
                            description='Visualize iterative root finding on the real line and in the complex plane.')
    parser.add_argument('-v', '--verbose', action='store_true', help='log render and iteration progress')
    subparsers = parser.add_subparsers(dest='command')

    fractal = subparsers.add_parser('fractal', help='open the interactive basin viewer')
    _add_fractal_arguments(fractal)

    render = subparsers.add_parser('render', help='render a basin image to a PNG file')
    _add_fractal_arguments(render)
    render.add_argument('--output', type=str, default='basins.png', help='destination PNG file')

    iterate = subparsers.add_parser('iterate', help='run a real root-finding iteration and print each step')
    iterate.add_argument('--preset', type=str, help='starting configuration (see --list-presets)')
    iterate.add_argument('--list-presets', action='store_true', dest='list_presets', help='show presets and exit')
    iterate.add_argument('--expr', type=str, help='function of x, overrides the preset formula')
    iterate.add_argument('--method', type=str, choices=list_method_names(), help='iteration method')
    iterate.add_argument('--x0', type=float, help='starting point')
    iterate.add_argument('--x1', type=float, help='second starting point (secant)')
    iterate.add_argument('--bracket', type=float, nargs=2, metavar=('A', 'B'),
                         help='starting bracket (bisection, regula-falsi)')
    iterate.add_argument('--damping', type=float, help='damping factor for newton-damped')
    iterate.add_argument('--eps', type=float, help='stop once the step error is below this')
    iterate.add_argument('--phi', type=str, help='fixed-point map in x (picard, aitken)')
    iterate.add_argument('--delay-ms', type=int, dest='delay_ms', help='pause between steps')
    iterate.add_argument('--max-steps', type=int, default=100, dest='max_steps', help='stop after this many steps')
    iterate.add_argument('--scan', action='store_true', help='list sign changes over the plotting range first')
    return parser


def _fractal_request_from_args(args, settings):
    overrides = dict(
        expr=args.expr,
        method=args.method,
        phi_expr=args.phi_expr,
        width=args.size,
        height=args.size,
        max_iter=args.max_iter,
        tol=args.tol,
        view=ViewWindow(*args.view) if args.view else None,
        palette=args.palette,
    )
    return fractal_request(settings, **overrides)


def run_fractal(args, settings):
    from .app import run
    run(_fractal_request_from_args(args, settings))
    return 0


def run_render(args, settings):
    from .app import save_png
    request = _fractal_request_from_args(args, settings)
    image = None
    for event in render_basins(request):
        if isinstance(event, ProgressEvent):
            print(f"\rRendering... {event.percent:5.1f}%", end='', flush=True)
        elif isinstance(event, ImageEvent):
            image = event
    print()
    save_png(image, args.output)
    print(f"Saved {image.width}x{image.height} image with {len(image.roots)} root(s) to: {args.output}")
    return 0


def run_iterate(args, settings):
    if args.list_presets:
        for preset in get_presets(settings):
            print(f"{preset.name!r:20} bracket={list(preset.bracket)} x0={preset.x0:g} x1={preset.x1:g} "
                  f"phi={preset.phi!r}")
        return 0

    preset = get_preset(args.preset, settings) if args.preset else get_presets(settings)[0]
    iteration = iteration_settings(settings)
    engine = build_engine(
        preset, method=args.method, settings=settings, expr=args.expr,
        x0=args.x0, x1=args.x1, bracket=args.bracket, damping=args.damping, eps=args.eps,
    )
    if args.phi is not None:
        engine.configure(phi=args.phi)

    if args.scan:
        a, b = iteration['plot_range']
        intervals = sign_change_intervals(engine.f, a, b, iteration['scan_step'])
        print("Sign changes: " + (", ".join(f"[{l:g}, {r:g}]" for l, r in intervals) or "none"))

    delay_ms = iteration['delay_ms'] if args.delay_ms is None else args.delay_ms
    controller = IterationController(engine, delay_ms=delay_ms)
    print(f"{engine.method.label} on f(x) = {engine.function.text}")
    print(f"{'n':>4}  {'x':>22}  {'f(x)':>14}  {'err':>12}")

    controller.start()
    steps = 0
    while controller.running and steps < args.max_steps:
        outcome = controller.tick(time.monotonic() * 1000)
        if outcome is None:
            time.sleep(0.005)
            continue
        steps += 1
        if outcome.step is not None:
            step = outcome.step
            print(f"{len(engine.history):>4}  {step.x:>22.15g}  {step.fx:>14.6g}  {step.err:>12.4g}")

    if controller.finished:
        print(f"Stopped: {controller.stop_reason}")
    else:
        print(f"Stopped after {steps} steps without converging")
    return 0 if controller.status is ControllerStatus.CONVERGED else 1


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format='%(asctime)s %(name)s %(levelname)s: %(message)s',
    )
    settings = load_settings()

    try:
        if args.command == 'render':
            return run_render(args, settings)
        if args.command == 'iterate':
            return run_iterate(args, settings)
        if args.command is None:
            args = parser.parse_args(list(sys.argv[1:] if argv is None else argv) + ['fractal'])
        return run_fractal(args, settings)
    except ParseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except KeyError as e:
        print(f"Error: unknown name {e}", file=sys.stderr)
        return 2
