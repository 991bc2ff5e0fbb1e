"""fidelity-check — Compare a design image against an implementation screenshot.

Usage: fidelity-check compare <design> <implementation> [options]

Reports similarity, mismatch regions (category, priority, suggested fix)
and an optional viewport warning. Run `fidelity-check help <stage>` for the
docs of one pipeline stage.

Environment variables / .env loading:
  OS environment variables are always used first.
  If a variable is not set, fidelity-check looks for a .env file starting
  from the current directory and walking up, stopping at the nearest .git
  boundary. Use --env-file to override the .env location explicitly.
"""

import argparse
import importlib
import logging
import os
import sys
from dataclasses import replace

from fidelity_checker.core import codec
from fidelity_checker.core.env import load_env, load_settings
from fidelity_checker.core.errors import FidelityError
from fidelity_checker.core.report import format_json, format_text
from fidelity_checker.core.types import MATCH_WIDTH_CROP, SIZING_MODES, BoundingBox
from fidelity_checker.pipeline import compare_grids
from fidelity_checker.stages import STAGES
from fidelity_checker.stages.viewport import detect_viewport_mismatch

EXIT_FAIL = 1
EXIT_ERROR = 2


def _parse_crop(value: str) -> BoundingBox:
    parts = value.split(',')
    if len(parts) != 4:
        raise argparse.ArgumentTypeError('crop rectangle must be X,Y,WIDTH,HEIGHT')
    try:
        return BoundingBox(*(int(p) for p in parts))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f'invalid crop rectangle: {exc}') from exc


def _add_capture_flags(p: argparse.ArgumentParser) -> None:
    p.add_argument('design', help='Path to the design reference image')
    p.add_argument('implementation', help='Path to the implementation screenshot')
    p.add_argument(
        '--remote-capture',
        action='store_true',
        help='Implementation was captured from a URL (affects viewport advice)',
    )
    p.add_argument(
        '--design-viewport',
        action='store_true',
        help='Capture already used the design size as its viewport',
    )


def _build_parser() -> argparse.ArgumentParser:
    epilog = (
        'Examples:\n'
        '  fidelity-check compare design.png screenshot.png\n'
        '  fidelity-check compare design.png screenshot.png --mode fit-inside --json\n'
        '  fidelity-check compare design.png screenshot.png -o ./tmp --fail-under 98\n'
        '  fidelity-check compare design.png screenshot.png --mode manual-crop --crop 0,0,1440,900\n'
        '  fidelity-check viewport design.png screenshot.png --remote-capture\n'
        '  fidelity-check help regions\n'
        '\n'
        'Settings env vars (set in .env or environment):\n'
        '  FIDELITY_MAX_WIDTH / FIDELITY_MAX_HEIGHT  canvas cap (default 3000)\n'
        '  FIDELITY_MAX_REGIONS                      regions per comparison (default 10)\n'
        '  FIDELITY_THRESHOLD                        diff tolerance 0-1 (default 0.1)\n'
        '  FIDELITY_TIMEOUT                          seconds, 0 disables (default 60)\n'
        '  FIDELITY_MAX_SOURCE_PIXELS                largest input image (default 50000000)\n'
    )
    parser = argparse.ArgumentParser(
        prog='fidelity-check',
        description='Compare a design image against an implementation screenshot.',
        epilog=epilog,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument(
        '--env-file',
        metavar='PATH',
        default=None,
        help='Path to .env file (default: walk up from cwd to .git boundary)',
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Log pipeline progress to stderr')
    sub = parser.add_subparsers(dest='command', help='Command to run')

    p = sub.add_parser('compare', help='Run the full comparison pipeline')
    _add_capture_flags(p)
    p.add_argument(
        '-m',
        '--mode',
        choices=SIZING_MODES,
        default=MATCH_WIDTH_CROP,
        help=f'Sizing mode (default: {MATCH_WIDTH_CROP})',
    )
    p.add_argument('-c', '--crop', type=_parse_crop, metavar='X,Y,W,H', help='Crop rectangle for manual-crop')
    p.add_argument('-n', '--max-regions', type=int, default=None, help='Override FIDELITY_MAX_REGIONS')
    p.add_argument('-s', '--screen', help='Screen name for the report')
    p.add_argument('--platform', choices=('web', 'mobile'), help='Platform for the report')
    p.add_argument('-o', '--out-dir', help='Write diff.png (and report.json with --json) here')
    p.add_argument('-j', '--json', action='store_true', help='Output JSON instead of text')
    p.add_argument(
        '-f',
        '--fail-under',
        type=float,
        default=None,
        metavar='PCT',
        help='Exit 1 if similarity is below PCT (CI gating)',
    )

    p = sub.add_parser('viewport', help='Check raw image sizes for a viewport mismatch')
    _add_capture_flags(p)

    help_parser = sub.add_parser('help', help='Print full docs for a pipeline stage')
    help_parser.add_argument('stage', nargs='?', help='Stage name')

    return parser


def _print_help(stage: str | None) -> None:
    """Print the module docstring of a pipeline stage."""
    if stage is None:
        print('Pipeline stages:\n')
        for name in STAGES:
            mod = importlib.import_module(f'fidelity_checker.stages.{name}')
            short = (mod.__doc__ or '').strip().splitlines()[0]
            print(f'  {name:<12} {short}')
        print('\nRun: fidelity-check help <stage> for full docs.')
        return

    if stage not in STAGES:
        print(f'Unknown stage: {stage}', file=sys.stderr)
        print(f'Available: {", ".join(STAGES)}', file=sys.stderr)
        sys.exit(EXIT_FAIL)

    mod = importlib.import_module(f'fidelity_checker.stages.{stage}')
    print((mod.__doc__ or '').strip())


def _require_files(*paths: str) -> None:
    for path in paths:
        if not os.path.isfile(path):
            print(f'Error: image not found: {path}', file=sys.stderr)
            sys.exit(EXIT_ERROR)


def _run_viewport(args: argparse.Namespace) -> None:
    with open(args.design, 'rb') as f:
        design = codec.dimensions_of(f.read())
    with open(args.implementation, 'rb') as f:
        impl = codec.dimensions_of(f.read())
    warning = detect_viewport_mismatch(design, impl, args.remote_capture, args.design_viewport)
    print(f'design {design}  implementation {impl}')
    if warning.detected:
        print(f'MISMATCH width ratio {warning.width_ratio}, aspect delta {warning.aspect_ratio_delta}')
        print(f'  {warning.suggestion}')
    else:
        print('OK viewport sizes are compatible')


def _run_compare(args: argparse.Namespace) -> None:
    settings = load_settings()
    if args.max_regions is not None:
        settings = replace(settings, max_regions=args.max_regions)

    result = compare_grids(
        codec.load_grid(args.design),
        codec.load_grid(args.implementation),
        args.mode,
        args.crop,
        screen_name=args.screen,
        platform=args.platform,
        is_remote_capture=args.remote_capture,
        used_design_viewport=args.design_viewport,
        settings=settings,
    )

    diff_path = None
    if args.out_dir:
        os.makedirs(args.out_dir, exist_ok=True)
        diff_path = os.path.join(args.out_dir, 'diff.png')
        codec.save_grid(result.diff_image, diff_path)
        print(f'fidelity-check: wrote {diff_path}', file=sys.stderr)

    if args.json:
        output = format_json(result, diff_image_path=diff_path)
        if args.out_dir:
            with open(os.path.join(args.out_dir, 'report.json'), 'w', encoding='utf-8') as f:
                f.write(output)
    else:
        output = format_text(result, args.design, args.implementation)
    print(output)

    # CI gate — after output so the report is visible even on failure
    if args.fail_under is not None and result.similarity < args.fail_under:
        print(f'\nFAIL: similarity {result.similarity:.2f}% is below {args.fail_under}%')
        sys.exit(EXIT_FAIL)


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
        stream=sys.stderr,
    )

    # Load .env before anything else — OS env vars always win
    env_path = load_env(env_file=args.env_file)
    if env_path:
        print(f'fidelity-check: loaded {env_path}', file=sys.stderr)

    if not args.command:
        parser.print_help()
        sys.exit(EXIT_FAIL)

    if args.command == 'help':
        _print_help(args.stage)
        return

    _require_files(args.design, args.implementation)
    try:
        if args.command == 'viewport':
            _run_viewport(args)
        else:
            _run_compare(args)
    except (FidelityError, ValueError) as exc:
        print(f'Error: {exc}', file=sys.stderr)
        sys.exit(EXIT_ERROR)


if __name__ == '__main__':
    main()
