"""
Allow running the package directly: python -m mandelbot
"""

import logging
from argparse import ArgumentParser, ArgumentTypeError

from .app import run
from .colormaps import list_palette_names, get_palette
from .config import SETTINGS, SHAPES, ViewConfig


def positive_int(text):
    value = int(text)
    if value <= 0:
        raise ArgumentTypeError(f"must be a positive integer: {text}")
    return value


def build_parser():
    parser = ArgumentParser(prog='mandelbot', description='Interactive Mandelbrot set explorer')
    parser.add_argument('--width', type=positive_int, default=800, help='window width in pixels')
    parser.add_argument('--height', type=positive_int, default=800, help='window height in pixels')
    parser.add_argument('--grid-width', type=positive_int, dest='grid_width',
                        help='computed grid width (default: window width)')
    parser.add_argument('--grid-height', type=positive_int, dest='grid_height',
                        help='computed grid height (default: window height)')
    parser.add_argument('--center-x', type=str, dest='center_x',
                        help='real part of the view center (decimal string)')
    parser.add_argument('--center-y', type=str, dest='center_y',
                        help='imaginary part of the view center (decimal string)')
    parser.add_argument('--half-width', type=str, dest='half_width',
                        help='half the view width in the complex plane')
    parser.add_argument('--half-height', type=str, dest='half_height',
                        help='half the view height in the complex plane')
    parser.add_argument('--shape', choices=SHAPES, help='scan pattern')
    parser.add_argument('--palette', choices=list_palette_names(), help='color palette')
    parser.add_argument('--decimal', action='store_true',
                        help='use arbitrary precision decimal arithmetic')
    parser.add_argument('-v', '--verbose', action='store_true', help='enable debug logging')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s %(name)s %(levelname)s: %(message)s')

    changes = {key: getattr(args, key)
               for key in ('center_x', 'center_y', 'half_width', 'half_height', 'shape')
               if getattr(args, key) is not None}
    if args.palette:
        changes['palette'] = get_palette(args.palette)
    if args.decimal:
        changes['use_arbitrary_precision'] = True
    config = ViewConfig.from_settings(SETTINGS).replace(**changes)

    run(args.width, args.height, args.grid_width, args.grid_height, config)


if __name__ == "__main__":
    main()
