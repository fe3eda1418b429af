#!/usr/bin/env python3
"""Command line interfaces: single file conversion and in-place Nutexb padding optimization"""

import argparse
import logging
import sys
from pathlib import Path

from .core import (
    MipmapPolicy,
    PixelFormat,
    Quality,
    TextureCodec,
    TextureError,
    convert_file,
    load_console_backends,
    optimize_nutexb_files,
)
from .core.file_scanner import FileScanner
from .core.utils import format_size

logger = logging.getLogger("ultimate_tex")

DEFAULT_FORMAT = PixelFormat.BC7RgbaUnorm


def pixel_format(value: str) -> PixelFormat:
    try:
        return PixelFormat.from_name(value)
    except ValueError:
        names = ', '.join(fmt.value for fmt in PixelFormat)
        raise argparse.ArgumentTypeError(f"unknown format '{value}' (choose from {names})")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ultimate-tex",
        description="Smash Ultimate texture converter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
The output container is chosen from the output extension:
  .dds, .nutexb, .bntx  -> container formats (compressed with --format)
  anything else         -> raster image (png, tiff, ...)

Examples:
  ultimate-tex def_mario_001_col.nutexb def_mario_001_col.png
  ultimate-tex input.png output.nutexb --format BC7RgbaUnormSrgb
  ultimate-tex input.png output.dds -f BC3RgbaUnorm --no-mipmaps

Nutexb and BNTX files need a console backend registered by an installed
package under the "ultimate_tex.console_backends" entry point group.
"""
    )
    parser.add_argument('input', help='The input image file to convert')
    parser.add_argument('output', help='The output converted image file')
    parser.add_argument('-f', '--format', type=pixel_format, default=DEFAULT_FORMAT,
                        help=f'The output image format for files supporting compression '
                             f'(default: {DEFAULT_FORMAT})')
    parser.add_argument('--no-mipmaps', action='store_true',
                        help='Disable mipmap generation and only include the base mip level')
    parser.add_argument('--verbose', '-v', action='store_true', help='Show detailed progress')
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    mipmaps = MipmapPolicy.disabled() if args.no_mipmaps else MipmapPolicy.automatic()

    try:
        convert_file(Path(args.input), Path(args.output), args.format,
                     Quality.FAST, mipmaps, TextureCodec(console_backends=load_console_backends()))
    except TextureError as e:
        logger.error("%s", e)
        return 1

    return 0


def build_optimize_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ultimate-tex-optimize",
        description="Rewrite every .nutexb file under a folder in place with minimal padding",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Files that cannot be read or rewritten are reported and left untouched.
The exit status is 1 when any file was skipped.

Examples:
  ultimate-tex-optimize mods/chara
  ultimate-tex-optimize mods --exclude backup --exclude .git
"""
    )
    parser.add_argument('root', help='Folder searched recursively for .nutexb files')
    parser.add_argument('--exclude', action='append', default=[], metavar='NAME',
                        help='Skip paths containing this folder name (repeatable, case-insensitive)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Show detailed progress')
    return parser


def optimize_main(argv=None) -> int:
    args = build_optimize_parser().parse_args(argv)
    configure_logging(args.verbose)

    root = Path(args.root)
    if not root.is_dir():
        logger.error("Not a folder: %s", root)
        return 1

    codec = TextureCodec(console_backends=load_console_backends())
    report = optimize_nutexb_files(root, codec, FileScanner(path_blacklist=args.exclude))

    print(f"Optimized {len(report.optimized)} file(s), saved {format_size(max(0, report.bytes_saved))}")
    for path, error in report.failed:
        print(f"  Skipped {path}: {error}")

    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
