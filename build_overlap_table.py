#!/usr/bin/env python3
"""Build an overlap lookup table for one style.

Rasterizes every letter of the alphabet from the style's font, resolves
the overlap for every ordered pair, and writes the table as JSON. With
``--validate`` the special cases of the rule set are checked against the
fresh table afterwards.

Example:
    Build the default alphabet from a font::

        $ python build_overlap_table.py --style straight --font fonts/straight.ttf

    Custom rules, alphabet and output path::

        $ python build_overlap_table.py --style bubble --font fonts/bubble.otf \\
            --rules rules/bubble.json --alphabet abcxyz --output tables/bubble.json --validate

Exit status is 0 on success, 1 if the table is incomplete, 2 if
validation finds conflicts.
"""

import argparse
import logging
import sys
from pathlib import Path

from tqdm import tqdm

from overlap_flask import configure_logging
from overlap_lib.cache import CachedGlyphProvider, GlyphCache
from overlap_lib.config import (
    DEFAULT_ALPHABET,
    DEFAULT_CANVAS_SIZE,
    DEFAULT_STYLE,
    default_rule_set,
    load_rule_set,
)
from overlap_lib.errors import Diagnostics
from overlap_lib.lookup import build_table, save_table, validate
from overlap_lib.lookup.builder import normalize_alphabet
from overlap_lib.utils.rendering import FontGlyphRasterizer

logger = logging.getLogger(__name__)


def run_build(style: str, font: str, alphabet: str, rules_path: str | None,
              output: str, canvas_size: int, variant: str, run_validation: bool) -> int:
    """Build, save and optionally validate a table.

    Returns:
        Process exit status.
    """
    rules = load_rule_set(rules_path) if rules_path else default_rule_set()
    rasterizer = FontGlyphRasterizer({style: font}, canvas_size=canvas_size)
    provider = CachedGlyphProvider(rasterizer, GlyphCache(capacity=max(len(alphabet), 1)))
    diagnostics = Diagnostics()

    total = len(normalize_alphabet(alphabet)) ** 2
    with tqdm(total=total, desc=f'{style} pairs', unit='pair') as pbar:
        def on_pair(frame):
            pbar.update(frame.processed - pbar.n)
            if frame.current_pair:
                pbar.set_postfix_str(''.join(frame.current_pair))

        table = build_table(alphabet, style, rules, provider, variant=variant,
                            progress=on_pair, diagnostics=diagnostics)

    path = save_table(table, output)
    print(f"Wrote {table.entry_count} entries to {path}")
    if table.metadata.skipped:
        print(f"Skipped letters: {' '.join(table.metadata.skipped)}")

    status = 0 if table.is_complete else 1

    if run_validation:
        report = validate(table, rules)
        print(f"Validation: {report.matches} overrides match, "
              f"{len(report.conflicts)} conflicts")
        for c in report.conflicts:
            print(f"  {c.letter}{c.target}: expected {c.expected}, table {c.actual}")
        if report.conflicts:
            status = 2

    return status


def main() -> None:
    """Parse command-line arguments and run the build."""
    parser = argparse.ArgumentParser(description='Build an overlap lookup table')
    parser.add_argument('--style', default=DEFAULT_STYLE, help='Style identifier')
    parser.add_argument('--font', required=True, help='Font file for the style')
    parser.add_argument('--alphabet', default=DEFAULT_ALPHABET, help='Characters to cover')
    parser.add_argument('--rules', default=None, help='Rule set JSON (default: built-in)')
    parser.add_argument('--output', default=None, help='Output path (default: tables/<style>.json)')
    parser.add_argument('--canvas-size', type=int, default=DEFAULT_CANVAS_SIZE,
                        help='Raster canvas size in pixels')
    parser.add_argument('--variant', default='standard',
                        choices=['standard', 'alternate', 'first', 'last'])
    parser.add_argument('--validate', action='store_true',
                        help='Check rule special cases against the table')
    parser.add_argument('--log-level', default='WARNING', help='Logging level')
    args = parser.parse_args()

    configure_logging(level=args.log_level)
    output = args.output or str(Path('tables') / f'{args.style}.json')

    sys.exit(run_build(args.style, args.font, args.alphabet, args.rules, output,
                       args.canvas_size, args.variant, args.validate))


if __name__ == '__main__':
    main()
