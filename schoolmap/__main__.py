"""Command line entry point for rendering the school map.

Usage::

    # Render English LADs and the schools in a GIAS extract
    python -m schoolmap render --schools data/schools.csv

    # Keep every district, plain (unclustered) markers, custom output
    python -m schoolmap render --schools data/schools.csv --prefix "" --no-cluster --output out/map.html

    # Force re-download of the boundary file (bypass cache)
    python -m schoolmap render --schools data/schools.csv --force
"""

from __future__ import annotations

import argparse
import logging
import sys

from schoolmap.config import get_settings
from schoolmap.pipeline import build_school_map
from schoolmap.services.map_composer import save_map
from schoolmap.services.styling import group_schools


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="python -m schoolmap",
        description="Render schools and district boundaries as an interactive map.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    render = sub.add_parser("render", help="Build the map and save it as HTML")
    render.add_argument(
        "--schools",
        default=None,
        help="Path to a GIAS-style schools CSV. Defaults to SCHOOLMAP_SCHOOLS_CSV_PATH.",
    )
    render.add_argument(
        "--output",
        default=None,
        help="Output HTML path. Defaults to SCHOOLMAP_MAP_OUTPUT_PATH.",
    )
    render.add_argument(
        "--prefix",
        default=None,
        help='District code prefix to keep, e.g. "E" for England. Pass "" to keep all.',
    )
    render.add_argument(
        "--no-cluster",
        action="store_true",
        help="Draw every marker instead of clustering them.",
    )
    render.add_argument(
        "--force",
        action="store_true",
        help="Force re-download of the boundary file, bypassing cache.",
    )

    return parser.parse_args(argv)


def _render(args: argparse.Namespace) -> int:
    settings = get_settings()
    output = args.output or settings.MAP_OUTPUT_PATH

    result = build_school_map(
        schools_csv=args.schools,
        prefix=args.prefix,
        cluster=not args.no_cluster,
        force_download=args.force,
    )
    path = save_map(result.map, output)

    print(f"\n{'=' * 60}")
    print("School Map")
    print(f"{'=' * 60}")
    print(f"  Regions:           {len(result.regions)}")
    print(f"  School rows read:  {result.rows_read}")
    print(f"  Dropped (no XY):   {result.rows_dropped}")
    print(f"  Schools mapped:    {len(result.schools)}")
    for group in group_schools(result.schools):
        print(f"    {group.label}: {len(group.schools)}")
    print(f"  Output:            {path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    _setup_logging()
    args = _parse_args(argv)

    if args.command == "render":
        try:
            return _render(args)
        except Exception as exc:
            print(f"\n  ERROR rendering map: {exc}")
            logging.getLogger(__name__).exception("Render failed")
            return 1
    return 2


if __name__ == "__main__":
    sys.exit(main())
