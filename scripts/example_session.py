#!/usr/bin/env python3
"""
Example: exploring a session cube from the command line.

This script demonstrates how to:
1. Build a cube from a CSV file of session rows
2. Filter it by user id
3. Print rollup statistics for the view
4. Walk the previous/next user cursor
"""

import os
import sys
import json
import argparse
import logging
from pathlib import Path

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from sessioncube.cube.schema import create_session_cube_config
from sessioncube.nav.session import CubeExplorer

DATA_FILE = Path(__file__).parent.parent / "data" / "sessions.csv"


def print_cube(cube):
    """Print axes and a per-page grid of primary metric values."""
    print(f"Categories: {', '.join(cube.categories)}")
    print(f"Pages:      {', '.join(cube.page_labels) or '-'}")
    print(f"Cells:      {len(cube.cells)} of {cube.entity_count * len(cube.categories)} possible")

    for page, label in enumerate(cube.page_labels):
        print(f"\n  Group {page + 1} ({label})")
        print("  " + " " * 6 + "".join(f"{c:>9}" for c in cube.categories))
        rows = {}
        for cell in cube.cells:
            if cell.page == page:
                rows.setdefault(cell.entity_id, {})[cell.category] = cell
        for entity, cells in rows.items():
            values = "".join(
                f"{cells[c].metric(cube.primary_metric):>9}" if c in cells else f"{'.':>9}"
                for c in cube.categories
            )
            print(f"  {entity:<6}{values}")


def print_cell(cell):
    if cell is None:
        print("  (no selection)")
        return
    print(f"  {cell.id}  grid={cell.grid}  weight={cell.normalized:.2f}")
    print(f"    metrics: {dict(cell.metrics)}")
    for row in cell.details:
        print(f"    - {str(row.get('day_type', '')).upper():<8} {row.get('session_minutes')} min")


def run_demo():
    parser = argparse.ArgumentParser(description="Explore a session cube")
    parser.add_argument("--data", type=str, default=str(DATA_FILE),
                        help="CSV file with one session per line")
    parser.add_argument("--filter", type=str, default="", help="User id filter text")
    parser.add_argument("--page-size", type=int, default=None)
    parser.add_argument("--steps", type=int, default=3, help="Next-user steps to walk")
    parser.add_argument("--json", action="store_true", help="Dump the session as JSON at the end")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print("=" * 60)
    print("SessionCube Demo: User Cube Explorer")
    print("=" * 60)

    config = create_session_cube_config(page_size=args.page_size)
    explorer = CubeExplorer.from_file(args.data, config)

    print(f"\n1. Built cube from {args.data}")
    print_cube(explorer.cube)

    if args.filter:
        print(f"\n2. Filtering users by '{args.filter}'")
        explorer.set_filter(args.filter)
        print_cube(explorer.visible)

    print("\nAggregate statistics:")
    for key, value in explorer.stats.to_dict().items():
        print(f"  {key:<11} {value}")

    print(f"\n3. Walking {args.steps} users forward")
    for _ in range(args.steps):
        print_cell(explorer.next_user())
    print("\n   ...and one back")
    print_cell(explorer.previous_user())

    if args.json:
        print(json.dumps(explorer.to_dict(), indent=2))

    print("\n" + "=" * 60)
    print("Demo complete!")
    print("=" * 60)


if __name__ == "__main__":
    run_demo()
