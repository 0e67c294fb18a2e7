"""
Command-line interface for site-kdtree.

Provides commands for partitioning site tables and generating sample data.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .builder import BuilderConfig, KdTreeBuilder
from .errors import KdTreeError
from .report import format_tree_report, write_leaf_csv, year_summary
from .sites import SiteSchema, load_sites, sample_sites, write_sites


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="site-kdtree",
        description="Partition survey sites into year-balanced kd-tree regions",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log every node as it is built",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Build command
    build_parser = subparsers.add_parser(
        "build",
        help="Build a kd-tree from a site table",
    )
    build_parser.add_argument(
        "input",
        type=Path,
        help="Site table CSV (site_id, plot_id, x, y, z, year with a header line)",
    )
    build_parser.add_argument(
        "-o", "--output",
        type=Path,
        help="Output CSV path (default: <input>.leaves.csv)",
    )
    build_parser.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Also write a tree report to this path",
    )
    build_parser.add_argument(
        "--min-size",
        type=int,
        default=1,
        help="Minimum sites per year in every region (default: 1)",
    )
    build_parser.add_argument(
        "--min-year",
        type=int,
        default=None,
        help="Earliest survey year; sites before it are ignored (default: from data)",
    )
    build_parser.add_argument(
        "--max-year",
        type=int,
        default=None,
        help="Latest survey year; sites after it are ignored (default: from data)",
    )
    build_parser.add_argument(
        "--max-depth",
        type=int,
        default=64,
        help="Maximum tree depth (default: 64)",
    )

    # Sample command
    sample_parser = subparsers.add_parser(
        "sample",
        help="Write a random site table",
    )
    sample_parser.add_argument(
        "-n", "--count",
        type=int,
        default=200,
        help="Number of sites (default: 200)",
    )
    sample_parser.add_argument(
        "--years",
        type=str,
        default="2001,2002",
        help="Comma-separated survey years (default: 2001,2002)",
    )
    sample_parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed (default: 42)",
    )
    sample_parser.add_argument(
        "-o", "--output",
        type=Path,
        required=True,
        help="Output CSV path",
    )

    return parser


def cmd_build(args: argparse.Namespace) -> int:
    """Handle the build command."""
    schema = SiteSchema()

    print(f"Loading sites from: {args.input}")
    try:
        loaded = load_sites(args.input, args.min_year, args.max_year, schema)
    except FileNotFoundError as e:
        print(f"Error: {e}")
        return 1

    print(f"Loaded {len(loaded.points)} sites for years {loaded.min_year}-{loaded.max_year}")
    if loaded.rows_ignored:
        print(f"Ignored {loaded.rows_ignored} sites outside the year range")

    config = BuilderConfig(
        min_year=loaded.min_year,
        max_year=loaded.max_year,
        min_size=args.min_size,
        dimensions=schema.dimensions,
        max_depth=args.max_depth,
    )
    builder = KdTreeBuilder(config)

    print(f"Building {config.dimensions}D-tree from {len(loaded.points)} points...")
    tree = builder.build(loaded.points)
    stats = builder.stats

    # Print stats
    print(f"\nBuild statistics:")
    print(f"  Nodes created: {stats.nodes_created}")
    print(f"  Leaf nodes: {stats.leaves_created}")
    print(f"  Internal nodes: {stats.internal_nodes_created}")
    print(f"  Max depth reached: {stats.max_depth_reached}")

    smallest = min(
        (min(counts) for _, counts in year_summary(tree, builder.strategy)),
        default=0,
    )
    print(f"  Fewest sites of one year in a leaf: {smallest}")

    output_path = args.output or args.input.with_suffix(".leaves.csv")
    rows = write_leaf_csv(tree, output_path)
    print(f"\nWrote {rows} rows to {output_path}")

    if args.report:
        args.report.write_text(format_tree_report(tree))
        print(f"Wrote tree report to {args.report}")

    return 0


def _parse_years(text: str) -> List[int]:
    return [int(y.strip()) for y in text.split(",") if y.strip()]


def cmd_sample(args: argparse.Namespace) -> int:
    """Handle the sample command."""
    try:
        years = _parse_years(args.years)
    except ValueError:
        print(f"Error: invalid year list: {args.years}")
        return 1
    if not years or args.count < 1:
        print("Error: need at least one year and one site")
        return 1

    points = sample_sites(args.count, SiteSchema().dimensions, years, args.seed)
    write_sites(points, args.output)
    print(f"Wrote {len(points)} sample sites to {args.output}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 1

    try:
        if args.command == "build":
            return cmd_build(args)
        elif args.command == "sample":
            return cmd_sample(args)
    except KdTreeError as e:
        print(f"Error: {e}")
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
