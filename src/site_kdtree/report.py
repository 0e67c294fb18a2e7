"""
Output of a built kd-tree.

Two outputs are produced from a tree:
- The leaf table: one row per input point, the id of the leaf holding it
  followed by the point's year, attributes and coordinates. No header.
- The tree report: a depth-first listing of every node with its id,
  bounding box and volume, plus the point count for leaves.
"""

import csv
from pathlib import Path
from typing import List, Tuple

from .kdtree import KdTree, LeafNode
from .primitives import Box, Point, format_number
from .strategy import YearBalanceStrategy


def point_row(leaf_id: int, point: Point) -> List[str]:
    """Row for one point: leaf id, year, attributes..., coordinates..."""
    row = [str(leaf_id), str(point.year)]
    row.extend(point.attributes)
    row.extend(format_number(c) for c in point.coordinates)
    return row


def leaf_rows(tree: KdTree) -> List[List[str]]:
    """Rows for every point in the tree, grouped by leaf, left to right."""
    return [point_row(leaf_id, p) for leaf_id, p in tree.leaf_points()]


def write_leaf_csv(tree: KdTree, path: Path) -> int:
    """
    Write the leaf table to a CSV file.

    Args:
        tree: Built tree
        path: Output file path

    Returns:
        Number of rows written
    """
    rows = leaf_rows(tree)
    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerows(rows)
    return len(rows)


def format_volume(box: Box) -> str:
    """Volume of box, or n/a when some axis has zero width."""
    if not box.is_valid():
        return "n/a"
    return format_number(box.volume())


def format_tree_report(tree: KdTree, indent: str = "  ") -> str:
    """
    Render a human-readable report of the tree.

    Args:
        tree: Built tree
        indent: Indentation added per tree level

    Returns:
        Report text, one line per node in pre-order
    """
    lines = []
    for node, depth in tree.iter_nodes():
        prefix = indent * depth
        if isinstance(node, LeafNode):
            lines.append(
                f"{prefix}node {node.node_id} leaf "
                f"box: {node.box} volume: {format_volume(node.box)} "
                f"size: {len(node.points)}"
            )
        else:
            lines.append(
                f"{prefix}node {node.node_id} split: {node.split_dimension} "
                f"box: {node.box} volume: {format_volume(node.box)}"
            )
    return "\n".join(lines) + "\n"


def year_summary(tree: KdTree, strategy: YearBalanceStrategy) -> List[Tuple[int, List[int]]]:
    """
    Per-leaf survey year counts.

    Returns:
        List of (leaf id, counts) where counts[i] is the number of points
        of year strategy.min_year + i in that leaf
    """
    return [(leaf.node_id, strategy.count_years(leaf.points)) for leaf in tree.leaves()]
