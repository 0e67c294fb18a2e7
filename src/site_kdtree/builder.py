"""
Kd-tree builder with year-balanced median splits.

This module builds a kd-tree over survey sites. Each node splits its
points at the median of the next dimension in round-robin order, but only
when the split strategy accepts the split; by default a split is accepted
only if both halves keep at least min_size sites for every survey year.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .errors import ConfigurationError, DimensionMismatch, TooDeep, YearOutOfRange
from .kdtree import InternalNode, KdNode, KdTree, LeafNode
from .primitives import Box, Point
from .strategy import SplitStrategy, YearBalanceStrategy

logger = logging.getLogger(__name__)

# Deepest tree the recursive builder will attempt
MAX_SUPPORTED_DEPTH = 512


@dataclass
class BuilderConfig:
    """Configuration for the kd-tree builder."""

    min_year: int
    """First survey year every point must lie in."""

    max_year: int
    """Last survey year, inclusive."""

    min_size: int = 1
    """Minimum number of sites per year on each side of a split."""

    dimensions: int = 3
    """Number of coordinate dimensions."""

    max_depth: int = 64
    """Maximum tree depth (safety limit)."""

    def __post_init__(self):
        if self.dimensions < 1:
            raise ConfigurationError("dimensions must be at least 1")
        if self.min_size < 0:
            raise ConfigurationError("min_size must be non-negative")
        if self.min_year > self.max_year:
            raise ConfigurationError(
                f"min_year ({self.min_year}) must not exceed max_year ({self.max_year})"
            )
        if not 1 <= self.max_depth <= MAX_SUPPORTED_DEPTH:
            raise ConfigurationError(
                f"max_depth must be between 1 and {MAX_SUPPORTED_DEPTH}"
            )


@dataclass
class BuilderStats:
    """Statistics collected during tree building."""

    points_in: int = 0
    nodes_created: int = 0
    leaves_created: int = 0
    internal_nodes_created: int = 0
    max_depth_reached: int = 0


class NodeIdCounter:
    """
    Source of node ids for one or more builds.

    Ids increase monotonically and are never reused. Passing the same
    counter to several builds keeps ids unique across all their trees.
    """

    def __init__(self, start: int = 0):
        self._next = start

    def next_id(self) -> int:
        node_id = self._next
        self._next += 1
        return node_id

    @property
    def peek(self) -> int:
        """The id the next node will get."""
        return self._next


class KdTreeBuilder:
    """
    Builder for kd-trees over survey sites.

    The builder constructs a tree by:
    1. Assigning the node its id and bounding box
    2. Asking the strategy for a median on the next dimension
    3. Making the node a leaf if the strategy refuses, otherwise
       distributing the points around the median and recursing
    """

    def __init__(self, config: BuilderConfig, strategy: Optional[SplitStrategy] = None):
        """
        Initialize the builder.

        Args:
            config: Builder configuration
            strategy: Split strategy; defaults to the year-balance rule
                derived from config
        """
        self.config = config
        self.strategy = strategy or YearBalanceStrategy(
            min_size=config.min_size,
            min_year=config.min_year,
            max_year=config.max_year,
        )
        self.stats = BuilderStats()

    def build(self, points: Iterable[Point], counter: Optional[NodeIdCounter] = None) -> KdTree:
        """
        Build a kd-tree from points.

        The input is copied; the caller's sequence is not reordered.

        Args:
            points: Sites to index
            counter: Node id source; a fresh counter starting at 0 if None

        Returns:
            KdTree holding every input point in exactly one leaf
        """
        self.stats = BuilderStats()  # Reset stats
        if counter is None:
            counter = NodeIdCounter()

        cloud = list(points)
        self._check_points(cloud)
        self.stats.points_in = len(cloud)

        logger.info(
            "Building %dD-tree from %d points", self.config.dimensions, len(cloud)
        )
        # Root's last split is the final dimension so the first split is on 0
        root = self._build_node(cloud, self.config.dimensions - 1, 0, counter)
        logger.info(
            "Built tree with %d nodes (%d leaves), depth %d",
            self.stats.nodes_created,
            self.stats.leaves_created,
            self.stats.max_depth_reached,
        )
        return KdTree(root, self.config.dimensions)

    def _check_points(self, points: List[Point]) -> None:
        """Reject points of the wrong dimension or year before building."""
        for p in points:
            if p.dimensions != self.config.dimensions:
                raise DimensionMismatch(
                    f"Point {p} has {p.dimensions} dimensions, "
                    f"tree has {self.config.dimensions}"
                )
            if not self.config.min_year <= p.year <= self.config.max_year:
                raise YearOutOfRange(p.year, self.config.min_year, self.config.max_year)

    def _build_node(
        self,
        points: List[Point],
        last_split: int,
        depth: int,
        counter: NodeIdCounter,
    ) -> KdNode:
        """
        Build a node for the given points.

        Args:
            points: Points of this node (reordered by the strategy)
            last_split: Dimension the parent split on
            depth: Current depth in the tree
            counter: Node id source

        Returns:
            KdNode (either Leaf or Internal)
        """
        self.stats.max_depth_reached = max(self.stats.max_depth_reached, depth)

        # Id before children: ids follow pre-order
        node_id = counter.next_id()
        box = Box.around(points, self.config.dimensions)
        split_dimension = (last_split + 1) % self.config.dimensions

        logger.debug(
            "Node %d: %d points, split dimension %d", node_id, len(points), split_dimension
        )

        median = self.strategy.compute_median(points, split_dimension)

        if median is None:
            logger.debug("Node %d: not splitting further", node_id)
            self.stats.nodes_created += 1
            self.stats.leaves_created += 1
            return LeafNode(node_id, box, split_dimension, list(points))

        if depth >= self.config.max_depth:
            raise TooDeep(self.config.max_depth, len(points))

        return self._split_node(node_id, box, points, median, split_dimension, depth, counter)

    def _split_node(
        self,
        node_id: int,
        box: Box,
        points: List[Point],
        median: Point,
        split_dimension: int,
        depth: int,
        counter: NodeIdCounter,
    ) -> InternalNode:
        """
        Distribute points around the median and build both children.

        Returns:
            InternalNode with children
        """
        logger.debug("Node %d: splitting along median %s", node_id, median)

        left, right = partition(points, median, split_dimension)

        left_node = self._build_node(left, split_dimension, depth + 1, counter)
        right_node = self._build_node(right, split_dimension, depth + 1, counter)

        self.stats.nodes_created += 1
        self.stats.internal_nodes_created += 1
        return InternalNode(
            node_id, box, split_dimension,
            median=median, left=left_node, right=right_node,
        )


def partition(
    points: List[Point],
    median: Point,
    split_dimension: int,
) -> Tuple[List[Point], List[Point]]:
    """
    Split points into those strictly before median and the rest.

    Order is the cyclic lexicographic order starting at split_dimension.
    """
    left: List[Point] = []
    right: List[Point] = []
    for p in points:
        if p.precedes(median, split_dimension):
            left.append(p)
        else:
            right.append(p)
    return left, right


def build_kdtree(
    points: Iterable[Point],
    min_year: int,
    max_year: int,
    min_size: int = 1,
    dimensions: int = 3,
    max_depth: int = 64,
    counter: Optional[NodeIdCounter] = None,
) -> Tuple[KdTree, BuilderStats]:
    """
    Convenience function to build a year-balanced kd-tree.

    Args:
        points: Sites to index
        min_year: First survey year
        max_year: Last survey year
        min_size: Minimum sites per year on each side of a split
        dimensions: Number of coordinate dimensions
        max_depth: Maximum tree depth
        counter: Node id source

    Returns:
        Tuple of (KdTree, BuilderStats)
    """
    config = BuilderConfig(
        min_year=min_year,
        max_year=max_year,
        min_size=min_size,
        dimensions=dimensions,
        max_depth=max_depth,
    )
    builder = KdTreeBuilder(config)
    tree = builder.build(points, counter)
    return tree, builder.stats
