"""
Kd-tree data structures for survey sites.

This module defines the tree nodes and the tree wrapper produced by the
builder. A node is either a leaf holding points or an internal node
holding exactly two children; the two kinds are separate classes so a
node can never be both.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterator, List, Tuple

from .primitives import Box, Point


@dataclass
class KdNode(ABC):
    """Abstract base class for kd-tree nodes."""

    node_id: int
    """Pre-order id, unique within one tree."""

    box: Box
    """Bounding box of every point the node was built from."""

    split_dimension: int
    """Dimension this node splits on (stored for leaves as well)."""

    @abstractmethod
    def is_leaf(self) -> bool:
        """Return True if this is a leaf node."""
        pass

    @abstractmethod
    def collect_leaf_points(self, out: List[Tuple[int, Point]]) -> None:
        """Append (leaf id, point) pairs of this subtree to out, left first."""
        pass

    @abstractmethod
    def node_count(self) -> int:
        """Return total number of nodes in this subtree."""
        pass

    @abstractmethod
    def leaf_count(self) -> int:
        """Return number of leaf nodes in this subtree."""
        pass

    @abstractmethod
    def max_depth(self) -> int:
        """Return maximum depth of this subtree."""
        pass

    @abstractmethod
    def point_count(self) -> int:
        """Return number of points stored in this subtree."""
        pass


@dataclass
class LeafNode(KdNode):
    """
    A leaf node: one spatial region that is not split further.

    The root of an empty tree is a leaf with no points.
    """
    points: List[Point] = field(default_factory=list)

    def is_leaf(self) -> bool:
        return True

    def collect_leaf_points(self, out: List[Tuple[int, Point]]) -> None:
        out.extend((self.node_id, p) for p in self.points)

    def node_count(self) -> int:
        return 1

    def leaf_count(self) -> int:
        return 1

    def max_depth(self) -> int:
        return 0

    def point_count(self) -> int:
        return len(self.points)


@dataclass
class InternalNode(KdNode):
    """
    An internal node with exactly two children.

    The left child holds the points that sort strictly before the median
    in the cyclic order of split_dimension; the right child holds the
    median and everything after it.
    """
    median: Point
    left: KdNode
    right: KdNode

    def is_leaf(self) -> bool:
        return False

    def collect_leaf_points(self, out: List[Tuple[int, Point]]) -> None:
        self.left.collect_leaf_points(out)
        self.right.collect_leaf_points(out)

    def node_count(self) -> int:
        return 1 + self.left.node_count() + self.right.node_count()

    def leaf_count(self) -> int:
        return self.left.leaf_count() + self.right.leaf_count()

    def max_depth(self) -> int:
        return 1 + max(self.left.max_depth(), self.right.max_depth())

    def point_count(self) -> int:
        return self.left.point_count() + self.right.point_count()

    @property
    def children(self) -> Tuple[KdNode, KdNode]:
        return self.left, self.right


def leaf_points(node: KdNode) -> List[Tuple[int, Point]]:
    """
    Flatten a tree into (leaf id, point) pairs.

    Leaves are visited in pre-order, left before right; points within a
    leaf keep their stored order. The tree is not modified.
    """
    out: List[Tuple[int, Point]] = []
    node.collect_leaf_points(out)
    return out


def iter_nodes(node: KdNode, depth: int = 0) -> Iterator[Tuple[KdNode, int]]:
    """Yield (node, depth) for every node of the subtree in pre-order."""
    yield node, depth
    if isinstance(node, InternalNode):
        yield from iter_nodes(node.left, depth + 1)
        yield from iter_nodes(node.right, depth + 1)


class KdTree:
    """
    A kd-tree over survey sites, as returned by the builder.
    """

    def __init__(self, root: KdNode, dimensions: int):
        """
        Initialize a kd-tree.

        Args:
            root: The root node of the tree
            dimensions: Number of coordinate dimensions of its points
        """
        self.root = root
        self.dimensions = dimensions

    def leaf_points(self) -> List[Tuple[int, Point]]:
        """(leaf id, point) pairs for every point in the tree."""
        return leaf_points(self.root)

    def iter_nodes(self) -> Iterator[Tuple[KdNode, int]]:
        """Pre-order (node, depth) pairs."""
        return iter_nodes(self.root)

    def leaves(self) -> List[LeafNode]:
        """All leaves, left to right."""
        return [n for n, _ in self.iter_nodes() if isinstance(n, LeafNode)]

    @property
    def node_count(self) -> int:
        """Total number of nodes in the tree."""
        return self.root.node_count()

    @property
    def leaf_count(self) -> int:
        """Number of leaf nodes in the tree."""
        return self.root.leaf_count()

    @property
    def depth(self) -> int:
        """Maximum depth of the tree."""
        return self.root.max_depth()

    @property
    def point_count(self) -> int:
        """Number of points stored in the tree."""
        return self.root.point_count()
