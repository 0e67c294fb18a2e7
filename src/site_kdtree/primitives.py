"""
Geometric primitives for the site kd-tree.

This module defines the one-dimensional interval, the survey-site point
and the axis-aligned box that the tree builder works with. All three are
dimension-agnostic: the dimension is fixed per tree, not per type.
"""

from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Tuple

from .errors import DimensionMismatch, InvalidInterval


# Coordinate value of a point that was never assigned
UNSET_COORDINATE = -9999.0


def format_number(x: float) -> str:
    """Render a coordinate without a trailing .0 for whole numbers."""
    x = float(x)
    if x.is_integer():
        return str(int(x))
    return repr(x)


@dataclass
class Interval:
    """
    A closed range [low, high] on one axis.

    A fresh interval starts inverted at (+inf, -inf) so that the first
    extend() sets both ends. It only becomes valid once it has been
    extended by two different values.
    """
    low: float = math.inf
    high: float = -math.inf

    def is_valid(self) -> bool:
        """Check if the interval has non-zero width."""
        return self.low < self.high

    def is_empty(self) -> bool:
        """Check if the interval was never extended."""
        return self.low > self.high

    def extend(self, x: float) -> None:
        """Widen the interval to include x."""
        if x < self.low:
            self.low = x
        if x > self.high:
            self.high = x

    def length(self) -> float:
        """
        Width of the interval.

        Raises:
            InvalidInterval: if the interval is not valid
        """
        if not self.is_valid():
            raise InvalidInterval(f"Interval {self} has no length")
        return self.high - self.low

    def contains(self, x: float) -> bool:
        """Check if x lies within [low, high]."""
        return self.low <= x <= self.high

    def __str__(self) -> str:
        return f"[{format_number(self.low)},{format_number(self.high)}]"


@dataclass
class Point:
    """
    A survey site: D coordinates plus its survey year and attributes.

    Attributes are free-form metadata (site id, plot id, ...) that are
    carried through the tree untouched.
    """
    coordinates: List[float]
    year: int = 0
    attributes: List[str] = field(default_factory=list)

    @classmethod
    def unset(cls, dimensions: int) -> Point:
        """Create a point whose coordinates all carry the unset marker."""
        return cls([UNSET_COORDINATE] * dimensions)

    @property
    def dimensions(self) -> int:
        return len(self.coordinates)

    def __getitem__(self, i: int) -> float:
        return self.coordinates[i]

    def __setitem__(self, i: int, value: float) -> None:
        self.coordinates[i] = value

    def is_set(self) -> bool:
        """Check that no coordinate still carries the unset marker."""
        return all(c != UNSET_COORDINATE for c in self.coordinates)

    def sort_key(self, start_dim: int) -> Tuple[float, ...]:
        """
        Key for the cyclic lexicographic order starting at start_dim.

        Coordinates are rotated so that dimension start_dim comes first,
        followed by start_dim + 1, ... wrapping around to start_dim - 1.
        """
        d = start_dim % self.dimensions
        return tuple(self.coordinates[d:]) + tuple(self.coordinates[:d])

    def compare(self, other: Point, start_dim: int) -> int:
        """
        Compare two points in cyclic lexicographic order.

        Returns:
            Negative if self sorts before other, positive if after,
            0 if all coordinates are equal.
        """
        if other.dimensions != self.dimensions:
            raise DimensionMismatch(
                f"Cannot compare {self.dimensions}D point with {other.dimensions}D point"
            )
        for i in range(self.dimensions):
            d = (i + start_dim) % self.dimensions
            if self.coordinates[d] < other.coordinates[d]:
                return -1
            if self.coordinates[d] > other.coordinates[d]:
                return 1
        return 0

    def precedes(self, other: Point, start_dim: int) -> bool:
        """Check if self sorts strictly before other at start_dim."""
        return self.compare(other, start_dim) < 0

    def __str__(self) -> str:
        return ",".join(format_number(c) for c in self.coordinates)


class Box:
    """An axis-aligned box in D dimensions, one Interval per axis."""

    def __init__(self, dimensions: int):
        if dimensions < 1:
            raise ValueError("Box needs at least one dimension")
        self.extents: List[Interval] = [Interval() for _ in range(dimensions)]

    @classmethod
    def around(cls, points: Iterable[Point], dimensions: int) -> Box:
        """Create the bounding box of points."""
        box = cls(dimensions)
        for p in points:
            box.extend(p)
        return box

    @property
    def dimensions(self) -> int:
        return len(self.extents)

    def __getitem__(self, i: int) -> Interval:
        return self.extents[i]

    def __iter__(self) -> Iterator[Interval]:
        return iter(self.extents)

    def extend(self, point: Point) -> None:
        """Grow the box to include point."""
        if point.dimensions != self.dimensions:
            raise DimensionMismatch(
                f"Cannot extend {self.dimensions}D box by {point.dimensions}D point"
            )
        for interval, x in zip(self.extents, point.coordinates):
            interval.extend(x)

    def is_valid(self) -> bool:
        """Check that every axis has non-zero width."""
        return all(i.is_valid() for i in self.extents)

    def contains(self, point: Point) -> bool:
        """Check if point lies inside the box (boundaries included)."""
        return all(i.contains(x) for i, x in zip(self.extents, point.coordinates))

    def volume(self) -> float:
        """
        Product of the interval lengths.

        Raises:
            InvalidInterval: if any axis is not valid
        """
        vol = 1.0
        for interval in self.extents:
            vol *= interval.length()
        return vol

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Box):
            return NotImplemented
        return self.extents == other.extents

    def __repr__(self) -> str:
        return f"Box({self})"

    def __str__(self) -> str:
        return "x".join(str(i) for i in self.extents)
