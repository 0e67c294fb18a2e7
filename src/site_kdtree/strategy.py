"""
Split strategies for the kd-tree builder.

A strategy decides, for the points of one node, whether the node is split
and where. It sorts the points in place by the cyclic lexicographic order of
the split dimension and returns the median point, or None to make the node a
leaf.

Ties: points equal to the median under the split order always go to the
right child. Sorting is stable, so among equal points the input order is
kept; which duplicates end up at the median position therefore depends on
how the caller ordered them. This is accepted, not corrected.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .errors import ConfigurationError, YearOutOfRange
from .primitives import Point


def count_years(points: Sequence[Point], min_year: int, max_year: int) -> List[int]:
    """
    Count points per survey year.

    Args:
        points: Points to count
        min_year: First year of the range (index 0 of the result)
        max_year: Last year of the range, inclusive

    Returns:
        List of max_year - min_year + 1 counts

    Raises:
        YearOutOfRange: if any point's year is outside [min_year, max_year]
    """
    counts = [0] * (max_year - min_year + 1)
    for p in points:
        if not min_year <= p.year <= max_year:
            raise YearOutOfRange(p.year, min_year, max_year)
        counts[p.year - min_year] += 1
    return counts


def check_years(
    points: Sequence[Point],
    min_year: int,
    max_year: int,
    min_size: int,
) -> bool:
    """
    Check that every year in [min_year, max_year] has at least min_size points.

    An empty run fails whenever min_size > 0.
    """
    return all(c >= min_size for c in count_years(points, min_year, max_year))


def sort_for_split(points: List[Point], split_dimension: int) -> Tuple[int, int]:
    """
    Sort points for splitting and locate the median.

    Returns:
        Tuple of (median_index, left_size) where median_index is
        len(points) // 2 and left_size is the number of points that sort
        strictly before the median. left_size is smaller than median_index
        when points before the median tie with it.
    """
    points.sort(key=lambda p: p.sort_key(split_dimension))
    m = len(points) // 2
    key = points[m].sort_key(split_dimension)
    k = m
    while k > 0 and points[k - 1].sort_key(split_dimension) == key:
        k -= 1
    return m, k


class SplitStrategy(ABC):
    """Abstract base class for split strategies."""

    @abstractmethod
    def compute_median(self, points: List[Point], split_dimension: int) -> Optional[Point]:
        """
        Choose the median to split points at.

        Reorders points in place.

        Args:
            points: Points of the node being built
            split_dimension: Dimension that leads the split order

        Returns:
            The median point, or None if the node should not be split
        """
        pass


@dataclass
class YearBalanceStrategy(SplitStrategy):
    """
    Split at the median only if both halves keep enough sites per year.

    Every year in [min_year, max_year] must have at least min_size points
    in the whole node, in the points before the median, and in the points
    after the median.
    """

    min_size: int
    """Minimum number of points per year in each region."""

    min_year: int
    """First survey year."""

    max_year: int
    """Last survey year, inclusive."""

    def __post_init__(self):
        if self.min_size < 0:
            raise ConfigurationError("min_size must be non-negative")
        if self.min_year > self.max_year:
            raise ConfigurationError(
                f"min_year ({self.min_year}) must not exceed max_year ({self.max_year})"
            )

    @property
    def year_count(self) -> int:
        return self.max_year - self.min_year + 1

    def count_years(self, points: Sequence[Point]) -> List[int]:
        return count_years(points, self.min_year, self.max_year)

    def check_years(self, points: Sequence[Point]) -> bool:
        """Does each year have enough sites?"""
        return check_years(points, self.min_year, self.max_year, self.min_size)

    def compute_median(self, points: List[Point], split_dimension: int) -> Optional[Point]:
        # O(n log n); the node stays a leaf if any of the three runs falls short
        if not self.check_years(points):
            return None
        if len(points) < 2:
            return None

        m, left_size = sort_for_split(points, split_dimension)

        # An empty left half would leave the right child equal to this node
        if left_size == 0:
            return None

        if not self.check_years(points[:left_size]):
            return None

        if not self.check_years(points[m + 1:]):
            return None

        return points[m]


@dataclass
class BucketSizeStrategy(SplitStrategy):
    """
    Split at the median while a node holds more than max_size points.

    Purely geometric: survey years are ignored.
    """

    max_size: int
    """Largest number of points a leaf may hold."""

    def __post_init__(self):
        if self.max_size < 1:
            raise ConfigurationError("max_size must be at least 1")

    def compute_median(self, points: List[Point], split_dimension: int) -> Optional[Point]:
        if len(points) <= self.max_size:
            return None

        m, left_size = sort_for_split(points, split_dimension)
        if left_size == 0:
            return None
        return points[m]
