"""
site-kdtree: Year-balanced kd-tree partitioning of survey sites.

This package splits a cloud of geo-referenced survey sites into kd-tree
regions, refusing any split that would leave a region with fewer than
min_size sites for one of the survey years.
"""

__version__ = "0.1.0"

from .primitives import Interval, Point, Box
from .errors import (
    KdTreeError,
    ConfigurationError,
    ContractViolation,
    YearOutOfRange,
    InvalidInterval,
    DimensionMismatch,
    TooDeep,
    SiteFormatError,
)
from .strategy import (
    SplitStrategy,
    YearBalanceStrategy,
    BucketSizeStrategy,
    check_years,
    count_years,
)
from .kdtree import KdNode, LeafNode, InternalNode, KdTree, leaf_points
from .builder import KdTreeBuilder, BuilderConfig, BuilderStats, NodeIdCounter, build_kdtree
from .report import format_tree_report, write_leaf_csv, leaf_rows
from .sites import SiteLoader, SiteSchema, load_sites, sample_sites, write_sites

__all__ = [
    "Interval",
    "Point",
    "Box",
    "KdTreeError",
    "ConfigurationError",
    "ContractViolation",
    "YearOutOfRange",
    "InvalidInterval",
    "DimensionMismatch",
    "TooDeep",
    "SiteFormatError",
    "SplitStrategy",
    "YearBalanceStrategy",
    "BucketSizeStrategy",
    "check_years",
    "count_years",
    "KdNode",
    "LeafNode",
    "InternalNode",
    "KdTree",
    "leaf_points",
    "KdTreeBuilder",
    "BuilderConfig",
    "BuilderStats",
    "NodeIdCounter",
    "build_kdtree",
    "format_tree_report",
    "write_leaf_csv",
    "leaf_rows",
    "SiteLoader",
    "SiteSchema",
    "load_sites",
    "sample_sites",
    "write_sites",
]
