"""
Exception types raised by the kd-tree builder and its helpers.

Configuration errors are reported to the caller before any node is built.
Contract violations are programming errors: a point or box reached code
that cannot handle it, and construction stops immediately.
"""


class KdTreeError(Exception):
    """Base class for all site-kdtree errors."""


class ConfigurationError(KdTreeError, ValueError):
    """Invalid builder or strategy configuration."""


class ContractViolation(KdTreeError, ValueError):
    """A caller broke a precondition of the core."""


class YearOutOfRange(ContractViolation):
    """A point's year lies outside the configured [min_year, max_year]."""

    def __init__(self, year: int, min_year: int, max_year: int):
        super().__init__(
            f"Year {year} outside configured range [{min_year}, {max_year}]"
        )
        self.year = year
        self.min_year = min_year
        self.max_year = max_year


class InvalidInterval(ContractViolation):
    """Length or volume requested from an interval that was never valid."""


class DimensionMismatch(ContractViolation):
    """A point's dimension differs from the tree's dimension."""


class TooDeep(KdTreeError):
    """Tree construction exceeded the configured maximum depth."""

    def __init__(self, max_depth: int, size: int):
        super().__init__(
            f"Maximum depth {max_depth} exceeded while splitting {size} points"
        )
        self.max_depth = max_depth
        self.size = size


class SiteFormatError(KdTreeError, ValueError):
    """A row of the site table could not be parsed."""
