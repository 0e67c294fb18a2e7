"""
Loading and generating survey site tables.

This module reads site CSV files through DuckDB's CSV reader and turns
each row into a Point. It also writes site tables and generates random
sample sites for testing and demos.

Default table layout (first line is a header and is skipped):
    site_id, plot_id, x, y, z, year
"""

import csv
import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import duckdb

from .errors import ConfigurationError, SiteFormatError
from .primitives import Point, format_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SiteSchema:
    """Positions of the site table columns (0-based)."""

    attribute_columns: Tuple[int, ...] = (0, 1)
    """Columns copied verbatim into Point.attributes."""

    coordinate_columns: Tuple[int, ...] = (2, 3, 4)
    """Columns parsed as coordinates, in dimension order."""

    year_column: int = 5
    """Column holding the integer survey year."""

    def __post_init__(self):
        if not self.coordinate_columns:
            raise ConfigurationError("at least one coordinate column is required")
        columns = self.attribute_columns + self.coordinate_columns + (self.year_column,)
        if any(c < 0 for c in columns):
            raise ConfigurationError("column positions must be non-negative")
        if len(set(columns)) != len(columns):
            raise ConfigurationError("a column may only be used once")

    @property
    def dimensions(self) -> int:
        return len(self.coordinate_columns)

    @property
    def width(self) -> int:
        """Minimum number of columns a row needs."""
        return max(self.attribute_columns + self.coordinate_columns + (self.year_column,)) + 1


@dataclass
class LoadResult:
    """Sites read from a table together with the year range applied."""

    points: List[Point]
    min_year: int
    max_year: int
    rows_read: int = 0
    rows_ignored: int = 0
    """Rows dropped because their year was outside [min_year, max_year]."""


def _clean(value: Optional[str]) -> str:
    """Strip quotes and surrounding whitespace from a raw field."""
    if value is None:
        return ""
    return value.replace('"', " ").strip()


class SiteLoader:
    """
    Site table reader using DuckDB's CSV reader.

    Every column is read as text and converted here so that malformed
    values can be reported with their row number.
    """

    def __init__(self, schema: Optional[SiteSchema] = None):
        """
        Initialize the loader.

        Args:
            schema: Column layout; the default layout if None
        """
        self.schema = schema or SiteSchema()
        self._con = duckdb.connect(":memory:")

    def read_header(self, path: Path) -> List[str]:
        """
        Read the header line of a CSV file.

        Raises:
            SiteFormatError: if the file is empty, not UTF-8, or narrower
                than the schema
        """
        try:
            with open(path, newline="", encoding="utf-8") as f:
                header = next(csv.reader(f), None)
        except UnicodeDecodeError as e:
            raise SiteFormatError(f"{path}: header is not valid UTF-8: {e}") from None
        if header is None:
            raise SiteFormatError(f"{path} is empty")
        if len(header) < self.schema.width:
            raise SiteFormatError(
                f"{path}: header has {len(header)} columns, "
                f"expected at least {self.schema.width}"
            )
        return header

    def read_rows(self, path: Path) -> List[Tuple[Optional[str], ...]]:
        """
        Read all data rows of a CSV file as text tuples.

        The column count is taken from the header and the dialect is fixed,
        so a row with too many or too few fields is an error.

        Raises:
            SiteFormatError: if DuckDB rejects the file
        """
        width = len(self.read_header(path))
        columns = ", ".join(f"'c{i}': 'VARCHAR'" for i in range(width))
        escaped = str(path).replace("'", "''")
        try:
            return self._con.execute(f"""
                SELECT * FROM read_csv(
                    '{escaped}',
                    auto_detect = false,
                    header = true,
                    delim = ',',
                    quote = '"',
                    escape = '"',
                    columns = {{{columns}}}
                )
            """).fetchall()
        except duckdb.Error as e:
            raise SiteFormatError(f"{path}: {e}") from None

    def parse_row(self, row: Sequence[Optional[str]], line: int) -> Point:
        """
        Convert one table row into a Point.

        Args:
            row: Raw field values
            line: Line number in the file, for error messages

        Raises:
            SiteFormatError: if the row is too short or a number is malformed
        """
        if len(row) < self.schema.width:
            raise SiteFormatError(
                f"line {line}: expected at least {self.schema.width} columns, got {len(row)}"
            )

        coordinates = []
        for c in self.schema.coordinate_columns:
            text = _clean(row[c])
            try:
                coordinates.append(float(text))
            except ValueError:
                raise SiteFormatError(
                    f"line {line}: column {c} is not a number: {text!r}"
                ) from None

        text = _clean(row[self.schema.year_column])
        try:
            year = int(text)
        except ValueError:
            raise SiteFormatError(
                f"line {line}: year column {self.schema.year_column} is not an integer: {text!r}"
            ) from None

        attributes = [_clean(row[c]) for c in self.schema.attribute_columns]
        return Point(coordinates, year, attributes)

    def load(
        self,
        path: Path,
        min_year: Optional[int] = None,
        max_year: Optional[int] = None,
    ) -> LoadResult:
        """
        Load sites from a CSV file.

        A year bound left as None is computed from the data. Rows outside
        a given bound are dropped.

        Args:
            path: CSV file with a header line
            min_year: Earliest year to keep
            max_year: Latest year to keep

        Returns:
            LoadResult with the kept points and the effective year range
        """
        if not path.exists():
            raise FileNotFoundError(f"Site table not found: {path}")

        rows = self.read_rows(path)
        # Line 1 is the header
        points = [self.parse_row(row, i + 2) for i, row in enumerate(rows)]

        if (min_year is None or max_year is None) and not points:
            raise SiteFormatError(f"{path} contains no sites to compute a year range from")

        lo = min_year if min_year is not None else min(p.year for p in points)
        hi = max_year if max_year is not None else max(p.year for p in points)
        if lo > hi:
            raise ConfigurationError(f"min_year ({lo}) must not exceed max_year ({hi})")

        kept = [p for p in points if lo <= p.year <= hi]
        ignored = len(points) - len(kept)
        if ignored:
            logger.info("Ignoring %d sites outside years %d-%d", ignored, lo, hi)

        return LoadResult(
            points=kept,
            min_year=lo,
            max_year=hi,
            rows_read=len(points),
            rows_ignored=ignored,
        )

    def close(self) -> None:
        """Close DuckDB connection."""
        self._con.close()

    def __enter__(self) -> "SiteLoader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def load_sites(
    path: Path,
    min_year: Optional[int] = None,
    max_year: Optional[int] = None,
    schema: Optional[SiteSchema] = None,
) -> LoadResult:
    """
    Convenience function to load a site table.

    Args:
        path: CSV file path
        min_year: Earliest year to keep (computed from data if None)
        max_year: Latest year to keep (computed from data if None)
        schema: Column layout

    Returns:
        LoadResult
    """
    with SiteLoader(schema) as loader:
        return loader.load(path, min_year, max_year)


def write_sites(points: Sequence[Point], path: Path) -> None:
    """
    Write points as a site table in the default layout.

    Columns are the attributes, then the coordinates, then the year,
    preceded by a header line.
    """
    if not points:
        raise ValueError("no sites to write")
    n_attributes = len(points[0].attributes)
    header = (
        [f"attr{i}" for i in range(n_attributes)]
        + [f"x{d}" for d in range(points[0].dimensions)]
        + ["year"]
    )
    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for p in points:
            writer.writerow(
                list(p.attributes)
                + [format_number(c) for c in p.coordinates]
                + [str(p.year)]
            )


def sample_sites(
    count: int,
    dimensions: int = 3,
    years: Sequence[int] = (2001, 2002),
    seed: int = 42,
) -> List[Point]:
    """
    Generate deterministic random sites.

    Coordinates are whole numbers in [0, 100). Years are assigned
    round-robin from years, so each year gets count // len(years) sites
    (the first few years one more when count does not divide evenly).

    Args:
        count: Number of sites
        dimensions: Number of coordinates per site
        years: Survey years to cycle through
        seed: Random seed

    Returns:
        List of Points with attributes [site id, plot id]
    """
    if not years:
        raise ValueError("years must not be empty")
    rng = random.Random(seed)
    points = []
    for i in range(count):
        coordinates = [float(int(rng.random() * 100.0)) for _ in range(dimensions)]
        points.append(Point(coordinates, years[i % len(years)], [f"S{i}", f"P{i}"]))
    return points
