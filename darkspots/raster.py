"""Dense light-pollution raster over a fixed geographic bounding box.

Cells hold Bortle classes (1 = pristine, 9 = inner city); 0 marks a cell
without data. Row 0 is the northern edge and column 0 the western edge, so

    row = floor((max_lat - lat) / resolution)
    col = floor((lng - min_lng) / resolution)

The grid is loaded once at startup and never written afterwards, so a single
instance is shared by all concurrent requests.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, NamedTuple, Optional, Sequence

import numpy as np

NO_DATA = 0
# Returned by RasterGrid.lookup for points without coverage.
NOT_COVERED = None


class GridCell(NamedTuple):
    """A covered cell, addressed by index and centre coordinate."""
    row: int
    col: int
    lat: float
    lng: float
    brightness_class: int


@dataclass(frozen=True, eq=False)
class RasterGrid:
    """Immutable Bortle-class grid with O(1) point lookup."""
    resolution: float
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float
    cells: np.ndarray

    def __post_init__(self):
        if not self.resolution > 0:
            raise ValueError(f"resolution must be positive, got {self.resolution}")
        if self.min_lat >= self.max_lat or self.min_lng >= self.max_lng:
            raise ValueError("raster bounds are empty or inverted")
        if self.cells.ndim != 2:
            raise ValueError(f"cells must be a 2-D array, got {self.cells.ndim} dimensions")
        if self.cells.size and (self.cells.min() < NO_DATA or self.cells.max() > 9):
            raise ValueError("cells must hold Bortle classes 1-9 (0 for no data)")
        self.cells.setflags(write=False)

    @classmethod
    def from_rows(
        cls,
        resolution: float,
        bounds: Mapping[str, float],
        rows: Sequence[Sequence[Optional[float]]],
    ) -> "RasterGrid":
        """Build a grid from nested row lists; None/null entries mean no data."""
        if rows and len({len(r) for r in rows}) > 1:
            raise ValueError("raster rows must all have the same length")
        data = [[NO_DATA if v is None else int(v) for v in r] for r in rows]
        cells = np.array(data, dtype=np.int16).reshape(len(data), len(data[0]) if data else 0)
        return cls(
            resolution=float(resolution),
            min_lat=float(bounds["minLat"]),
            max_lat=float(bounds["maxLat"]),
            min_lng=float(bounds["minLng"]),
            max_lng=float(bounds["maxLng"]),
            cells=cells,
        )

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RasterGrid":
        """Build a grid from the `{resolution, bounds, grid}` dataset layout."""
        try:
            return cls.from_rows(payload["resolution"], payload["bounds"], payload["grid"])
        except KeyError as exc:
            raise ValueError(f"raster payload is missing {exc.args[0]!r}") from exc

    @property
    def n_rows(self) -> int:
        return int(self.cells.shape[0])

    @property
    def n_cols(self) -> int:
        return int(self.cells.shape[1])

    def contains(self, lat: float, lng: float) -> bool:
        """True if the point lies inside the bounding box (edges included)."""
        return self.min_lat <= lat <= self.max_lat and self.min_lng <= lng <= self.max_lng

    def lookup(self, lat: float, lng: float) -> Optional[int]:
        """Return the Bortle class at a point, or NOT_COVERED."""
        if not self.contains(lat, lng):
            return NOT_COVERED
        row = math.floor((self.max_lat - lat) / self.resolution)
        col = math.floor((lng - self.min_lng) / self.resolution)
        if not (0 <= row < self.n_rows and 0 <= col < self.n_cols):
            return NOT_COVERED
        value = int(self.cells[row, col])
        return NOT_COVERED if value == NO_DATA else value

    def cell_center(self, row: int, col: int) -> tuple[float, float]:
        """Centre coordinate of a cell."""
        lat = self.max_lat - (row + 0.5) * self.resolution
        lng = self.min_lng + (col + 0.5) * self.resolution
        return lat, lng

    def iter_cells(self, row_range: Optional[range] = None) -> Iterator[GridCell]:
        """Yield covered cells with in-bounds centres in row-major order."""
        rows = row_range if row_range is not None else range(self.n_rows)
        for row in rows:
            for col in range(self.n_cols):
                value = int(self.cells[row, col])
                if value == NO_DATA:
                    continue
                lat, lng = self.cell_center(row, col)
                if not self.contains(lat, lng):
                    continue
                yield GridCell(row, col, lat, lng, value)

    def describe(self) -> dict:
        """Summary used for logs and health checks."""
        return {
            "resolution": self.resolution,
            "bounds": {
                "minLat": self.min_lat,
                "maxLat": self.max_lat,
                "minLng": self.min_lng,
                "maxLng": self.max_lng,
            },
            "rows": self.n_rows,
            "cols": self.n_cols,
            "covered_cells": int(np.count_nonzero(self.cells)),
        }
