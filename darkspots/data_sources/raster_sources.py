"""Loaders that turn a stored light-pollution dataset into a RasterGrid.

Two layouts are supported:

* a JSON file `{"resolution", "bounds": {minLat, maxLat, minLng, maxLng}, "grid": [[...]]}`
  where `null` or `0` marks a cell without data;
* a SQL database with a one-row grid metadata table and a sparse cell table
  of `(row_index, col_index, bortle)` rows, read through SQLAlchemy.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Mapping

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from darkspots.raster import NO_DATA, RasterGrid
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="raster_sources")


def load_raster_json(path: str | Path) -> RasterGrid:
    """Load a raster from the JSON dataset layout."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Raster dataset not found: {path}")
    with path.open("r", encoding="utf-8") as fh:
        payload = json.load(fh)
    grid = RasterGrid.from_payload(payload)
    logger.info("Loaded raster from JSON", extra={"path": str(path), **grid.describe()})
    return grid


class SqlRasterSource:
    """Read a raster from SQL tables instead of a bundled file."""

    def __init__(
        self,
        engine: Engine,
        *,
        cells_table: str = "light_pollution_cells",
        metadata_table: str = "light_pollution_grid",
    ) -> None:
        """Bind to a database engine and optionally override source tables."""
        self.engine = engine
        self.cells_table = cells_table
        self.metadata_table = metadata_table

    @classmethod
    def from_url(cls, database_url: str, **kwargs) -> "SqlRasterSource":
        """Create an engine from a URL and build the source."""
        engine = create_engine(database_url, future=True)
        return cls(engine, **kwargs)

    @staticmethod
    def _bounds(row: Mapping) -> dict:
        return {
            "minLat": row["min_lat"],
            "maxLat": row["max_lat"],
            "minLng": row["min_lng"],
            "maxLng": row["max_lng"],
        }

    def load(self) -> RasterGrid:
        """Read metadata and cells and assemble a dense grid."""
        meta_query = text(
            f"""
            SELECT resolution, min_lat, max_lat, min_lng, max_lng, n_rows, n_cols
            FROM {self.metadata_table}
            LIMIT 1
            """
        )
        cells_query = text(
            f"""
            SELECT row_index, col_index, bortle
            FROM {self.cells_table}
            """
        )
        with self.engine.connect() as conn:
            meta = conn.execute(meta_query).mappings().first()
            if not meta:
                raise LookupError(f"No raster metadata found in {self.metadata_table}")
            n_rows, n_cols = int(meta["n_rows"]), int(meta["n_cols"])
            rows = [[NO_DATA] * n_cols for _ in range(n_rows)]
            skipped = 0
            for cell in conn.execute(cells_query).mappings():
                r, c = int(cell["row_index"]), int(cell["col_index"])
                if not (0 <= r < n_rows and 0 <= c < n_cols):
                    skipped += 1
                    continue
                rows[r][c] = NO_DATA if cell["bortle"] is None else int(cell["bortle"])

        if skipped:
            logger.warning("Ignored raster cells outside the declared shape", extra={"skipped": skipped})
        grid = RasterGrid.from_rows(meta["resolution"], self._bounds(meta), rows)
        logger.info("Loaded raster from SQL", extra=grid.describe())
        return grid
