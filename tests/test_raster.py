import unittest

from darkspots.config import DEFAULT_RASTER_PATH
from darkspots.data_sources.raster_sources import load_raster_json
from darkspots.raster import NOT_COVERED, RasterGrid

BOUNDS = {"minLat": 48.0, "maxLat": 48.3, "minLng": 11.0, "maxLng": 11.3}


def _small_grid():
    return RasterGrid.from_rows(
        0.1,
        BOUNDS,
        [
            [4, None, 3],
            [5, 6, 0],
            [2, 2, 7],
        ],
    )


class TestRasterGrid(unittest.TestCase):
    def test_shape_and_describe(self):
        grid = _small_grid()
        self.assertEqual((grid.n_rows, grid.n_cols), (3, 3))
        info = grid.describe()
        self.assertEqual(info["covered_cells"], 7)
        self.assertEqual(info["bounds"]["maxLat"], 48.3)

    def test_lookup_uses_row_from_north_edge(self):
        grid = _small_grid()
        self.assertEqual(grid.lookup(48.28, 11.02), 4)   # row 0, col 0
        self.assertEqual(grid.lookup(48.02, 11.02), 2)   # row 2, col 0
        self.assertEqual(grid.lookup(48.15, 11.15), 6)   # row 1, col 1

    def test_lookup_outside_bounds_is_not_covered(self):
        grid = _small_grid()
        self.assertIs(grid.lookup(47.9, 11.1), NOT_COVERED)
        self.assertIs(grid.lookup(48.1, 11.4), NOT_COVERED)
        self.assertIs(grid.lookup(-10.0, 200.0), NOT_COVERED)

    def test_lookup_no_data_cells(self):
        grid = _small_grid()
        self.assertIs(grid.lookup(48.25, 11.15), NOT_COVERED)  # null
        self.assertIs(grid.lookup(48.15, 11.25), NOT_COVERED)  # 0

    def test_cell_center_round_trips_through_lookup(self):
        grid = _small_grid()
        for cell in grid.iter_cells():
            self.assertEqual(grid.lookup(cell.lat, cell.lng), cell.brightness_class)
            self.assertEqual(grid.cell_center(cell.row, cell.col), (cell.lat, cell.lng))

    def test_iter_cells_row_major_and_skips_no_data(self):
        grid = _small_grid()
        indices = [(c.row, c.col) for c in grid.iter_cells()]
        self.assertEqual(indices, [(0, 0), (0, 2), (1, 0), (1, 1), (2, 0), (2, 1), (2, 2)])

    def test_iter_cells_skips_centres_outside_bounds(self):
        # 3 rows declared but the bounds only span 2 cells of latitude
        grid = RasterGrid.from_rows(0.1, {"minLat": 48.0, "maxLat": 48.2, "minLng": 11.0, "maxLng": 11.1},
                                    [[3], [3], [3]])
        self.assertEqual([c.row for c in grid.iter_cells()], [0, 1])

    def test_cells_are_read_only(self):
        grid = _small_grid()
        with self.assertRaises(ValueError):
            grid.cells[0, 0] = 1

    def test_ragged_rows_rejected(self):
        with self.assertRaises(ValueError):
            RasterGrid.from_rows(0.1, BOUNDS, [[1, 2], [3]])

    def test_out_of_scale_values_rejected(self):
        with self.assertRaises(ValueError):
            RasterGrid.from_rows(0.1, BOUNDS, [[1, 12]])

    def test_invalid_geometry_rejected(self):
        with self.assertRaises(ValueError):
            RasterGrid.from_rows(0.0, BOUNDS, [[1]])
        with self.assertRaises(ValueError):
            RasterGrid.from_rows(0.1, {"minLat": 1, "maxLat": 0, "minLng": 0, "maxLng": 1}, [[1]])

    def test_payload_missing_key(self):
        with self.assertRaises(ValueError):
            RasterGrid.from_payload({"resolution": 0.1, "grid": [[1]]})

    def test_bundled_sample_covers_munich(self):
        grid = load_raster_json(DEFAULT_RASTER_PATH)
        self.assertEqual(grid.lookup(48.1351, 11.582), 8)
        self.assertIs(grid.lookup(52.52, 13.405), NOT_COVERED)


if __name__ == "__main__":
    unittest.main()
