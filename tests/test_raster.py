"""Tests for raster loading, reprojection and elevation sampling."""

import numpy as np
import pytest
from pyproj import Transformer
from rasterio.transform import from_origin

from drapemesh.errors import OutsideRasterError
from drapemesh.mesh import Mesh
from drapemesh.raster import (
    RasterGrid,
    drape_mesh,
    load_raster,
    project_raster,
    sample_elevation,
)

from conftest import plane, write_geotiff


@pytest.fixture
def grid(plane_values, plane_transform):
    return RasterGrid(plane_values, plane_transform, crs="EPSG:32633")


class TestRasterGrid:
    """Test the grid container."""

    def test_bounds(self, grid):
        assert grid.shape == (20, 20)
        np.testing.assert_allclose(grid.bounds, (0.0, 0.0, 10.0, 10.0))

    def test_read_only(self, grid):
        with pytest.raises(ValueError):
            grid.values[0, 0] = 1.0

    def test_rejects_1d(self, plane_transform):
        with pytest.raises(ValueError):
            RasterGrid(np.arange(5.0), plane_transform)

    def test_masked_values(self, plane_transform):
        values = np.array([[1.0, -9999.0], [3.0, 4.0]])
        grid = RasterGrid(values, plane_transform, nodata=-9999.0)

        masked = grid.masked_values()

        assert np.isnan(masked[0, 1])
        assert masked[1, 1] == 4.0


class TestLoadRaster:
    """Test GeoTIFF loading and merging."""

    def test_single_file(self, plane_tif, plane_values):
        grid = load_raster(plane_tif)

        assert grid.shape == (20, 20)
        assert grid.crs.to_epsg() == 32633
        np.testing.assert_allclose(grid.values, plane_values)
        np.testing.assert_allclose(grid.bounds, (0.0, 0.0, 10.0, 10.0))

    def test_merge_tiles(self, tmp_path, plane_values):
        left = write_geotiff(
            tmp_path / "left.tif", plane_values[:, :10],
            from_origin(0.0, 10.0, 0.5, 0.5)
        )
        right = write_geotiff(
            tmp_path / "right.tif", plane_values[:, 10:],
            from_origin(5.0, 10.0, 0.5, 0.5)
        )

        grid = load_raster([left, right])

        assert grid.shape == (20, 20)
        np.testing.assert_allclose(grid.values, plane_values)

    def test_gap_between_tiles_is_missing(self, tmp_path):
        """Cells no tile covers read as missing, not as zero elevation."""
        values = np.full((4, 4), 50.0)
        west = write_geotiff(
            tmp_path / "west.tif", values, from_origin(0.0, 4.0, 1.0, 1.0)
        )
        east = write_geotiff(
            tmp_path / "east.tif", values, from_origin(10.0, 4.0, 1.0, 1.0)
        )

        grid = load_raster([west, east])

        assert grid.nodata is None
        assert np.isnan(grid.values).any()
        with pytest.raises(OutsideRasterError):
            sample_elevation(grid, [(7.0, 2.0)], method="nearest")
        with pytest.raises(OutsideRasterError):
            sample_elevation(grid, [(7.0, 2.0)])

        z = sample_elevation(
            grid, [(2.0, 2.0), (7.0, 2.0), (12.0, 2.0)],
            method="nearest", on_missing="nan"
        )
        np.testing.assert_allclose(z[[0, 2]], 50.0)
        assert np.isnan(z[1])

    def test_nodata_kept(self, tmp_path, plane_values, plane_transform):
        path = write_geotiff(
            tmp_path / "nd.tif", plane_values, plane_transform, nodata=-9999.0
        )

        assert load_raster(path).nodata == -9999.0

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_raster(tmp_path / "missing.tif")

    def test_no_paths(self):
        with pytest.raises(ValueError):
            load_raster([])


class TestProjectRaster:
    """Test reprojection between CRSs."""

    def test_to_geographic(self):
        values = np.full((10, 10), 100.0)
        transform = from_origin(500000.0, 5001000.0, 100.0, 100.0)
        grid = RasterGrid(values, transform, crs="EPSG:32633")

        projected = project_raster(grid, "EPSG:4326")

        assert projected.crs.to_epsg() == 4326
        finite = projected.values[np.isfinite(projected.values)]
        assert finite.size > 0
        np.testing.assert_allclose(finite, 100.0, rtol=1e-6)

        lon, lat = Transformer.from_crs(
            "EPSG:32633", "EPSG:4326", always_xy=True
        ).transform(500500.0, 5000500.0)
        z = sample_elevation(projected, [(lon, lat)])
        assert z[0] == pytest.approx(100.0)

    def test_requires_crs(self, plane_values, plane_transform):
        grid = RasterGrid(plane_values, plane_transform)

        with pytest.raises(ValueError, match="no CRS"):
            project_raster(grid, "EPSG:4326")


class TestSampleElevation:
    """Test nearest and bilinear sampling."""

    def test_nearest_cell(self, grid):
        z = sample_elevation(grid, [(1.1, 8.9)], method="nearest")

        assert z[0] == pytest.approx(plane(1.25, 8.75))

    def test_bilinear_interior(self, grid):
        points = np.array([(0.3, 0.3), (2.2, 7.9), (5.0, 5.0), (9.7, 9.7)])

        z = sample_elevation(grid, points)

        np.testing.assert_allclose(z, plane(points[:, 0], points[:, 1]), atol=1e-6)

    def test_bilinear_edge_clamps(self, grid):
        z = sample_elevation(grid, [(0.1, 5.0), (10.0, 10.0)])

        assert z[0] == pytest.approx(plane(0.25, 5.0))
        assert z[1] == pytest.approx(plane(9.75, 9.75))

    def test_extra_columns_ignored(self, grid):
        z = sample_elevation(grid, [(5.0, 5.0, 123.0)])

        assert z[0] == pytest.approx(plane(5.0, 5.0))

    @pytest.mark.parametrize("method", ["nearest", "bilinear"])
    def test_idempotent(self, grid, method):
        points = np.random.default_rng(0).uniform(0, 10, size=(50, 2))

        first = sample_elevation(grid, points, method=method)
        second = sample_elevation(grid, points, method=method)

        np.testing.assert_array_equal(first, second)

    @pytest.mark.parametrize("point", [(10.5, 5.0), (-0.1, 5.0), (5.0, 12.0)])
    def test_outside_raises(self, grid, point):
        with pytest.raises(OutsideRasterError):
            sample_elevation(grid, [(5.0, 5.0), point])

    def test_outside_nan(self, grid):
        z = sample_elevation(grid, [(5.0, 5.0), (20.0, 20.0)], on_missing="nan")

        assert z[0] == pytest.approx(plane(5.0, 5.0))
        assert np.isnan(z[1])

    def test_nodata_cell(self, plane_values, plane_transform):
        values = plane_values.copy()
        values[0, 0] = -9999.0
        grid = RasterGrid(values, plane_transform, nodata=-9999.0)

        with pytest.raises(OutsideRasterError, match="nodata"):
            sample_elevation(grid, [(0.2, 9.8)], method="nearest")

        z = sample_elevation(
            grid, [(0.2, 9.8), (5.0, 5.0)], method="nearest", on_missing="nan"
        )
        assert np.isnan(z[0])
        assert z[1] == pytest.approx(plane(5.25, 4.75))

        far = sample_elevation(grid, [(5.0, 5.0)])
        assert far[0] == pytest.approx(plane(5.0, 5.0))

    def test_unknown_method(self, grid):
        with pytest.raises(ValueError):
            sample_elevation(grid, [(1.0, 1.0)], method="cubic")

    def test_unknown_policy(self, grid):
        with pytest.raises(ValueError):
            sample_elevation(grid, [(1.0, 1.0)], on_missing="zero")


class TestDrapeMesh:
    """Test attaching elevation to a mesh."""

    def test_returns_new_mesh(self, grid):
        mesh = Mesh(
            vertices=[(2.0, 2.0), (6.0, 2.0), (4.0, 6.0)],
            triangles=[(0, 1, 2)]
        )

        draped = drape_mesh(mesh, grid)

        assert draped is not mesh
        assert not mesh.is_draped
        np.testing.assert_allclose(
            draped.elevation, [plane(2, 2), plane(6, 2), plane(4, 6)]
        )
        np.testing.assert_array_equal(draped.triangles, mesh.triangles)
        assert draped.vertices_3d.shape == (3, 3)
