"""Tests for the drapemesh command-line interface."""

import numpy as np
import pytest

from drapemesh.cli.drapemesh import main, parse_bbox, read_file_list

from conftest import line, write_geojson


class TestMain:
    """Test exit codes and outputs of the console script."""

    def test_success(self, outline_geojson, plane_tif, tmp_path):
        out = tmp_path / "mesh.npz"

        code = main([
            "--vector", str(outline_geojson),
            "--dem", str(plane_tif),
            "--density", "40",
            "--out", str(out),
        ])

        assert code == 0
        with np.load(out) as data:
            assert data["triangles"].shape[1] == 3
            assert np.all(np.isfinite(data["elevation"]))

    def test_dem_list(self, outline_geojson, plane_tif, tmp_path):
        dem_list = tmp_path / "dems.txt"
        dem_list.write_text(f"{plane_tif}\n\n", encoding="utf-8")
        out = tmp_path / "mesh.ply"

        code = main([
            "--vector", str(outline_geojson),
            "--dem-list", str(dem_list),
            "--bbox", "3.9,3.9,5.1,5.1",
            "--out", str(out),
            "--verbose",
        ])

        assert code == 0
        assert out.is_file()

    def test_missing_dem(self, outline_geojson, tmp_path, capsys):
        code = main([
            "--vector", str(outline_geojson),
            "--out", str(tmp_path / "mesh.npz"),
        ])

        assert code == 1
        assert "No DEM files" in capsys.readouterr().err

    def test_missing_dem_list(self, outline_geojson, tmp_path, capsys):
        code = main([
            "--vector", str(outline_geojson),
            "--dem-list", str(tmp_path / "nope.txt"),
            "--out", str(tmp_path / "mesh.npz"),
        ])

        assert code == 1
        assert "DEM list file not found" in capsys.readouterr().err

    def test_bad_bbox(self, outline_geojson, plane_tif, tmp_path, capsys):
        code = main([
            "--vector", str(outline_geojson),
            "--dem", str(plane_tif),
            "--bbox", "1,2,3",
            "--out", str(tmp_path / "mesh.npz"),
        ])

        assert code == 1
        assert "Invalid --bbox" in capsys.readouterr().err

    def test_pipeline_error(self, plane_tif, tmp_path, capsys):
        vector = write_geojson(
            tmp_path / "open.geojson",
            [line([(2, 2), (8, 2), (8, 8)])],
            crs="EPSG:32633",
        )
        out = tmp_path / "mesh.npz"

        code = main([
            "--vector", str(vector),
            "--dem", str(plane_tif),
            "--out", str(out),
        ])

        assert code == 1
        assert "Ring is open" in capsys.readouterr().err
        assert not out.exists()


class TestHelpers:

    def test_parse_bbox(self):
        assert parse_bbox("1,2.5,3,4") == (1.0, 2.5, 3.0, 4.0)

    def test_parse_bbox_wrong_count(self):
        with pytest.raises(ValueError):
            parse_bbox("1,2")

    def test_read_file_list(self, tmp_path):
        listing = tmp_path / "list.txt"
        listing.write_text("a.tif\n  \nb.tif\n", encoding="utf-8")

        assert read_file_list(listing) == ["a.tif", "b.tif"]
