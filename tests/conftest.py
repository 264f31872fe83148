"""Shared fixtures: tiny GeoTIFF and GeoJSON inputs written to tmp_path."""

import json

import numpy as np
import pytest
import rasterio
from rasterio.transform import from_origin


UTM_CRS = "EPSG:32633"


def plane(x, y):
    """Elevation surface used by the plane raster."""
    return 2.0 * x + 3.0 * y


def write_geotiff(path, values, transform, crs=UTM_CRS, nodata=None):
    values = np.asarray(values, dtype=np.float32)
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=values.shape[0],
        width=values.shape[1],
        count=1,
        dtype="float32",
        crs=crs,
        transform=transform,
        nodata=nodata,
    ) as dst:
        dst.write(values, 1)
    return path


def write_geojson(path, geometries, properties=None, crs=None):
    properties = properties or [{} for _ in geometries]
    collection = {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "properties": props, "geometry": geom}
            for geom, props in zip(geometries, properties)
        ],
    }
    if crs is not None:
        collection["crs"] = {"type": "name", "properties": {"name": crs}}
    with open(path, "w", encoding="utf-8") as f:
        json.dump(collection, f)
    return path


def line(coords):
    return {"type": "LineString", "coordinates": [list(c) for c in coords]}


def square(x0, y0, x1, y1):
    return [(x0, y0), (x1, y0), (x1, y1), (x0, y1), (x0, y0)]


@pytest.fixture
def plane_values():
    """20 x 20 cells of 0.5 m covering x, y in [0, 10]."""
    cell = 0.5
    centres = (np.arange(20) + 0.5) * cell
    xx, yy = np.meshgrid(centres, centres[::-1])
    return plane(xx, yy)


@pytest.fixture
def plane_transform():
    return from_origin(0.0, 10.0, 0.5, 0.5)


@pytest.fixture
def plane_tif(tmp_path, plane_values, plane_transform):
    return write_geotiff(tmp_path / "plane.tif", plane_values, plane_transform)


@pytest.fixture
def outline_geojson(tmp_path):
    """Outer square ring plus a small inner ring, in UTM coordinates."""
    return write_geojson(
        tmp_path / "outline.geojson",
        [line(square(2, 2, 8, 8)), line(square(4, 4, 5, 5))],
        properties=[{"name": "outer"}, {"name": "inner"}],
        crs=UTM_CRS,
    )
