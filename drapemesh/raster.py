"""
Raster elevation grids: loading, reprojection and point sampling.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import numpy as np
import rasterio
from affine import Affine
from rasterio.crs import CRS
from rasterio.io import MemoryFile
from rasterio.merge import merge
from rasterio.transform import array_bounds
from rasterio.warp import (
    Resampling,
    calculate_default_transform,
    reproject,
)
from scipy.ndimage import map_coordinates

from .errors import OutsideRasterError

logger = logging.getLogger(__name__)

SAMPLING_METHODS = ("bilinear", "nearest")
MISSING_POLICIES = ("raise", "nan")

# Slack, in pixels, when testing whether a point lies on the raster edge
EDGE_TOLERANCE = 1e-9


@dataclass(frozen=True, eq=False)
class RasterGrid:
    """
    Read-only elevation grid.

    Attributes
    ----------
    values : np.ndarray
        2D elevation array (rows, cols).
    transform : affine.Affine
        Affine transform from (col, row) to spatial (x, y).
    crs : Any
        Coordinate reference system of the grid (rasterio or pyproj CRS).
    nodata : float or None
        Value marking cells without data. NaN cells are always missing.
    """
    values: np.ndarray
    transform: Affine
    crs: Any = None
    nodata: Optional[float] = None

    def __post_init__(self):
        values = np.asarray(self.values)
        if values.ndim != 2 or 0 in values.shape:
            raise ValueError("Raster values must be a non-empty 2D array.")
        values = values.copy()
        values.setflags(write=False)
        object.__setattr__(self, "values", values)

    @property
    def shape(self):
        return self.values.shape

    @property
    def bounds(self):
        """(left, bottom, right, top) of the covered extent."""
        height, width = self.shape
        return array_bounds(height, width, self.transform)

    def masked_values(self):
        """Elevation as float array with nodata cells set to NaN."""
        data = self.values.astype(float)
        if self.nodata is not None and not np.isnan(self.nodata):
            data[self.values == self.nodata] = np.nan
        return data


def load_raster(paths):
    """
    Load and merge one or more GeoTIFF files into a single elevation grid.

    All tiles are brought to the CRS of the first tile before merging.
    Only the first band is kept. When the tiles declare no nodata value,
    the merged grid is float64 and cells no tile covers are NaN.

    Parameters
    ----------
    paths : str, Path, or list of str/Path
        Path(s) to one or more GeoTIFF files.

    Returns
    -------
    RasterGrid
        Merged elevation grid.

    Raises
    ------
    FileNotFoundError
        If one of the files does not exist.
    ValueError
        If no path is given.
    """
    if isinstance(paths, (str, Path)):
        paths = [paths]
    paths = [Path(p) for p in paths]
    if not paths:
        raise ValueError("No raster files given.")

    for path in paths:
        if not path.is_file():
            raise FileNotFoundError(f"Raster file not found: {path}")

    target_crs = None
    nodata = None
    datasets = []
    memfiles = []

    try:
        for path in paths:
            src = rasterio.open(path)
            if target_crs is None:
                target_crs = src.crs
                nodata = src.nodata

            if src.crs == target_crs:
                datasets.append(src)
                continue

            logger.debug("Reprojecting %s from %s", path, src.crs)
            transform, width, height = calculate_default_transform(
                src.crs, target_crs, src.width, src.height, *src.bounds
            )
            kwargs = src.meta.copy()
            kwargs.update({
                "crs": target_crs,
                "transform": transform,
                "width": width,
                "height": height
            })
            data = np.empty((src.count, height, width), dtype=src.dtypes[0])
            for band in range(src.count):
                reproject(
                    source=rasterio.band(src, band + 1),
                    destination=data[band],
                    src_transform=src.transform,
                    src_crs=src.crs,
                    dst_transform=transform,
                    dst_crs=target_crs,
                    src_nodata=src.nodata,
                    dst_nodata=src.nodata,
                    resampling=Resampling.bilinear
                )
            src.close()

            memfile = MemoryFile()
            memfiles.append(memfile)
            dataset = memfile.open(**kwargs)
            dataset.write(data)
            datasets.append(dataset)

        if nodata is None:
            # Gaps between tiles must read as missing, not as zero
            merged, transform = merge(
                datasets, nodata=np.nan, dtype="float64"
            )
        else:
            merged, transform = merge(datasets, nodata=nodata)
    finally:
        for dataset in datasets:
            dataset.close()
        for memfile in memfiles:
            memfile.close()

    grid = RasterGrid(
        values=merged[0],
        transform=transform,
        crs=target_crs,
        nodata=nodata
    )
    logger.debug("Loaded raster %s from %d file(s)", grid.shape, len(paths))
    return grid


def project_raster(
    grid,
    target_crs,
    resolution=None
):
    """
    Reproject an elevation grid to another CRS.

    Cells outside the source coverage become NaN, which the sampler
    treats as missing.

    Parameters
    ----------
    grid : RasterGrid
        Source grid; its ``crs`` must be set.
    target_crs : str or CRS
        Target CRS (e.g. "EPSG:32633").
    resolution : float or tuple of float, optional
        Output cell size in target units. If None, it is inferred.

    Returns
    -------
    RasterGrid
        Reprojected grid (float64, nodata as NaN).

    Raises
    ------
    ValueError
        If the grid has no CRS or the output dimensions are invalid.
    """
    if grid.crs is None:
        raise ValueError("Raster grid has no CRS to project from.")
    source_crs = CRS.from_user_input(grid.crs)
    target_crs = CRS.from_user_input(target_crs)
    if isinstance(resolution, (int, float)):
        resolution = (resolution, resolution)

    height, width = grid.shape
    left, bottom, right, top = grid.bounds

    transform_proj, width_proj, height_proj = calculate_default_transform(
        src_crs=source_crs,
        dst_crs=target_crs,
        width=width,
        height=height,
        left=left,
        bottom=bottom,
        right=right,
        top=top,
        resolution=resolution
    )

    if not width_proj or not height_proj:
        raise ValueError("Invalid projected dimensions.")

    projected = np.full((height_proj, width_proj), np.nan, dtype=np.float64)

    reproject(
        source=grid.masked_values(),
        destination=projected,
        src_transform=grid.transform,
        src_crs=source_crs,
        dst_transform=transform_proj,
        dst_crs=target_crs,
        src_nodata=np.nan,
        dst_nodata=np.nan,
        resampling=Resampling.bilinear
    )

    return RasterGrid(
        values=projected,
        transform=transform_proj,
        crs=target_crs,
        nodata=None
    )


def sample_elevation(
    grid,
    points,
    method="bilinear",
    on_missing="raise"
):
    """
    Sample the grid at a set of planar points.

    Parameters
    ----------
    grid : RasterGrid
        Elevation grid, in the same CRS as the points.
    points : array-like
        Array of shape (N, 2) (extra columns are ignored).
    method : {"bilinear", "nearest"}, default "bilinear"
        "nearest" returns the value of the cell containing the point.
        "bilinear" interpolates between the four nearest cell centres;
        points between the outermost centres and the raster edge take
        the edge values. A bilinear sample is missing when any of the
        cells it draws on is nodata.
    on_missing : {"raise", "nan"}, default "raise"
        What to do with points outside the raster extent or on nodata.

    Returns
    -------
    np.ndarray
        Array of shape (N,) with elevations.

    Raises
    ------
    OutsideRasterError
        If a point is missing and ``on_missing`` is "raise".
    ValueError
        If method or on_missing are unknown.
    """
    if method not in SAMPLING_METHODS:
        raise ValueError(f"Unknown sampling method {method!r}.")
    if on_missing not in MISSING_POLICIES:
        raise ValueError(f"Unknown missing-value policy {on_missing!r}.")

    points = np.atleast_2d(np.asarray(points, dtype=float))[:, :2]
    data = grid.masked_values()
    height, width = data.shape

    inv = ~grid.transform
    cols = inv.a * points[:, 0] + inv.b * points[:, 1] + inv.c
    rows = inv.d * points[:, 0] + inv.e * points[:, 1] + inv.f

    inside = (
        (cols >= -EDGE_TOLERANCE) & (cols <= width + EDGE_TOLERANCE)
        & (rows >= -EDGE_TOLERANCE) & (rows <= height + EDGE_TOLERANCE)
    )

    z = np.full(len(points), np.nan)
    if inside.any():
        c = cols[inside]
        r = rows[inside]
        if method == "nearest":
            ci = np.clip(np.floor(c), 0, width - 1).astype(int)
            ri = np.clip(np.floor(r), 0, height - 1).astype(int)
            z[inside] = data[ri, ci]
        else:
            # Cell centres sit at half-pixel offsets
            cc = np.clip(c - 0.5, 0, width - 1)
            rc = np.clip(r - 0.5, 0, height - 1)
            z[inside] = map_coordinates(
                data, [rc, cc], order=1, mode="nearest"
            )

    missing = np.isnan(z)
    if missing.any():
        if on_missing == "raise":
            n_outside = int((~inside).sum())
            n_nodata = int(missing.sum()) - n_outside
            first = tuple(points[np.argmax(missing)])
            raise OutsideRasterError(
                f"{n_outside} point(s) outside raster extent and "
                f"{n_nodata} on nodata cells (first at {first})."
            )
        logger.debug("%d sample(s) missing, set to NaN", int(missing.sum()))

    return z


def drape_mesh(
    mesh,
    grid,
    method="bilinear",
    on_missing="raise"
):
    """
    Attach raster elevation to every vertex of a planar mesh.

    Parameters
    ----------
    mesh : Mesh
        Planar mesh in the grid's CRS.
    grid : RasterGrid
        Elevation grid.
    method, on_missing : str
        Passed to ``sample_elevation``.

    Returns
    -------
    Mesh
        New mesh carrying per-vertex elevation.
    """
    elevation = sample_elevation(
        grid, mesh.vertices, method=method, on_missing=on_missing
    )
    return mesh.with_elevation(elevation)
