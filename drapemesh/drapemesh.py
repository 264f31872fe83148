"""
DRAPEMESH - Outline-constrained terrain surface meshes

Description
-----------
Drapemesh turns a vector outline and a raster elevation model into a
triangulated surface mesh. The outline is read from GeoJSON, narrowed to a
region of interest and closed into a polygon; the polygon is meshed with a
constrained quality Delaunay triangulation and every mesh vertex is given
the elevation of the raster beneath it.

Pipeline
--------
1. Load line / polygon features and filter them to a bounding region
2. Pick the outer ring and close it into a polygon
3. Bring outline and raster into a common CRS
4. Triangulate the polygon to a target density
5. Sample elevation for every vertex
6. Optionally export the mesh (NPZ, PLY, OBJ, STL, ...)

The pipeline is a straight sequence of pure steps. Any failure aborts the
run before anything is written.
"""
import logging

from pyproj import CRS

from .logging_config import setup_logging
from .mesh import export_mesh
from .raster import drape_mesh, load_raster, project_raster
from .triangulate import triangulate_polygon
from .vector import (
    close_ring,
    densify_polygon_boundary,
    extract_outline,
    filter_by_region,
    geojson_crs,
    load_line_features,
    project_polygon,
)

logger = logging.getLogger(__name__)

DEFAULT_VECTOR_CRS = "EPSG:4326"


def _same_crs(crs_a, crs_b):
    return CRS.from_user_input(crs_a) == CRS.from_user_input(crs_b)


def drapemesh(
    vector_path,
    raster_paths,
    density=500,
    bbox=None,
    property_key=None,
    property_value=None,
    outline_rule="area",
    ring_tolerance=1e-9,
    vector_crs=None,
    target_crs=None,
    resolution=None,
    densify=None,
    min_angle=20.0,
    keep_boundary=True,
    method="bilinear",
    on_missing="raise",
    out_path=None,
    xy_scale=1.0,
    z_scale=None,
    verbose=True
):
    """
    Build an elevation-draped triangle mesh from an outline and a DEM.

    Parameters
    ----------
    vector_path : str or Path
        GeoJSON file with line or polygon features.
    raster_paths : str, Path, or list of str/Path
        GeoTIFF elevation file(s); several tiles are merged.
    density : float, default 500
        Approximate number of triangles covering the outline's bounding box.
    bbox : tuple of float, optional
        Region of interest (minx, miny, maxx, maxy) in vector CRS.
    property_key : str, optional
        GeoJSON property key used for selecting features.
    property_value : str or int, optional
        GeoJSON property value to match for feature selection.
    outline_rule : {"area", "max_x"}, default "area"
        How the outer ring is chosen among the candidates.
    ring_tolerance : float, default 1e-9
        Tolerance for the first/last point closure check.
    vector_crs : str, optional
        CRS of the vector data. Defaults to the file's ``crs`` member,
        then to EPSG:4326.
    target_crs : str, optional
        Working CRS. If given, the raster is reprojected to it;
        otherwise the raster CRS is used.
    resolution : float, optional
        Raster cell size after reprojection to ``target_crs``.
    densify : float, optional
        If given, boundary edges longer than this (working CRS units)
        are split before triangulating.
    min_angle : float, default 20.0
        Minimum triangle angle in degrees.
    keep_boundary : bool, default True
        Forbid extra points on boundary segments during refinement; the
        boundary is split to the density spacing beforehand.
    method : {"bilinear", "nearest"}, default "bilinear"
        Elevation sampling method.
    on_missing : {"raise", "nan"}, default "raise"
        Handling of vertices outside the raster or on nodata.
    out_path : str or Path, optional
        If given, the mesh is written there.
    xy_scale : float, default 1.0
        Horizontal scale factor applied on export.
    z_scale : float, optional
        Vertical exaggeration applied on export.
    verbose : bool, default True
        If True, log progress messages at INFO level.

    Returns
    -------
    Mesh
        Draped mesh in the working CRS.
    """
    if verbose and not logging.getLogger("drapemesh").handlers:
        setup_logging(logging.INFO)

    logger.info("[1] Loading vector features...")

    features = load_line_features(
        vector_path,
        property_key=property_key,
        property_value=property_value
    )
    if bbox is not None:
        features = filter_by_region(features, bbox)
    logger.info("    %d candidate ring(s)", len(features))

    logger.info("[2] Extracting outline (rule=%s)...", outline_rule)

    ring = extract_outline(features, rule=outline_rule)
    polygon = close_ring(ring, tolerance=ring_tolerance)

    logger.info("[3] Loading elevation raster...")

    grid = load_raster(raster_paths)
    if target_crs is not None:
        logger.info("    Reprojecting raster to %s", target_crs)
        grid = project_raster(grid, target_crs, resolution=resolution)

    if vector_crs is None:
        vector_crs = geojson_crs(vector_path) or DEFAULT_VECTOR_CRS

    if grid.crs is not None and not _same_crs(vector_crs, grid.crs):
        logger.info("    Projecting outline from %s", vector_crs)
        polygon = project_polygon(polygon, vector_crs, grid.crs)

    if densify is not None:
        polygon = densify_polygon_boundary(polygon, densify)

    logger.info("[4] Triangulating (density=%s)...", density)

    mesh = triangulate_polygon(
        polygon,
        density,
        min_angle=min_angle,
        keep_boundary=keep_boundary
    )

    logger.info("[5] Sampling elevation (%s)...", method)

    mesh = drape_mesh(mesh, grid, method=method, on_missing=on_missing)

    if out_path is not None:
        logger.info("[6] Exporting mesh: %s", out_path)
        export_mesh(mesh, out_path, xy_scale=xy_scale, z_scale=z_scale)

    return mesh
