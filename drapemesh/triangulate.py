"""
Constrained Delaunay triangulation of outline polygons.

Wraps Jonathan Shewchuk's Triangle (through the ``triangle`` package):
polygon boundaries become required segments, the maximum triangle area is
derived from a target density and a minimum-angle bound keeps slivers out.
"""
import logging
import numbers

import numpy as np
import triangle
from shapely.geometry import MultiPolygon, Polygon
from shapely.validation import explain_validity

from .errors import DegeneratePolygonError
from .mesh import Mesh
from .vector import densify_polygon_boundary

logger = logging.getLogger(__name__)

# Triangle is not guaranteed to terminate above this bound
MAX_MIN_ANGLE = 34.0


def _ring_vertices(ring):
    # Shapely rings repeat the first point at the end
    coords = np.array(ring.coords)[:-1, :2]

    _, idx = np.unique(
        coords.round(decimals=12),
        axis=0,
        return_index=True
    )
    return coords[np.sort(idx)]


def _planar_straight_line_graph(polygon):
    vertices = []
    segments = []
    holes = []
    offset = 0

    for k, ring in enumerate([polygon.exterior, *polygon.interiors]):
        ring_xy = _ring_vertices(ring)
        n = len(ring_xy)
        if n < 3:
            raise DegeneratePolygonError(
                "Not enough unique points to form polygon."
            )
        vertices.append(ring_xy)
        segments += [[offset + i, offset + (i + 1) % n] for i in range(n)]
        offset += n
        if k > 0:
            rp = Polygon(ring).representative_point()
            holes.append([rp.x, rp.y])

    return np.vstack(vertices), np.array(segments), np.array(holes)


def compact_mesh(
    vertices,
    triangles
):
    """
    Merge coincident vertices and drop unreferenced ones.

    First occurrences keep their relative order, so input vertices that
    Triangle places first stay first.

    Parameters
    ----------
    vertices : np.ndarray
        (N, 2) vertex coordinates.
    triangles : np.ndarray
        (M, 3) vertex indices.

    Returns
    -------
    vertices : np.ndarray
        Deduplicated vertex coordinates.
    triangles : np.ndarray
        Re-indexed triangles; rows that collapsed onto repeated indices
        are removed.
    """
    vertices = np.asarray(vertices, dtype=float)
    triangles = np.asarray(triangles, dtype=np.int64)

    _, first, inverse = np.unique(
        vertices, axis=0, return_index=True, return_inverse=True
    )
    inverse = inverse.reshape(-1)
    order = np.argsort(first)
    rank = np.empty_like(order)
    rank[order] = np.arange(len(order))

    vertices = vertices[first[order]]
    triangles = rank[inverse][triangles]

    distinct = (
        (triangles[:, 0] != triangles[:, 1])
        & (triangles[:, 1] != triangles[:, 2])
        & (triangles[:, 0] != triangles[:, 2])
    )
    triangles = triangles[distinct]

    used = np.zeros(len(vertices), dtype=bool)
    used[triangles.ravel()] = True
    remap = np.cumsum(used) - 1

    return vertices[used], remap[triangles]


def triangulate_polygon(
    polygon,
    density,
    min_angle=20.0,
    keep_boundary=True
):
    """
    Triangulate a polygon with a constrained, quality Delaunay mesh.

    Parameters
    ----------
    polygon : shapely.geometry.Polygon or MultiPolygon
        Region to mesh. Holes are honoured. For a MultiPolygon the largest
        part is used.
    density : float
        Approximate number of triangles covering the polygon's bounding
        box. The maximum triangle area is ``bbox_area / density``.
    min_angle : float or None, default 20.0
        Minimum interior angle in degrees. None or 0 disables quality
        refinement.
    keep_boundary : bool, default True
        If True no Steiner points are inserted by Triangle on boundary
        segments. The boundary is first split evenly into pieces no
        longer than ``sqrt(bbox_area / (2 * density))``, so every input
        vertex is a mesh vertex, every input boundary edge is covered by
        collinear mesh edges and the area bound holds near the boundary.

    Returns
    -------
    Mesh
        Planar mesh with shared vertices.

    Raises
    ------
    DegeneratePolygonError
        If the polygon is invalid, encloses no area or cannot be meshed.
    ValueError
        If density or min_angle are out of range.
    """
    if (
        not isinstance(density, numbers.Real)
        or isinstance(density, bool)
        or not density > 0
    ):
        raise ValueError("density must be a positive number.")
    if min_angle and not 0 < min_angle <= MAX_MIN_ANGLE:
        raise ValueError(f"min_angle must be in (0, {MAX_MIN_ANGLE}].")

    if isinstance(polygon, MultiPolygon):
        polygon = max(polygon.geoms, key=lambda p: p.area)
    if not isinstance(polygon, Polygon):
        raise TypeError("Input must be a Polygon or MultiPolygon.")

    if polygon.is_empty or polygon.area <= 0.0:
        raise DegeneratePolygonError("Polygon encloses zero area.")
    if not polygon.is_valid:
        raise DegeneratePolygonError(
            f"Invalid polygon: {explain_validity(polygon)}"
        )

    if keep_boundary:
        # Boundary segments cannot be split later, so split them up front
        minx, miny, maxx, maxy = polygon.bounds
        spacing = np.sqrt((maxx - minx) * (maxy - miny) / (2.0 * density))
        polygon = densify_polygon_boundary(polygon, spacing)

    vertices, segments, holes = _planar_straight_line_graph(polygon)

    # Work in the unit box so the area switch stays well formatted
    minx, miny, maxx, maxy = polygon.bounds
    origin = np.array([minx, miny])
    scale = max(maxx - minx, maxy - miny)
    bbox_area = (maxx - minx) * (maxy - miny) / scale ** 2

    area_switch = f"{bbox_area / density:.12f}"
    if float(area_switch) <= 0.0:
        raise ValueError(f"density {density} is too large.")

    opts = f"pa{area_switch}"
    if min_angle:
        opts += f"q{min_angle:g}"
    if keep_boundary:
        opts += "Y"

    t_input = {
        "vertices": (vertices - origin) / scale,
        "segments": segments
    }
    if len(holes):
        t_input["holes"] = (holes - origin) / scale

    logger.debug("Triangulating %d boundary points with '%s'", len(vertices), opts)
    t_output = triangle.triangulate(t_input, opts)

    if "triangles" not in t_output or len(t_output["triangles"]) == 0:
        raise DegeneratePolygonError("Triangulation produced no triangles.")

    out_vertices = t_output["vertices"] * scale + origin
    # Input points keep their indices; restore them bit-exact
    out_vertices[:len(vertices)] = vertices

    out_vertices, out_triangles = compact_mesh(
        out_vertices, t_output["triangles"]
    )
    mesh = Mesh(vertices=out_vertices, triangles=out_triangles)

    logger.info(
        "Triangulated outline: %d vertices, %d triangles",
        mesh.n_vertices, mesh.n_triangles
    )
    return mesh
