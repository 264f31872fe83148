"""
Vector input and outline handling.

Reads line and polygon features from GeoJSON, narrows them to a region of
interest, picks the outer boundary ring and turns it into a polygon that
can be triangulated.
"""
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
from pyproj import Transformer
from shapely.geometry import (
    GeometryCollection,
    LinearRing,
    LineString,
    MultiLineString,
    MultiPolygon,
    Polygon,
    box,
    shape,
)
from shapely.ops import transform as shapely_transform

from .errors import DegeneratePolygonError, EmptyOutlineError, OpenRingError

logger = logging.getLogger(__name__)

OUTLINE_RULES = ("area", "max_x")


@dataclass
class LineFeature:
    """A single candidate ring and the properties of its source feature."""
    geometry: LineString
    properties: dict = field(default_factory=dict)

    @property
    def bounds(self):
        return self.geometry.bounds

    @property
    def coords(self):
        return np.asarray(self.geometry.coords)[:, :2]

    @property
    def is_closed(self):
        return self.geometry.is_closed


def _read_geojson(path):
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"GeoJSON file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _rings_from_geometry(geom):
    if isinstance(geom, (LineString, LinearRing)):
        return [LineString(geom.coords)]
    if isinstance(geom, Polygon):
        rings = [LineString(geom.exterior.coords)]
        rings += [LineString(ring.coords) for ring in geom.interiors]
        return rings
    if isinstance(geom, (MultiLineString, MultiPolygon, GeometryCollection)):
        rings = []
        for part in geom.geoms:
            rings += _rings_from_geometry(part)
        return rings
    return []


def geojson_crs(path):
    """
    Return the CRS named in a GeoJSON file's legacy ``crs`` member.

    Parameters
    ----------
    path : str or Path
        Path to the GeoJSON file.

    Returns
    -------
    str or None
        CRS name (e.g. "EPSG:32633" or an OGC URN), or None if absent.
    """
    crs = _read_geojson(path).get("crs") or {}
    return (crs.get("properties") or {}).get("name")


def load_line_features(
    path,
    property_key=None,
    property_value=None
):
    """
    Load every line ring contained in a GeoJSON file.

    Line strings are returned as they are. Polygons contribute their
    exterior and interior rings, so polygon layers can be used as outline
    sources too.

    Parameters
    ----------
    path : str or Path
        Path to the GeoJSON file.
    property_key : str, optional
        Property name to use for filtering.
    property_value : str or int, optional
        Value to match in the specified property.

    Returns
    -------
    list of LineFeature
        One entry per ring found in the selected features.

    Raises
    ------
    FileNotFoundError
        If the GeoJSON file does not exist.
    ValueError
        If no features, no matching feature or no line geometry is found.
    """
    geojson = _read_geojson(path)

    features = geojson.get("features")
    if not features:
        raise ValueError("No features found in GeoJSON.")

    if property_key is not None and property_value is not None:
        features = [
            feature for feature in features
            if (feature.get("properties") or {}).get(property_key)
            == property_value
        ]
        if not features:
            raise ValueError(
                f"No feature found with {property_key} = {property_value}"
            )

    line_features = []
    for feature in features:
        geom = feature.get("geometry")
        if geom is None:
            continue
        props = feature.get("properties") or {}
        for ring in _rings_from_geometry(shape(geom)):
            line_features.append(LineFeature(ring, dict(props)))

    if not line_features:
        raise ValueError("No line or polygon geometry found in GeoJSON.")

    logger.debug("Loaded %d line features from %s", len(line_features), path)
    return line_features


def filter_by_region(
    features,
    bbox
):
    """
    Keep the features intersecting a bounding region.

    Parameters
    ----------
    features : list of LineFeature
        Candidate features.
    bbox : tuple of float
        Region of interest as (minx, miny, maxx, maxy) in feature CRS.

    Returns
    -------
    list of LineFeature
        Features whose geometry touches or crosses the region.

    Raises
    ------
    ValueError
        If the bounds are invalid.
    """
    minx, miny, maxx, maxy = bbox
    if not (minx < maxx and miny < maxy):
        raise ValueError("Invalid bounding region.")

    region = box(minx, miny, maxx, maxy)
    kept = [f for f in features if f.geometry.intersects(region)]

    logger.debug("%d of %d features inside region", len(kept), len(features))
    return kept


def ring_area(coords):
    """Area enclosed by a ring, treated as closed."""
    coords = np.asarray(coords, dtype=float)
    if len(coords) < 3:
        return 0.0
    return Polygon(coords[:, :2]).area


def extract_outline(
    features,
    rule="area"
):
    """
    Select the outer boundary ring among candidate features.

    Parameters
    ----------
    features : list of LineFeature
        Candidate rings, typically already filtered to a region.
    rule : {"area", "max_x"}, default "area"
        "area" picks the ring enclosing the largest area. "max_x" picks
        the ring reaching furthest east (largest maximum x), which only
        works when the outer ring is also the easternmost one.

    Returns
    -------
    np.ndarray
        Array of shape (N, 2) with the ring coordinates.

    Raises
    ------
    EmptyOutlineError
        If there are no candidate features.
    ValueError
        If the rule is unknown.
    """
    if rule not in OUTLINE_RULES:
        raise ValueError(
            f"Unknown outline rule {rule!r}; use one of {OUTLINE_RULES}."
        )
    if not features:
        raise EmptyOutlineError("No candidate rings to extract an outline from.")

    if rule == "area":
        selected = max(features, key=lambda f: ring_area(f.coords))
    else:
        selected = max(features, key=lambda f: f.bounds[2])

    logger.debug(
        "Selected outline with %d points (rule=%s)", len(selected.coords), rule
    )
    return selected.coords


def close_ring(
    ring,
    tolerance=1e-9
):
    """
    Turn a closed ring into a polygon without holes.

    Parameters
    ----------
    ring : array-like
        Sequence of (x, y) points whose first and last points coincide.
    tolerance : float, default 1e-9
        Absolute tolerance for comparing the first and last points.

    Returns
    -------
    shapely.geometry.Polygon
        Polygon whose exterior is exactly the input ring.

    Raises
    ------
    OpenRingError
        If the ring is not closed within tolerance.
    DegeneratePolygonError
        If the ring has fewer than three distinct points.
    """
    coords = np.asarray(ring, dtype=float)
    if coords.ndim != 2 or coords.shape[1] < 2 or len(coords) < 2:
        raise DegeneratePolygonError("Ring must be a sequence of 2D points.")
    coords = coords[:, :2]

    if not np.allclose(coords[0], coords[-1], rtol=0.0, atol=tolerance):
        raise OpenRingError(
            f"Ring is open: first point {tuple(coords[0])} "
            f"!= last point {tuple(coords[-1])}"
        )

    if len(np.unique(coords[:-1], axis=0)) < 3:
        raise DegeneratePolygonError(
            "Ring needs at least three distinct points."
        )

    # Shapely closes the shell with the first point
    return Polygon(coords[:-1])


def project_polygon(
    polygon,
    source_crs,
    target_crs
):
    """
    Project a polygon to a target CRS.

    Parameters
    ----------
    polygon : shapely.geometry.Polygon or MultiPolygon
        Geometry in source CRS.
    source_crs : str or pyproj.CRS or rasterio.crs.CRS
        CRS of the input polygon.
    target_crs : str or pyproj.CRS or rasterio.crs.CRS
        Target CRS.

    Returns
    -------
    shapely.geometry.Polygon or MultiPolygon
        Projected geometry.

    Raises
    ------
    TypeError
        If the input is not a Polygon or MultiPolygon.
    """
    if not isinstance(polygon, (Polygon, MultiPolygon)):
        raise TypeError("Input must be a Polygon or MultiPolygon.")

    transformer = Transformer.from_crs(
        source_crs, target_crs, always_xy=True
    )

    return shapely_transform(transformer.transform, polygon)


def _densify_ring(coords, spacing):
    densified = []

    for i in range(len(coords) - 1):
        p0 = coords[i]
        p1 = coords[i + 1]
        vec = p1 - p0
        dist = np.linalg.norm(vec)

        densified.append(p0)

        if dist > spacing:
            n_segments = int(np.ceil(dist / spacing))
            for j in range(1, n_segments):
                densified.append(p0 + (j / n_segments) * vec)

    densified.append(coords[-1])
    return np.array(densified)


def densify_polygon_boundary(
    polygon,
    spacing
):
    """
    Densify the boundary of a polygon while preserving original vertices.

    New points are added evenly on edges longer than ``spacing``, on the
    exterior and on every hole.

    Parameters
    ----------
    polygon : Polygon or MultiPolygon
        Geometry to densify. For a MultiPolygon the largest part is used.
    spacing : float
        Maximum allowed spacing between adjacent boundary points.

    Returns
    -------
    shapely.geometry.Polygon
        Polygon with densified boundary.
    """
    if spacing <= 0:
        raise ValueError("spacing must be a positive number.")

    if isinstance(polygon, MultiPolygon):
        polygon = max(polygon.geoms, key=lambda p: p.area)

    shell = _densify_ring(np.array(polygon.exterior.coords)[:, :2], spacing)
    holes = [
        _densify_ring(np.array(ring.coords)[:, :2], spacing)
        for ring in polygon.interiors
    ]
    return Polygon(shell, holes)
