"""
Drapemesh - Outline-constrained terrain surface meshes

Triangulate a GIS outline and drape raster elevation onto the mesh.
See drapemesh.drapemesh for the pipeline.
"""

from .drapemesh import drapemesh
from .errors import (
    DegeneratePolygonError,
    DrapeMeshError,
    EmptyOutlineError,
    OpenRingError,
    OutsideRasterError,
)
from .mesh import Mesh, export_mesh
from .raster import RasterGrid, drape_mesh, load_raster, sample_elevation
from .triangulate import triangulate_polygon
from .vector import (
    close_ring,
    extract_outline,
    filter_by_region,
    load_line_features,
)

__version__ = "0.1.0"
__license__ = "AGPL-3.0"
