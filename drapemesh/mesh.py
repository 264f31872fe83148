"""
Triangle mesh container and mesh export.

A Mesh pairs a shared vertex array with a triangle index array and, once
draped, a per-vertex elevation. Meshes are immutable: every pipeline stage
returns a new instance.
"""
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

import numpy as np
import trimesh

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Mesh:
    """
    Triangulated surface.

    Attributes
    ----------
    vertices : np.ndarray
        Array of shape (N, 2) with planar (x, y) vertex coordinates.
    triangles : np.ndarray
        Integer array of shape (M, 3) with indices into ``vertices``.
    elevation : np.ndarray or None
        Optional array of shape (N,) with one elevation per vertex.
    """
    vertices: np.ndarray
    triangles: np.ndarray
    elevation: Optional[np.ndarray] = None

    def __post_init__(self):
        vertices = np.asarray(self.vertices, dtype=float)
        triangles = np.asarray(self.triangles, dtype=np.int64)

        if vertices.ndim != 2 or vertices.shape[1] != 2:
            raise ValueError("vertices must have shape (N, 2).")
        if triangles.size == 0:
            triangles = triangles.reshape(0, 3)
        if triangles.ndim != 2 or triangles.shape[1] != 3:
            raise ValueError("triangles must have shape (M, 3).")
        if triangles.size and (
            triangles.min() < 0 or triangles.max() >= len(vertices)
        ):
            raise ValueError("Triangle index out of bounds.")

        object.__setattr__(self, "vertices", vertices)
        object.__setattr__(self, "triangles", triangles)

        if self.elevation is not None:
            elevation = np.asarray(self.elevation, dtype=float)
            if elevation.shape != (len(vertices),):
                raise ValueError("elevation must have one value per vertex.")
            object.__setattr__(self, "elevation", elevation)

    @property
    def n_vertices(self):
        return len(self.vertices)

    @property
    def n_triangles(self):
        return len(self.triangles)

    @property
    def is_draped(self):
        return self.elevation is not None

    @property
    def vertices_3d(self):
        """(N, 3) array of (x, y, z); requires a draped mesh."""
        if self.elevation is None:
            raise ValueError("Mesh has no elevation; drape it first.")
        return np.column_stack([self.vertices, self.elevation])

    @property
    def area(self):
        """Total planar area covered by the triangles."""
        return float(self.triangle_areas().sum())

    def triangle_areas(self):
        """
        Planar area of every triangle.

        Returns
        -------
        np.ndarray
            Array of shape (M,) with non-negative areas.
        """
        p0 = self.vertices[self.triangles[:, 0]]
        p1 = self.vertices[self.triangles[:, 1]]
        p2 = self.vertices[self.triangles[:, 2]]
        u = p1 - p0
        v = p2 - p0
        return 0.5 * np.abs(u[:, 0] * v[:, 1] - u[:, 1] * v[:, 0])

    def edges(self):
        """
        Unique undirected edges of the mesh.

        Returns
        -------
        np.ndarray
            Integer array of shape (K, 2), each row sorted ascending.
        """
        tri = self.triangles
        pairs = np.vstack([tri[:, [0, 1]], tri[:, [1, 2]], tri[:, [2, 0]]])
        pairs.sort(axis=1)
        return np.unique(pairs, axis=0)

    def with_elevation(self, elevation):
        """Return a copy of this mesh carrying the given elevation."""
        return replace(self, elevation=elevation)

    def to_trimesh(
        self,
        xy_scale=1.0,
        z_scale=None
    ):
        """
        Convert to a trimesh.Trimesh, applying optional scaling.

        Undraped meshes are placed at z = 0.

        Parameters
        ----------
        xy_scale : float, default 1.0
            Scaling factor for X and Y coordinates.
        z_scale : float, optional
            Vertical exaggeration, multiplied with ``xy_scale`` for Z.
            If None, Z is scaled by ``xy_scale`` alone.

        Returns
        -------
        trimesh.Trimesh
        """
        if self.elevation is None:
            z = np.zeros(self.n_vertices)
        else:
            z = self.elevation

        vertices = np.column_stack([self.vertices, z])
        tm = trimesh.Trimesh(
            vertices=vertices,
            faces=self.triangles,
            process=False
        )
        return scale_mesh(tm, xy_scale=xy_scale, z_scale=z_scale)


def scale_mesh(
    mesh,
    xy_scale,
    z_scale=None
):
    """
    Apply scaling to a mesh in XY and optionally in Z (vertical exaggeration).

    Parameters
    ----------
    mesh : trimesh.Trimesh
        The input mesh to scale.
    xy_scale : float
        Scaling factor for X and Y coordinates.
    z_scale : float, optional
        If given, Z is multiplied by ``xy_scale * z_scale``.
        If None, Z is scaled like X and Y.

    Returns
    -------
    trimesh.Trimesh
        The scaled mesh (modified in-place).
    """
    if not isinstance(xy_scale, (int, float)) or xy_scale <= 0.0:
        raise ValueError("xy_scale must be a positive number.")

    if z_scale is None:
        z_scale = xy_scale
    elif not isinstance(z_scale, (int, float)) or z_scale <= 0.0:
        raise ValueError("z_scale must be a positive number.")
    else:
        z_scale = xy_scale * z_scale

    mesh.vertices[:, 0:2] *= xy_scale
    mesh.vertices[:, 2] *= z_scale

    return mesh


def export_mesh(
    mesh,
    path,
    xy_scale=1.0,
    z_scale=None
):
    """
    Write a mesh to disk.

    A ``.npz`` suffix stores the raw ``vertices``, ``triangles`` and, if
    present, ``elevation`` arrays unscaled. Any other suffix is handed to
    trimesh, which picks the format from the extension (PLY, OBJ, STL, OFF,
    GLB, ...).

    Parameters
    ----------
    mesh : Mesh
        Mesh to export.
    path : str or Path
        Output file path.
    xy_scale : float, default 1.0
        Horizontal scale factor for trimesh formats.
    z_scale : float, optional
        Vertical exaggeration for trimesh formats.

    Returns
    -------
    Path
        The written file path.
    """
    path = Path(path)
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)

    if path.suffix.lower() == ".npz":
        arrays = {"vertices": mesh.vertices, "triangles": mesh.triangles}
        if mesh.elevation is not None:
            arrays["elevation"] = mesh.elevation
        # A file handle keeps numpy from appending its own suffix
        with open(path, "wb") as f:
            np.savez(f, **arrays)
    else:
        mesh.to_trimesh(xy_scale=xy_scale, z_scale=z_scale).export(str(path))

    logger.debug(
        "Wrote %d vertices / %d triangles to %s",
        mesh.n_vertices, mesh.n_triangles, path
    )
    return path
