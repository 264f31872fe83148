"""
Exception types raised by the drapemesh pipeline.

Every pipeline failure derives from DrapeMeshError. The concrete errors
also derive from ValueError, since each of them describes bad input data
rather than a fault of the program.
"""


class DrapeMeshError(Exception):
    """Base class for all pipeline failures."""


class EmptyOutlineError(DrapeMeshError, ValueError):
    """No candidate ring is available to pick an outline from."""


class OpenRingError(DrapeMeshError, ValueError):
    """The first and last points of a ring do not coincide."""


class DegeneratePolygonError(DrapeMeshError, ValueError):
    """The polygon self-intersects, encloses no area or cannot be meshed."""


class OutsideRasterError(DrapeMeshError, ValueError):
    """A vertex falls outside the raster extent or on a nodata cell."""
