"""
CubeGrid - Addressable tiling grids for datacube ingestion and query

Maps areas of interest to the cells of a grid, and cells to their footprint.

Quick Start:
    >>> import cubegrid as cg
    >>>
    >>> # Grid from a proj4-like definition
    >>> flags, params = cg.parse_grid_parameters("+grid=regular +crs=32631 +cell_size=4096 +resolution=10")
    >>> grid = cg.new_grid(flags, params)
    >>>
    >>> # Cells covering a lon/lat area of interest
    >>> uris = [s.uri for s in grid.covers(aoi)]
    >>>
    >>> # Footprints of the cells as GeoJSON
    >>> geojson = cg.cells_to_json(grid, uris)
"""

from cubegrid.core import (
    CancelledError,
    CubeGridError,
    EmptyAOIError,
    EmptyBoundsError,
    InvalidAOIError,
    InvalidCellURIError,
    InvalidCRSError,
    InvalidGridConfigError,
    MemoryLimitExceededError,
    NonInvertibleTransformError,
    RasterizeError,
    TransformError,
    UnsupportedGridError,
)
from cubegrid.geometry import Affine, CRSCache
from cubegrid.grid import (
    Cell,
    Grid,
    GridType,
    RegularGrid,
    SingleCellGrid,
    StreamedURI,
    cells_to_json,
    new_grid,
    parse_grid_parameters,
)

__version__ = "0.1.0"

__all__ = [
    "Affine",
    "CRSCache",
    "CancelledError",
    "Cell",
    "CubeGridError",
    "EmptyAOIError",
    "EmptyBoundsError",
    "Grid",
    "GridType",
    "InvalidAOIError",
    "InvalidCRSError",
    "InvalidCellURIError",
    "InvalidGridConfigError",
    "MemoryLimitExceededError",
    "NonInvertibleTransformError",
    "RasterizeError",
    "RegularGrid",
    "SingleCellGrid",
    "StreamedURI",
    "TransformError",
    "UnsupportedGridError",
    "__version__",
    "cells_to_json",
    "new_grid",
    "parse_grid_parameters",
]
