"""
CubeGrid Core Module

Exceptions shared by the geometry and grid modules.
"""

from cubegrid.core.exceptions import (
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

__all__ = [
    "CancelledError",
    "CubeGridError",
    "EmptyAOIError",
    "EmptyBoundsError",
    "InvalidAOIError",
    "InvalidCellURIError",
    "InvalidCRSError",
    "InvalidGridConfigError",
    "MemoryLimitExceededError",
    "NonInvertibleTransformError",
    "RasterizeError",
    "TransformError",
    "UnsupportedGridError",
]
