"""
CubeGrid Exceptions

Exception hierarchy for grid configuration, covering and cell errors.
"""


class CubeGridError(Exception):
    """Base exception for CubeGrid"""

    pass


class UnsupportedGridError(CubeGridError):
    """The requested grid type is unknown"""

    def __init__(self, grid_name: str):
        self.grid_name = grid_name
        super().__init__(f"unsupported grid type: {grid_name}")


class InvalidGridConfigError(CubeGridError):
    """Grid parameters are missing or invalid"""

    pass


class InvalidCRSError(InvalidGridConfigError):
    """CRS cannot be parsed or identified"""

    pass


class InvalidCellURIError(CubeGridError):
    """Cell URI cannot be parsed by the grid"""

    pass


class InvalidAOIError(CubeGridError):
    """Area of interest cannot be covered"""

    pass


class EmptyAOIError(InvalidAOIError):
    """Area of interest has no coordinates"""

    pass


class EmptyBoundsError(InvalidAOIError):
    """Area of interest bounds are empty in the grid CRS"""

    pass


class MemoryLimitExceededError(CubeGridError):
    """Covering raster is larger than the configured memory limit"""

    def __init__(self, needed: int, provided: int):
        self.needed = needed
        self.provided = provided
        super().__init__(f"not enough memory (needed:{needed}, provided:{provided})")


class TransformError(CubeGridError):
    """Coordinate transformation failed"""

    pass


class NonInvertibleTransformError(CubeGridError, ValueError):
    """Affine transform is degenerate and cannot be inverted"""

    pass


class RasterizeError(CubeGridError):
    """Rasterization of the area of interest failed"""

    pass


class CancelledError(CubeGridError):
    """Covering was cancelled by the caller"""

    pass
