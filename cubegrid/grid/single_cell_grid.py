"""
SingleCellGrid Implementation

Degenerate grid made of one cell per area of interest: the cell is the
bounding box of the AOI in the CRS of the grid, at the resolution of the grid.

Cell URIs are "originX/originY/sizeX/sizeY" (origin in CRS units, sizes in
pixels).
"""

import logging
import math
import threading
from typing import Iterator, Mapping, Optional

import numpy as np
import shapely
from rasterio.crs import CRS

from cubegrid.core.exceptions import (
    EmptyAOIError,
    EmptyBoundsError,
    InvalidCellURIError,
    InvalidGridConfigError,
)
from cubegrid.geometry.affine import Affine
from cubegrid.geometry.proj import CRSCache, LazyLonLatTransforms
from cubegrid.geometry.shapes import load_aoi
from cubegrid.grid.base import AOI, Cell, StreamedURI, new_cell
from cubegrid.grid.parameters import get_crs, get_float

logger = logging.getLogger(__name__)


def format_float(value: float) -> str:
    """Shortest decimal representation that round-trips, without exponent"""
    return np.format_float_positional(value, unique=True, trim="-")


def _round_half_away_from_zero(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


class SingleCellGrid:
    """
    One cell per area of interest

    Parameters (as strings):
        - "crs": EPSG code, "EPSG:xxxx", proj4 string or WKT
        - "resolution": size of a pixel in CRS units

    Examples:
        >>> grid = SingleCellGrid.from_parameters({"crs": "32631", "resolution": "10"})
        >>> [s.uri for s in grid.covers(aoi)]
        ['720298.4297198909/5000366.394349512/6590/6914']
    """

    def __init__(self, crs: CRS, srid: int, resolution: float):
        if not (math.isfinite(resolution) and resolution > 0):
            raise InvalidGridConfigError("Resolution parameters: must contain a valid 'resolution'")
        self.crs = crs
        self.srid = srid
        self.resolution = resolution
        self._transforms = LazyLonLatTransforms(crs)

    @classmethod
    def from_parameters(
        cls,
        parameters: Mapping[str, str],
        crs_cache: Optional[CRSCache] = None,
    ) -> "SingleCellGrid":
        """
        Create a SingleCellGrid from its string parameters

        Raises:
            InvalidGridConfigError: If a parameter is missing or invalid
        """
        crs, srid = get_crs(parameters, crs_cache)

        if "resolution" not in parameters:
            raise InvalidGridConfigError("SingleCellGrid: missing 'resolution'")
        resolution = get_float(parameters, "resolution")

        logger.debug("Created SingleCellGrid(srid=%d, resolution=%s)", srid, resolution)
        return cls(crs, srid, resolution)

    def covers(self, aoi: AOI, cancel: Optional[threading.Event] = None) -> Iterator[StreamedURI]:
        """
        Yield the single URI of the cell covering the bounding box of the AOI

        cancel is accepted for interface compatibility: the stream has only
        one element.
        """
        geom_aoi = load_aoi(aoi)
        if geom_aoi.is_empty or len(shapely.get_coordinates(geom_aoi)) == 0:
            raise EmptyAOIError("SingleCellGrid.covers: empty AOI")

        to_crs = self._transforms.to_crs()
        coords = to_crs.transform_coords(shapely.get_coordinates(geom_aoi))

        # Get the bounds of the AOI in the crs
        if not np.all(np.isfinite(coords)):
            raise EmptyBoundsError("SingleCellGrid.covers: the bounds in the CRS of the grid are empty")
        minx, miny = coords.min(axis=0)
        maxx, maxy = coords.max(axis=0)
        if minx > maxx or miny > maxy:
            raise EmptyBoundsError("SingleCellGrid.covers: the bounds in the CRS of the grid are empty")

        origin_x, origin_y = float(minx), float(maxy)
        width = _round_half_away_from_zero(abs(minx - maxx) / abs(self.resolution))
        height = _round_half_away_from_zero(abs(miny - maxy) / abs(self.resolution))

        uri = f"{format_float(origin_x)}/{format_float(origin_y)}/{width}/{height}"
        return iter([StreamedURI(uri=uri)])

    def cell(self, uri: str) -> Cell:
        """
        Cell "originX/originY/sizeX/sizeY"

        Raises:
            InvalidCellURIError: If uri is malformed
        """
        origin_x, origin_y, size_x, size_y = _parse_uri(uri)

        pixel_to_crs = Affine.translation(origin_x, origin_y) * Affine.scale(self.resolution, -self.resolution)
        try:
            pixel_to_crs.transform(float(size_x), float(size_y))
        except OverflowError as e:
            raise InvalidCellURIError(f"SingleCellGrid.cell: size out of range: {uri!r}") from e

        return new_cell(uri, self.crs, self.srid, pixel_to_crs, size_x, size_y, self._transforms.to_lonlat())

    def __repr__(self) -> str:
        return f"SingleCellGrid(srid={self.srid}, resolution={self.resolution})"


def _parse_uri(uri: str):
    parts = uri.split("/") if isinstance(uri, str) else []
    if len(parts) != 4:
        raise InvalidCellURIError(f"SingleCellGrid.cell: format must be originX/originY/sizeX/sizeY: {uri!r}")
    try:
        origin_x, origin_y = float(parts[0]), float(parts[1])
        size_x, size_y = int(parts[2]), int(parts[3])
    except ValueError as e:
        raise InvalidCellURIError(
            f"SingleCellGrid.cell: format must be originX/originY/sizeX/sizeY: {uri!r}"
        ) from e
    if not (math.isfinite(origin_x) and math.isfinite(origin_y)) or size_x < 0 or size_y < 0:
        raise InvalidCellURIError(f"SingleCellGrid.cell: invalid origin or size: {uri!r}")
    return origin_x, origin_y, size_x, size_y
