"""
RegularGrid Implementation

Infinite grid of equally-sized cells in a given CRS, anchored on an origin.

Cell "i/j" covers the pixels [i*cell_size_x, (i+1)*cell_size_x) x
[j*cell_size_y, (j+1)*cell_size_y) of the grid raster, whose pixel (0, 0) is at
the origin (ox, oy) and whose pixels are resolution x resolution CRS units,
north-up.
"""

import logging
import math
import re
import threading
from typing import Iterator, Mapping, Optional

import numpy as np
import rasterio.features
import shapely
from numpy.typing import NDArray
from rasterio.crs import CRS
from rasterio.errors import RasterioError

from cubegrid.core.exceptions import (
    CancelledError,
    EmptyAOIError,
    EmptyBoundsError,
    InvalidCellURIError,
    InvalidGridConfigError,
    MemoryLimitExceededError,
    RasterizeError,
)
from cubegrid.geometry.affine import Affine
from cubegrid.geometry.proj import CRSCache, LazyLonLatTransforms
from cubegrid.geometry.shapes import load_aoi
from cubegrid.grid.base import AOI, Cell, StreamedURI, new_cell
from cubegrid.grid.parameters import get_crs, get_float, get_int

logger = logging.getLogger(__name__)

MIN_CELL_SIZE = 1
MAX_CELL_SIZE = 65536
DEFAULT_MEMORY_LIMIT = 2**63 - 1

# Value burnt in the covering mask
_COVERED = 255

_CELL_URI_RE = re.compile(r"([+-]?[0-9]+)/([+-]?[0-9]+)")


class RegularGrid:
    """
    Regular grid in a CRS with an origin and a spatial resolution

    Parameters (as strings):
        - "crs": EPSG code, "EPSG:xxxx", proj4 string or WKT
        - "cell_size" or ("cell_x_size", "cell_y_size"): size of the cells in
          pixels, in [1, 65536]
        - "resolution": size of a pixel in CRS units
        - "ox", "oy": origin in CRS units (default 0)
        - "memory_limit": maximum number of bytes used to compute a covering

    Examples:
        >>> grid = RegularGrid.from_parameters({
        ...     "crs": "32631", "cell_size": "4096", "resolution": "10",
        ... })
        >>> cell = grid.cell("12/-130")
        >>> cell.size_x
        4096
        >>> uris = [s.uri for s in grid.covers(aoi)]
    """

    def __init__(
        self,
        crs: CRS,
        srid: int,
        pixel_to_crs: Affine,
        cell_size_x: int,
        cell_size_y: int,
        memory_limit: int = DEFAULT_MEMORY_LIMIT,
    ):
        if not (MIN_CELL_SIZE <= cell_size_x <= MAX_CELL_SIZE and MIN_CELL_SIZE <= cell_size_y <= MAX_CELL_SIZE):
            raise InvalidGridConfigError(
                f"CellSize parameters: must contain a valid 'cell_size', 'cell_x_size' or 'cell_y_size' "
                f"in [{MIN_CELL_SIZE}, {MAX_CELL_SIZE}]"
            )
        if not pixel_to_crs.is_invertible:
            raise InvalidGridConfigError(f"pixel to CRS transform is not invertible: {pixel_to_crs.to_gdal()}")
        self.crs = crs
        self.srid = srid
        self.pixel_to_crs = pixel_to_crs
        self.cell_size_x = cell_size_x
        self.cell_size_y = cell_size_y
        self.memory_limit = memory_limit
        self._transforms = LazyLonLatTransforms(crs)

    @classmethod
    def from_parameters(
        cls,
        parameters: Mapping[str, str],
        crs_cache: Optional[CRSCache] = None,
    ) -> "RegularGrid":
        """
        Create a RegularGrid from its string parameters

        Raises:
            InvalidGridConfigError: If a parameter is missing or invalid
        """
        crs, srid = get_crs(parameters, crs_cache)

        if "cell_size" in parameters:
            cell_size_x = cell_size_y = _cell_size(parameters, "cell_size")
        elif "cell_x_size" in parameters and "cell_y_size" in parameters:
            cell_size_x = _cell_size(parameters, "cell_x_size")
            cell_size_y = _cell_size(parameters, "cell_y_size")
        else:
            cell_size_x = cell_size_y = 0

        resolution = _resolution(parameters)
        origin_x = get_float(parameters, "ox", 0.0)
        origin_y = get_float(parameters, "oy", 0.0)

        # Scale and translate
        pixel_to_crs = Affine.translation(origin_x, origin_y) * Affine.scale(resolution, -resolution)

        memory_limit = get_int(parameters, "memory_limit", DEFAULT_MEMORY_LIMIT)

        grid = cls(crs, srid, pixel_to_crs, cell_size_x, cell_size_y, memory_limit)
        logger.debug(
            "Created RegularGrid(srid=%d, cell_size=%dx%d, resolution=%s, origin=(%s, %s))",
            srid, cell_size_x, cell_size_y, resolution, origin_x, origin_y,
        )
        return grid

    def cell(self, uri: str) -> Cell:
        """
        Cell "i/j" of the grid

        Raises:
            InvalidCellURIError: If uri is not "i/j" with integers i and j
        """
        match = _CELL_URI_RE.fullmatch(uri) if isinstance(uri, str) else None
        if match is None:
            raise InvalidCellURIError(f"Invalid RegularGrid: cell format must be 'i/j' as integers: {uri!r}")
        try:
            i, j = int(match.group(1)), int(match.group(2))
            cell_to_crs = self.pixel_to_crs * Affine.translation(
                float(i * self.cell_size_x), float(j * self.cell_size_y)
            )
            # Far corner must be representable as a float
            cell_to_crs.transform(float(self.cell_size_x), float(self.cell_size_y))
        except (OverflowError, ValueError) as e:
            raise InvalidCellURIError(f"Invalid RegularGrid: cell index out of range: {uri!r}") from e

        return new_cell(
            uri, self.crs, self.srid, cell_to_crs, self.cell_size_x, self.cell_size_y, self._transforms.to_lonlat()
        )

    def covers(self, aoi: AOI, cancel: Optional[threading.Event] = None) -> Iterator[StreamedURI]:
        """
        Stream the URIs of the cells covering the lon/lat area of interest

        The covering is computed by rasterizing the area of interest on a
        raster whose pixels are the cells of the grid (all-touched mode).
        Failures are raised before the first URI is produced.
        """
        geom_aoi = load_aoi(aoi)
        if geom_aoi.is_empty or len(shapely.get_coordinates(geom_aoi)) == 0:
            raise EmptyAOIError("Covers: empty AOI")

        # Transform coordinates from (lon, lat) to CRS coordinates
        to_crs = self._transforms.to_crs()
        crs_aoi = shapely.transform(geom_aoi, to_crs.transform_coords)

        # Get the bounds of the AOI
        coords = shapely.get_coordinates(crs_aoi)
        if not np.all(np.isfinite(coords)):
            raise EmptyBoundsError("Covers: error in input geometry: the bounds are empty")
        minx, miny = coords.min(axis=0)
        maxx, maxy = coords.max(axis=0)
        if minx > maxx or miny > maxy:
            raise EmptyBoundsError("Covers: error in input geometry: the bounds are empty")

        # Transformation which maps crs coordinates (x, y) to cell coordinates (i, j)
        cell_to_crs = self.pixel_to_crs * Affine.scale(float(self.cell_size_x), float(self.cell_size_y))
        crs_to_cell = cell_to_crs.inverse()

        # Bounds in cell coordinates, padded to be robust to rounding
        i0f, j0f = crs_to_cell.transform(minx, maxy)
        i1f, j1f = crs_to_cell.transform(maxx, miny)
        i0f, j0f = math.floor(i0f - 1), math.floor(j0f - 1)
        i1f, j1f = math.ceil(i1f + 1), math.ceil(j1f + 1)

        # Equivalent coordinates in the CRS
        ulx, uly = cell_to_crs.transform(i0f, j0f)
        lrx, lry = cell_to_crs.transform(i1f, j1f)

        width = int(abs(ulx - lrx) / abs(cell_to_crs.rx))
        height = int(abs(uly - lry) / abs(cell_to_crs.ry))
        needed = width * height * 2
        if needed > self.memory_limit:
            raise MemoryLimitExceededError(needed, self.memory_limit)

        logger.debug("Covering %dx%d cells from cell (%d, %d)", width, height, i0f, j0f)

        mask = self._rasterize(crs_aoi, width, height, Affine.from_gdal(ulx, cell_to_crs.rx, 0, uly, 0, cell_to_crs.ry))

        return self._stream(mask, int(i0f), int(j0f), cancel)

    def _rasterize(self, crs_aoi, width: int, height: int, geotransform: Affine) -> NDArray[np.uint8]:
        """Image where each pixel is a cell, non-zero if covered by the AOI"""
        try:
            return rasterio.features.rasterize(
                [(crs_aoi, _COVERED)],
                out_shape=(height, width),
                transform=geotransform.to_affine(),
                fill=0,
                all_touched=True,
                dtype="uint8",
            )
        except (RasterioError, ValueError) as e:
            raise RasterizeError(f"Covers: fail to rasterize: {e}") from e

    def _stream(
        self, mask: NDArray[np.uint8], i0: int, j0: int, cancel: Optional[threading.Event]
    ) -> Iterator[StreamedURI]:
        for j, row in enumerate(mask):
            for i in np.flatnonzero(row):
                yield StreamedURI(uri=f"{int(i) + i0}/{j + j0}")
            if cancel is not None and cancel.is_set():
                yield StreamedURI(error=CancelledError("RegularGrid.covers: cancelled"))
                return

    def __repr__(self) -> str:
        return (
            f"RegularGrid(srid={self.srid}, cell_size={self.cell_size_x}x{self.cell_size_y}, "
            f"pixel_to_crs={self.pixel_to_crs.to_gdal()})"
        )


def _cell_size(parameters: Mapping[str, str], key: str) -> int:
    try:
        return get_int(parameters, key, 0)
    except InvalidGridConfigError:
        return 0


def _resolution(parameters: Mapping[str, str]) -> float:
    try:
        resolution = get_float(parameters, "resolution", 0.0)
    except InvalidGridConfigError:
        resolution = 0.0
    if not (math.isfinite(resolution) and resolution > 0):
        raise InvalidGridConfigError("Resolution parameters: must contain a valid 'resolution'")
    return resolution
