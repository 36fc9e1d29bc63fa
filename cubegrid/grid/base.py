"""
Grid Protocol

Addressable tiling grids: a grid maps opaque cell URIs to cells, and an area
of interest to the URIs of the cells covering it.
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional, Protocol, Union

from rasterio.crs import CRS
from shapely.geometry import MultiPolygon
from shapely.geometry.base import BaseGeometry

from cubegrid.core.exceptions import CubeGridError, InvalidCellURIError
from cubegrid.geometry.affine import Affine
from cubegrid.geometry.proj import LONLAT_EPSG, LonLatTransform, xy_to_flat_coords
from cubegrid.geometry.shapes import GeographicRing, Ring, Shape, new_ring_from_extent

logger = logging.getLogger(__name__)

# Decimal places of the coordinates exported by cells_to_json
GEOJSON_DECIMALS = 12

AOI = Union[MultiPolygon, BaseGeometry, dict, str, Path]


@dataclass(frozen=True)
class Cell:
    """
    One addressable tile of a grid

    Attributes:
        uri: Grid-specific identifier of the cell
        crs: CRS of the grid
        srid: EPSG code of the CRS (0 if unknown)
        pixel_to_crs: Transform from cell pixel to CRS coordinates
        size_x, size_y: Size of the cell in pixels
        ring: Boundary of the cell in the CRS
        geographic_ring: Boundary of the cell in lon/lat
    """

    uri: str
    crs: CRS
    srid: int
    pixel_to_crs: Affine
    size_x: int
    size_y: int
    ring: Ring
    geographic_ring: GeographicRing


@dataclass(frozen=True)
class StreamedURI:
    """
    Element of a covering stream

    Exactly one of uri and error is set. An element carrying an error is the
    last one of the stream.
    """

    uri: Optional[str] = None
    error: Optional[CubeGridError] = None


class Grid(Protocol):
    """
    Tiling grid

    Grids are built once from their parameters and are safe to share: they
    only memoize their lon/lat transform handles.
    """

    def cell(self, uri: str) -> Cell:
        """
        Cell identified by uri

        Raises:
            InvalidCellURIError: If uri is not a valid cell of this grid
        """
        ...

    def covers(self, aoi: AOI, cancel: Optional[threading.Event] = None) -> Iterator[StreamedURI]:
        """
        Stream the URIs of the cells covering a lon/lat area of interest

        URIs are unique, but the cells they define might overlap.

        Args:
            aoi: Area of interest in lon/lat (MultiPolygon, Polygon, GeoJSON
                mapping or path to a GeoJSON file)
            cancel: Event polled while streaming; once set, a final
                StreamedURI(error=CancelledError) is emitted

        Raises:
            InvalidAOIError: If the area of interest is empty
            MemoryLimitExceededError: If the covering is too large
            TransformError, RasterizeError: On external library failures
        """
        ...


def new_cell(
    uri: str,
    crs: CRS,
    srid: int,
    pixel_to_crs: Affine,
    size_x: int,
    size_y: int,
    crs_to_lonlat: LonLatTransform,
) -> Cell:
    """
    Build a cell from its pixel-to-CRS transform and size

    The geographic ring is the reprojection of the four corners, without
    densification. Corners outside the domain of the projection become inf.
    """
    ring = new_ring_from_extent(pixel_to_crs, size_x, size_y, srid)

    # Transform all the coordinates at once
    x, y = ring.xy()
    lon, lat = crs_to_lonlat.transform(x, y, errcheck=False)

    return Cell(
        uri=uri,
        crs=crs,
        srid=srid,
        pixel_to_crs=pixel_to_crs,
        size_x=size_x,
        size_y=size_y,
        ring=ring,
        geographic_ring=GeographicRing(xy_to_flat_coords(lon, lat), LONLAT_EPSG),
    )


def cells_to_json(grid: Grid, cell_uris: Iterable[str]) -> str:
    """
    GeoJSON MultiPolygon of the geographic rings of the cells

    Args:
        grid: Grid the URIs belong to
        cell_uris: URIs of the cells

    Returns:
        GeoJSON string (coordinates rounded to 12 decimal places)

    Examples:
        >>> grid = new_grid([], {"grid": "regular", "crs": "3857", "cell_size": "256", "resolution": "10"})
        >>> cells_to_json(grid, ["0/0", "0/1"])
        '{"type": "MultiPolygon", "coordinates": [...]}'
    """
    rings = []
    for uri in cell_uris:
        try:
            cell = grid.cell(uri)
        except CubeGridError as e:
            raise InvalidCellURIError(f"unable to retrieve the cell '{uri}': {e}") from e
        rings.append(cell.geographic_ring)
    return Shape.from_rings(rings, LONLAT_EPSG).to_geojson(GEOJSON_DECIMALS)
