"""
Rings and Shapes

Immutable polygon types tagged with an SRID, and their conversion from a
projected CRS to lon/lat coordinates.

- Ring: a closed linear ring (flat coordinates [x0, y0, x1, y1, ..., x0, y0])
- Shape: a multipolygon (polygons -> rings -> flat coordinates)
- Geographic* variants: lon/lat, edges follow geodesic lines
- Geometric* variants: lon/lat, edges are straight in lon/lat space

Converting to lon/lat densifies every edge so that the polyline stays within
1% of the edge length of the reprojected curve.
"""

import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple, Union

import numpy as np
import shapely
from numpy.typing import NDArray
from rasterio.crs import CRS
from shapely.geometry import MultiPolygon, Polygon, mapping, shape
from shapely.geometry.base import BaseGeometry

from cubegrid.core.exceptions import InvalidAOIError
from cubegrid.geometry.affine import Affine
from cubegrid.geometry.proj import (
    LONLAT_EPSG,
    LonLatTransform,
    flat_coords_to_xy,
    lon_lat_distance,
    lon_lat_mid_point,
    xy_to_flat_coords,
)

logger = logging.getLogger(__name__)

# Maximum deviation between the densified polyline and the reprojected edge,
# as a fraction of the edge length
ACCURACY_PC = 0.01
DENSIFY_MAX_RECURSION = 5

FlatCoords = Tuple[float, ...]
Projection = Callable[[float, float], Tuple[float, float]]


# -----------------------------------------------------------------------------
# Rings
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Ring:
    """
    Closed linear ring tagged with an SRID (0 = unspecified)

    Attributes:
        flat_coords: Interleaved coordinates, first point repeated at the end
        srid: Spatial reference identifier
    """

    flat_coords: FlatCoords
    srid: int = 0

    def __post_init__(self):
        object.__setattr__(self, "flat_coords", tuple(float(v) for v in self.flat_coords))
        object.__setattr__(self, "srid", int(self.srid))

    @property
    def num_coords(self) -> int:
        return len(self.flat_coords) // 2

    def coords(self) -> List[Tuple[float, float]]:
        fc = self.flat_coords
        return [(fc[i], fc[i + 1]) for i in range(0, len(fc) - 1, 2)]

    def xy(self) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        return flat_coords_to_xy(self.flat_coords)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """(minx, miny, maxx, maxy)"""
        return _flat_bounds(self.flat_coords)

    def equal(self, other: "Ring") -> bool:
        """Same SRID and same coordinates, whatever the ring variant"""
        return self.srid == other.srid and self.flat_coords == other.flat_coords

    def clone_to_4326(self, crs: CRS, geodetic: bool, to_lonlat: Optional[LonLatTransform] = None) -> "Ring":
        """
        Ring in lon/lat coordinates covering this ring expressed in crs

        Args:
            crs: CRS of this ring
            geodetic: Densify for geodesic edges (True) or straight lon/lat
                edges (False)
            to_lonlat: Existing crs -> lon/lat transform to reuse

        Returns:
            Densified ring with SRID 4326
        """
        if to_lonlat is None:
            to_lonlat = LonLatTransform(crs, inverse=True)
        return Ring(_densify_ring(self.flat_coords, to_lonlat, geodetic), LONLAT_EPSG)

    def to_shapely(self) -> Polygon:
        return Polygon(self.coords())

    @classmethod
    def from_shapely(cls, polygon: Polygon, srid: int = 0) -> "Ring":
        """Ring from the exterior of a shapely Polygon"""
        if not isinstance(polygon, Polygon):
            raise ValueError(f"data is not a polygon: {polygon.geom_type}")
        return cls(_linear_ring_flat_coords(polygon.exterior), srid)

    def to_wkb(self) -> str:
        """Hex EWKB of the ring as a polygon, SRID included"""
        return _to_ewkb_hex(self.to_shapely(), self.srid)

    @classmethod
    def from_wkb(cls, data: Union[str, bytes]) -> "Ring":
        geom = shapely.from_wkb(data)
        return cls.from_shapely(geom, int(shapely.get_srid(geom)))

    def to_geojson(self, decimals: Optional[int] = None) -> str:
        return _to_geojson(self.to_shapely(), decimals)


class GeographicRing(Ring):
    """Ring of lon/lat coordinates whose edges follow geodesic lines"""


class GeometricRing(Ring):
    """Ring of lon/lat coordinates whose edges are straight lines"""


def new_polygon_from_extent(pixel_to_crs: Affine, width: int, height: int) -> FlatCoords:
    """
    Flat coordinates of the box covering a raster extent

    Args:
        pixel_to_crs: Pixel to CRS transform of the raster
        width, height: Raster size in pixels

    Returns:
        (xmin, ymin, xmin, ymax, xmax, ymax, xmax, ymin, xmin, ymin)
    """
    xmin, ymin = pixel_to_crs.transform(0, 0)
    xmax, ymax = pixel_to_crs.transform(float(width), float(height))
    if xmin > xmax:
        xmin, xmax = xmax, xmin
    if ymin > ymax:
        ymin, ymax = ymax, ymin
    return (xmin, ymin, xmin, ymax, xmax, ymax, xmax, ymin, xmin, ymin)


def new_ring_from_extent(pixel_to_crs: Affine, width: int, height: int, srid: int) -> Ring:
    """Ring corresponding to a raster extent"""
    return Ring(new_polygon_from_extent(pixel_to_crs, width, height), srid)


def new_geographic_ring_from_extent(pixel_to_crs: Affine, width: int, height: int, crs: CRS) -> GeographicRing:
    """
    Geographic ring covering a raster extent expressed in crs

    Examples:
        >>> crs, _ = crs_from_user_input("32631")
        >>> pix = Affine.translation(720298.4, 5000366.3) * Affine.scale(10, -10)
        >>> ring = new_geographic_ring_from_extent(pix, 6590, 6914, crs)
        >>> ring.srid
        4326
    """
    ring = new_ring_from_extent(pixel_to_crs, width, height, 0).clone_to_4326(crs, geodetic=True)
    return GeographicRing(ring.flat_coords, ring.srid)


# -----------------------------------------------------------------------------
# Shapes
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Shape:
    """
    XY multipolygon tagged with an SRID

    Attributes:
        polygons: For each polygon, its rings (exterior first) as flat
            coordinates
        srid: Spatial reference identifier (not always reliable)
    """

    polygons: Tuple[Tuple[FlatCoords, ...], ...]
    srid: int = 0

    def __post_init__(self):
        polygons = tuple(tuple(tuple(float(v) for v in ring) for ring in polygon) for polygon in self.polygons)
        object.__setattr__(self, "polygons", polygons)
        object.__setattr__(self, "srid", int(self.srid))

    @classmethod
    def from_rings(cls, rings: Iterable[Ring], srid: Optional[int] = None) -> "Shape":
        """One single-ring polygon per ring"""
        rings = list(rings)
        if srid is None:
            srid = rings[0].srid if rings else 0
        return cls(tuple((r.flat_coords,) for r in rings), srid)

    @property
    def num_polygons(self) -> int:
        return len(self.polygons)

    def polygon(self, i: int) -> Tuple[Ring, ...]:
        return tuple(Ring(ring, self.srid) for ring in self.polygons[i])

    @property
    def flat_coords(self) -> FlatCoords:
        return tuple(v for polygon in self.polygons for ring in polygon for v in ring)

    @property
    def num_coords(self) -> int:
        return len(self.flat_coords) // 2

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """(minx, miny, maxx, maxy)"""
        return _flat_bounds(self.flat_coords)

    def equal(self, other: "Shape") -> bool:
        """Same SRID and same coordinates, whatever the shape variant"""
        return self.srid == other.srid and self.polygons == other.polygons

    def clone_to_4326(self, crs: CRS, geodetic: bool, to_lonlat: Optional[LonLatTransform] = None) -> "Shape":
        """
        Shape in lon/lat coordinates covering this shape expressed in crs

        Every ring of every polygon is densified independently.
        """
        if to_lonlat is None:
            to_lonlat = LonLatTransform(crs, inverse=True)
        polygons = tuple(
            tuple(_densify_ring(ring, to_lonlat, geodetic) for ring in polygon) for polygon in self.polygons
        )
        return Shape(polygons, LONLAT_EPSG)

    def to_shapely(self) -> MultiPolygon:
        polygons = []
        for polygon in self.polygons:
            rings = [Ring(ring).coords() for ring in polygon]
            if rings:
                polygons.append(Polygon(rings[0], rings[1:]))
        return MultiPolygon(polygons)

    @classmethod
    def from_shapely(cls, geometry: BaseGeometry, srid: int = 0) -> "Shape":
        """Shape from a shapely Polygon or MultiPolygon"""
        if isinstance(geometry, Polygon):
            geometry = MultiPolygon([geometry]) if not geometry.is_empty else MultiPolygon()
        if not isinstance(geometry, MultiPolygon):
            raise ValueError(f"data is not a multipolygon: {geometry.geom_type}")
        polygons = []
        for polygon in geometry.geoms:
            if polygon.is_empty:
                continue
            rings = [polygon.exterior, *polygon.interiors]
            polygons.append(tuple(_linear_ring_flat_coords(r) for r in rings))
        return cls(tuple(polygons), srid)

    def to_wkb(self) -> str:
        """Hex EWKB of the multipolygon, SRID included"""
        return _to_ewkb_hex(self.to_shapely(), self.srid)

    @classmethod
    def from_wkb(cls, data: Union[str, bytes]) -> "Shape":
        geom = shapely.from_wkb(data)
        if not isinstance(geom, MultiPolygon):
            raise ValueError(f"data is not a multipolygon: {geom.geom_type}")
        return cls.from_shapely(geom, int(shapely.get_srid(geom)))

    def to_geojson(self, decimals: Optional[int] = None) -> str:
        return _to_geojson(self.to_shapely(), decimals)


class GeographicShape(Shape):
    """Shape of lon/lat coordinates whose edges follow geodesic lines"""


class GeometricShape(Shape):
    """Shape of lon/lat coordinates whose edges are straight lines"""


def new_geometric_shape_from_shape(shape_: Shape, crs: CRS) -> GeometricShape:
    """Shape in lon/lat whose straight edges cover the shape expressed in crs"""
    s = shape_.clone_to_4326(crs, geodetic=False)
    return GeometricShape(s.polygons, s.srid)


def new_geographic_shape_from_shape(shape_: Shape, crs: CRS) -> GeographicShape:
    """Shape in lon/lat whose geodesic edges cover the shape expressed in crs"""
    s = shape_.clone_to_4326(crs, geodetic=True)
    return GeographicShape(s.polygons, s.srid)


# -----------------------------------------------------------------------------
# Densification
# -----------------------------------------------------------------------------


def relative_accuracy(
    to_lonlat: LonLatTransform,
    x: NDArray[np.float64],
    y: NDArray[np.float64],
    lon: NDArray[np.float64],
    lat: NDArray[np.float64],
) -> List[float]:
    """
    Accuracy budget in meters of each edge (x[i], y[i]) -> (x[i+1], y[i+1])

    The reprojected midpoint of the edge is used so that the length follows
    the right side of the globe (e.g. points in different hemispheres).
    """
    xm = (x[:-1] + x[1:]) / 2
    ym = (y[:-1] + y[1:]) / 2
    lonm, latm = to_lonlat.transform(xm, ym, errcheck=False)
    acc = []
    for i in range(len(xm)):
        d1 = _distance_or_inf(lon[i], lat[i], lonm[i], latm[i])
        d2 = _distance_or_inf(lon[i + 1], lat[i + 1], lonm[i], latm[i])
        acc.append((d1 + d2) * ACCURACY_PC)
    return acc


def densify_edge(
    project: Projection,
    geodetic: bool,
    x1: float,
    y1: float,
    x2: float,
    y2: float,
    lon1: float,
    lat1: float,
    lon2: float,
    lat2: float,
    accuracy: float,
    recursion: int,
) -> List[float]:
    """
    Flat lon/lat points to insert between (lon1, lat1) and (lon2, lat2)

    The returned polyline differs from the reprojection of the segment
    (x1, y1) -> (x2, y2) by less than accuracy meters, unless the recursion
    budget runs out, in which case the best estimate is returned.
    """
    xm, ym = (x1 + x2) / 2, (y1 + y2) / 2
    lonm, latm = project(xm, ym)
    if not (math.isfinite(lonm) and math.isfinite(latm)):
        logger.warning("Unable to project midpoint [%f, %f], edge left undensified", xm, ym)
        return []

    lonm2, latm2 = lon_lat_mid_point(lon1, lat1, lon2, lat2, geodetic)

    distance = _distance_or_inf(lonm, latm, lonm2, latm2)
    if distance <= accuracy:
        return []

    if recursion <= 0:
        logger.warning(
            "Max number of recursions reached: [%f, %f, %f, %f]->[%f, %f]~[%f, %f, %f, %f]->[%f, %f] %f>%f",
            x1, y1, x2, y2, lonm, latm, lon1, lat1, lon2, lat2, lonm2, latm2, distance, accuracy,
        )
        return [lonm, latm]

    return (
        densify_edge(project, geodetic, x1, y1, xm, ym, lon1, lat1, lonm, latm, accuracy, recursion - 1)
        + [lonm, latm]
        + densify_edge(project, geodetic, xm, ym, x2, y2, lonm, latm, lon2, lat2, accuracy, recursion - 1)
    )


def _densify_ring(flat_coords: FlatCoords, to_lonlat: LonLatTransform, geodetic: bool) -> FlatCoords:
    x, y = flat_coords_to_xy(flat_coords)
    if x.size == 0:
        return ()

    # Project all the vertices at once
    lon, lat = to_lonlat.transform(x, y, errcheck=False)

    accuracy_m = relative_accuracy(to_lonlat, x, y, lon, lat)

    pts: List[float] = []
    for i, accuracy in enumerate(accuracy_m):
        pts.extend((float(lon[i]), float(lat[i])))
        pts.extend(
            densify_edge(
                to_lonlat.transform_point,
                geodetic,
                float(x[i]), float(y[i]), float(x[i + 1]), float(y[i + 1]),
                float(lon[i]), float(lat[i]), float(lon[i + 1]), float(lat[i + 1]),
                accuracy,
                DENSIFY_MAX_RECURSION,
            )
        )
    pts.extend((float(lon[0]), float(lat[0])))
    return tuple(pts)


def _distance_or_inf(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    if not all(math.isfinite(v) for v in (lon1, lat1, lon2, lat2)):
        return math.inf
    return lon_lat_distance(float(lon1), float(lat1), float(lon2), float(lat2))


# -----------------------------------------------------------------------------
# Conversion helpers
# -----------------------------------------------------------------------------


def load_aoi(geometry: Union[dict, BaseGeometry, str, Path]) -> MultiPolygon:
    """
    Area of interest as a lon/lat MultiPolygon

    Args:
        geometry: GeoJSON dict (geometry, Feature or FeatureCollection),
            shapely Polygon/MultiPolygon, or path to a GeoJSON file

    Returns:
        MultiPolygon (possibly empty)

    Raises:
        InvalidAOIError: If the geometry is not polygonal
    """
    if isinstance(geometry, (str, Path)):
        path = Path(geometry)
        if not path.exists():
            raise FileNotFoundError(f"GeoJSON file not found: {geometry}")
        with open(path) as f:
            geometry = json.load(f)

    if isinstance(geometry, dict):
        geometry = _geojson_to_geometry(geometry)

    if isinstance(geometry, Polygon):
        return MultiPolygon([geometry]) if not geometry.is_empty else MultiPolygon()
    if isinstance(geometry, MultiPolygon):
        return geometry
    if isinstance(geometry, BaseGeometry) and geometry.geom_type == "GeometryCollection":
        polygons = []
        for g in geometry.geoms:
            polygons.extend(load_aoi(g).geoms)
        return MultiPolygon(polygons)

    raise InvalidAOIError(f"Unsupported AOI type: {type(geometry).__name__}")


def _geojson_to_geometry(geojson: dict) -> BaseGeometry:
    if geojson.get("type") == "FeatureCollection":
        features = geojson.get("features", [])
        if not features:
            raise ValueError("Empty FeatureCollection")
        return shapely.GeometryCollection([shape(f["geometry"]) for f in features])
    if geojson.get("type") == "Feature":
        return shape(geojson["geometry"])
    return shape(geojson)


def _linear_ring_flat_coords(linear_ring) -> FlatCoords:
    coords = np.asarray(linear_ring.coords, dtype=np.float64)
    if coords.size == 0:
        return ()
    return xy_to_flat_coords(coords[:, 0], coords[:, 1])


def _flat_bounds(flat_coords: FlatCoords) -> Tuple[float, float, float, float]:
    if not flat_coords:
        return (math.nan, math.nan, math.nan, math.nan)
    xs = flat_coords[0::2]
    ys = flat_coords[1::2]
    return (min(xs), min(ys), max(xs), max(ys))


def _to_ewkb_hex(geometry: BaseGeometry, srid: int) -> str:
    return shapely.to_wkb(shapely.set_srid(geometry, srid), hex=True, include_srid=True, byte_order=1)


def _to_geojson(geometry: BaseGeometry, decimals: Optional[int] = None) -> str:
    if decimals is not None:
        geometry = shapely.transform(geometry, lambda coords: np.round(coords, decimals))
    return json.dumps(mapping(geometry))
