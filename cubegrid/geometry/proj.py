"""
Projection utilities

CRS parsing, lon/lat coordinate transforms and spherical helpers used by the
grid and shape modules.

CRS objects are `rasterio.crs.CRS`; coordinate transforms are long-lived
`pyproj.Transformer` handles operating on whole coordinate arrays at once.
"""

import logging
import math
import threading
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
import pyproj
from numpy.typing import NDArray
from pyproj.exceptions import ProjError
from rasterio.crs import CRS
from rasterio.errors import CRSError

from cubegrid.core.exceptions import InvalidCRSError, TransformError

logger = logging.getLogger(__name__)

RAD_TO_DEG = 180 / math.pi
DEG_TO_RAD = math.pi / 180

# Spherical approximation used for distance estimates
EARTH_RADIUS_M = 6371000.0

LONLAT_EPSG = 4326


def srid(crs: Optional[CRS]) -> int:
    """
    Return the EPSG code of the CRS, or 0 if it cannot be identified

    Identification of proj4 or WKT inputs is best effort.
    """
    if crs is None:
        return 0
    try:
        epsg = crs.to_epsg()
    except CRSError:
        return 0
    return epsg or 0


def crs_from_user_input(user_input: str) -> Tuple[CRS, int]:
    """
    Parse a CRS from an EPSG code, "EPSG:xxxx", a proj4 string or WKT

    Args:
        user_input: e.g. "32631", "epsg:4326", "+proj=utm +zone=31 +datum=WGS84"

    Returns:
        (crs, srid) where srid is 0 when the EPSG code is unknown

    Raises:
        InvalidCRSError: If the input cannot be parsed
    """
    text = str(user_input).strip() if user_input is not None else ""
    if not text:
        raise InvalidCRSError("empty CRS")

    try:
        if text.lstrip("+-").isdigit():
            epsg = int(text)
            return CRS.from_epsg(epsg), epsg
        if text.lower().startswith("epsg"):
            epsg = int(text[4:].lstrip(":"))
            return CRS.from_epsg(epsg), epsg
        if text.startswith("+"):
            crs = CRS.from_proj4(text)
            return crs, srid(crs)
        crs = CRS.from_wkt(text)
        return crs, srid(crs)
    except (CRSError, ValueError) as e:
        raise InvalidCRSError(f"unable to parse CRS '{text}': {e}") from e


class CRSCache:
    """
    Cache of parsed CRS keyed by user input

    Owned by the layer that builds grids; release it with close() or use it
    as a context manager.

    Examples:
        >>> with CRSCache() as cache:
        ...     crs, epsg = cache.get("32631")
    """

    def __init__(self):
        self._entries: Dict[str, Tuple[CRS, int]] = {}
        self._lock = threading.Lock()
        self._closed = False

    def get(self, user_input: str) -> Tuple[CRS, int]:
        """Parse user_input once and return the cached (crs, srid)"""
        key = str(user_input).strip()
        with self._lock:
            if self._closed:
                raise RuntimeError("CRSCache is closed")
            entry = self._entries.get(key)
            if entry is None:
                entry = crs_from_user_input(key)
                self._entries[key] = entry
                logger.debug("Cached CRS %s (srid=%d)", key, entry[1])
            return entry

    def __len__(self) -> int:
        return len(self._entries)

    def close(self):
        with self._lock:
            self._entries.clear()
            self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class LonLatTransform:
    """
    Coordinate transform between a CRS and geographic lon/lat (EPSG:4326)

    Coordinates are always in (x, y) = (lon, lat) order.

    Args:
        crs: Projected (or geographic) CRS of the grid
        inverse: If True, transform from crs to lon/lat, otherwise lon/lat to crs
    """

    def __init__(self, crs: CRS, inverse: bool):
        self.crs = crs
        self.inverse = inverse
        try:
            grid_crs = pyproj.CRS.from_user_input(crs.to_wkt())
            lonlat_crs = pyproj.CRS.from_epsg(LONLAT_EPSG)
            if inverse:
                self._transformer = pyproj.Transformer.from_crs(grid_crs, lonlat_crs, always_xy=True)
            else:
                self._transformer = pyproj.Transformer.from_crs(lonlat_crs, grid_crs, always_xy=True)
        except (ProjError, CRSError) as e:
            raise TransformError(f"unable to create lon/lat transform for {crs}: {e}") from e

    def transform(
        self, xs: Sequence[float], ys: Sequence[float], errcheck: bool = True
    ) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        """
        Transform arrays of coordinates in a single call

        Args:
            xs: X coordinates (or longitudes)
            ys: Y coordinates (or latitudes)
            errcheck: Raise on failed points instead of returning inf

        Raises:
            TransformError: If errcheck is set and a point cannot be transformed
        """
        x = np.asarray(xs, dtype=np.float64)
        y = np.asarray(ys, dtype=np.float64)
        if x.size == 0:
            return x.copy(), y.copy()
        try:
            tx, ty = self._transformer.transform(x, y, errcheck=errcheck)
        except ProjError as e:
            raise TransformError(f"failed to transform coordinates: {e}") from e
        return np.asarray(tx, dtype=np.float64), np.asarray(ty, dtype=np.float64)

    def transform_point(self, x: float, y: float) -> Tuple[float, float]:
        """Transform a single point, returning inf on failure"""
        tx, ty = self._transformer.transform(x, y)
        return float(tx), float(ty)

    def transform_coords(self, coords: NDArray[np.float64]) -> NDArray[np.float64]:
        """Transform an (N, 2) array of coordinates, raising on failure"""
        x, y = self.transform(coords[:, 0], coords[:, 1])
        return np.column_stack([x, y])


class LazyLonLatTransforms:
    """
    Lon/lat transforms of a CRS created on first use

    Creation is double-checked under a lock, so concurrent callers share a
    single handle per direction.
    """

    def __init__(self, crs: CRS):
        self.crs = crs
        self._lock = threading.Lock()
        self._to_crs: Optional[LonLatTransform] = None
        self._to_lonlat: Optional[LonLatTransform] = None

    def to_crs(self) -> LonLatTransform:
        """lon/lat -> crs"""
        if self._to_crs is None:
            with self._lock:
                if self._to_crs is None:
                    self._to_crs = LonLatTransform(self.crs, inverse=False)
        return self._to_crs

    def to_lonlat(self) -> LonLatTransform:
        """crs -> lon/lat"""
        if self._to_lonlat is None:
            with self._lock:
                if self._to_lonlat is None:
                    self._to_lonlat = LonLatTransform(self.crs, inverse=True)
        return self._to_lonlat


def flat_coords_to_xy(flat: Sequence[float]) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Split interleaved [x0, y0, x1, y1, ...] into two arrays x, y"""
    arr = np.asarray(flat, dtype=np.float64)
    n = arr.size // 2
    arr = arr[: 2 * n].reshape(n, 2)
    return arr[:, 0].copy(), arr[:, 1].copy()


def xy_to_flat_coords(x: Sequence[float], y: Sequence[float]) -> Tuple[float, ...]:
    """Interleave two arrays x, y into flat coordinates"""
    stacked = np.column_stack([np.asarray(x, dtype=np.float64), np.asarray(y, dtype=np.float64)])
    return tuple(stacked.ravel().tolist())


def lon_lat_distance(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    """Approximate great-circle distance in meters between two lon/lat points"""
    lon1, lat1, lon2, lat2 = DEG_TO_RAD * lon1, DEG_TO_RAD * lat1, DEG_TO_RAD * lon2, DEG_TO_RAD * lat2
    t = math.sin(lat1) * math.sin(lat2) + math.cos(lat1) * math.cos(lat2) * math.cos(lon2 - lon1)
    if t > 1:
        return 0.0
    return EARTH_RADIUS_M * math.acos(max(t, -1.0))


def lon_lat_mid_point(lon1: float, lat1: float, lon2: float, lat2: float, geodetic: bool) -> Tuple[float, float]:
    """
    Middle point of two lon/lat points

    Args:
        geodetic: Follow the great circle if True, otherwise the straight
            line in lon/lat space
    """
    if not geodetic:
        return (lon1 + lon2) / 2, (lat1 + lat2) / 2
    lon1, lat1, lon2, lat2 = DEG_TO_RAD * lon1, DEG_TO_RAD * lat1, DEG_TO_RAD * lon2, DEG_TO_RAD * lat2
    dlon = lon2 - lon1
    bx = math.cos(lat2) * math.cos(dlon)
    by = math.cos(lat2) * math.sin(dlon)
    cx = math.cos(lat1) + bx
    latm = math.atan2(math.sin(lat1) + math.sin(lat2), math.sqrt(cx * cx + by * by))
    lonm = lon1 + math.atan2(by, cx)
    return RAD_TO_DEG * lonm, RAD_TO_DEG * latm
