"""
Tests for CRS parsing and lon/lat transforms
"""

import math
import threading

import numpy as np
import pytest
from rasterio.crs import CRS

from cubegrid.core.exceptions import InvalidCRSError, TransformError
from cubegrid.geometry.proj import (
    EARTH_RADIUS_M,
    CRSCache,
    LazyLonLatTransforms,
    LonLatTransform,
    crs_from_user_input,
    flat_coords_to_xy,
    lon_lat_distance,
    lon_lat_mid_point,
    srid,
    xy_to_flat_coords,
)


class TestCRSFromUserInput:
    """Test CRS parsing"""

    @pytest.mark.parametrize("user_input", ["32631", "EPSG:32631", "epsg:32631", "epsg32631", " 32631 "])
    def test_epsg(self, user_input):
        """Test EPSG codes in their accepted forms"""
        crs, epsg = crs_from_user_input(user_input)
        assert isinstance(crs, CRS)
        assert epsg == 32631

    def test_proj4_without_epsg(self):
        """Test a proj4 string with no EPSG equivalent has SRID 0"""
        crs, epsg = crs_from_user_input("+proj=sinu +lon_0=0 +x_0=0 +y_0=0 +R=6371007.181 +units=m +no_defs")
        assert crs.is_projected
        assert epsg == 0

    def test_wkt(self):
        """Test WKT input"""
        crs, epsg = crs_from_user_input(CRS.from_epsg(4326).to_wkt())
        assert epsg == 4326
        assert crs.is_geographic

    @pytest.mark.parametrize("user_input", ["", "   ", None, "not a crs", "epsg:abc", "999999"])
    def test_invalid(self, user_input):
        """Test invalid inputs raise InvalidCRSError"""
        with pytest.raises(InvalidCRSError):
            crs_from_user_input(user_input)

    def test_srid_of_none(self):
        """Test srid of a missing CRS"""
        assert srid(None) == 0
        assert srid(CRS.from_epsg(3857)) == 3857


class TestCRSCache:
    """Test the CRS cache"""

    def test_get_parses_once(self):
        """Test repeated inputs share the cached CRS"""
        cache = CRSCache()
        crs1, epsg1 = cache.get("32631")
        crs2, epsg2 = cache.get("32631")
        assert crs1 is crs2
        assert epsg1 == epsg2 == 32631
        assert len(cache) == 1

    def test_invalid_not_cached(self):
        """Test invalid inputs raise and are not cached"""
        cache = CRSCache()
        with pytest.raises(InvalidCRSError):
            cache.get("not a crs")
        assert len(cache) == 0

    def test_context_manager_closes(self):
        """Test the cache is released on exit"""
        with CRSCache() as cache:
            cache.get("4326")
            assert len(cache) == 1
        assert len(cache) == 0
        with pytest.raises(RuntimeError):
            cache.get("4326")


class TestLonLatTransform:
    """Test coordinate transforms between a CRS and lon/lat"""

    @pytest.fixture
    def utm31n(self):
        return CRS.from_epsg(32631)

    def test_to_lonlat(self, utm31n):
        """Test the central meridian of UTM 31N"""
        lon, lat = LonLatTransform(utm31n, inverse=True).transform([500000.0], [0.0])
        assert lon[0] == pytest.approx(3.0)
        assert lat[0] == pytest.approx(0.0, abs=1e-9)

    def test_to_crs(self, utm31n):
        """Test lon/lat to UTM 31N"""
        x, y = LonLatTransform(utm31n, inverse=False).transform([3.0], [0.0])
        assert x[0] == pytest.approx(500000.0)
        assert y[0] == pytest.approx(0.0, abs=1e-6)

    def test_round_trip(self, utm31n):
        """Test batch transforms are inverse of each other"""
        lons = np.array([5.8, 5.8, 6.6, 6.6])
        lats = np.array([45.1, 44.5, 44.5, 45.1])
        x, y = LonLatTransform(utm31n, inverse=False).transform(lons, lats)
        lon, lat = LonLatTransform(utm31n, inverse=True).transform(x, y)
        np.testing.assert_allclose(lon, lons, atol=1e-9)
        np.testing.assert_allclose(lat, lats, atol=1e-9)

    def test_transform_coords(self, utm31n):
        """Test (N, 2) arrays"""
        coords = LonLatTransform(utm31n, inverse=False).transform_coords(np.array([[3.0, 0.0], [3.0, 10.0]]))
        assert coords.shape == (2, 2)
        assert coords[0, 0] == pytest.approx(500000.0)

    def test_empty(self, utm31n):
        """Test empty input"""
        x, y = LonLatTransform(utm31n, inverse=False).transform([], [])
        assert x.size == 0 and y.size == 0

    def test_failure(self):
        """Test invalid latitudes raise with errcheck, and give inf without"""
        to_crs = LonLatTransform(CRS.from_epsg(3857), inverse=False)
        with pytest.raises(TransformError):
            to_crs.transform([0.0], [100.0])
        x, y = to_crs.transform_point(0.0, 100.0)
        assert not (math.isfinite(x) and math.isfinite(y))


class TestLazyLonLatTransforms:
    """Test lazily created transform handles"""

    def test_memoized(self):
        """Test handles are created once per direction"""
        transforms = LazyLonLatTransforms(CRS.from_epsg(32631))
        assert transforms.to_crs() is transforms.to_crs()
        assert transforms.to_lonlat() is transforms.to_lonlat()
        assert transforms.to_crs().inverse is False
        assert transforms.to_lonlat().inverse is True

    def test_concurrent_creation(self):
        """Test concurrent callers share the same handle"""
        transforms = LazyLonLatTransforms(CRS.from_epsg(32631))
        results = []

        def worker():
            results.append(transforms.to_lonlat())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 8
        assert all(r is results[0] for r in results)


class TestSphericalHelpers:
    """Test distances and midpoints on the sphere"""

    def test_distance_one_degree(self):
        """Test one degree along a meridian"""
        assert lon_lat_distance(0, 0, 0, 1) == pytest.approx(EARTH_RADIUS_M * math.pi / 180)

    def test_distance_same_point(self):
        """Test distance of a point to itself"""
        assert lon_lat_distance(6.2, 44.8, 6.2, 44.8) == pytest.approx(0.0, abs=1.0)

    def test_distance_antipodes(self):
        """Test antipodal points are half a circumference apart"""
        assert lon_lat_distance(0, 0, 180, 0) == pytest.approx(EARTH_RADIUS_M * math.pi)

    def test_mid_point_geometric(self):
        """Test straight midpoint in lon/lat space"""
        assert lon_lat_mid_point(0, 10, 10, 20, geodetic=False) == (5.0, 15.0)

    def test_mid_point_equator(self):
        """Test geodesic midpoint on the equator"""
        lon, lat = lon_lat_mid_point(0, 0, 90, 0, geodetic=True)
        assert lon == pytest.approx(45.0)
        assert lat == pytest.approx(0.0, abs=1e-12)

    def test_mid_point_great_circle(self):
        """Test geodesic midpoint bulges towards the pole"""
        lon, lat = lon_lat_mid_point(-10, 45, 10, 45, geodetic=True)
        assert lon == pytest.approx(0.0, abs=1e-12)
        assert lat > 45.0


class TestFlatCoords:
    """Test flat coordinates helpers"""

    def test_flat_coords_to_xy(self):
        x, y = flat_coords_to_xy([1, 2, 3, 4, 5, 6])
        assert x.tolist() == [1.0, 3.0, 5.0]
        assert y.tolist() == [2.0, 4.0, 6.0]

    def test_xy_to_flat_coords(self):
        assert xy_to_flat_coords([1, 3], [2, 4]) == (1.0, 2.0, 3.0, 4.0)
