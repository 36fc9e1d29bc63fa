"""
CubeGrid Test Configuration

Shared pytest fixtures for all tests.
"""

import json

import pytest
from shapely.geometry import Polygon


@pytest.fixture
def alps_aoi():
    """Lon/lat AOI [5.8, 44.5] - [6.6, 45.1]"""
    return Polygon([(5.8, 45.1), (5.8, 44.5), (6.6, 44.5), (6.6, 45.1), (5.8, 45.1)])


@pytest.fixture
def alps_geojson(alps_aoi):
    """Same AOI as a GeoJSON Feature"""
    return {
        "type": "Feature",
        "properties": {},
        "geometry": {
            "type": "Polygon",
            "coordinates": [[list(c) for c in alps_aoi.exterior.coords]],
        },
    }


@pytest.fixture
def alps_geojson_file(tmp_path, alps_geojson):
    """Same AOI written to a GeoJSON file"""
    path = tmp_path / "aoi.geojson"
    path.write_text(json.dumps({"type": "FeatureCollection", "features": [alps_geojson]}))
    return path


@pytest.fixture
def singlecell_parameters():
    """Parameters of a single cell grid in UTM 31N at 10m"""
    return {"grid": "singlecell", "crs": "32631", "resolution": "10"}


@pytest.fixture
def regular_parameters():
    """Parameters of a regular grid in UTM 31N, 4096 pixels of 10m per cell"""
    return {"grid": "regular", "crs": "32631", "cell_size": "4096", "resolution": "10"}
