"""
CubeGrid Geometry Module

Affine transforms, CRS handling and lon/lat densification of rings and shapes.
"""

from cubegrid.geometry.affine import Affine, NonInvertibleTransformError
from cubegrid.geometry.proj import (
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
from cubegrid.geometry.shapes import (
    GeographicRing,
    GeographicShape,
    GeometricRing,
    GeometricShape,
    Ring,
    Shape,
    load_aoi,
    new_geographic_ring_from_extent,
    new_geographic_shape_from_shape,
    new_geometric_shape_from_shape,
    new_polygon_from_extent,
    new_ring_from_extent,
)

__all__ = [
    "Affine",
    "CRSCache",
    "GeographicRing",
    "GeographicShape",
    "GeometricRing",
    "GeometricShape",
    "LazyLonLatTransforms",
    "LonLatTransform",
    "NonInvertibleTransformError",
    "Ring",
    "Shape",
    "crs_from_user_input",
    "flat_coords_to_xy",
    "load_aoi",
    "lon_lat_distance",
    "lon_lat_mid_point",
    "new_geographic_ring_from_extent",
    "new_geographic_shape_from_shape",
    "new_geometric_shape_from_shape",
    "new_polygon_from_extent",
    "new_ring_from_extent",
    "srid",
    "xy_to_flat_coords",
]
