"""
Spherical Mercator (EPSG:3857) projection as used by web tile servers.

Points are projected to metres on a sphere of radius EARTH_RADIUS and then
mapped into a square pixel space of side ``zoom_scale(z)`` where the world
spans ``2**z`` tiles of TILE_SIZE pixels.
"""
import math

from mapcache.models.tile import GeoPoint, PlanarPoint

EARTH_RADIUS = 6378137
MAX_LATITUDE = 85.0511287798
TILE_SIZE = 256

# 1 / (2 * pi * EARTH_RADIUS)
TRANSFORM_SCALE = 2.495320233665337e-8


class SphericalMercator:
    """Geographic <-> planar conversions"""

    @staticmethod
    def project(lat: float, lng: float) -> PlanarPoint:
        """Project lat/lng in degrees to Mercator metres, clamping latitude"""
        d = math.pi / 180
        lat = max(min(MAX_LATITUDE, lat), -MAX_LATITUDE)
        sin = math.sin(lat * d)
        return PlanarPoint(
            x=EARTH_RADIUS * lng * d,
            y=EARTH_RADIUS * math.log((1 + sin) / (1 - sin)) / 2,
        )

    @staticmethod
    def unproject(point: PlanarPoint) -> GeoPoint:
        """Inverse of project()"""
        d = 180 / math.pi
        return GeoPoint(
            latitude=(2 * math.atan(math.exp(point.y / EARTH_RADIUS)) - math.pi / 2) * d,
            longitude=point.x * d / EARTH_RADIUS,
        )

    @staticmethod
    def zoom_scale(zoom: int) -> float:
        """World size in pixels at the given zoom"""
        return TILE_SIZE * math.pow(2, zoom)

    @staticmethod
    def to_normalized_pixel(point: PlanarPoint, scale: float = 1) -> PlanarPoint:
        """Map a Mercator point into [0, scale] x [0, scale] pixel space (y grows southwards)"""
        return PlanarPoint(
            x=scale * (TRANSFORM_SCALE * point.x + 0.5),
            y=scale * (-TRANSFORM_SCALE * point.y + 0.5),
        )

    @staticmethod
    def from_normalized_pixel(point: PlanarPoint, scale: float = 1) -> PlanarPoint:
        """Inverse of to_normalized_pixel()"""
        return PlanarPoint(
            x=(point.x / scale - 0.5) / TRANSFORM_SCALE,
            y=(point.y / scale - 0.5) / -TRANSFORM_SCALE,
        )
