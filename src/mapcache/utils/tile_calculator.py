import math
from typing import List

from mapcache.models.tile import BoundingBox, PlanarPoint, TileCoordinate, TileRange, ZoomRange
from mapcache.utils.projection import SphericalMercator, TILE_SIZE


class TileCalculator:
    """Utility class for tile coordinate calculations.

    Ranges are the exact floored cover of the box: no extra tile is added on
    the high edge. Indices are clamped to the ``[0, 2**z - 1]`` grid.
    """

    @staticmethod
    def point_to_tile(lat: float, lng: float, zoom: int) -> TileCoordinate:
        """Tile containing the given lat/lng"""
        scale = SphericalMercator.zoom_scale(zoom)
        pixel = SphericalMercator.to_normalized_pixel(SphericalMercator.project(lat, lng), scale)
        last = 2 ** zoom - 1
        x = min(max(math.floor(pixel.x / TILE_SIZE), 0), last)
        y = min(max(math.floor(pixel.y / TILE_SIZE), 0), last)
        return TileCoordinate(x, y, zoom)

    @staticmethod
    def get_tile_range(bbox: BoundingBox, zoom: int) -> TileRange:
        """Inclusive tile range covering bbox at zoom"""
        first = TileCalculator.point_to_tile(bbox.min.latitude, bbox.min.longitude, zoom)
        second = TileCalculator.point_to_tile(bbox.max.latitude, bbox.max.longitude, zoom)

        # Longitude was sorted by the box; pixel y runs opposite to latitude
        min_y, max_y = sorted((first.y, second.y))
        return TileRange(
            min=TileCoordinate(first.x, min_y, zoom),
            max=TileCoordinate(second.x, max_y, zoom),
        )

    @staticmethod
    def get_tile_ranges(bbox: BoundingBox, zoom_range: ZoomRange) -> List[TileRange]:
        """One range per zoom level, lowest zoom first"""
        return [TileCalculator.get_tile_range(bbox, zoom) for zoom in zoom_range]

    @staticmethod
    def calculate_tile_count(bbox: BoundingBox, zoom_range: ZoomRange) -> int:
        """Calculate total number of tiles for given bbox and zoom range"""
        return sum(tile_range.count for tile_range in TileCalculator.get_tile_ranges(bbox, zoom_range))

    @staticmethod
    def tile_bounds(tile: TileCoordinate) -> BoundingBox:
        """Geographic bounds of a tile"""
        scale = SphericalMercator.zoom_scale(tile.z)
        corners = []
        for px, py in ((tile.x, tile.y + 1), (tile.x + 1, tile.y)):
            planar = SphericalMercator.from_normalized_pixel(
                PlanarPoint(px * TILE_SIZE, py * TILE_SIZE), scale
            )
            corners.append(SphericalMercator.unproject(planar))
        return BoundingBox.from_corners(corners[0], corners[1])
