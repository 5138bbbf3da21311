import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
from mapcache.exceptions.tile_downloader_exceptions import MissingTokenError
from mapcache.models.provider import ProviderConfig, ProviderKind
from mapcache.services.provider_resolver import ProviderResolver


def test_osm_request():
    request = ProviderResolver.resolve(ProviderKind.OSM, None, 3, 5, 4)
    assert request.url == "https://tile.openstreetmap.org/4/3/5.png"
    assert request.filename == "osm_3_5_4.png"
    assert request.needs_conversion is False


def test_satellite_request_needs_conversion():
    request = ProviderResolver.resolve(ProviderKind.MAPBOX_SATELLITE, "pk.abc", 10, 20, 6)
    assert request.url == (
        "https://api.mapbox.com/styles/v1/mapbox/satellite-v9/tiles/6/10/20?access_token=pk.abc"
    )
    assert request.filename == "sat_10_20_6.png"
    assert request.needs_conversion is True


def test_terrain_request():
    request = ProviderResolver.resolve(ProviderKind.MAPBOX_TERRAIN_RGB, "pk.abc", 1, 2, 3)
    assert request.url == "https://api.mapbox.com/v4/mapbox.terrain-rgb/3/1/2.png?access_token=pk.abc"
    assert request.filename == "terrain_1_2_3.png"
    assert request.needs_conversion is False


def test_osm_ignores_token():
    request = ProviderResolver.resolve(ProviderKind.OSM, "unused", 0, 0, 0)
    assert "unused" not in request.url


@pytest.mark.parametrize("kind", [ProviderKind.MAPBOX_SATELLITE, ProviderKind.MAPBOX_TERRAIN_RGB])
@pytest.mark.parametrize("token", [None, "", "   "])
def test_missing_token(kind, token):
    with pytest.raises(MissingTokenError):
        ProviderResolver.validate_token(ProviderConfig(kind, token))
    with pytest.raises(MissingTokenError):
        ProviderResolver.resolve(kind, token, 0, 0, 0)


def test_filenames_do_not_collide():
    names = set()
    for kind in ProviderKind:
        for z in range(3):
            for x in range(2 ** z):
                for y in range(2 ** z):
                    names.add(ProviderResolver.get_filename(kind, x, y, z))
    assert len(names) == len(ProviderKind) * (1 + 4 + 16)


@pytest.mark.parametrize("value,expected", [
    ("osm", ProviderKind.OSM),
    ("OSM", ProviderKind.OSM),
    (0, ProviderKind.OSM),
    ("1", ProviderKind.MAPBOX_SATELLITE),
    ("satellite", ProviderKind.MAPBOX_SATELLITE),
    ("mapbox_terrain_rgb", ProviderKind.MAPBOX_TERRAIN_RGB),
    (2, ProviderKind.MAPBOX_TERRAIN_RGB),
    (ProviderKind.OSM, ProviderKind.OSM),
])
def test_provider_kind_from_value(value, expected):
    assert ProviderKind.from_value(value) is expected


def test_provider_kind_unknown():
    with pytest.raises(ValueError):
        ProviderKind.from_value("bing")
