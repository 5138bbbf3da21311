from typing import Dict, NamedTuple, Optional

from mapcache.exceptions.tile_downloader_exceptions import MissingTokenError
from mapcache.models.provider import ProviderConfig, ProviderKind, TileRequest


class ProviderTemplate(NamedTuple):
    url: str
    prefix: str
    needs_conversion: bool


# Filenames are {prefix}_{x}_{y}_{z}.png for every provider; viewers rely on it
PROVIDER_TEMPLATES: Dict[ProviderKind, ProviderTemplate] = {
    ProviderKind.OSM: ProviderTemplate(
        url='https://tile.openstreetmap.org/{z}/{x}/{y}.png',
        prefix='osm',
        needs_conversion=False,
    ),
    ProviderKind.MAPBOX_SATELLITE: ProviderTemplate(
        url='https://api.mapbox.com/styles/v1/mapbox/satellite-v9/tiles/{z}/{x}/{y}?access_token={token}',
        prefix='sat',
        needs_conversion=True,  # served as JPEG
    ),
    ProviderKind.MAPBOX_TERRAIN_RGB: ProviderTemplate(
        url='https://api.mapbox.com/v4/mapbox.terrain-rgb/{z}/{x}/{y}.png?access_token={token}',
        prefix='terrain',
        needs_conversion=False,
    ),
}


class ProviderResolver:
    """Builds fetch URLs and output filenames for a provider"""

    @staticmethod
    def validate_token(provider: ProviderConfig) -> None:
        """Raise MissingTokenError when the provider needs a token and has none"""
        if provider.kind.requires_token and not (provider.token and provider.token.strip()):
            raise MissingTokenError(provider.get_name())

    @staticmethod
    def resolve(kind: ProviderKind, token: Optional[str], x: int, y: int, z: int) -> TileRequest:
        """Resolve the request for tile (x, y, z)"""
        ProviderResolver.validate_token(ProviderConfig(kind, token))
        template = PROVIDER_TEMPLATES[kind]
        return TileRequest(
            url=template.url.format(z=z, x=x, y=y, token=(token or '').strip()),
            filename=ProviderResolver.get_filename(kind, x, y, z),
            needs_conversion=template.needs_conversion,
        )

    @staticmethod
    def get_filename(kind: ProviderKind, x: int, y: int, z: int) -> str:
        return f"{PROVIDER_TEMPLATES[kind].prefix}_{x}_{y}_{z}.png"
