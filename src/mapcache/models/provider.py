from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class ProviderKind(Enum):
    """Supported tile providers"""
    OSM = 'osm'
    MAPBOX_SATELLITE = 'satellite'
    MAPBOX_TERRAIN_RGB = 'terrain'

    @property
    def requires_token(self) -> bool:
        return self is not ProviderKind.OSM

    @classmethod
    def from_value(cls, value: Union[str, int, 'ProviderKind']) -> 'ProviderKind':
        """Accept an enum, its name, its short value or the legacy numeric id (0/1/2)"""
        if isinstance(value, ProviderKind):
            return value
        key = str(value).strip().lower()
        if key in _LEGACY_IDS:
            return _LEGACY_IDS[key]
        for kind in cls:
            if key in (kind.value, kind.name.lower()):
                return kind
        raise ValueError(f"Unknown provider: {value!r} (expected one of: osm, satellite, terrain)")


_LEGACY_IDS = {
    '0': ProviderKind.OSM,
    '1': ProviderKind.MAPBOX_SATELLITE,
    '2': ProviderKind.MAPBOX_TERRAIN_RGB,
}


@dataclass(frozen=True)
class ProviderConfig:
    """Provider selection plus its access token"""
    kind: ProviderKind
    token: Optional[str] = None

    def get_name(self) -> str:
        return self.kind.value


@dataclass(frozen=True)
class TileRequest:
    """Resolved fetch target for one tile"""
    url: str
    filename: str
    needs_conversion: bool
