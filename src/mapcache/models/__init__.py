from .provider import ProviderKind, ProviderConfig, TileRequest
from .tile import (
    GeoPoint,
    PlanarPoint,
    BoundingBox,
    ZoomRange,
    TileCoordinate,
    TileRange,
    TileJob,
    TileStatus,
    TileOutcome,
    RunCounters,
    RunSummary,
)
from .download_config import DownloadConfig
