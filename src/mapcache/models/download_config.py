from dataclasses import dataclass

from mapcache.models.provider import ProviderConfig
from mapcache.models.tile import BoundingBox, ZoomRange

DEFAULT_CONCURRENCY = 5
DEFAULT_RETRIES = 3
DEFAULT_TIMEOUT = 10.0
DEFAULT_BACKOFF = 1.0
DEFAULT_USER_AGENT = 'mapcache-downloader/1.2 (+offline tile cache)'


@dataclass(frozen=True)
class DownloadConfig:
    """Validated options for one download run"""
    bounding_box: BoundingBox
    zoom_range: ZoomRange
    output_folder: str
    provider: ProviderConfig
    concurrency: int = DEFAULT_CONCURRENCY
    retries: int = DEFAULT_RETRIES
    force: bool = False
    timeout: float = DEFAULT_TIMEOUT
    backoff: float = DEFAULT_BACKOFF
    user_agent: str = DEFAULT_USER_AGENT
