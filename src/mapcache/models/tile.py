from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional

from mapcache.models.provider import ProviderConfig, TileRequest


@dataclass(frozen=True)
class GeoPoint:
    """Geographic coordinate in degrees"""
    latitude: float
    longitude: float


@dataclass(frozen=True)
class PlanarPoint:
    """Projected point (Mercator metres or pixel space)"""
    x: float
    y: float


@dataclass(frozen=True)
class BoundingBox:
    """Geographic rectangle with min <= max on both axes"""
    min: GeoPoint
    max: GeoPoint

    @classmethod
    def from_corners(cls, first: GeoPoint, second: GeoPoint) -> 'BoundingBox':
        """Build a normalized box from two corners given in any order"""
        return cls(
            min=GeoPoint(min(first.latitude, second.latitude),
                         min(first.longitude, second.longitude)),
            max=GeoPoint(max(first.latitude, second.latitude),
                         max(first.longitude, second.longitude)),
        )


@dataclass(frozen=True)
class ZoomRange:
    """Inclusive zoom interval"""
    min: int
    max: int

    MAX_ZOOM = 22

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.min, self.max + 1))

    def __len__(self) -> int:
        return self.max - self.min + 1


@dataclass(frozen=True)
class TileCoordinate:
    """XYZ tile index"""
    x: int
    y: int
    z: int


@dataclass(frozen=True)
class TileRange:
    """Inclusive rectangle of tile indices at a single zoom level"""
    min: TileCoordinate
    max: TileCoordinate

    @property
    def zoom(self) -> int:
        return self.min.z

    @property
    def width(self) -> int:
        return self.max.x - self.min.x + 1

    @property
    def height(self) -> int:
        return self.max.y - self.min.y + 1

    @property
    def count(self) -> int:
        return self.width * self.height

    def __iter__(self) -> Iterator[TileCoordinate]:
        for x in range(self.min.x, self.max.x + 1):
            for y in range(self.min.y, self.max.y + 1):
                yield TileCoordinate(x, y, self.zoom)


@dataclass(frozen=True)
class TileJob:
    """A single tile to fetch and store"""
    coordinate: TileCoordinate
    provider: ProviderConfig
    request: TileRequest
    output_path: str


class TileStatus(Enum):
    SUCCESS = 'success'
    SKIPPED = 'skipped'
    FAILED = 'failed'


@dataclass
class TileOutcome:
    """Result of processing one TileJob; attempts is only set for failures"""
    job: TileJob
    status: TileStatus
    error: Optional[BaseException] = None
    attempts: int = 0

    @classmethod
    def success(cls, job: TileJob) -> 'TileOutcome':
        return cls(job=job, status=TileStatus.SUCCESS)

    @classmethod
    def skipped(cls, job: TileJob) -> 'TileOutcome':
        return cls(job=job, status=TileStatus.SKIPPED)

    @classmethod
    def failed(cls, job: TileJob, error: BaseException, attempts: int) -> 'TileOutcome':
        return cls(job=job, status=TileStatus.FAILED, error=error, attempts=attempts)


@dataclass
class RunCounters:
    """Progress counters owned by a single run"""
    total: int = 0
    processed: int = 0
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 100.0
        return self.processed / self.total * 100.0


@dataclass
class RunSummary:
    """What a finished run did, returned to the caller"""
    total: int
    succeeded: int
    skipped: int
    failed: int
    failures: List[TileOutcome] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return self.failed > 0
