import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import List, Optional

from mapcache.exceptions.tile_downloader_exceptions import InputValidationError, TileError
from mapcache.interfaces.tile_pipeline import IImageNormalizer, ITileFetcher
from mapcache.models.download_config import DEFAULT_CONCURRENCY
from mapcache.models.provider import ProviderConfig
from mapcache.models.tile import TileJob, TileOutcome, TileRange
from mapcache.services.image_normalizer import ImageNormalizer
from mapcache.services.progress_tracker import ProgressTracker
from mapcache.services.provider_resolver import ProviderResolver
from mapcache.utils.file_utils import FileUtils

logger = logging.getLogger(__name__)


class DownloadScheduler:
    """Downloads the tiles of one zoom level at a time in fixed-size batches.

    A batch holds at most ``concurrency`` jobs and the next batch starts only
    after every job of the current one has an outcome, so no more than
    ``concurrency`` requests are ever in flight. One scheduler serves one run.
    """

    def __init__(self, provider: ProviderConfig, output_dir: str, fetcher: ITileFetcher,
                 normalizer: Optional[IImageNormalizer] = None,
                 concurrency: int = DEFAULT_CONCURRENCY, force: bool = False,
                 progress: Optional[ProgressTracker] = None):
        if concurrency < 1:
            raise InputValidationError(f"concurrency must be at least 1, got {concurrency}")
        self.provider = provider
        self.output_dir = output_dir
        self.fetcher = fetcher
        self.normalizer = normalizer or ImageNormalizer()
        self.concurrency = concurrency
        self.force = force
        self.progress = progress or ProgressTracker()

    def create_jobs(self, tile_range: TileRange) -> List[TileJob]:
        """Expand an inclusive tile range into jobs"""
        jobs = []
        for tile in tile_range:
            request = ProviderResolver.resolve(self.provider.kind, self.provider.token,
                                               tile.x, tile.y, tile.z)
            jobs.append(TileJob(
                coordinate=tile,
                provider=self.provider,
                request=request,
                output_path=FileUtils.get_tile_path(self.output_dir, request.filename),
            ))
        return jobs

    def download_zoom(self, tile_range: TileRange) -> List[TileOutcome]:
        """Download every tile of the range, returning outcomes in job order"""
        jobs = self.create_jobs(tile_range)
        self.progress.add_total(len(jobs))
        logger.info("Zoom %d: %d tiles (x %d-%d, y %d-%d)", tile_range.zoom, len(jobs),
                    tile_range.min.x, tile_range.max.x, tile_range.min.y, tile_range.max.y)

        outcomes: List[TileOutcome] = []
        with ThreadPoolExecutor(max_workers=self.concurrency,
                                thread_name_prefix=f"tiles-z{tile_range.zoom}") as executor:
            for start in range(0, len(jobs), self.concurrency):
                batch = jobs[start:start + self.concurrency]
                outcomes.extend(self._run_batch(executor, batch))

        return outcomes

    def _run_batch(self, executor: ThreadPoolExecutor, batch: List[TileJob]) -> List[TileOutcome]:
        outcomes: List[Optional[TileOutcome]] = [None] * len(batch)
        futures = {}

        for index, job in enumerate(batch):
            if not self.force and FileUtils.file_exists(job.output_path):
                outcome = TileOutcome.skipped(job)
                self.progress.record(outcome)
                outcomes[index] = outcome
            else:
                futures[index] = executor.submit(self._process_job, job)

        wait(list(futures.values()))
        for index, future in futures.items():
            # Anything that is not a TileError is unexpected and aborts the run
            outcomes[index] = future.result()

        return outcomes

    def _process_job(self, job: TileJob) -> TileOutcome:
        """Fetch, normalize and write one tile; per-tile errors become a failed outcome"""
        try:
            data = self.fetcher.fetch(job.request.url)
            data = self.normalizer.normalize(data, job.request.needs_conversion)
            FileUtils.write_tile(job.output_path, data)
            outcome = TileOutcome.success(job)
        except TileError as e:
            c = job.coordinate
            logger.warning("Tile %d/%d/%d failed after %d attempt(s): %s", c.z, c.x, c.y, e.attempts, e)
            outcome = TileOutcome.failed(job, e, e.attempts)

        self.progress.record(outcome)
        return outcome
