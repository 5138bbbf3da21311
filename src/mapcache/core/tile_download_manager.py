import argparse
import logging
from typing import Any, Dict, List, Optional

from mapcache import __version__
from mapcache.infrastructure.logging import LoggingManager
from mapcache.interfaces.tile_pipeline import IImageNormalizer, ITileFetcher
from mapcache.models.download_config import DownloadConfig
from mapcache.models.tile import RunSummary
from mapcache.services.config_service import ConfigService
from mapcache.services.download_scheduler import DownloadScheduler
from mapcache.services.image_normalizer import ImageNormalizer
from mapcache.services.progress_tracker import ProgressCallback, ProgressTracker
from mapcache.services.provider_resolver import ProviderResolver
from mapcache.services.tile_fetcher import RetryingFetcher
from mapcache.utils.file_utils import FileUtils
from mapcache.utils.tile_calculator import TileCalculator

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_TILE_FAILURES = 3


class TileDownloadManager:
    """Main manager class for tile downloading operations"""

    def __init__(self, config_service: Optional[ConfigService] = None):
        self.config_service = config_service or ConfigService()

    def create_fetcher(self, config: DownloadConfig) -> ITileFetcher:
        return RetryingFetcher(
            retries=config.retries,
            timeout=config.timeout,
            backoff=config.backoff,
            user_agent=config.user_agent,
            pool_size=max(config.concurrency, 10)
        )

    def download(self, config: DownloadConfig, fetcher: Optional[ITileFetcher] = None,
                 normalizer: Optional[IImageNormalizer] = None,
                 progress_callback: Optional[ProgressCallback] = None) -> RunSummary:
        """Download every tile of the box for each zoom, lowest zoom first"""
        # Pre-flight: nothing touches the network before these pass
        ProviderResolver.validate_token(config.provider)
        FileUtils.ensure_directory_exists(config.output_folder)

        owned_fetcher = None
        if fetcher is None:
            fetcher = owned_fetcher = self.create_fetcher(config)

        scheduler = DownloadScheduler(
            provider=config.provider,
            output_dir=config.output_folder,
            fetcher=fetcher,
            normalizer=normalizer or ImageNormalizer(),
            concurrency=config.concurrency,
            force=config.force,
            progress=ProgressTracker(progress_callback)
        )

        try:
            for zoom in config.zoom_range:
                tile_range = TileCalculator.get_tile_range(config.bounding_box, zoom)
                scheduler.download_zoom(tile_range)
        finally:
            # Sessions of the per-zoom worker threads
            if owned_fetcher is not None:
                owned_fetcher.close()

        summary = scheduler.progress.summary()
        logger.info("Run finished: %d total, %d downloaded, %d skipped, %d failed",
                    summary.total, summary.succeeded, summary.skipped, summary.failed)
        return summary

    def build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog='mapcache-download',
            description=(
                'Download raster map tiles covering a bounding box for a range of zoom levels.\n'
                '- Tiles are saved as PNG in one folder, named <prefix>_<x>_<y>_<z>.png.'
            ),
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=(
                'Examples:\n\n'
                '1) OpenStreetMap tiles for lower Manhattan, zoom 0 to 15:\n'
                '   mapcache-download --lat1 40.7128 --lng1 -74.0060 --lat2 40.7228 --lng2 -73.9960 --zin 15 --folder ./out\n\n'
                '2) Mapbox satellite (JPEG converted to PNG):\n'
                '   mapcache-download --lat1 41.0 --lng1 28.9 --lat2 41.1 --lng2 29.1 --zout 10 --zin 14 \\\n'
                '       --folder ./sat --provider satellite --token pk.XXXX\n\n'
                '3) Re-download everything with a config file for defaults:\n'
                '   mapcache-download ... --force --config mapcache.json\n\n'
                'Providers: osm (0, default), satellite (1, token), terrain (2, token)\n'
                'Exit status: 0 all tiles stored, 1 fatal error, 3 finished with failed tiles.'
            )
        )
        parser.add_argument('--lat1', type=float, help='Latitude of the first corner')
        parser.add_argument('--lng1', type=float, help='Longitude of the first corner')
        parser.add_argument('--lat2', type=float, help='Latitude of the second corner')
        parser.add_argument('--lng2', type=float, help='Longitude of the second corner')
        parser.add_argument('--zout', type=int, help='Minimum zoom level (default: 0)')
        parser.add_argument('--zin', type=int, help='Maximum zoom level, up to 22')
        parser.add_argument('--folder', help='Output folder, created if missing')
        parser.add_argument('--provider', help='osm | satellite | terrain (or 0 | 1 | 2)')
        parser.add_argument('--token', help='Mapbox access token (satellite and terrain)')
        parser.add_argument('--concurrency', type=int, help='Simultaneous requests (default: 5)')
        parser.add_argument('--retries', type=int, help='Attempts per tile (default: 3)')
        parser.add_argument('--timeout', type=float, help='Per request timeout in seconds (default: 10)')
        parser.add_argument('--force', action='store_true', default=None,
                            help='Re-download and overwrite existing tiles')
        parser.add_argument('--config', help='JSON file with default options and logging settings')
        parser.add_argument('--log-level', help='DEBUG, INFO, WARNING or ERROR')
        parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
        return parser

    def run_from_command_line(self, argv: Optional[List[str]] = None) -> int:
        """Run tile download command-line interface and return the exit status"""
        args = self.build_parser().parse_args(argv)

        file_config: Dict[str, Any] = {}
        if args.config:
            file_config = self.config_service.load_config(args.config)

        logging_config = self.config_service.get_logging_config(file_config)
        if args.log_level:
            logging_config['logging']['level'] = args.log_level
        LoggingManager.setup_logging(logging_config)

        options = {key: value for key, value in vars(args).items()
                   if key not in ('config', 'log_level')}
        config = self.config_service.build_download_config(options, file_config)

        total = TileCalculator.calculate_tile_count(config.bounding_box, config.zoom_range)
        box = config.bounding_box
        print("=== Downloading tiles ===")
        print(f"Bounding Box: ({box.min.latitude}, {box.min.longitude}) - ({box.max.latitude}, {box.max.longitude})")
        print(f"Zoom Levels: {config.zoom_range.min} to {config.zoom_range.max}")
        print(f"Provider: {config.provider.get_name()}")
        print(f"Output Directory: {config.output_folder}")
        print(f"Total tiles: {total}")
        print()

        summary = self.download(config)

        print(f"\nDownloaded: {summary.succeeded}  Skipped: {summary.skipped}  Failed: {summary.failed}")
        if summary.has_failures:
            for outcome in summary.failures:
                c = outcome.job.coordinate
                print(f"  {c.z}/{c.x}/{c.y}: {outcome.error}")
            print("\nDownload finished with failed tiles!")
            return EXIT_TILE_FAILURES

        print("\nDownload completed successfully!")
        return EXIT_OK
