#!/usr/bin/env python3
"""
Map Tile Cache Downloader - Main Entry Point
Downloads Web Mercator tiles for a bounding box into a local folder
"""

import sys
import logging
from typing import List, Optional

from mapcache.core.tile_download_manager import TileDownloadManager, EXIT_FATAL
from mapcache.exceptions.tile_downloader_exceptions import TileDownloaderException
from mapcache.infrastructure.logging import LoggingManager


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the tile downloader application"""
    # Setup logging (defaults); a config file may override it later
    LoggingManager.setup_logging({})
    logger = logging.getLogger(__name__)

    try:
        logger.debug("Starting mapcache downloader")
        manager = TileDownloadManager()
        return manager.run_from_command_line(argv)

    except KeyboardInterrupt:
        print("\nDownload interrupted by user.")
        return EXIT_FATAL
    except TileDownloaderException as e:
        logger.error("%s", e)
        print(f"\nError: {e}")
        return EXIT_FATAL
    except Exception as e:
        logger.exception("Unexpected error")
        print(f"\nUnexpected error: {e}")
        return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())
