import json
import math
import os
from typing import Any, Dict, Optional

from mapcache.exceptions.tile_downloader_exceptions import ConfigurationError, InputValidationError
from mapcache.interfaces.tile_pipeline import IConfigLoader
from mapcache.models.download_config import (
    DEFAULT_BACKOFF,
    DEFAULT_CONCURRENCY,
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT,
    DEFAULT_USER_AGENT,
    DownloadConfig,
)
from mapcache.models.provider import ProviderConfig, ProviderKind
from mapcache.models.tile import BoundingBox, GeoPoint, ZoomRange
from mapcache.services.provider_resolver import ProviderResolver

# Keys a JSON config file may provide, with the type each must have
FILE_KEYS = {
    'provider': (str, int),
    'token': (str,),
    'concurrency': (int,),
    'retries': (int,),
    'timeout': (int, float),
    'backoff': (int, float),
    'user_agent': (str,),
    'force': (bool,),
    'logging': (dict,),
}

DEFAULTS: Dict[str, Any] = {
    'zout': 0,
    'provider': ProviderKind.OSM.value,
    'token': None,
    'concurrency': DEFAULT_CONCURRENCY,
    'retries': DEFAULT_RETRIES,
    'force': False,
    'timeout': DEFAULT_TIMEOUT,
    'backoff': DEFAULT_BACKOFF,
    'user_agent': DEFAULT_USER_AGENT,
}


class ConfigService(IConfigLoader):
    """Service for loading configuration and validating run options"""

    def load_config(self, config_path: str) -> Dict[str, Any]:
        """Load configuration from JSON file"""
        if not os.path.exists(config_path):
            raise ConfigurationError(f"Config file {config_path} not found!")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {config_path}: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error loading config: {e}")

        self.validate_config(config)
        return config

    def validate_config(self, config: Dict[str, Any]) -> bool:
        """Validate configuration structure"""
        if not isinstance(config, dict):
            raise ConfigurationError("Configuration must be a JSON object")

        for key, value in config.items():
            if key not in FILE_KEYS:
                raise ConfigurationError(f"Unknown configuration key: {key}")
            expected = FILE_KEYS[key]
            # bool is an int subclass; only accept it where bool is expected
            if not isinstance(value, expected) or (isinstance(value, bool) and bool not in expected):
                names = ' or '.join(t.__name__ for t in expected)
                raise ConfigurationError(f"{key} must be {names}")

        return True

    def merge_options(self, options: Dict[str, Any],
                      file_config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Defaults < config file < explicit options (None means not given)"""
        merged = dict(DEFAULTS)
        for source in (file_config or {}, options):
            for key, value in source.items():
                if value is not None and key != 'logging':
                    merged[key] = value
        return merged

    def build_download_config(self, options: Dict[str, Any],
                              file_config: Optional[Dict[str, Any]] = None) -> DownloadConfig:
        """Validate raw options and build the run configuration.

        Raises InputValidationError for bad coordinates, zooms or numeric
        options and MissingTokenError when the provider needs a token.
        """
        merged = self.merge_options(options, file_config)

        for key in ('lat1', 'lng1', 'lat2', 'lng2', 'zin', 'folder'):
            if merged.get(key) is None:
                raise InputValidationError(f"Missing required option: {key}")

        corner1 = GeoPoint(self._coordinate(merged, 'lat1', 90), self._coordinate(merged, 'lng1', 180))
        corner2 = GeoPoint(self._coordinate(merged, 'lat2', 90), self._coordinate(merged, 'lng2', 180))

        zoom_range = self.validate_zoom_range(self._integer(merged, 'zout'), self._integer(merged, 'zin'))

        try:
            kind = ProviderKind.from_value(merged['provider'])
        except ValueError as e:
            raise InputValidationError(str(e))
        token = merged.get('token')
        provider = ProviderConfig(kind=kind, token=token.strip() if isinstance(token, str) else None)
        ProviderResolver.validate_token(provider)

        concurrency = self._integer(merged, 'concurrency')
        if concurrency < 1:
            raise InputValidationError(f"concurrency must be a positive integer, got {concurrency}")
        retries = self._integer(merged, 'retries')
        if retries < 0:
            raise InputValidationError(f"retries must not be negative, got {retries}")
        timeout = self._number(merged, 'timeout')
        if timeout <= 0:
            raise InputValidationError(f"timeout must be positive, got {timeout}")
        backoff = self._number(merged, 'backoff')
        if backoff < 0:
            raise InputValidationError(f"backoff must not be negative, got {backoff}")

        folder = str(merged['folder']).strip()
        if not folder:
            raise InputValidationError("Output folder must not be empty")

        return DownloadConfig(
            bounding_box=BoundingBox.from_corners(corner1, corner2),
            zoom_range=zoom_range,
            output_folder=folder,
            provider=provider,
            concurrency=concurrency,
            retries=retries,
            force=bool(merged.get('force')),
            timeout=timeout,
            backoff=backoff,
            user_agent=str(merged['user_agent']),
        )

    @staticmethod
    def validate_zoom_range(min_zoom: int, max_zoom: int) -> ZoomRange:
        if min_zoom < 0 or max_zoom > ZoomRange.MAX_ZOOM or min_zoom > max_zoom:
            raise InputValidationError(
                f"Invalid zoom range {min_zoom}-{max_zoom}: need 0 <= zout <= zin <= {ZoomRange.MAX_ZOOM}"
            )
        return ZoomRange(min_zoom, max_zoom)

    def get_logging_config(self, file_config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Logging section in the shape LoggingManager expects"""
        return {'logging': dict((file_config or {}).get('logging', {}))}

    @staticmethod
    def _number(options: Dict[str, Any], key: str) -> float:
        try:
            value = float(options[key])
        except (TypeError, ValueError):
            raise InputValidationError(f"{key} must be a number, got {options[key]!r}")
        if math.isnan(value) or math.isinf(value):
            raise InputValidationError(f"{key} must be a finite number")
        return value

    @staticmethod
    def _integer(options: Dict[str, Any], key: str) -> int:
        value = ConfigService._number(options, key)
        if not value.is_integer():
            raise InputValidationError(f"{key} must be an integer, got {options[key]!r}")
        return int(value)

    @staticmethod
    def _coordinate(options: Dict[str, Any], key: str, limit: float) -> float:
        value = ConfigService._number(options, key)
        if not -limit <= value <= limit:
            raise InputValidationError(f"{key} must be between {-limit} and {limit}, got {value}")
        return value
