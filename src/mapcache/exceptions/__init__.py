from .tile_downloader_exceptions import (
    TileDownloaderException,
    ConfigurationError,
    InputValidationError,
    MissingTokenError,
    TileError,
    NetworkError,
    ConversionError,
    FilesystemError,
)

__all__ = [
    'TileDownloaderException',
    'ConfigurationError',
    'InputValidationError',
    'MissingTokenError',
    'TileError',
    'NetworkError',
    'ConversionError',
    'FilesystemError',
]
