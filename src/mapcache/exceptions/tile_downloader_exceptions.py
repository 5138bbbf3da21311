from typing import Optional


class TileDownloaderException(Exception):
    """Base exception for tile downloader"""
    pass


class ConfigurationError(TileDownloaderException):
    """Configuration file related errors"""
    pass


class InputValidationError(TileDownloaderException):
    """Invalid bounding box, zoom range or run option"""
    pass


class MissingTokenError(TileDownloaderException):
    """Provider requires an access token but none was given"""

    def __init__(self, provider_name: str):
        super().__init__(f"Provider '{provider_name}' requires an access token (--token)")
        self.provider_name = provider_name


class TileError(TileDownloaderException):
    """Per-tile failure, recorded as a failed outcome instead of aborting the run"""

    def __init__(self, message: str, attempts: int = 1, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.attempts = attempts
        self.cause = cause


class NetworkError(TileError):
    """Timeout, connection failure, non-success HTTP status or empty body"""
    pass


class ConversionError(TileError):
    """Fetched bytes could not be re-encoded to PNG"""
    pass


class FilesystemError(TileError):
    """Tile could not be written to the output folder"""
    pass
