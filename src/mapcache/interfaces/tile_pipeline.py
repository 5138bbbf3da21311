from abc import ABC, abstractmethod
from typing import Any, Dict


class ITileFetcher(ABC):
    """Interface for fetching raw tile bytes"""

    @abstractmethod
    def fetch(self, url: str) -> bytes:
        """Fetch tile bytes, raising NetworkError on failure"""
        pass

    def close(self) -> None:
        """Release connections held by the fetcher"""
        pass


class IImageNormalizer(ABC):
    """Interface for tile format normalization"""

    @abstractmethod
    def normalize(self, data: bytes, needs_conversion: bool) -> bytes:
        """Return bytes in the output format, raising ConversionError on failure"""
        pass


class IConfigLoader(ABC):
    """Interface for configuration loading"""

    @abstractmethod
    def load_config(self, config_path: str) -> Dict[str, Any]:
        """Load configuration from file"""
        pass

    @abstractmethod
    def validate_config(self, config: Dict[str, Any]) -> bool:
        """Validate configuration"""
        pass
