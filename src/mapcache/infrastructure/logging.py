"""Logging configuration"""
import logging
import sys
from typing import Dict, Any

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class LoggingManager:
    """Manages application logging configuration"""

    @staticmethod
    def setup_logging(config: Dict[str, Any]) -> None:
        """Setup logging based on configuration"""
        logging_config = config.get('logging', {})

        level_name = str(logging_config.get('level', 'INFO')).upper()
        level = getattr(logging, level_name, None)
        if not isinstance(level, int):
            level = logging.INFO
        format_str = logging_config.get('format', DEFAULT_FORMAT)

        logging.basicConfig(
            level=level,
            format=format_str,
            stream=sys.stdout,
            force=True
        )

        # Set specific loggers
        logging.getLogger('urllib3').setLevel(logging.WARNING)
        logging.getLogger('requests').setLevel(logging.WARNING)
        logging.getLogger('PIL').setLevel(logging.WARNING)
