"""Offline map tile cache downloader"""

__version__ = "1.2.0"
