import os

from mapcache.exceptions.tile_downloader_exceptions import FilesystemError


class FileUtils:
    """Utility class for file operations"""

    @staticmethod
    def ensure_directory_exists(directory_path: str) -> None:
        """Create directory if it doesn't exist"""
        os.makedirs(directory_path, exist_ok=True)

    @staticmethod
    def get_tile_path(output_dir: str, filename: str) -> str:
        """Tiles are stored flat in the output folder"""
        return os.path.join(output_dir, filename)

    @staticmethod
    def file_exists(file_path: str) -> bool:
        """Check if file exists"""
        return os.path.exists(file_path)

    @staticmethod
    def write_tile(file_path: str, content: bytes) -> None:
        """Write tile bytes, overwriting any previous file"""
        try:
            with open(file_path, 'wb') as f:
                f.write(content)
        except OSError as e:
            raise FilesystemError(f"Failed to write {file_path}: {e}", cause=e) from e
