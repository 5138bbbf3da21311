import io

from PIL import Image

from mapcache.exceptions.tile_downloader_exceptions import ConversionError
from mapcache.interfaces.tile_pipeline import IImageNormalizer

OUTPUT_FORMAT = 'PNG'


class ImageNormalizer(IImageNormalizer):
    """Re-encodes fetched tiles to PNG when the provider serves another format"""

    def normalize(self, data: bytes, needs_conversion: bool) -> bytes:
        if not needs_conversion:
            return data

        try:
            with Image.open(io.BytesIO(data)) as image:
                image.load()
                if image.mode not in ('RGB', 'RGBA', 'L', 'LA', 'P'):
                    image = image.convert('RGB')
                buffer = io.BytesIO()
                image.save(buffer, format=OUTPUT_FORMAT)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            # UnidentifiedImageError is an OSError
            raise ConversionError(f"Could not convert tile to {OUTPUT_FORMAT}: {e}", cause=e) from e

        return buffer.getvalue()
