"""
Image editors - produce thumbnail files for a single source image.
"""

import logging
import os
from typing import Dict, Optional, Protocol, Sequence, Tuple, Union

from PIL import Image, UnidentifiedImageError

from .errors import ImageEditorUnavailable, PerSizeGenerationFailure
from .metadata import ThumbnailRecord
from .sizes import SizeDefinition, resize_dimensions

ResizeResult = Union[ThumbnailRecord, PerSizeGenerationFailure]


class ImageEditor(Protocol):
    """What the reconciler needs from an image editor bound to one source file."""

    @property
    def size(self) -> Tuple[int, int]:
        ...

    def generate_filename(
        self,
        suffix: str,
        dest_dir: Optional[str] = None,
        extension: Optional[str] = None
    ) -> str:
        ...

    def multi_resize(self, sizes: Sequence[SizeDefinition]) -> Dict[str, ResizeResult]:
        ...


class PillowImageEditor:
    """
    Generates thumbnails next to the source image using Pillow.
    """

    # extension -> (Pillow format, content type)
    OUTPUT_FORMATS = {
        '.jpg': ('JPEG', 'image/jpeg'),
        '.jpeg': ('JPEG', 'image/jpeg'),
        '.png': ('PNG', 'image/png'),
        '.gif': ('GIF', 'image/gif'),
        '.webp': ('WEBP', 'image/webp'),
        '.tif': ('TIFF', 'image/tiff'),
        '.tiff': ('TIFF', 'image/tiff'),
        '.bmp': ('BMP', 'image/bmp'),
    }

    def __init__(
        self,
        source_path: str,
        quality: int = 82,
        logger: Optional[logging.Logger] = None
    ):
        """
        Open the source image.

        Args:
            source_path: Absolute path of the source image
            quality: JPEG/WebP quality for output (default: 82)
            logger: Optional logger instance

        Raises:
            ImageEditorUnavailable: If the file cannot be opened as an image
        """
        self.source_path = source_path
        self.quality = quality
        self.logger = logger or logging.getLogger(__name__)

        try:
            with Image.open(source_path) as img:
                img.load()
                self._image = img.copy()
        except (OSError, UnidentifiedImageError) as e:
            raise ImageEditorUnavailable(source_path, str(e)) from e

    @property
    def size(self) -> Tuple[int, int]:
        """Full-size (width, height) of the source image."""
        return self._image.size

    def generate_filename(
        self,
        suffix: str,
        dest_dir: Optional[str] = None,
        extension: Optional[str] = None
    ) -> str:
        """
        Build the path a thumbnail with the given suffix is written to.

        'photos/cat.JPG' with suffix '150x150' -> 'photos/cat-150x150.JPG'
        """
        directory, name = os.path.split(self.source_path)
        stem, ext = os.path.splitext(name)
        if extension is not None:
            ext = '.' + extension.lstrip('.')
        return os.path.join(dest_dir or directory, f"{stem}-{suffix}{ext}")

    def multi_resize(self, sizes: Sequence[SizeDefinition]) -> Dict[str, ResizeResult]:
        """
        Generate one thumbnail per size.

        Returns:
            Dict mapping size name -> ThumbnailRecord on success,
            or PerSizeGenerationFailure if that size failed
        """
        results: Dict[str, ResizeResult] = {}
        for size in sizes:
            try:
                results[size.name] = self._resize_one(size)
            except Exception as e:
                self.logger.error(f"Error generating {size.name} for {self.source_path}: {e}")
                results[size.name] = PerSizeGenerationFailure(size.name, str(e))
        return results

    def _resize_one(self, size: SizeDefinition) -> ThumbnailRecord:
        width, height = self.size
        dims = resize_dimensions(width, height, size.width, size.height, size.crop)
        if dims is None:
            raise ValueError("Could not calculate resized image dimensions")

        img = self._image.crop(dims.crop_box)
        img = img.resize((dims.dst_w, dims.dst_h), Image.Resampling.LANCZOS)

        ext = os.path.splitext(self.source_path)[1].lower()
        output_format, content_type = self._get_output_format(ext)
        filename = self.generate_filename(dims.suffix, extension=ext)

        if output_format == 'JPEG':
            img = self._convert_color_mode(img)
            img.save(filename, format='JPEG', quality=self.quality, optimize=True)
        elif output_format == 'WEBP':
            img.save(filename, format='WEBP', quality=self.quality)
        else:
            img.save(filename, format=output_format)

        self.logger.debug(f"Wrote {filename} ({dims.dst_w}x{dims.dst_h})")

        return ThumbnailRecord(
            size_name=size.name,
            file=os.path.basename(filename),
            width=dims.dst_w,
            height=dims.dst_h,
            mime_type=content_type,
        )

    def _convert_color_mode(self, img: Image.Image) -> Image.Image:
        """Flatten transparency onto white for formats without alpha."""
        if img.mode == 'RGB':
            return img
        if img.mode not in ('RGBA', 'LA', 'P'):
            return img.convert('RGB')

        rgba = img if img.mode == 'RGBA' else img.convert('RGBA')
        flattened = Image.new('RGB', rgba.size, (255, 255, 255))
        flattened.paste(rgba, mask=rgba.getchannel('A'))
        return flattened

    def _get_output_format(self, extension: str) -> Tuple[str, str]:
        """Determine output format based on the source extension."""
        return self.OUTPUT_FORMATS.get(extension.lower(), ('JPEG', 'image/jpeg'))
