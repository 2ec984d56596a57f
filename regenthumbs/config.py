"""
RegenConfig - Configuration for thumbnail regeneration.
"""

import os
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .sizes import SizeRegistry
from .usage import DEFAULT_DOCUMENT_TYPES, DEFAULT_PAGE_SIZE


def _split(value: Optional[str], default: Tuple[str, ...]) -> Tuple[str, ...]:
    if value is None:
        return default
    return tuple(part.strip() for part in value.split(',') if part.strip())


@dataclass
class RegenConfig:
    """
    Regeneration settings.

    Attributes:
        upload_root: Directory that attachment file paths are relative to
        base_url: URL the upload root is served from
        sizes_file: Optional JSON file with the registered sizes
        page_size: Documents fetched per query when updating usages
        jpeg_quality: Output quality for JPEG/WebP thumbnails
        excluded_contexts: Attachment contexts that must never be regenerated
        document_types: Document types searched for embeds
    """
    upload_root: str = ''
    base_url: str = ''
    sizes_file: Optional[str] = None
    page_size: int = DEFAULT_PAGE_SIZE
    jpeg_quality: int = 82
    excluded_contexts: Tuple[str, ...] = ('site-icon',)
    document_types: Tuple[str, ...] = DEFAULT_DOCUMENT_TYPES

    @classmethod
    def from_env(cls) -> 'RegenConfig':
        """Load configuration from REGEN_* environment variables."""
        return cls(
            upload_root=os.getenv('REGEN_UPLOAD_ROOT', ''),
            base_url=os.getenv('REGEN_BASE_URL', ''),
            sizes_file=os.getenv('REGEN_SIZES_FILE') or None,
            page_size=int(os.getenv('REGEN_PAGE_SIZE', str(DEFAULT_PAGE_SIZE))),
            jpeg_quality=int(os.getenv('REGEN_JPEG_QUALITY', '82')),
            excluded_contexts=_split(os.getenv('REGEN_EXCLUDED_CONTEXTS'), ('site-icon',)),
            document_types=_split(os.getenv('REGEN_DOCUMENT_TYPES'), DEFAULT_DOCUMENT_TYPES),
        )

    def validate(self) -> List[str]:
        """Return a list of configuration problems (empty if valid)."""
        errors = []
        if not self.upload_root:
            errors.append("REGEN_UPLOAD_ROOT is required")
        elif not os.path.isdir(self.upload_root):
            errors.append(f"Upload root does not exist: {self.upload_root}")
        if not self.base_url:
            errors.append("REGEN_BASE_URL is required")
        if self.sizes_file and not os.path.isfile(self.sizes_file):
            errors.append(f"Sizes file not found: {self.sizes_file}")
        if self.page_size <= 0:
            errors.append(f"Page size must be positive, got {self.page_size}")
        if not 1 <= self.jpeg_quality <= 100:
            errors.append(f"JPEG quality must be between 1 and 100, got {self.jpeg_quality}")
        return errors

    def load_registry(self) -> SizeRegistry:
        """Registry from the sizes file, or the default sizes."""
        if self.sizes_file:
            return SizeRegistry.load(self.sizes_file)
        return SizeRegistry.default()
