"""
Attachment metadata - the full-size dimensions of an image plus its thumbnails.
"""

from dataclasses import dataclass, field, asdict, replace
from typing import Any, Dict, Iterable, Optional


@dataclass(frozen=True)
class ThumbnailRecord:
    """
    A materialized thumbnail of an attachment.

    Attributes:
        size_name: Registered size this thumbnail was made for
        file: File name, relative to the directory of the source image
        width: Actual width (may differ from the size definition)
        height: Actual height
        mime_type: Content type of the file, if known
    """
    size_name: str
    file: str
    width: int
    height: int
    mime_type: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict, size_name: Optional[str] = None) -> 'ThumbnailRecord':
        return cls(
            size_name=data.get('size_name') or size_name,
            file=data['file'],
            width=int(data['width']),
            height=int(data['height']),
            mime_type=data.get('mime_type'),
        )


@dataclass(frozen=True)
class Metadata:
    """
    Metadata snapshot for one attachment.

    Read once at the start of a regeneration and replaced wholesale at the
    end; the helpers below return new instances.

    Attributes:
        width: Full-size width of the source image
        height: Full-size height of the source image
        file: Source path relative to the upload root
        sizes: Dict mapping size name -> ThumbnailRecord
    """
    width: int = 0
    height: int = 0
    file: str = ''
    sizes: Dict[str, ThumbnailRecord] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> 'Metadata':
        return cls()

    def merged_with(self, newer: Dict[str, ThumbnailRecord], **changes: Any) -> 'Metadata':
        """Carry every existing record forward; records in `newer` win."""
        sizes = dict(self.sizes)
        sizes.update(newer)
        return replace(self, sizes=sizes, **changes)

    def without(self, names: Iterable[str]) -> 'Metadata':
        dropped = set(names)
        return replace(
            self,
            sizes={name: rec for name, rec in self.sizes.items() if name not in dropped},
        )

    def get_size(self, name: str) -> Optional[ThumbnailRecord]:
        return self.sizes.get(name)

    @property
    def size_names(self) -> list:
        return sorted(self.sizes)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'width': self.width,
            'height': self.height,
            'file': self.file,
            'sizes': {name: rec.to_dict() for name, rec in self.sizes.items()},
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'Metadata':
        """Create from dictionary. Missing or empty data gives empty metadata."""
        if not data:
            return cls.empty()
        return cls(
            width=int(data.get('width') or 0),
            height=int(data.get('height') or 0),
            file=data.get('file') or '',
            sizes={
                name: ThumbnailRecord.from_dict(rec, size_name=name)
                for name, rec in (data.get('sizes') or {}).items()
            },
        )


@dataclass(frozen=True)
class Attachment:
    """
    The source image being reprocessed.

    Attributes:
        id: Stable identifier
        kind: Content kind; only 'attachment' can be regenerated
        context: Reserved-use marker (e.g. 'site-icon'), if any
        path: Absolute path of the source file, if known
    """
    id: Any
    kind: str = 'attachment'
    context: Optional[str] = None
    path: Optional[str] = None


@dataclass(frozen=True)
class RegenerationPolicy:
    """
    Per-call regeneration options.

    Attributes:
        only_missing: Skip sizes whose thumbnail file already exists
        prune_unregistered: Delete thumbnails of sizes no longer registered
    """
    only_missing: bool = True
    prune_unregistered: bool = False
