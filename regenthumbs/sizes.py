"""
Thumbnail size definitions, the size registry and resize dimension math.
"""

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class SizeDefinition:
    """
    A registered thumbnail size.

    Attributes:
        name: Unique size name (e.g. 'thumbnail', 'medium')
        width: Target width in pixels, or None for unbounded
        height: Target height in pixels, or None for unbounded
        crop: If True, crop to exactly fill the target box;
              otherwise fit within it preserving aspect ratio
    """
    name: str
    width: Optional[int] = None
    height: Optional[int] = None
    crop: bool = False

    @property
    def is_active(self) -> bool:
        """True if the definition has at least one usable dimension."""
        return bool(self.width and self.width > 0) or bool(self.height and self.height > 0)

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'width': self.width,
            'height': self.height,
            'crop': self.crop,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'SizeDefinition':
        return cls(
            name=data['name'],
            width=data.get('width'),
            height=data.get('height'),
            crop=bool(data.get('crop', False)),
        )


@dataclass(frozen=True)
class ResizeDimensions:
    """
    Result of resize_dimensions().

    Attributes:
        dst_w, dst_h: Size of the resulting thumbnail
        src_x, src_y: Top-left corner of the region taken from the source
        src_w, src_h: Size of the region taken from the source
    """
    dst_w: int
    dst_h: int
    src_x: int
    src_y: int
    src_w: int
    src_h: int

    @property
    def suffix(self) -> str:
        """Filename suffix for a thumbnail at these dimensions."""
        return f"{self.dst_w}x{self.dst_h}"

    @property
    def crop_box(self) -> Tuple[int, int, int, int]:
        """Source region as a (left, upper, right, lower) box."""
        return (self.src_x, self.src_y, self.src_x + self.src_w, self.src_y + self.src_h)


def _round(value: float) -> int:
    """Round half away from zero."""
    if value < 0:
        return -int(math.floor(-value + 0.5))
    return int(math.floor(value + 0.5))


def constrain_dimensions(
    current_width: int,
    current_height: int,
    max_width: int = 0,
    max_height: int = 0
) -> Tuple[int, int]:
    """
    Scale (current_width, current_height) down to fit within the max box,
    preserving aspect ratio. A max of 0 means unbounded in that direction.
    """
    if not max_width and not max_height:
        return current_width, current_height

    width_ratio = height_ratio = 1.0
    did_width = did_height = False

    if max_width > 0 and current_width > 0 and current_width > max_width:
        width_ratio = max_width / current_width
        did_width = True

    if max_height > 0 and current_height > 0 and current_height > max_height:
        height_ratio = max_height / current_height
        did_height = True

    smaller_ratio = min(width_ratio, height_ratio)
    larger_ratio = max(width_ratio, height_ratio)

    if (_round(current_width * larger_ratio) > max_width
            or _round(current_height * larger_ratio) > max_height):
        # The larger ratio is too big; it would overflow one side.
        ratio = smaller_ratio
    else:
        ratio = larger_ratio

    w = max(1, _round(current_width * ratio))
    h = max(1, _round(current_height * ratio))

    # Rounding can leave us one pixel short of the requested bound.
    if did_width and w == max_width - 1:
        w = max_width
    if did_height and h == max_height - 1:
        h = max_height

    return w, h


def resize_dimensions(
    orig_w: int,
    orig_h: int,
    dest_w: Optional[int],
    dest_h: Optional[int],
    crop: bool = False
) -> Optional[ResizeDimensions]:
    """
    Compute the dimensions of a thumbnail of an orig_w x orig_h image.

    Args:
        orig_w, orig_h: Source image dimensions
        dest_w, dest_h: Target box; None or 0 means unbounded
        crop: Crop to fill the target box instead of fitting inside it

    Returns:
        ResizeDimensions, or None if no downscaled thumbnail can be derived
    """
    dest_w = dest_w or 0
    dest_h = dest_h or 0

    if orig_w <= 0 or orig_h <= 0:
        return None
    if dest_w <= 0 and dest_h <= 0:
        return None

    if crop:
        aspect_ratio = orig_w / orig_h
        new_w = min(dest_w, orig_w)
        new_h = min(dest_h, orig_h)

        if not new_w:
            new_w = _round(new_h * aspect_ratio)
        if not new_h:
            new_h = _round(new_w / aspect_ratio)

        size_ratio = max(new_w / orig_w, new_h / orig_h)
        crop_w = _round(new_w / size_ratio)
        crop_h = _round(new_h / size_ratio)

        src_x = (orig_w - crop_w) // 2
        src_y = (orig_h - crop_h) // 2
    else:
        crop_w, crop_h = orig_w, orig_h
        src_x = src_y = 0
        new_w, new_h = constrain_dimensions(orig_w, orig_h, dest_w, dest_h)

    if new_w >= orig_w and new_h >= orig_h:
        return None

    return ResizeDimensions(
        dst_w=int(new_w),
        dst_h=int(new_h),
        src_x=int(src_x),
        src_y=int(src_y),
        src_w=int(crop_w),
        src_h=int(crop_h),
    )


class SizeRegistry:
    """
    Ordered set of registered thumbnail sizes, keyed by name.
    """

    def __init__(self, sizes: Iterable[SizeDefinition] = ()):
        self._sizes: Dict[str, SizeDefinition] = {}
        for size in sizes:
            self.add(size)

    @classmethod
    def default(cls) -> 'SizeRegistry':
        """Registry with the stock sizes."""
        return cls([
            SizeDefinition('thumbnail', 150, 150, crop=True),
            SizeDefinition('medium', 300, 300),
            SizeDefinition('medium_large', 768, None),
            SizeDefinition('large', 1024, 1024),
        ])

    def add(self, size: SizeDefinition) -> None:
        """Add or replace a size. Replacing keeps the original position."""
        self._sizes[size.name] = size

    def register(
        self,
        name: str,
        width: Optional[int] = None,
        height: Optional[int] = None,
        crop: bool = False
    ) -> SizeDefinition:
        size = SizeDefinition(name, width, height, crop)
        self.add(size)
        return size

    def unregister(self, name: str) -> bool:
        """Remove a size. Returns False if it was not registered."""
        return self._sizes.pop(name, None) is not None

    def get(self, name: str) -> Optional[SizeDefinition]:
        return self._sizes.get(name)

    def names(self) -> List[str]:
        return list(self._sizes)

    def current_sizes(self) -> Tuple[SizeDefinition, ...]:
        """Snapshot of the registered sizes, in registration order."""
        return tuple(self._sizes.values())

    def __contains__(self, name: object) -> bool:
        return name in self._sizes

    def __len__(self) -> int:
        return len(self._sizes)

    def to_dict(self) -> dict:
        return {'sizes': [s.to_dict() for s in self._sizes.values()]}

    @classmethod
    def from_dict(cls, data: dict) -> 'SizeRegistry':
        return cls(SizeDefinition.from_dict(d) for d in data.get('sizes', []))

    def save(self, filepath: str) -> None:
        """Save registry to a JSON file."""
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, filepath: str) -> 'SizeRegistry':
        """Load registry from a JSON file."""
        with open(filepath, 'r') as f:
            return cls.from_dict(json.load(f))
