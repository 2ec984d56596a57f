"""
Embed rewriting - keeps image references inside document text in step with
an attachment's regenerated thumbnails.

Three markup shapes are recognised, each with its own pattern anchored on
the attachment's identifier:

    Image tag as inserted by the editor:
        <img src="URL" alt="" width="100" height="75" class="size-thumbnail wp-image-1712" />

    Image tag after a rich-text editor reformatted it:
        <img class="cssclass wp-image-1712 size-large" title="t" src="URL" alt="a" width="500" height="375" />

    Caption block:
        [caption id="attachment_1712" align="alignnone" width="100"]<img ... size-thumbnail ...> Text[/caption]

Anything else in the text, including embeds in other shapes, is left as is.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from .metadata import Metadata

IMAGE_CLASS_PREFIX = 'wp-image-'
SIZE_CLASS_PREFIX = 'size-'
CAPTION_ID_PREFIX = 'attachment_'

SHAPE_IMG_TRAILING = 'img-trailing'
SHAPE_IMG_LEADING = 'img-leading'
SHAPE_CAPTION = 'caption'


@dataclass(frozen=True)
class ThumbnailSource:
    """Where a thumbnail lives and how big it is."""
    url: str
    width: int
    height: int


ThumbnailResolver = Callable[[str], Optional[ThumbnailSource]]


@dataclass(frozen=True)
class EmbedMatch:
    """
    One embed located in a document.

    Attributes:
        shape: Which markup shape matched
        span: The whole matched text
        size_name: Size name taken from the size class token
        groups: Captured fragments around the rewritten attributes
                ('' for optional fragments that were absent)
    """
    shape: str
    span: str
    size_name: str
    groups: Tuple[str, ...]


def _patterns(attachment_id: Any) -> Dict[str, re.Pattern]:
    id_token = re.escape(str(attachment_id))
    return {
        SHAPE_IMG_TRAILING: re.compile(
            r'<img src="[^"]+"([^>]+)? width="[^"]+" height="[^"]+"([^>]+)'
            + SIZE_CLASS_PREFIX + r'([^"]+) ' + IMAGE_CLASS_PREFIX + id_token
            + r'"([^>]+)?/>',
            re.IGNORECASE,
        ),
        SHAPE_IMG_LEADING: re.compile(
            r'<img ([^>]+)' + IMAGE_CLASS_PREFIX + id_token + ' '
            + SIZE_CLASS_PREFIX + r'([^"]+)"([^>]+)? src="[^"]+"([^>]+)?'
            r' width="[^"]+" height="[^"]+" />',
            re.IGNORECASE,
        ),
        SHAPE_CAPTION: re.compile(
            r'\[caption id="' + CAPTION_ID_PREFIX + id_token
            + r'"([^\]]+)? width="[^"]+"\]([^\[]+)' + SIZE_CLASS_PREFIX
            + r'([^" ]+)([^\[]+)\[/caption\]',
            re.IGNORECASE,
        ),
    }


# Index of the size name group within each pattern.
_SIZE_GROUP = {
    SHAPE_IMG_TRAILING: 3,
    SHAPE_IMG_LEADING: 2,
    SHAPE_CAPTION: 3,
}


def find_embeds(text: str, attachment_id: Any, shapes: Optional[List[str]] = None) -> List[EmbedMatch]:
    """
    Locate every embed of the attachment in text.

    Args:
        text: Document text
        attachment_id: Identifier of the attachment
        shapes: Restrict to these shapes (default: all)

    Returns:
        Matches in shape order, then in order of appearance
    """
    patterns = _patterns(attachment_id)
    matches = []
    for shape in shapes or list(patterns):
        for m in patterns[shape].finditer(text):
            groups = tuple(g or '' for g in m.groups())
            matches.append(EmbedMatch(
                shape=shape,
                span=m.group(0),
                size_name=groups[_SIZE_GROUP[shape] - 1],
                groups=groups,
            ))
    return matches


def build_replacement(match: EmbedMatch, attachment_id: Any, thumb: ThumbnailSource) -> str:
    """Rebuild a matched embed with the thumbnail's src, width and height."""
    g = match.groups
    if match.shape == SHAPE_IMG_TRAILING:
        return (
            f'<img src="{thumb.url}"{g[0]} width="{thumb.width}" height="{thumb.height}"{g[1]}'
            f'{SIZE_CLASS_PREFIX}{g[2]} {IMAGE_CLASS_PREFIX}{attachment_id}"{g[3]}/>'
        )
    if match.shape == SHAPE_IMG_LEADING:
        return (
            f'<img {g[0]}{IMAGE_CLASS_PREFIX}{attachment_id} {SIZE_CLASS_PREFIX}{g[1]}"{g[2]}'
            f' src="{thumb.url}"{g[3]} width="{thumb.width}" height="{thumb.height}" />'
        )
    if match.shape == SHAPE_CAPTION:
        # Captions only carry a width.
        return (
            f'[caption id="{CAPTION_ID_PREFIX}{attachment_id}"{g[0]} width="{thumb.width}"]'
            f'{g[1]}{SIZE_CLASS_PREFIX}{g[2]}{g[3]}[/caption]'
        )
    raise ValueError(f"Unknown embed shape: {match.shape}")


def _replace_all(text: str, replacements: List[Tuple[str, str]]) -> str:
    for search, replace in replacements:
        text = text.replace(search, replace)
    return text


def _rewrite_pass(
    text: str,
    attachment_id: Any,
    resolve_thumbnail: ThumbnailResolver,
    shapes: List[str]
) -> str:
    replacements = []
    for match in find_embeds(text, attachment_id, shapes):
        thumb = resolve_thumbnail(match.size_name)
        if thumb is None:
            continue
        replacements.append((match.span, build_replacement(match, attachment_id, thumb)))
    return _replace_all(text, replacements)


def rewrite_embeds(
    text: str,
    attachment_id: Any,
    resolve_thumbnail: ThumbnailResolver
) -> Tuple[str, bool]:
    """
    Rewrite every embed of an attachment to point at its current thumbnails.

    Matches whose size name does not resolve are left untouched. The image
    tag shapes are rewritten first; caption blocks are then matched against
    that output, since a caption wraps the image tag it captions.

    Args:
        text: Document text
        attachment_id: Identifier of the attachment
        resolve_thumbnail: Maps a size name to its ThumbnailSource, or None

    Returns:
        Tuple of (new text, whether the text changed)
    """
    if not text:
        return text, False

    new_text = _rewrite_pass(
        text, attachment_id, resolve_thumbnail, [SHAPE_IMG_TRAILING, SHAPE_IMG_LEADING]
    )
    new_text = _rewrite_pass(new_text, attachment_id, resolve_thumbnail, [SHAPE_CAPTION])

    return new_text, new_text != text


def thumbnail_resolver(metadata: Metadata, base_url: str) -> ThumbnailResolver:
    """
    Build a resolver backed by an attachment's metadata.

    Size names with a record resolve to the thumbnail's URL and actual
    dimensions. Any other name, 'full' included, falls back to the original
    image, so embeds of a size that was pruned or never built stop pointing
    at a missing file. Nothing resolves when the metadata has no file.

    Args:
        metadata: The attachment's current metadata
        base_url: URL the upload root is served from
    """
    base = base_url.rstrip('/')
    directory = metadata.file.rsplit('/', 1)[0] if '/' in metadata.file else ''

    def url_for(name: str) -> str:
        return '/'.join(part for part in (base, directory, name) if part)

    def resolve(size_name: str) -> Optional[ThumbnailSource]:
        record = metadata.sizes.get(size_name)
        if record is not None:
            return ThumbnailSource(url_for(record.file), record.width, record.height)
        if metadata.file:
            return ThumbnailSource(url_for(metadata.file.rsplit('/', 1)[-1]), metadata.width, metadata.height)
        return None

    return resolve
