"""
Thumbnail regeneration for a single attachment.

Two cooperating parts:
    1. Reconciler: decide which thumbnail sizes to (re)build, build them,
       merge them into the attachment's metadata, prune unregistered sizes
    2. Embed rewriting: update the image references inside documents so
       they point at the regenerated thumbnails
"""

__version__ = "1.0.0"

from .errors import (
    RegenerationError,
    AttachmentNotFound,
    NotAnAttachment,
    ExcludedByPolicy,
    SourceFileMissing,
    ImageEditorUnavailable,
    PerSizeGenerationFailure,
    DocumentUpdateFailure,
)
from .sizes import SizeDefinition, SizeRegistry, ResizeDimensions, resize_dimensions
from .metadata import Attachment, Metadata, RegenerationPolicy, ThumbnailRecord
from .image_editor import ImageEditor, PillowImageEditor
from .reconciler import Reconciler, RegenerationResult, plan_sizes
from .embeds import EmbedMatch, ThumbnailSource, find_embeds, rewrite_embeds, thumbnail_resolver
from .stores import AttachmentStore, Document, DocumentStore
from .usage import UsageUpdateResult, propagate_usage
from .config import RegenConfig
from .service import ThumbnailService

__all__ = [
    "RegenerationError",
    "AttachmentNotFound",
    "NotAnAttachment",
    "ExcludedByPolicy",
    "SourceFileMissing",
    "ImageEditorUnavailable",
    "PerSizeGenerationFailure",
    "DocumentUpdateFailure",
    "SizeDefinition",
    "SizeRegistry",
    "ResizeDimensions",
    "resize_dimensions",
    "Attachment",
    "Metadata",
    "RegenerationPolicy",
    "ThumbnailRecord",
    "ImageEditor",
    "PillowImageEditor",
    "Reconciler",
    "RegenerationResult",
    "plan_sizes",
    "EmbedMatch",
    "ThumbnailSource",
    "find_embeds",
    "rewrite_embeds",
    "thumbnail_resolver",
    "AttachmentStore",
    "Document",
    "DocumentStore",
    "UsageUpdateResult",
    "propagate_usage",
    "RegenConfig",
    "ThumbnailService",
]
