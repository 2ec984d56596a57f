"""
Error types for thumbnail regeneration.

Fatal errors are raised as exceptions before any work is done. Per-size and
per-document failures are collected into results instead of being raised.
"""

from dataclasses import dataclass, asdict
from typing import Any, Optional


class RegenerationError(Exception):
    """
    Base class for errors that abort a single regeneration call.

    Attributes:
        code: Machine-readable error code
        status: HTTP-style status code for callers exposing this over an API
        data: Extra context about the failure
    """
    code = 'regeneration_error'
    status = 500

    def __init__(self, message: str, **data: Any):
        super().__init__(message)
        self.message = message
        self.data = data

    def to_dict(self) -> dict:
        return {
            'code': self.code,
            'message': self.message,
            'status': self.status,
            'data': {k: v for k, v in self.data.items() if v is not None},
        }


class AttachmentNotFound(RegenerationError):
    code = 'attachment_not_found'
    status = 404

    def __init__(self, attachment_id: Any):
        super().__init__("No attachment exists with that ID.", attachment_id=attachment_id)
        self.attachment_id = attachment_id


class NotAnAttachment(RegenerationError):
    code = 'not_attachment'
    status = 400

    def __init__(self, attachment_id: Any, kind: Optional[str] = None):
        super().__init__("This item is not an attachment.", attachment_id=attachment_id, kind=kind)
        self.attachment_id = attachment_id
        self.kind = kind


class ExcludedByPolicy(RegenerationError):
    """Raised for reserved images (e.g. a site icon) whose thumbnails are custom cropped."""
    code = 'excluded_by_policy'
    status = 415

    def __init__(self, attachment_id: Any, context: Optional[str] = None):
        super().__init__(
            f"This attachment is being used as a {context or 'reserved image'} "
            f"and therefore the thumbnails shouldn't be touched.",
            attachment_id=attachment_id,
            context=context,
        )
        self.attachment_id = attachment_id
        self.context = context


class SourceFileMissing(RegenerationError):
    code = 'file_not_found'
    status = 404

    def __init__(self, attachment_id: Any, path: Optional[str]):
        super().__init__(
            "Unable to locate the original file for this attachment.",
            attachment_id=attachment_id,
            path=path,
        )
        self.attachment_id = attachment_id
        self.path = path


class ImageEditorUnavailable(RegenerationError):
    """The source file exists but could not be opened as an image."""
    code = 'image_editor_unavailable'
    status = 500

    def __init__(self, path: str, reason: str = ''):
        message = f"Unable to open {path} for editing"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, path=path, reason=reason or None)
        self.path = path


@dataclass
class PerSizeGenerationFailure:
    """A single thumbnail size that could not be generated."""
    size_name: str
    message: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DocumentUpdateFailure:
    """A document whose rewritten content could not be saved."""
    document_id: Any
    message: str

    def to_dict(self) -> dict:
        return asdict(self)
