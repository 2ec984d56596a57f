"""
Interfaces of the stores the regeneration core talks to.

Concrete stores live in the host application; tests use mocks.
"""

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence

from .metadata import Attachment, Metadata


@dataclass(frozen=True)
class Document:
    """A text document that may embed attachments."""
    id: Any
    content: str
    type: str = 'post'


class AttachmentStore(Protocol):

    def get_by_id(self, attachment_id: Any) -> Optional[Attachment]:
        ...

    def get_file_path(self, attachment_id: Any) -> Optional[str]:
        """Absolute path of the attachment's source file."""
        ...

    def get_metadata(self, attachment_id: Any) -> Optional[Metadata]:
        ...

    def set_metadata(self, attachment_id: Any, metadata: Metadata) -> None:
        """Replace the attachment's metadata. Raises on failure."""
        ...


class DocumentStore(Protocol):

    def query(
        self,
        types: Sequence[str],
        ids: Sequence[Any],
        contains: str,
        offset: int,
        limit: int
    ) -> Sequence[Document]:
        """
        Documents of the given types whose content contains `contains`,
        ordered by id ascending. An empty `ids` means no id restriction.
        """
        ...

    def update(self, document_id: Any, content: str) -> None:
        """Replace a document's content. Raises on failure."""
        ...
