"""
Usage propagation - rewrites every document that embeds an attachment.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .embeds import IMAGE_CLASS_PREFIX, ThumbnailResolver, rewrite_embeds
from .errors import DocumentUpdateFailure
from .stores import DocumentStore

DEFAULT_DOCUMENT_TYPES = ('post', 'page')
DEFAULT_PAGE_SIZE = 10


@dataclass
class UsageUpdateResult:
    """
    Outcome of updating the documents that use an attachment.

    Attributes:
        outcomes: Document id -> the id again if the update was saved,
                  or DocumentUpdateFailure if the store rejected it
        unchanged: Ids of documents that matched the search but needed
                   no rewrite
        scanned: Total documents examined
    """
    outcomes: Dict[Any, Any] = field(default_factory=dict)
    unchanged: List[Any] = field(default_factory=list)
    scanned: int = 0

    @property
    def updated(self) -> List[Any]:
        return [doc_id for doc_id, outcome in self.outcomes.items()
                if not isinstance(outcome, DocumentUpdateFailure)]

    @property
    def failures(self) -> List[DocumentUpdateFailure]:
        return [outcome for outcome in self.outcomes.values()
                if isinstance(outcome, DocumentUpdateFailure)]

    @property
    def errors(self) -> int:
        return len(self.failures)


def document_types_for(types: Optional[Sequence[str]]) -> List[str]:
    """Requested types, or the defaults; attachments are never rewritten."""
    return [t for t in (types or DEFAULT_DOCUMENT_TYPES) if t != 'attachment']


def propagate_usage(
    attachment_id: Any,
    document_store: DocumentStore,
    resolve_thumbnail: ThumbnailResolver,
    document_types: Optional[Sequence[str]] = None,
    document_ids: Optional[Sequence[Any]] = None,
    page_size: int = DEFAULT_PAGE_SIZE,
    logger: Optional[logging.Logger] = None
) -> UsageUpdateResult:
    """
    Rewrite the embeds of an attachment in every document that contains it.

    Pages through the store by id. Documents added or removed by someone
    else while paging may be seen twice or missed.

    Args:
        attachment_id: Identifier of the attachment
        document_store: Store to query and update
        resolve_thumbnail: Maps a size name to its current thumbnail
        document_types: Types to search (default: DEFAULT_DOCUMENT_TYPES)
        document_ids: Only consider these documents (default: any)
        page_size: Documents fetched per query
        logger: Optional logger instance

    Returns:
        UsageUpdateResult
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")

    logger = logger or logging.getLogger(__name__)
    types = document_types_for(document_types)
    ids = list(document_ids or [])
    needle = f"{IMAGE_CLASS_PREFIX}{attachment_id}"
    result = UsageUpdateResult()
    offset = 0

    while True:
        documents = document_store.query(types, ids, needle, offset, page_size)
        if not documents:
            break

        offset += page_size

        for document in documents:
            result.scanned += 1
            content, changed = rewrite_embeds(document.content, attachment_id, resolve_thumbnail)

            if not changed:
                logger.debug(f"Document {document.id}: no embeds of {attachment_id} to update")
                result.unchanged.append(document.id)
                continue

            try:
                document_store.update(document.id, content)
                result.outcomes[document.id] = document.id
                logger.debug(f"Document {document.id}: updated embeds of {attachment_id}")
            except Exception as e:
                logger.error(f"Error updating document {document.id}: {e}")
                result.outcomes[document.id] = DocumentUpdateFailure(document.id, str(e))

    logger.info(
        f"Attachment {attachment_id}: {result.scanned} documents scanned, "
        f"{len(result.updated)} updated, {result.errors} errors"
    )

    return result
