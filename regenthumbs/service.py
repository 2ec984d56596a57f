"""
ThumbnailService - validates an attachment, regenerates its thumbnails,
persists the new metadata and optionally rewrites documents that embed it.
"""

import functools
import logging
from dataclasses import replace
from typing import Any, Callable, Iterable, Optional, Sequence

from .config import RegenConfig
from .embeds import thumbnail_resolver
from .errors import AttachmentNotFound, ExcludedByPolicy, NotAnAttachment
from .image_editor import ImageEditor, PillowImageEditor
from .metadata import Attachment, Metadata, RegenerationPolicy
from .reconciler import Reconciler, RegenerationResult
from .sizes import SizeRegistry
from .stores import AttachmentStore, DocumentStore
from .usage import DEFAULT_DOCUMENT_TYPES, DEFAULT_PAGE_SIZE, UsageUpdateResult, propagate_usage


class ThumbnailService:
    """
    Entry point for regenerating one attachment at a time.

    Calls for the same attachment must be serialized by the caller.
    """

    def __init__(
        self,
        attachment_store: AttachmentStore,
        document_store: DocumentStore,
        registry: SizeRegistry,
        upload_root: str,
        base_url: str,
        editor_factory: Callable[[str], ImageEditor] = PillowImageEditor,
        excluded_contexts: Iterable[str] = ('site-icon',),
        document_types: Sequence[str] = DEFAULT_DOCUMENT_TYPES,
        page_size: int = DEFAULT_PAGE_SIZE,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize service.

        Args:
            attachment_store: Store holding attachments and their metadata
            document_store: Store holding documents that embed attachments
            registry: Registered thumbnail sizes
            upload_root: Directory attachment file paths are relative to
            base_url: URL the upload root is served from
            editor_factory: Builds an image editor for a source path
            excluded_contexts: Attachment contexts that must not be touched
            document_types: Default document types to update
            page_size: Documents fetched per query
            logger: Optional logger instance
        """
        self.attachments = attachment_store
        self.documents = document_store
        self.base_url = base_url
        self.excluded_contexts = set(excluded_contexts)
        self.document_types = list(document_types)
        self.page_size = page_size
        self.logger = logger or logging.getLogger(__name__)
        self.reconciler = Reconciler(registry, upload_root, editor_factory, logger=self.logger)

    @classmethod
    def from_config(
        cls,
        config: RegenConfig,
        attachment_store: AttachmentStore,
        document_store: DocumentStore,
        registry: Optional[SizeRegistry] = None,
        logger: Optional[logging.Logger] = None
    ) -> 'ThumbnailService':
        """
        Build a service from configuration.

        Raises:
            ValueError: If the configuration is invalid
        """
        logger = logger or logging.getLogger(__name__)
        errors = config.validate()
        if errors:
            for error in errors:
                logger.error(error)
            raise ValueError("Regeneration configuration invalid")

        editor_factory = functools.partial(
            PillowImageEditor, quality=config.jpeg_quality, logger=logger
        )
        return cls(
            attachment_store=attachment_store,
            document_store=document_store,
            registry=registry or config.load_registry(),
            upload_root=config.upload_root,
            base_url=config.base_url,
            editor_factory=editor_factory,
            excluded_contexts=config.excluded_contexts,
            document_types=config.document_types,
            page_size=config.page_size,
            logger=logger,
        )

    def get_attachment(self, attachment_id: Any) -> Attachment:
        """
        Look up an attachment that may be regenerated.

        Raises:
            AttachmentNotFound: No item with that id
            NotAnAttachment: The item is some other kind of content
            ExcludedByPolicy: The attachment is reserved (e.g. a site icon)
        """
        attachment = self.attachments.get_by_id(attachment_id)
        if attachment is None:
            raise AttachmentNotFound(attachment_id)
        if attachment.kind != 'attachment':
            raise NotAnAttachment(attachment_id, attachment.kind)
        if attachment.context and attachment.context in self.excluded_contexts:
            raise ExcludedByPolicy(attachment_id, attachment.context)
        return attachment

    def regenerate(
        self,
        attachment_id: Any,
        policy: Optional[RegenerationPolicy] = None,
        update_usages: bool = False
    ) -> RegenerationResult:
        """
        Regenerate an attachment's thumbnails and save the new metadata.

        Args:
            attachment_id: Attachment to regenerate
            policy: Regeneration options
            update_usages: Also rewrite documents that embed the attachment

        Returns:
            RegenerationResult; `usage` is set when update_usages is True

        Raises:
            RegenerationError: If the attachment cannot be regenerated
        """
        attachment = self.get_attachment(attachment_id)
        attachment = replace(attachment, path=self.attachments.get_file_path(attachment_id))
        previous = self.attachments.get_metadata(attachment_id)

        result = self.reconciler.regenerate(attachment, policy, previous)
        self.attachments.set_metadata(attachment_id, result.metadata)

        if update_usages:
            result.usage = self._propagate(attachment_id, result.metadata, None, None)

        return result

    def update_usages(
        self,
        attachment_id: Any,
        document_types: Optional[Sequence[str]] = None,
        document_ids: Optional[Sequence[Any]] = None
    ) -> UsageUpdateResult:
        """
        Rewrite documents that embed an attachment using its stored metadata.

        Raises:
            RegenerationError: If the attachment cannot be used
        """
        self.get_attachment(attachment_id)
        metadata = self.attachments.get_metadata(attachment_id) or Metadata.empty()
        return self._propagate(attachment_id, metadata, document_types, document_ids)

    def _propagate(
        self,
        attachment_id: Any,
        metadata: Metadata,
        document_types: Optional[Sequence[str]],
        document_ids: Optional[Sequence[Any]]
    ) -> UsageUpdateResult:
        return propagate_usage(
            attachment_id,
            self.documents,
            thumbnail_resolver(metadata, self.base_url),
            document_types=document_types or self.document_types,
            document_ids=document_ids,
            page_size=self.page_size,
            logger=self.logger,
        )
