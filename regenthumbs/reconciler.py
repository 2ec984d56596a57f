"""
Reconciler - Decides which thumbnail sizes to (re)build for one image,
builds them, and merges the results into the image's metadata.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .errors import PerSizeGenerationFailure, SourceFileMissing
from .image_editor import ImageEditor, PillowImageEditor
from .metadata import Attachment, Metadata, RegenerationPolicy, ThumbnailRecord
from .sizes import ResizeDimensions, SizeDefinition, SizeRegistry, resize_dimensions
from .usage import UsageUpdateResult

SKIP_NO_DIMENSIONS = 'no dimensions'
SKIP_UNRESOLVABLE = 'unresolvable dimensions'
SKIP_FILE_EXISTS = 'file exists'


@dataclass
class RegenerationResult:
    """
    Outcome of one regeneration call.

    Attributes:
        metadata: Final merged metadata (not yet persisted)
        generated: Size names whose thumbnails were written
        skipped: Size name -> reason it was not generated
        failures: Size name -> failure for sizes the editor could not build
        pruned: Size names removed because they are no longer registered
        prune_errors: Size name -> error message for thumbnail files that
                      could not be deleted
        usage: Result of updating documents, when requested
    """
    metadata: Metadata
    generated: List[str] = field(default_factory=list)
    skipped: Dict[str, str] = field(default_factory=dict)
    failures: Dict[str, PerSizeGenerationFailure] = field(default_factory=dict)
    pruned: List[str] = field(default_factory=list)
    prune_errors: Dict[str, str] = field(default_factory=dict)
    usage: Optional[UsageUpdateResult] = None

    @property
    def errors(self) -> int:
        return len(self.failures) + len(self.prune_errors)

    @property
    def ok(self) -> bool:
        return self.errors == 0


def plan_sizes(
    sizes: Sequence[SizeDefinition],
    source_size: Tuple[int, int],
    filename_for: Callable[[ResizeDimensions], str],
    only_missing: bool = True,
    file_exists: Callable[[str], bool] = os.path.exists
) -> Tuple[List[SizeDefinition], Dict[str, str]]:
    """
    Split the registered sizes into those to generate and those to skip.

    A size is skipped when it has no dimensions, when no downscaled
    dimensions can be derived from the source, or (with only_missing)
    when a file already exists where the editor would write it.

    Args:
        sizes: Registered sizes, in order
        source_size: (width, height) of the source image
        filename_for: Maps resize dimensions to the thumbnail's path
        only_missing: Skip sizes whose file already exists
        file_exists: Existence check for a candidate path

    Returns:
        Tuple of (sizes to generate, dict of size name -> skip reason)
    """
    source_w, source_h = source_size
    to_generate: List[SizeDefinition] = []
    skipped: Dict[str, str] = {}

    for size in sizes:
        if not size.is_active:
            skipped[size.name] = SKIP_NO_DIMENSIONS
            continue

        dims = resize_dimensions(source_w, source_h, size.width, size.height, size.crop)
        if dims is None:
            skipped[size.name] = SKIP_UNRESOLVABLE
            continue

        if only_missing and file_exists(filename_for(dims)):
            skipped[size.name] = SKIP_FILE_EXISTS
            continue

        to_generate.append(size)

    return to_generate, skipped


class Reconciler:
    """
    Regenerates the thumbnails of a single attachment.

    Reads nothing from and persists nothing to the attachment store; the
    caller supplies the prior metadata and saves the returned metadata.
    """

    def __init__(
        self,
        registry: SizeRegistry,
        upload_root: str,
        editor_factory: Callable[[str], ImageEditor] = PillowImageEditor,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize reconciler.

        Args:
            registry: Registered thumbnail sizes
            upload_root: Root directory that stored file paths are relative to
            editor_factory: Builds an image editor for a source path
            logger: Optional logger instance
        """
        self.registry = registry
        self.upload_root = upload_root
        self.editor_factory = editor_factory
        self.logger = logger or logging.getLogger(__name__)

    def relative_path(self, path: Optional[str]) -> Optional[str]:
        """Path relative to the upload root, or unchanged if outside it."""
        if not path:
            return path
        root = os.path.abspath(self.upload_root)
        absolute = os.path.abspath(path)
        if os.path.commonpath([root, absolute]) == root:
            return os.path.relpath(absolute, root)
        return path

    def regenerate(
        self,
        attachment: Attachment,
        policy: Optional[RegenerationPolicy] = None,
        previous: Optional[Metadata] = None
    ) -> RegenerationResult:
        """
        Regenerate thumbnails for an attachment.

        Args:
            attachment: Attachment whose path points at the source image
            policy: Regeneration options (default: only missing, no pruning)
            previous: Metadata from before this call, if any

        Returns:
            RegenerationResult with the merged metadata

        Raises:
            SourceFileMissing: If the source image does not exist
            ImageEditorUnavailable: If the source image cannot be opened
        """
        policy = policy or RegenerationPolicy()
        previous = previous or Metadata.empty()
        source_path = attachment.path

        if not source_path or not os.path.exists(source_path):
            raise SourceFileMissing(attachment.id, self.relative_path(source_path))

        sizes = self.registry.current_sizes()
        editor = self.editor_factory(source_path)
        source_size = editor.size
        extension = os.path.splitext(source_path)[1].lstrip('.').lower()

        to_generate, skipped = plan_sizes(
            sizes,
            source_size,
            lambda dims: editor.generate_filename(dims.suffix, extension=extension),
            only_missing=policy.only_missing,
        )
        for name, reason in skipped.items():
            self.logger.debug(f"Attachment {attachment.id}: skipping {name} ({reason})")

        results = editor.multi_resize(to_generate) if to_generate else {}

        new_sizes: Dict[str, ThumbnailRecord] = {}
        failures: Dict[str, PerSizeGenerationFailure] = {}
        for name, outcome in results.items():
            if isinstance(outcome, PerSizeGenerationFailure):
                failures[name] = outcome
            else:
                new_sizes[name] = outcome

        metadata = previous.merged_with(
            new_sizes,
            width=source_size[0],
            height=source_size[1],
            file=self.relative_path(source_path),
        )

        result = RegenerationResult(
            metadata=metadata,
            generated=list(new_sizes),
            skipped=skipped,
            failures=failures,
        )

        if policy.prune_unregistered:
            self._prune(attachment, previous, {s.name for s in sizes}, result)

        self.logger.info(
            f"Attachment {attachment.id}: {len(result.generated)} generated, "
            f"{len(result.skipped)} skipped, {len(result.failures)} failed, "
            f"{len(result.pruned)} pruned"
        )

        return result

    def _prune(
        self,
        attachment: Attachment,
        previous: Metadata,
        registered: set,
        result: RegenerationResult
    ) -> None:
        """Delete thumbnails of sizes that were known before but are no longer registered."""
        directory = os.path.dirname(attachment.path)
        unregistered = [name for name in previous.sizes if name not in registered]
        kept = result.metadata.without(unregistered)
        # Registered sizes can share a file name with a dropped one (same dimensions).
        in_use = {record.file for record in kept.sizes.values()}

        for name in unregistered:
            result.pruned.append(name)
            filename = previous.sizes[name].file
            if filename in in_use:
                self.logger.debug(f"Keeping {filename}, still used by a registered size")
                continue
            path = os.path.join(directory, filename)
            try:
                os.remove(path)
                self.logger.debug(f"Deleted unregistered thumbnail {path}")
            except FileNotFoundError:
                self.logger.debug(f"Unregistered thumbnail already gone: {path}")
            except OSError as e:
                self.logger.warning(f"Could not delete {path}: {e}")
                result.prune_errors[name] = str(e)

        result.metadata = kept
