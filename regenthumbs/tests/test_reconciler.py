"""Tests for the Reconciler and plan_sizes()."""

import os
from unittest.mock import MagicMock

import pytest

from regenthumbs.errors import PerSizeGenerationFailure, SourceFileMissing
from regenthumbs.metadata import Attachment, Metadata, RegenerationPolicy, ThumbnailRecord
from regenthumbs.reconciler import (
    SKIP_FILE_EXISTS,
    SKIP_NO_DIMENSIONS,
    SKIP_UNRESOLVABLE,
    Reconciler,
    plan_sizes,
)
from regenthumbs.sizes import SizeDefinition, SizeRegistry


def _filename(dims):
    return f"/uploads/photo-{dims.suffix}.jpg"


class TestPlanSizes:
    """Tests for plan_sizes()."""

    def test_degenerate_sizes_always_skipped(self):
        """Sizes without width and height are never generated."""
        sizes = [SizeDefinition('empty'), SizeDefinition('zero', 0, 0, crop=True)]

        for only_missing in (True, False):
            to_generate, skipped = plan_sizes(
                sizes, (640, 480), _filename, only_missing, file_exists=lambda p: False
            )
            assert to_generate == []
            assert skipped == {'empty': SKIP_NO_DIMENSIONS, 'zero': SKIP_NO_DIMENSIONS}

    def test_unresolvable_sizes_dropped(self):
        sizes = [SizeDefinition('large', 1024, 1024)]

        to_generate, skipped = plan_sizes(sizes, (640, 480), _filename, file_exists=lambda p: False)

        assert to_generate == []
        assert skipped == {'large': SKIP_UNRESOLVABLE}

    def test_existing_file_skipped_when_only_missing(self):
        sizes = [SizeDefinition('thumbnail', 150, 150, True), SizeDefinition('medium', 300, 300)]
        file_exists = MagicMock(side_effect=lambda p: p.endswith('150x150.jpg'))

        to_generate, skipped = plan_sizes(sizes, (640, 480), _filename, True, file_exists)

        assert [s.name for s in to_generate] == ['medium']
        assert skipped == {'thumbnail': SKIP_FILE_EXISTS}
        file_exists.assert_any_call('/uploads/photo-150x150.jpg')
        file_exists.assert_any_call('/uploads/photo-300x225.jpg')

    def test_existing_file_regenerated_when_not_only_missing(self):
        sizes = [SizeDefinition('thumbnail', 150, 150, True)]
        file_exists = MagicMock(return_value=True)

        to_generate, skipped = plan_sizes(sizes, (640, 480), _filename, False, file_exists)

        assert [s.name for s in to_generate] == ['thumbnail']
        assert skipped == {}
        file_exists.assert_not_called()


class TestReconciler:
    """Tests for Reconciler class."""

    @pytest.fixture
    def editor_factory(self, mock_editor):
        return MagicMock(return_value=mock_editor)

    def test_source_file_missing(self, registry, upload_root, editor_factory, logger):
        """A deleted source fails fast and never touches the image editor."""
        reconciler = Reconciler(registry, str(upload_root), editor_factory, logger)
        missing = Attachment(id=42, path=str(upload_root / "2026" / "01" / "gone.jpg"))

        with pytest.raises(SourceFileMissing) as exc_info:
            reconciler.regenerate(missing)

        assert exc_info.value.path == os.path.join("2026", "01", "gone.jpg")
        assert exc_info.value.status == 404
        editor_factory.assert_not_called()

    def test_source_path_unknown(self, registry, upload_root, editor_factory):
        reconciler = Reconciler(registry, str(upload_root), editor_factory)

        with pytest.raises(SourceFileMissing) as exc_info:
            reconciler.regenerate(Attachment(id=42))

        assert exc_info.value.path is None
        editor_factory.assert_not_called()

    def test_first_run_generates_resolvable_sizes(self, registry, upload_root, attachment):
        """With the real editor, only sizes smaller than the source are built."""
        reconciler = Reconciler(registry, str(upload_root))

        result = reconciler.regenerate(attachment)

        assert sorted(result.generated) == ['medium', 'thumbnail']
        assert result.skipped == {
            'medium_large': SKIP_UNRESOLVABLE,
            'large': SKIP_UNRESOLVABLE,
        }
        assert result.ok
        assert result.metadata.width == 640
        assert result.metadata.height == 480
        assert result.metadata.file == os.path.join('2026', '01', 'photo.jpg')
        assert result.metadata.sizes['medium'].file == 'photo-300x225.jpg'
        assert (upload_root / '2026' / '01' / 'photo-150x150.jpg').exists()

    def test_only_missing_keeps_existing_records(
        self, registry, upload_root, attachment, previous_metadata
    ):
        """Existing thumbnails are skipped and their records carried forward."""
        (upload_root / '2026' / '01' / 'photo-150x150.jpg').write_bytes(b'old')
        reconciler = Reconciler(registry, str(upload_root))

        result = reconciler.regenerate(attachment, RegenerationPolicy(), previous_metadata)

        assert result.generated == ['medium']
        assert result.skipped['thumbnail'] == SKIP_FILE_EXISTS
        assert result.metadata.sizes['thumbnail'] == previous_metadata.sizes['thumbnail']
        assert len(result.metadata.sizes) >= len(previous_metadata.sizes)
        assert (upload_root / '2026' / '01' / 'photo-150x150.jpg').read_bytes() == b'old'

    def test_regenerate_all_overwrites(self, registry, upload_root, attachment, previous_metadata):
        (upload_root / '2026' / '01' / 'photo-150x150.jpg').write_bytes(b'old')
        reconciler = Reconciler(registry, str(upload_root))

        result = reconciler.regenerate(
            attachment, RegenerationPolicy(only_missing=False), previous_metadata
        )

        assert sorted(result.generated) == ['medium', 'thumbnail']
        assert (upload_root / '2026' / '01' / 'photo-150x150.jpg').read_bytes() != b'old'

    def test_custom_sizes_survive_without_prune(
        self, registry, upload_root, attachment, previous_metadata
    ):
        """Unregistered sizes are kept when pruning is off."""
        previous = previous_metadata.merged_with({
            'legacy': ThumbnailRecord('legacy', 'photo-50x50.jpg', 50, 50),
        })
        reconciler = Reconciler(registry, str(upload_root))

        result = reconciler.regenerate(attachment, RegenerationPolicy(), previous)

        assert 'legacy' in result.metadata.sizes
        assert result.pruned == []

    def test_prune_removes_exactly_unregistered(self, upload_root, attachment, previous_metadata):
        """Pruning drops sizes absent from the registry and present before, nothing else."""
        directory = upload_root / '2026' / '01'
        (directory / 'photo-50x50.jpg').write_bytes(b'legacy')
        (directory / 'photo-999x1.jpg').write_bytes(b'unrelated')
        previous = previous_metadata.merged_with({
            'legacy': ThumbnailRecord('legacy', 'photo-50x50.jpg', 50, 50),
            'orphan': ThumbnailRecord('orphan', 'photo-60x60.jpg', 60, 60),
        })
        registry = SizeRegistry([
            SizeDefinition('thumbnail', 150, 150, crop=True),
            SizeDefinition('medium', 300, 300),
        ])
        reconciler = Reconciler(registry, str(upload_root))

        result = reconciler.regenerate(
            attachment, RegenerationPolicy(prune_unregistered=True), previous
        )

        assert sorted(result.pruned) == ['legacy', 'orphan']
        assert result.metadata.size_names == ['medium', 'thumbnail']
        assert not (directory / 'photo-50x50.jpg').exists()
        assert (directory / 'photo-999x1.jpg').exists()

    def test_prune_keeps_file_shared_with_registered_size(
        self, registry, upload_root, attachment, previous_metadata
    ):
        """A dropped size whose file a registered size still uses leaves the file alone."""
        shared = upload_root / '2026' / '01' / 'photo-150x150.jpg'
        shared.write_bytes(b'old')
        previous = previous_metadata.merged_with({
            'old_square': ThumbnailRecord('old_square', 'photo-150x150.jpg', 150, 150),
        })
        reconciler = Reconciler(registry, str(upload_root))

        result = reconciler.regenerate(
            attachment, RegenerationPolicy(prune_unregistered=True), previous
        )

        assert result.pruned == ['old_square']
        assert 'old_square' not in result.metadata.sizes
        assert result.metadata.sizes['thumbnail'].file == 'photo-150x150.jpg'
        assert shared.exists()
        assert result.prune_errors == {}

    def test_prune_missing_file_is_not_an_error(self, upload_root, attachment, previous_metadata):
        """Deleting a thumbnail that is already gone does not fail."""
        registry = SizeRegistry([SizeDefinition('thumbnail', 150, 150, crop=True)])
        reconciler = Reconciler(registry, str(upload_root))

        result = reconciler.regenerate(
            attachment, RegenerationPolicy(prune_unregistered=True), previous_metadata
        )

        assert result.pruned == ['medium']
        assert result.prune_errors == {}
        assert 'medium' not in result.metadata.sizes

    def test_prune_other_os_error_recorded(
        self, upload_root, attachment, previous_metadata, mocker
    ):
        registry = SizeRegistry([SizeDefinition('thumbnail', 150, 150, crop=True)])
        reconciler = Reconciler(registry, str(upload_root))
        mocker.patch('regenthumbs.reconciler.os.remove', side_effect=PermissionError("denied"))

        result = reconciler.regenerate(
            attachment, RegenerationPolicy(prune_unregistered=True), previous_metadata
        )

        assert result.prune_errors == {'medium': 'denied'}
        assert 'medium' not in result.metadata.sizes
        assert not result.ok

    def test_per_size_failure_is_not_fatal(
        self, registry, upload_root, attachment, previous_metadata, mock_editor, editor_factory
    ):
        """A failed size is reported and its old record kept."""
        mock_editor.multi_resize.side_effect = lambda sizes: {
            'thumbnail': ThumbnailRecord('thumbnail', 'photo-150x150.jpg', 150, 150),
            'medium': PerSizeGenerationFailure('medium', 'boom'),
        }
        reconciler = Reconciler(registry, str(upload_root), editor_factory)

        result = reconciler.regenerate(
            attachment, RegenerationPolicy(only_missing=False), previous_metadata
        )

        assert result.generated == ['thumbnail']
        assert result.failures == {'medium': PerSizeGenerationFailure('medium', 'boom')}
        assert result.metadata.sizes['medium'] == previous_metadata.sizes['medium']
        assert result.errors == 1

    def test_degenerate_size_never_sent_to_editor(
        self, upload_root, attachment, mock_editor, editor_factory
    ):
        registry = SizeRegistry([
            SizeDefinition('empty'),
            SizeDefinition('thumbnail', 150, 150, crop=True),
        ])
        reconciler = Reconciler(registry, str(upload_root), editor_factory)

        result = reconciler.regenerate(attachment, RegenerationPolicy(only_missing=False))

        sent = mock_editor.multi_resize.call_args[0][0]
        assert [s.name for s in sent] == ['thumbnail']
        assert result.skipped == {'empty': SKIP_NO_DIMENSIONS}
        assert 'empty' not in result.failures

    def test_nothing_to_generate_skips_editor_resize(
        self, upload_root, attachment, mock_editor, editor_factory
    ):
        registry = SizeRegistry([SizeDefinition('large', 1024, 1024)])
        reconciler = Reconciler(registry, str(upload_root), editor_factory)

        result = reconciler.regenerate(attachment)

        mock_editor.multi_resize.assert_not_called()
        assert result.generated == []

    def test_filenames_use_lowercase_extension(self, registry, upload_root, mock_editor, editor_factory):
        path = upload_root / '2026' / '01' / 'PHOTO.JPG'
        path.write_bytes(b'image')
        reconciler = Reconciler(registry, str(upload_root), editor_factory)

        reconciler.regenerate(Attachment(id=1, path=str(path)))

        for call in mock_editor.generate_filename.call_args_list:
            assert call.kwargs['extension'] == 'jpg'
