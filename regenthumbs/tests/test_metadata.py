"""
Tests for Metadata and ThumbnailRecord.
"""

from regenthumbs.metadata import Attachment, Metadata, RegenerationPolicy, ThumbnailRecord


class TestThumbnailRecord:
    """Tests for ThumbnailRecord dataclass."""

    def test_to_dict(self):
        record = ThumbnailRecord('thumbnail', 'photo-150x150.jpg', 150, 150, 'image/jpeg')

        d = record.to_dict()

        assert d['file'] == 'photo-150x150.jpg'
        assert d['width'] == 150

    def test_from_dict_takes_name_from_key(self):
        """Stored sizes may omit size_name; the mapping key supplies it."""
        record = ThumbnailRecord.from_dict(
            {'file': 'photo-300x225.jpg', 'width': '300', 'height': 225},
            size_name='medium',
        )

        assert record.size_name == 'medium'
        assert record.width == 300
        assert record.mime_type is None


class TestMetadata:
    """Tests for Metadata dataclass."""

    def test_empty(self):
        metadata = Metadata.empty()

        assert metadata.sizes == {}
        assert metadata.width == 0

    def test_from_dict_none(self):
        assert Metadata.from_dict(None) == Metadata.empty()

    def test_round_trip(self, previous_metadata):
        assert Metadata.from_dict(previous_metadata.to_dict()) == previous_metadata

    def test_merged_with_carries_forward(self, previous_metadata):
        """Existing records survive; new records replace stale ones."""
        newer = {
            'medium': ThumbnailRecord('medium', 'photo-300x200.jpg', 300, 200),
            'large': ThumbnailRecord('large', 'photo-1024x683.jpg', 1024, 683),
        }

        merged = previous_metadata.merged_with(newer)

        assert merged.size_names == ['large', 'medium', 'thumbnail']
        assert merged.sizes['medium'].height == 200
        assert merged.sizes['thumbnail'] == previous_metadata.sizes['thumbnail']

    def test_merged_with_does_not_mutate(self, previous_metadata):
        previous_metadata.merged_with(
            {'large': ThumbnailRecord('large', 'x.jpg', 1, 1)}, width=1000
        )

        assert 'large' not in previous_metadata.sizes
        assert previous_metadata.width == 640

    def test_merged_with_changes(self, previous_metadata):
        merged = previous_metadata.merged_with({}, width=800, height=600)

        assert (merged.width, merged.height) == (800, 600)
        assert merged.file == previous_metadata.file

    def test_without(self, previous_metadata):
        trimmed = previous_metadata.without(['medium', 'unknown'])

        assert trimmed.size_names == ['thumbnail']
        assert previous_metadata.size_names == ['medium', 'thumbnail']

    def test_get_size(self, previous_metadata):
        assert previous_metadata.get_size('thumbnail').width == 150
        assert previous_metadata.get_size('large') is None


class TestDefaults:
    """Tests for Attachment and RegenerationPolicy defaults."""

    def test_policy_defaults(self):
        policy = RegenerationPolicy()

        assert policy.only_missing is True
        assert policy.prune_unregistered is False

    def test_attachment_defaults(self):
        attachment = Attachment(id=7)

        assert attachment.kind == 'attachment'
        assert attachment.context is None
        assert attachment.path is None
