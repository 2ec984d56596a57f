"""
Pytest fixtures for regenthumbs tests.
"""

import pytest


@pytest.fixture
def upload_root(tmp_path):
    """Fixture providing an upload root directory."""
    root = tmp_path / "uploads"
    (root / "2026" / "01").mkdir(parents=True)
    return root


@pytest.fixture
def source_image(upload_root):
    """Fixture providing a 640x480 JPEG inside the upload root."""
    from PIL import Image

    path = upload_root / "2026" / "01" / "photo.jpg"
    img = Image.new('RGB', (640, 480), color='red')
    img.save(path, format='JPEG')
    return path


@pytest.fixture
def source_png(upload_root):
    """Fixture providing a 400x200 PNG with transparency."""
    from PIL import Image

    path = upload_root / "2026" / "01" / "logo.png"
    img = Image.new('RGBA', (400, 200), color=(255, 0, 0, 128))
    img.save(path, format='PNG')
    return path


@pytest.fixture
def registry():
    """Fixture providing the default size registry."""
    from regenthumbs.sizes import SizeRegistry

    return SizeRegistry.default()


@pytest.fixture
def attachment(source_image):
    """Fixture providing an attachment pointing at the sample JPEG."""
    from regenthumbs.metadata import Attachment

    return Attachment(id=42, path=str(source_image))


@pytest.fixture
def previous_metadata():
    """Fixture providing metadata from an earlier run."""
    from regenthumbs.metadata import Metadata, ThumbnailRecord

    return Metadata(
        width=640,
        height=480,
        file='2026/01/photo.jpg',
        sizes={
            'thumbnail': ThumbnailRecord('thumbnail', 'photo-150x150.jpg', 150, 150, 'image/jpeg'),
            'medium': ThumbnailRecord('medium', 'photo-300x225.jpg', 300, 225, 'image/jpeg'),
        },
    )


@pytest.fixture
def mock_editor():
    """Fixture providing a mock image editor for a 640x480 source."""
    from unittest.mock import MagicMock
    from regenthumbs.image_editor import PillowImageEditor
    from regenthumbs.metadata import ThumbnailRecord

    editor = MagicMock(spec=PillowImageEditor)
    editor.size = (640, 480)
    editor.generate_filename.side_effect = (
        lambda suffix, dest_dir=None, extension=None: f"/nonexistent/photo-{suffix}.{extension}"
    )
    editor.multi_resize.side_effect = lambda sizes: {
        s.name: ThumbnailRecord(s.name, f"photo-{s.name}.jpg", s.width or 1, s.height or 1)
        for s in sizes
    }
    return editor


@pytest.fixture
def mock_document_store():
    """Fixture providing a mock document store with no documents."""
    from unittest.mock import MagicMock

    store = MagicMock()
    store.query.return_value = []
    store.update.return_value = None
    return store


@pytest.fixture
def logger():
    """Fixture providing a logger."""
    import logging
    return logging.getLogger('test')
