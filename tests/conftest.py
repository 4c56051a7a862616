import pytest
from pathlib import Path
from PIL import Image

from photo_indexer.exceptions import MetadataExtractionError, TranscodeError
from photo_indexer.metadata.extract import MetadataExtractor
from photo_indexer.metadata.providers import MetadataProvider, RawMetadata
from photo_indexer.preview.cache import MemoryPreviewCache
from photo_indexer.preview.generator import PreviewGenerator
from photo_indexer.preview.transcode import NullTranscoder, Transcoder
from photo_indexer.scanning.filesystem import DirectoryScanner


class StubProvider(MetadataProvider):
    """Returns fixed raw metadata for every file."""
    name = "stub"

    def __init__(self, **fields):
        self.raw = RawMetadata(**fields)
        self.calls = []

    def query(self, path):
        self.calls.append(path)
        return self.raw


class FailingProvider(MetadataProvider):
    name = "failing"

    def query(self, path):
        raise MetadataExtractionError("tool exploded")


class StubTranscoder(Transcoder):
    """Writes a small JPEG instead of calling an external tool."""
    name = "stub"

    def __init__(self):
        self.calls = []

    def convert(self, source, destination):
        self.calls.append(Path(source))
        with Image.new("RGB", (4, 4), color="blue") as im:
            im.save(destination, format="JPEG")


class FailingTranscoder(Transcoder):
    name = "failing"

    def convert(self, source, destination):
        raise TranscodeError("conversion failed")


@pytest.fixture
def make_image():
    """Factory: writes a solid-colour image with Pillow and returns its path."""
    def _make(path: Path, size=(10, 10), color="red", fmt=None, **save_kwargs) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with Image.new("RGB", size, color=color) as im:
            im.save(path, format=fmt, **save_kwargs)
        return path
    return _make


@pytest.fixture
def preview_generator():
    return PreviewGenerator(cache=MemoryPreviewCache(), transcoder=NullTranscoder())


@pytest.fixture
def scanner(preview_generator):
    """Scanner with no external metadata tools, so results only depend on the tree."""
    return DirectoryScanner(
        previews=preview_generator,
        metadata=MetadataExtractor(providers=[]),
    )
