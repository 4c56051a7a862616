import io
import os
import base64
import pytest
from PIL import Image

from photo_indexer.preview.cache import (
    FilePreviewCache,
    MemoryPreviewCache,
    cache_key,
    cache_key_for_file,
)
from photo_indexer.preview.generator import PreviewGenerator, to_data_url
from photo_indexer.preview.transcode import NullTranscoder, default_transcoder

from conftest import StubTranscoder, FailingTranscoder


def decode_data_url(url):
    header, _, payload = url.partition(",")
    return header, base64.b64decode(payload)


def test_native_preview_small_image_keeps_size(tmp_path, make_image, preview_generator):
    img = make_image(tmp_path / "small.jpg", size=(40, 30))

    url = preview_generator.render(img, "jpg")
    header, data = decode_data_url(url)
    assert header == "data:image/png;base64"
    with Image.open(io.BytesIO(data)) as im:
        assert im.size == (40, 30)


def test_native_preview_downscales_wide_images(tmp_path, make_image, preview_generator):
    img = make_image(tmp_path / "wide.png", size=(2000, 100))

    _, data = decode_data_url(preview_generator.render(img, "png"))
    with Image.open(io.BytesIO(data)) as im:
        assert im.width == 960
        assert im.height == 48


def test_undecodable_file_falls_back_to_raw_bytes(tmp_path, preview_generator):
    bogus = tmp_path / "broken.webp"
    bogus.write_bytes(b"definitely not an image")

    url = preview_generator.render(bogus, "webp")
    assert url == to_data_url(b"definitely not an image", "image/webp")


def test_heic_without_transcoder_yields_nothing(tmp_path, preview_generator):
    heic = tmp_path / "IMG_1.heic"
    heic.write_bytes(b"\x00\x00\x00\x18ftypheic")

    assert preview_generator.render(heic, "heic") is None


def test_heic_transcoded_and_cached(tmp_path):
    heic = tmp_path / "IMG_2.HEIC"
    heic.write_bytes(b"\x00\x00\x00\x18ftypheic")
    cache = MemoryPreviewCache()
    transcoder = StubTranscoder()
    generator = PreviewGenerator(cache=cache, transcoder=transcoder)

    first = generator.render(heic, "heic")
    second = generator.render(heic, "heic")

    assert first.startswith("data:image/jpeg;base64,")
    assert first == second
    assert transcoder.calls == [heic]
    assert cache.get(cache_key_for_file(heic)) is not None


def test_heic_transcode_failure_does_not_fall_through(tmp_path):
    heic = tmp_path / "IMG_3.heif"
    heic.write_bytes(b"\x00\x00\x00\x18ftypheif")
    generator = PreviewGenerator(cache=MemoryPreviewCache(), transcoder=FailingTranscoder())

    assert generator.render(heic, "heif") is None


def test_missing_file_has_no_preview(tmp_path, preview_generator):
    assert preview_generator.render(tmp_path / "gone.jpg", "jpg") is None


def test_cache_key_tracks_file_identity(tmp_path):
    f = tmp_path / "a.heic"
    f.write_bytes(b"one")
    os.utime(f, (1_000_000, 1_000_000))

    key = cache_key_for_file(f)
    assert key == cache_key_for_file(f)
    assert len(key) == 40
    assert key == cache_key(f, 3, 1_000_000_000.0)

    os.utime(f, (2_000_000, 2_000_000))
    assert cache_key_for_file(f) != key


def test_cache_key_accepts_undecodable_names():
    key = cache_key("/x/\udcff.heic", 10, 5.0)
    assert key == cache_key("/x/\udcff.heic", 10, 5.0)
    assert key != cache_key("/x/\udcfe.heic", 10, 5.0)


def test_file_preview_cache_roundtrip(tmp_path):
    cache = FilePreviewCache(tmp_path / "previews")
    key = cache_key("/x/y.heic", 10, 5.0)

    assert cache.get(key) is None
    cache.put(key, b"jpeg-bytes")

    assert cache.get(key) == b"jpeg-bytes"
    assert cache.path_for(key) == tmp_path / "previews" / f"{key}.jpg"
    assert [p.name for p in (tmp_path / "previews").iterdir()] == [f"{key}.jpg"]


def test_file_preview_cache_defaults_to_temp_dir():
    cache = FilePreviewCache()
    assert cache.root.name == "photo-indexer-previews"


def test_null_transcoder_is_unavailable():
    assert not NullTranscoder().available
    assert default_transcoder().name in ("sips", "heif-convert", "null")
