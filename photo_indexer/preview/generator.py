import io
import base64
import logging
import tempfile
from pathlib import Path
from typing import Optional, Union

from PIL import Image, ImageOps

from .. import config
from ..exceptions import PreviewError, TranscodeError
from ..scanning.classify import kind_for_extension
from .cache import PreviewCache, FilePreviewCache, cache_key_for_file
from .transcode import Transcoder, default_transcoder


def to_data_url(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


class PreviewGenerator:
    """
    Produces an embeddable preview (data: URI) for one image file.

    Strategies, first success wins:
      1. Pillow decode -> downscale to MAX_PREVIEW_WIDTH -> PNG.
      2. HEIC/HEIF -> external transcoder -> JPEG, cached by file identity.
         A failure here is final for the file.
      3. Raw file bytes under the extension's own MIME type.
    """

    def __init__(self,
                 cache: Optional[PreviewCache] = None,
                 transcoder: Optional[Transcoder] = None,
                 max_width: int = config.MAX_PREVIEW_WIDTH):
        self.cache = cache if cache is not None else FilePreviewCache()
        self.transcoder = transcoder if transcoder is not None else default_transcoder()
        self.max_width = max_width

    def render(self, path: Union[str, Path], ext: str) -> Optional[str]:
        path = Path(path)
        ext = ext.lower().lstrip('.')

        try:
            return self._native_preview(path)
        except Exception as e:
            logging.debug(f"Native decode failed for {path}: {e}")

        kind = kind_for_extension(ext)
        if kind is not None and kind.needs_transcode and self.transcoder.available:
            try:
                return self._transcoded_preview(path)
            except (TranscodeError, OSError) as e:
                logging.debug(f"Transcode failed for {path}: {e}")
                return None

        if kind is None or kind.mime is None:
            return None

        try:
            return to_data_url(path.read_bytes(), kind.mime)
        except OSError as e:
            logging.debug(f"Cannot read {path}: {e}")
            return None

    def _native_preview(self, path: Path) -> str:
        with Image.open(path) as im:
            im.load()
            if im.width == 0 or im.height == 0:
                raise PreviewError(f"Empty bitmap in {path}")

            # Camera JPEGs are often stored sideways with an orientation tag
            img = ImageOps.exif_transpose(im)

            if img.mode not in ('RGB', 'RGBA', 'L', 'LA', 'P'):
                img = img.convert('RGBA' if 'A' in img.getbands() else 'RGB')

            if img.width > self.max_width:
                # Height bound equals the current height so only width constrains
                img.thumbnail((self.max_width, img.height), Image.Resampling.LANCZOS)

            buf = io.BytesIO()
            img.save(buf, format='PNG')
        return to_data_url(buf.getvalue(), 'image/png')

    def _transcoded_preview(self, path: Path) -> str:
        key = cache_key_for_file(path)
        data = self.cache.get(key)

        if data is None:
            with tempfile.TemporaryDirectory(prefix="photo-indexer-") as tmp:
                out = Path(tmp) / f"{key}.jpg"
                self.transcoder.convert(path, out)
                data = out.read_bytes()
            self.cache.put(key, data)
            logging.debug(f"Cached {self.transcoder.name} preview for {path} as {key}")

        return to_data_url(data, 'image/jpeg')
