import re
import logging
from pathlib import Path
from typing import Optional, List, Union

from .. import config
from ..exceptions import SplatReadError, PlyHeaderError
from ..models import SplatRecord, PlyHeader
from .ply import parse_ply_header

BINARY_FORMAT_PATTERN = re.compile(r'format\s+binary_', re.IGNORECASE)
LINE_BREAK = re.compile(r'\r?\n')


def splat_preview(content: str, max_lines: int = config.SPLAT_PREVIEW_LINES) -> Optional[str]:
    """First lines of the decoded window, trailing whitespace removed."""
    lines = LINE_BREAK.split(content)[:max_lines]
    preview = '\n'.join(lines).rstrip()
    return preview or None


class SplatResolver:
    """
    Finds the 3D-scan companion of an image: '<album>/splats/<stem><ext>',
    extensions tried in SPLAT_EXTENSIONS order.
    """

    def __init__(self,
                 folder_name: str = config.SPLAT_FOLDER_NAME,
                 extensions=config.SPLAT_EXTENSIONS,
                 preview_bytes: int = config.SPLAT_PREVIEW_BYTES,
                 preview_lines: int = config.SPLAT_PREVIEW_LINES):
        self.folder_name = folder_name
        self.extensions = tuple(extensions)
        self.preview_bytes = preview_bytes
        self.preview_lines = preview_lines

    def candidates(self, album_path: Union[str, Path], image_name: str) -> List[Path]:
        stem = Path(image_name).stem
        folder = Path(album_path) / self.folder_name
        return [folder / f"{stem}{ext}" for ext in self.extensions]

    def find(self, album_path: Union[str, Path], image_name: str) -> Optional[Path]:
        for candidate in self.candidates(album_path, image_name):
            if candidate.exists():
                return candidate
        return None

    def resolve(self, album_path: Union[str, Path], image_name: str) -> Optional[SplatRecord]:
        splat_path = self.find(album_path, image_name)
        if splat_path is None:
            return None

        try:
            window = self._read_window(splat_path)
        except SplatReadError as e:
            logging.debug(f"Splat lookup failed: {e}")
            return None

        content = window.decode('utf-8', errors='replace')

        return SplatRecord(
            name=splat_path.name,
            path=splat_path,
            url=splat_path.absolute().as_uri(),
            preview_text=splat_preview(content, self.preview_lines),
            is_binary=bool(BINARY_FORMAT_PATTERN.search(content)),
            layout=self._sniff_layout(splat_path, window),
        )

    def _read_window(self, path: Path) -> bytes:
        try:
            with path.open('rb') as f:
                return f.read(self.preview_bytes)
        except OSError as e:
            raise SplatReadError(f"Cannot read {path}: {e}") from e

    def _sniff_layout(self, path: Path, window: bytes) -> Optional[PlyHeader]:
        if path.suffix.lower() != '.ply':
            return None
        try:
            return parse_ply_header(window)
        except PlyHeaderError as e:
            logging.debug(f"No usable PLY header in {path}: {e}")
            return None
