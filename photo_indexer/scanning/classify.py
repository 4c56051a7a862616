import os
from dataclasses import dataclass
from typing import Optional, Union

from .. import config


@dataclass(frozen=True)
class ImageKind:
    ext: str                # Lower-cased, no leading dot
    mime: Optional[str]     # None when the bytes cannot be embedded directly

    @property
    def needs_transcode(self) -> bool:
        return self.ext in config.TRANSCODE_EXTS


def extension_of(path: Union[str, os.PathLike]) -> str:
    """Lower-cased extension without the dot ('' for dotfiles and bare names)."""
    return os.path.splitext(os.fspath(path))[1][1:].lower()


def kind_for_extension(ext: str) -> Optional[ImageKind]:
    ext = ext.lower().lstrip('.')
    if ext not in config.IMAGE_EXTS:
        return None
    return ImageKind(ext=ext, mime=config.IMAGE_MIME_BY_EXT.get(ext))


def classify(path: Union[str, os.PathLike]) -> Optional[ImageKind]:
    """
    Maps a path to a supported image kind by extension alone.
    Returns None for anything outside the allow-list.
    """
    return kind_for_extension(extension_of(path))
