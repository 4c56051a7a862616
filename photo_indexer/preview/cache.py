import os
import hashlib
import logging
import tempfile
import threading
from pathlib import Path
from typing import Optional, Dict, Union

from .. import config


def cache_key(path: Union[str, Path], size: int, mtime_ms: float) -> str:
    """
    Content-identity key: sha1 over "path:size:mtime_ms".
    Any change to the file's identity yields a new key, so entries never
    need explicit invalidation.
    """
    h = hashlib.sha1()
    h.update(f"{path}:{size}:{mtime_ms}".encode('utf-8', 'surrogateescape'))
    return h.hexdigest()


def cache_key_for_file(path: Union[str, Path]) -> str:
    """Stats the file and derives its key. Raises OSError if it cannot be stat'ed."""
    st = os.stat(path)
    return cache_key(path, st.st_size, st.st_mtime_ns / 1_000_000)


class PreviewCache:
    """Keyed store for transcoded previews."""

    def get(self, key: str) -> Optional[bytes]:
        raise NotImplementedError

    def put(self, key: str, data: bytes) -> None:
        raise NotImplementedError


class MemoryPreviewCache(PreviewCache):
    def __init__(self):
        self._entries: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, data: bytes) -> None:
        with self._lock:
            self._entries[key] = data

    def __len__(self) -> int:
        return len(self._entries)


class FilePreviewCache(PreviewCache):
    """
    Stores '{key}.jpg' files under a folder in the system temp directory.
    Append-only: entries accumulate across runs and are never evicted.
    """

    def __init__(self, root: Optional[Union[str, Path]] = None):
        if root is None:
            root = Path(tempfile.gettempdir()) / config.PREVIEW_CACHE_FOLDER
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        return self.root / f"{key}.jpg"

    def get(self, key: str) -> Optional[bytes]:
        try:
            return self.path_for(key).read_bytes()
        except FileNotFoundError:
            return None

    def put(self, key: str, data: bytes) -> None:
        """
        Writes through a temp file and os.replace, so concurrent writers of the
        same key converge on one complete file.
        """
        self.root.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{key}.", suffix=".part")
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
            os.replace(tmp_name, self.path_for(key))
        except OSError:
            try:
                os.unlink(tmp_name)
            except OSError:
                logging.debug(f"Could not remove partial cache file {tmp_name}")
            raise
