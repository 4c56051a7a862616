import os
import logging
from pathlib import Path
from typing import Any, List, Optional

from . import config
from .models import MediaRecord, SplatRecord
from .metadata.persist import MetadataPersister
from .scanning.filesystem import DirectoryScanner, ProgressCallback
from .splats.reader import read_splat_bytes
from .splats.resolver import SplatResolver


def _clean_str(value: Any) -> Optional[str]:
    """Stripped string, or None for non-strings and blanks."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


class PhotoIndexerApp:
    """
    Entry points for the three requests a display layer makes:
    list the images of a folder, look up an image's splat, fetch splat bytes.
    Invalid input yields an empty / None result, never an exception.
    """

    def __init__(self,
                 scanner: Optional[DirectoryScanner] = None,
                 persister: Optional[MetadataPersister] = None,
                 resolver: Optional[SplatResolver] = None):
        self.scanner = scanner or DirectoryScanner()
        self.persister = persister or MetadataPersister()
        self.resolver = resolver or SplatResolver()

    def list_images(self,
                    folder_path: Any,
                    metadata_folder_path: Any = None,
                    progress: Optional[ProgressCallback] = None) -> List[MediaRecord]:
        """
        Scans folder_path and snapshots the result to the metadata folder
        (default '<folder>/metadata'). The snapshot is best-effort.
        """
        folder = _clean_str(folder_path)
        if folder is None or not os.path.isdir(folder):
            logging.debug(f"Not a directory, nothing to list: {folder_path!r}")
            return []

        images = self.scanner.scan(folder, progress=progress)

        metadata_folder = _clean_str(metadata_folder_path)
        if metadata_folder is None:
            metadata_folder = os.path.join(folder, config.METADATA_FOLDER_NAME)

        self.persister.persist(images, Path(metadata_folder))
        return images

    def get_image_splat(self, album_path: Any, image_name: Any) -> Optional[SplatRecord]:
        album = _clean_str(album_path)
        name = _clean_str(image_name)
        if album is None or name is None:
            return None

        # Only the base name is honored; directory components are dropped
        name = os.path.basename(name)
        if not name or not os.path.isdir(album):
            return None

        return self.resolver.resolve(album, name)

    def get_splat_bytes(self, splat_path: Any) -> Optional[bytes]:
        path = _clean_str(splat_path)
        if path is None:
            return None
        return read_splat_bytes(path)
