import os
import json
import logging
import tempfile
from pathlib import Path
from datetime import datetime, UTC
from typing import Iterable, Dict, Any, Union

from .. import config
from ..exceptions import SnapshotError
from ..models import MediaRecord
from .extract import to_iso_timestamp


class MetadataPersister:
    """
    Writes the scan result to '<folder>/images.json' as a wholesale snapshot.
    Persistence is auxiliary output: failures are logged, never raised.
    """

    def __init__(self, filename: str = config.METADATA_FILENAME):
        self.filename = filename

    def persist(self, records: Iterable[MediaRecord], folder: Union[str, Path]) -> bool:
        folder = Path(folder)
        try:
            path = self.write_snapshot(records, folder)
        except SnapshotError as e:
            logging.warning(f"Unable to save image metadata to {folder}: {e}")
            return False

        logging.info(f"Saved image metadata to {path}")
        return True

    def write_snapshot(self, records: Iterable[MediaRecord], folder: Path) -> Path:
        """
        Overwrites any prior snapshot. Raises SnapshotError on failure.
        Written through a temp file and os.replace, so a failed write leaves
        the previous snapshot intact.
        """
        payload = self.build_snapshot(records)
        target = folder / self.filename
        tmp_name = None
        try:
            # ASCII escapes keep undecodable (surrogate-escaped) file names serializable
            text = json.dumps(payload, indent=2, ensure_ascii=True)
            folder.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=folder, prefix=f".{self.filename}.", suffix=".part")
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(text)
            os.replace(tmp_name, target)
        except (OSError, ValueError) as e:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logging.debug(f"Could not remove partial snapshot {tmp_name}")
            raise SnapshotError(str(e)) from e
        return target

    def build_snapshot(self, records: Iterable[MediaRecord]) -> Dict[str, Any]:
        items = [r.to_persisted_dict() for r in records]
        return {
            'generatedAt': to_iso_timestamp(datetime.now(UTC)),
            'total': len(items),
            'items': items,
        }


def load_snapshot(path: Union[str, Path]) -> Dict[str, Any]:
    """Reads a snapshot back. Raises SnapshotError if missing or malformed."""
    path = Path(path)
    if path.is_dir():
        path = path / config.METADATA_FILENAME

    try:
        data = json.loads(path.read_text(encoding='utf-8'))
    except (OSError, ValueError) as e:
        raise SnapshotError(f"Cannot read snapshot {path}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get('items'), list):
        raise SnapshotError(f"Snapshot {path} has no item list")
    return data
