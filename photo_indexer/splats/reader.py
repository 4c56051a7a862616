import os
import stat
import logging
from pathlib import Path
from typing import Optional, Union

from .. import config


def read_splat_bytes(splat_path: Union[str, Path],
                     max_bytes: int = config.MAX_SPLAT_FILE_BYTES) -> Optional[bytes]:
    """
    Returns the raw content of a splat file for an external renderer.

    Rejects (returns None) anything without a splat extension, anything that
    is not a regular file, files above max_bytes, and any I/O failure.
    The bytes are not interpreted.
    """
    raw = os.fspath(splat_path).strip()
    if not raw:
        return None

    path = Path(os.path.abspath(raw))
    if path.suffix.lower() not in config.SPLAT_EXTENSIONS:
        logging.debug(f"Rejected splat read for {path}: extension not allowed")
        return None

    try:
        st = path.stat()
        if not stat.S_ISREG(st.st_mode) or st.st_size > max_bytes:
            logging.debug(f"Rejected splat read for {path}: not a file or {st.st_size} bytes")
            return None
        return path.read_bytes()
    except OSError as e:
        logging.debug(f"Cannot read splat {path}: {e}")
        return None
