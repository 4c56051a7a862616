import os
import re
import logging
import unicodedata
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple, Union
from concurrent.futures import Executor, ThreadPoolExecutor

from .. import config
from ..models import MediaRecord
from ..metadata.extract import MetadataExtractor
from ..preview.generator import PreviewGenerator
from .classify import ImageKind, classify

ProgressCallback = Callable[[MediaRecord], None]

_DIGIT_RUN = re.compile(r'(\d+)')


def natural_sort_key(value: str):
    """
    Numeric-aware, case- and accent-insensitive sort key ("img2" < "img10").
    The raw value is appended so distinct strings never compare equal.
    """
    decomposed = unicodedata.normalize('NFKD', value)
    folded = ''.join(c for c in decomposed if not unicodedata.combining(c)).casefold()

    parts = []
    for chunk in _DIGIT_RUN.split(folded):
        if not chunk:
            continue
        if chunk.isdecimal():
            parts.append((0, int(chunk), chunk))
        else:
            parts.append((1, 0, chunk))
    return parts, value


@dataclass
class ScanBudget:
    """Result accumulator shared across the whole walk."""
    limit: int
    records: List[MediaRecord] = field(default_factory=list)

    @property
    def remaining(self) -> int:
        return max(0, self.limit - len(self.records))

    @property
    def exhausted(self) -> bool:
        return self.remaining == 0

    def accept(self, record: MediaRecord) -> bool:
        if self.exhausted:
            return False
        self.records.append(record)
        return True


class DirectoryScanner:
    def __init__(self,
                 previews: Optional[PreviewGenerator] = None,
                 metadata: Optional[MetadataExtractor] = None,
                 max_results: int = config.MAX_IMAGE_RESULTS,
                 max_depth: int = config.MAX_SCAN_DEPTH,
                 max_workers: int = config.DEFAULT_WORKERS):
        self.previews = previews or PreviewGenerator()
        self.metadata = metadata or MetadataExtractor()
        self.max_results = max_results
        self.max_depth = max_depth
        self.max_workers = max_workers

    def scan(self, root: Union[str, Path], progress: Optional[ProgressCallback] = None) -> List[MediaRecord]:
        """
        Walks root and returns at most max_results records sorted by path.

        Strategy:
          - Directories are visited depth-first in listing order from an explicit stack.
          - Files of one directory are processed in waves no larger than the
            remaining budget; each wave runs on the thread pool.
          - Nothing below max_depth is listed, and the walk stops as soon as
            the shared budget is exhausted.

        Args:
            progress: Called once for every accepted record.
        """
        root = Path(os.path.abspath(root))
        budget = ScanBudget(self.max_results)

        logging.info(f"Scanning {root} (limit={self.max_results}, depth={self.max_depth})")

        if self.max_workers <= 1:
            self._walk(root, budget, None, progress)
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                self._walk(root, budget, executor, progress)

        records = budget.records[:self.max_results]
        records.sort(key=lambda r: natural_sort_key(str(r.path)))

        logging.info(f"Scan complete. Indexed {len(records)} images under {root}.")
        return records

    def _walk(self,
              root: Path,
              budget: ScanBudget,
              executor: Optional[Executor],
              progress: Optional[ProgressCallback]):
        stack: List[Tuple[Path, int]] = [(root, 0)]

        while stack and not budget.exhausted:
            current, depth = stack.pop()
            files, dirs = self._list_directory(current)

            self._collect_files(files, budget, executor, progress)

            if depth >= self.max_depth or budget.exhausted:
                continue

            # Push dirs reversed so they pop in listing order
            for d in reversed(dirs):
                stack.append((d, depth + 1))

    def _list_directory(self, directory: Path) -> Tuple[List[Path], List[Path]]:
        """Returns (files, subdirectories); an unreadable directory is empty."""
        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except OSError as e:
            logging.debug(f"Cannot list {directory}: {e}")
            return [], []

        # Sort for stable traversal order
        entries.sort(key=lambda e: e.name.lower())

        files = []
        dirs = []
        for e in entries:
            try:
                if e.is_dir(follow_symlinks=False):
                    dirs.append(Path(e.path))
                elif e.is_file(follow_symlinks=False):
                    files.append(Path(e.path))
            except OSError:
                continue
        return files, dirs

    def _collect_files(self,
                       files: List[Path],
                       budget: ScanBudget,
                       executor: Optional[Executor],
                       progress: Optional[ProgressCallback]):
        candidates = []
        for path in files:
            kind = classify(path)
            if kind is not None:
                candidates.append((path, kind))

        pos = 0
        while pos < len(candidates) and not budget.exhausted:
            wave = candidates[pos:pos + budget.remaining]
            pos += len(wave)

            for record in self._process_wave(wave, executor):
                if record is not None and budget.accept(record) and progress:
                    progress(record)

    def _process_wave(self,
                      wave: List[Tuple[Path, ImageKind]],
                      executor: Optional[Executor]) -> Iterable[Optional[MediaRecord]]:
        if executor is None:
            return [self._process_single_file(p, k) for p, k in wave]

        paths = [p for p, _ in wave]
        kinds = [k for _, k in wave]
        # map() keeps listing order regardless of completion order
        return list(executor.map(self._process_single_file, paths, kinds))

    def _process_single_file(self, path: Path, kind: ImageKind) -> Optional[MediaRecord]:
        """Builds a MediaRecord, or None if no preview could be produced."""
        try:
            url = self.previews.render(path, kind.ext)
            if not url:
                logging.debug(f"No preview for {path}; skipping.")
                return None

            meta = self.metadata.extract(path)

            return MediaRecord(
                name=path.name,
                path=path,
                url=url,
                ext=kind.ext,
                captured_at=meta.captured_at,
                location=meta.location,
                country=meta.country,
                latitude=meta.latitude,
                longitude=meta.longitude,
            )
        except Exception as e:
            logging.error(f"Failed to scan {path}: {e}")
            return None
