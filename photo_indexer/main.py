import sys
import json
import logging
import argparse
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from . import config
from .core import PhotoIndexerApp
from .scanning.filesystem import DirectoryScanner


def setup_logging(verbose: bool, log_file: Optional[Path] = None):
    """Logs go to stderr (stdout carries JSON) and optionally to a file."""
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
    )

    # Silence chatty libraries
    logging.getLogger("exifread").setLevel(logging.ERROR)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Photo Indexer: previews, capture metadata and splat lookup")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    p.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file")

    sub = p.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Index images under a folder")
    scan.add_argument("folder", help="Album folder to scan")
    scan.add_argument("--metadata-dir", default=None, help="Snapshot folder (default: FOLDER/metadata)")
    scan.add_argument("--workers", type=int, default=config.DEFAULT_WORKERS, help="Parallel workers per directory")
    scan.add_argument("--include-previews", action="store_true", help="Include data: URI previews in the output")
    scan.add_argument("--no-progress", action="store_true", help="Hide the progress bar")

    splat = sub.add_parser("splat", help="Resolve the splat file of an image")
    splat.add_argument("album", help="Album folder")
    splat.add_argument("image", help="Image file name")

    splat_bytes = sub.add_parser("splat-bytes", help="Copy a validated splat file")
    splat_bytes.add_argument("path", help="Splat file (.spz / .ply)")
    splat_bytes.add_argument("--out", type=Path, required=True, help="Destination file")

    return p.parse_args(argv)


def _emit(payload):
    json.dump(payload, sys.stdout, indent=2, ensure_ascii=True)
    sys.stdout.write("\n")


def run_scan(args) -> int:
    app = PhotoIndexerApp(scanner=DirectoryScanner(max_workers=args.workers))

    with tqdm(desc="Indexing", unit="img", file=sys.stderr, disable=args.no_progress) as bar:
        images = app.list_images(args.folder, args.metadata_dir, progress=lambda _rec: bar.update(1))

    _emit([img.to_dict(include_preview=args.include_previews) for img in images])
    return 0


def run_splat(args) -> int:
    splat = PhotoIndexerApp().get_image_splat(args.album, args.image)
    _emit(splat.to_dict() if splat else None)
    return 0 if splat else 1


def run_splat_bytes(args) -> int:
    data = PhotoIndexerApp().get_splat_bytes(args.path)
    if data is None:
        logging.error(f"Splat file rejected or unreadable: {args.path}")
        return 1

    args.out.parent.mkdir(parents=True, exist_ok=True)
    args.out.write_bytes(data)
    logging.info(f"Wrote {len(data)} bytes to {args.out}")
    return 0


COMMANDS = {
    "scan": run_scan,
    "splat": run_splat,
    "splat-bytes": run_splat_bytes,
}


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    try:
        sys.exit(COMMANDS[args.command](args))
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        sys.exit(1)
    except Exception:
        logging.exception(f"Fatal error during '{args.command}'.")
        sys.exit(1)


if __name__ == "__main__":
    main()
