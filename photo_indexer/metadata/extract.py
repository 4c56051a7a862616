import os
import math
import logging
from pathlib import Path
from datetime import datetime, UTC
from typing import Optional, Tuple, Iterable, Union

from ..models import ImageMetadata
from .geo import infer_country
from .providers import MetadataProvider, RawMetadata, default_providers

# Formats tried after ISO parsing fails (mdls, EXIF, exiftool quirks)
_DATE_FORMATS = [
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S",
]


def to_iso_timestamp(dt: datetime) -> str:
    """ISO-8601; aware datetimes are normalized to UTC with a 'Z' suffix."""
    if dt.tzinfo is None:
        return dt.isoformat()
    return dt.astimezone(UTC).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class MetadataExtractor:
    """
    Derives capture time and location for one file.

    Strategy:
      - Providers (mdls -> exifread -> exiftool) are asked in order; per field
        the first value reported wins. A failing provider counts as "no data".
      - Coordinates become a "lat, lon" label, replaced by the country name
        when one is known or can be inferred offline.
      - Capture time falls back to the file's birth time, then its mtime.

    Never raises; every field defaults to None.
    """

    def __init__(self, providers: Optional[Iterable[MetadataProvider]] = None):
        self.providers = list(providers) if providers is not None else default_providers()

    def extract(self, path: Union[str, Path]) -> ImageMetadata:
        path = Path(path)
        raw = self._query_providers(path)

        captured_at = None
        if raw.created:
            # Unparseable dates are kept verbatim; they are usually human-readable already
            parsed = self._parse_flexible_date(raw.created)
            captured_at = to_iso_timestamp(parsed) if parsed else raw.created

        latitude = None
        longitude = None
        location = None
        coords = self._parse_coordinates(raw.latitude, raw.longitude)
        if coords:
            latitude, longitude = coords
            location = f"{latitude:.6f}, {longitude:.6f}"

        country = raw.country
        if not country and coords:
            country = infer_country(latitude, longitude)

        if country:
            location = country

        if not captured_at:
            captured_at = self._file_timestamp(path)

        return ImageMetadata(
            captured_at=captured_at,
            location=location,
            country=country,
            latitude=latitude,
            longitude=longitude,
        )

    # --- Internal Helpers ---

    def _query_providers(self, path: Path) -> RawMetadata:
        merged = RawMetadata()
        for provider in self.providers:
            if merged.is_complete:
                break
            try:
                merged = merged.merged_with(provider.query(path))
            except Exception as e:
                # Only log at debug level to avoid spamming console if a tool is missing
                logging.debug(f"{provider.name} metadata failed for {path}: {e}")
        return merged

    def _parse_coordinates(self,
                           raw_lat: Optional[str],
                           raw_lon: Optional[str]) -> Optional[Tuple[float, float]]:
        if not raw_lat or not raw_lon:
            return None
        try:
            lat = float(raw_lat)
            lon = float(raw_lon)
        except ValueError:
            return None
        if not (math.isfinite(lat) and math.isfinite(lon)):
            return None
        return lat, lon

    def _file_timestamp(self, path: Path) -> Optional[str]:
        """Birth time when the filesystem reports one, else mtime. None if stat fails."""
        try:
            st = os.stat(path)
        except OSError as e:
            logging.debug(f"Cannot stat {path}: {e}")
            return None

        birth = getattr(st, 'st_birthtime', 0) or 0
        ts = birth if birth > 0 else st.st_mtime
        return to_iso_timestamp(datetime.fromtimestamp(ts, UTC))

    def _parse_flexible_date(self, dt_str: str) -> Optional[datetime]:
        """
        Handles various date formats (ISO, UTC suffixes, mdls offsets, EXIF colons).
        """
        if not dt_str:
            return None

        # Clean up common suffixes/prefixes
        clean = dt_str.replace("UTC", "").strip()

        # 1. Try ISO format (e.g. 2020-01-01T12:00:00+00:00)
        try:
            return datetime.fromisoformat(clean)
        except ValueError:
            pass

        # 2. Try EXIF style "YYYY:MM:DD HH:MM:SS" and offset variants
        clean_exif = clean.replace(":", "-", 2) if clean[4:5] == ":" else clean
        # Handle potential sub-second precision which strptime hates
        if "." in clean_exif:
            head, _, tail = clean_exif.partition(".")
            offset = tail.lstrip("0123456789")
            clean_exif = head + offset

        for fmt in _DATE_FORMATS:
            try:
                return datetime.strptime(clean_exif, fmt)
            except ValueError:
                continue

        return None
