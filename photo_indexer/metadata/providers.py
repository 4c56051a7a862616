import re
import sys
import json
import shutil
import subprocess
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Optional, List, Any

import exifread

from .. import config
from ..exceptions import MetadataExtractionError


@dataclass(frozen=True)
class RawMetadata:
    """Uninterpreted strings as a provider reported them."""
    created: Optional[str] = None
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    country: Optional[str] = None

    def merged_with(self, other: "RawMetadata") -> "RawMetadata":
        """Fills only the fields still missing here; existing values win."""
        updates = {}
        for f in fields(self):
            if getattr(self, f.name) is None and getattr(other, f.name) is not None:
                updates[f.name] = getattr(other, f.name)
        return replace(self, **updates) if updates else self

    @property
    def is_complete(self) -> bool:
        return all(getattr(self, f.name) is not None for f in fields(self))


class MetadataProvider:
    """
    A best-effort source of capture metadata.
    Implementations raise MetadataExtractionError (or let tool errors escape);
    the extractor treats any exception as "no data".
    """
    name = "base"

    @property
    def available(self) -> bool:
        return True

    def query(self, path: Path) -> RawMetadata:
        raise NotImplementedError


class NullMetadataProvider(MetadataProvider):
    """Stand-in for platforms without a metadata query."""
    name = "null"

    @property
    def available(self) -> bool:
        return False

    def query(self, path: Path) -> RawMetadata:
        return RawMetadata()


def parse_mdls_value(output: str, key: str) -> Optional[str]:
    """
    Pulls one `key = value` pair out of mdls output.
    '(null)' and empty values are treated as absent; quotes are stripped.
    """
    match = re.search(rf'{re.escape(key)}\s*=\s*(.*)', output)
    if not match:
        return None

    value = match.group(1).strip()
    if value == '(null)' or not value:
        return None

    unquoted = re.fullmatch(r'"(.*)"', value)
    return unquoted.group(1) if unquoted else value


class MdlsMetadataProvider(MetadataProvider):
    """
    Wraps the macOS Spotlight 'mdls' utility.
    """
    name = "mdls"

    KEYS = [
        config.MDLS_CREATION_DATE,
        config.MDLS_LATITUDE,
        config.MDLS_LONGITUDE,
        config.MDLS_COUNTRY,
    ]

    @property
    def available(self) -> bool:
        return sys.platform == 'darwin'

    def query(self, path: Path) -> RawMetadata:
        cmd = ["mdls"]
        for key in self.KEYS:
            cmd += ["-name", key]
        cmd.append(str(path))

        try:
            out = subprocess.check_output(cmd, stderr=subprocess.DEVNULL, text=True)
        except (OSError, subprocess.CalledProcessError) as e:
            raise MetadataExtractionError(f"mdls failed for {path}: {e}") from e

        return RawMetadata(
            created=parse_mdls_value(out, config.MDLS_CREATION_DATE),
            latitude=parse_mdls_value(out, config.MDLS_LATITUDE),
            longitude=parse_mdls_value(out, config.MDLS_LONGITUDE),
            country=parse_mdls_value(out, config.MDLS_COUNTRY),
        )


class ExifReadMetadataProvider(MetadataProvider):
    """
    Reads embedded EXIF with 'exifread' (fast, Python-native).
    Covers capture date and GPS position; EXIF carries no country.
    """
    name = "exifread"

    def query(self, path: Path) -> RawMetadata:
        with path.open('rb') as f:
            # details=False speeds up processing significantly
            tags = exifread.process_file(f, details=False)

        if not tags:
            return RawMetadata()

        created = None
        for tag in config.DATE_TAGS:
            if tag in tags:
                value = str(tags[tag]).strip()
                if value:
                    created = value
                    break

        return RawMetadata(
            created=created,
            latitude=self._gps_coordinate(tags, 'GPS GPSLatitude', 'GPS GPSLatitudeRef', 'S'),
            longitude=self._gps_coordinate(tags, 'GPS GPSLongitude', 'GPS GPSLongitudeRef', 'W'),
        )

    def _gps_coordinate(self, tags: dict, value_tag: str, ref_tag: str, negative_ref: str) -> Optional[str]:
        """Converts degrees/minutes/seconds rationals to a signed decimal string."""
        tag = tags.get(value_tag)
        if tag is None:
            return None

        values = list(getattr(tag, 'values', []) or [])
        if not values:
            return None

        degrees = 0.0
        for i, part in enumerate(values[:3]):
            degrees += self._ratio_to_float(part) / (60 ** i)

        ref = str(tags.get(ref_tag, '')).strip().upper()
        if ref.startswith(negative_ref):
            degrees = -degrees
        return repr(degrees)

    def _ratio_to_float(self, value: Any) -> float:
        num = getattr(value, 'num', None)
        den = getattr(value, 'den', None)
        if num is None or den is None:
            return float(value)
        if not den:
            return float('nan')
        return float(num) / float(den)


class ExifToolMetadataProvider(MetadataProvider):
    """
    Wraps the 'exiftool' command line utility.
    Must be installed and on the system PATH.
    """
    name = "exiftool"

    DATE_FIELDS = ["DateTimeOriginal", "CreateDate"]
    COUNTRY_FIELDS = ["Country", "Country-PrimaryLocationName"]

    @property
    def available(self) -> bool:
        return shutil.which("exiftool") is not None

    def query(self, path: Path) -> RawMetadata:
        # -j = JSON output
        # -n = No formatting (signed decimal coordinates)
        cmd = ["exiftool", "-j", "-n"]
        cmd += [f"-{tag}" for tag in self.DATE_FIELDS + ["GPSLatitude", "GPSLongitude"] + self.COUNTRY_FIELDS]
        cmd.append(str(path))

        try:
            out = subprocess.check_output(cmd, stderr=subprocess.DEVNULL, text=True)
            data_list = json.loads(out)
        except (OSError, subprocess.CalledProcessError, ValueError) as e:
            raise MetadataExtractionError(f"exiftool failed for {path}: {e}") from e

        if not data_list:
            return RawMetadata()

        tags = data_list[0]
        return RawMetadata(
            created=self._first(tags, self.DATE_FIELDS),
            latitude=self._first(tags, ["GPSLatitude"]),
            longitude=self._first(tags, ["GPSLongitude"]),
            country=self._first(tags, self.COUNTRY_FIELDS),
        )

    def _first(self, tags: dict, names: List[str]) -> Optional[str]:
        for name in names:
            value = tags.get(name)
            if value is not None and str(value).strip():
                return str(value).strip()
        return None


def default_providers() -> List[MetadataProvider]:
    """Platform query first, then embedded EXIF, then exiftool if installed."""
    candidates: List[MetadataProvider] = [
        MdlsMetadataProvider(),
        ExifReadMetadataProvider(),
        ExifToolMetadataProvider(),
    ]
    return [p for p in candidates if p.available]
