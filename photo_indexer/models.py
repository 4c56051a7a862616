from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List, Dict, Any


@dataclass(frozen=True)
class ImageMetadata:
    """Capture details derived for one file. Every field is best-effort."""
    captured_at: Optional[str] = None    # ISO-8601, or the raw string if unparseable
    location: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


@dataclass(frozen=True)
class MediaRecord:
    """
    Represents an image accepted during a scan.
    """
    name: str
    path: Path
    url: str                # Preview reference (data: URI)
    ext: str

    captured_at: Optional[str] = None
    location: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    def to_dict(self, include_preview: bool = True) -> Dict[str, Any]:
        data = self.to_persisted_dict()
        if include_preview:
            data['url'] = self.url
        return data

    def to_persisted_dict(self) -> Dict[str, Any]:
        """Snapshot form: the preview is regenerable, so it is left out."""
        return {
            'name': self.name,
            'path': str(self.path),
            'ext': self.ext,
            'capturedAt': self.captured_at,
            'location': self.location,
            'country': self.country,
            'latitude': self.latitude,
            'longitude': self.longitude,
        }


@dataclass(frozen=True)
class PlyProperty:
    name: str
    type: str                           # Normalized scalar type, e.g. 'float', 'uchar'
    count_type: Optional[str] = None    # Set for list properties only

    @property
    def is_list(self) -> bool:
        return self.count_type is not None


@dataclass(frozen=True)
class PlyElement:
    name: str
    count: int
    properties: List[PlyProperty] = field(default_factory=list)


@dataclass(frozen=True)
class PlyHeader:
    format: str             # ascii / binary_little_endian / binary_big_endian
    version: str
    elements: List[PlyElement]
    header_size: int        # Bytes up to and including the end_header line
    vertex_stride: Optional[int] = None

    @property
    def is_binary(self) -> bool:
        return self.format.startswith('binary_')

    @property
    def vertex(self) -> Optional[PlyElement]:
        for element in self.elements:
            if element.name == 'vertex':
                return element
        return None

    @property
    def vertex_count(self) -> int:
        vertex = self.vertex
        return vertex.count if vertex else 0

    @property
    def expected_body_size(self) -> Optional[int]:
        """Bytes of vertex data that should follow the header, if knowable."""
        if self.vertex_stride is None:
            return None
        return self.vertex_stride * self.vertex_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            'format': self.format,
            'version': self.version,
            'vertexCount': self.vertex_count,
            'vertexStride': self.vertex_stride,
            'headerSize': self.header_size,
            'elements': [
                {
                    'name': el.name,
                    'count': el.count,
                    'properties': [p.name for p in el.properties],
                }
                for el in self.elements
            ],
        }


@dataclass(frozen=True)
class SplatRecord:
    """
    A companion 3D-scan file resolved for one image.
    """
    name: str
    path: Path
    url: str                            # file:// URI
    preview_text: Optional[str]
    is_binary: bool
    layout: Optional[PlyHeader] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'path': str(self.path),
            'url': self.url,
            'previewText': self.preview_text,
            'isBinary': self.is_binary,
            'layout': self.layout.to_dict() if self.layout else None,
        }
