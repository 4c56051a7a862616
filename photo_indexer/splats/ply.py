"""
Restricted PLY header reader.

Only the header is interpreted: format, elements, and the typed property
layout of each element. Vertex data itself is handed on untouched.
"""
from typing import List, Optional, Tuple

from ..exceptions import PlyHeaderError
from ..models import PlyHeader, PlyElement, PlyProperty

FORMATS = {'ascii', 'binary_little_endian', 'binary_big_endian'}

SCALAR_SIZES = {
    'char': 1, 'uchar': 1,
    'short': 2, 'ushort': 2,
    'int': 4, 'uint': 4,
    'float': 4, 'double': 8,
}

# Sized spellings some writers use instead of the classic names
TYPE_ALIASES = {
    'int8': 'char', 'uint8': 'uchar',
    'int16': 'short', 'uint16': 'ushort',
    'int32': 'int', 'uint32': 'uint',
    'float32': 'float', 'float64': 'double',
}

MAX_HEADER_LINES = 4096


def _scalar_type(name: str) -> str:
    normalized = TYPE_ALIASES.get(name, name)
    if normalized not in SCALAR_SIZES:
        raise PlyHeaderError(f"Unknown PLY property type '{name}'")
    return normalized


def _iter_header_lines(data: bytes):
    """Yields (line, end_offset) until end_header; raises if it never appears."""
    offset = 0
    for _ in range(MAX_HEADER_LINES):
        nl = data.find(b"\n", offset)
        if nl == -1:
            break
        line = data[offset:nl].decode('ascii', errors='replace').strip()
        offset = nl + 1
        yield line, offset
        if line == 'end_header':
            return
    raise PlyHeaderError("PLY header is not terminated by end_header within the data read")


def parse_ply_header(data: bytes) -> PlyHeader:
    lines = _iter_header_lines(data)

    first, _ = next(lines, ('', 0))
    if first != 'ply':
        raise PlyHeaderError("Missing 'ply' magic line")

    fmt: Optional[Tuple[str, str]] = None
    elements: List[Tuple[str, int, List[PlyProperty]]] = []
    header_size = 0

    for line, end in lines:
        parts = line.split()
        if not parts:
            continue
        keyword = parts[0]

        if keyword in ('comment', 'obj_info'):
            continue

        if keyword == 'format':
            if len(parts) != 3 or parts[1] not in FORMATS:
                raise PlyHeaderError(f"Bad format line: {line!r}")
            fmt = (parts[1], parts[2])

        elif keyword == 'element':
            if len(parts) != 3:
                raise PlyHeaderError(f"Bad element line: {line!r}")
            try:
                count = int(parts[2])
            except ValueError:
                raise PlyHeaderError(f"Bad element count: {line!r}") from None
            if count < 0:
                raise PlyHeaderError(f"Negative element count: {line!r}")
            elements.append((parts[1], count, []))

        elif keyword == 'property':
            if not elements:
                raise PlyHeaderError(f"Property before any element: {line!r}")
            props = elements[-1][2]
            if len(parts) == 5 and parts[1] == 'list':
                props.append(PlyProperty(name=parts[4],
                                         type=_scalar_type(parts[3]),
                                         count_type=_scalar_type(parts[2])))
            elif len(parts) == 3:
                props.append(PlyProperty(name=parts[2], type=_scalar_type(parts[1])))
            else:
                raise PlyHeaderError(f"Bad property line: {line!r}")

        elif keyword == 'end_header':
            header_size = end

        else:
            raise PlyHeaderError(f"Unexpected header keyword '{keyword}'")

    if fmt is None:
        raise PlyHeaderError("PLY header has no format line")

    frozen = [PlyElement(name=n, count=c, properties=list(p)) for n, c, p in elements]
    return PlyHeader(
        format=fmt[0],
        version=fmt[1],
        elements=frozen,
        header_size=header_size,
        vertex_stride=_vertex_stride(fmt[0], frozen),
    )


def _vertex_stride(fmt: str, elements: List[PlyElement]) -> Optional[int]:
    """Fixed record size of a binary vertex element; None if it varies or is ascii."""
    if fmt == 'ascii':
        return None
    for element in elements:
        if element.name != 'vertex':
            continue
        if not element.properties or any(p.is_list for p in element.properties):
            return None
        return sum(SCALAR_SIZES[p.type] for p in element.properties)
    return None
