"""
Custom exception hierarchy for the photo indexer.

Every error here describes a single item failing (one file, one tool call,
one lookup). Callers that own best-effort semantics catch them, log, and
degrade to a skipped record or a None result.
"""


class PhotoIndexerError(Exception):
    """Base exception for all photo indexer errors."""
    pass


class MetadataExtractionError(PhotoIndexerError):
    """Raised when a metadata provider cannot produce data for a file."""
    pass


class PreviewError(PhotoIndexerError):
    """Raised when a preview cannot be produced for a file."""
    pass


class TranscodeError(PreviewError):
    """Raised when an external image conversion fails."""
    pass


class SnapshotError(PhotoIndexerError):
    """Raised when the metadata snapshot cannot be written or read."""
    pass


class SplatReadError(PhotoIndexerError):
    """Raised when a splat file cannot be read."""
    pass


class PlyHeaderError(PhotoIndexerError):
    """Raised when a PLY header is missing or malformed."""
    pass
