"""
Configuration constants for the photo indexer.
"""

# --- File Type Definitions ---
IMAGE_EXTS = {'jpg', 'jpeg', 'png', 'gif', 'webp', 'bmp', 'tiff', 'tif', 'avif', 'heic', 'heif'}

# Formats the display layer cannot embed directly; they go through a transcoder.
TRANSCODE_EXTS = {'heic', 'heif'}

# Extension to MIME Mapping
# Used when the raw file bytes are embedded as-is
IMAGE_MIME_BY_EXT = {
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'gif': 'image/gif',
    'webp': 'image/webp',
    'bmp': 'image/bmp',
    'tiff': 'image/tiff',
    'tif': 'image/tiff',
    'avif': 'image/avif',
}

# --- Scanning ---
MAX_IMAGE_RESULTS = 320
MAX_SCAN_DEPTH = 6
DEFAULT_WORKERS = 3

# --- Previews ---
MAX_PREVIEW_WIDTH = 960
PREVIEW_CACHE_FOLDER = "photo-indexer-previews"

# --- Metadata Parsing ---
DATE_TAGS = [
    'EXIF DateTimeOriginal',
    'EXIF DateTimeDigitized',
    'Image DateTime',
]

# Spotlight attribute names queried on macOS
MDLS_CREATION_DATE = 'kMDItemContentCreationDate'
MDLS_LATITUDE = 'kMDItemLatitude'
MDLS_LONGITUDE = 'kMDItemLongitude'
MDLS_COUNTRY = 'kMDItemCountry'

# --- Metadata Snapshot ---
METADATA_FOLDER_NAME = "metadata"
METADATA_FILENAME = "images.json"

# --- Splats ---
SPLAT_FOLDER_NAME = "splats"
SPLAT_EXTENSIONS = ('.spz', '.ply')  # Priority order
SPLAT_PREVIEW_BYTES = 96 * 1024  # 96 KB
SPLAT_PREVIEW_LINES = 36
MAX_SPLAT_FILE_BYTES = 512 * 1024 * 1024  # 512 MB
