"""
Constants for the TMX (Tiled Map XML) format.

Bit layouts, supported encodings and the cell iteration order live here so the
decoder, importer and tests all agree on them.
"""

from enum import Enum

# Root element tag of a TMX document
MAP_TAG = "map"

# Only orthogonal (rectangular grid) maps are supported
SUPPORTED_ORIENTATION = "orthogonal"

# Flip flags packed into the high bits of every 32-bit cell value
FLIPPED_HORIZONTALLY_FLAG = 0x80000000
FLIPPED_VERTICALLY_FLAG = 0x40000000
FLIPPED_DIAGONALLY_FLAG = 0x20000000
FLIP_FLAGS_MASK = (
    FLIPPED_HORIZONTALLY_FLAG |
    FLIPPED_VERTICALLY_FLAG |
    FLIPPED_DIAGONALLY_FLAG
)
TILE_ID_MASK = 0xFFFFFFFF & ~FLIP_FLAGS_MASK

# Largest value a cell can hold (unsigned 32-bit)
MAX_CELL_VALUE = 0xFFFFFFFF

# Raw cell value meaning "no tile here"
EMPTY_GID = 0

# Bytes per cell in base64 payloads (little-endian u32)
BYTES_PER_CELL = 4

# Layer data encodings
ENCODING_BASE64 = "base64"
ENCODING_CSV = "csv"


class CellOrder(Enum):
    """Order in which a layer's cell stream is laid over its grid."""
    COLUMN_MAJOR = "column-major"  # for x in width: for y in height
    ROW_MAJOR = "row-major"        # for y in height: for x in width


# Maps built for the scrolling shooter store their cells column by column
DEFAULT_CELL_ORDER = CellOrder.COLUMN_MAJOR
