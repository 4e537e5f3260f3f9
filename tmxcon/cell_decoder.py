"""
Layer cell decoder - turns a layer's <data> payload into cells.

Each cell is a 32-bit unsigned value:
- Bit 31: flipped horizontally
- Bit 30: flipped vertically
- Bit 29: flipped diagonally (stored as both flips)
- Bits 0-28: global tile id, 0 meaning "no tile"

Payloads are either base64 (little-endian u32 per cell) or csv. Compressed
payloads are refused.
"""

import base64
import binascii
import struct
from typing import List, Optional, Tuple
from .constants import (
    FLIPPED_HORIZONTALLY_FLAG,
    FLIPPED_VERTICALLY_FLAG,
    FLIPPED_DIAGONALLY_FLAG,
    TILE_ID_MASK,
    MAX_CELL_VALUE,
    EMPTY_GID,
    BYTES_PER_CELL,
    ENCODING_BASE64,
    ENCODING_CSV,
)
from .content import Cell, FlipFlags, EMPTY_CELL
from .errors import TmxFormatError, TmxNotImplementedError


def decode_gid(value: int) -> Tuple[int, FlipFlags]:
    """
    Split a raw cell value into its tile id and flip flags.

    Args:
        value: Unsigned 32-bit cell value

    Returns:
        Tuple of (raw_tile_id, flags) with the flag bits cleared from the id
    """
    flags = FlipFlags.NONE
    if value & FLIPPED_HORIZONTALLY_FLAG:
        flags |= FlipFlags.HORIZONTAL
    if value & FLIPPED_VERTICALLY_FLAG:
        flags |= FlipFlags.VERTICAL
    if value & FLIPPED_DIAGONALLY_FLAG:
        flags |= FlipFlags.HORIZONTAL | FlipFlags.VERTICAL

    return value & TILE_ID_MASK, flags


def encode_gid(tile_id: int, flags: FlipFlags = FlipFlags.NONE) -> int:
    """
    Pack a raw tile id and flip flags into a cell value.

    Both flips are written as the horizontal and vertical bits; the diagonal
    bit is never produced.
    """
    if tile_id < 0 or tile_id > TILE_ID_MASK:
        raise ValueError(f"Tile id out of range: {tile_id}")

    value = tile_id
    if flags & FlipFlags.HORIZONTAL:
        value |= FLIPPED_HORIZONTALLY_FLAG
    if flags & FlipFlags.VERTICAL:
        value |= FLIPPED_VERTICALLY_FLAG
    return value


def cell_from_value(value: int) -> Cell:
    """Convert a raw cell value into a Cell (1-based tile id -> 0-based table index)."""
    raw_id, flags = decode_gid(value)
    if raw_id == EMPTY_GID:
        return EMPTY_CELL if flags == FlipFlags.NONE else Cell(None, flags)
    return Cell(raw_id - 1, flags)


def parse_base64_values(payload: str, count: int) -> List[int]:
    """
    Decode a base64 payload into exactly count little-endian u32 values.

    Raises:
        TmxFormatError: If the payload is not valid base64 or has the wrong size
    """
    text = "".join(payload.split())
    try:
        data = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise TmxFormatError(f"Invalid base64 layer data: {e}") from e

    expected = count * BYTES_PER_CELL
    if len(data) != expected:
        raise TmxFormatError(
            f"Expected {expected} bytes of layer data ({count} cells), got {len(data)}"
        )

    return list(struct.unpack(f'<{count}I', data))


def parse_csv_values(payload: str, count: int) -> List[int]:
    """
    Parse a csv payload into exactly count unsigned values.

    Tiled writes one row per line with a comma after every row but the last;
    surrounding whitespace and one trailing comma are tolerated.

    Raises:
        TmxFormatError: If an entry is not an unsigned 32-bit integer or the count is wrong
    """
    entries = [entry.strip() for entry in payload.strip().split(',')]
    if entries and entries[-1] == "" and len(entries) > 1:
        entries.pop()
    if entries == [""]:
        entries = []

    if len(entries) != count:
        raise TmxFormatError(f"Expected {count} csv entries in layer data, got {len(entries)}")

    values = []
    for position, entry in enumerate(entries):
        if not (entry.isascii() and entry.isdigit()):
            raise TmxFormatError(f"Invalid csv entry #{position} in layer data: {entry!r}")
        value = int(entry)
        if value > MAX_CELL_VALUE:
            raise TmxFormatError(f"csv entry #{position} does not fit in 32 bits: {value}")
        values.append(value)

    return values


def decode_cells(
    payload: str,
    width: int,
    height: int,
    encoding: Optional[str],
    compression: Optional[str] = None
) -> List[Cell]:
    """
    Decode a layer's <data> payload.

    Cells are returned in stream order. How the stream lies over the grid is
    the layer's CellOrder (column-major by default: "for each x, for each y");
    Layer.cell_at() applies it.

    Args:
        payload: Text content of the <data> element
        width: Layer width in tiles
        height: Layer height in tiles
        encoding: Value of the encoding attribute (None when absent)
        compression: Value of the compression attribute (None when absent)

    Returns:
        List of exactly width * height cells

    Raises:
        TmxNotImplementedError: If the data is compressed or the encoding is unsupported
        TmxFormatError: If the payload does not hold width * height valid values
    """
    if compression is not None:
        raise TmxNotImplementedError(
            f"Processing of compressed layer data is not currently implemented (compression={compression!r})"
        )

    count = width * height
    if encoding == ENCODING_BASE64:
        values = parse_base64_values(payload, count)
    elif encoding == ENCODING_CSV:
        values = parse_csv_values(payload, count)
    else:
        raise TmxNotImplementedError(f"Unknown encoding in layer data: {encoding!r}")

    return [cell_from_value(value) for value in values]
