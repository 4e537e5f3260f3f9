"""
tmxcon - Tiled TMX to engine tilemap content importer

Reads TMX maps (tilesets, base64/csv tile layers, property tables) into
engine-independent TilemapContent records and writes them out as JSON content
files for the game build.
"""

__version__ = "0.1.0"

from .constants import CellOrder, DEFAULT_CELL_ORDER
from .content import (
    Cell,
    FlipFlags,
    Layer,
    Rect,
    Tile,
    TilemapContent,
    TilesetInfo,
)
from .errors import (
    TmxImportError,
    TmxFormatError,
    TmxNotImplementedError,
    MalformedPropertyError,
)
from .importer import TmxImporter


def import_tmx(filename, **kwargs) -> TilemapContent:
    """Import a TMX file with a default-configured TmxImporter."""
    return TmxImporter(**kwargs).import_file(filename)
