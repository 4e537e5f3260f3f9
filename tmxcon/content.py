"""
Content records produced by the TMX importer.

These are plain, engine-independent data structures. The importer builds each
record once it has all of its parts, and the records are frozen from then on;
the content build step serializes them with to_dict().
"""

from dataclasses import dataclass, field
from enum import IntFlag
from typing import Dict, Optional, Tuple, Any
from .constants import CellOrder, DEFAULT_CELL_ORDER


class FlipFlags(IntFlag):
    """How a tile instance is mirrored when drawn."""
    NONE = 0
    HORIZONTAL = 1
    VERTICAL = 2
    # A diagonal flip is stored as both flips, never as a third value
    BOTH = HORIZONTAL | VERTICAL


@dataclass(frozen=True)
class Rect:
    """Pixel rectangle inside an atlas image."""
    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class Tile:
    """One entry in the global tile table."""
    texture_id: int
    source: Rect


@dataclass(frozen=True)
class Cell:
    """One grid position of a layer."""
    tile: Optional[int] = None  # Index into the global tile table, None when empty
    flags: FlipFlags = FlipFlags.NONE

    @property
    def empty(self) -> bool:
        return self.tile is None


EMPTY_CELL = Cell()


@dataclass(frozen=True)
class Layer:
    """A full-grid plane of cells."""
    name: str
    width: int
    height: int
    properties: Dict[str, str] = field(default_factory=dict)
    cells: Tuple[Cell, ...] = ()
    cell_order: CellOrder = DEFAULT_CELL_ORDER

    def cell_at(self, x: int, y: int) -> Cell:
        """
        Get the cell at grid position (x, y).

        Args:
            x: Column, 0 <= x < width
            y: Row, 0 <= y < height

        Returns:
            The Cell stored for that position

        Raises:
            IndexError: If the position lies outside the layer
        """
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Cell ({x}, {y}) outside layer '{self.name}' ({self.width}x{self.height})")

        if self.cell_order == CellOrder.COLUMN_MAJOR:
            return self.cells[x * self.height + y]
        return self.cells[y * self.width + x]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "width": self.width,
            "height": self.height,
            "cellOrder": self.cell_order.value,
            "properties": dict(self.properties),
            # -1 marks an empty cell in the serialized form
            "tiles": [-1 if cell.tile is None else cell.tile for cell in self.cells],
            "flips": [int(cell.flags) for cell in self.cells],
        }


@dataclass(frozen=True)
class TilesetInfo:
    """Where one tileset's tiles landed in the global tile table."""
    name: str
    first_gid: Optional[int]
    texture_id: int
    first_tile: int
    tile_count: int
    properties: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "firstGid": self.first_gid,
            "textureId": self.texture_id,
            "firstTile": self.first_tile,
            "tileCount": self.tile_count,
            "properties": dict(self.properties),
        }


@dataclass(frozen=True)
class TilemapContent:
    """
    Imported tile map.

    Owns its layers, tile table and property tables outright; nothing in it
    refers back to the importer or the source document.
    """
    name: str
    width: int
    height: int
    tile_width: int
    tile_height: int
    properties: Dict[str, str] = field(default_factory=dict)
    image_paths: Tuple[str, ...] = ()
    tiles: Tuple[Tile, ...] = ()
    tilesets: Tuple[TilesetInfo, ...] = ()
    layers: Tuple[Layer, ...] = ()

    @property
    def tile_count(self) -> int:
        return len(self.tiles)

    @property
    def layer_count(self) -> int:
        return len(self.layers)

    def get_layer(self, name: str) -> Optional[Layer]:
        """Find the first layer with the given name."""
        for layer in self.layers:
            if layer.name == name:
                return layer
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-ready dictionary."""
        return {
            "name": self.name,
            "width": self.width,
            "height": self.height,
            "tileWidth": self.tile_width,
            "tileHeight": self.tile_height,
            "properties": dict(self.properties),
            "imagePaths": list(self.image_paths),
            "tileCount": self.tile_count,
            "tiles": [
                {
                    "textureId": tile.texture_id,
                    "x": tile.source.x,
                    "y": tile.source.y,
                    "width": tile.source.width,
                    "height": tile.source.height,
                }
                for tile in self.tiles
            ],
            "tilesets": [tileset.to_dict() for tileset in self.tilesets],
            "layerCount": self.layer_count,
            "layers": [layer.to_dict() for layer in self.layers],
        }
