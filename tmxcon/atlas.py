"""
Tile atlas resolver - slices tileset images into tile source rectangles.

Every tileset binds one atlas image to the map's tile size. The atlas is cut
into a grid of tiles, row by row, and the tiles are appended to the map's
global tile table.
"""

from pathlib import Path
from typing import List, Optional, Tuple
from PIL import Image
from .content import Rect, Tile
from .errors import TmxFormatError
from .logging_config import get_logger

logger = get_logger('atlas')


def slice_atlas(
    texture_id: int,
    atlas_width: int,
    atlas_height: int,
    tile_width: int,
    tile_height: int
) -> List[Tile]:
    """
    Cut an atlas into tiles.

    Tiles are produced in row-major order: all of row 0 left-to-right, then
    row 1, and so on. Partial tiles at the right or bottom edge are dropped.

    Args:
        texture_id: Index of the atlas in the map's image path list
        atlas_width: Atlas width in pixels
        atlas_height: Atlas height in pixels
        tile_width: Tile width in pixels
        tile_height: Tile height in pixels

    Returns:
        List of floor(atlas_width / tile_width) * floor(atlas_height / tile_height) tiles

    Raises:
        TmxFormatError: If any dimension is not a positive integer
    """
    for label, value in (
        ("atlas width", atlas_width),
        ("atlas height", atlas_height),
        ("tile width", tile_width),
        ("tile height", tile_height),
    ):
        if not isinstance(value, int) or value <= 0:
            raise TmxFormatError(f"Invalid {label} for atlas {texture_id}: {value!r}")

    columns = atlas_width // tile_width
    rows = atlas_height // tile_height

    if atlas_width % tile_width or atlas_height % tile_height:
        logger.debug(
            f"Atlas {texture_id} ({atlas_width}x{atlas_height}) is not a multiple of "
            f"{tile_width}x{tile_height}, dropping partial tiles"
        )

    tiles = []
    for y in range(rows):
        for x in range(columns):
            source = Rect(x * tile_width, y * tile_height, tile_width, tile_height)
            tiles.append(Tile(texture_id, source))

    return tiles


def read_image_size(image_path: Path) -> Tuple[int, int]:
    """
    Read an image's pixel size from disk.

    Args:
        image_path: Path to the atlas image

    Returns:
        (width, height)

    Raises:
        TmxFormatError: If the file is missing or not a readable image
    """
    if not image_path.exists():
        raise TmxFormatError(f"Atlas image not found: {image_path}")

    try:
        with Image.open(image_path) as img:
            return img.size
    except (OSError, Image.DecompressionBombError) as e:
        raise TmxFormatError(f"Could not read atlas image {image_path}: {e}") from e


class AtlasResolver:
    """
    Accumulates atlas paths and the global tile table for one import.

    Both lists only ever grow. A new resolver is created for every document,
    so concurrent imports never share tiles.
    """

    def __init__(self):
        self.image_paths: List[str] = []
        self.tiles: List[Tile] = []

    @property
    def next_texture_id(self) -> int:
        return len(self.image_paths)

    def add_atlas(
        self,
        source: str,
        tile_width: int,
        tile_height: int,
        base_dir: Path,
        width: Optional[int] = None,
        height: Optional[int] = None
    ) -> List[Tile]:
        """
        Register an atlas image and append its tiles to the tile table.

        Args:
            source: Image path as written in the document
            tile_width: Tile width in pixels
            tile_height: Tile height in pixels
            base_dir: Directory the source path is relative to
            width: Declared atlas width; read from the image when None
            height: Declared atlas height; read from the image when None

        Returns:
            The tiles produced for this atlas
        """
        image_path = Path(base_dir) / source

        if width is None or height is None:
            actual_width, actual_height = read_image_size(image_path)
            logger.debug(f"Read size {actual_width}x{actual_height} from {image_path}")
            width = actual_width if width is None else width
            height = actual_height if height is None else height

        texture_id = self.next_texture_id
        tiles = slice_atlas(texture_id, width, height, tile_width, tile_height)

        self.image_paths.append(str(image_path))
        self.tiles.extend(tiles)

        logger.debug(f"Atlas {texture_id} '{image_path}': {len(tiles)} tiles")
        return tiles
