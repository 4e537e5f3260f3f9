"""
TMX importer - reads a Tiled map file into a TilemapContent record.

The document is parsed into an element tree first and then walked top-down:
the <map> root is validated, and each <properties>, <tileset> and <layer>
child is handed to its own loader. Every import gets a fresh ImportContext,
so one importer can be used for many maps at once.
"""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, List, Optional, Union
from .atlas import AtlasResolver
from .cell_decoder import decode_cells
from .constants import MAP_TAG, SUPPORTED_ORIENTATION, CellOrder, DEFAULT_CELL_ORDER
from .content import Layer, TilemapContent, TilesetInfo
from .errors import TmxFormatError, TmxNotImplementedError
from .properties import read_properties
from .logging_config import get_logger

logger = get_logger('importer')


def parse_positive_int(element: ET.Element, attribute: str, context: str) -> int:
    """
    Read a required positive integer attribute.

    Raises:
        TmxFormatError: If the attribute is missing, not an integer or not positive
    """
    raw = element.get(attribute)
    if raw is None:
        raise TmxFormatError(f"Invalid {context}: missing '{attribute}' attribute")
    try:
        value = int(raw.strip())
    except ValueError:
        raise TmxFormatError(f"Invalid {context}: '{attribute}' is not an integer ({raw!r})") from None
    if value <= 0:
        raise TmxFormatError(f"Invalid {context}: '{attribute}' must be positive ({value})")
    return value


def parse_optional_int(element: ET.Element, attribute: str, context: str) -> Optional[int]:
    """Read an optional positive integer attribute (None when absent)."""
    if element.get(attribute) is None:
        return None
    return parse_positive_int(element, attribute, context)


class ImportContext:
    """Accumulators for a single import; discarded once the map is built."""

    def __init__(self, base_dir: Path, tile_width: int, tile_height: int):
        self.base_dir = base_dir
        self.tile_width = tile_width
        self.tile_height = tile_height
        self.atlases = AtlasResolver()
        self.tilesets: List[TilesetInfo] = []
        self.layers: List[Layer] = []


class TmxImporter:
    """Imports TMX files into TilemapContent records."""

    def __init__(self, cell_order: CellOrder = DEFAULT_CELL_ORDER, strict_properties: bool = True):
        """
        Initialize TmxImporter.

        Args:
            cell_order: How layer cell streams are laid over the grid
            strict_properties: If True, malformed properties abort the import;
                               otherwise they are skipped with a warning
        """
        self.cell_order = cell_order
        self.strict_properties = strict_properties

    def import_file(self, filename: Union[str, Path]) -> TilemapContent:
        """
        Import a TMX file from disk.

        Atlas paths are resolved relative to the file's directory.

        Args:
            filename: Path to the .tmx file

        Returns:
            The imported map
        """
        path = Path(filename)
        logger.debug(f"Importing {path}")

        with open(path, 'rb') as f:
            root = self._parse_xml(f, str(path))

        return self._load_map(root, path.parent, path.stem)

    def import_string(self, text: Union[str, bytes], base_dir: Union[str, Path] = ".", name: str = "map") -> TilemapContent:
        """
        Import a TMX document held in memory.

        Args:
            text: The XML document
            base_dir: Directory atlas and tileset paths are relative to
            name: Name given to the map

        Returns:
            The imported map
        """
        try:
            root = ET.fromstring(text)
        except ET.ParseError as e:
            raise TmxFormatError(f"Invalid map format in {name}: {e}") from e
        return self._load_map(root, Path(base_dir), name)

    def _parse_xml(self, source, description: str) -> ET.Element:
        try:
            return ET.parse(source).getroot()
        except ET.ParseError as e:
            raise TmxFormatError(f"Invalid map format in {description}: {e}") from e

    def _load_map(self, root: ET.Element, base_dir: Path, name: str) -> TilemapContent:
        if root.tag != MAP_TAG:
            raise TmxFormatError(f"Invalid map format: root element is <{root.tag}>, expected <{MAP_TAG}>")

        width = parse_positive_int(root, 'width', "map")
        height = parse_positive_int(root, 'height', "map")
        tile_width = parse_positive_int(root, 'tilewidth', "map")
        tile_height = parse_positive_int(root, 'tileheight', "map")

        orientation = root.get('orientation')
        if orientation is not None and orientation != SUPPORTED_ORIENTATION:
            raise TmxNotImplementedError(f"Map orientation '{orientation}' is not supported")
        if root.get('infinite', '0') != '0':
            raise TmxNotImplementedError("Infinite (chunked) maps are not supported")

        properties: Dict[str, str] = {}
        context = ImportContext(base_dir, tile_width, tile_height)

        for child in root:
            if child.tag == 'properties':
                properties.update(
                    read_properties(child, self.strict_properties, owner=f"map '{name}'")
                )
            elif child.tag == 'tileset':
                self._load_tileset(child, context)
            elif child.tag == 'layer':
                context.layers.append(self._load_layer(child))
            else:
                logger.debug(f"Ignoring <{child.tag}> in {name}")

        tile_count = len(context.atlases.tiles)
        for layer in context.layers:
            self._check_tile_references(layer, tile_count)

        output = TilemapContent(
            name=name,
            width=width,
            height=height,
            tile_width=tile_width,
            tile_height=tile_height,
            properties=properties,
            image_paths=tuple(context.atlases.image_paths),
            tiles=tuple(context.atlases.tiles),
            tilesets=tuple(context.tilesets),
            layers=tuple(context.layers),
        )

        logger.info(
            f"Imported {name}: {width}x{height} tiles, {len(output.image_paths)} atlases, "
            f"{output.tile_count} tiles, {output.layer_count} layers"
        )
        return output

    def _load_tileset(self, element: ET.Element, context: ImportContext) -> None:
        """
        Load a tileset, registering its atlas and appending its tiles.

        An external tileset (<tileset firstgid="1" source="terrain.tsx"/>)
        is read from disk; its image path is relative to the .tsx file.
        """
        index = len(context.tilesets)
        first_gid = parse_optional_int(element, 'firstgid', f"tileset #{index}")
        tileset_dir = context.base_dir

        source = element.get('source')
        if source is not None:
            tsx_path = context.base_dir / source
            if not tsx_path.exists():
                raise TmxFormatError(f"External tileset not found: {tsx_path}")
            with open(tsx_path, 'rb') as f:
                element = self._parse_xml(f, str(tsx_path))
            if element.tag != 'tileset':
                raise TmxFormatError(f"Invalid tileset file {tsx_path}: root element is <{element.tag}>")
            tileset_dir = tsx_path.parent

        name = element.get('name', f"tileset{index}")
        description = f"tileset '{name}'"

        expected_gid = len(context.atlases.tiles) + 1
        if first_gid is not None and first_gid != expected_gid:
            logger.warning(
                f"{description} declares firstgid={first_gid}, but its tiles start at id {expected_gid}"
            )

        for attribute, expected in (('tilewidth', context.tile_width), ('tileheight', context.tile_height)):
            declared = element.get(attribute)
            if declared is not None and declared.strip() != str(expected):
                logger.warning(f"{description} declares {attribute}={declared}, slicing with the map's {expected}")
        for attribute in ('margin', 'spacing'):
            declared = element.get(attribute, '0')
            if declared.strip() != '0':
                logger.warning(f"{description} declares {attribute}={declared}, which is ignored")

        images = element.findall('image')
        if not images:
            raise TmxNotImplementedError(f"{description} has no atlas image (image collections are not supported)")
        if len(images) > 1:
            raise TmxFormatError(f"{description} declares {len(images)} images, expected one")

        image = images[0]
        image_source = image.get('source')
        if not image_source:
            raise TmxFormatError(f"Invalid {description}: <image> is missing its 'source' attribute")

        texture_id = context.atlases.next_texture_id
        first_tile = len(context.atlases.tiles)
        tiles = context.atlases.add_atlas(
            image_source,
            context.tile_width,
            context.tile_height,
            tileset_dir,
            width=parse_optional_int(image, 'width', f"{description} image"),
            height=parse_optional_int(image, 'height', f"{description} image"),
        )

        context.tilesets.append(TilesetInfo(
            name=name,
            first_gid=first_gid,
            texture_id=texture_id,
            first_tile=first_tile,
            tile_count=len(tiles),
            properties=read_properties(element.find('properties'), self.strict_properties, owner=description),
        ))

    def _load_layer(self, element: ET.Element) -> Layer:
        """Load a tile layer with its properties and decoded cells."""
        name = element.get('name', '')
        description = f"layer '{name}'"
        width = parse_positive_int(element, 'width', description)
        height = parse_positive_int(element, 'height', description)

        properties: Dict[str, str] = {}
        data = None
        for child in element:
            if child.tag == 'data':
                if data is not None:
                    raise TmxFormatError(f"Invalid {description}: more than one <data> element")
                data = child
            elif child.tag == 'properties':
                properties = read_properties(child, self.strict_properties, owner=description)

        if data is None:
            raise TmxFormatError(f"Invalid {description}: missing <data> element")

        try:
            cells = decode_cells(
                data.text or "",
                width,
                height,
                data.get('encoding'),
                data.get('compression'),
            )
        except TmxNotImplementedError as e:
            raise TmxNotImplementedError(f"{description}: {e}") from e
        except TmxFormatError as e:
            raise TmxFormatError(f"{description}: {e}") from e

        logger.debug(f"Loaded {description} ({width}x{height}, {len(cells)} cells)")
        return Layer(
            name=name,
            width=width,
            height=height,
            properties=properties,
            cells=tuple(cells),
            cell_order=self.cell_order,
        )

    def _check_tile_references(self, layer: Layer, tile_count: int) -> None:
        for position, cell in enumerate(layer.cells):
            if cell.tile is not None and cell.tile >= tile_count:
                raise TmxFormatError(
                    f"layer '{layer.name}': cell #{position} references tile {cell.tile + 1}, "
                    f"but the map only has {tile_count} tiles"
                )
