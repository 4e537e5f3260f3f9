import base64
import struct
import tempfile
import unittest
from dataclasses import FrozenInstanceError
from pathlib import Path
from unittest import mock

from PIL import Image

from tmxcon import TmxImporter, import_tmx
from tmxcon.constants import CellOrder, FLIPPED_DIAGONALLY_FLAG, FLIPPED_HORIZONTALLY_FLAG
from tmxcon.content import Cell, FlipFlags, Rect
from tmxcon.errors import (
    MalformedPropertyError,
    TmxFormatError,
    TmxNotImplementedError,
)

EXAMPLE_MAP = """<?xml version="1.0" encoding="UTF-8"?>
<map version="1.10" orientation="orthogonal" width="2" height="2" tilewidth="16" tileheight="16">
 <properties>
  <property name="music" value="stage1.ogg"/>
 </properties>
 <tileset firstgid="1" name="ships" tilewidth="16" tileheight="16">
  <image source="ships.png" width="32" height="16"/>
 </tileset>
 <layer name="Background" width="2" height="2">
  <properties>
   <property name="scroll" value="0.5"/>
  </properties>
  <data encoding="csv">
1,0,0,2
</data>
 </layer>
</map>
"""


def make_map(layers: str = "", tilesets: str = "", attributes: str = 'width="2" height="2" tilewidth="16" tileheight="16"') -> str:
    return f"<map {attributes}>{tilesets}{layers}</map>"


TILESET_32x16 = '<tileset firstgid="1" name="t"><image source="t.png" width="32" height="16"/></tileset>'


class ImportExampleMapTests(unittest.TestCase):
    def setUp(self) -> None:
        self.content = TmxImporter().import_string(EXAMPLE_MAP, base_dir="levels", name="stage1")

    def test_map_header(self) -> None:
        self.assertEqual(self.content.name, "stage1")
        self.assertEqual((self.content.width, self.content.height), (2, 2))
        self.assertEqual((self.content.tile_width, self.content.tile_height), (16, 16))
        self.assertEqual(self.content.properties, {"music": "stage1.ogg"})

    def test_tileset_produces_two_tiles(self) -> None:
        self.assertEqual(self.content.image_paths, (str(Path("levels") / "ships.png"),))
        self.assertEqual(self.content.tile_count, 2)
        self.assertEqual(self.content.tiles[0].source, Rect(0, 0, 16, 16))
        self.assertEqual(self.content.tiles[1].source, Rect(16, 0, 16, 16))
        self.assertEqual(len(self.content.tilesets), 1)
        self.assertEqual(self.content.tilesets[0].name, "ships")
        self.assertEqual(self.content.tilesets[0].tile_count, 2)

    def test_layer_cells_are_column_major(self) -> None:
        layer = self.content.get_layer("Background")
        self.assertIsNotNone(layer)
        self.assertEqual(layer.properties, {"scroll": "0.5"})
        self.assertEqual(len(layer.cells), 4)
        self.assertEqual(layer.cell_order, CellOrder.COLUMN_MAJOR)
        # Stream 1,0,0,2 is read as (0,0), (0,1), (1,0), (1,1)
        self.assertEqual(layer.cell_at(0, 0), Cell(0))
        self.assertTrue(layer.cell_at(0, 1).empty)
        self.assertTrue(layer.cell_at(1, 0).empty)
        self.assertEqual(layer.cell_at(1, 1), Cell(1))

    def test_cell_at_out_of_range(self) -> None:
        layer = self.content.layers[0]
        with self.assertRaises(IndexError):
            layer.cell_at(2, 0)
        with self.assertRaises(IndexError):
            layer.cell_at(0, -1)

    def test_to_dict(self) -> None:
        data = self.content.to_dict()
        self.assertEqual(data["tileCount"], 2)
        self.assertEqual(data["layerCount"], 1)
        self.assertEqual(data["layers"][0]["tiles"], [0, -1, -1, 1])
        self.assertEqual(data["layers"][0]["cellOrder"], "column-major")
        self.assertEqual(data["tiles"][1], {"textureId": 0, "x": 16, "y": 0, "width": 16, "height": 16})


class ImporterBehaviourTests(unittest.TestCase):
    def test_row_major_order(self) -> None:
        xml = make_map(
            layers='<layer name="l" width="3" height="2"><data encoding="csv">1,2,0,0,0,2</data></layer>',
            tilesets=TILESET_32x16,
            attributes='width="3" height="2" tilewidth="16" tileheight="16"',
        )
        layer = TmxImporter(cell_order=CellOrder.ROW_MAJOR).import_string(xml).layers[0]
        self.assertEqual(layer.cell_at(1, 0), Cell(1))
        self.assertEqual(layer.cell_at(2, 1), Cell(1))
        self.assertTrue(layer.cell_at(0, 1).empty)

    def test_non_square_column_major_layer(self) -> None:
        xml = make_map(
            layers='<layer name="l" width="3" height="2"><data encoding="csv">1,0,0,2,0,1</data></layer>',
            tilesets=TILESET_32x16,
            attributes='width="3" height="2" tilewidth="16" tileheight="16"',
        )
        layer = TmxImporter().import_string(xml).layers[0]
        self.assertEqual(layer.cell_at(0, 0), Cell(0))
        self.assertEqual(layer.cell_at(1, 1), Cell(1))
        self.assertEqual(layer.cell_at(2, 1), Cell(0))
        self.assertTrue(layer.cell_at(2, 0).empty)

    def test_base64_and_csv_layers_match(self) -> None:
        values = [1 | FLIPPED_HORIZONTALLY_FLAG, 0, 2 | FLIPPED_DIAGONALLY_FLAG, 1]
        payload = base64.b64encode(struct.pack("<4I", *values)).decode("ascii")
        xml = make_map(
            tilesets=TILESET_32x16,
            layers=(
                f'<layer name="b" width="2" height="2"><data encoding="base64">{payload}</data></layer>'
                f'<layer name="c" width="2" height="2"><data encoding="csv">{",".join(map(str, values))}</data></layer>'
            ),
        )
        content = TmxImporter().import_string(xml)
        self.assertEqual([layer.name for layer in content.layers], ["b", "c"])
        self.assertEqual(content.layers[0].cells, content.layers[1].cells)
        self.assertEqual(content.layers[0].cells[0], Cell(0, FlipFlags.HORIZONTAL))
        self.assertEqual(content.layers[0].cells[2], Cell(1, FlipFlags.BOTH))

    def test_multiple_tilesets_extend_the_tile_table(self) -> None:
        xml = make_map(
            tilesets=(
                TILESET_32x16 +
                '<tileset firstgid="3" name="u"><image source="u.png" width="40" height="40"/></tileset>'
            ),
            layers='<layer name="l" width="2" height="2"><data encoding="csv">1,3,6,0</data></layer>',
        )
        content = TmxImporter().import_string(xml)
        self.assertEqual(content.tile_count, 2 + 4)
        self.assertEqual(len(content.image_paths), 2)
        self.assertEqual([t.texture_id for t in content.tiles], [0, 0, 1, 1, 1, 1])
        self.assertEqual(content.tilesets[1].first_tile, 2)
        self.assertEqual(content.tilesets[1].texture_id, 1)
        self.assertEqual([c.tile for c in content.layers[0].cells], [0, 2, 5, None])

    def test_mismatched_firstgid_logs_warning(self) -> None:
        xml = make_map(tilesets='<tileset firstgid="5" name="t"><image source="t.png" width="16" height="16"/></tileset>')
        with self.assertLogs("tmxcon.importer", level="WARNING") as logs:
            TmxImporter().import_string(xml)
        self.assertIn("firstgid=5", logs.output[0])

    def test_unknown_root_children_are_ignored(self) -> None:
        xml = make_map(
            tilesets=TILESET_32x16 + '<objectgroup name="spawns"><object id="1" x="0" y="0"/></objectgroup>',
            layers='<editorsettings/>',
        )
        content = TmxImporter().import_string(xml)
        self.assertEqual(content.layers, ())
        self.assertEqual(content.tile_count, 2)

    def test_independent_imports_share_nothing(self) -> None:
        importer = TmxImporter()
        first = importer.import_string(EXAMPLE_MAP)
        second = importer.import_string(EXAMPLE_MAP)
        self.assertEqual(second.tile_count, 2)
        self.assertEqual(len(second.image_paths), 1)
        self.assertIsNot(first.tiles, second.tiles)

    def test_records_are_frozen(self) -> None:
        content = TmxImporter().import_string(EXAMPLE_MAP)
        layer = content.layers[0]
        self.assertIsInstance(content.layers, tuple)
        self.assertIsInstance(layer.cells, tuple)
        with self.assertRaises(FrozenInstanceError):
            content.name = "other"
        with self.assertRaises(FrozenInstanceError):
            layer.cells = ()
        with self.assertRaises(FrozenInstanceError):
            content.tilesets[0].tile_count = 0

    def test_class_properties_import_in_strict_mode(self) -> None:
        xml = make_map(tilesets=TILESET_32x16).replace(
            "</map>",
            '<properties><property name="spawn" type="class" propertytype="Spawn">'
            '<properties><property name="hp" type="int" value="3"/></properties>'
            '</property></properties></map>',
        )
        content = TmxImporter().import_string(xml)
        self.assertEqual(content.properties, {"spawn.hp": "3"})


class ImporterErrorTests(unittest.TestCase):
    def test_non_map_root_fails_before_tilesets(self) -> None:
        xml = f"<tilemap>{TILESET_32x16}</tilemap>"
        with mock.patch("tmxcon.importer.AtlasResolver") as resolver:
            with self.assertRaisesRegex(TmxFormatError, "Invalid map format"):
                TmxImporter().import_string(xml)
        resolver.assert_not_called()

    def test_malformed_xml(self) -> None:
        with self.assertRaises(TmxFormatError):
            TmxImporter().import_string("<map width='2'")

    def test_invalid_map_attributes(self) -> None:
        for attributes in (
            'height="2" tilewidth="16" tileheight="16"',
            'width="two" height="2" tilewidth="16" tileheight="16"',
            'width="2" height="0" tilewidth="16" tileheight="16"',
            'width="2" height="2" tilewidth="-16" tileheight="16"',
        ):
            with self.subTest(attributes=attributes):
                with self.assertRaisesRegex(TmxFormatError, "Invalid map"):
                    TmxImporter().import_string(make_map(attributes=attributes))

    def test_compressed_layer_fails_without_partial_map(self) -> None:
        xml = make_map(
            tilesets=TILESET_32x16,
            layers='<layer name="l" width="2" height="2"><data encoding="base64" compression="zlib">eJw=</data></layer>',
        )
        with self.assertRaisesRegex(TmxNotImplementedError, "layer 'l'"):
            TmxImporter().import_string(xml)

    def test_missing_encoding_is_not_implemented(self) -> None:
        xml = make_map(
            tilesets=TILESET_32x16,
            layers='<layer name="l" width="1" height="1"><data><tile gid="1"/></data></layer>',
        )
        with self.assertRaises(TmxNotImplementedError):
            TmxImporter().import_string(xml)

    def test_non_orthogonal_and_infinite_maps(self) -> None:
        base = 'width="2" height="2" tilewidth="16" tileheight="16"'
        with self.assertRaises(TmxNotImplementedError):
            TmxImporter().import_string(make_map(attributes=base + ' orientation="isometric"'))
        with self.assertRaises(TmxNotImplementedError):
            TmxImporter().import_string(make_map(attributes=base + ' infinite="1"'))

    def test_layer_without_data(self) -> None:
        xml = make_map(layers='<layer name="l" width="2" height="2"/>')
        with self.assertRaisesRegex(TmxFormatError, "missing <data>"):
            TmxImporter().import_string(xml)

    def test_layer_with_bad_dimensions(self) -> None:
        xml = make_map(layers='<layer name="l" width="x" height="2"><data encoding="csv">0,0</data></layer>')
        with self.assertRaisesRegex(TmxFormatError, "layer 'l'"):
            TmxImporter().import_string(xml)

    def test_wrong_cell_count(self) -> None:
        xml = make_map(
            tilesets=TILESET_32x16,
            layers='<layer name="l" width="2" height="2"><data encoding="csv">1,0,0</data></layer>',
        )
        with self.assertRaises(TmxFormatError):
            TmxImporter().import_string(xml)

    def test_tile_reference_out_of_range(self) -> None:
        xml = make_map(
            tilesets=TILESET_32x16,
            layers='<layer name="l" width="2" height="2"><data encoding="csv">1,0,0,3</data></layer>',
        )
        with self.assertRaisesRegex(TmxFormatError, "only has 2 tiles"):
            TmxImporter().import_string(xml)

    def test_image_collection_tileset(self) -> None:
        xml = make_map(tilesets='<tileset firstgid="1" name="t"><tile id="0"><image source="a.png"/></tile></tileset>')
        with self.assertRaises(TmxNotImplementedError):
            TmxImporter().import_string(xml)

    def test_malformed_property_strict_and_lenient(self) -> None:
        xml = make_map(attributes='width="2" height="2" tilewidth="16" tileheight="16"').replace(
            "</map>", '<properties><property name="k"/></properties></map>'
        )
        with self.assertRaises(MalformedPropertyError):
            TmxImporter().import_string(xml)
        with self.assertLogs("tmxcon.properties", level="WARNING"):
            content = TmxImporter(strict_properties=False).import_string(xml)
        self.assertEqual(content.properties, {})


class ImportFileTests(unittest.TestCase):
    def test_import_file_resolves_paths_against_map_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            levels = Path(tmp) / "levels"
            levels.mkdir()
            map_path = levels / "stage1.tmx"
            map_path.write_text(EXAMPLE_MAP, encoding="utf-8")

            content = import_tmx(map_path)

            self.assertEqual(content.name, "stage1")
            self.assertEqual(content.image_paths, (str(levels / "ships.png"),))

    def test_external_tileset_and_image_size_fallback(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "tilesets" / "art").mkdir(parents=True)
            Image.new("RGBA", (48, 16)).save(root / "tilesets" / "art" / "enemies.png")
            (root / "tilesets" / "enemies.tsx").write_text(
                '<?xml version="1.0" encoding="UTF-8"?>\n'
                '<tileset name="enemies" tilewidth="16" tileheight="16">'
                '<properties><property name="kind" value="enemy"/></properties>'
                '<image source="art/enemies.png"/>'
                '</tileset>',
                encoding="utf-8",
            )
            map_path = root / "stage2.tmx"
            map_path.write_text(
                make_map(
                    tilesets='<tileset firstgid="1" source="tilesets/enemies.tsx"/>',
                    layers='<layer name="l" width="2" height="2"><data encoding="csv">3,0,0,1</data></layer>',
                ),
                encoding="utf-8",
            )

            content = TmxImporter().import_file(map_path)

            self.assertEqual(content.image_paths, (str(root / "tilesets" / "art" / "enemies.png"),))
            self.assertEqual(content.tile_count, 3)
            self.assertEqual(content.tilesets[0].name, "enemies")
            self.assertEqual(content.tilesets[0].properties, {"kind": "enemy"})
            self.assertEqual(content.layers[0].cell_at(0, 0), Cell(2))

    def test_missing_external_tileset(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            map_path = Path(tmp) / "m.tmx"
            map_path.write_text(make_map(tilesets='<tileset firstgid="1" source="nope.tsx"/>'), encoding="utf-8")
            with self.assertRaisesRegex(TmxFormatError, "nope.tsx"):
                TmxImporter().import_file(map_path)

    def test_missing_map_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            TmxImporter().import_file(Path(tempfile.gettempdir()) / "does-not-exist.tmx")


if __name__ == "__main__":
    unittest.main()
