import io
import sys
import tempfile
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from PIL import Image

from asset_loader import AssetLoader
from card_fixtures import png_bytes, write_png
from card_planner import ImageLayer, SingleLineText, TwoColumnMultiLineText
from card_renderer import CardRenderer

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)
WHITE = (255, 255, 255, 255)


def _text_layer(**overrides):
    values = dict(
        name="caption",
        lines=("HELLO",),
        left=5,
        top=5,
        font_size=20,
        font_weight="bold",
        color="#000000",
        max_width=150,
        line_height=24,
    )
    values.update(overrides)
    return SingleLineText(**values)


class CardRendererTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.loader = AssetLoader(template_dir=self.root, asset_root=self.root)
        self.renderer = CardRenderer(self.loader)
        self.template = png_bytes(WHITE, (200, 100))

    def tearDown(self):
        self._tmp.cleanup()

    def _open(self, data):
        return Image.open(io.BytesIO(data)).convert("RGBA")

    def test_output_is_png_of_template_size(self):
        data = self.renderer.render(self.template, [])
        self.assertTrue(data.startswith(b"\x89PNG"))
        self.assertEqual(self._open(data).size, (200, 100))

    def test_later_layers_paint_over_earlier_ones(self):
        write_png(self.root / "red.png", RED)
        write_png(self.root / "blue.png", BLUE)
        layers = [
            ImageLayer("first", "red.png", left=10, top=10, width=50, height=50),
            ImageLayer("second", "blue.png", left=30, top=30, width=50, height=50),
        ]
        image = self._open(self.renderer.render(self.template, layers))
        self.assertEqual(image.getpixel((15, 15)), RED)
        self.assertEqual(image.getpixel((40, 40)), BLUE)
        self.assertEqual(image.getpixel((150, 80)), WHITE)

    def test_upload_paths_resolve_under_asset_root(self):
        write_png(self.root / "uploads" / "photos" / "kid.png", BLUE)
        layers = [ImageLayer("photo", "/uploads/photos/kid.png", left=0, top=0, width=20, height=20)]
        image = self._open(self.renderer.render(self.template, layers))
        self.assertEqual(image.getpixel((10, 10)), BLUE)

    def test_contain_fit_centres_image_in_slot(self):
        write_png(self.root / "wide.png", RED, (100, 20))
        layers = [ImageLayer("logo", "wide.png", left=0, top=0, width=50, height=50, fit="contain")]
        image = self._open(self.renderer.render(self.template, layers))
        self.assertEqual(image.getpixel((25, 25)), RED)
        self.assertEqual(image.getpixel((25, 2)), WHITE)

    def test_missing_image_is_skipped_with_warning(self):
        warnings = []
        layers = [ImageLayer("logo", "missing.png", left=0, top=0, width=50, height=50)]
        with self.assertLogs("card_renderer", level="WARNING"):
            data = self.renderer.render(self.template, layers, warnings)
        self.assertEqual(len(warnings), 1)
        self.assertIn("logo", warnings[0])
        self.assertEqual(self._open(data).getpixel((25, 25)), WHITE)

    def test_corrupt_image_is_skipped(self):
        (self.root / "broken.png").write_bytes(b"not an image")
        warnings = []
        layers = [ImageLayer("photo", "broken.png", left=0, top=0, width=50, height=50)]
        self.renderer.render(self.template, layers, warnings)
        self.assertEqual(len(warnings), 1)

    def test_text_is_drawn_inside_its_box(self):
        data = self.renderer.render(self.template, [_text_layer()])
        image = self._open(data).convert("L")
        inside = image.crop((5, 5, 155, 35))
        self.assertLess(min(inside.getdata()), 128)
        outside = image.crop((0, 60, 200, 100))
        self.assertEqual(min(outside.getdata()), 255)

    def test_two_column_text_starts_at_leftmost_column(self):
        layer = TwoColumnMultiLineText(
            name="address",
            lines=("first line", "second line"),
            left=80,
            top=10,
            font_size=18,
            font_weight="normal",
            color="#000000",
            max_width=100,
            line_height=24,
            subsequent_left=20,
        )
        canvas, position = self.renderer.rasterize_text(layer)
        self.assertEqual(position, (20, 10))
        self.assertGreaterEqual(canvas.width, 60)
        self.assertGreaterEqual(canvas.height, 48)

    def test_unknown_layer_type_is_rejected(self):
        with self.assertRaises(TypeError):
            self.renderer.render(self.template, [object()])


if __name__ == "__main__":
    unittest.main()
