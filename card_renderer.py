"""Rasterise planned layers onto a card template with Pillow."""
from __future__ import annotations

import functools
import io
import logging
import math
from pathlib import Path
from typing import List, NamedTuple, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont, ImageOps

from asset_loader import AssetError, AssetLoader
from card_config import CardConfig
from card_planner import ImageLayer, Layer, TextLayer, TwoColumnMultiLineText

logger = logging.getLogger(__name__)

# Extra room below the last baseline for descenders.
_DESCENDER_SCALE = 0.35


class _FontChoice(NamedTuple):
    font: ImageFont.ImageFont
    synthetic_bold: bool


@functools.lru_cache(maxsize=128)
def _load_font(candidates: Tuple[Path, ...], size: int, bold: bool) -> _FontChoice:
    for candidate in candidates:
        if not candidate.exists():
            continue
        try:
            return _FontChoice(ImageFont.truetype(str(candidate), size), False)
        except OSError:
            logger.debug("Could not load font %s", candidate)
    return _FontChoice(ImageFont.load_default(size=size), bold)


def _open_image(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image = ImageOps.exif_transpose(image)
    return image.convert("RGBA")


def _fit_image(image: Image.Image, layer: ImageLayer) -> Tuple[Image.Image, Tuple[int, int]]:
    box = (max(1, int(layer.width)), max(1, int(layer.height)))
    if layer.fit == "contain":
        fitted = ImageOps.contain(image, box, Image.LANCZOS)
        offset = (
            int(layer.left) + (box[0] - fitted.width) // 2,
            int(layer.top) + (box[1] - fitted.height) // 2,
        )
        return fitted, offset
    fitted = ImageOps.fit(image, box, Image.LANCZOS, centering=(0.5, 0.5))
    return fitted, (int(layer.left), int(layer.top))


class CardRenderer:
    """Composite layers onto a template in the order given.

    Later layers paint over earlier ones. Image layers that cannot be loaded
    are skipped with a warning; the rest of the card is still produced.
    """

    def __init__(self, loader: AssetLoader, config: Optional[CardConfig] = None) -> None:
        self.loader = loader
        self.config = config or CardConfig()

    def font_for(self, layer: TextLayer) -> _FontChoice:
        weight = "bold" if layer.font_weight == "bold" else "normal"
        size = max(1, int(round(layer.font_size)))
        return _load_font(self.config.font_candidates(weight), size, weight == "bold")

    def rasterize_text(self, layer: TextLayer) -> Tuple[Image.Image, Tuple[int, int]]:
        """Draw ``layer`` on its own transparent buffer and return its placement."""

        choice = self.font_for(layer)
        stroke = 1 if choice.synthetic_bold else 0

        if isinstance(layer, TwoColumnMultiLineText):
            origin_x = min(layer.left, layer.subsequent_left)
            starts = [layer.left - origin_x] + [layer.subsequent_left - origin_x] * (len(layer.lines) - 1)
        else:
            origin_x = layer.left
            starts = [0.0] * len(layer.lines)

        widths = [
            start + choice.font.getlength(line) + 2 * stroke for start, line in zip(starts, layer.lines)
        ]
        width = max(1, int(math.ceil(max(widths, default=1.0))))
        height = max(1, int(math.ceil(layer.height + layer.font_size * _DESCENDER_SCALE)))

        canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        draw = ImageDraw.Draw(canvas)
        for index, (start, line) in enumerate(zip(starts, layer.lines)):
            draw.text(
                (start + stroke, index * layer.line_height),
                line,
                font=choice.font,
                fill=layer.color,
                stroke_width=stroke,
                stroke_fill=layer.color,
            )
        return canvas, (int(round(origin_x)), int(round(layer.top)))

    def _image_layer(self, layer: ImageLayer) -> Tuple[Image.Image, Tuple[int, int]]:
        data = self.loader.fetch(layer.source)
        return _fit_image(_open_image(data), layer)

    def render(
        self,
        template: bytes,
        layers: Sequence[Layer],
        warnings: Optional[List[str]] = None,
    ) -> bytes:
        card = _open_image(template)

        for layer in layers:
            if isinstance(layer, ImageLayer):
                try:
                    overlay, position = self._image_layer(layer)
                except (AssetError, OSError, ValueError, Image.DecompressionBombError) as exc:
                    message = f"{layer.name} skipped: {exc}"
                    logger.warning(message)
                    if warnings is not None:
                        warnings.append(message)
                    continue
            elif isinstance(layer, TextLayer):
                overlay, position = self.rasterize_text(layer)
            else:
                raise TypeError(f"Unsupported layer type: {type(layer).__name__}")
            card.paste(overlay, position, overlay)

        buffer = io.BytesIO()
        card.save(buffer, format="PNG")
        return buffer.getvalue()


__all__ = ["CardRenderer"]
