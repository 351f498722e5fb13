"""Shared configuration for the ID card compositing engine."""
from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Optional, Tuple

BASE_DIR = Path(__file__).resolve().parent

DEFAULT_TEMPLATE_DIR = BASE_DIR / "idcard-templates"
DEFAULT_OUTPUT_DIR = BASE_DIR / "generated-idcards"
DEFAULT_ASSET_ROOT = BASE_DIR

ORIENTATIONS = ("landscape", "portrait")
SIDES = ("front", "back")

PLACEHOLDER = "N/A"

# Seconds; several remote fetches happen per card.
DEFAULT_FETCH_TIMEOUT = 15.0

# Average glyph width as a fraction of the font size.
CHAR_WIDTH_RATIO = {"bold": 0.6, "normal": 0.55}
LINE_HEIGHT_SCALE = 1.2

AUTO_SIZE_FONT_FACTOR = 0.9
AUTO_SIZE_CHAR_FACTOR = 1.15

DEFAULT_CLEANUP_AGE_MINUTES = 60
DEFAULT_PREVIEW_LIMIT = 5
ZIP_COMPRESS_LEVEL = 9

FONT_CANDIDATES = {
    "normal": (
        BASE_DIR / "fonts" / "DejaVuSans.ttf",
        Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
        Path("/Library/Fonts/Arial.ttf"),
        Path(r"C:\Windows\Fonts\arial.ttf"),
    ),
    "bold": (
        BASE_DIR / "fonts" / "DejaVuSans-Bold.ttf",
        Path("/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"),
        Path("/Library/Fonts/Arial Bold.ttf"),
        Path(r"C:\Windows\Fonts\arialbd.ttf"),
    ),
}


@dataclasses.dataclass(frozen=True)
class CardConfig:
    template_dir: Path = DEFAULT_TEMPLATE_DIR
    output_dir: Path = DEFAULT_OUTPUT_DIR
    asset_root: Path = DEFAULT_ASSET_ROOT
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    regular_font: Optional[Path] = None
    bold_font: Optional[Path] = None

    def font_candidates(self, weight: str) -> Tuple[Path, ...]:
        """Return font files to try for ``weight``, explicit choices first."""

        explicit = self.bold_font if weight == "bold" else self.regular_font
        defaults = FONT_CANDIDATES.get(weight, FONT_CANDIDATES["normal"])
        if explicit is not None:
            return (Path(explicit),) + tuple(defaults)
        return tuple(defaults)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


__all__ = [
    "CardConfig",
    "configure_logging",
    "DEFAULT_TEMPLATE_DIR",
    "DEFAULT_OUTPUT_DIR",
    "ORIENTATIONS",
    "SIDES",
    "PLACEHOLDER",
]
