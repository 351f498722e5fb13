"""Impose generated card PNGs onto A3 print sheets."""
from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from PIL import Image, ImageFile
from reportlab.lib.pagesizes import A3
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

ImageFile.LOAD_TRUNCATED_IMAGES = True

logger = logging.getLogger(__name__)

# ---------------- CONFIG ----------------
PAGE_W_MM, PAGE_H_MM = 297.0, 420.0
CR80_SHORT_MM, CR80_LONG_MM = 53.98, 85.6
SHEET_MARGIN_MM = 6.0

CardPair = Tuple[bytes, Optional[bytes]]


def card_size_mm(orientation: str) -> Tuple[float, float]:
    if orientation == "portrait":
        return CR80_SHORT_MM, CR80_LONG_MM
    return CR80_LONG_MM, CR80_SHORT_MM


def sheet_grid(orientation: str) -> Tuple[int, int]:
    """Columns and front rows per page; back rows mirror the front rows."""

    card_w, card_h = card_size_mm(orientation)
    cols = int((PAGE_W_MM - 2 * SHEET_MARGIN_MM) // card_w)
    rows = int((PAGE_H_MM - 2 * SHEET_MARGIN_MM) // card_h)
    return cols, rows // 2


def mm_to_bottom_left_y(top_mm: float, box_h_mm: float) -> float:
    """Convert top-Y mm to ReportLab bottom-left coordinate."""
    return PAGE_H_MM - top_mm - box_h_mm


def _to_image(buffer: bytes) -> Image.Image:
    return Image.open(io.BytesIO(buffer)).convert("RGB")


def make_sheet(cards: Sequence[CardPair], out_pdf: Path, orientation: str = "landscape") -> int:
    """Write front/back pairs onto A3 pages and return the page count.

    Fronts fill the upper half of each page; each back sits in the mirrored
    row of the lower half, rotated 180 degrees for long-edge duplex folding.
    """

    if not cards:
        raise ValueError("No cards to place on the sheet")

    card_w, card_h = card_size_mm(orientation)
    cols, front_rows = sheet_grid(orientation)
    per_page = cols * front_rows
    total_rows = front_rows * 2

    used_w = cols * card_w
    used_h = total_rows * card_h
    first_x = (PAGE_W_MM - used_w) / 2
    first_top = (PAGE_H_MM - used_h) / 2
    col_xs = [first_x + i * card_w for i in range(cols)]
    row_bottoms: List[float] = [
        mm_to_bottom_left_y(first_top + r * card_h, card_h) for r in range(total_rows)
    ]

    out_pdf = Path(out_pdf)
    out_pdf.parent.mkdir(parents=True, exist_ok=True)
    c = canvas.Canvas(str(out_pdf), pagesize=A3)
    pages = 0

    for index, (front, back) in enumerate(cards):
        slot = index % per_page
        if slot == 0:
            if index > 0:
                c.showPage()
            pages += 1

        row_f, col = divmod(slot, cols)
        row_b = total_rows - 1 - row_f

        img_f = _to_image(front)
        c.drawInlineImage(img_f, col_xs[col] * mm, row_bottoms[row_f] * mm, width=card_w * mm, height=card_h * mm)

        if back:
            img_b = _to_image(back).rotate(180, expand=True)
            c.drawInlineImage(img_b, col_xs[col] * mm, row_bottoms[row_b] * mm, width=card_w * mm, height=card_h * mm)

    c.save()
    logger.info("Saved %d card(s) on %d page(s) to %s", len(cards), pages, out_pdf)
    return pages


__all__ = ["card_size_mm", "make_sheet", "sheet_grid"]
