"""Declarative field positions for the four ID card templates.

Every template variant is described once by a :class:`CardLayout`: the text
fields (:class:`FieldSpec`), the image slots (:class:`ImageSlot`) and the
name-length driven horizontal shifts (:class:`ShiftRule`). Coordinates are
pixels on the template asset, measured from its top-left corner.
"""
from __future__ import annotations

import dataclasses
import logging
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Sequence, Tuple

from card_config import LINE_HEIGHT_SCALE, ORIENTATIONS, SIDES

logger = logging.getLogger(__name__)


class LayoutError(ValueError):
    """Raised when a layout is requested or authored incorrectly."""


@dataclasses.dataclass(frozen=True)
class AutoSize:
    min_font_size: float
    max_lines: int = 2


@dataclasses.dataclass(frozen=True)
class Dependency:
    on: str
    gap: float = 6.0


@dataclasses.dataclass(frozen=True)
class FieldSpec:
    name: str
    x: float
    y: float
    font_size: float = 20
    font_weight: str = "bold"
    max_width: float = 400
    color: str = "#000000"
    multi_line: bool = False
    max_chars_per_line: Optional[int] = None
    subsequent_max_chars_per_line: Optional[int] = None
    # Second-column start for wrapped lines after the first.
    subsequent_x: Optional[float] = None
    line_height: Optional[float] = None
    auto_size: Optional[AutoSize] = None
    depends_on: Optional[Dependency] = None
    # Pixels the field moves up for every line beyond the first.
    grow_upward: float = 0.0
    # Constant text for labels printed by the engine.
    text: Optional[str] = None

    def effective_line_height(self, font_size: Optional[float] = None) -> float:
        """Line advance at ``font_size``, scaled from the nominal line height."""

        nominal = self.line_height if self.line_height is not None else self.font_size * LINE_HEIGHT_SCALE
        if font_size is None or font_size == self.font_size:
            return round(float(nominal), 2)
        return round(float(nominal) * font_size / self.font_size, 2)


@dataclasses.dataclass(frozen=True)
class ImageSlot:
    name: str
    x: int
    y: int
    width: int
    height: int
    fit: str = "cover"


@dataclasses.dataclass(frozen=True)
class ShiftRule:
    """Offset ``targets`` when the student's name matches the thresholds."""

    targets: Tuple[str, ...]
    dx: float
    dy: float = 0.0
    max_chars: Optional[int] = None
    min_chars: Optional[int] = None
    name_lines: Optional[int] = 1

    def matches(self, name: str, line_count: int) -> bool:
        length = len(name.strip())
        if self.name_lines is not None and line_count != self.name_lines:
            return False
        if self.max_chars is not None and length > self.max_chars:
            return False
        if self.min_chars is not None and length < self.min_chars:
            return False
        return True


@dataclasses.dataclass(frozen=True)
class CardLayout:
    orientation: str
    side: str
    width: int
    height: int
    fields: Mapping[str, FieldSpec]
    images: Mapping[str, ImageSlot] = dataclasses.field(default_factory=dict)
    shifts: Tuple[ShiftRule, ...] = ()

    def field(self, name: str) -> FieldSpec:
        try:
            return self.fields[name]
        except KeyError:
            raise LayoutError(f"{self.orientation}-{self.side} has no field {name!r}") from None

    def shift_for(self, field_name: str, name: str, line_count: int) -> Tuple[float, float]:
        dx = dy = 0.0
        for rule in self.shifts:
            if field_name in rule.targets and rule.matches(name, line_count):
                dx += rule.dx
                dy += rule.dy
        return dx, dy


def _fields(*specs: FieldSpec) -> Mapping[str, FieldSpec]:
    return MappingProxyType({spec.name: spec for spec in specs})


def _images(*slots: ImageSlot) -> Mapping[str, ImageSlot]:
    return MappingProxyType({slot.name: slot for slot in slots})


_LANDSCAPE_FRONT = CardLayout(
    orientation="landscape",
    side="front",
    width=1012,
    height=638,
    images=_images(
        ImageSlot("logo", x=40, y=22, width=110, height=110, fit="contain"),
        ImageSlot("photo", x=60, y=180, width=235, height=295),
    ),
    fields=_fields(
        FieldSpec(
            "schoolName", x=170, y=40, font_size=34, max_width=800, color="#0D2A6B",
            multi_line=True, max_chars_per_line=38, line_height=38,
            auto_size=AutoSize(min_font_size=22, max_lines=2), grow_upward=18,
        ),
        FieldSpec(
            "schoolAddress", x=170, y=90, font_size=16, font_weight="normal", max_width=800,
            color="#333333", multi_line=True, max_chars_per_line=80, line_height=20,
            depends_on=Dependency("schoolName", gap=6),
        ),
        FieldSpec("nameLabel", x=347, y=220, font_size=24, max_width=140, text="Name :"),
        FieldSpec(
            "name", x=487, y=220, font_size=28, max_width=500, multi_line=True,
            max_chars_per_line=22, line_height=32,
        ),
        FieldSpec("sequenceLabel", x=347, y=270, font_size=22, max_width=140, text="Seq. No :"),
        FieldSpec("sequenceId", x=487, y=270, font_size=24, max_width=500),
        FieldSpec("classLabel", x=347, y=320, font_size=22, max_width=140, text="Class :"),
        FieldSpec("classSection", x=487, y=320, font_size=22, max_width=500),
        FieldSpec("dobLabel", x=347, y=370, font_size=20, max_width=140, text="DOB :"),
        FieldSpec("dob", x=487, y=370, font_size=20, max_width=500),
        FieldSpec("bloodGroup", x=487, y=420, font_size=20, max_width=200, color="#B71C1C"),
    ),
    shifts=(ShiftRule(targets=("nameLabel", "name"), dx=25, max_chars=12),),
)

_LANDSCAPE_BACK = CardLayout(
    orientation="landscape",
    side="back",
    width=1012,
    height=638,
    fields=_fields(
        FieldSpec(
            "address", x=170, y=133, font_size=18, font_weight="normal", max_width=800,
            multi_line=True, max_chars_per_line=60, subsequent_max_chars_per_line=75,
            subsequent_x=46, line_height=24,
        ),
        FieldSpec(
            "mobileLabel", x=46, y=197, font_size=18, max_width=140, text="Mobile :",
            depends_on=Dependency("address", gap=14),
        ),
        FieldSpec(
            "mobile", x=170, y=197, font_size=18, font_weight="normal", max_width=400,
            depends_on=Dependency("address", gap=14),
        ),
        FieldSpec(
            "returnHeading", x=127, y=340, font_size=16, font_weight="normal", max_width=800,
            text="If found, please return to:",
        ),
        FieldSpec(
            "returnSchoolName", x=127, y=382, font_size=20, max_width=800, multi_line=True,
            max_chars_per_line=60, line_height=24,
        ),
        FieldSpec(
            "returnSchoolAddress", x=127, y=410, font_size=16, font_weight="normal", max_width=800,
            multi_line=True, max_chars_per_line=80, line_height=20,
            depends_on=Dependency("returnSchoolName", gap=4),
        ),
        FieldSpec(
            "returnSchoolPhone", x=127, y=440, font_size=16, font_weight="normal", max_width=800,
            depends_on=Dependency("returnSchoolAddress", gap=4),
        ),
        FieldSpec(
            "returnSchoolEmail", x=127, y=462, font_size=16, font_weight="normal", max_width=800,
            depends_on=Dependency("returnSchoolPhone", gap=2),
        ),
    ),
)

_PORTRAIT_FRONT = CardLayout(
    orientation="portrait",
    side="front",
    width=638,
    height=1012,
    images=_images(
        ImageSlot("logo", x=30, y=25, width=90, height=90, fit="contain"),
        ImageSlot("photo", x=178, y=190, width=295, height=340),
    ),
    fields=_fields(
        FieldSpec(
            "schoolName", x=130, y=35, font_size=28, max_width=480, color="#0D2A6B",
            multi_line=True, max_chars_per_line=28, line_height=32,
            auto_size=AutoSize(min_font_size=18, max_lines=2), grow_upward=14,
        ),
        FieldSpec(
            "schoolAddress", x=130, y=75, font_size=14, font_weight="normal", max_width=480,
            color="#333333", multi_line=True, max_chars_per_line=50, line_height=18,
            depends_on=Dependency("schoolName", gap=4),
        ),
        FieldSpec("nameLabel", x=120, y=571, font_size=22, max_width=160, text="Name :"),
        FieldSpec(
            "name", x=295, y=571, font_size=26, max_width=320, multi_line=True,
            max_chars_per_line=18, line_height=30,
        ),
        FieldSpec("sequenceLabel", x=120, y=618, font_size=20, max_width=160, text="Seq. No :"),
        FieldSpec("sequenceId", x=295, y=618, font_size=22, max_width=320),
        FieldSpec("classLabel", x=120, y=668, font_size=20, max_width=160, text="Class :"),
        FieldSpec("classSection", x=295, y=668, font_size=22, max_width=320),
        FieldSpec("dobLabel", x=120, y=714, font_size=20, max_width=160, text="DOB :"),
        FieldSpec("dob", x=295, y=714, font_size=20, max_width=320),
        FieldSpec("bloodGroup", x=295, y=760, font_size=20, max_width=200, color="#B71C1C"),
    ),
    shifts=(
        ShiftRule(targets=("nameLabel", "name"), dx=30, max_chars=10),
        ShiftRule(targets=("nameLabel", "name"), dx=-60, min_chars=16),
    ),
)

_PORTRAIT_BACK = CardLayout(
    orientation="portrait",
    side="back",
    width=638,
    height=1012,
    fields=_fields(
        FieldSpec(
            "address", x=294, y=217, font_size=18, font_weight="normal", max_width=300,
            multi_line=True, max_chars_per_line=24, subsequent_max_chars_per_line=48,
            subsequent_x=60, line_height=24,
        ),
        FieldSpec(
            "mobileLabel", x=60, y=295, font_size=18, max_width=200, text="Mobile :",
            depends_on=Dependency("address", gap=16),
        ),
        FieldSpec(
            "mobile", x=294, y=295, font_size=18, font_weight="normal", max_width=300,
            depends_on=Dependency("address", gap=16),
        ),
        FieldSpec(
            "returnHeading", x=60, y=470, font_size=16, font_weight="normal", max_width=520,
            text="If found, please return to:",
        ),
        FieldSpec(
            "returnSchoolName", x=60, y=513, font_size=20, max_width=520, multi_line=True,
            max_chars_per_line=40, line_height=24,
        ),
        FieldSpec(
            "returnSchoolAddress", x=60, y=541, font_size=16, font_weight="normal", max_width=520,
            multi_line=True, max_chars_per_line=52, line_height=20,
            depends_on=Dependency("returnSchoolName", gap=4),
        ),
        FieldSpec(
            "returnSchoolPhone", x=60, y=585, font_size=16, font_weight="normal", max_width=520,
            depends_on=Dependency("returnSchoolAddress", gap=4),
        ),
        FieldSpec(
            "returnSchoolEmail", x=60, y=607, font_size=16, font_weight="normal", max_width=520,
            depends_on=Dependency("returnSchoolPhone", gap=2),
        ),
    ),
)

_CATALOG: Dict[Tuple[str, str], CardLayout] = {
    ("landscape", "front"): _LANDSCAPE_FRONT,
    ("landscape", "back"): _LANDSCAPE_BACK,
    ("portrait", "front"): _PORTRAIT_FRONT,
    ("portrait", "back"): _PORTRAIT_BACK,
}


def check_variant(orientation: str, side: str) -> Tuple[str, str]:
    """Normalise and validate an (orientation, side) pair."""

    normalized = (str(orientation).strip().lower(), str(side).strip().lower())
    if normalized[0] not in ORIENTATIONS:
        raise LayoutError(f"Unknown orientation {orientation!r}; expected one of {ORIENTATIONS}")
    if normalized[1] not in SIDES:
        raise LayoutError(f"Unknown side {side!r}; expected one of {SIDES}")
    return normalized


def layout_for(orientation: str, side: str) -> CardLayout:
    return _CATALOG[check_variant(orientation, side)]


def positions_for(orientation: str, side: str) -> Mapping[str, FieldSpec]:
    """Return the field specifications for one template variant."""

    return layout_for(orientation, side).fields


def dependency_order(fields: Mapping[str, FieldSpec]) -> Sequence[str]:
    """Topologically order ``fields`` so every field follows its dependency.

    Declaration order is kept wherever the dependencies allow it.
    """

    order = []
    state: Dict[str, str] = {}

    def _visit(name: str, trail: Tuple[str, ...]) -> None:
        if state.get(name) == "done":
            return
        if state.get(name) == "visiting":
            cycle = " -> ".join(trail + (name,))
            raise LayoutError(f"Cyclic field dependency: {cycle}")
        state[name] = "visiting"
        dependency = fields[name].depends_on
        if dependency is not None:
            if dependency.on not in fields:
                raise LayoutError(f"Field {name!r} depends on unknown field {dependency.on!r}")
            _visit(dependency.on, trail + (name,))
        state[name] = "done"
        order.append(name)

    for field_name in fields:
        _visit(field_name, ())
    return order


def validate_layout(layout: CardLayout) -> None:
    dependency_order(layout.fields)
    for rule in layout.shifts:
        for target in rule.targets:
            if target not in layout.fields:
                raise LayoutError(
                    f"{layout.orientation}-{layout.side} shift rule targets unknown field {target!r}"
                )
    for spec in layout.fields.values():
        if spec.auto_size is not None and spec.auto_size.min_font_size > spec.font_size:
            raise LayoutError(f"Field {spec.name!r} has a minimum font size above its nominal size")


def _validate_catalog() -> None:
    for layout in _CATALOG.values():
        validate_layout(layout)
    logger.debug("Validated %d card layouts", len(_CATALOG))


_validate_catalog()


__all__ = [
    "AutoSize",
    "CardLayout",
    "Dependency",
    "FieldSpec",
    "ImageSlot",
    "LayoutError",
    "ShiftRule",
    "check_variant",
    "dependency_order",
    "layout_for",
    "positions_for",
    "validate_layout",
]
