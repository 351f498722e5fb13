"""Turn a student and school into an ordered list of card layers.

Planning is a fold over a fixed sequence of steps per card side. Every step
receives the accumulated :class:`PlanState` (layers so far plus the measured
extent of every field planned so far) and returns a new state, so a field
can only ever depend on fields planned before it.
"""
from __future__ import annotations

import dataclasses
import functools
import logging
from types import MappingProxyType
from typing import Callable, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

from card_layout import CardLayout, FieldSpec, LayoutError, layout_for
from id_card_records import SchoolInfo, StudentRecord, display_date, display_value
from text_fit_util import FitResult, chars_for_width, fit_text, wrap_text

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class ImageLayer:
    name: str
    source: str
    left: int
    top: int
    width: int
    height: int
    fit: str = "cover"


@dataclasses.dataclass(frozen=True)
class TextLayer:
    name: str
    lines: Tuple[str, ...]
    left: float
    top: float
    font_size: float
    font_weight: str
    color: str
    max_width: float
    line_height: float

    @property
    def height(self) -> float:
        return len(self.lines) * self.line_height


@dataclasses.dataclass(frozen=True)
class SingleLineText(TextLayer):
    @property
    def text(self) -> str:
        return self.lines[0] if self.lines else ""


@dataclasses.dataclass(frozen=True)
class MultiLineText(TextLayer):
    pass


@dataclasses.dataclass(frozen=True)
class TwoColumnMultiLineText(TextLayer):
    """First line starts at ``left``; the rest start at ``subsequent_left``."""

    subsequent_left: float = 0.0


Layer = Union[ImageLayer, SingleLineText, MultiLineText, TwoColumnMultiLineText]


class FieldExtent(NamedTuple):
    y: float
    height: float
    bottom_y: float
    line_count: int


class PlanState(NamedTuple):
    layers: Tuple[Layer, ...]
    extents: Mapping[str, FieldExtent]

    def add(self, name: str, extent: Optional[FieldExtent], layer: Optional[Layer]) -> "PlanState":
        extents = self.extents
        if extent is not None:
            merged = dict(self.extents)
            merged[name] = extent
            extents = MappingProxyType(merged)
        layers = self.layers + ((layer,) if layer is not None else ())
        return PlanState(layers, extents)


class CardPlan(NamedTuple):
    layout: CardLayout
    layers: Tuple[Layer, ...]
    extents: Mapping[str, FieldExtent]


@dataclasses.dataclass(frozen=True)
class _PlanContext:
    student: StudentRecord
    school: SchoolInfo
    layout: CardLayout
    name: str
    name_lines: int


_Step = Callable[[PlanState, _PlanContext], PlanState]
_ValueGetter = Callable[[StudentRecord, SchoolInfo], Optional[str]]

# Fields whose position follows the student's name when it wraps.
_NAME_FOLLOWERS = frozenset(
    {"sequenceLabel", "sequenceId", "classLabel", "classSection", "dobLabel", "dob"}
)


def _base_char_limit(spec: FieldSpec) -> int:
    if spec.max_chars_per_line is not None:
        return spec.max_chars_per_line
    return chars_for_width(spec.max_width, spec.font_size, spec.font_weight)


def _auto_size(spec: FieldSpec, text: str) -> FitResult:
    """Fit on one line first, then allow one more line at a time.

    Each pass continues from the previous pass's size, so a longer text
    never comes out larger than a shorter one.
    """

    result = FitResult(spec.font_size, _base_char_limit(spec))
    if spec.auto_size is None:
        return result
    for max_lines in range(1, spec.auto_size.max_lines + 1):
        result = fit_text(
            text, result.font_size, result.char_limit, spec.auto_size.min_font_size, max_lines
        )
        if len(wrap_text(text, result.char_limit)) <= max_lines:
            break
    return result


def _wrap_field(spec: FieldSpec, text: str) -> Tuple[Tuple[str, ...], float]:
    if spec.auto_size is not None:
        fitted = _auto_size(spec, text)
        lines = wrap_text(text, fitted.char_limit) if spec.multi_line else [text]
        return tuple(lines), fitted.font_size
    if not spec.multi_line:
        return (text,), spec.font_size
    lines = wrap_text(text, _base_char_limit(spec), spec.subsequent_max_chars_per_line)
    return tuple(lines), spec.font_size


def _resolve_y(state: PlanState, spec: FieldSpec) -> float:
    if spec.depends_on is None:
        return float(spec.y)
    anchor = state.extents.get(spec.depends_on.on)
    if anchor is None:
        raise LayoutError(
            f"Field {spec.name!r} was planned before its dependency {spec.depends_on.on!r}"
        )
    return anchor.bottom_y + spec.depends_on.gap


def _name_extra_height(state: PlanState, layout: CardLayout) -> float:
    extent = state.extents.get("name")
    if extent is None or extent.line_count <= 1:
        return 0.0
    return extent.height - layout.field("name").effective_line_height()


def _build_text_layer(
    spec: FieldSpec, lines: Tuple[str, ...], font_size: float, left: float, top: float, dx: float
) -> TextLayer:
    common = dict(
        name=spec.name,
        lines=lines,
        left=left,
        top=top,
        font_size=font_size,
        font_weight=spec.font_weight,
        color=spec.color,
        max_width=spec.max_width,
        line_height=spec.effective_line_height(font_size),
    )
    if len(lines) == 1:
        return SingleLineText(**common)
    if spec.subsequent_x is not None:
        return TwoColumnMultiLineText(subsequent_left=spec.subsequent_x + dx, **common)
    return MultiLineText(**common)


def _text_step(field_name: str, value: Optional[_ValueGetter] = None) -> _Step:
    def _step(state: PlanState, ctx: _PlanContext) -> PlanState:
        spec = ctx.layout.field(field_name)
        if value is not None:
            text = (value(ctx.student, ctx.school) or "").strip()
        else:
            text = spec.text or ""

        y = _resolve_y(state, spec)
        if not text:
            return state.add(field_name, FieldExtent(y, 0.0, y, 0), None)

        lines, font_size = _wrap_field(spec, text)
        top = y - (len(lines) - 1) * spec.grow_upward
        if field_name in _NAME_FOLLOWERS:
            top += _name_extra_height(state, ctx.layout)
        dx, dy = ctx.layout.shift_for(field_name, ctx.name, ctx.name_lines)
        top += dy
        left = spec.x + dx

        layer = _build_text_layer(spec, lines, font_size, left, top, dx)
        extent = FieldExtent(top, layer.height, top + layer.height, len(lines))
        logger.debug("Planned %s at (%s, %s) with %d line(s)", field_name, left, top, len(lines))
        return state.add(field_name, extent, layer)

    return _step


def _image_step(slot_name: str, source: _ValueGetter) -> _Step:
    def _step(state: PlanState, ctx: _PlanContext) -> PlanState:
        slot = ctx.layout.images.get(slot_name)
        reference = source(ctx.student, ctx.school)
        if slot is None or not reference:
            return state
        layer = ImageLayer(
            name=slot_name,
            source=reference,
            left=slot.x,
            top=slot.y,
            width=slot.width,
            height=slot.height,
            fit=slot.fit,
        )
        extent = FieldExtent(float(slot.y), float(slot.height), float(slot.y + slot.height), 1)
        return state.add(slot_name, extent, layer)

    return _step


def _prefixed(prefix: str, value: str) -> str:
    value = (value or "").strip()
    return f"{prefix}{value}" if value else ""


_FRONT_STEPS: Sequence[_Step] = (
    _image_step("logo", lambda student, school: school.logo),
    _text_step("schoolName", lambda student, school: school.name),
    _text_step("schoolAddress", lambda student, school: school.address),
    _image_step("photo", lambda student, school: student.photo),
    _text_step("nameLabel"),
    _text_step("name", lambda student, school: display_value(student.name)),
    _text_step("sequenceLabel"),
    _text_step("sequenceId", lambda student, school: student.card_identifier),
    _text_step("classLabel"),
    _text_step("classSection", lambda student, school: student.class_section),
    _text_step("dobLabel"),
    _text_step("dob", lambda student, school: display_date(student.date_of_birth)),
    _text_step("bloodGroup", lambda student, school: display_value(student.blood_group)),
)

_BACK_STEPS: Sequence[_Step] = (
    _text_step("address", lambda student, school: display_value(student.address)),
    _text_step("mobileLabel"),
    _text_step("mobile", lambda student, school: display_value(student.phone)),
    _text_step("returnHeading"),
    _text_step("returnSchoolName", lambda student, school: school.name),
    _text_step("returnSchoolAddress", lambda student, school: school.address),
    _text_step("returnSchoolPhone", lambda student, school: _prefixed("Phone: ", school.phone)),
    _text_step("returnSchoolEmail", lambda student, school: _prefixed("Email: ", school.email)),
)


def _name_line_count(layout: CardLayout, name: str) -> int:
    spec = layout.fields.get("name")
    if spec is None:
        return 1
    lines, _ = _wrap_field(spec, name)
    return max(1, len(lines))


def build_plan(
    student: StudentRecord, school: SchoolInfo, orientation: str, side: str
) -> CardPlan:
    layout = layout_for(orientation, side)
    name = display_value(student.name)
    ctx = _PlanContext(
        student=student,
        school=school,
        layout=layout,
        name=name,
        name_lines=_name_line_count(layout, name),
    )
    steps = _FRONT_STEPS if layout.side == "front" else _BACK_STEPS

    state = functools.reduce(
        lambda acc, step: step(acc, ctx), steps, PlanState((), MappingProxyType({}))
    )
    return CardPlan(layout, state.layers, state.extents)


def plan_card(
    student: StudentRecord, school: SchoolInfo, orientation: str, side: str
) -> Tuple[Layer, ...]:
    """Plan the layers for one card face, in paint order."""

    return build_plan(student, school, orientation, side).layers


__all__ = [
    "CardPlan",
    "FieldExtent",
    "ImageLayer",
    "Layer",
    "MultiLineText",
    "PlanState",
    "SingleLineText",
    "TextLayer",
    "TwoColumnMultiLineText",
    "build_plan",
    "plan_card",
]
