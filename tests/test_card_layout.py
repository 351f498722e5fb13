import dataclasses
import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from card_layout import (
    AutoSize,
    CardLayout,
    Dependency,
    FieldSpec,
    LayoutError,
    ShiftRule,
    check_variant,
    dependency_order,
    layout_for,
    positions_for,
    validate_layout,
)


class CatalogTests(unittest.TestCase):
    def test_every_variant_has_a_layout(self):
        for orientation in ("landscape", "portrait"):
            front = positions_for(orientation, "front")
            back = positions_for(orientation, "back")
            for name in ("schoolName", "schoolAddress", "name", "sequenceId", "classSection", "dob", "bloodGroup"):
                self.assertIn(name, front)
            for name in ("address", "mobile", "returnSchoolName", "returnSchoolEmail"):
                self.assertIn(name, back)

    def test_front_layouts_carry_photo_and_logo_slots(self):
        for orientation in ("landscape", "portrait"):
            layout = layout_for(orientation, "front")
            self.assertEqual(set(layout.images), {"logo", "photo"})

    def test_template_dimensions(self):
        self.assertEqual((layout_for("landscape", "front").width, layout_for("landscape", "front").height), (1012, 638))
        self.assertEqual((layout_for("portrait", "back").width, layout_for("portrait", "back").height), (638, 1012))

    def test_lookup_is_case_insensitive(self):
        self.assertIs(layout_for(" Landscape ", "FRONT"), layout_for("landscape", "front"))
        self.assertEqual(check_variant("Portrait", "Back"), ("portrait", "back"))

    def test_unknown_variant_is_rejected(self):
        with self.assertRaises(LayoutError):
            positions_for("diagonal", "front")
        with self.assertRaises(LayoutError):
            positions_for("landscape", "middle")

    def test_layout_error_is_a_value_error(self):
        self.assertTrue(issubclass(LayoutError, ValueError))

    def test_catalog_layouts_validate(self):
        for orientation in ("landscape", "portrait"):
            for side in ("front", "back"):
                validate_layout(layout_for(orientation, side))

    def test_field_specs_are_immutable(self):
        spec = positions_for("landscape", "front")["name"]
        with self.assertRaises(dataclasses.FrozenInstanceError):
            spec.x = 10

    def test_missing_field_lookup_raises_layout_error(self):
        with self.assertRaises(LayoutError):
            layout_for("landscape", "back").field("schoolName")


class DependencyOrderTests(unittest.TestCase):
    def test_dependencies_come_first(self):
        fields = positions_for("landscape", "back")
        order = list(dependency_order(fields))
        self.assertEqual(sorted(order), sorted(fields))
        for name, spec in fields.items():
            if spec.depends_on is not None:
                self.assertLess(order.index(spec.depends_on.on), order.index(name))

    def test_declaration_order_kept_without_dependencies(self):
        fields = {
            "b": FieldSpec("b", 0, 0),
            "a": FieldSpec("a", 0, 0),
        }
        self.assertEqual(list(dependency_order(fields)), ["b", "a"])

    def test_out_of_order_declaration_is_sorted(self):
        fields = {
            "child": FieldSpec("child", 0, 0, depends_on=Dependency("parent")),
            "parent": FieldSpec("parent", 0, 0),
        }
        self.assertEqual(list(dependency_order(fields)), ["parent", "child"])

    def test_cycle_is_rejected(self):
        fields = {
            "a": FieldSpec("a", 0, 0, depends_on=Dependency("b")),
            "b": FieldSpec("b", 0, 0, depends_on=Dependency("a")),
        }
        with self.assertRaises(LayoutError) as ctx:
            dependency_order(fields)
        self.assertIn("Cyclic", str(ctx.exception))

    def test_unknown_dependency_is_rejected(self):
        fields = {"a": FieldSpec("a", 0, 0, depends_on=Dependency("ghost"))}
        with self.assertRaises(LayoutError):
            dependency_order(fields)

    def test_shift_rule_with_unknown_target_is_rejected(self):
        layout = CardLayout(
            orientation="landscape",
            side="front",
            width=10,
            height=10,
            fields={"name": FieldSpec("name", 0, 0)},
            shifts=(ShiftRule(targets=("nickname",), dx=5),),
        )
        with self.assertRaises(LayoutError):
            validate_layout(layout)

    def test_minimum_font_above_nominal_is_rejected(self):
        layout = CardLayout(
            orientation="landscape",
            side="front",
            width=10,
            height=10,
            fields={"title": FieldSpec("title", 0, 0, font_size=12, auto_size=AutoSize(min_font_size=14))},
        )
        with self.assertRaises(LayoutError):
            validate_layout(layout)


class LineHeightTests(unittest.TestCase):
    def test_default_line_height_scales_font_size(self):
        self.assertAlmostEqual(FieldSpec("f", 0, 0, font_size=20).effective_line_height(), 24.0)

    def test_explicit_line_height_scales_with_fitted_size(self):
        spec = FieldSpec("f", 0, 0, font_size=34, line_height=38)
        self.assertEqual(spec.effective_line_height(), 38.0)
        self.assertAlmostEqual(spec.effective_line_height(17), 19.0)


class ShiftRuleTests(unittest.TestCase):
    def test_short_single_line_name_matches(self):
        rule = ShiftRule(targets=("name",), dx=25, max_chars=12)
        self.assertTrue(rule.matches("Asha Rao", 1))
        self.assertFalse(rule.matches("Asha Rao", 2))
        self.assertFalse(rule.matches("Alexandria Robertson", 1))

    def test_minimum_length_threshold(self):
        rule = ShiftRule(targets=("name",), dx=-60, min_chars=16)
        self.assertTrue(rule.matches("Jonathan Kowalski", 1))
        self.assertFalse(rule.matches("Catherine Moss", 1))

    def test_landscape_short_name_shifts_name_fields_only(self):
        layout = layout_for("landscape", "front")
        self.assertEqual(layout.shift_for("name", "Asha", 1), (25, 0))
        self.assertEqual(layout.shift_for("nameLabel", "Asha", 1), (25, 0))
        self.assertEqual(layout.shift_for("sequenceId", "Asha", 1), (0, 0))

    def test_portrait_thresholds(self):
        layout = layout_for("portrait", "front")
        self.assertEqual(layout.shift_for("name", "Li Wei", 1), (30, 0))
        self.assertEqual(layout.shift_for("name", "Catherine Moss", 1), (0, 0))
        self.assertEqual(layout.shift_for("name", "Jonathan Kowalski", 1), (-60, 0))
        self.assertEqual(layout.shift_for("name", "Jonathan Kowalski", 2), (0, 0))


if __name__ == "__main__":
    unittest.main()
