"""Student and school value objects consumed by the card engine."""
from __future__ import annotations

import dataclasses
import datetime as dt
import math
import re
from pathlib import Path
from typing import Iterable, List, Mapping, Optional

import pandas as pd

from card_config import PLACEHOLDER

_STUDENT_KEYS = {
    "student_id": ("student_id", "_id", "id"),
    "name": ("name", "student_name", "studentName"),
    "sequence_id": ("sequence_id", "sequenceId", "user_id", "userId"),
    "roll_number": ("roll_number", "rollNumber"),
    "class_name": ("class_name", "className", "class"),
    "section": ("section",),
    "date_of_birth": ("date_of_birth", "dateOfBirth", "dob"),
    "blood_group": ("blood_group", "bloodGroup"),
    "address": ("address",),
    "phone": ("phone", "contactNumber", "mobile"),
    "photo": ("photo", "profileImage", "profile_image"),
}

_SCHOOL_KEYS = {
    "name": ("name", "schoolName", "school_name"),
    "address": ("address",),
    "logo": ("logo", "logoUrl", "logo_url"),
    "phone": ("phone",),
    "email": ("email",),
}


def _is_missing(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, float):
        return math.isnan(value)
    return False


def _normalise_string(value: object, default: str = "") -> str:
    if _is_missing(value):
        return default
    value_str = str(value).strip()
    return value_str if value_str else default


def _pick(record: Mapping[str, object], keys: Iterable[str]) -> str:
    for key in keys:
        value = _normalise_string(record.get(key))
        if value:
            return value
    return ""


def sanitize_filename_component(value: str, fallback: str) -> str:
    value = _normalise_string(value)
    if not value:
        value = fallback
    sanitized = re.sub(r"[^A-Za-z0-9]+", "_", value)
    sanitized = re.sub(r"_+", "_", sanitized).strip("_")
    return sanitized or fallback


def display_value(value: Optional[str]) -> str:
    return _normalise_string(value, PLACEHOLDER)


def display_date(value: object) -> str:
    """Render a date of birth for the card.

    Strings arrive already formatted and are printed as given; only
    ``date``/``datetime`` values are formatted here, as ``DD/MM/YYYY``.
    """

    if isinstance(value, (dt.date, dt.datetime)):
        return value.strftime("%d/%m/%Y")
    return display_value(value)


@dataclasses.dataclass(frozen=True)
class StudentRecord:
    student_id: str
    name: str
    sequence_id: str = ""
    roll_number: str = ""
    class_name: str = ""
    section: str = ""
    date_of_birth: str = ""
    blood_group: str = ""
    address: str = ""
    phone: str = ""
    photo: Optional[str] = None

    @classmethod
    def from_mapping(cls, record: Mapping[str, object]) -> "StudentRecord":
        values = {field: _pick(record, keys) for field, keys in _STUDENT_KEYS.items()}
        dob_raw = next(
            (record.get(key) for key in _STUDENT_KEYS["date_of_birth"] if not _is_missing(record.get(key))),
            None,
        )
        if isinstance(dob_raw, (dt.date, dt.datetime)):
            values["date_of_birth"] = display_date(dob_raw)
        values["photo"] = values["photo"] or None
        return cls(**values)

    @property
    def card_identifier(self) -> str:
        """Sequence id, then roll number, then the internal id."""

        for candidate in (self.sequence_id, self.roll_number, self.student_id):
            value = _normalise_string(candidate)
            if value and value != PLACEHOLDER:
                return value
        return "student"

    @property
    def class_section(self) -> str:
        class_name = _normalise_string(self.class_name)
        section = _normalise_string(self.section)
        if class_name and section:
            return f"{class_name} - {section}"
        return class_name or PLACEHOLDER


@dataclasses.dataclass(frozen=True)
class SchoolInfo:
    name: str
    address: str = ""
    logo: Optional[str] = None
    phone: str = ""
    email: str = ""

    @classmethod
    def from_mapping(cls, record: Mapping[str, object]) -> "SchoolInfo":
        values = {field: _pick(record, keys) for field, keys in _SCHOOL_KEYS.items()}
        values["logo"] = values["logo"] or None
        return cls(**values)


def load_student_records(path: Path) -> List[StudentRecord]:
    """Read student rows from a CSV or Excel sheet."""

    path = Path(path)
    if path.suffix.lower() in {".xlsx", ".xls"}:
        frame = pd.read_excel(path, dtype=str)
    else:
        frame = pd.read_csv(path, dtype=str, encoding="utf-8-sig")
    frame = frame.where(pd.notna(frame), None)

    records = []
    for index, row in enumerate(frame.to_dict(orient="records"), start=1):
        if not _pick(row, _STUDENT_KEYS["student_id"]):
            row["student_id"] = str(index)
        records.append(StudentRecord.from_mapping(row))
    return records


__all__ = [
    "SchoolInfo",
    "StudentRecord",
    "display_date",
    "display_value",
    "load_student_records",
    "sanitize_filename_component",
]
