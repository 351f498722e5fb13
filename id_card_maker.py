"""Generate personalised ID card PNGs, singly or in bulk."""
from __future__ import annotations

import argparse
import base64
import dataclasses
import logging
import time
import uuid
import zipfile
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, List, Optional, Sequence

from asset_loader import AssetLoader, TemplateNotFoundError, load_template
from card_config import (
    DEFAULT_PREVIEW_LIMIT,
    ORIENTATIONS,
    ZIP_COMPRESS_LEVEL,
    CardConfig,
    configure_logging,
)
from card_layout import check_variant
from card_planner import plan_card
from card_renderer import CardRenderer
from id_card_records import (
    SchoolInfo,
    StudentRecord,
    load_student_records,
    sanitize_filename_component,
)

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class GenerationResult:
    student_id: str
    sequence_id: str
    student_name: str = ""
    front_path: Optional[Path] = None
    back_path: Optional[Path] = None
    front_buffer: Optional[bytes] = None
    back_buffer: Optional[bytes] = None


@dataclasses.dataclass
class GenerationFailure:
    student_id: str
    student_name: str
    error_message: str


@dataclasses.dataclass
class BatchResult:
    successes: List[GenerationResult] = dataclasses.field(default_factory=list)
    failures: List[GenerationFailure] = dataclasses.field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.successes) + len(self.failures)


def student_folder_name(student: StudentRecord) -> str:
    ident = student.card_identifier
    return f"{ident}_{sanitize_filename_component(student.name, 'student')}"


def archive_entry_name(student: StudentRecord, side: str, folder: Optional[str] = None) -> str:
    folder = folder or student_folder_name(student)
    return f"{folder}/{student.card_identifier}_{side}.png"


def archive_filename(school: SchoolInfo, timestamp: Optional[int] = None) -> str:
    stamp = int(time.time() * 1000) if timestamp is None else timestamp
    return f"IDCards_{sanitize_filename_component(school.name, 'School')}_{stamp}.zip"


def _data_uri(buffer: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(buffer).decode("ascii")


class IDCardMaker:
    """Produce card images from student and school records."""

    def __init__(
        self,
        config: Optional[CardConfig] = None,
        *,
        loader: Optional[AssetLoader] = None,
        renderer: Optional[CardRenderer] = None,
    ) -> None:
        self.config = config or CardConfig()
        self.loader = loader or AssetLoader(
            template_dir=self.config.template_dir,
            asset_root=self.config.asset_root,
            timeout=self.config.fetch_timeout,
        )
        self.renderer = renderer or CardRenderer(self.loader, self.config)

    def check_templates(self, orientation: str, sides: Sequence[str]) -> None:
        for side in sides:
            load_template(self.loader.template_dir, orientation, side)

    def generate_card_buffer(
        self,
        student: StudentRecord,
        orientation: str,
        side: str,
        school: SchoolInfo,
        warnings: Optional[List[str]] = None,
    ) -> bytes:
        """Render one card face in memory.

        Raises :class:`TemplateNotFoundError` when the template PNG is absent;
        missing photos or logos only drop that element.
        """

        orientation, side = check_variant(orientation, side)
        template = self.loader.load_template(orientation, side)
        layers = plan_card(student, school, orientation, side)
        logger.info(
            "Rendering %s %s card for %s (%d layers)", orientation, side, student.name, len(layers)
        )
        return self.renderer.render(template, layers, warnings)

    def _write_card(
        self, buffer: bytes, student: StudentRecord, orientation: str, side: str
    ) -> Path:
        output_dir = Path(self.config.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        filename = "{}_{}_{}_{}_{}.png".format(
            sanitize_filename_component(student.name, "student"),
            sanitize_filename_component(student.card_identifier, "card"),
            orientation,
            side,
            uuid.uuid4().hex[:12],
        )
        path = output_dir / filename
        path.write_bytes(buffer)
        logger.info("ID card generated: %s", path.name)
        return path

    def generate_card_file(
        self, student: StudentRecord, orientation: str, side: str, school: SchoolInfo
    ) -> Path:
        """Render one card face into the output directory under a fresh name."""

        buffer = self.generate_card_buffer(student, orientation, side, school)
        return self._write_card(buffer, student, orientation, side)

    def _generate_student(
        self,
        student: StudentRecord,
        orientation: str,
        include_back: bool,
        school: SchoolInfo,
        write_files: bool,
        keep_buffers: bool = True,
    ) -> GenerationResult:
        result = GenerationResult(
            student_id=student.student_id,
            sequence_id=student.card_identifier,
            student_name=student.name,
        )
        sides = ("front", "back") if include_back else ("front",)
        written: List[Path] = []
        for side in sides:
            try:
                buffer = self.generate_card_buffer(student, orientation, side, school)
                if write_files:
                    path = self._write_card(buffer, student, orientation, side)
                    written.append(path)
                    setattr(result, f"{side}_path", path)
                if keep_buffers or not write_files:
                    setattr(result, f"{side}_buffer", buffer)
            except Exception as exc:
                for path in written:
                    path.unlink(missing_ok=True)
                raise RuntimeError(f"{side} side failed: {exc}") from exc
        return result

    def generate_batch(
        self,
        students: Iterable[StudentRecord],
        orientation: str,
        include_back: bool,
        school: SchoolInfo,
        *,
        write_files: bool = False,
        keep_buffers: bool = False,
    ) -> BatchResult:
        """Generate cards for every student, isolating per-student failures.

        With ``write_files`` the PNGs are saved to the output directory and
        only their paths are returned, unless ``keep_buffers`` is also set.
        Only a missing template aborts the batch, and it does so before any
        student is processed.
        """

        sides = ("front", "back") if include_back else ("front",)
        self.check_templates(orientation, sides)

        batch = BatchResult()
        for student in students:
            try:
                batch.successes.append(
                    self._generate_student(
                        student, orientation, include_back, school, write_files, keep_buffers
                    )
                )
            except Exception as exc:
                logger.error("Failed to generate ID card for %s: %s", student.name, exc)
                batch.failures.append(GenerationFailure(student.student_id, student.name, str(exc)))

        logger.info(
            "Batch complete: %d generated, %d failed", len(batch.successes), len(batch.failures)
        )
        return batch

    def write_batch_archive(
        self,
        students: Iterable[StudentRecord],
        orientation: str,
        include_back: bool,
        school: SchoolInfo,
        stream: BinaryIO,
    ) -> BatchResult:
        """Stream a ZIP of generated cards, one folder per student, into ``stream``.

        Students that share a folder name get a numeric suffix (``_2``, ``_3``)
        so no entry is overwritten on extraction.
        """

        sides = ("front", "back") if include_back else ("front",)
        self.check_templates(orientation, sides)

        batch = BatchResult()
        folders: Dict[str, int] = {}
        with zipfile.ZipFile(
            stream, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=ZIP_COMPRESS_LEVEL
        ) as archive:
            for student in students:
                try:
                    result = self._generate_student(student, orientation, include_back, school, False)
                except Exception as exc:
                    logger.error("Failed to generate cards for %s: %s", student.name, exc)
                    batch.failures.append(GenerationFailure(student.student_id, student.name, str(exc)))
                    continue

                folder = student_folder_name(student)
                folders[folder] = folders.get(folder, 0) + 1
                if folders[folder] > 1:
                    unique = f"{folder}_{folders[folder]}"
                    logger.warning("Duplicate archive folder %s for %s, using %s", folder, student.name, unique)
                    folder = unique
                for side in sides:
                    archive.writestr(
                        archive_entry_name(student, side, folder), getattr(result, f"{side}_buffer")
                    )
                batch.successes.append(result)
                logger.info("Added cards for: %s", student.name)
        return batch

    def generate_previews(
        self,
        students: Sequence[StudentRecord],
        orientation: str,
        include_back: bool,
        school: SchoolInfo,
        *,
        limit: int = DEFAULT_PREVIEW_LIMIT,
    ) -> Dict[str, object]:
        """Render up to ``limit`` students as base64 data URIs."""

        selected = list(students)[: max(0, limit)]
        previews = []
        for student in selected:
            try:
                result = self._generate_student(student, orientation, include_back, school, False)
            except Exception as exc:
                logger.error("Preview failed for %s: %s", student.name, exc)
                continue
            previews.append(
                {
                    "studentId": student.student_id,
                    "studentName": student.name,
                    "sequenceId": student.sequence_id,
                    "front": _data_uri(result.front_buffer),
                    "back": _data_uri(result.back_buffer) if result.back_buffer else None,
                }
            )
        return {
            "previews": previews,
            "orientation": orientation,
            "includeBack": include_back,
            "totalRequested": len(students),
            "totalGenerated": len(previews),
            "limited": len(students) > limit,
        }


def generate_id_cards(
    records: Iterable[StudentRecord],
    school: SchoolInfo,
    *,
    orientation: str = "landscape",
    include_back: bool = True,
    config: Optional[CardConfig] = None,
) -> BatchResult:
    return IDCardMaker(config).generate_batch(
        records, orientation, include_back, school, write_files=True
    )


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    defaults = CardConfig()
    parser = argparse.ArgumentParser(description="Generate student ID cards from a CSV or Excel sheet.")
    parser.add_argument("records", type=Path, help="CSV/XLSX file with one student per row")
    parser.add_argument("--school-name", required=True, help="School name printed on the cards")
    parser.add_argument("--school-address", default="", help="Formatted school address")
    parser.add_argument("--school-logo", default=None, help="Logo path or URL")
    parser.add_argument("--school-phone", default="", help="School phone number")
    parser.add_argument("--school-email", default="", help="School email address")
    parser.add_argument("--orientation", choices=ORIENTATIONS, default="landscape")
    parser.add_argument("--no-back", dest="include_back", action="store_false", help="Skip back sides")
    parser.add_argument(
        "--template-dir", type=Path, default=defaults.template_dir, help="Directory with the PNG templates"
    )
    parser.add_argument(
        "--output-dir", type=Path, default=defaults.output_dir, help="Directory for generated PNG files"
    )
    parser.add_argument(
        "--asset-root", type=Path, default=defaults.asset_root, help="Root for /uploads/... photo paths"
    )
    parser.add_argument("--zip", dest="zip_path", type=Path, default=None, help="Write a ZIP archive instead")
    parser.add_argument("--sheet", dest="sheet_path", type=Path, default=None, help="Also write an A3 print PDF")
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    configure_logging(args.log_level)

    config = CardConfig(
        template_dir=args.template_dir,
        output_dir=args.output_dir,
        asset_root=args.asset_root,
    )
    school = SchoolInfo(
        name=args.school_name,
        address=args.school_address,
        logo=args.school_logo,
        phone=args.school_phone,
        email=args.school_email,
    )
    students = load_student_records(args.records)
    maker = IDCardMaker(config)

    try:
        if args.zip_path is not None:
            args.zip_path.parent.mkdir(parents=True, exist_ok=True)
            with args.zip_path.open("wb") as handle:
                batch = maker.write_batch_archive(students, args.orientation, args.include_back, school, handle)
        else:
            batch = maker.generate_batch(
                students,
                args.orientation,
                args.include_back,
                school,
                write_files=True,
                keep_buffers=args.sheet_path is not None,
            )
    except TemplateNotFoundError as exc:
        logger.error("%s", exc)
        return 2

    if args.sheet_path is not None and batch.successes:
        from id_card_a3_layout import make_sheet

        cards = [(result.front_buffer, result.back_buffer) for result in batch.successes]
        pages = make_sheet(cards, args.sheet_path, args.orientation)
        logger.info("Wrote %d sheet page(s) to %s", pages, args.sheet_path)

    for failure in batch.failures:
        logger.warning("%s (%s): %s", failure.student_name, failure.student_id, failure.error_message)
    print(f"Generated {len(batch.successes)} ID card(s), {len(batch.failures)} failed")
    return 0 if batch.successes or not batch.failures else 1


if __name__ == "__main__":
    raise SystemExit(main())
