import io
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from PIL import Image

from card_layout import layout_for
from id_card_records import SchoolInfo, StudentRecord


def png_bytes(color, size=(40, 40)):
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def write_png(path, color, size=(40, 40)):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(png_bytes(color, size))
    return path


def write_templates(directory, skip=()):
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    for orientation in ("landscape", "portrait"):
        for side in ("front", "back"):
            if (orientation, side) in skip:
                continue
            layout = layout_for(orientation, side)
            write_png(
                directory / f"{orientation}-{side}.png",
                (255, 255, 255, 255),
                (layout.width, layout.height),
            )
    return directory


def make_student(**overrides):
    values = dict(
        student_id="64f0c0ffee",
        name="Asha Rao",
        sequence_id="STU-001",
        roll_number="17",
        class_name="5",
        section="A",
        date_of_birth="09/03/2014",
        blood_group="O+",
        address="12 Lake View Road, Springfield",
        phone="9876543210",
        photo=None,
    )
    values.update(overrides)
    return StudentRecord(**values)


def make_school(**overrides):
    values = dict(
        name="Greenwood International Public School",
        address="45 Park Street, Springfield",
        logo=None,
        phone="0123456",
        email="office@greenwood.edu",
    )
    values.update(overrides)
    return SchoolInfo(**values)
