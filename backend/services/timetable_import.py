"""Bulk timetable import from .xlsx spreadsheets.

Rows are validated independently; every failing row contributes one message to
the error list and nothing is written here. Callers insert ``valid_rows`` as a
single batch once the operator has reviewed the errors.
"""

from __future__ import annotations

import io
import logging
import re
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, time
from typing import Any, Iterable, Sequence

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font


logger = logging.getLogger(__name__)


WEEKDAYS = {
    "monday": 1,
    "tuesday": 2,
    "wednesday": 3,
    "thursday": 4,
    "friday": 5,
    "saturday": 6,
    "sunday": 7,
}
WEEKDAY_ABBREVIATIONS = {name[:3]: num for name, num in WEEKDAYS.items()}

MIN_SEMESTER = 1
MAX_SEMESTER = 12

TEMPLATE_HEADERS = ["day", "subject_name", "batch", "semester_number", "start_time", "end_time"]

_TIME_RE = re.compile(r"^(\d{1,2})\s*:\s*(\d{1,2})(?:\s*:\s*\d{1,2})?$")


class ImportFileError(ValueError):
    """The uploaded file is not a readable spreadsheet."""


@dataclass(frozen=True)
class ImportedEntry:
    row_number: int
    day_of_week: int
    subject_id: uuid.UUID
    batch_id: uuid.UUID
    semester_number: int
    start_time: str
    end_time: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ImportResult:
    valid_rows: list[ImportedEntry] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def _normalize_header(value: Any) -> str:
    return re.sub(r"\s+", "_", str(value or "").strip().lower())


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _first_present(row: dict[str, Any], *keys: str) -> tuple[str | None, Any]:
    for key in keys:
        value = row.get(key)
        if not _is_blank(value):
            return key, value
    return None, None


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    text = str(value).strip()
    if re.fullmatch(r"[+-]?\d+", text):
        return int(text)
    if re.fullmatch(r"[+-]?\d+\.0+", text):
        return int(float(text))
    return None


def parse_day(value: Any) -> int | None:
    """Resolve a weekday number (1-7) or name (Monday=1) to 1-7."""

    number = _as_int(value)
    if number is not None:
        return number if 1 <= number <= 7 else None
    name = str(value).strip().lower()
    return WEEKDAYS.get(name) or WEEKDAY_ABBREVIATIONS.get(name)


def normalize_time(value: Any) -> str | None:
    """Normalize "H:MM" style input to zero-padded "HH:MM"; None when invalid."""

    if isinstance(value, datetime):
        value = value.time()
    if isinstance(value, time):
        return f"{value.hour:02d}:{value.minute:02d}"
    if isinstance(value, float) and 0 <= value < 1:
        # Excel stores bare times as a fraction of a day.
        total_minutes = round(value * 24 * 60)
        if total_minutes >= 24 * 60:
            return None
        return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"

    match = _TIME_RE.match(str(value).strip())
    if match is None:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return None
    return f"{hours:02d}:{minutes:02d}"


def _parse_uuid(value: Any) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value).strip())
    except ValueError:
        return None


def _resolve_batch(raw: Any, key: str, batches: Sequence[Any]) -> Any | None:
    if key == "batch_id":
        wanted = _parse_uuid(raw)
        return next((b for b in batches if b.id == wanted), None)
    name = str(raw).strip().lower()
    return next((b for b in batches if str(b.name).strip().lower() == name), None)


def _resolve_subject(
    raw: Any,
    key: str,
    subjects: Sequence[Any],
    *,
    batch_id: uuid.UUID | None,
    semester_number: int | None,
) -> Any | None:
    if key == "subject_id":
        wanted = _parse_uuid(raw)
        return next((s for s in subjects if s.id == wanted), None)

    name = str(raw).strip().lower()
    candidates = [s for s in subjects if str(s.name).strip().lower() == name]
    if len(candidates) > 1 and batch_id is not None:
        # Same subject name taught to several batches: prefer the row's batch/semester.
        narrowed = [s for s in candidates if s.batch_id == batch_id]
        if semester_number is not None:
            narrowed = [s for s in narrowed if s.semester_number == semester_number] or narrowed
        candidates = narrowed or candidates
    return candidates[0] if candidates else None


def validate_row(
    row: dict[str, Any],
    row_number: int,
    *,
    subjects: Sequence[Any],
    batches: Sequence[Any],
) -> tuple[ImportedEntry | None, list[str]]:
    problems: list[str] = []

    day_key, day_raw = _first_present(row, "day_of_week", "day")
    day = parse_day(day_raw) if day_key else None
    if day_key is None:
        problems.append("missing day_of_week/day")
    elif day is None:
        problems.append(f"invalid day {day_raw!r} (expected 1-7 or a weekday name)")

    semester: int | None = None
    sem_key, sem_raw = _first_present(row, "semester_number", "semester")
    if sem_key is not None:
        semester = _as_int(sem_raw)
        if semester is None or not (MIN_SEMESTER <= semester <= MAX_SEMESTER):
            problems.append(f"invalid semester {sem_raw!r} (expected {MIN_SEMESTER}-{MAX_SEMESTER})")
            semester = None

    batch = None
    batch_key, batch_raw = _first_present(row, "batch_id", "batch", "batch_name")
    if batch_key is None:
        problems.append("missing batch_id/batch")
    else:
        batch = _resolve_batch(batch_raw, batch_key, batches)
        if batch is None:
            problems.append(f"unknown batch {batch_raw!r}")

    subject = None
    subject_key, subject_raw = _first_present(row, "subject_id", "subject_name", "subject")
    if subject_key is None:
        problems.append("missing subject_id/subject_name")
    else:
        subject = _resolve_subject(
            subject_raw,
            subject_key,
            subjects,
            batch_id=batch.id if batch is not None else None,
            semester_number=semester,
        )
        if subject is None:
            problems.append(f"unknown subject {subject_raw!r}")

    times: dict[str, str | None] = {}
    for key in ("start_time", "end_time"):
        raw = row.get(key)
        if _is_blank(raw):
            problems.append(f"missing {key}")
            times[key] = None
            continue
        times[key] = normalize_time(raw)
        if times[key] is None:
            problems.append(f"invalid {key} {raw!r} (expected HH:MM)")

    start, end = times["start_time"], times["end_time"]
    if start is not None and end is not None and not start < end:
        problems.append(f"start_time {start} must be before end_time {end}")

    if semester is None and sem_key is None and subject is not None:
        semester = int(subject.semester_number)

    if problems:
        return None, problems

    return (
        ImportedEntry(
            row_number=row_number,
            day_of_week=int(day),
            subject_id=subject.id,
            batch_id=batch.id,
            semester_number=int(semester),
            start_time=str(start),
            end_time=str(end),
        ),
        [],
    )


def validate_rows(
    rows: Iterable[dict[str, Any]],
    *,
    subjects: Sequence[Any],
    batches: Sequence[Any],
    first_row_number: int = 2,
) -> ImportResult:
    """Validate spreadsheet rows; the header is row 1 so data starts at row 2."""

    result = ImportResult()
    for offset, raw in enumerate(rows):
        row_number = first_row_number + offset
        row = {_normalize_header(k): v for k, v in raw.items()}
        if all(_is_blank(v) for v in row.values()):
            continue
        entry, problems = validate_row(row, row_number, subjects=subjects, batches=batches)
        if entry is None:
            result.errors.append(f"Row {row_number}: " + "; ".join(problems))
        else:
            result.valid_rows.append(entry)
    return result


def read_xlsx_rows(data: bytes) -> list[dict[str, Any]]:
    """Read the first worksheet into header-keyed dicts, one per data row."""

    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except Exception as exc:
        logger.warning("Unreadable timetable spreadsheet (%d bytes)", len(data), exc_info=exc)
        raise ImportFileError("Could not read spreadsheet; upload an .xlsx file") from exc

    try:
        sheet = workbook.worksheets[0]
        rows_iter = sheet.iter_rows(values_only=True)
        header = next(rows_iter, None)
        if header is None:
            return []
        keys = [_normalize_header(h) for h in header]
        out: list[dict[str, Any]] = []
        for values in rows_iter:
            out.append({k: v for k, v in zip(keys, values) if k})
        return out
    finally:
        workbook.close()


def build_template() -> bytes:
    """An .xlsx file with the import header row and one example row."""

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "timetable"
    sheet.append(TEMPLATE_HEADERS)
    sheet.append(["Monday", "Mathematics", "2023-2027", 1, "09:00", "10:00"])
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    for column in "ABCDEF":
        sheet.column_dimensions[column].width = 18

    buf = io.BytesIO()
    workbook.save(buf)
    return buf.getvalue()
