"""
Student interchange - CSV/Excel export and bulk import.

Files use the console's column names (nom, prenom, email, ...), so an
exported file can be edited and imported back.
"""

import csv
import io
import zipfile
from datetime import date, datetime

import openpyxl
import pydantic
import structlog
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.exceptions import ConflictError, ValidationError
from backoffice.models.student import Student
from backoffice.schemas.student import ImportResult, ImportRowError, StudentCreate
from backoffice.services.student import ensure_unique

logger = structlog.get_logger(__name__)

EXPORT_COLUMNS = [
    ("idApprenant", "id"),
    ("nom", "last_name"),
    ("prenom", "first_name"),
    ("email", "email"),
    ("telephone", "phone"),
    ("adresse", "address"),
    ("dateNaissance", "birth_date"),
    ("cin", "cin"),
]
IMPORT_COLUMNS = [header for header, _ in EXPORT_COLUMNS if header != "idApprenant"]

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
EXCEL_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _cell(student: Student, attribute: str):
    value = getattr(student, attribute)
    return "" if value is None else value


def export_csv(students: list[Student]) -> bytes:
    """Students as CSV, UTF-8 with a BOM so spreadsheet tools detect the encoding."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow([header for header, _ in EXPORT_COLUMNS])
    for student in students:
        row = []
        for _, attribute in EXPORT_COLUMNS:
            value = _cell(student, attribute)
            row.append(value.isoformat() if isinstance(value, date) else value)
        writer.writerow(row)

    logger.info("students_exported", format="csv", rows=len(students))
    return buffer.getvalue().encode("utf-8-sig")


def export_excel(students: list[Student]) -> bytes:
    """Students as an .xlsx workbook with a styled header row."""
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Apprenants"

    header_fill = PatternFill(start_color="2563eb", end_color="2563eb", fill_type="solid")
    header_font = Font(bold=True, color="FFFFFF")
    for col, (header, _) in enumerate(EXPORT_COLUMNS, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = header_font
        cell.fill = header_fill

    for row, student in enumerate(students, 2):
        for col, (_, attribute) in enumerate(EXPORT_COLUMNS, 1):
            value = getattr(student, attribute)
            cell = ws.cell(row=row, column=col, value=value)
            if isinstance(value, date):
                cell.number_format = "yyyy-mm-dd"

    for col in range(1, len(EXPORT_COLUMNS) + 1):
        ws.column_dimensions[get_column_letter(col)].width = 20

    buffer = io.BytesIO()
    wb.save(buffer)

    logger.info("students_exported", format="excel", rows=len(students))
    return buffer.getvalue()


def _read_csv(content: bytes) -> list[dict]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationError("CSV files must be UTF-8 encoded")
    reader = csv.DictReader(io.StringIO(text))
    return [dict(row) for row in reader]


def _read_excel(content: bytes) -> list[dict]:
    try:
        wb = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise ValidationError("Unreadable Excel file", details=str(exc))

    try:
        rows = wb.active.iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            return []
        keys = [str(h).strip() if h is not None else "" for h in header]

        records = []
        for values in rows:
            if all(v is None for v in values):
                continue
            records.append(dict(zip(keys, values)))
        return records
    finally:
        wb.close()


def _normalize(record: dict) -> dict:
    """Keep the known columns; blank cells become missing, Excel values become text."""
    data = {}
    for column in IMPORT_COLUMNS:
        value = record.get(column)
        if isinstance(value, datetime):
            value = value.date()
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(int(value)) if float(value).is_integer() else str(value)
        elif isinstance(value, str):
            value = value.strip() or None
        if value is not None:
            data[column] = value
    return data


def _error_message(exc: pydantic.ValidationError) -> str:
    parts = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        parts.append(f"{field}: {error['msg']}")
    return "; ".join(parts)


def read_rows(filename: str, content: bytes) -> list[dict]:
    """Parse an uploaded CSV or XLSX file into raw row dicts."""
    name = (filename or "").lower()
    if name.endswith(".csv"):
        return _read_csv(content)
    if name.endswith((".xlsx", ".xlsm")):
        return _read_excel(content)
    raise ValidationError(
        "Unsupported file type. Upload a .csv or .xlsx file",
        field_errors={"file": "Unsupported file type"},
    )


async def import_students(db: AsyncSession, filename: str, content: bytes) -> ImportResult:
    """
    Insert every valid row of an uploaded file.

    Invalid rows and rows whose email or CIN is already taken (in the
    database or earlier in the same file) are skipped and reported with
    their row number; the valid ones are inserted.
    """
    records = read_rows(filename, content)
    result = ImportResult(total=len(records))

    for row_number, record in enumerate(records, 1):
        try:
            student_data = StudentCreate.model_validate(_normalize(record))
        except pydantic.ValidationError as exc:
            result.errors.append(ImportRowError(row_number=row_number, message=_error_message(exc)))
            continue

        try:
            await ensure_unique(db, email=student_data.email, cin=student_data.cin)
        except ConflictError as exc:
            result.errors.append(ImportRowError(row_number=row_number, message=exc.message))
            continue

        db.add(Student(
            last_name=student_data.last_name,
            first_name=student_data.first_name,
            email=student_data.email,
            cin=student_data.cin,
            phone=student_data.phone,
            address=student_data.address,
            birth_date=student_data.birth_date,
        ))
        # Flush so later rows of the same file see this one as taken
        await db.flush()
        result.inserted += 1

    await db.commit()
    result.skipped = result.total - result.inserted

    logger.info(
        "students_imported",
        filename=filename,
        total=result.total,
        inserted=result.inserted,
        skipped=result.skipped,
    )
    return result
