"""
Student Bulk Import Router
Lets administrators upload a CSV (or Excel) file of students and create
them on the CBT backend in one bulk request.
"""

import io
import logging
import re
from typing import Iterable, List

import pandas as pd
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from starlette.concurrency import run_in_threadpool

from errors import ConsoleError, ValidationError
from routers.students import get_roster_screen
from schemas.cbt import CSV_COLUMNS, StudentDraft

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bulk-import", tags=["Bulk Import"])

# First line is a header when its first four fields look like these
HEADER_PATTERNS = [re.compile(p, re.IGNORECASE) for p in ("name", "student", "class", "sex")]

MIN_FIELDS = 4


# ==========================================
#   PARSING (text / sheet -> rows)
# ==========================================

def looks_like_header(fields: List[str]) -> bool:
    return all(p.search(f) for p, f in zip(HEADER_PATTERNS, fields[:MIN_FIELDS]))


def rows_from_fields(records: Iterable[List[str]]) -> List[StudentDraft]:
    """Turn split records into student rows; short records are skipped silently."""
    rows = []
    for i, fields in enumerate(records):
        if len(fields) < MIN_FIELDS:
            continue
        if i == 0 and looks_like_header(fields):
            continue
        rows.append(StudentDraft(
            name=fields[0],
            student_id=fields[1],
            class_level=fields[2],
            sex=fields[3],
        ))
    return rows


def parse_roster_csv(text: str) -> List[StudentDraft]:
    """
    Parse uploaded CSV text into student rows.

    Columns are name, studentId, classLevel, sex. Lines are trimmed and
    blank ones dropped; fields are split on every comma with no quoting
    support, so a name containing a comma shifts the remaining columns.
    """
    lines = [line.strip() for line in re.split(r"\r?\n|\r", text)]
    records = [[part.strip() for part in line.split(",")] for line in lines if line]
    return rows_from_fields(records)


def parse_roster_excel(contents: bytes) -> List[StudentDraft]:
    """Same rules as the CSV parser, reading the first sheet of an .xlsx workbook."""
    df = pd.read_excel(io.BytesIO(contents), header=None, dtype=str, engine="openpyxl")
    df = df.dropna(how="all")

    records = []
    for _, row in df.iterrows():
        fields = ["" if pd.isna(v) else str(v).strip() for v in row.tolist()]
        while fields and fields[-1] == "":
            fields.pop()
        if fields:
            records.append(fields)
    return rows_from_fields(records)


def parse_upload(filename: str, contents: bytes) -> List[StudentDraft]:
    name = (filename or "").lower()
    if name.endswith(".xlsx"):
        try:
            return parse_roster_excel(contents)
        except Exception as e:
            logger.warning("Unreadable workbook %s: %s", filename, e)
            raise ValidationError("Could not read the Excel file") from e
    try:
        text = contents.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ValidationError("CSV file must be UTF-8 text") from e
    return parse_roster_csv(text)


# ==========================================
#   UPLOAD ENDPOINT
# ==========================================

@router.post("/students")
async def bulk_import_students(file: UploadFile = File(...), screen=Depends(get_roster_screen)):
    contents = await file.read()
    try:
        rows = parse_upload(file.filename, contents)
        summary = await run_in_threadpool(screen.import_rows, rows)
    except ConsoleError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return summary.to_api()


@router.get("/template")
async def get_sample_template():
    """Describes the expected upload layout."""
    return {
        "columns": CSV_COLUMNS,
        "accepted_files": [".csv", ".xlsx"],
        "notes": [
            "One student per line, fields separated by commas",
            "A first line whose columns read like name, student, class, sex is treated as a header and skipped",
            "Lines with fewer than 4 fields are ignored",
            "Fields are not quoted: names must not contain commas",
        ],
    }
