import logging
from typing import List, Sequence

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, Response
from fastapi.templating import Jinja2Templates

from config import TEMPLATES_DIR
from errors import ConsoleError
from schemas.cbt import CLASS_LEVELS, CSV_COLUMNS, SEXES, Student, StudentDraft, StudentDraftPatch

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=TEMPLATES_DIR)
router = APIRouter(prefix="/students", tags=["Students"])

CSV_HEADER = ",".join(CSV_COLUMNS)
CSV_TEMPLATE = "name,studentId,classLevel,sex\nJohn Doe,student-001,JSS1,M\nJane Smith,student-002,SS2,F"


# ===============================
#   HELPERS
# ===============================

def filter_students(students: Sequence[Student], query: str) -> List[Student]:
    if not query:
        return list(students)
    needle = query.lower()
    return [
        s for s in students
        if needle in s.name.lower() or needle in s.student_id.lower()
    ]


def serialize_roster_csv(students: Sequence[Student]) -> str:
    """
    Header line plus one comma-joined line per student.
    Values are written as-is: no quoting, so commas inside a name break the row.
    """
    lines = [CSV_HEADER]
    for s in students:
        lines.append(f"{s.name},{s.student_id},{s.class_level or ''},{s.sex or ''}")
    return "\n".join(lines)


def _csv_download(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def get_roster_screen(request: Request):
    return request.app.state.roster_screen


# ===============================
#   1. SPECIFIC ROUTES (keep above /{id})
# ===============================

@router.get("/", response_class=HTMLResponse)
def roster_page(request: Request, screen=Depends(get_roster_screen)):
    screen.refresh()
    return templates.TemplateResponse(request, "students.html", {
        "class_levels": CLASS_LEVELS,
        "sexes": SEXES,
        "stylesheets": request.app.state.settings.stylesheets,
    })


@router.get("/api/filter")
def list_students(search: str = "", refresh: bool = False, screen=Depends(get_roster_screen)):
    if refresh:
        screen.refresh()
    return [s.to_api() for s in screen.filtered(search)]


@router.get("/export")
def export_students(screen=Depends(get_roster_screen)):
    return _csv_download(screen.export_csv(), "students-export.csv")


@router.get("/csv-template")
def download_csv_template():
    return _csv_download(CSV_TEMPLATE, "students-template.csv")


# ADD STUDENT
@router.post("/")
def add_student(
    name: str = Form(""),
    student_id: str = Form("", alias="studentId"),
    class_level: str = Form("", alias="classLevel"),
    sex: str = Form(""),
    screen=Depends(get_roster_screen),
):
    draft = StudentDraft(name=name, student_id=student_id, class_level=class_level, sex=sex)
    try:
        message = screen.add_student(draft)
    except ConsoleError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"message": message}


# ===============================
#   2. EDIT DIALOG
# ===============================

@router.get("/edit")
def get_edit_form(screen=Depends(get_roster_screen)):
    return screen.edit_form.to_api()


@router.patch("/edit")
def update_edit_draft(patch: StudentDraftPatch, screen=Depends(get_roster_screen)):
    try:
        form = screen.update_draft(patch)
    except ConsoleError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return form.to_api()


@router.delete("/edit")
def close_edit_form(screen=Depends(get_roster_screen)):
    screen.close_edit()
    return screen.edit_form.to_api()


@router.post("/edit/submit")
def submit_edit_form(screen=Depends(get_roster_screen)):
    try:
        message = screen.submit_edit()
    except ConsoleError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"message": message}


# ===============================
#   3. DYNAMIC ID ROUTES (keep at the bottom)
# ===============================

@router.get("/{id}")
def get_student_detail(id: str, screen=Depends(get_roster_screen)):
    try:
        student = screen.get_student(id)
    except ConsoleError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {
        **student.to_api(),
        "display": {
            "Name": student.name,
            "Student ID": student.student_id,
            "Class Level": student.class_level or "-",
            "Sex": student.sex or "-",
        },
    }


@router.post("/{id}/edit")
def open_edit_form(id: str, screen=Depends(get_roster_screen)):
    try:
        form = screen.open_edit(id)
    except ConsoleError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return form.to_api()


@router.delete("/{id}")
def delete_student(id: str, screen=Depends(get_roster_screen)):
    try:
        message = screen.delete_student(id)
    except ConsoleError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"message": message}
