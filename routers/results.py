import logging
from typing import Dict, List, Optional, Sequence

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from config import TEMPLATES_DIR, Settings
from errors import NotFoundError
from schemas.cbt import (
    CandidateInfo,
    Exam,
    OverallResult,
    Question,
    ReportPayload,
    Result,
    Student,
    SubjectBreakdown,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/results", tags=["Results"])
templates = Jinja2Templates(directory=TEMPLATES_DIR)

UNKNOWN_EXAM = "Unknown Exam"
REPORT_EXAM_PLACEHOLDER = "Exam Result"
CLASS_LEVEL_PLACEHOLDER = "-"


# ===========================
#   PART 1: FILTER & ORDER
# ===========================

def filter_results(results: Sequence[Result], query: str) -> List[Result]:
    """Keep results whose student name or student id contains the query (case-insensitive)."""
    if not query:
        return list(results)
    needle = query.lower()
    return [
        r for r in results
        if needle in r.student_name.lower() or needle in r.student_id.lower()
    ]


def sort_for_display(results: Sequence[Result]) -> List[Result]:
    # Most recent first. sorted() is stable, so ties keep their filtered order
    return sorted(results, key=lambda r: r.completed_at.timestamp(), reverse=True)


def exam_title(exams: Sequence[Exam], exam_id: str) -> str:
    for exam in exams:
        if exam.id == exam_id:
            return exam.title
    return UNKNOWN_EXAM


# ===========================
#   PART 2: REPORT COMPOSITION
# ===========================

def percentage(correct: int, total: int) -> float:
    return (100 * correct / total) if total > 0 else 0


def subject_breakdown(result: Result, exam: Optional[Exam], questions: Sequence[Question]) -> List[SubjectBreakdown]:
    if exam is None:
        return []

    wanted = set(exam.question_ids or [])
    exam_questions = [q for q in questions if q.id in wanted]
    answers = result.correct_answers or {}

    # Distinct subjects in first-seen order
    by_subject: Dict[str, List[Question]] = {}
    for q in exam_questions:
        by_subject.setdefault(q.subject, []).append(q)

    breakdown = []
    for subject, subject_questions in by_subject.items():
        total = len(subject_questions)
        correct = sum(1 for q in subject_questions if answers.get(q.id))
        breakdown.append(SubjectBreakdown(
            subject=subject,
            questions=total,
            correct=correct,
            percentage=percentage(correct, total),
        ))
    return breakdown


def compose_report(
    result: Result,
    exams: Sequence[Exam],
    questions: Sequence[Question],
    students: Sequence[Student],
    settings: Settings,
) -> ReportPayload:
    """
    Build the printable report for one result.

    Joins result -> exam -> questions -> student over the supplied
    collections. Nothing is fetched or cached here; a missing exam or
    student falls back to placeholders instead of failing.
    """
    exam = next((e for e in exams if e.id == result.exam_id), None)
    student = next((s for s in students if s.student_id == result.student_id), None)

    return ReportPayload(
        school_name=settings.school_name,
        school_logo_url=settings.school_logo_url,
        exam_title=exam.title if exam else REPORT_EXAM_PLACEHOLDER,
        candidate=CandidateInfo(
            name=result.student_name,
            student_id=result.student_id,
            grade_level=(student.class_level if student and student.class_level else CLASS_LEVEL_PLACEHOLDER),
            date=result.completed_at.strftime(settings.report_date_format),
        ),
        overall_result=OverallResult(
            score=result.score,
            total=result.total_points,
            percentage=result.percentage,
            time_taken_minutes=settings.report_time_taken_minutes,
            status="PASS" if result.passed else "FAIL",
        ),
        subject_breakdown=subject_breakdown(result, exam, questions),
    )


def result_row(result: Result, exams: Sequence[Exam], date_format: str = "%d/%m/%Y") -> dict:
    """One line of the results table."""
    return {
        "id": result.id,
        "studentName": result.student_name,
        "studentId": result.student_id,
        "examTitle": exam_title(exams, result.exam_id),
        "score": f"{_num(result.score)}/{_num(result.total_points)}",
        "percentage": result.percentage,
        "passed": result.passed,
        "status": "Passed" if result.passed else "Failed",
        "completedDate": result.completed_at.strftime(date_format),
        "completedTime": result.completed_at.strftime("%H:%M:%S"),
    }


def _num(value: float):
    return int(value) if float(value).is_integer() else value


# ===========================
#   PART 3: PAGES & API
# ===========================

def get_results_screen(request: Request):
    return request.app.state.results_screen


@router.get("/", response_class=HTMLResponse)
def results_page(request: Request, screen=Depends(get_results_screen)):
    screen.refresh()
    return templates.TemplateResponse(request, "results.html", {
        "stylesheets": screen.settings.stylesheets,
    })


@router.get("/api/list")
def list_visible_results(search: str = "", refresh: bool = False, screen=Depends(get_results_screen)):
    if refresh:
        screen.refresh()
    date_format = screen.settings.report_date_format
    return [result_row(r, screen.exams, date_format) for r in screen.visible_results(search)]


@router.get("/api/{result_id}")
def get_result_detail(result_id: str, screen=Depends(get_results_screen)):
    try:
        result = screen.get_result(result_id)
    except NotFoundError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {
        **result.to_api(),
        "examTitle": exam_title(screen.exams, result.exam_id),
    }


@router.get("/api/{result_id}/report")
def get_result_report(result_id: str, screen=Depends(get_results_screen)):
    try:
        payload = screen.compose_report(result_id)
    except NotFoundError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return payload.to_api()


# Print document: opened in a new window, prints itself and closes
@router.get("/print/{result_id}", response_class=HTMLResponse)
def print_result(request: Request, result_id: str, screen=Depends(get_results_screen)):
    try:
        payload = screen.compose_report(result_id)
    except NotFoundError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    logger.info("Printing result %s for %s", result_id, payload.candidate.student_id)
    return templates.TemplateResponse(request, "print_result.html", {
        "report": payload,
        "stylesheets": screen.settings.stylesheets,
        "fallback_stylesheet": screen.settings.print_fallback_stylesheet,
    })
