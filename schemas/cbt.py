from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

# Dropdown values of the admin forms
CLASS_LEVELS = ["JSS1", "JSS2", "JSS3", "SS1", "SS2", "SS3", "WAEC", "NECO", "GCE WAEC", "GCE NECO"]
SEXES = ["M", "F"]

CSV_COLUMNS = ["name", "studentId", "classLevel", "sex"]


class CamelModel(BaseModel):
    # Backend speaks camelCase, python code uses snake_case
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    def to_api(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


# ===========================
#   BACKEND RECORDS (snapshots)
# ===========================

class Student(CamelModel):
    id: str
    name: str
    student_id: str
    class_level: Optional[str] = None
    sex: Optional[str] = None


class Question(CamelModel):
    id: str
    subject: str


class Exam(CamelModel):
    id: str
    title: str
    question_ids: Optional[List[str]] = None


class Result(CamelModel):
    id: str
    exam_id: str
    student_id: str
    student_name: str
    score: float = 0
    total_points: float = 0
    percentage: float = 0
    passed: bool = False
    completed_at: datetime
    correct_answers: Optional[Dict[str, Any]] = None


# ===========================
#   ROSTER INPUT
# ===========================

class StudentDraft(CamelModel):
    """Editable copy of a student, sent as one structured value."""
    name: str = ""
    student_id: str = ""
    class_level: Optional[str] = None
    sex: Optional[str] = None

    @classmethod
    def from_student(cls, student: Student) -> "StudentDraft":
        return cls(
            name=student.name,
            student_id=student.student_id,
            class_level=student.class_level,
            sex=student.sex,
        )


class StudentDraftPatch(CamelModel):
    name: Optional[str] = None
    student_id: Optional[str] = None
    class_level: Optional[str] = None
    sex: Optional[str] = None


class ImportSummary(CamelModel):
    created: int
    message: str


# ===========================
#   PRINTABLE REPORT
# ===========================

class SubjectBreakdown(CamelModel):
    subject: str
    questions: int
    correct: int
    percentage: float


class CandidateInfo(CamelModel):
    name: str
    student_id: str
    grade_level: str
    date: str


class OverallResult(CamelModel):
    score: float
    total: float
    percentage: float
    time_taken_minutes: int
    status: str


class ReportPayload(CamelModel):
    school_name: str
    school_logo_url: str
    exam_title: str
    candidate: CandidateInfo
    overall_result: OverallResult
    subject_breakdown: List[SubjectBreakdown]
