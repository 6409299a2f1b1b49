import copy

import pytest
from fastapi.testclient import TestClient

from config import Settings
from errors import BackendError
from main import create_app
from schemas.cbt import Exam, Question, Result, Student
from screens.results import ResultsScreen
from screens.roster import RosterScreen

STUDENTS = [
    {"id": "s1", "name": "John Doe", "studentId": "student-001", "classLevel": "JSS1", "sex": "M"},
    {"id": "s2", "name": "Jane Smith", "studentId": "student-002", "classLevel": "SS2", "sex": "F"},
    {"id": "s3", "name": "Musa Bello", "studentId": "student-003", "classLevel": None, "sex": None},
]

EXAMS = [
    {"id": "e1", "title": "Mathematics & English Mock", "questionIds": ["q1", "q2", "q3", "q4"]},
    {"id": "e2", "title": "Science Test", "questionIds": ["q5", "q6"]},
]

QUESTIONS = [
    {"id": "q1", "subject": "Mathematics"},
    {"id": "q2", "subject": "English"},
    {"id": "q3", "subject": "Mathematics"},
    {"id": "q4", "subject": "English"},
    {"id": "q5", "subject": "Biology"},
    {"id": "q6", "subject": "Chemistry"},
    {"id": "q7", "subject": "Physics"},
]

RESULTS = [
    {
        "id": "r1", "examId": "e1", "studentId": "student-001", "studentName": "John Doe",
        "score": 3, "totalPoints": 4, "percentage": 75, "passed": True,
        "completedAt": "2025-03-01T09:00:00",
        "correctAnswers": {"q1": True, "q2": True, "q3": False, "q4": True},
    },
    {
        "id": "r2", "examId": "e2", "studentId": "student-002", "studentName": "Jane Smith",
        "score": 1, "totalPoints": 2, "percentage": 50, "passed": False,
        "completedAt": "2025-03-03T10:30:00",
        "correctAnswers": {"q5": True},
    },
    {
        "id": "r3", "examId": "gone", "studentId": "student-999", "studentName": "Ghost Pupil",
        "score": 0, "totalPoints": 10, "percentage": 0, "passed": False,
        "completedAt": "2025-03-02T08:15:00",
        "correctAnswers": None,
    },
]


class FakeBackend:
    """In-memory stand-in for the CBT backend; records every call."""

    def __init__(self):
        self.students = [Student.model_validate(d) for d in copy.deepcopy(STUDENTS)]
        self.exams = [Exam.model_validate(d) for d in EXAMS]
        self.questions = [Question.model_validate(d) for d in QUESTIONS]
        self.results = [Result.model_validate(d) for d in RESULTS]
        self.calls = []
        self.failing = set()
        self._next_id = 100

    def _call(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.failing:
            raise BackendError(f"{name} exploded", status=500)

    def called(self, name):
        return [c for c in self.calls if c[0] == name]

    def list_results(self):
        self._call("list_results")
        return list(self.results)

    def list_exams(self):
        self._call("list_exams")
        return list(self.exams)

    def list_questions(self):
        self._call("list_questions")
        return list(self.questions)

    def list_students(self):
        self._call("list_students")
        return list(self.students)

    def create_student(self, draft):
        self._call("create_student", draft)
        self._next_id += 1
        student = Student(id=f"s{self._next_id}", **draft.model_dump())
        self.students.append(student)
        return student

    def update_student(self, id, draft):
        self._call("update_student", id, draft)
        for i, s in enumerate(self.students):
            if s.id == id:
                self.students[i] = Student(id=id, **draft.model_dump())
                return self.students[i]
        raise BackendError("Student not found", status=404)

    def delete_student(self, id):
        self._call("delete_student", id)
        before = len(self.students)
        self.students = [s for s in self.students if s.id != id]
        if len(self.students) == before:
            raise BackendError("Student not found", status=404)

    def bulk_create_students(self, rows):
        self._call("bulk_create_students", rows)
        for draft in rows:
            self._next_id += 1
            self.students.append(Student(id=f"s{self._next_id}", **draft.model_dump()))
        return {"created": len(rows)}

    def close(self):
        pass


@pytest.fixture
def settings():
    return Settings(
        school_name="Test Academy",
        school_logo_url="https://example.org/logo.png",
        report_time_taken_minutes=45,
        report_date_format="%Y-%m-%d",
        log_level="WARNING",
    )


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def results_screen(backend, settings):
    screen = ResultsScreen(backend, settings)
    screen.refresh()
    return screen


@pytest.fixture
def roster_screen(backend):
    screen = RosterScreen(backend)
    screen.refresh()
    return screen


@pytest.fixture
def client(backend, settings):
    app = create_app(backend=backend, settings=settings)
    return TestClient(app)


@pytest.fixture
def make_result():
    def _make(id, name="Pupil", student_id="student-x", completed_at="2025-01-01T00:00:00", **extra):
        data = {
            "id": id, "examId": "e1", "studentId": student_id, "studentName": name,
            "score": 0, "totalPoints": 4, "percentage": 0, "passed": False,
            "completedAt": completed_at,
        }
        data.update(extra)
        return Result.model_validate(data)
    return _make
