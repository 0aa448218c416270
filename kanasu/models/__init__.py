from kanasu.models.base import Base

# Core entities
from kanasu.models.anganwadi import Anganwadi
from kanasu.models.cohort import Cohort
from kanasu.models.teacher import Teacher
from kanasu.models.student import Student, Gender, StudentStatus
from kanasu.models.user import User, UserRole

# Content
from kanasu.models.topic import Topic, Question

# Assessments
from kanasu.models.assessment import (
    AssessmentSession, AnganwadiAssessment, StudentSubmission,
    AssessmentStatus, SubmissionStatus,
)
from kanasu.models.evaluation import Evaluation, EvaluationStatus, evaluation_questions
from kanasu.models.student_response import StudentResponse, StudentResponseScore

# Bulk import
from kanasu.models.csv_import import CsvImport, ImportStatus

__all__ = [
    # Base
    "Base",

    # Core entities
    "Anganwadi",
    "Cohort",
    "Teacher",
    "Student",
    "Gender",
    "StudentStatus",
    "User",
    "UserRole",

    # Content
    "Topic",
    "Question",

    # Assessments
    "AssessmentSession",
    "AnganwadiAssessment",
    "StudentSubmission",
    "AssessmentStatus",
    "SubmissionStatus",
    "Evaluation",
    "EvaluationStatus",
    "evaluation_questions",
    "StudentResponse",
    "StudentResponseScore",

    # Bulk import
    "CsvImport",
    "ImportStatus",
]
