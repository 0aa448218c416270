from fastapi import APIRouter
from kanasu.api.v1.endpoints import (
    auth,
    users,
    teacher_auth,
    cohorts,
    teachers,
    anganwadis,
    students,
    topics,
    questions,
    evaluations,
    student_responses,
    assessment_sessions,
    csv_import,
)

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(teacher_auth.router, prefix="/teacher-auth", tags=["Teacher Authentication"])
api_router.include_router(cohorts.router, prefix="/cohorts", tags=["Cohorts"])
api_router.include_router(teachers.router, prefix="/teachers", tags=["Teachers"])
api_router.include_router(anganwadis.router, prefix="/anganwadis", tags=["Anganwadis"])
api_router.include_router(students.router, prefix="/students", tags=["Students"])
api_router.include_router(topics.router, prefix="/topics", tags=["Topics"])
api_router.include_router(questions.router, prefix="/questions", tags=["Questions"])
api_router.include_router(evaluations.router, prefix="/evaluations", tags=["Evaluations"])
api_router.include_router(student_responses.router, prefix="/student-responses", tags=["Student Responses"])
api_router.include_router(assessment_sessions.router, prefix="/assessment-sessions", tags=["Assessment Sessions"])
api_router.include_router(csv_import.router, prefix="/csv-import", tags=["CSV Import"])
