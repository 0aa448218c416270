"""
Teacher login by one-time password, and the teacher app's own profile views.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from kanasu.api.dependencies import get_current_teacher
from kanasu.core.database import get_db
from kanasu.core.logging_config import get_logger
from kanasu.core.response import success_response
from kanasu.models.teacher import Teacher
from kanasu.schemas.anganwadi import AnganwadiRead
from kanasu.schemas.assessment import AssessmentSessionRead
from kanasu.schemas.auth import OtpRequest, OtpVerifyRequest
from kanasu.schemas.student import StudentRead
from kanasu.schemas.teacher import TeacherRead
from kanasu.services import otp as otp_service
from kanasu.services.assessment_lifecycle import list_active_sessions_for_anganwadi
from kanasu.services.ranking import teacher_rank_summary

logger = get_logger(__name__)

router = APIRouter()


@router.post("/request-otp")
async def request_otp(
    request: OtpRequest,
    db: Session = Depends(get_db),
    store: otp_service.OtpStore = Depends(otp_service.get_otp_store),
):
    code = await otp_service.request_otp(db, store, request.phone)

    data = {"phone": request.phone}
    if code:
        data["otp"] = code
    return success_response(data, message="OTP sent successfully")


@router.post("/verify-otp")
async def verify_otp(
    request: OtpVerifyRequest,
    db: Session = Depends(get_db),
    store: otp_service.OtpStore = Depends(otp_service.get_otp_store),
):
    result = otp_service.verify_otp(db, store, request.phone, request.otp)
    anganwadi = result["anganwadi"]

    return success_response(
        {
            "token": result["token"],
            "teacher": TeacherRead.model_validate(result["teacher"]),
            "anganwadi": AnganwadiRead.model_validate(anganwadi) if anganwadi else None,
        },
        message="Login successful"
    )


@router.get("/profile")
async def get_profile(teacher: Teacher = Depends(get_current_teacher), db: Session = Depends(get_db)):
    summary = teacher_rank_summary(db, teacher.id)

    return success_response({
        "teacher": TeacherRead.model_validate(teacher),
        "cohort": {"id": teacher.cohort.id, "name": teacher.cohort.name} if teacher.cohort else None,
        "anganwadi": AnganwadiRead.model_validate(teacher.anganwadi) if teacher.anganwadi else None,
        "total_responses": summary["total_responses"],
        "graded_responses": summary["graded_responses"],
    })


@router.get("/anganwadi")
async def get_anganwadi(teacher: Teacher = Depends(get_current_teacher), db: Session = Depends(get_db)):
    anganwadi = teacher.anganwadi
    if not anganwadi:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Teacher is not assigned to any anganwadi"
        )

    sessions = list_active_sessions_for_anganwadi(db, anganwadi.id)

    return success_response({
        "anganwadi": AnganwadiRead.model_validate(anganwadi),
        "students": [StudentRead.model_validate(s) for s in anganwadi.students],
        "active_assessments": [AssessmentSessionRead.model_validate(s) for s in sessions],
    })
