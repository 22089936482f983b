"""
Enrollments API routes - link students to courses and track their status.
"""

import uuid
from datetime import date, datetime, timezone
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from social_reports.database import get_db
from social_reports.logging_config import get_logger, log_with_context
from social_reports.models.attendance import AttendanceRecord
from social_reports.models.course import Course
from social_reports.models.enrollment import Enrollment
from social_reports.models.student import Student
from social_reports.services.records import fetch_enrollments, serialize_enrollment

router = APIRouter()
logger = get_logger("db")

EnrollmentStatus = Literal["active", "locked", "completed"]


class EnrollmentCreate(BaseModel):
    student_id: str
    course_id: str
    status: EnrollmentStatus = "active"
    enrollment_date: Optional[date] = None


class EnrollmentUpdate(BaseModel):
    status: Optional[EnrollmentStatus] = None
    enrollment_date: Optional[date] = None


def _get_enrollment(db: Session, enrollment_id: str) -> Enrollment:
    enrollment = (
        db.query(Enrollment)
        .options(joinedload(Enrollment.student), joinedload(Enrollment.course))
        .filter(Enrollment.id == enrollment_id)
        .first()
    )
    if not enrollment:
        raise HTTPException(status_code=404, detail="Matrícula não encontrada")
    return enrollment


def _commit(db: Session, action: str, detail: str):
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log_with_context(logger, "ERROR", "Failed to {} enrollment: {}".format(action, str(e)))
        raise HTTPException(status_code=500, detail=detail)


@router.get("/api/enrollments")
def list_enrollments(
    status: Optional[EnrollmentStatus] = Query(None),
    course_id: Optional[str] = Query(None),
    student_id: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    """List enrollments with their student and course embedded."""
    return fetch_enrollments(db, status=status, course_id=course_id, student_id=student_id)


@router.get("/api/enrollments/{enrollment_id}")
def get_enrollment(enrollment_id: str, db: Session = Depends(get_db)):
    return serialize_enrollment(_get_enrollment(db, enrollment_id))


@router.post("/api/enrollments", status_code=201)
def create_enrollment(request: EnrollmentCreate, db: Session = Depends(get_db)):
    """Enroll a student in a course."""
    if not db.query(Student).filter(Student.id == request.student_id).first():
        raise HTTPException(status_code=404, detail="Aluno não encontrado")
    if not db.query(Course).filter(Course.id == request.course_id).first():
        raise HTTPException(status_code=404, detail="Curso não encontrado")

    enrollment = Enrollment(
        id=str(uuid.uuid4()),
        student_id=request.student_id,
        course_id=request.course_id,
        status=request.status,
        enrollment_date=request.enrollment_date or date.today(),
        created_at=datetime.now(timezone.utc),
    )
    db.add(enrollment)
    _commit(db, "create", "Erro ao cadastrar matrícula")

    log_with_context(logger, "INFO", "Created enrollment",
                     context={"enrollment_id": enrollment.id,
                              "student_id": request.student_id,
                              "course_id": request.course_id},
                     extra_data={"status": request.status})
    return serialize_enrollment(_get_enrollment(db, enrollment.id))


@router.put("/api/enrollments/{enrollment_id}")
def update_enrollment(enrollment_id: str, request: EnrollmentUpdate, db: Session = Depends(get_db)):
    """Change the status or date of an enrollment."""
    enrollment = _get_enrollment(db, enrollment_id)
    previous_status = enrollment.status
    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(enrollment, field, value)
    _commit(db, "update", "Erro ao atualizar matrícula")

    log_with_context(logger, "INFO", "Updated enrollment",
                     context={"enrollment_id": enrollment_id},
                     extra_data={"previous_status": previous_status, "status": enrollment.status})
    return serialize_enrollment(_get_enrollment(db, enrollment_id))


@router.delete("/api/enrollments/{enrollment_id}")
def delete_enrollment(enrollment_id: str, db: Session = Depends(get_db)):
    enrollment = _get_enrollment(db, enrollment_id)
    if db.query(AttendanceRecord).filter(AttendanceRecord.enrollment_id == enrollment.id).first():
        raise HTTPException(status_code=409, detail="Matrícula possui registros de frequência")

    db.delete(enrollment)
    _commit(db, "delete", "Erro ao excluir matrícula")

    log_with_context(logger, "INFO", "Deleted enrollment {}".format(enrollment_id),
                     context={"enrollment_id": enrollment_id})
    return {"message": "Matrícula excluída com sucesso", "id": enrollment_id}
