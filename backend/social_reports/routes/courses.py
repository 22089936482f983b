"""
Courses API routes - CRUD for the courses offered by the organization.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from social_reports.database import get_db
from social_reports.logging_config import get_logger, log_with_context
from social_reports.models.course import Course
from social_reports.models.enrollment import Enrollment
from social_reports.services.records import fetch_courses, serialize_course

router = APIRouter()
logger = get_logger("db")

REQUIRED_FIELDS = ("name", "workload_hours", "available_spots")


class CourseCreate(BaseModel):
    name: str = Field(..., min_length=1)
    shift: Optional[str] = None
    workload_hours: int = Field(0, ge=0)
    available_spots: int = Field(0, ge=0)


class CourseUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    shift: Optional[str] = None
    workload_hours: Optional[int] = Field(None, ge=0)
    available_spots: Optional[int] = Field(None, ge=0)


def _get_course(db: Session, course_id: str) -> Course:
    course = db.query(Course).filter(Course.id == course_id).first()
    if not course:
        raise HTTPException(status_code=404, detail="Curso não encontrado")
    return course


def _commit(db: Session, action: str, detail: str):
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log_with_context(logger, "ERROR", "Failed to {} course: {}".format(action, str(e)))
        raise HTTPException(status_code=500, detail=detail)


@router.get("/api/courses")
def list_courses(db: Session = Depends(get_db)):
    return fetch_courses(db)


@router.get("/api/courses/{course_id}")
def get_course(course_id: str, db: Session = Depends(get_db)):
    return serialize_course(_get_course(db, course_id))


@router.post("/api/courses", status_code=201)
def create_course(request: CourseCreate, db: Session = Depends(get_db)):
    course = Course(
        id=str(uuid.uuid4()),
        created_at=datetime.now(timezone.utc),
        **request.model_dump()
    )
    db.add(course)
    _commit(db, "create", "Erro ao cadastrar curso")
    db.refresh(course)

    log_with_context(logger, "INFO", "Created course: {}".format(course.name),
                     context={"course_id": str(course.id)})
    return serialize_course(course)


@router.put("/api/courses/{course_id}")
def update_course(course_id: str, request: CourseUpdate, db: Session = Depends(get_db)):
    course = _get_course(db, course_id)
    changes = {
        field: value for field, value in request.model_dump(exclude_unset=True).items()
        if not (value is None and field in REQUIRED_FIELDS)
    }
    for field, value in changes.items():
        setattr(course, field, value)
    _commit(db, "update", "Erro ao atualizar curso")
    db.refresh(course)

    log_with_context(logger, "INFO", "Updated course: {}".format(course.name),
                     context={"course_id": str(course.id)},
                     extra_data={"fields": sorted(changes)})
    return serialize_course(course)


@router.delete("/api/courses/{course_id}")
def delete_course(course_id: str, db: Session = Depends(get_db)):
    """Delete a course without enrollments."""
    course = _get_course(db, course_id)
    if db.query(Enrollment).filter(Enrollment.course_id == course.id).first():
        raise HTTPException(status_code=409, detail="Curso possui matrículas vinculadas")

    db.delete(course)
    _commit(db, "delete", "Erro ao excluir curso")

    log_with_context(logger, "INFO", "Deleted course {}".format(course_id),
                     context={"course_id": course_id})
    return {"message": "Curso excluído com sucesso", "id": course_id}
