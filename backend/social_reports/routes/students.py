"""
Students API routes - CRUD for student records.

Provides endpoints for:
- Listing students (ordered by name, searchable by name or CPF)
- Viewing, creating, updating and deleting a student
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from social_reports.database import get_db
from social_reports.logging_config import get_logger, log_with_context
from social_reports.models.enrollment import Enrollment
from social_reports.models.health_record import HealthRecord
from social_reports.models.social_assistance import SocialAssistanceRecord
from social_reports.models.student import Student
from social_reports.services.records import fetch_students, serialize_student

router = APIRouter()
logger = get_logger("db")

# NOT NULL columns; a null in an update leaves them unchanged
REQUIRED_FIELDS = ("full_name", "cpf", "has_nis")


# ── Pydantic schemas ─────────────────────────────────────────

class StudentCreate(BaseModel):
    """Schema for creating a student."""
    full_name: str = Field(..., min_length=1)
    cpf: str = Field(..., min_length=1)
    age: Optional[int] = Field(None, ge=0)
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    has_nis: bool = False


class StudentUpdate(BaseModel):
    """Schema for updating a student; omitted fields are left unchanged."""
    full_name: Optional[str] = Field(None, min_length=1)
    cpf: Optional[str] = Field(None, min_length=1)
    age: Optional[int] = Field(None, ge=0)
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    has_nis: Optional[bool] = None


def _get_student(db: Session, student_id: str) -> Student:
    student = db.query(Student).filter(Student.id == student_id).first()
    if not student:
        raise HTTPException(status_code=404, detail="Aluno não encontrado")
    return student


def _check_cpf(db: Session, cpf: str, exclude_id: Optional[str] = None):
    query = db.query(Student).filter(Student.cpf == cpf)
    if exclude_id:
        query = query.filter(Student.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=400, detail="Já existe um aluno com este CPF")


def _commit(db: Session, action: str, detail: str):
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log_with_context(logger, "ERROR", "Failed to {} student: {}".format(action, str(e)))
        raise HTTPException(status_code=500, detail=detail)


@router.get("/api/students")
def list_students(
    search: Optional[str] = Query(None, description="Search by name or CPF"),
    db: Session = Depends(get_db)
):
    """List students ordered by full name."""
    return fetch_students(db, search=search)


@router.get("/api/students/{student_id}")
def get_student(student_id: str, db: Session = Depends(get_db)):
    return serialize_student(_get_student(db, student_id))


@router.post("/api/students", status_code=201)
def create_student(request: StudentCreate, db: Session = Depends(get_db)):
    """Register a new student."""
    _check_cpf(db, request.cpf)

    student = Student(
        id=str(uuid.uuid4()),
        created_at=datetime.now(timezone.utc),
        **request.model_dump()
    )
    db.add(student)
    _commit(db, "create", "Erro ao cadastrar aluno")
    db.refresh(student)

    log_with_context(logger, "INFO", "Created student: {}".format(student.full_name),
                     context={"student_id": str(student.id)})
    return serialize_student(student)


@router.put("/api/students/{student_id}")
def update_student(student_id: str, request: StudentUpdate, db: Session = Depends(get_db)):
    student = _get_student(db, student_id)
    changes = {
        field: value for field, value in request.model_dump(exclude_unset=True).items()
        if not (value is None and field in REQUIRED_FIELDS)
    }
    if changes.get("cpf"):
        _check_cpf(db, changes["cpf"], exclude_id=student.id)

    for field, value in changes.items():
        setattr(student, field, value)
    _commit(db, "update", "Erro ao atualizar aluno")
    db.refresh(student)

    log_with_context(logger, "INFO", "Updated student: {}".format(student.full_name),
                     context={"student_id": str(student.id)},
                     extra_data={"fields": sorted(changes)})
    return serialize_student(student)


@router.delete("/api/students/{student_id}")
def delete_student(student_id: str, db: Session = Depends(get_db)):
    """Delete a student that has no enrollments, health or social records."""
    student = _get_student(db, student_id)

    linked = (
        db.query(Enrollment).filter(Enrollment.student_id == student.id).first() or
        db.query(HealthRecord).filter(HealthRecord.student_id == student.id).first() or
        db.query(SocialAssistanceRecord).filter(SocialAssistanceRecord.student_id == student.id).first()
    )
    if linked:
        raise HTTPException(status_code=409, detail="Aluno possui registros vinculados")

    db.delete(student)
    _commit(db, "delete", "Erro ao excluir aluno")

    log_with_context(logger, "INFO", "Deleted student {}".format(student_id),
                     context={"student_id": student_id})
    return {"message": "Aluno excluído com sucesso", "id": student_id}
