"""
Attendance API routes - daily presence marks per enrollment.
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
from social_reports.models.enrollment import Enrollment
from social_reports.services.records import fetch_attendance, serialize_attendance

router = APIRouter()
logger = get_logger("db")

AttendanceStatus = Literal["present", "absent"]


class AttendanceCreate(BaseModel):
    enrollment_id: str
    date: date
    status: AttendanceStatus
    absence_reason: Optional[str] = None


class AttendanceUpdate(BaseModel):
    status: Optional[AttendanceStatus] = None
    absence_reason: Optional[str] = None


def _get_record(db: Session, record_id: str) -> AttendanceRecord:
    record = (
        db.query(AttendanceRecord)
        .options(
            joinedload(AttendanceRecord.enrollment).joinedload(Enrollment.student),
            joinedload(AttendanceRecord.enrollment).joinedload(Enrollment.course)
        )
        .filter(AttendanceRecord.id == record_id)
        .first()
    )
    if not record:
        raise HTTPException(status_code=404, detail="Registro de frequência não encontrado")
    return record


def _commit(db: Session, action: str, detail: str):
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log_with_context(logger, "ERROR", "Failed to {} attendance record: {}".format(action, str(e)))
        raise HTTPException(status_code=500, detail=detail)


@router.get("/api/attendance")
def list_attendance(
    enrollment_id: Optional[str] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: Session = Depends(get_db)
):
    """List attendance marks, most recent class first."""
    return fetch_attendance(db, date_from=date_from, date_to=date_to, enrollment_id=enrollment_id)


@router.post("/api/attendance", status_code=201)
def create_attendance(request: AttendanceCreate, db: Session = Depends(get_db)):
    if not db.query(Enrollment).filter(Enrollment.id == request.enrollment_id).first():
        raise HTTPException(status_code=404, detail="Matrícula não encontrada")

    record = AttendanceRecord(
        id=str(uuid.uuid4()),
        enrollment_id=request.enrollment_id,
        date=request.date,
        status=request.status,
        # a reason only makes sense for an absence
        absence_reason=request.absence_reason if request.status == "absent" else None,
        created_at=datetime.now(timezone.utc),
    )
    db.add(record)
    _commit(db, "create", "Erro ao registrar frequência")

    log_with_context(logger, "INFO", "Recorded attendance",
                     context={"attendance_id": record.id, "enrollment_id": request.enrollment_id},
                     extra_data={"date": request.date, "status": request.status})
    return serialize_attendance(_get_record(db, record.id))


@router.put("/api/attendance/{record_id}")
def update_attendance(record_id: str, request: AttendanceUpdate, db: Session = Depends(get_db)):
    record = _get_record(db, record_id)
    changes = request.model_dump(exclude_unset=True)
    if changes.get("status") is None:
        changes.pop("status", None)
    for field, value in changes.items():
        setattr(record, field, value)
    if record.status == "present":
        record.absence_reason = None
    _commit(db, "update", "Erro ao atualizar frequência")

    log_with_context(logger, "INFO", "Updated attendance",
                     context={"attendance_id": record_id},
                     extra_data={"status": record.status})
    return serialize_attendance(_get_record(db, record_id))


@router.delete("/api/attendance/{record_id}")
def delete_attendance(record_id: str, db: Session = Depends(get_db)):
    record = _get_record(db, record_id)
    db.delete(record)
    _commit(db, "delete", "Erro ao excluir registro de frequência")

    log_with_context(logger, "INFO", "Deleted attendance record {}".format(record_id),
                     context={"attendance_id": record_id})
    return {"message": "Registro de frequência excluído com sucesso", "id": record_id}
