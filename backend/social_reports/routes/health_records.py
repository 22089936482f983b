"""
Health records API routes - dental, psychological, nutritional and medical records.

Provides endpoints for:
- Listing records (filter by type, search by student or professional name)
- Viewing, creating, updating and deleting a record
- Exporting every record of one type as a detailed PDF report
"""

import io
import uuid
from datetime import date, datetime, timezone
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from social_reports.database import get_db
from social_reports.logging_config import get_logger, log_with_context
from social_reports.models.health_record import TYPE_PAYLOAD_DEFAULTS, HealthRecord
from social_reports.models.student import Student
from social_reports.services.export import format_health_records
from social_reports.services.records import fetch_health_records, serialize_health_record
from social_reports.services.renderers import PDF_MEDIA_TYPE, content_disposition, render_pdf

router = APIRouter()
logger = get_logger("db")
export_logger = get_logger("export")

HealthRecordType = Literal["dental", "psychological", "nutritional", "medical"]
# "date" is also a field name in the schemas below
RecordDate = Optional[date]
REQUIRED_FIELDS = ("date", "professional_name")


class HealthRecordPayload(BaseModel):
    """Type-specific fields; only the group matching record_type is kept."""
    dental_history: Optional[str] = None
    hygiene_habits: Optional[str] = None
    previous_treatments: Optional[str] = None

    emotional_history: Optional[str] = None
    behavior_assessment: Optional[str] = None
    diagnosis: Optional[str] = None
    referrals: Optional[str] = None
    observations: Optional[str] = None

    nutritional_assessment: Optional[str] = None
    eating_habits: Optional[str] = None
    bmi: Optional[float] = Field(None, gt=0)
    suggested_meal_plan: Optional[str] = None

    clinical_history: Optional[str] = None
    allergies: Optional[List[str]] = None
    medications: Optional[List[str]] = None
    preexisting_conditions: Optional[List[str]] = None


class HealthRecordCreate(HealthRecordPayload):
    student_id: str = Field(..., min_length=1)
    record_type: HealthRecordType
    date: RecordDate = None
    professional_name: str = Field(..., min_length=1)
    notes: Optional[str] = None


class HealthRecordUpdate(HealthRecordPayload):
    date: RecordDate = None
    professional_name: Optional[str] = Field(None, min_length=1)
    notes: Optional[str] = None


def _get_record(db: Session, record_id: str) -> HealthRecord:
    record = (
        db.query(HealthRecord)
        .options(joinedload(HealthRecord.student))
        .filter(HealthRecord.id == record_id)
        .first()
    )
    if not record:
        raise HTTPException(status_code=404, detail="Ficha de saúde não encontrada")
    return record


def _commit(db: Session, action: str, detail: str):
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log_with_context(logger, "ERROR", "Failed to {} health record: {}".format(action, str(e)))
        raise HTTPException(status_code=500, detail=detail)


@router.get("/api/health-records")
def list_health_records(
    record_type: Optional[HealthRecordType] = Query(None),
    search: Optional[str] = Query(None, description="Search by student or professional name"),
    db: Session = Depends(get_db)
):
    """List health records, most recent first."""
    return fetch_health_records(db, record_type=record_type, search=search)


@router.get("/api/health-records/export.pdf")
def export_health_records(
    record_type: HealthRecordType = Query(...),
    db: Session = Depends(get_db)
):
    """
    Detailed PDF of every record of one type.

    Returns 404 when there is nothing to export.
    """
    records = fetch_health_records(db, record_type=record_type)
    if not records:
        raise HTTPException(status_code=404, detail="Nenhum registro encontrado para este tipo")

    content = render_pdf(format_health_records(records, record_type))
    filename = "relatorio_saude_{}_{}.pdf".format(record_type, date.today().isoformat())

    log_with_context(export_logger, "INFO", "Health records exported: {}".format(filename),
                     context={"record_type": record_type},
                     extra_data={"records": len(records), "bytes": len(content)})

    return StreamingResponse(
        io.BytesIO(content),
        media_type=PDF_MEDIA_TYPE,
        headers={"Content-Disposition": content_disposition(filename)},
    )


@router.get("/api/health-records/{record_id}")
def get_health_record(record_id: str, db: Session = Depends(get_db)):
    return serialize_health_record(_get_record(db, record_id))


@router.post("/api/health-records", status_code=201)
def create_health_record(request: HealthRecordCreate, db: Session = Depends(get_db)):
    """
    Register a health record.

    Payload fields of the chosen type start from empty values when not
    supplied; fields of the other types are ignored.
    """
    if not db.query(Student).filter(Student.id == request.student_id).first():
        raise HTTPException(status_code=404, detail="Aluno não encontrado")

    supplied = request.model_dump(exclude_none=True)
    payload = {
        field: supplied.get(field, default)
        for field, default in TYPE_PAYLOAD_DEFAULTS[request.record_type].items()
    }
    # list defaults are shared; copy them per record
    payload = {field: list(value) if isinstance(value, list) else value for field, value in payload.items()}

    record = HealthRecord(
        id=str(uuid.uuid4()),
        student_id=request.student_id,
        record_type=request.record_type,
        date=request.date or date.today(),
        professional_name=request.professional_name,
        notes=request.notes,
        created_at=datetime.now(timezone.utc),
        **payload
    )
    db.add(record)
    _commit(db, "create", "Erro ao salvar ficha de saúde")

    log_with_context(logger, "INFO", "Created health record",
                     context={"health_record_id": record.id, "student_id": request.student_id},
                     extra_data={"record_type": request.record_type})
    return serialize_health_record(_get_record(db, record.id))


@router.put("/api/health-records/{record_id}")
def update_health_record(record_id: str, request: HealthRecordUpdate, db: Session = Depends(get_db)):
    record = _get_record(db, record_id)
    allowed = {"date", "professional_name", "notes"} | set(TYPE_PAYLOAD_DEFAULTS.get(record.record_type, {}))
    changes = {
        field: value
        for field, value in request.model_dump(exclude_unset=True).items()
        if field in allowed and not (value is None and field in REQUIRED_FIELDS)
    }
    for field, value in changes.items():
        setattr(record, field, value)
    _commit(db, "update", "Erro ao atualizar ficha de saúde")

    log_with_context(logger, "INFO", "Updated health record",
                     context={"health_record_id": record_id},
                     extra_data={"fields": sorted(changes)})
    return serialize_health_record(_get_record(db, record_id))


@router.delete("/api/health-records/{record_id}")
def delete_health_record(record_id: str, db: Session = Depends(get_db)):
    record = _get_record(db, record_id)
    db.delete(record)
    _commit(db, "delete", "Erro ao excluir ficha de saúde")

    log_with_context(logger, "INFO", "Deleted health record {}".format(record_id),
                     context={"health_record_id": record_id})
    return {"message": "Ficha de saúde excluída com sucesso", "id": record_id}
