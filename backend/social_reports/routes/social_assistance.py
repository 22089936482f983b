"""
Social assistance API routes - interventions and the needs identified in them.
"""

import io
import uuid
from datetime import date, datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from social_reports.database import get_db
from social_reports.logging_config import get_logger, log_with_context
from social_reports.models.social_assistance import NEED_VOCABULARY, SocialAssistanceRecord
from social_reports.models.student import Student
from social_reports.services.export import format_social_assistance
from social_reports.services.records import fetch_social_records, serialize_social_record
from social_reports.services.renderers import PDF_MEDIA_TYPE, content_disposition, render_pdf

router = APIRouter()
logger = get_logger("db")
export_logger = get_logger("export")

# "date" is also a field name in the schemas below
RecordDate = Optional[date]


class SocialAssistanceCreate(BaseModel):
    student_id: str = ""
    date: RecordDate = None
    identified_needs: List[str] = []
    referrals: List[str] = []
    notes: Optional[str] = None


class SocialAssistanceUpdate(BaseModel):
    date: RecordDate = None
    identified_needs: Optional[List[str]] = None
    referrals: Optional[List[str]] = None
    notes: Optional[str] = None


def _clean_needs(needs: List[str]) -> List[str]:
    cleaned = [need.strip() for need in needs if need and need.strip()]
    if not cleaned:
        raise HTTPException(status_code=400,
                            detail="Por favor, selecione pelo menos uma necessidade identificada")
    return cleaned


def _get_record(db: Session, record_id: str) -> SocialAssistanceRecord:
    record = (
        db.query(SocialAssistanceRecord)
        .options(joinedload(SocialAssistanceRecord.student))
        .filter(SocialAssistanceRecord.id == record_id)
        .first()
    )
    if not record:
        raise HTTPException(status_code=404, detail="Atendimento não encontrado")
    return record


def _commit(db: Session, action: str, detail: str):
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log_with_context(logger, "ERROR", "Failed to {} social assistance record: {}".format(action, str(e)))
        raise HTTPException(status_code=500, detail=detail)


@router.get("/api/social-assistance")
def list_social_assistance(
    need: Optional[str] = Query(None, description="Only records that identified this need"),
    search: Optional[str] = Query(None, description="Search by student name"),
    db: Session = Depends(get_db)
):
    return fetch_social_records(db, need=need, search=search)


@router.get("/api/social-assistance/needs")
def list_needs():
    """Reference vocabulary offered by intake forms. Records are not limited to it."""
    return NEED_VOCABULARY


@router.get("/api/social-assistance/export.pdf")
def export_social_assistance(
    need: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    """PDF listing the social-assistance records matching the list filters."""
    records = fetch_social_records(db, need=need, search=search)
    if not records:
        raise HTTPException(status_code=404, detail="Nenhum atendimento encontrado")

    content = render_pdf(format_social_assistance(records))
    filename = "relatorio_atendimentos_sociais_{}.pdf".format(date.today().isoformat())

    log_with_context(export_logger, "INFO", "Social assistance exported: {}".format(filename),
                     extra_data={"records": len(records), "bytes": len(content), "need": need})

    return StreamingResponse(
        io.BytesIO(content),
        media_type=PDF_MEDIA_TYPE,
        headers={"Content-Disposition": content_disposition(filename)},
    )


@router.get("/api/social-assistance/{record_id}")
def get_social_assistance(record_id: str, db: Session = Depends(get_db)):
    return serialize_social_record(_get_record(db, record_id))


@router.post("/api/social-assistance", status_code=201)
def create_social_assistance(request: SocialAssistanceCreate, db: Session = Depends(get_db)):
    """Register an intervention; at least one identified need is required."""
    if not request.student_id:
        raise HTTPException(status_code=400, detail="Por favor, selecione um aluno")
    needs = _clean_needs(request.identified_needs)
    if not db.query(Student).filter(Student.id == request.student_id).first():
        raise HTTPException(status_code=404, detail="Aluno não encontrado")

    record = SocialAssistanceRecord(
        id=str(uuid.uuid4()),
        student_id=request.student_id,
        date=request.date or date.today(),
        identified_needs=needs,
        referrals=list(request.referrals),
        notes=request.notes,
        created_at=datetime.now(timezone.utc),
    )
    db.add(record)
    _commit(db, "create", "Erro ao salvar atendimento")

    log_with_context(logger, "INFO", "Created social assistance record",
                     context={"social_record_id": record.id, "student_id": request.student_id},
                     extra_data={"needs": needs})
    return serialize_social_record(_get_record(db, record.id))


@router.put("/api/social-assistance/{record_id}")
def update_social_assistance(record_id: str, request: SocialAssistanceUpdate, db: Session = Depends(get_db)):
    record = _get_record(db, record_id)
    changes = request.model_dump(exclude_unset=True)
    if "identified_needs" in changes:
        changes["identified_needs"] = _clean_needs(changes["identified_needs"] or [])
    if changes.get("referrals") is None:
        changes.pop("referrals", None)
    if changes.get("date") is None:
        changes.pop("date", None)

    for field, value in changes.items():
        setattr(record, field, value)
    _commit(db, "update", "Erro ao atualizar atendimento")

    log_with_context(logger, "INFO", "Updated social assistance record",
                     context={"social_record_id": record_id},
                     extra_data={"fields": sorted(changes)})
    return serialize_social_record(_get_record(db, record_id))


@router.delete("/api/social-assistance/{record_id}")
def delete_social_assistance(record_id: str, db: Session = Depends(get_db)):
    record = _get_record(db, record_id)
    db.delete(record)
    _commit(db, "delete", "Erro ao excluir atendimento")

    log_with_context(logger, "INFO", "Deleted social assistance record {}".format(record_id),
                     context={"social_record_id": record_id})
    return {"message": "Atendimento excluído com sucesso", "id": record_id}
