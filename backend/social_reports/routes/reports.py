"""
Reports API routes - report generation, chart data and document export.

Every report endpoint runs the same pipeline:
1. Read the rows for the report type (date range applied)
2. Aggregate them into a ReportResult
3. Attach chart data, or encode the result as PDF/XLSX

An empty input for a report that needs rows is not an error for the user:
the JSON endpoint answers with an "empty" payload and the export endpoints
answer 404 with the same message.
"""

import io
import time
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from social_reports.database import get_db
from social_reports.errors import EmptyAggregationError
from social_reports.logging_config import get_logger, log_with_context
from social_reports.services.charts import has_chart, to_chart_data
from social_reports.services.export import export_filename, format_report
from social_reports.services.renderers import (
    PDF_MEDIA_TYPE, XLSX_MEDIA_TYPE, content_disposition, render_pdf, render_xlsx
)
from social_reports.services.report_types import REPORT_TITLES, SPREADSHEET_REPORTS, ReportType
from social_reports.services.reports import generate_report

router = APIRouter()
logger = get_logger("http")
export_logger = get_logger("export")


def _check_range(date_from: Optional[date], date_to: Optional[date]):
    if date_from and date_to and date_from > date_to:
        raise HTTPException(status_code=400, detail="Período inválido: data inicial posterior à data final")


@router.get("/api/reports")
def list_reports():
    """Available report types with their titles and export options."""
    return [
        {
            "report_type": report_type.value,
            "title": REPORT_TITLES[report_type],
            "has_chart": has_chart(report_type),
            "spreadsheet": report_type in SPREADSHEET_REPORTS,
        }
        for report_type in ReportType
    ]


@router.get("/api/reports/{report_type}")
def get_report(
    report_type: ReportType,
    date_from: Optional[date] = Query(None, description="First day of the period (inclusive)"),
    date_to: Optional[date] = Query(None, description="Last day of the period (inclusive)"),
    db: Session = Depends(get_db)
):
    """Aggregated report with summary, data rows, chart data and warnings."""
    _check_range(date_from, date_to)
    title = REPORT_TITLES[report_type]
    generated_at = datetime.now()

    try:
        result = generate_report(db, report_type, date_from, date_to)
    except EmptyAggregationError as e:
        log_with_context(logger, "INFO", "Empty report: {}".format(str(e)),
                         context={"report_type": report_type.value})
        return {
            "report_type": report_type.value,
            "title": title,
            "empty": True,
            "message": e.user_message,
            "data": [],
            "summary": None,
            "chart": None,
            "warnings": [],
            "generated_at": generated_at.isoformat(),
        }

    return {
        "report_type": report_type.value,
        "title": title,
        "empty": False,
        "data": result.data,
        "summary": result.summary.model_dump(),
        "chart": to_chart_data(result),
        "warnings": [w.model_dump() for w in result.warnings],
        "generated_at": generated_at.isoformat(),
    }


def _export(db: Session, report_type: ReportType, date_from: Optional[date],
            date_to: Optional[date], fmt: str) -> StreamingResponse:
    _check_range(date_from, date_to)
    start_time = time.time()
    title = REPORT_TITLES[report_type]

    try:
        result = generate_report(db, report_type, date_from, date_to)
    except EmptyAggregationError as e:
        raise HTTPException(status_code=404, detail=e.user_message)

    document = format_report(result, title)
    if fmt == "pdf":
        content, media_type = render_pdf(document), PDF_MEDIA_TYPE
    else:
        content, media_type = render_xlsx(document), XLSX_MEDIA_TYPE
    filename = export_filename(title, fmt, date_from, date_to)

    log_with_context(export_logger, "INFO", "Report exported: {}".format(filename),
                     context={"report_type": report_type.value},
                     extra_data={
                         "format": fmt,
                         "bytes": len(content),
                         "duration_ms": round((time.time() - start_time) * 1000, 2),
                     })

    return StreamingResponse(
        io.BytesIO(content),
        media_type=media_type,
        headers={"Content-Disposition": content_disposition(filename)},
    )


@router.get("/api/reports/{report_type}/export.pdf")
def export_report_pdf(
    report_type: ReportType,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: Session = Depends(get_db)
):
    """Download the report as a PDF document."""
    return _export(db, report_type, date_from, date_to, "pdf")


@router.get("/api/reports/{report_type}/export.xlsx")
def export_report_xlsx(
    report_type: ReportType,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: Session = Depends(get_db)
):
    """Download the report as a spreadsheet (tabular report types only)."""
    if report_type not in SPREADSHEET_REPORTS:
        raise HTTPException(status_code=400, detail="Exportação em planilha não disponível para este relatório")
    return _export(db, report_type, date_from, date_to, "xlsx")
