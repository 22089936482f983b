"""
Report generation service - fetch, aggregate, log.

A report run is sequential: one read against the database for the rows
the report type needs, then the pure aggregation over the fully loaded
rows. Nothing is retried; a failed read aborts the run.
"""

import time
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from social_reports.logging_config import get_logger, log_with_context
from social_reports.services import records
from social_reports.services.aggregation import build_report
from social_reports.services.report_types import ReportResult, ReportType

logger = get_logger("reports")


def _students(db, date_from, date_to):
    # Students carry no date; the age report ignores the range
    return records.fetch_students(db)


def _enrollments(db, date_from, date_to):
    return records.fetch_enrollments(db, date_from=date_from, date_to=date_to)


def _attendance(db, date_from, date_to):
    return records.fetch_attendance(db, date_from=date_from, date_to=date_to)


def _social(db, date_from, date_to):
    return records.fetch_social_records(db, date_from=date_from, date_to=date_to)


def _health(db, date_from, date_to):
    return records.fetch_health_records(db, date_from=date_from, date_to=date_to)


REPORT_SOURCES = {
    ReportType.STUDENT_STATUS: _enrollments,
    ReportType.STUDENTS_BY_COURSE: _enrollments,
    ReportType.AGE_DISTRIBUTION: _students,
    ReportType.ATTENDANCE_BY_COURSE: _attendance,
    ReportType.ATTENDANCE_BY_STUDENT: _attendance,
    ReportType.SOCIAL_NEEDS: _social,
    ReportType.HEALTH_BY_SPECIALTY: _health,
    ReportType.HEALTH_HISTORY: _health,
}


def generate_report(db: Session, report_type: ReportType,
                    date_from: Optional[date] = None, date_to: Optional[date] = None) -> ReportResult:
    """
    Fetch the rows for report_type and aggregate them.

    Raises:
        BackendReadError: the read failed or returned malformed rows
        EmptyAggregationError: the report needs at least one row
    """
    start_time = time.time()
    context = {"report_type": report_type.value}

    rows = REPORT_SOURCES[report_type](db, date_from, date_to)
    result = build_report(report_type, rows)

    for warning in result.warnings:
        log_with_context(logger, "WARNING", "Aggregation warning: {}".format(warning.message),
                         context=context,
                         extra_data={"code": warning.code, "row_index": warning.row_index,
                                     "value": warning.value})

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "Report generated: {} ({} input rows, {} output rows, {} warnings)".format(
            report_type.value, len(rows), len(result.data), len(result.warnings)),
        context=context,
        extra_data={
            "duration_ms": round(duration_ms, 2),
            "date_from": date_from,
            "date_to": date_to,
        })

    return result
