"""
Record read service - the read half of the database contract.

Provides:
- serialize_* functions turning ORM objects into plain rows, with the
  joined student/course/enrollment embedded as nested dicts
- fetch_* functions running one joined query each and returning those rows

Reports only ever see the plain rows. Any SQLAlchemy failure, or a row
whose embedded join is missing, is raised as BackendReadError.
"""

import time
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from social_reports.errors import BackendReadError
from social_reports.logging_config import get_logger, log_with_context
from social_reports.models.attendance import AttendanceRecord
from social_reports.models.course import Course
from social_reports.models.enrollment import Enrollment
from social_reports.models.health_record import PAYLOAD_FIELDS, HealthRecord
from social_reports.models.social_assistance import SocialAssistanceRecord
from social_reports.models.student import Student

logger = get_logger("db")


# ── Serializers ──────────────────────────────────────────────

def serialize_student(student: Student) -> Dict[str, Any]:
    return {
        "id": str(student.id),
        "full_name": student.full_name,
        "cpf": student.cpf,
        "age": student.age,
        "phone": student.phone,
        "email": student.email,
        "address": student.address,
        "has_nis": bool(student.has_nis),
        "created_at": student.created_at.isoformat() if student.created_at else None,
    }


def serialize_course(course: Course) -> Dict[str, Any]:
    return {
        "id": str(course.id),
        "name": course.name,
        "shift": course.shift,
        "workload_hours": course.workload_hours,
        "available_spots": course.available_spots,
    }


def _require(row_id, table: str, relation: str, value):
    if value is None:
        raise BackendReadError(
            "Row {} of {} has no joined {}".format(row_id, table, relation),
            table=table,
        )
    return value


def serialize_enrollment(enrollment: Enrollment) -> Dict[str, Any]:
    student = _require(enrollment.id, "enrollments", "student", enrollment.student)
    course = _require(enrollment.id, "enrollments", "course", enrollment.course)
    return {
        "id": str(enrollment.id),
        "student_id": str(enrollment.student_id),
        "course_id": str(enrollment.course_id),
        "status": enrollment.status,
        "enrollment_date": enrollment.enrollment_date,
        "student": serialize_student(student),
        "course": serialize_course(course),
    }


def serialize_attendance(record: AttendanceRecord) -> Dict[str, Any]:
    enrollment = _require(record.id, "attendance_records", "enrollment", record.enrollment)
    return {
        "id": str(record.id),
        "enrollment_id": str(record.enrollment_id),
        "date": record.date,
        "status": record.status,
        "absence_reason": record.absence_reason,
        "enrollment": serialize_enrollment(enrollment),
    }


def serialize_health_record(record: HealthRecord) -> Dict[str, Any]:
    student = _require(record.id, "health_records", "student", record.student)
    result = {
        "id": str(record.id),
        "student_id": str(record.student_id),
        "student_name": student.full_name,
        "student_cpf": student.cpf,
        "student_age": student.age,
        "record_type": record.record_type,
        "date": record.date,
        "professional_name": record.professional_name,
        "notes": record.notes,
    }
    for field in PAYLOAD_FIELDS:
        result[field] = getattr(record, field)
    return result


def serialize_social_record(record: SocialAssistanceRecord) -> Dict[str, Any]:
    student = _require(record.id, "social_assistance_records", "student", record.student)
    return {
        "id": str(record.id),
        "student_id": str(record.student_id),
        "student_name": student.full_name,
        "date": record.date,
        "identified_needs": list(record.identified_needs or []),
        "referrals": list(record.referrals or []),
        "notes": record.notes,
    }


# ── Fetchers ─────────────────────────────────────────────────

def _run(table: str, query, serializer) -> List[Dict[str, Any]]:
    """Execute query and serialize every row, translating failures to BackendReadError."""
    start_time = time.time()
    try:
        rows = [serializer(obj) for obj in query.all()]
    except SQLAlchemyError as e:
        raise BackendReadError(str(e), table=table) from e

    log_with_context(logger, "DEBUG", "Fetched {} rows from {}".format(len(rows), table),
                     extra_data={"duration_ms": round((time.time() - start_time) * 1000, 2)})
    return rows


def _date_range(query, column, date_from: Optional[date], date_to: Optional[date]):
    if date_from:
        query = query.filter(column >= date_from)
    if date_to:
        query = query.filter(column <= date_to)
    return query


def _contains(column, text: str):
    """Case-insensitive substring match with LIKE wildcards in text taken literally."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return column.ilike("%{}%".format(escaped), escape="\\")


def fetch_students(db: Session, search: Optional[str] = None) -> List[Dict[str, Any]]:
    query = db.query(Student)
    if search:
        query = query.filter(
            _contains(Student.full_name, search) |
            _contains(Student.cpf, search)
        )
    return _run("students", query.order_by(Student.full_name.asc()), serialize_student)


def fetch_courses(db: Session) -> List[Dict[str, Any]]:
    return _run("courses", db.query(Course).order_by(Course.name.asc()), serialize_course)


def fetch_enrollments(db: Session, date_from: Optional[date] = None, date_to: Optional[date] = None,
                      status: Optional[str] = None, course_id: Optional[str] = None,
                      student_id: Optional[str] = None) -> List[Dict[str, Any]]:
    query = db.query(Enrollment).options(
        joinedload(Enrollment.student),
        joinedload(Enrollment.course)
    )
    query = _date_range(query, Enrollment.enrollment_date, date_from, date_to)
    if status:
        query = query.filter(Enrollment.status == status)
    if course_id:
        query = query.filter(Enrollment.course_id == course_id)
    if student_id:
        query = query.filter(Enrollment.student_id == student_id)
    query = query.order_by(Enrollment.enrollment_date.asc(), Enrollment.created_at.asc())
    return _run("enrollments", query, serialize_enrollment)


def fetch_attendance(db: Session, date_from: Optional[date] = None, date_to: Optional[date] = None,
                     enrollment_id: Optional[str] = None) -> List[Dict[str, Any]]:
    query = db.query(AttendanceRecord).options(
        joinedload(AttendanceRecord.enrollment).joinedload(Enrollment.student),
        joinedload(AttendanceRecord.enrollment).joinedload(Enrollment.course)
    )
    query = _date_range(query, AttendanceRecord.date, date_from, date_to)
    if enrollment_id:
        query = query.filter(AttendanceRecord.enrollment_id == enrollment_id)
    query = query.order_by(AttendanceRecord.date.desc(), AttendanceRecord.created_at.asc())
    return _run("attendance_records", query, serialize_attendance)


def fetch_health_records(db: Session, date_from: Optional[date] = None, date_to: Optional[date] = None,
                         record_type: Optional[str] = None, search: Optional[str] = None,
                         student_id: Optional[str] = None) -> List[Dict[str, Any]]:
    query = db.query(HealthRecord).options(joinedload(HealthRecord.student))
    query = _date_range(query, HealthRecord.date, date_from, date_to)
    if record_type:
        query = query.filter(HealthRecord.record_type == record_type)
    if student_id:
        query = query.filter(HealthRecord.student_id == student_id)
    if search:
        query = query.join(Student).filter(
            _contains(Student.full_name, search) |
            _contains(HealthRecord.professional_name, search)
        )
    query = query.order_by(HealthRecord.date.desc(), HealthRecord.created_at.asc())
    return _run("health_records", query, serialize_health_record)


def fetch_social_records(db: Session, date_from: Optional[date] = None, date_to: Optional[date] = None,
                         need: Optional[str] = None, search: Optional[str] = None,
                         student_id: Optional[str] = None) -> List[Dict[str, Any]]:
    query = db.query(SocialAssistanceRecord).options(joinedload(SocialAssistanceRecord.student))
    query = _date_range(query, SocialAssistanceRecord.date, date_from, date_to)
    if student_id:
        query = query.filter(SocialAssistanceRecord.student_id == student_id)
    if search:
        query = query.join(Student).filter(_contains(Student.full_name, search))
    query = query.order_by(SocialAssistanceRecord.date.desc(), SocialAssistanceRecord.created_at.asc())
    rows = _run("social_assistance_records", query, serialize_social_record)
    # JSON containment differs between SQLite and PostgreSQL; filter by exact label here
    if need:
        rows = [row for row in rows if need in row["identified_needs"]]
    return rows
