"""
Report Aggregation Service - turns joined rows into report-ready summaries.

Every aggregate_* function:
1. Takes plain rows (dicts) as produced by services/records.py
2. Never mutates its input and never touches the database
3. Is deterministic for a given input, input order included
4. Returns a ReportResult with data rows, a typed summary and warnings

Percentages are rounded half-up to whole numbers and formatted as "<n>%".
A zero total always yields "0%". Missing optional numbers (age, BMI) are
left out of averages/min/max instead of being counted as zero.
"""

from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from social_reports.errors import EmptyAggregationError
from social_reports.models.enrollment import ENROLLMENT_STATUSES
from social_reports.models.health_record import HEALTH_RECORD_TYPES
from social_reports.services.report_types import (
    AgeDistributionSummary,
    AggregationWarning,
    AttendanceByCourseSummary,
    AttendanceByStudentSummary,
    BmiStats,
    HealthBySpecialtySummary,
    HealthHistorySummary,
    ReportResult,
    ReportType,
    SocialNeedsSummary,
    StudentsByCourseSummary,
    StudentStatusSummary,
)

# ──────────────────────────────────────────────────────────────
# Labels and buckets
# ──────────────────────────────────────────────────────────────
STATUS_LABELS = {
    "active": "Ativos",
    "locked": "Trancados",
    "completed": "Concluídos",
}

HEALTH_TYPE_LABELS = {
    "dental": "Odontológico",
    "psychological": "Psicológico",
    "nutritional": "Nutricional",
    "medical": "Médico",
    "other": "Outros",
}

OTHER_HEALTH_TYPE = "other"

# (key, label, lower bound, upper bound); bounds are inclusive, None is open
AGE_GROUPS = [
    ("0-12", "Crianças (0-12)", 0, 12),
    ("13-17", "Adolescentes (13-17)", 13, 17),
    ("18+", "Adultos (18+)", 18, None),
]


# ──────────────────────────────────────────────────────────────
# Shared helpers
# ──────────────────────────────────────────────────────────────

def percent(part, total) -> int:
    """Whole-number percentage of part in total, rounded half-up (0 when total is 0)."""
    if not total:
        return 0
    value = Decimal(part) * 100 / Decimal(total)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_percent(part, total) -> str:
    return "{}%".format(percent(part, total))


def _round_half_up(value: float, places: int = 1) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _as_date(value) -> Optional[date]:
    """Coerce a date, datetime or ISO string to a date; None if not parseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def _numeric(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _attendance_status(record: Dict[str, Any], index: int, warnings: List[AggregationWarning]) -> str:
    """present stays present; anything else counts as absent (with a warning if unrecognized)."""
    status = record.get("status")
    if status == "present":
        return "present"
    if status != "absent":
        warnings.append(AggregationWarning(
            code="unknown_attendance_status",
            message="Status de frequência desconhecido contabilizado como falta",
            row_index=index,
            value=status,
        ))
    return "absent"


def _course_name(row: Dict[str, Any]) -> str:
    return row["course"]["name"]


# ──────────────────────────────────────────────────────────────
# Enrollment reports
# ──────────────────────────────────────────────────────────────

def aggregate_student_status(enrollments: Sequence[Dict[str, Any]]) -> ReportResult:
    """
    Count enrollments by status.

    active/locked/completed are always present (0 when absent from the
    input). An unexpected status is kept under its own key so the counts
    still add up to the total, and a warning is recorded.
    """
    status_counts = {status: 0 for status in ENROLLMENT_STATUSES}
    warnings = []

    for index, enrollment in enumerate(enrollments):
        status = enrollment.get("status")
        if status not in ENROLLMENT_STATUSES:
            status = str(status) if status else "unknown"
            warnings.append(AggregationWarning(
                code="unknown_enrollment_status",
                message="Status de matrícula desconhecido",
                row_index=index,
                value=enrollment.get("status"),
            ))
        status_counts[status] = status_counts.get(status, 0) + 1

    total = len(enrollments)
    percentages = {status: format_percent(count, total) for status, count in status_counts.items()}
    data = [
        {
            "status": status,
            "label": STATUS_LABELS.get(status, status),
            "count": count,
            "percentage": percentages[status],
        }
        for status, count in status_counts.items()
    ]

    return ReportResult(
        report_type=ReportType.STUDENT_STATUS,
        data=data,
        summary=StudentStatusSummary(status_counts=status_counts, percentages=percentages, total=total),
        warnings=warnings,
    )


def aggregate_students_by_course(enrollments: Sequence[Dict[str, Any]]) -> ReportResult:
    """
    Count enrollments per course name.

    Rows are sorted by student_count descending; courses with the same
    count keep the order in which they were first seen.

    Raises:
        EmptyAggregationError: when there are no enrollments (max/min undefined)
    """
    counts: Dict[str, int] = {}
    for enrollment in enrollments:
        name = _course_name(enrollment)
        counts[name] = counts.get(name, 0) + 1

    if not counts:
        raise EmptyAggregationError(ReportType.STUDENTS_BY_COURSE.value)

    total_students = sum(counts.values())
    data = sorted(
        (
            {
                "course_name": name,
                "student_count": count,
                "percentage": format_percent(count, total_students),
            }
            for name, count in counts.items()
        ),
        key=lambda row: row["student_count"],
        reverse=True,
    )

    return ReportResult(
        report_type=ReportType.STUDENTS_BY_COURSE,
        data=data,
        summary=StudentsByCourseSummary(
            total_students=total_students,
            total_courses=len(counts),
            max_students=max(counts.values()),
            min_students=min(counts.values()),
        ),
    )


# ──────────────────────────────────────────────────────────────
# Student reports
# ──────────────────────────────────────────────────────────────

def _age_group(age: int) -> str:
    for key, _label, lower, upper in AGE_GROUPS:
        if age >= lower and (upper is None or age <= upper):
            return key
    raise ValueError("age {} outside every bucket".format(age))


def aggregate_age_distribution(students: Sequence[Dict[str, Any]]) -> ReportResult:
    """
    Bucket students into 0-12, 13-17 and 18+ by integer age.

    Students without an age (or with a negative one) are left out of the
    buckets and the average, counted in summary.excluded and reported as
    warnings.
    """
    age_groups = {key: 0 for key, _label, _lower, _upper in AGE_GROUPS}
    ages = []
    warnings = []

    for index, student in enumerate(students):
        age = _numeric(student.get("age"))
        if age is None or age < 0:
            warnings.append(AggregationWarning(
                code="missing_age",
                message="Aluno sem idade informada excluído da distribuição",
                row_index=index,
                value=student.get("age"),
            ))
            continue
        age = int(age)
        ages.append(age)
        age_groups[_age_group(age)] += 1

    total = len(ages)
    data = [
        {
            "age_group": key,
            "label": label,
            "student_count": age_groups[key],
            "percentage": format_percent(age_groups[key], total),
        }
        for key, label, _lower, _upper in AGE_GROUPS
    ]

    return ReportResult(
        report_type=ReportType.AGE_DISTRIBUTION,
        data=data,
        summary=AgeDistributionSummary(
            age_groups=age_groups,
            total=total,
            excluded=len(students) - total,
            average_age=_round_half_up(sum(ages) / total) if ages else None,
        ),
        warnings=warnings,
    )


# ──────────────────────────────────────────────────────────────
# Attendance reports
# ──────────────────────────────────────────────────────────────

def aggregate_attendance_by_course(records: Sequence[Dict[str, Any]]) -> ReportResult:
    """Count present/absent marks per course, reached through each record's enrollment."""
    by_course: Dict[str, Dict[str, int]] = {}
    warnings = []

    for index, record in enumerate(records):
        name = _course_name(record["enrollment"])
        counts = by_course.setdefault(name, {"present": 0, "absent": 0})
        counts[_attendance_status(record, index, warnings)] += 1

    data = []
    for name, counts in by_course.items():
        total = counts["present"] + counts["absent"]
        data.append({
            "course_name": name,
            "present": counts["present"],
            "absent": counts["absent"],
            "total": total,
            "attendance_rate": format_percent(counts["present"], total),
        })

    total_present = sum(counts["present"] for counts in by_course.values())
    total_absent = sum(counts["absent"] for counts in by_course.values())

    return ReportResult(
        report_type=ReportType.ATTENDANCE_BY_COURSE,
        data=data,
        summary=AttendanceByCourseSummary(
            by_course=by_course,
            total_present=total_present,
            total_absent=total_absent,
            attendance_rate=format_percent(total_present, total_present + total_absent),
        ),
        warnings=warnings,
    )


def aggregate_attendance_by_student(records: Sequence[Dict[str, Any]]) -> ReportResult:
    """
    Attendance rate per student.

    Groups by the student's id (never by name, two students may share one).
    attendance_rate = round(present / total_classes * 100), 0 when a
    student has no classes. Rows are sorted by rate descending, ties keep
    the order in which students were first seen.
    """
    groups: Dict[str, Dict[str, Any]] = {}
    warnings = []

    for index, record in enumerate(records):
        student = record["enrollment"]["student"]
        group = groups.get(student["id"])
        if group is None:
            group = {
                "student_id": student["id"],
                "student_name": student.get("full_name"),
                "student_cpf": student.get("cpf"),
                "present": 0,
                "absent": 0,
            }
            groups[student["id"]] = group
        group[_attendance_status(record, index, warnings)] += 1

    rows = []
    for group in groups.values():
        total_classes = group["present"] + group["absent"]
        rows.append({
            **group,
            "total_classes": total_classes,
            "attendance_rate": percent(group["present"], total_classes),
        })
    rows.sort(key=lambda row: row["attendance_rate"], reverse=True)

    rate_sum = sum(row["attendance_rate"] for row in rows)
    return ReportResult(
        report_type=ReportType.ATTENDANCE_BY_STUDENT,
        data=rows,
        summary=AttendanceByStudentSummary(
            total_students=len(rows),
            total_records=len(records),
            average_attendance_rate=percent(rate_sum, len(rows) * 100),
        ),
        warnings=warnings,
    )


# ──────────────────────────────────────────────────────────────
# Social assistance report
# ──────────────────────────────────────────────────────────────

def aggregate_social_needs(records: Sequence[Dict[str, Any]]) -> ReportResult:
    """
    Frequency of each identified need across records.

    Labels are compared verbatim: "moradia" and "Moradia" are different
    needs. percentage is the count over the number of records.
    """
    need_counts: Dict[str, int] = {}
    warnings = []

    for index, record in enumerate(records):
        needs = record.get("identified_needs") or []
        if not needs:
            warnings.append(AggregationWarning(
                code="empty_identified_needs",
                message="Atendimento sem necessidades identificadas",
                row_index=index,
            ))
        for need in needs:
            need_counts[need] = need_counts.get(need, 0) + 1

    total_records = len(records)
    data = sorted(
        (
            {"need": need, "count": count, "percentage": format_percent(count, total_records)}
            for need, count in need_counts.items()
        ),
        key=lambda row: row["count"],
        reverse=True,
    )

    return ReportResult(
        report_type=ReportType.SOCIAL_NEEDS,
        data=data,
        summary=SocialNeedsSummary(need_counts=need_counts, total_records=total_records),
        warnings=warnings,
    )


# ──────────────────────────────────────────────────────────────
# Health reports
# ──────────────────────────────────────────────────────────────

def _health_type(record: Dict[str, Any], index: int, warnings: List[AggregationWarning]) -> str:
    record_type = record.get("record_type")
    if record_type in HEALTH_RECORD_TYPES:
        return record_type
    warnings.append(AggregationWarning(
        code="unknown_health_record_type",
        message="Tipo de ficha de saúde desconhecido contabilizado como 'Outros'",
        row_index=index,
        value=record_type,
    ))
    return OTHER_HEALTH_TYPE


def _bmi_stats(values: Iterable[float]) -> BmiStats:
    values = list(values)
    if not values:
        return BmiStats()
    return BmiStats(
        count=len(values),
        average=_round_half_up(sum(values) / len(values), 2),
        min=min(values),
        max=max(values),
    )


def aggregate_health_by_specialty(records: Sequence[Dict[str, Any]]) -> ReportResult:
    """
    Count health records by type.

    The four known types are always reported; "other" appears only when a
    record carried an unrecognized type.
    """
    specialty_counts = {record_type: 0 for record_type in HEALTH_RECORD_TYPES}
    students = set()
    professionals = set()
    bmis = []
    warnings = []

    for index, record in enumerate(records):
        record_type = _health_type(record, index, warnings)
        specialty_counts[record_type] = specialty_counts.get(record_type, 0) + 1
        if record.get("student_id"):
            students.add(record["student_id"])
        if record.get("professional_name"):
            professionals.add(record["professional_name"])
        if record_type == "nutritional":
            bmi = _numeric(record.get("bmi"))
            if bmi is not None:
                bmis.append(bmi)

    total = len(records)
    data = [
        {
            "record_type": record_type,
            "label": HEALTH_TYPE_LABELS[record_type],
            "count": count,
            "percentage": format_percent(count, total),
        }
        for record_type, count in specialty_counts.items()
    ]

    return ReportResult(
        report_type=ReportType.HEALTH_BY_SPECIALTY,
        data=data,
        summary=HealthBySpecialtySummary(
            specialty_counts=specialty_counts,
            total_records=total,
            distinct_students=len(students),
            distinct_professionals=len(professionals),
            bmi=_bmi_stats(bmis),
        ),
        warnings=warnings,
    )


def aggregate_students_by_health_history(records: Sequence[Dict[str, Any]]) -> ReportResult:
    """
    Per-student health history: counts by type and the most recent record.

    When two records share the latest date, the one that comes later in the
    input wins. Records without a date are counted but never become the
    most recent one.
    """
    groups: Dict[str, Dict[str, Any]] = {}
    warnings = []
    latest_overall = None

    for index, record in enumerate(records):
        student_id = record["student_id"]
        group = groups.get(student_id)
        if group is None:
            group = {
                "student_id": student_id,
                "student_name": record.get("student_name"),
                **{record_type: 0 for record_type in HEALTH_RECORD_TYPES},
                OTHER_HEALTH_TYPE: 0,
                "total_records": 0,
                "last_record_date": None,
                "last_record_type": None,
                "last_professional": None,
            }
            groups[student_id] = group

        record_type = _health_type(record, index, warnings)
        group[record_type] += 1
        group["total_records"] += 1

        record_date = _as_date(record.get("date"))
        if record_date is None:
            continue
        if group["last_record_date"] is None or record_date >= group["last_record_date"]:
            group["last_record_date"] = record_date
            group["last_record_type"] = record.get("record_type")
            group["last_professional"] = record.get("professional_name")
        if latest_overall is None or record_date > latest_overall:
            latest_overall = record_date

    return ReportResult(
        report_type=ReportType.HEALTH_HISTORY,
        data=list(groups.values()),
        summary=HealthHistorySummary(
            total_students=len(groups),
            total_records=len(records),
            last_record_date=latest_overall,
        ),
        warnings=warnings,
    )


# ──────────────────────────────────────────────────────────────
# Dispatch
# ──────────────────────────────────────────────────────────────

REPORT_AGGREGATORS: Dict[ReportType, Callable[[Sequence[Dict[str, Any]]], ReportResult]] = {
    ReportType.STUDENT_STATUS: aggregate_student_status,
    ReportType.STUDENTS_BY_COURSE: aggregate_students_by_course,
    ReportType.AGE_DISTRIBUTION: aggregate_age_distribution,
    ReportType.ATTENDANCE_BY_COURSE: aggregate_attendance_by_course,
    ReportType.ATTENDANCE_BY_STUDENT: aggregate_attendance_by_student,
    ReportType.SOCIAL_NEEDS: aggregate_social_needs,
    ReportType.HEALTH_BY_SPECIALTY: aggregate_health_by_specialty,
    ReportType.HEALTH_HISTORY: aggregate_students_by_health_history,
}


def build_report(report_type, rows: Sequence[Dict[str, Any]]) -> ReportResult:
    """Run the aggregation registered for report_type over rows."""
    return REPORT_AGGREGATORS[ReportType(report_type)](rows)
