"""
Report aggregation tests.

Pure-function tests over plain joined rows, shaped the way
services/records.py produces them. No database involved.
"""
import copy
from datetime import date

import pytest

from social_reports.errors import EmptyAggregationError
from social_reports.services.aggregation import (
    aggregate_age_distribution,
    aggregate_attendance_by_course,
    aggregate_attendance_by_student,
    aggregate_health_by_specialty,
    aggregate_social_needs,
    aggregate_student_status,
    aggregate_students_by_course,
    aggregate_students_by_health_history,
    build_report,
    format_percent,
    percent,
)
from social_reports.services.report_types import ReportType


# ── Row builders ──────────────────────────────────────────────────────────────

def _student(student_id="s1", name="Maria Silva", age=20):
    return {"id": student_id, "full_name": name, "cpf": "000.000.000-{}".format(student_id[-2:]), "age": age}


def _enrollment(status="active", course="Informática", student=None):
    return {
        "status": status,
        "student": student or _student(),
        "course": {"id": course.lower(), "name": course},
    }


def _attendance(status="present", course="Informática", student=None):
    return {"status": status, "enrollment": _enrollment(course=course, student=student)}


def _health(record_type="dental", student_id="s1", professional="Dra. Ana", on=None, **payload):
    return {
        "record_type": record_type,
        "student_id": student_id,
        "student_name": "Aluno {}".format(student_id),
        "professional_name": professional,
        "date": on,
        **payload,
    }


# ── Percentages ───────────────────────────────────────────────────────────────

class TestPercent:
    def test_rounds_half_up(self):
        assert percent(1, 8) == 13    # 12.5
        assert percent(5, 8) == 63    # 62.5

    def test_zero_total_is_zero(self):
        assert percent(0, 0) == 0
        assert format_percent(3, 0) == "0%"

    def test_formats_whole_number_with_sign(self):
        assert format_percent(1, 3) == "33%"
        assert format_percent(2, 3) == "67%"


# ── Student status ────────────────────────────────────────────────────────────

class TestStudentStatus:
    def test_ten_enrollment_scenario(self):
        rows = [_enrollment("active")] * 6 + [_enrollment("locked")] * 3 + [_enrollment("completed")]
        result = aggregate_student_status(rows)

        assert result.summary.status_counts == {"active": 6, "locked": 3, "completed": 1}
        assert result.summary.total == 10
        assert result.summary.percentages == {"active": "60%", "locked": "30%", "completed": "10%"}
        assert [row["label"] for row in result.data] == ["Ativos", "Trancados", "Concluídos"]

    def test_counts_always_sum_to_total(self):
        rows = [_enrollment("active"), _enrollment("weird"), _enrollment(None), _enrollment("locked")]
        summary = aggregate_student_status(rows).summary
        assert sum(summary.status_counts.values()) == summary.total == len(rows)

    def test_unknown_status_is_kept_and_warned(self):
        result = aggregate_student_status([_enrollment("cancelled")])
        assert result.summary.status_counts["cancelled"] == 1
        assert result.warnings[0].code == "unknown_enrollment_status"
        assert result.warnings[0].row_index == 0
        assert result.warnings[0].value == "cancelled"

    def test_empty_input_reports_zeros(self):
        result = aggregate_student_status([])
        assert result.summary.total == 0
        assert set(result.summary.percentages.values()) == {"0%"}

    def test_does_not_mutate_input(self):
        rows = [_enrollment("active"), _enrollment("bogus")]
        before = copy.deepcopy(rows)
        aggregate_student_status(rows)
        assert rows == before


# ── Students by course ────────────────────────────────────────────────────────

class TestStudentsByCourse:
    def test_counts_and_sorts_descending(self):
        rows = [_enrollment(course="Costura")] + [_enrollment(course="Informática")] * 3
        result = aggregate_students_by_course(rows)

        assert [row["course_name"] for row in result.data] == ["Informática", "Costura"]
        assert result.data[0]["percentage"] == "75%"
        assert result.summary.max_students == 3
        assert result.summary.min_students == 1
        assert result.summary.total_courses == 2

    def test_student_count_sums_to_total(self):
        rows = [_enrollment(course=name) for name in ["A", "B", "A", "C", "B", "A"]]
        result = aggregate_students_by_course(rows)
        assert sum(row["student_count"] for row in result.data) == result.summary.total_students == 6

    def test_ties_keep_first_seen_order(self):
        rows = [_enrollment(course=name) for name in ["Música", "Dança", "Teatro"]]
        result = aggregate_students_by_course(rows)
        assert [row["course_name"] for row in result.data] == ["Música", "Dança", "Teatro"]

    def test_empty_input_raises(self):
        with pytest.raises(EmptyAggregationError) as exc_info:
            aggregate_students_by_course([])
        assert exc_info.value.report_type == "students_by_course"


# ── Age distribution ──────────────────────────────────────────────────────────

class TestAgeDistribution:
    def test_bucket_boundaries(self):
        students = [_student(age=age) for age in [0, 12, 13, 17, 18, 65]]
        summary = aggregate_age_distribution(students).summary
        assert summary.age_groups == {"0-12": 2, "13-17": 2, "18+": 2}

    def test_buckets_partition_students(self):
        students = [_student(age=age) for age in [3, 9, 14, 15, 16, 30, 41]]
        summary = aggregate_age_distribution(students).summary
        assert sum(summary.age_groups.values()) == summary.total == len(students)

    def test_missing_age_is_excluded_not_zero(self):
        students = [_student(age=10), _student(age=None), _student(age=20)]
        result = aggregate_age_distribution(students)

        assert result.summary.total == 2
        assert result.summary.excluded == 1
        assert result.summary.average_age == 15.0
        assert result.summary.age_groups["0-12"] == 1
        assert result.warnings[0].code == "missing_age"
        assert result.warnings[0].row_index == 1

    def test_empty_input(self):
        result = aggregate_age_distribution([])
        assert result.summary.average_age is None
        assert [row["percentage"] for row in result.data] == ["0%", "0%", "0%"]


# ── Attendance ────────────────────────────────────────────────────────────────

class TestAttendanceByCourse:
    def test_counts_per_course(self):
        rows = [
            _attendance("present", "Informática"),
            _attendance("absent", "Informática"),
            _attendance("present", "Costura"),
        ]
        result = aggregate_attendance_by_course(rows)

        assert result.summary.by_course == {
            "Informática": {"present": 1, "absent": 1},
            "Costura": {"present": 1, "absent": 0},
        }
        assert result.summary.attendance_rate == "67%"
        assert result.data[0]["attendance_rate"] == "50%"

    def test_unknown_status_counts_as_absent(self):
        result = aggregate_attendance_by_course([_attendance("late")])
        assert result.summary.total_absent == 1
        assert result.warnings[0].code == "unknown_attendance_status"
        assert result.warnings[0].value == "late"


class TestAttendanceByStudent:
    def test_empty_input_yields_empty_rows(self):
        result = aggregate_attendance_by_student([])
        assert result.data == []
        assert result.summary.average_attendance_rate == 0

    def test_three_present_one_absent(self):
        rows = [_attendance("present")] * 3 + [_attendance("absent")]
        result = aggregate_attendance_by_student(rows)

        assert len(result.data) == 1
        assert result.data[0]["attendance_rate"] == 75
        assert result.data[0]["total_classes"] == 4

    def test_students_sharing_a_name_stay_separate(self):
        first = _student("s1", "João Souza")
        second = _student("s2", "João Souza")
        rows = [
            _attendance("present", student=first),
            _attendance("absent", student=second),
        ]
        result = aggregate_attendance_by_student(rows)

        assert len(result.data) == 2
        assert [row["student_id"] for row in result.data] == ["s1", "s2"]
        assert [row["attendance_rate"] for row in result.data] == [100, 0]

    def test_sorted_by_rate_descending(self):
        low = _student("s1", "Ana")
        high = _student("s2", "Bia")
        rows = [
            _attendance("absent", student=low),
            _attendance("present", student=low),
            _attendance("present", student=high),
        ]
        result = aggregate_attendance_by_student(rows)
        assert [row["student_name"] for row in result.data] == ["Bia", "Ana"]
        assert result.summary.average_attendance_rate == 75


# ── Social needs ──────────────────────────────────────────────────────────────

class TestSocialNeeds:
    def test_counts_needs(self):
        rows = [
            {"identified_needs": ["Moradia", "Renda"]},
            {"identified_needs": ["Moradia"]},
        ]
        result = aggregate_social_needs(rows)

        assert result.summary.need_counts == {"Moradia": 2, "Renda": 1}
        assert result.data[0] == {"need": "Moradia", "count": 2, "percentage": "100%"}

    def test_labels_are_not_normalized(self):
        rows = [{"identified_needs": ["Moradia"]}, {"identified_needs": ["moradia "]}]
        result = aggregate_social_needs(rows)
        assert result.summary.need_counts == {"Moradia": 1, "moradia ": 1}

    def test_record_without_needs_is_warned(self):
        result = aggregate_social_needs([{"identified_needs": []}])
        assert result.summary.need_counts == {}
        assert result.summary.total_records == 1
        assert result.warnings[0].code == "empty_identified_needs"


# ── Health ────────────────────────────────────────────────────────────────────

class TestHealthBySpecialty:
    def test_counts_known_types(self):
        rows = [_health("dental"), _health("dental"), _health("medical")]
        result = aggregate_health_by_specialty(rows)

        assert result.summary.specialty_counts == {
            "dental": 2, "psychological": 0, "nutritional": 0, "medical": 1,
        }
        assert result.warnings == []

    def test_unknown_type_goes_to_other(self):
        result = aggregate_health_by_specialty([_health("dental"), _health("chiropractic")])

        assert result.summary.specialty_counts["other"] == 1
        assert result.data[-1]["label"] == "Outros"
        assert result.warnings[0].code == "unknown_health_record_type"

    def test_distinct_students_and_professionals(self):
        rows = [
            _health("dental", "s1", "Dra. Ana"),
            _health("medical", "s1", "Dr. Paulo"),
            _health("medical", "s2", "Dr. Paulo"),
        ]
        summary = aggregate_health_by_specialty(rows).summary
        assert summary.distinct_students == 2
        assert summary.distinct_professionals == 2

    def test_missing_bmi_excluded_from_stats(self):
        rows = [
            _health("nutritional", bmi=20.0),
            _health("nutritional", bmi=None),
            _health("nutritional", bmi=25.0),
        ]
        bmi = aggregate_health_by_specialty(rows).summary.bmi
        assert bmi.count == 2
        assert bmi.average == 22.5
        assert bmi.min == 20.0
        assert bmi.max == 25.0

    def test_no_bmi_values(self):
        bmi = aggregate_health_by_specialty([_health("dental")]).summary.bmi
        assert bmi.count == 0
        assert bmi.average is None


class TestHealthHistory:
    def test_groups_by_student_with_latest_record(self):
        rows = [
            _health("dental", "s1", "Dra. Ana", on=date(2024, 1, 10)),
            _health("medical", "s1", "Dr. Paulo", on=date(2024, 2, 1)),
            _health("psychological", "s2", "Dra. Lia", on=date(2024, 1, 5)),
        ]
        result = aggregate_students_by_health_history(rows)

        first = result.data[0]
        assert first["student_id"] == "s1"
        assert first["dental"] == 1
        assert first["medical"] == 1
        assert first["total_records"] == 2
        assert first["last_record_date"] == date(2024, 2, 1)
        assert first["last_record_type"] == "medical"
        assert first["last_professional"] == "Dr. Paulo"
        assert result.summary.total_students == 2
        assert result.summary.last_record_date == date(2024, 2, 1)

    def test_same_date_later_row_wins(self):
        rows = [
            _health("dental", "s1", "Dra. Ana", on=date(2024, 1, 10)),
            _health("nutritional", "s1", "Dra. Rita", on=date(2024, 1, 10)),
        ]
        row = aggregate_students_by_health_history(rows).data[0]
        assert row["last_record_type"] == "nutritional"
        assert row["last_professional"] == "Dra. Rita"

    def test_iso_string_dates(self):
        rows = [_health("dental", "s1", on="2024-04-02"), _health("dental", "s1", on="2024-03-01")]
        row = aggregate_students_by_health_history(rows).data[0]
        assert row["last_record_date"] == date(2024, 4, 2)


# ── Dispatch ──────────────────────────────────────────────────────────────────

class TestBuildReport:
    def test_dispatches_by_type_name(self):
        result = build_report("social_needs", [{"identified_needs": ["Renda"]}])
        assert result.report_type == ReportType.SOCIAL_NEEDS
        assert result.summary.kind == "social_needs"

    def test_is_deterministic(self):
        rows = [_enrollment(course=name) for name in ["B", "A", "B", "C"]]
        first = build_report(ReportType.STUDENTS_BY_COURSE, rows)
        second = build_report(ReportType.STUDENTS_BY_COURSE, rows)
        assert first.model_dump() == second.model_dump()

    def test_unknown_type_raises(self):
        with pytest.raises(ValueError):
            build_report("not_a_report", [])
