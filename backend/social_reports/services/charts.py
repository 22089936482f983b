"""
Chart Data Service - maps a ReportResult to what a chart renderer needs.

The output is {kind, labels, series} with one series per plotted
quantity. Report types without a chart mapping return None, which means
"render the table only".
"""

from typing import Callable, Dict, Optional

from social_reports.services.report_types import ChartData, ReportResult, ReportType


def _student_status(result: ReportResult) -> ChartData:
    return ChartData(
        kind="pie",
        labels=[row["label"] for row in result.data],
        series=[[row["count"] for row in result.data]],
    )


def _students_by_course(result: ReportResult) -> ChartData:
    return ChartData(
        kind="bar",
        labels=[row["course_name"] for row in result.data],
        series=[[row["student_count"] for row in result.data]],
    )


def _age_distribution(result: ReportResult) -> ChartData:
    return ChartData(
        kind="bar",
        labels=[row["label"] for row in result.data],
        series=[[row["student_count"] for row in result.data]],
    )


def _attendance_by_course(result: ReportResult) -> ChartData:
    # Two series: presences and absences per course
    return ChartData(
        kind="bar",
        labels=[row["course_name"] for row in result.data],
        series=[
            [row["present"] for row in result.data],
            [row["absent"] for row in result.data],
        ],
    )


def _attendance_by_student(result: ReportResult) -> ChartData:
    return ChartData(
        kind="bar",
        labels=[row["student_name"] or row["student_id"] for row in result.data],
        series=[[row["attendance_rate"] for row in result.data]],
    )


def _social_needs(result: ReportResult) -> ChartData:
    return ChartData(
        kind="pie",
        labels=[row["need"] for row in result.data],
        series=[[row["count"] for row in result.data]],
    )


def _health_by_specialty(result: ReportResult) -> ChartData:
    return ChartData(
        kind="pie",
        labels=[row["label"] for row in result.data],
        series=[[row["count"] for row in result.data]],
    )


CHART_ADAPTERS: Dict[ReportType, Callable[[ReportResult], ChartData]] = {
    ReportType.STUDENT_STATUS: _student_status,
    ReportType.STUDENTS_BY_COURSE: _students_by_course,
    ReportType.AGE_DISTRIBUTION: _age_distribution,
    ReportType.ATTENDANCE_BY_COURSE: _attendance_by_course,
    ReportType.ATTENDANCE_BY_STUDENT: _attendance_by_student,
    ReportType.SOCIAL_NEEDS: _social_needs,
    ReportType.HEALTH_BY_SPECIALTY: _health_by_specialty,
}


def to_chart_data(result: ReportResult) -> Optional[ChartData]:
    """Chart shape for the result, or None when the report type has no chart."""
    adapter = CHART_ADAPTERS.get(result.report_type)
    if adapter is None:
        return None
    return adapter(result)


def has_chart(report_type: ReportType) -> bool:
    return report_type in CHART_ADAPTERS
