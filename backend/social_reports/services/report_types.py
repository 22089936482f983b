"""
Report result types shared by the aggregation, chart and export steps.

Every report produces a ReportResult whose ``summary`` is one of the
variants below, selected by its ``kind`` field. A variant only carries the
fields its report defines.
"""

from datetime import date
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class ReportType(str, Enum):
    STUDENT_STATUS = "student_status"
    STUDENTS_BY_COURSE = "students_by_course"
    AGE_DISTRIBUTION = "age_distribution"
    ATTENDANCE_BY_COURSE = "attendance_by_course"
    ATTENDANCE_BY_STUDENT = "attendance_by_student"
    SOCIAL_NEEDS = "social_needs"
    HEALTH_BY_SPECIALTY = "health_by_specialty"
    HEALTH_HISTORY = "health_history"


REPORT_TITLES = {
    ReportType.STUDENT_STATUS: "Relatório de Status dos Alunos",
    ReportType.STUDENTS_BY_COURSE: "Relatório de Alunos por Curso",
    ReportType.AGE_DISTRIBUTION: "Relatório de Faixa Etária",
    ReportType.ATTENDANCE_BY_COURSE: "Relatório de Frequência por Curso",
    ReportType.ATTENDANCE_BY_STUDENT: "Relatório de Frequência por Aluno",
    ReportType.SOCIAL_NEEDS: "Relatório de Necessidades Sociais",
    ReportType.HEALTH_BY_SPECIALTY: "Relatório de Atendimentos por Especialidade",
    ReportType.HEALTH_HISTORY: "Relatório de Histórico de Saúde por Aluno",
}

# Report types that also export as a spreadsheet
SPREADSHEET_REPORTS = {
    ReportType.STUDENTS_BY_COURSE,
    ReportType.ATTENDANCE_BY_COURSE,
    ReportType.ATTENDANCE_BY_STUDENT,
    ReportType.SOCIAL_NEEDS,
    ReportType.HEALTH_HISTORY,
}


class AggregationWarning(BaseModel):
    """A non-fatal anomaly found while aggregating; the row is still counted."""
    code: str
    message: str
    row_index: Optional[int] = None
    value: Optional[Any] = None


# ── Summary variants ─────────────────────────────────────────

class StudentStatusSummary(BaseModel):
    kind: Literal["student_status"] = "student_status"
    status_counts: Dict[str, int]
    percentages: Dict[str, str]
    total: int


class StudentsByCourseSummary(BaseModel):
    kind: Literal["students_by_course"] = "students_by_course"
    total_students: int
    total_courses: int
    max_students: int
    min_students: int


class AgeDistributionSummary(BaseModel):
    kind: Literal["age_distribution"] = "age_distribution"
    age_groups: Dict[str, int]
    total: int
    excluded: int = 0
    average_age: Optional[float] = None


class AttendanceByCourseSummary(BaseModel):
    kind: Literal["attendance_by_course"] = "attendance_by_course"
    by_course: Dict[str, Dict[str, int]]
    total_present: int
    total_absent: int
    attendance_rate: str


class AttendanceByStudentSummary(BaseModel):
    kind: Literal["attendance_by_student"] = "attendance_by_student"
    total_students: int
    total_records: int
    average_attendance_rate: int


class SocialNeedsSummary(BaseModel):
    kind: Literal["social_needs"] = "social_needs"
    need_counts: Dict[str, int]
    total_records: int


class BmiStats(BaseModel):
    count: int = 0
    average: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None


class HealthBySpecialtySummary(BaseModel):
    kind: Literal["health_by_specialty"] = "health_by_specialty"
    specialty_counts: Dict[str, int]
    total_records: int
    distinct_students: int
    distinct_professionals: int
    bmi: BmiStats = Field(default_factory=BmiStats)


class HealthHistorySummary(BaseModel):
    kind: Literal["health_history"] = "health_history"
    total_students: int
    total_records: int
    last_record_date: Optional[date] = None


ReportSummary = Annotated[
    Union[
        StudentStatusSummary,
        StudentsByCourseSummary,
        AgeDistributionSummary,
        AttendanceByCourseSummary,
        AttendanceByStudentSummary,
        SocialNeedsSummary,
        HealthBySpecialtySummary,
        HealthHistorySummary,
    ],
    Field(discriminator="kind"),
]


class ReportResult(BaseModel):
    """Renderer-agnostic output of one aggregation."""
    report_type: ReportType
    data: List[Dict[str, Any]]
    summary: ReportSummary
    warnings: List[AggregationWarning] = Field(default_factory=list)


class ChartData(BaseModel):
    """Minimal shape a generic chart renderer needs."""
    kind: Literal["pie", "bar", "line"]
    labels: List[str]
    series: List[List[float]]
