"""
Export Formatter Service - shapes reports into printable table blocks.

Produces an ExportDocument: a title, a generated-at timestamp and an
ordered list of sections, each a titled table of string cells with an
optional header row. Turning the document into PDF/XLSX bytes is left to
services/renderers.py.
"""

from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from social_reports.services.aggregation import (
    AGE_GROUPS,
    HEALTH_TYPE_LABELS,
    STATUS_LABELS,
    aggregate_health_by_specialty,
)
from social_reports.services.report_types import ReportResult, ReportType

EMPTY_CELL = "-"


class ExportSection(BaseModel):
    section_title: str
    rows: List[List[str]]
    header: Optional[List[str]] = None


class ExportDocument(BaseModel):
    title: str
    generated_at: datetime
    sections: List[ExportSection] = Field(default_factory=list)


# ──────────────────────────────────────────────────────────────
# Cell formatting
# ──────────────────────────────────────────────────────────────

def format_date(value) -> str:
    """dd/mm/yyyy for dates and datetimes, "-" for None."""
    if value is None:
        return EMPTY_CELL
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value[:10])
        except ValueError:
            return value
    return value.strftime("%d/%m/%Y")


def cell(value: Any) -> str:
    if value is None or value == "" or value == []:
        return EMPTY_CELL
    if isinstance(value, bool):
        return "Sim" if value else "Não"
    if isinstance(value, (date, datetime)):
        return format_date(value)
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _rate(value) -> str:
    return "{}%".format(value)


def _health_label(value) -> str:
    if value is None:
        return EMPTY_CELL
    return HEALTH_TYPE_LABELS.get(value, value)


# ──────────────────────────────────────────────────────────────
# Report documents
# ──────────────────────────────────────────────────────────────

# (header, row key, optional formatter)
Column = Tuple[str, str, Optional[Callable[[Any], str]]]

DETAIL_COLUMNS: Dict[ReportType, List[Column]] = {
    ReportType.STUDENT_STATUS: [
        ("Status", "label", None),
        ("Quantidade", "count", None),
        ("Percentual", "percentage", None),
    ],
    ReportType.STUDENTS_BY_COURSE: [
        ("Curso", "course_name", None),
        ("Alunos", "student_count", None),
        ("Percentual", "percentage", None),
    ],
    ReportType.AGE_DISTRIBUTION: [
        ("Faixa Etária", "label", None),
        ("Alunos", "student_count", None),
        ("Percentual", "percentage", None),
    ],
    ReportType.ATTENDANCE_BY_COURSE: [
        ("Curso", "course_name", None),
        ("Presenças", "present", None),
        ("Faltas", "absent", None),
        ("Total", "total", None),
        ("Frequência", "attendance_rate", None),
    ],
    ReportType.ATTENDANCE_BY_STUDENT: [
        ("Aluno", "student_name", None),
        ("CPF", "student_cpf", None),
        ("Presenças", "present", None),
        ("Faltas", "absent", None),
        ("Total de Aulas", "total_classes", None),
        ("Frequência", "attendance_rate", _rate),
    ],
    ReportType.SOCIAL_NEEDS: [
        ("Necessidade", "need", None),
        ("Ocorrências", "count", None),
        ("Percentual", "percentage", None),
    ],
    ReportType.HEALTH_BY_SPECIALTY: [
        ("Especialidade", "label", None),
        ("Atendimentos", "count", None),
        ("Percentual", "percentage", None),
    ],
    ReportType.HEALTH_HISTORY: [
        ("Aluno", "student_name", None),
        ("Odontológico", "dental", None),
        ("Psicológico", "psychological", None),
        ("Nutricional", "nutritional", None),
        ("Médico", "medical", None),
        ("Outros", "other", None),
        ("Total", "total_records", None),
        ("Último Atendimento", "last_record_date", format_date),
        ("Tipo", "last_record_type", _health_label),
        ("Profissional", "last_professional", None),
    ],
}


def _summary_rows(result: ReportResult) -> List[List[Any]]:
    summary = result.summary
    kind = summary.kind

    if kind == "student_status":
        rows = [
            [STATUS_LABELS.get(status, status), "{} ({})".format(count, summary.percentages[status])]
            for status, count in summary.status_counts.items()
        ]
        return rows + [["Total de Matrículas", summary.total]]
    if kind == "students_by_course":
        return [
            ["Total de Alunos", summary.total_students],
            ["Total de Cursos", summary.total_courses],
            ["Maior Turma", summary.max_students],
            ["Menor Turma", summary.min_students],
        ]
    if kind == "age_distribution":
        rows = [[label, summary.age_groups[key]] for key, label, _lower, _upper in AGE_GROUPS]
        return rows + [
            ["Total de Alunos", summary.total],
            ["Sem Idade Informada", summary.excluded],
            ["Idade Média", summary.average_age],
        ]
    if kind == "attendance_by_course":
        return [
            ["Total de Presenças", summary.total_present],
            ["Total de Faltas", summary.total_absent],
            ["Frequência Geral", summary.attendance_rate],
        ]
    if kind == "attendance_by_student":
        return [
            ["Total de Alunos", summary.total_students],
            ["Total de Registros", summary.total_records],
            ["Frequência Média", _rate(summary.average_attendance_rate)],
        ]
    if kind == "social_needs":
        return [
            ["Total de Atendimentos", summary.total_records],
            ["Necessidades Distintas", len(summary.need_counts)],
        ]
    if kind == "health_by_specialty":
        return [
            ["Total de Atendimentos", summary.total_records],
            ["Profissionais Diferentes", summary.distinct_professionals],
            ["Alunos Atendidos", summary.distinct_students],
            ["IMC Médio", summary.bmi.average],
        ]
    if kind == "health_history":
        return [
            ["Alunos com Registros", summary.total_students],
            ["Total de Registros", summary.total_records],
            ["Último Atendimento", summary.last_record_date],
        ]
    raise ValueError("No summary layout for '{}'".format(kind))


def _detail_rows(result: ReportResult, columns: List[Column]) -> List[List[str]]:
    rows = []
    for row in result.data:
        rows.append([
            formatter(row.get(key)) if formatter else cell(row.get(key))
            for _header, key, formatter in columns
        ])
    return rows


def format_report(result: ReportResult, title: str,
                  generated_at: Optional[datetime] = None) -> ExportDocument:
    """
    Shape a ReportResult into ordered sections.

    Sections: "Resumo" (label/value pairs), "Detalhamento" (one row per
    data row) and, when the aggregation reported anomalies, "Avisos".
    """
    columns = DETAIL_COLUMNS[result.report_type]
    sections = [
        ExportSection(
            section_title="Resumo",
            rows=[[cell(label), cell(value)] for label, value in _summary_rows(result)],
        ),
        ExportSection(
            section_title="Detalhamento",
            header=[header for header, _key, _formatter in columns],
            rows=_detail_rows(result, columns),
        ),
    ]

    if result.warnings:
        sections.append(ExportSection(
            section_title="Avisos",
            header=["Linha", "Aviso", "Valor"],
            rows=[
                [cell(None if w.row_index is None else w.row_index + 1), w.message, cell(w.value)]
                for w in result.warnings
            ],
        ))

    return ExportDocument(
        title=title,
        generated_at=generated_at or datetime.now(),
        sections=sections,
    )


def export_filename(title: str, ext: str, date_from: Optional[date] = None,
                    date_to: Optional[date] = None, today: Optional[date] = None) -> str:
    """
    Download filename for a report.

    Lowercase title with spaces replaced by underscores, the active date
    range when there is one, and a date stamp:
    relatorio_de_alunos_por_curso_2024-01-01_2024-06-30_2024-07-02.xlsx
    """
    parts = [title.strip().lower().replace(" ", "_")]
    if date_from or date_to:
        parts.append(date_from.isoformat() if date_from else "inicio")
        parts.append(date_to.isoformat() if date_to else "hoje")
    parts.append((today or date.today()).isoformat())
    return "{}.{}".format("_".join(parts), ext)


# ──────────────────────────────────────────────────────────────
# Record list documents
# ──────────────────────────────────────────────────────────────

HEALTH_DETAIL_FIELDS: Dict[str, List[Tuple[str, str]]] = {
    "dental": [
        ("Histórico Odontológico", "dental_history"),
        ("Hábitos de Higiene", "hygiene_habits"),
        ("Tratamentos Anteriores", "previous_treatments"),
    ],
    "psychological": [
        ("Histórico Emocional", "emotional_history"),
        ("Avaliação Comportamental", "behavior_assessment"),
        ("Diagnóstico", "diagnosis"),
        ("Encaminhamentos", "referrals"),
    ],
    "nutritional": [
        ("Avaliação Nutricional", "nutritional_assessment"),
        ("Hábitos Alimentares", "eating_habits"),
        ("IMC", "bmi"),
        ("Plano Alimentar", "suggested_meal_plan"),
    ],
    "medical": [
        ("Histórico Clínico", "clinical_history"),
        ("Alergias", "allergies"),
        ("Medicamentos", "medications"),
        ("Condições Preexistentes", "preexisting_conditions"),
    ],
}


def format_health_records(records: Sequence[Dict[str, Any]], record_type: str,
                          generated_at: Optional[datetime] = None) -> ExportDocument:
    """Detailed health report for one record type: a summary, then one section per record."""
    summary = aggregate_health_by_specialty(records).summary
    sections = [
        ExportSection(
            section_title="Resumo dos Atendimentos",
            rows=[
                ["Total de Atendimentos", cell(summary.total_records)],
                ["Profissionais Diferentes", cell(summary.distinct_professionals)],
                ["Alunos Atendidos", cell(summary.distinct_students)],
            ],
        )
    ]

    for index, record in enumerate(records, 1):
        age = record.get("student_age")
        rows = [
            ["Aluno", cell(record.get("student_name"))],
            ["CPF", cell(record.get("student_cpf"))],
            ["Idade", "{} anos".format(age) if age is not None else EMPTY_CELL],
            ["Data", format_date(record.get("date"))],
            ["Profissional", cell(record.get("professional_name"))],
        ]
        for label, field in HEALTH_DETAIL_FIELDS.get(record.get("record_type"), []):
            rows.append([label, cell(record.get(field))])
        rows.append(["Observações", cell(record.get("notes"))])
        sections.append(ExportSection(section_title="Atendimento {}".format(index), rows=rows))

    return ExportDocument(
        title="Relatório de Saúde - {}".format(_health_label(record_type)),
        generated_at=generated_at or datetime.now(),
        sections=sections,
    )


def format_social_assistance(records: Sequence[Dict[str, Any]],
                             generated_at: Optional[datetime] = None) -> ExportDocument:
    """One table listing social-assistance records."""
    return ExportDocument(
        title="Relatório de Atendimentos Sociais",
        generated_at=generated_at or datetime.now(),
        sections=[
            ExportSection(
                section_title="Atendimentos",
                header=["Aluno", "Data", "Necessidades", "Observações"],
                rows=[
                    [
                        cell(record.get("student_name")),
                        format_date(record.get("date")),
                        cell(record.get("identified_needs")),
                        cell(record.get("notes")),
                    ]
                    for record in records
                ],
            )
        ],
    )
