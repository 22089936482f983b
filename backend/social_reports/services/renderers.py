"""
Document renderers - encode an ExportDocument as PDF or XLSX bytes.

This is the only module that knows about reportlab and openpyxl; the rest
of the pipeline hands it plain ExportDocument blocks.
"""

import io
import os
import unicodedata
from urllib.parse import quote
from xml.sax.saxutils import escape

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm, mm
from reportlab.pdfgen import canvas as pdf_canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from social_reports.services.export import ExportDocument

ORG_NAME = os.getenv("ORG_NAME", "ONG Amar Sem Limites")

PDF_MEDIA_TYPE = "application/pdf"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

HEADER_COLOR = colors.HexColor("#1f4e79")
LIGHT_GREY = colors.HexColor("#f5f5f5")


# ── PDF ─────────────────────────────────────────────────────────────

class NumberedCanvas(pdf_canvas.Canvas):
    """Canvas that defers page output so the footer can show "Página i de n"."""

    footer_text = ""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        page_count = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(page_count)
            super().showPage()
        super().save()

    def _draw_footer(self, page_count: int):
        self.saveState()
        self.setFont("Helvetica", 8)
        self.setFillColor(colors.grey)
        self.drawCentredString(
            A4[0] / 2, 1.0 * cm,
            "{} | Página {} de {}".format(self.footer_text, self._pageNumber, page_count),
        )
        self.restoreState()


def _styles():
    ss = getSampleStyleSheet()
    return {
        "title": ParagraphStyle("ReportTitle", parent=ss["Title"], fontSize=18, leading=22,
                                alignment=0, spaceAfter=2 * mm),
        "org": ParagraphStyle("ReportOrg", parent=ss["Normal"], fontSize=14, leading=18,
                              spaceAfter=2 * mm),
        "meta": ParagraphStyle("ReportMeta", parent=ss["Normal"], fontSize=10, leading=14,
                               textColor=colors.grey, spaceAfter=6 * mm),
        "heading": ParagraphStyle("ReportHeading", parent=ss["Heading2"], fontSize=13, leading=16,
                                  spaceBefore=5 * mm, spaceAfter=3 * mm),
        "cell": ParagraphStyle("ReportCell", parent=ss["Normal"], fontSize=8, leading=10),
        "head_cell": ParagraphStyle("ReportHeadCell", parent=ss["Normal"], fontSize=9, leading=11,
                                    fontName="Helvetica-Bold", textColor=colors.white),
    }


def _pdf_table(rows, header, styles) -> Table:
    # Paragraph cells wrap long free-text values instead of overflowing the page
    data = [[Paragraph(escape(value), styles["cell"]) for value in row] for row in rows]
    style_cmds = [
        ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#cccccc")),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]
    if header:
        data.insert(0, [Paragraph(escape(value), styles["head_cell"]) for value in header])
        style_cmds += [
            ("BACKGROUND", (0, 0), (-1, 0), HEADER_COLOR),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, LIGHT_GREY]),
        ]
    else:
        style_cmds.append(("ROWBACKGROUNDS", (0, 0), (-1, -1), [colors.white, LIGHT_GREY]))
    table = Table(data, repeatRows=1 if header else 0, hAlign="LEFT")
    table.setStyle(TableStyle(style_cmds))
    return table


def render_pdf(document: ExportDocument) -> bytes:
    """A4 PDF: title, organisation, generation time, one table per section, numbered footer."""
    styles = _styles()
    generated = document.generated_at.strftime("%d/%m/%Y às %H:%M")

    story = [
        Paragraph(escape(document.title), styles["title"]),
        Paragraph(escape(ORG_NAME), styles["org"]),
        Paragraph("Data de geração: {}".format(generated), styles["meta"]),
    ]
    for section in document.sections:
        story.append(Paragraph(escape(section.section_title), styles["heading"]))
        if section.rows or section.header:
            story.append(_pdf_table(section.rows, section.header, styles))
        else:
            story.append(Paragraph("Nenhum registro encontrado", styles["cell"]))
        story.append(Spacer(1, 2 * mm))

    footer = "{} | Relatório gerado em {}".format(ORG_NAME, document.generated_at.strftime("%d/%m/%Y %H:%M"))
    canvas_class = type("FooterCanvas", (NumberedCanvas,), {"footer_text": footer})

    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf, pagesize=A4, title=document.title, author=ORG_NAME,
        leftMargin=1.5 * cm, rightMargin=1.5 * cm, topMargin=1.5 * cm, bottomMargin=2 * cm,
    )
    doc.build(story, canvasmaker=canvas_class)
    return buf.getvalue()


# ── XLSX ────────────────────────────────────────────────────────────

def _sheet_title(title: str, used: set) -> str:
    # Excel limits sheet names to 31 chars and forbids []:*?/\
    safe = "".join("-" if ch in '[]:*?/\\' else ch for ch in title)[:31] or "Planilha"
    candidate, n = safe, 2
    while candidate in used:
        suffix = " ({})".format(n)
        candidate = safe[:31 - len(suffix)] + suffix
        n += 1
    used.add(candidate)
    return candidate


def render_xlsx(document: ExportDocument) -> bytes:
    """One worksheet per section, bold header row frozen, columns sized to content."""
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="1f4e79", end_color="1f4e79", fill_type="solid")

    wb = Workbook()
    wb.remove(wb.active)
    used_titles = set()

    for section in document.sections:
        ws = wb.create_sheet(title=_sheet_title(section.section_title, used_titles))
        if section.header:
            ws.append(section.header)
            for cell in ws[1]:
                cell.font = header_font
                cell.fill = header_fill
                cell.alignment = Alignment(horizontal="center")
            ws.freeze_panes = "A2"
        for row in section.rows:
            ws.append(row)

        for col_cells in ws.columns:
            max_len = max(len(str(cell.value or "")) for cell in col_cells)
            ws.column_dimensions[col_cells[0].column_letter].width = min(max_len + 4, 50)

    if not wb.worksheets:
        wb.create_sheet(title="Relatório")

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def content_disposition(filename: str) -> str:
    """Attachment header value; the UTF-8 form keeps accented report titles intact."""
    ascii_name = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    return "attachment; filename=\"{}\"; filename*=UTF-8''{}".format(ascii_name, quote(filename))
