"""
bragfy/pdf.py — Geração do Brag Document em PDF

Dois renderizadores:
- "template": layout em fluxo com reportlab (platypus), tabela com quebra
  automática de página;
- "draw": páginas A4 desenhadas diretamente com matplotlib (PdfPages).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from io import BytesIO
from typing import List, Optional
from xml.sax.saxutils import escape

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
from matplotlib.backends.backend_pdf import PdfPages  # noqa: E402
from reportlab.lib import colors  # noqa: E402
from reportlab.lib.enums import TA_CENTER  # noqa: E402
from reportlab.lib.pagesizes import A4  # noqa: E402
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet  # noqa: E402
from reportlab.lib.units import cm  # noqa: E402
from reportlab.pdfgen import canvas as rl_canvas  # noqa: E402
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle  # noqa: E402

from bragfy import config  # noqa: E402
from bragfy.activities import period_start  # noqa: E402
from bragfy.timeutils import format_report_period, format_timestamp, now_local  # noqa: E402

logger = logging.getLogger(__name__)

FOOTER_TEXT = "Bragfy - Seu assistente para gestão de Brag Documents"
EMPTY_PERIOD_TEXT = "Nenhuma atividade registrada neste período."
PDF_ERROR = "Não foi possível gerar o PDF"
ACTIVITIES_PER_PAGE = 25
BRAND_COLOR = "#3B3B98"

_URGENCY_TEXT = {"high": "Alta", "medium": "Média", "low": "Baixa"}
_IMPACT_TEXT = {"high": "Alto", "medium": "Médio", "low": "Baixo"}
_URGENCY_ICON = {"high": "🔥", "medium": "🟡", "low": "🧊"}
_IMPACT_ICON = {"high": "🚀", "medium": "📦", "low": "🐾"}


@dataclass
class BragDocumentData:
    user: object
    activities: List[object] = field(default_factory=list)
    days: int = 7
    generated_at: Optional[datetime] = None


@dataclass
class BragDocumentPdfResult:
    success: bool
    buffer: Optional[bytes] = None
    error: Optional[str] = None


def _lookup(table: dict, value) -> str:
    if not isinstance(value, str) or not value.strip():
        return "—"
    return table.get(value.strip().lower(), "—")


def urgency_to_text(urgency) -> str:
    return _lookup(_URGENCY_TEXT, urgency)


def impact_to_text(impact) -> str:
    return _lookup(_IMPACT_TEXT, impact)


def urgency_to_icon(urgency) -> str:
    return _lookup(_URGENCY_ICON, urgency)


def impact_to_icon(impact) -> str:
    return _lookup(_IMPACT_ICON, impact)


def sanitize_text(text) -> str:
    """Remove caracteres que as fontes base do PDF (WinAnsi) não representam."""
    if not text:
        return ""
    kept = []
    for ch in str(text):
        if ch == "\n":
            kept.append(ch)
            continue
        try:
            ch.encode("cp1252")
        except UnicodeEncodeError:
            continue
        if ch.isprintable():
            kept.append(ch)
    return "".join(kept).strip()


def _user_lines(user) -> List[str]:
    name = " ".join(part for part in (user.first_name, user.last_name) if part)
    lines = [f"Nome: {name}"]
    if user.username:
        lines.append(f"Username: @{user.username}")
    lines.append(f"ID: {user.telegram_id}")
    return lines


def _period_text(data: BragDocumentData, generated_at: datetime) -> str:
    return format_report_period(period_start(data.days, generated_at), generated_at)


# -----------------------------
# Renderizador com template (reportlab)
# -----------------------------
class _NumberedCanvas(rl_canvas.Canvas):
    """Canvas que adia a gravação das páginas para conhecer o total."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(total)
            super().showPage()
        super().save()

    def _draw_footer(self, total: int):
        width, _ = A4
        self.setStrokeColor(colors.lightgrey)
        self.line(2 * cm, 1.8 * cm, width - 2 * cm, 1.8 * cm)
        self.setFont("Helvetica", 8)
        self.setFillColor(colors.grey)
        self.drawString(2 * cm, 1.2 * cm, sanitize_text(FOOTER_TEXT))
        self.drawRightString(width - 2 * cm, 1.2 * cm, sanitize_text(f"Página {self._pageNumber} de {total}"))


def _render_template(data: BragDocumentData, generated_at: datetime) -> bytes:
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=2 * cm,
        rightMargin=2 * cm,
        topMargin=2 * cm,
        bottomMargin=2.5 * cm,
        title="Brag Document",
        author="Bragfy",
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle("BragTitle", parent=styles["Title"], textColor=colors.HexColor(BRAND_COLOR))
    info_style = ParagraphStyle("BragInfo", parent=styles["Normal"], fontSize=10, leading=14)
    cell_style = ParagraphStyle("BragCell", parent=styles["Normal"], fontSize=9, leading=11)
    header_style = ParagraphStyle("BragHeader", parent=cell_style, fontName="Helvetica-Bold", textColor=colors.white)
    empty_style = ParagraphStyle("BragEmpty", parent=styles["Italic"], alignment=TA_CENTER, textColor=colors.grey)

    def p(text, style):
        return Paragraph(escape(sanitize_text(text)), style)

    story = [p("BRAG DOCUMENT", title_style), Spacer(1, 0.3 * cm)]
    for line in _user_lines(data.user):
        story.append(p(line, info_style))
    story.append(p(f"Período: {_period_text(data, generated_at)}", info_style))
    story.append(p(f"Gerado em: {format_timestamp(generated_at)}", info_style))
    story.append(Spacer(1, 0.6 * cm))

    if not data.activities:
        story.append(p(EMPTY_PERIOD_TEXT, empty_style))
    else:
        rows = [[p(h, header_style) for h in ("Data", "Atividade", "Urgência", "Impacto")]]
        for activity in data.activities:
            rows.append([
                p(format_timestamp(activity.date), cell_style),
                p(activity.content, cell_style),
                p(urgency_to_text(activity.urgency), cell_style),
                p(impact_to_text(activity.impact), cell_style),
            ])

        width = doc.width
        table = Table(rows, colWidths=[width * 0.2, width * 0.56, width * 0.12, width * 0.12], repeatRows=1)
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor(BRAND_COLOR)),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#F2F2F7")]),
            ("LINEBELOW", (0, 0), (-1, -1), 0.25, colors.lightgrey),
            ("TOPPADDING", (0, 0), (-1, -1), 4),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
        ]))
        story.append(table)

    doc.build(story, canvasmaker=_NumberedCanvas)
    return buffer.getvalue()


# -----------------------------
# Renderizador desenhado (matplotlib)
# -----------------------------
A4_INCHES = (8.27, 11.69)


def _plain(text: str) -> str:
    # "$" ativaria o mathtext do matplotlib
    return sanitize_text(text).replace("$", r"\$")


def _truncate(text: str, limit: int) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[:limit - 3] + "..."


def _draw_footer(fig, page: int, total: int):
    fig.text(0.08, 0.04, _plain(FOOTER_TEXT), fontsize=7, color="grey")
    fig.text(0.92, 0.04, _plain(f"Página {page} de {total}"), fontsize=7, color="grey", ha="right")


def _render_draw(data: BragDocumentData, generated_at: datetime) -> bytes:
    buffer = BytesIO()
    activities = list(data.activities)
    chunks = [activities[i:i + ACTIVITIES_PER_PAGE] for i in range(0, len(activities), ACTIVITIES_PER_PAGE)] or [[]]
    total = len(chunks)

    with PdfPages(buffer) as pdf:
        for page, chunk in enumerate(chunks, start=1):
            fig = plt.figure(figsize=A4_INCHES)
            y = 0.94

            if page == 1:
                fig.text(0.08, y, "BRAG DOCUMENT", fontsize=18, fontweight="bold", color=BRAND_COLOR)
                y -= 0.04
                for line in _user_lines(data.user):
                    fig.text(0.08, y, _plain(line), fontsize=10)
                    y -= 0.022
                fig.text(0.08, y, _plain(f"Período: {_period_text(data, generated_at)}"), fontsize=10)
                y -= 0.022
                fig.text(0.08, y, _plain(f"Gerado em: {format_timestamp(generated_at)}"), fontsize=10)
                y -= 0.035
            else:
                fig.text(0.08, y, _plain("BRAG DOCUMENT (continuação)"), fontsize=14, fontweight="bold", color=BRAND_COLOR)
                y -= 0.04

            if not chunk:
                fig.text(0.5, y - 0.05, _plain(EMPTY_PERIOD_TEXT), fontsize=11, style="italic", color="grey", ha="center")
            else:
                for x, header in ((0.08, "Data"), (0.26, "Atividade"), (0.72, "Urgência"), (0.84, "Impacto")):
                    fig.text(x, y, _plain(header), fontsize=9, fontweight="bold")
                y -= 0.008
                fig.add_artist(plt.Line2D([0.08, 0.92], [y, y], color=BRAND_COLOR, linewidth=0.8))
                y -= 0.022

                for activity in chunk:
                    fig.text(0.08, y, format_timestamp(activity.date), fontsize=8)
                    fig.text(0.26, y, _truncate(_plain(activity.content), 70), fontsize=8)
                    fig.text(0.72, y, _plain(urgency_to_text(activity.urgency)), fontsize=8)
                    fig.text(0.84, y, _plain(impact_to_text(activity.impact)), fontsize=8)
                    y -= 0.008
                    fig.add_artist(plt.Line2D([0.08, 0.92], [y, y], color="lightgrey", linewidth=0.4))
                    y -= 0.022

            _draw_footer(fig, page, total)
            pdf.savefig(fig)
            plt.close(fig)

    return buffer.getvalue()


RENDERERS = {
    "template": _render_template,
    "draw": _render_draw,
}


def generate_brag_document_pdf(data: BragDocumentData, renderer: str = None) -> BragDocumentPdfResult:
    """Gera o PDF completo do período (todas as atividades, sem limite)."""
    name = renderer or config.PDF_RENDERER
    render = RENDERERS.get(name)
    if render is None:
        logger.warning(f"[PDF] Renderizador desconhecido '{name}', usando 'template'")
        render = _render_template

    try:
        generated_at = data.generated_at or now_local()
        pdf_bytes = render(data, generated_at)
        logger.info(f"[PDF] Documento gerado ({len(data.activities)} atividades, {len(pdf_bytes)} bytes)")
        return BragDocumentPdfResult(success=True, buffer=pdf_bytes)
    except Exception:
        logger.exception("[PDF] Erro ao gerar Brag Document em PDF")
        return BragDocumentPdfResult(success=False, error=PDF_ERROR)
