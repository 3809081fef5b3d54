from __future__ import annotations

import logging
from datetime import datetime
from io import BytesIO
from typing import Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from controlo.domain.contracts import TimelineEvent
from controlo.domain.enums import ObjectType
from controlo.errors import SystemError


logger = logging.getLogger(__name__)

PDF_TITLE = "Concursos Futuros"
PDF_FILENAME = "concursos.pdf"
HEADERS = ("REF.", "ENTIDADE", "OBJETO", "DATA", "HORA", "TIPO")
COLUMN_WIDTHS_MM = (40, 40, 20, 30, 20, 30)
FOOTER_FORMAT = "%Y-%m-%d %H:%M:%S"
CELL_STYLE = ParagraphStyle("ConcursoCell", fontName="Helvetica", fontSize=9, leading=11)


def table_rows(events: Sequence[TimelineEvent]) -> list[list[str]]:
    rows = [list(HEADERS)]
    for event in events:
        rows.append(
            [
                event.referencia,
                event.entidade,
                ObjectType.label_for(event.objeto),
                event.data,
                event.hora,
                event.tipo,
            ]
        )
    return rows


def wrapped_rows(events: Sequence[TimelineEvent]) -> list[list]:
    """Header stays plain text; body cells become Paragraphs so long values wrap inside their column."""
    header, *body = table_rows(events)
    return [header] + [[Paragraph(escape(cell or ""), CELL_STYLE) for cell in row] for row in body]


def render_timeline_pdf(events: Sequence[TimelineEvent], generated_at: datetime | None = None) -> bytes:
    generated_at = generated_at or datetime.now()
    buffer = BytesIO()
    try:
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            title=PDF_TITLE,
            leftMargin=10 * mm,
            rightMargin=10 * mm,
            topMargin=10 * mm,
            bottomMargin=10 * mm,
        )
        styles = getSampleStyleSheet()
        elements = [Paragraph(PDF_TITLE, styles["Heading1"]), Spacer(1, 4 * mm)]

        table = Table(
            wrapped_rows(events),
            colWidths=[width * mm for width in COLUMN_WIDTHS_MM],
            repeatRows=1,
        )
        table.setStyle(
            TableStyle(
                [
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
                    ("FONTSIZE", (0, 0), (-1, -1), 10),
                    ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
                    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                ]
            )
        )
        elements.append(table)
        elements.append(Spacer(1, 10 * mm))
        elements.append(Paragraph(f"Atualizado em: {generated_at.strftime(FOOTER_FORMAT)}", styles["Italic"]))

        doc.build(elements)
    except Exception as exc:
        logger.error("pdf_render_failed", extra={"events": len(events), "error": str(exc)})
        raise SystemError(code="pdf_failed", message_key="pdf_failed", details=str(exc)) from exc
    return buffer.getvalue()
