import unittest
from datetime import datetime

from reportlab.lib.units import mm
from reportlab.platypus import Paragraph

from controlo.application.pdf_export import (
    CELL_STYLE,
    COLUMN_WIDTHS_MM,
    HEADERS,
    PDF_FILENAME,
    render_timeline_pdf,
    table_rows,
    wrapped_rows,
)
from controlo.domain.contracts import TimelineEvent
from controlo.domain.enums import Role, Status
from tests.helpers.app_case import AppTestCase


def _event(**fields) -> TimelineEvent:
    base = dict(
        referencia="REF-1",
        entidade="Camara",
        objeto=1,
        data="2999-01-10",
        hora="12:00:00",
        tipo="Proposta",
        dias_restantes=10,
    )
    base.update(fields)
    return TimelineEvent(**base)


class PdfRenderTest(unittest.TestCase):
    def test_table_rows_use_object_labels(self) -> None:
        rows = table_rows([_event(objeto=3), _event(objeto=None)])
        self.assertEqual(rows[0], list(HEADERS))
        self.assertEqual(rows[1], ["REF-1", "Camara", "INF", "2999-01-10", "12:00:00", "Proposta"])
        self.assertEqual(rows[2][2], "")

    def test_long_cells_wrap_inside_their_column(self) -> None:
        entidade = "Camara Municipal de Vila Nova & Servicos Partilhados " * 4
        header, row = wrapped_rows([_event(entidade=entidade)])
        self.assertEqual(header, list(HEADERS))
        self.assertTrue(all(isinstance(cell, Paragraph) for cell in row))

        width, height = row[1].wrap(COLUMN_WIDTHS_MM[1] * mm, 1000)
        self.assertLessEqual(width, COLUMN_WIDTHS_MM[1] * mm)
        self.assertGreater(height, CELL_STYLE.leading * 2)

        pdf = render_timeline_pdf([_event(entidade=entidade, referencia="REF-" + "9" * 60)])
        self.assertTrue(pdf.startswith(b"%PDF"))

    def test_render_returns_pdf_bytes(self) -> None:
        pdf = render_timeline_pdf([_event()], generated_at=datetime(2024, 6, 1, 10, 0, 0))
        self.assertTrue(pdf.startswith(b"%PDF"))

    def test_render_with_no_events_still_produces_document(self) -> None:
        self.assertTrue(render_timeline_pdf([]).startswith(b"%PDF"))


class PdfDownloadRouteTest(AppTestCase):
    sandbox_prefix = "pdf_download"

    def test_download_is_an_attachment(self) -> None:
        editor_id = self.create_user("sav@example.com", Role.SAV)
        self.login_as(editor_id, int(Role.SAV))
        self.client.post(
            "/save-concurso",
            data={
                "referencia": "PDF-1",
                "entidade": "Camara",
                "dia_proposta": "2999-01-10",
                "hora_proposta": "12:00",
                "tipo_id": "2",
                "plataforma_id": "1",
                "estado_id": str(int(Status.EM_ANDAMENTO)),
            },
        )

        self.login_as(editor_id, int(Role.GUEST))
        response = self.client.get("/download-pdf")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["Content-Type"], "application/pdf")
        self.assertEqual(response.headers["Content-Disposition"], f"attachment; filename={PDF_FILENAME}")
        self.assertTrue(response.data.startswith(b"%PDF"))


if __name__ == "__main__":
    unittest.main()
