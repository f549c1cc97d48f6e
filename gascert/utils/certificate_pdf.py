# gascert/utils/certificate_pdf.py

from __future__ import annotations

import io
from datetime import date

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle

from gascert.utils.dates import STATUS_CURRENT, STATUS_NEAR_EXPIRY, format_date

# --- Brand colors ---
PRIMARY = colors.HexColor("#2563eb")
GRAY = colors.HexColor("#6b7280")
DARK = colors.HexColor("#111827")
LINE = colors.HexColor("#c8c8c8")

STATUS_COLORS = {
    STATUS_CURRENT: colors.HexColor("#10b981"),
    STATUS_NEAR_EXPIRY: colors.HexColor("#f59e0b"),
}
EXPIRED_COLOR = colors.HexColor("#ef4444")

NOT_SPECIFIED = "No especificado"

BODY_FONT = "Helvetica"
BODY_SIZE = 10
LINE_HEIGHT = 5 * mm
PAGE_TOP = 20 * mm
PAGE_BOTTOM = 25 * mm
SIGNATURE_HEIGHT = 30 * mm


def _or_default(value) -> str:
    return str(value) if value else NOT_SPECIFIED


class _CertificateWriter:
    """Top-down canvas writer that starts a new page instead of running off the bottom."""

    def __init__(self, c: canvas.Canvas, left: float, validity_years: int):
        self.c = c
        self.width, self.height = A4
        self.left = left
        self.text_width = self.width - 2 * left
        self.validity_years = validity_years
        self.y = self.height - PAGE_TOP

    def footer(self) -> None:
        self.c.setFillColor(GRAY)
        self.c.setFont(BODY_FONT, 8)
        self.c.drawCentredString(
            self.width / 2,
            12 * mm,
            f"Este certificado tiene una validez de {self.validity_years} años desde la fecha de emisión.",
        )

    def ensure_space(self, needed: float) -> None:
        if self.y - needed >= PAGE_BOTTOM:
            return
        self.footer()
        self.c.showPage()
        self.y = self.height - PAGE_TOP

    def line(self, text: str) -> None:
        self.ensure_space(LINE_HEIGHT)
        self.c.setFillColor(DARK)
        self.c.setFont(BODY_FONT, BODY_SIZE)
        self.c.drawString(self.left, self.y, text)
        self.y -= LINE_HEIGHT

    def section(self, title: str, rows: list[str]) -> None:
        # Keep the heading together with its first row.
        self.ensure_space(8 * mm + LINE_HEIGHT)
        self.c.setFillColor(DARK)
        self.c.setFont("Helvetica-Bold", 12)
        self.c.drawString(self.left, self.y, title)
        self.y -= 8 * mm
        for row in rows:
            for wrapped in simpleSplit(row, BODY_FONT, BODY_SIZE, self.text_width) or [""]:
                self.line(wrapped)
        self.y -= 5 * mm


def render_certificate_pdf(client, certificate, settings) -> bytes:
    """
    Render a certificate as an A4 PDF (no writes). Long technical notes
    continue on further pages. Returns PDF bytes.
    """
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    width, height = A4
    company = settings.company
    left = 20 * mm
    out = _CertificateWriter(c, left, settings.certificates.validity_years)

    c.setTitle(f"Certificado {certificate.serial_number}")

    # --- Letterhead ---
    c.setFillColor(PRIMARY)
    c.setFont("Helvetica-Bold", 22)
    c.drawCentredString(width / 2, height - 20 * mm, (company.name or "").upper())

    c.setFillColor(DARK)
    c.setFont("Helvetica-Bold", 16)
    c.drawCentredString(width / 2, height - 38 * mm, "CERTIFICADO DE REVISIÓN DE GAS")
    c.setFont("Helvetica", 13)
    c.drawCentredString(width / 2, height - 46 * mm, f"Nº {certificate.serial_number}")

    # --- Company block ---
    out.y = height - 62 * mm
    for line in (
        company.name,
        company.address,
        f"Tel: {company.phone}",
        f"Email: {company.email}",
    ):
        out.line(line or "")

    c.setStrokeColor(LINE)
    c.line(left, out.y, width - left, out.y)
    out.y -= 10 * mm

    out.section(
        "DATOS DEL CLIENTE",
        [
            f"Nombre: {client.name}",
            f"DNI/NIF: {_or_default(client.dni)}",
            f"Dirección: {client.address}",
            f"Teléfono: {client.phone}",
            f"Email: {client.email}",
        ],
    )
    out.section(
        "DATOS DE LA INSTALACIÓN",
        [
            f"Tipo de instalación: {client.installation_label}",
            f"Tipo de gas: {client.gas_label}",
            f"Número de contrato: {_or_default(client.contract_number)}",
            f"Empresa instaladora: {_or_default(client.installer_company)}",
        ],
    )
    out.section(
        "DATOS DEL CERTIFICADO",
        [
            f"Fecha de emisión: {format_date(certificate.issue_date)}",
            f"Fecha de caducidad: {format_date(certificate.expiry_date)}",
        ],
    )

    if certificate.technical_notes:
        out.section("OBSERVACIONES TÉCNICAS", certificate.technical_notes.splitlines())

    # --- Signature box, on the last page ---
    out.ensure_space(SIGNATURE_HEIGHT)
    sig_x = width - 70 * mm
    sig_y = min(out.y, 60 * mm)
    c.setFillColor(DARK)
    c.setFont(BODY_FONT, BODY_SIZE)
    c.drawString(sig_x, sig_y, "Firma del técnico:")
    c.setStrokeColor(GRAY)
    c.rect(sig_x, sig_y - 25 * mm, 50 * mm, 20 * mm, stroke=1, fill=0)

    out.footer()
    c.showPage()
    c.save()

    pdf = buf.getvalue()
    buf.close()
    return pdf


def _table_pdf(title: str, data: list[list[str]], col_widths: list[float], extra_styles=None) -> bytes:
    """Single table report; platypus splits it across pages and repeats the header row."""
    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        topMargin=30 * mm,
        bottomMargin=18 * mm,
        title=title,
    )

    if len(data) == 1:
        data = data + [["-"] * len(data[0])]

    table = Table(data, colWidths=col_widths, hAlign="LEFT", repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), PRIMARY),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 8),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#e5e7eb")),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("LEFTPADDING", (0, 0), (-1, -1), 4),
                ("RIGHTPADDING", (0, 0), (-1, -1), 4),
                ("TOPPADDING", (0, 0), (-1, -1), 3),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
                *(extra_styles or []),
            ]
        )
    )

    width, height = A4
    generated = format_date(date.today())

    def decorate(c: canvas.Canvas, _doc) -> None:
        c.saveState()
        c.setFillColor(DARK)
        c.setFont("Helvetica-Bold", 16)
        c.drawCentredString(width / 2, height - 20 * mm, title)
        c.setFillColor(GRAY)
        c.setFont("Helvetica", 8)
        c.drawString(15 * mm, 8 * mm, f"Generado: {generated}")
        c.drawRightString(width - 15 * mm, 8 * mm, f"Página {c.getPageNumber()}")
        c.restoreState()

    doc.build([table], onFirstPage=decorate, onLaterPages=decorate)

    pdf = buf.getvalue()
    buf.close()
    return pdf


def render_client_list_pdf(clients) -> bytes:
    data = [["Nombre", "Teléfono", "Email", "Dirección", "Tipo Gas"]]
    for client in clients:
        data.append([
            client.name[:40],
            client.phone,
            client.email[:35],
            client.address[:45],
            client.gas_label if client.gas_type else "-",
        ])

    return _table_pdf(
        "LISTADO DE CLIENTES",
        data,
        [40 * mm, 22 * mm, 42 * mm, 56 * mm, 20 * mm],
    )


def render_expiry_report_pdf(certificates, clients_by_id) -> bytes:
    data = [["Cliente", "Nº Certificado", "F. Emisión", "F. Caducidad", "Estado"]]
    styles = []
    for row, cert in enumerate(certificates, start=1):
        client = clients_by_id.get(cert.client_id)
        data.append([
            client.name[:40] if client else "Cliente desconocido",
            cert.serial_number,
            format_date(cert.issue_date),
            format_date(cert.expiry_date),
            cert.status_label,
        ])
        styles.append(("TEXTCOLOR", (4, row), (4, row), STATUS_COLORS.get(cert.status, EXPIRED_COLOR)))
        styles.append(("FONTNAME", (4, row), (4, row), "Helvetica-Bold"))

    return _table_pdf(
        "INFORME DE VENCIMIENTOS",
        data,
        [55 * mm, 30 * mm, 28 * mm, 28 * mm, 39 * mm],
        extra_styles=styles,
    )
