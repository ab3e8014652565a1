"""Rendering of invoice PDFs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from io import BytesIO
from time import perf_counter

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from transforme.models import Invoice
from transforme.services.metrics import pdf_generation_seconds

PAYMENT_DETAILS: tuple[tuple[str, bool], ...] = (
    ("BANK ACCOUNT", True),
    ("BANK CENTRAL ASIA (BCA)", True),
    ("BANK CODE: 014", False),
    ("YAYASAN TRANSFORME ACADEMY VOKASI", True),
    ("NO ACCOUNT: 7703109057", False),
    ("SWIFT CODE: CENAIDJA", False),
)
TERMS: tuple[str, ...] = (
    "- All payments are in advance.",
    "- All courses are non-transferable and non-refundable unless covered within the agreement.",
)


@dataclass(frozen=True, slots=True)
class InvoicePdf:
    """A rendered invoice ready to stream to the client."""

    filename: str
    content: bytes


def format_idr(amount: int) -> str:
    """Format rupiah with Indonesian thousands separators (``4.600.000``)."""

    sign = "-" if amount < 0 else ""
    return f"{sign}{abs(int(amount)):,}".replace(",", ".")


def format_period(period_start: date) -> str:
    return period_start.strftime("%B %Y")


def generate_invoice_pdf(invoice: Invoice, *, issued_on: date | None = None) -> InvoicePdf:
    """Render ``invoice`` with its line and misc items."""

    start = perf_counter()
    issued_on = issued_on or date.today()
    filename = f"{invoice.invoice_number}.pdf"
    buffer = BytesIO()
    pdf_canvas = canvas.Canvas(buffer, pagesize=A4)
    pdf_canvas.setTitle(invoice.invoice_number)
    width, height = A4

    margin = 48
    brand_color = HexColor("#0A400C")
    muted_text = HexColor("#64748B")
    light_panel = HexColor("#F1F5F2")
    border_color = HexColor("#E2E8F0")
    draft_color = HexColor("#B45309")

    columns = {
        "num": margin + 8,
        "description": margin + 32,
        "qty": width - margin - 230,
        "rate": width - margin - 120,
        "amount": width - margin - 8,
    }

    def draw_header() -> float:
        pdf_canvas.setFillColor(brand_color)
        pdf_canvas.setFont("Helvetica-Bold", 24)
        pdf_canvas.drawString(margin, height - margin - 20, "INVOICE")

        pdf_canvas.setFont("Helvetica-Bold", 11)
        pdf_canvas.drawRightString(width - margin, height - margin - 8, invoice.from_entity)
        pdf_canvas.setFont("Helvetica", 9)
        pdf_canvas.setFillColor(muted_text)
        pdf_canvas.drawRightString(width - margin, height - margin - 22, "Indonesia")
        pdf_canvas.drawRightString(width - margin, height - margin - 34, "admin@transforme.academy")

        y = height - margin - 60
        pdf_canvas.setFillColor(HexColor("#0F172A"))
        pdf_canvas.setFont("Helvetica-Bold", 11)
        pdf_canvas.drawString(margin, y, f"Invoice# {invoice.invoice_number}")
        if invoice.status == "draft":
            pdf_canvas.setFillColor(draft_color)
            pdf_canvas.drawString(margin + 170, y, "DRAFT")
        return y - 28

    def draw_details(top: float) -> float:
        issued = issued_on.strftime("%d %b %Y")
        rows = (
            ("Invoice Date :", issued),
            ("Terms :", "Due on Receipt"),
            ("Due Date :", issued),
            ("Period :", format_period(invoice.period_start)),
        )
        y = top
        for label, value in rows:
            pdf_canvas.setFont("Helvetica", 9)
            pdf_canvas.setFillColor(muted_text)
            pdf_canvas.drawString(margin, y, label)
            pdf_canvas.setFillColor(HexColor("#0F172A"))
            pdf_canvas.drawString(margin + 80, y, value)
            y -= 14

        bill_x = width / 2 + 20
        pdf_canvas.setFont("Helvetica", 9)
        pdf_canvas.setFillColor(muted_text)
        pdf_canvas.drawString(bill_x, top, "Bill To")
        pdf_canvas.setFont("Helvetica-Bold", 10)
        pdf_canvas.setFillColor(HexColor("#0F172A"))
        pdf_canvas.drawString(bill_x, top - 14, invoice.to_entity)
        return y - 16

    def draw_table_header(top: float) -> float:
        header_height = 22
        pdf_canvas.setFillColor(brand_color)
        pdf_canvas.rect(margin, top - header_height, width - 2 * margin, header_height, fill=1, stroke=0)
        pdf_canvas.setFillColor(HexColor("#FFFFFF"))
        pdf_canvas.setFont("Helvetica-Bold", 9)
        baseline = top - 15
        pdf_canvas.drawString(columns["num"], baseline, "#")
        pdf_canvas.drawString(columns["description"], baseline, "Item & Description")
        pdf_canvas.drawRightString(columns["qty"], baseline, "Qty")
        pdf_canvas.drawRightString(columns["rate"], baseline, "Rate (IDR)")
        pdf_canvas.drawRightString(columns["amount"], baseline, "Amount (IDR)")
        return top - header_height - 16

    rows: list[tuple[str, int, int, int]] = [
        (item.orphanage_name, item.class_count, item.rate_per_class_idr, item.subtotal_idr)
        for item in invoice.line_items
    ]
    rows.extend(
        (item.description, item.quantity, item.rate_idr, item.subtotal_idr)
        for item in invoice.misc_items
    )

    y_position = draw_header()
    y_position = draw_details(y_position)
    y_position = draw_table_header(y_position)

    row_height = 20
    if not rows:
        pdf_canvas.setFont("Helvetica-Oblique", 9)
        pdf_canvas.setFillColor(muted_text)
        pdf_canvas.drawString(margin + 10, y_position, "No items for this period")
        y_position -= row_height

    for index, (description, quantity, rate, amount) in enumerate(rows, start=1):
        if y_position < 140:
            pdf_canvas.showPage()
            y_position = draw_table_header(height - margin)

        if index % 2 == 0:
            pdf_canvas.setFillColor(light_panel)
            pdf_canvas.rect(
                margin, y_position - 6, width - 2 * margin, row_height, fill=1, stroke=0
            )
        pdf_canvas.setFillColor(HexColor("#0F172A"))
        pdf_canvas.setFont("Helvetica", 9)
        pdf_canvas.drawString(columns["num"], y_position, str(index))
        pdf_canvas.drawString(columns["description"], y_position, description[:70])
        pdf_canvas.drawRightString(columns["qty"], y_position, str(quantity))
        pdf_canvas.drawRightString(columns["rate"], y_position, format_idr(rate))
        pdf_canvas.drawRightString(columns["amount"], y_position, format_idr(amount))
        y_position -= row_height

    pdf_canvas.setStrokeColor(border_color)
    pdf_canvas.line(margin, y_position + 6, width - margin, y_position + 6)

    totals_x = width - margin - 200
    y_position -= 12
    for label, value, bold in (
        ("Sub Total", format_idr(invoice.total_amount_idr), False),
        ("Total", f"IDR {format_idr(invoice.total_amount_idr)}", True),
        ("Balance Due", f"IDR {format_idr(invoice.total_amount_idr)}", True),
    ):
        pdf_canvas.setFont("Helvetica-Bold" if bold else "Helvetica", 10)
        pdf_canvas.setFillColor(HexColor("#0F172A"))
        pdf_canvas.drawString(totals_x, y_position, label)
        pdf_canvas.drawRightString(columns["amount"], y_position, value)
        y_position -= 16

    if y_position < 200:
        pdf_canvas.showPage()
        y_position = height - margin

    y_position -= 12
    pdf_canvas.setFont("Helvetica-Bold", 10)
    pdf_canvas.setFillColor(brand_color)
    pdf_canvas.drawString(margin, y_position, "Notes")
    y_position -= 14
    pdf_canvas.setFont("Helvetica", 9)
    pdf_canvas.setFillColor(muted_text)
    pdf_canvas.drawString(margin, y_position, "Please make the payment payable to")
    y_position -= 16
    pdf_canvas.setFillColor(HexColor("#0F172A"))
    for line, bold in PAYMENT_DETAILS:
        pdf_canvas.setFont("Helvetica-Bold" if bold else "Helvetica", 9)
        pdf_canvas.drawString(margin, y_position, line)
        y_position -= 12

    y_position -= 10
    pdf_canvas.setFont("Helvetica-Bold", 10)
    pdf_canvas.setFillColor(brand_color)
    pdf_canvas.drawString(margin, y_position, "Terms & Conditions")
    y_position -= 14
    pdf_canvas.setFont("Helvetica", 8)
    pdf_canvas.setFillColor(muted_text)
    for line in TERMS:
        pdf_canvas.drawString(margin, y_position, line)
        y_position -= 11

    pdf_canvas.save()
    buffer.seek(0)
    pdf_bytes = buffer.read()
    pdf_generation_seconds.observe(perf_counter() - start)
    return InvoicePdf(filename=filename, content=pdf_bytes)


__all__ = ["InvoicePdf", "format_idr", "generate_invoice_pdf"]
