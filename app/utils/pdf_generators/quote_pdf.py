from datetime import date
from html import escape
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from app.models.enums.discount_type import DiscountType
from app.utils.decimal_utils import format_money, to_decimal


def _e(value) -> str:
    return escape(str(value)) if value is not None else ""


def _customer_lines(quote) -> list[str]:
    if quote.customer_id is not None and quote.customer is not None:
        c = quote.customer
        return [c.company_name, c.contact_name, c.email, c.phone]
    return [
        quote.customer_company,
        quote.customer_name,
        quote.customer_email,
        quote.customer_phone,
    ]


def generate_quote_pdf(quote, site, today: date | None = None) -> bytes:
    """
    Render a printable quote: header, customer block, line items,
    totals breakdown and notes. Returns the PDF bytes.
    """
    today = today or date.today()
    buffer = BytesIO()

    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=30,
        leftMargin=30,
        topMargin=30,
        bottomMargin=30,
        title=f"Quote {quote.quote_number}",
    )
    styles = getSampleStyleSheet()
    elements = []

    # -------------------------------
    # Header
    # -------------------------------
    elements.append(Paragraph(f"<b>{_e(site.name)}</b>", styles["Title"]))
    contact = " | ".join(
        part for part in (
            f"Email: {site.contact_email}" if site.contact_email else "",
            f"Phone: {site.contact_phone}" if site.contact_phone else "",
        ) if part
    )
    if contact:
        elements.append(Paragraph(_e(contact), styles["Normal"]))
    elements.append(Spacer(1, 12))

    elements.append(Paragraph(f"<b>Quote #: </b>{_e(quote.quote_number)}", styles["Heading2"]))
    if quote.title:
        elements.append(Paragraph(_e(quote.title), styles["Heading3"]))
    elements.append(Paragraph(f"Date: {today.strftime('%d-%m-%Y')}", styles["Normal"]))
    if quote.valid_until:
        elements.append(
            Paragraph(f"Valid until: {quote.valid_until.strftime('%d-%m-%Y')}", styles["Normal"])
        )
    if quote.requested_delivery:
        elements.append(
            Paragraph(
                f"Requested delivery: {quote.requested_delivery.strftime('%d-%m-%Y')}",
                styles["Normal"],
            )
        )
    elements.append(Spacer(1, 10))

    # -------------------------------
    # Customer
    # -------------------------------
    lines = [line for line in _customer_lines(quote) if line]
    if lines:
        elements.append(Paragraph("<b>Prepared for</b>", styles["Heading3"]))
        for line in lines:
            elements.append(Paragraph(_e(line), styles["Normal"]))
        elements.append(Spacer(1, 12))

    # -------------------------------
    # Line items
    # -------------------------------
    data = [["#", "Item", "Qty", "Unit Price", "Discount", "Total"]]
    for i, item in enumerate(quote.line_items, start=1):
        name = Paragraph(
            _e(item.name) + (f"<br/><font size=8>{_e(item.description)}</font>" if item.description else ""),
            styles["Normal"],
        )
        data.append([
            i,
            name,
            item.quantity,
            format_money(item.unit_price),
            format_money(item.discount) if to_decimal(item.discount) else "-",
            format_money(item.total),
        ])

    # -------------------------------
    # Totals
    # -------------------------------
    totals_start = len(data)
    data.append(["", "", "", "", "Subtotal", format_money(quote.subtotal)])
    if to_decimal(quote.discount):
        label = "Discount"
        if quote.discount_type == DiscountType.PERCENTAGE:
            label = f"Discount ({to_decimal(quote.discount_value).normalize():f}%)"
        data.append(["", "", "", "", label, f"-{format_money(quote.discount)}"])
    if to_decimal(quote.tax):
        data.append([
            "", "", "", "",
            f"Tax ({to_decimal(quote.tax_rate).normalize():f}%)",
            format_money(quote.tax),
        ])
    if to_decimal(quote.shipping):
        data.append(["", "", "", "", "Shipping", format_money(quote.shipping)])
    data.append(["", "", "", "", "Total", format_money(quote.total)])

    table = Table(data, colWidths=[25, 205, 40, 80, 90, 90])
    table.setStyle(
        TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("ALIGN", (2, 0), (-1, -1), "RIGHT"),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("GRID", (0, 0), (-1, totals_start - 1), 0.5, colors.grey),
            ("BACKGROUND", (0, 1), (-1, totals_start - 1), colors.whitesmoke),
            ("FONTNAME", (4, -1), (-1, -1), "Helvetica-Bold"),
            ("LINEABOVE", (4, -1), (-1, -1), 1, colors.black),
        ])
    )
    elements.append(table)
    elements.append(Spacer(1, 20))

    # -------------------------------
    # Notes (customer-facing only)
    # -------------------------------
    if quote.notes:
        elements.append(Paragraph("<b>Notes:</b>", styles["Heading3"]))
        elements.append(Paragraph(_e(quote.notes), styles["Normal"]))
        elements.append(Spacer(1, 12))

    elements.append(Paragraph(f"Thank you for choosing {_e(site.name)}!", styles["Normal"]))

    doc.build(elements)
    return buffer.getvalue()
