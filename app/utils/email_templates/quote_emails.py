from html import escape

from app.models.enums.discount_type import DiscountType
from app.utils.decimal_utils import format_money, to_decimal

WRAPPER = (
    '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; '
    'background-color: #f8fafc; padding: 20px;">{body}</div>'
)

HEADER = (
    '<div style="background: #0e7490; padding: 24px 32px; border-radius: 12px 12px 0 0;">'
    '<h1 style="margin: 0; color: #ffffff; font-size: 20px;">{title}</h1></div>'
)

BUTTON = (
    '<a href="{href}" style="display: inline-block; padding: 12px 24px; margin-right: 12px; '
    'background: {color}; color: #ffffff; text-decoration: none; border-radius: 6px;">{label}</a>'
)


def _e(value) -> str:
    return escape(str(value)) if value is not None else ""


def _row(label: str, value) -> str:
    return (
        f'<tr><td style="padding: 6px 0; color: #64748b;">{_e(label)}</td>'
        f'<td style="padding: 6px 0; color: #1e293b;">{_e(value)}</td></tr>'
    )


def _page(title: str, content: str, site_name: str) -> str:
    footer = f'<p style="margin-top: 24px; color: #94a3b8; font-size: 12px;">{_e(site_name)}</p>'
    body = (
        HEADER.format(title=_e(title))
        + '<div style="background: #ffffff; padding: 32px; border-radius: 0 0 12px 12px;">'
        + content
        + "</div>"
        + footer
    )
    return WRAPPER.format(body=body)


# =====================================================
# CUSTOMER: QUOTE SUMMARY
# =====================================================

def render_quote_email(quote, site, greeting_name: str | None) -> tuple[str, str]:
    subject = f"Your quote {quote.quote_number} from {site.name}"
    link = site.quote_link(quote.access_token)

    rows = "".join(
        "<tr>"
        f'<td style="padding: 6px 8px;">{_e(item.name)}</td>'
        f'<td style="padding: 6px 8px; text-align: right;">{item.quantity}</td>'
        f'<td style="padding: 6px 8px; text-align: right;">{format_money(item.unit_price)}</td>'
        f'<td style="padding: 6px 8px; text-align: right;">{format_money(item.total)}</td>'
        "</tr>"
        for item in quote.line_items
    )
    items_table = (
        '<table style="width: 100%; border-collapse: collapse; font-size: 14px;">'
        "<tr><th align=\"left\">Item</th><th align=\"right\">Qty</th>"
        "<th align=\"right\">Unit</th><th align=\"right\">Total</th></tr>"
        f"{rows}</table>"
    )

    discount_label = "Discount"
    if quote.discount_type == DiscountType.PERCENTAGE and to_decimal(quote.discount_value):
        discount_label = f"Discount ({to_decimal(quote.discount_value).normalize():f}%)"

    totals = [_row("Subtotal", format_money(quote.subtotal))]
    if to_decimal(quote.discount):
        totals.append(_row(discount_label, f"-{format_money(quote.discount)}"))
    if to_decimal(quote.tax):
        totals.append(_row(f"Tax ({to_decimal(quote.tax_rate).normalize():f}%)", format_money(quote.tax)))
    if to_decimal(quote.shipping):
        totals.append(_row("Shipping", format_money(quote.shipping)))
    totals.append(_row("Total", format_money(quote.total)))

    details = []
    if quote.title:
        details.append(_row("Title", quote.title))
    if quote.valid_until:
        details.append(_row("Valid until", quote.valid_until.isoformat()))

    content = (
        f"<p>Hi {_e(greeting_name or 'there')},</p>"
        f"<p>Here is your quote <strong>{_e(quote.quote_number)}</strong>.</p>"
        f'<table style="width: 100%; font-size: 14px;">{"".join(details)}</table>'
        f"{items_table}"
        f'<table style="width: 100%; font-size: 14px; margin-top: 16px;">{"".join(totals)}</table>'
        + (f"<p>{_e(quote.notes)}</p>" if quote.notes else "")
        + '<p style="margin-top: 24px;">'
        + BUTTON.format(href=_e(f"{link}?action=approve"), color="#16a34a", label="Approve quote")
        + BUTTON.format(href=_e(f"{link}?action=decline"), color="#dc2626", label="Decline quote")
        + "</p>"
        + f'<p style="font-size: 13px; color: #64748b;">Or view it online: {_e(link)}</p>'
    )
    return subject, _page(f"Quote {quote.quote_number}", content, site.name)


# =====================================================
# CUSTOMER: ARTWORK APPROVAL
# =====================================================

def render_artwork_email(quote, site, greeting_name: str | None) -> tuple[str, str]:
    subject = f"Artwork ready for approval - {quote.quote_number}"
    link = site.artwork_link(quote.artwork_token)

    content = (
        f"<p>Hi {_e(greeting_name or 'there')},</p>"
        f"<p>The artwork for quote <strong>{_e(quote.quote_number)}</strong> "
        f"(version {quote.artwork_version}) is ready for your review.</p>"
        + (f"<p>File: {_e(quote.artwork_file_name)}</p>" if quote.artwork_file_name else "")
        + '<p style="margin-top: 24px;">'
        + BUTTON.format(href=_e(link), color="#0891b2", label="Review artwork")
        + "</p>"
    )
    return subject, _page("Artwork ready for approval", content, site.name)


# =====================================================
# INTERNAL: CUSTOMER DECISIONS
# =====================================================

def render_quote_decision_email(quote, site, owner_name: str | None, approved: bool) -> tuple[str, str]:
    label = "Approved" if approved else "Declined"
    subject = f"Quote {quote.quote_number} {label} by Customer"

    rows = [_row("Quote Number:", quote.quote_number)]
    if quote.title:
        rows.append(_row("Title:", quote.title))
    rows.append(_row("Total:", format_money(quote.total)))

    content = (
        f"<p>Hi {_e(owner_name or 'team')},</p>"
        + (
            "<p>Great news! Your customer has approved the quote.</p>"
            if approved
            else "<p>Your customer has declined the quote.</p>"
        )
        + f'<table style="width: 100%; font-size: 14px;">{"".join(rows)}</table>'
    )
    return subject, _page("Quote Status Update", content, site.name)


def render_artwork_decision_email(
    quote,
    site,
    owner_name: str | None,
    approved: bool,
    notes: str | None,
) -> tuple[str, str]:
    label = "Approved" if approved else "Needs Changes"
    subject = f"Artwork {label} - {quote.quote_number}"

    rows = [
        _row("Quote Number:", quote.quote_number),
        _row("Artwork version:", quote.artwork_version),
    ]
    if notes:
        rows.append(_row("Customer Notes:", notes))

    content = (
        f"<p>Hi {_e(owner_name or 'team')},</p>"
        + (
            "<p>Your customer has approved the artwork.</p>"
            if approved
            else "<p>Your customer has requested changes to the artwork.</p>"
        )
        + f'<table style="width: 100%; font-size: 14px;">{"".join(rows)}</table>'
    )
    return subject, _page(f"Artwork {label}", content, site.name)
