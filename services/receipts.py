"""PDF receipts, rendered in memory from the gateway's record of a session.

Nothing is written to disk: the receipt is rebuilt from the checkout
session each time it is emailed or downloaded. The item list comes from the
session's cart summary, so it only carries ``name × quantity``.
"""
from io import BytesIO

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from services.checkout import parse_cart_summary
from utils.emailer import send_email

MARGIN = 72


def receipt_from_session(session: dict) -> dict:
    amount_total = session.get("amount_total") or 0
    return {
        "session_id": session.get("id"),
        "items": parse_cart_summary((session.get("metadata") or {}).get("cartSummary")),
        "amount": f"{amount_total / 100:.2f}",
        "currency": (session.get("currency") or "").lower(),
        "status": "PAID",
    }


def render_receipt_pdf(receipt: dict) -> bytes:
    buf = BytesIO()
    pdf = canvas.Canvas(buf, pagesize=A4)
    width, height = A4
    y = height - MARGIN

    def line(text, size=14, font="Helvetica", gap=22):
        nonlocal y
        if y < MARGIN:
            pdf.showPage()
            y = height - MARGIN
        pdf.setFont(font, size)
        pdf.drawString(MARGIN, y, text)
        y -= gap

    pdf.setTitle(f"Receipt {receipt['session_id']}")
    pdf.setFont("Helvetica-Bold", 22)
    pdf.drawCentredString(width / 2, y, "Restaurant Order Receipt")
    y -= 48

    if receipt["items"]:
        line("Ordered Items:", size=16, font="Helvetica-Bold")
        for i, item in enumerate(receipt["items"], start=1):
            line(f"{i}. {item['name']} × {item['quantity']}")
        y -= 12

    line(f"Total Paid: {receipt['currency'].upper()} {receipt['amount']}", size=16, font="Helvetica-Bold")
    line(f"Transaction ID: {receipt['session_id']}")
    line(f"Status: {receipt['status']}")
    y -= 12
    pdf.setFont("Helvetica", 14)
    pdf.drawCentredString(width / 2, max(y, MARGIN / 2), "Thank you for your order!")

    pdf.showPage()
    pdf.save()
    return buf.getvalue()


def send_receipt(to_email: str, receipt: dict):
    pdf_bytes = render_receipt_pdf(receipt)
    ordered = "\n".join(f"{item['name']} × {item['quantity']}" for item in receipt["items"])
    body = (
        f"Thank you for your payment of {receipt['currency'].upper()} {receipt['amount']}.\n\n"
        f"Ordered Items:\n{ordered}\n\n"
        f"Transaction ID: {receipt['session_id']}\n"
        f"Status: {receipt['status']}\n\n"
        "Attached is your receipt."
    )
    return send_email(
        to_email,
        "Your Order Receipt",
        body,
        attachments=[(f"receipt-{receipt['session_id']}.pdf", pdf_bytes, "application/pdf")],
    )
