from __future__ import annotations

import io
import json
from datetime import datetime, timezone
from typing import Any, Iterable

from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from lifecycle import PassView
from models import Payment

QR_SIZE = 180


def _safe_text(value: Any) -> str:
    if value is None:
        return "-"
    return str(value)


def build_qr_drawing(payload: str, size: int = QR_SIZE) -> Drawing:
    widget = QrCodeWidget(payload)
    x1, y1, x2, y2 = widget.getBounds()
    drawing = Drawing(size, size, transform=[size / (x2 - x1), 0, 0, size / (y2 - y1), 0, 0])
    drawing.add(widget)
    return drawing


def build_pass_pdf(pass_view: PassView, title: str = "Student Bus Pass") -> bytes:
    """Render a printable pass whose QR code encodes the verification token."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, title=title)
    styles = getSampleStyleSheet()
    normal = styles["BodyText"]

    story = []
    story.append(Paragraph(title, styles["Title"]))
    story.append(Paragraph(f"Generated: {datetime.now(timezone.utc).isoformat()} UTC", normal))
    story.append(Spacer(1, 12))

    story.append(Paragraph("Pass Holder", styles["Heading2"]))
    story.append(Paragraph(f"Name: {_safe_text(pass_view.student_name)}", normal))
    story.append(Paragraph(f"Route: {_safe_text(pass_view.route)}", normal))
    story.append(Paragraph(f"Application ID: {_safe_text(pass_view.application_id)}", normal))
    story.append(Spacer(1, 12))

    story.append(Paragraph("Scan to verify", styles["Heading3"]))
    story.append(build_qr_drawing(pass_view.verification_token))

    doc.build(story)
    buffer.seek(0)
    return buffer.read()


def build_payments_json(payments: Iterable[Payment]) -> bytes:
    rows = [
        {
            "payment_id": str(payment.id),
            "application_id": str(payment.application_id),
            "amount": str(payment.amount),
            "currency": payment.currency,
            "payment_mode": payment.payment_mode,
            "transaction_id": payment.transaction_id,
            "paid_at": payment.paid_at.isoformat() if payment.paid_at else None,
        }
        for payment in payments
    ]
    return json.dumps(rows, indent=2, ensure_ascii=True).encode("utf-8")
