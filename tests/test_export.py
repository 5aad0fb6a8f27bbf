from __future__ import annotations

import json
from decimal import Decimal

from export import build_pass_pdf, build_payments_json
from lifecycle import PaymentDetails


def test_pass_pdf_is_rendered_for_paid_application(lifecycle, student, admin) -> None:
    application = lifecycle.submit(
        student,
        {
            "student_name": "Alice",
            "college_name": "MIT",
            "department": "CS",
            "year": "2",
            "route_from": "North Gate",
            "route_to": "Central Station",
        },
    )
    lifecycle.set_status(admin, application.id, "approved")
    lifecycle.pay(student, application.id, PaymentDetails(mode="card"))

    pdf = build_pass_pdf(lifecycle.derive_pass(student, application.id))

    assert pdf.startswith(b"%PDF")
    assert len(pdf) > 1000


def test_payments_json_lists_ledger_entries(lifecycle, student, admin) -> None:
    application = lifecycle.submit(
        student,
        {
            "student_name": "Alice",
            "college_name": "MIT",
            "department": "CS",
            "year": "4",
            "route_from": "Hostel",
            "route_to": "Main Campus",
        },
    )
    lifecycle.set_status(admin, application.id, "approved")
    _, payment = lifecycle.pay(student, application.id)

    rows = json.loads(build_payments_json(lifecycle.list_payments(student)))

    assert len(rows) == 1
    assert rows[0]["transaction_id"] == payment.transaction_id
    assert rows[0]["application_id"] == str(application.id)
    assert Decimal(rows[0]["amount"]) == Decimal("1500.00")
    assert rows[0]["payment_mode"] == "card"
