from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from auth import actor_for_user
from config import load_settings
from db import build_engine, build_session_factory, database_url, db_session, init_schema
from export import build_pass_pdf
from lifecycle import LifecycleEngine, PaymentDetails
from notifications import LoggingNotifier
from seed import seed_default_users
from store import RecordStore


def scenario_fields() -> dict[str, str]:
    return {
        "student_name": "Alice",
        "college_name": "MIT",
        "department": "CS",
        "year": "2",
        "route_from": "North Gate",
        "route_to": "Central Station",
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the apply -> approve -> pay -> pass -> renew flow.")
    parser.add_argument("--database-url", default=None, help="Defaults to DATABASE_URL.")
    parser.add_argument("--pdf", default="bus_pass.pdf", help="Where to write the rendered pass.")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    engine = build_engine(args.database_url or database_url())
    init_schema(engine)
    factory = build_session_factory(engine)
    with db_session(factory) as db:
        users = seed_default_users(db)
    admin = actor_for_user(users["admin"])
    student = actor_for_user(users["student"])

    lifecycle = LifecycleEngine(RecordStore(factory), load_settings(), LoggingNotifier())

    application = lifecycle.submit(student, scenario_fields())
    print(f"Submitted {application.id}: {application.status}/{application.payment_status}")

    application = lifecycle.set_status(admin, application.id, "approved")
    print(f"Admin decision: {application.status}")

    application, payment = lifecycle.pay(student, application.id, PaymentDetails(mode="card"))
    print(f"Paid {payment.amount} {payment.currency} ({payment.transaction_id}): {application.payment_status}")

    pass_view = lifecycle.derive_pass(student, application.id)
    Path(args.pdf).write_bytes(build_pass_pdf(pass_view))
    print(f"Pass written to {args.pdf}; token {pass_view.verification_token}")

    renewal = lifecycle.renew(student, application.id)
    print(f"Renewal {renewal.id}: {renewal.status}/{renewal.payment_status}")


if __name__ == "__main__":
    main()
