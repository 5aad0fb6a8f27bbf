"""
Bus pass application and payment lifecycle.

``LifecycleEngine`` is the single entry point for every read and write of
applications and payments. Each command takes the acting user explicitly,
checks its preconditions against the stored state, applies the transition in
one store transaction together with its audit entry, and returns the
post-change records.

Transitions:

* ``submit`` and ``renew`` create a pending, unpaid application.
* ``set_status`` (admins) moves any application to approved or rejected.
  Payment status is left alone, so a paid application stays paid if rejected.
* ``pay`` flips approved + unpaid to paid and records exactly one Payment.
* ``derive_pass`` is available only for approved + paid applications.
"""
from __future__ import annotations

import json
import logging
import secrets
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping

from sqlalchemy.orm import Session

from auth import Actor
from config import Settings
from errors import AuthorizationError, BusPassError, InvalidStateError, NotFoundError, ValidationError
from models import (
    APPLICATION_STATUSES,
    DESCRIPTIVE_FIELDS,
    PAYMENT_PAID,
    PAYMENT_UNPAID,
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    STUDY_YEARS,
    AuditLog,
    BusPassApplication,
    Payment,
)
from notifications import SEVERITY_ERROR, SEVERITY_SUCCESS, Notifier, NullNotifier
from store import RecordStore

logger = logging.getLogger(__name__)

ADMIN_SETTABLE_STATUSES = (STATUS_APPROVED, STATUS_REJECTED)

FIELD_LABELS = {
    "student_name": "Student name",
    "college_name": "College name",
    "department": "Department",
    "year": "Year",
    "route_from": "Route from",
    "route_to": "Route to",
}


@dataclass(frozen=True)
class PaymentDetails:
    mode: str | None = None


@dataclass(frozen=True)
class PassView:
    application_id: uuid.UUID
    owner_id: uuid.UUID
    student_name: str
    route: str
    verification_token: str


def generate_transaction_id() -> str:
    return f"TXN-{int(time.time() * 1000)}-{secrets.token_hex(4).upper()}"


def build_verification_token(application: BusPassApplication) -> str:
    payload = {
        "applicationId": str(application.id),
        "ownerId": str(application.user_id),
        "studentName": application.student_name,
        "route": application.route,
    }
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


def validate_application_fields(fields: Mapping[str, Any], limits: Mapping[str, int]) -> dict[str, str]:
    cleaned: dict[str, str] = {}
    errors: dict[str, str] = {}
    missing = False

    for name in DESCRIPTIVE_FIELDS:
        raw = fields.get(name)
        value = "" if raw is None else str(raw).strip()
        label = FIELD_LABELS[name]
        if not value:
            errors[name] = f"{label} is required."
            missing = True
        elif name == "year":
            if value not in STUDY_YEARS:
                errors[name] = "Year must be one of 1, 2, 3 or 4."
        elif len(value) > limits[name]:
            errors[name] = f"{label} must be at most {limits[name]} characters."
        cleaned[name] = value

    if errors:
        message = "All fields are required." if missing else "Please correct the highlighted fields."
        raise ValidationError(message, errors=errors)
    return cleaned


def _as_uuid(value: uuid.UUID | str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError as exc:
        raise ValidationError(
            f"{value!r} is not a valid application id.",
            errors={"application_id": "Malformed id."},
        ) from exc


class LifecycleEngine:
    def __init__(
        self,
        store: RecordStore,
        settings: Settings | None = None,
        notifier: Notifier | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._store = store
        self._settings = settings or Settings()
        self._notifier = notifier or NullNotifier()
        self._sleep = sleep

    @property
    def settings(self) -> Settings:
        return self._settings

    @contextmanager
    def _reporting(self, failure_title: str | None = None) -> Iterator[None]:
        try:
            yield
        except BusPassError as exc:
            logger.warning("Command rejected (%s): %s", exc.kind, exc.message)
            self._notifier.notify(failure_title or exc.title, exc.message, SEVERITY_ERROR)
            raise

    def _audit(self, db: Session, actor: Actor, action: str, details: dict[str, Any]) -> None:
        self._store.insert(db, AuditLog(user_id=actor.id, action=action, details_json=details))

    def _load_application(self, db: Session, application_id: uuid.UUID) -> BusPassApplication:
        application = self._store.get(db, BusPassApplication, application_id)
        if application is None:
            raise NotFoundError(f"Application {application_id} was not found.")
        return application

    @staticmethod
    def _require_admin(actor: Actor, action: str) -> None:
        if not actor.is_admin:
            raise AuthorizationError(f"Only administrators can {action}.")

    @staticmethod
    def _require_owner(application: BusPassApplication, actor: Actor) -> None:
        if application.user_id != actor.id:
            raise AuthorizationError("This application belongs to another user.")

    @staticmethod
    def _check_payable(application: BusPassApplication) -> None:
        if application.status != STATUS_APPROVED:
            raise InvalidStateError(f"Only approved applications can be paid; this one is {application.status}.")
        if application.payment_status != PAYMENT_UNPAID:
            raise InvalidStateError("This application has already been paid.")

    def submit(self, actor: Actor, fields: Mapping[str, Any]) -> BusPassApplication:
        with self._reporting():
            cleaned = validate_application_fields(fields, self._settings.field_limits)
            with self._store.transaction() as db:
                application = self._store.insert(
                    db,
                    BusPassApplication(
                        user_id=actor.id,
                        status=STATUS_PENDING,
                        payment_status=PAYMENT_UNPAID,
                        **cleaned,
                    ),
                )
                self._audit(db, actor, "application_submitted", {"application_id": str(application.id)})

        logger.info("Application %s submitted by %s", application.id, actor.id)
        self._notifier.notify("Application Submitted!", "Your bus pass application is under review.", SEVERITY_SUCCESS)
        return application

    def list_for_owner(self, actor: Actor) -> list[BusPassApplication]:
        with self._reporting():
            with self._store.transaction() as db:
                return self._store.query(db, BusPassApplication, {"user_id": actor.id}, order_by="created_at")

    def list_all(self, actor: Actor) -> list[BusPassApplication]:
        with self._reporting():
            self._require_admin(actor, "view all applications")
            with self._store.transaction() as db:
                return self._store.query(db, BusPassApplication, order_by="created_at")

    def get_application(self, actor: Actor, application_id: uuid.UUID | str) -> BusPassApplication:
        with self._reporting():
            with self._store.transaction() as db:
                application = self._load_application(db, _as_uuid(application_id))
            if not actor.is_admin:
                self._require_owner(application, actor)
            return application

    def set_status(self, actor: Actor, application_id: uuid.UUID | str, new_status: str) -> BusPassApplication:
        with self._reporting():
            self._require_admin(actor, "change application status")
            if new_status not in ADMIN_SETTABLE_STATUSES:
                raise ValidationError(
                    f"Status must be one of: {', '.join(ADMIN_SETTABLE_STATUSES)}.",
                    errors={"status": f"Unsupported status {new_status!r}."},
                )
            app_id = _as_uuid(application_id)
            with self._store.transaction() as db:
                # Status only; payment_status is never touched here.
                application = self._store.update(db, BusPassApplication, app_id, {"status": new_status})
                if application is None:
                    raise NotFoundError(f"Application {app_id} was not found.")
                self._audit(
                    db,
                    actor,
                    "application_status_updated",
                    {"application_id": str(app_id), "status": new_status},
                )

        if new_status == STATUS_REJECTED and application.payment_status == PAYMENT_PAID:
            logger.warning("Application %s rejected after payment; payment status left as paid", app_id)
        logger.info("Application %s set to %s by %s", app_id, new_status, actor.id)
        self._notifier.notify("Updated", f"Application {new_status}.", SEVERITY_SUCCESS)
        return application

    def pay(
        self,
        actor: Actor,
        application_id: uuid.UUID | str,
        details: PaymentDetails | None = None,
    ) -> tuple[BusPassApplication, Payment]:
        details = details or PaymentDetails()
        with self._reporting("Payment failed"):
            mode = (details.mode or self._settings.default_payment_mode).strip().lower()
            if mode not in self._settings.allowed_payment_modes:
                raise ValidationError(
                    f"Payment mode must be one of: {', '.join(self._settings.allowed_payment_modes)}.",
                    errors={"mode": f"Unsupported payment mode {mode!r}."},
                )
            app_id = _as_uuid(application_id)
            with self._store.transaction() as db:
                application = self._load_application(db, app_id)
                self._require_owner(application, actor)
                self._check_payable(application)

            # Simulated gateway round trip. Nothing has been written yet.
            self._sleep(self._settings.payment_latency_seconds)

            with self._store.transaction() as db:
                application = self._store.update(
                    db,
                    BusPassApplication,
                    app_id,
                    {"payment_status": PAYMENT_PAID},
                    precondition={"user_id": actor.id, "status": STATUS_APPROVED, "payment_status": PAYMENT_UNPAID},
                )
                if application is None:
                    raise InvalidStateError("This application can no longer be paid; it may already have been paid.")
                payment = self._store.insert(
                    db,
                    Payment(
                        application_id=app_id,
                        user_id=actor.id,
                        amount=self._settings.pass_fee,
                        currency=self._settings.currency,
                        payment_mode=mode,
                        transaction_id=generate_transaction_id(),
                    ),
                )
                self._audit(
                    db,
                    actor,
                    "payment_recorded",
                    {
                        "application_id": str(app_id),
                        "payment_id": str(payment.id),
                        "transaction_id": payment.transaction_id,
                        "amount": str(payment.amount),
                    },
                )

        logger.info("Payment %s recorded for application %s", payment.transaction_id, app_id)
        self._notifier.notify("Payment successful!", "Your bus pass has been paid.", SEVERITY_SUCCESS)
        return application, payment

    def renew(self, actor: Actor, application_id: uuid.UUID | str) -> BusPassApplication:
        with self._reporting():
            app_id = _as_uuid(application_id)
            with self._store.transaction() as db:
                original = self._load_application(db, app_id)
                self._require_owner(original, actor)
                if original.status != STATUS_APPROVED:
                    raise InvalidStateError(f"Only approved applications can be renewed; this one is {original.status}.")
                renewal = self._store.insert(
                    db,
                    BusPassApplication(
                        user_id=actor.id,
                        status=STATUS_PENDING,
                        payment_status=PAYMENT_UNPAID,
                        renewed_from_id=original.id,
                        **original.descriptive_fields(),
                    ),
                )
                self._audit(
                    db,
                    actor,
                    "application_renewed",
                    {"application_id": str(renewal.id), "renewed_from_id": str(original.id)},
                )

        logger.info("Application %s renewed as %s", app_id, renewal.id)
        self._notifier.notify("Application Submitted!", "Your renewal application is under review.", SEVERITY_SUCCESS)
        return renewal

    def list_payments(self, actor: Actor) -> list[Payment]:
        with self._reporting():
            with self._store.transaction() as db:
                return self._store.query(db, Payment, {"user_id": actor.id}, order_by="paid_at")

    def derive_pass(self, actor: Actor, application_id: uuid.UUID | str) -> PassView:
        with self._reporting():
            with self._store.transaction() as db:
                application = self._load_application(db, _as_uuid(application_id))
            if not actor.is_admin:
                self._require_owner(application, actor)
            if application.status != STATUS_APPROVED or application.payment_status != PAYMENT_PAID:
                raise InvalidStateError("Pass not available: the application must be approved and paid.")
            return PassView(
                application_id=application.id,
                owner_id=application.user_id,
                student_name=application.student_name,
                route=application.route,
                verification_token=build_verification_token(application),
            )

    def application_stats(self, actor: Actor) -> dict[str, int]:
        with self._reporting():
            self._require_admin(actor, "view application statistics")
            with self._store.transaction() as db:
                by_status = self._store.count_by(db, BusPassApplication, "status")
                by_payment = self._store.count_by(db, BusPassApplication, "payment_status")
        stats = {status: by_status.get(status, 0) for status in APPLICATION_STATUSES}
        stats["total"] = sum(by_status.values())
        stats["paid"] = by_payment.get(PAYMENT_PAID, 0)
        return stats
