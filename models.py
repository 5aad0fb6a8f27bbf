from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

ROLE_STUDENT = "student"
ROLE_ADMIN = "admin"

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
APPLICATION_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)

PAYMENT_UNPAID = "unpaid"
PAYMENT_PAID = "paid"
PAYMENT_STATUSES = (PAYMENT_UNPAID, PAYMENT_PAID)

STUDY_YEARS = ("1", "2", "3", "4")

DESCRIPTIVE_FIELDS = ("student_name", "college_name", "department", "year", "route_from", "route_to")

JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=ROLE_STUDENT)  # student | admin
    full_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    applications = relationship("BusPassApplication", back_populates="user")
    payments = relationship("Payment", back_populates="user")

    __table_args__ = (CheckConstraint("role in ('student', 'admin')", name="ck_users_role"),)


class BusPassApplication(Base):
    __tablename__ = "bus_pass_applications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    student_name: Mapped[str] = mapped_column(String(100), nullable=False)
    college_name: Mapped[str] = mapped_column(String(200), nullable=False)
    department: Mapped[str] = mapped_column(String(100), nullable=False)
    year: Mapped[str] = mapped_column(String(1), nullable=False)  # 1 | 2 | 3 | 4
    route_from: Mapped[str] = mapped_column(String(200), nullable=False)
    route_to: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=STATUS_PENDING)  # pending | approved | rejected
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, default=PAYMENT_UNPAID)  # unpaid | paid
    renewed_from_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("bus_pass_applications.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )

    user = relationship("User", back_populates="applications")
    payments = relationship("Payment", back_populates="application")

    __table_args__ = (
        CheckConstraint("status in ('pending', 'approved', 'rejected')", name="ck_bus_pass_applications_status"),
        CheckConstraint("payment_status in ('unpaid', 'paid')", name="ck_bus_pass_applications_payment_status"),
        CheckConstraint("year in ('1', '2', '3', '4')", name="ck_bus_pass_applications_year"),
        Index("ix_bus_pass_applications_user_id", "user_id"),
        Index("ix_bus_pass_applications_status", "status"),
        Index("ix_bus_pass_applications_created_at", "created_at"),
    )

    @property
    def route(self) -> str:
        return f"{self.route_from} -> {self.route_to}"

    def descriptive_fields(self) -> dict[str, str]:
        return {name: getattr(self, name) for name in DESCRIPTIVE_FIELDS}


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    application_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("bus_pass_applications.id"), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")
    payment_mode: Mapped[str] = mapped_column(String(30), nullable=False, default="card")
    transaction_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    paid_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    application = relationship("BusPassApplication", back_populates="payments")
    user = relationship("User", back_populates="payments")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        Index("ix_payments_user_id", "user_id"),
        Index("ix_payments_application_id", "application_id"),
    )


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    action: Mapped[str] = mapped_column(String(120), nullable=False)
    details_json: Mapped[dict] = mapped_column(JSONType, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
