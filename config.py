from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

import streamlit as st
from dotenv import load_dotenv

load_dotenv()


def secret_value(*keys: str) -> str | None:
    """Look up the first non-empty Streamlit secret among ``keys``.

    Nested sections are addressed with a dot, e.g. ``"database.url"``.
    """
    try:
        for key in keys:
            section, _, name = key.partition(".")
            if name:
                if section in st.secrets and name in st.secrets[section]:
                    value = str(st.secrets[section][name]).strip()
                    if value:
                        return value
                continue
            if key in st.secrets:
                value = str(st.secrets[key]).strip()
                if value:
                    return value
    except Exception:
        # No secrets.toml outside a Streamlit deployment.
        return None
    return None


def setting(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is not None and value.strip():
        return value.strip()
    return secret_value(name, name.lower()) or default


@dataclass(frozen=True)
class Settings:
    pass_fee: Decimal = Decimal("1500.00")
    currency: str = "INR"
    payment_latency_seconds: float = 2.0
    default_payment_mode: str = "card"
    allowed_payment_modes: tuple[str, ...] = ("card", "upi", "netbanking")
    field_limits: dict[str, int] = field(
        default_factory=lambda: {
            "student_name": 100,
            "college_name": 200,
            "department": 100,
            "route_from": 200,
            "route_to": 200,
        }
    )


def _parse_decimal(name: str, value: str) -> Decimal:
    try:
        parsed = Decimal(value)
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be a decimal amount, got {value!r}") from exc
    if parsed <= 0:
        raise ValueError(f"{name} must be positive, got {value!r}")
    return parsed.quantize(Decimal("0.01"))


def _parse_seconds(name: str, value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number of seconds, got {value!r}") from exc
    if parsed < 0:
        raise ValueError(f"{name} cannot be negative, got {value!r}")
    return parsed


def load_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {}

    fee = setting("BUSPASS_PASS_FEE")
    if fee:
        values["pass_fee"] = _parse_decimal("BUSPASS_PASS_FEE", fee)
    currency = setting("BUSPASS_CURRENCY")
    if currency:
        values["currency"] = currency.upper()
    latency = setting("BUSPASS_PAYMENT_LATENCY_SECONDS")
    if latency:
        values["payment_latency_seconds"] = _parse_seconds("BUSPASS_PAYMENT_LATENCY_SECONDS", latency)
    mode = setting("BUSPASS_DEFAULT_PAYMENT_MODE")
    if mode:
        values["default_payment_mode"] = mode.lower()

    values.update(overrides)
    return Settings(**values)
