from __future__ import annotations

from decimal import Decimal

import pytest

import config
from config import Settings, load_settings
from db import normalize_database_url


@pytest.fixture(autouse=True)
def no_streamlit_secrets(monkeypatch):
    monkeypatch.setattr(config, "secret_value", lambda *keys: None)
    for name in (
        "BUSPASS_PASS_FEE",
        "BUSPASS_CURRENCY",
        "BUSPASS_PAYMENT_LATENCY_SECONDS",
        "BUSPASS_DEFAULT_PAYMENT_MODE",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults_match_portal_behaviour() -> None:
    settings = load_settings()

    assert settings == Settings()
    assert settings.pass_fee == Decimal("1500.00")
    assert settings.payment_latency_seconds == 2.0
    assert settings.default_payment_mode == "card"


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("BUSPASS_PASS_FEE", "1750.5")
    monkeypatch.setenv("BUSPASS_CURRENCY", "usd")
    monkeypatch.setenv("BUSPASS_PAYMENT_LATENCY_SECONDS", "0")
    monkeypatch.setenv("BUSPASS_DEFAULT_PAYMENT_MODE", "UPI")

    settings = load_settings()

    assert settings.pass_fee == Decimal("1750.50")
    assert settings.currency == "USD"
    assert settings.payment_latency_seconds == 0.0
    assert settings.default_payment_mode == "upi"
    assert load_settings(payment_latency_seconds=0.25).payment_latency_seconds == 0.25


@pytest.mark.parametrize(
    "name,value",
    [
        ("BUSPASS_PASS_FEE", "free"),
        ("BUSPASS_PASS_FEE", "-10"),
        ("BUSPASS_PAYMENT_LATENCY_SECONDS", "soon"),
        ("BUSPASS_PAYMENT_LATENCY_SECONDS", "-1"),
    ],
)
def test_invalid_values_fail_at_load(monkeypatch, name, value) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ValueError):
        load_settings()


def test_database_url_normalisation() -> None:
    assert normalize_database_url("sqlite:///buspass.db") == "sqlite:///buspass.db"
    assert normalize_database_url("postgres://u:p@localhost:5432/db") == "postgresql+psycopg2://u:p@localhost:5432/db"
    assert (
        normalize_database_url("postgresql://u:p@db.example.com/db")
        == "postgresql+psycopg2://u:p@db.example.com/db?sslmode=require"
    )
    assert (
        normalize_database_url("'postgresql://u:p@db.example.com/db?sslmode=disable'")
        == "postgresql+psycopg2://u:p@db.example.com/db?sslmode=disable"
    )
