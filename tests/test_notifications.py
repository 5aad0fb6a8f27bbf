from __future__ import annotations

import logging

import notifications
from notifications import LoggingNotifier, NullNotifier, StreamlitNotifier


def test_streamlit_notifier_shows_toast(monkeypatch) -> None:
    toasts: list[tuple[str, str]] = []
    monkeypatch.setattr(notifications.st, "toast", lambda body, icon=None: toasts.append((body, icon)))

    StreamlitNotifier().notify("Payment failed", "This application has already been paid.", "error")

    body, icon = toasts[0]
    assert "Payment failed" in body
    assert "already been paid" in body
    assert icon == notifications.TOAST_ICONS["error"]


def test_logging_notifier_maps_severity(caplog) -> None:
    with caplog.at_level(logging.INFO, logger="buspass.notifications"):
        LoggingNotifier().notify("Updated", "Application approved.", "success")
        LoggingNotifier().notify("Error", "Something broke.", "error")

    assert [record.levelno for record in caplog.records] == [logging.INFO, logging.WARNING]
    assert "Updated: Application approved." in caplog.records[0].getMessage()


def test_null_notifier_accepts_messages() -> None:
    assert NullNotifier().notify("Updated", "Application approved.") is None
