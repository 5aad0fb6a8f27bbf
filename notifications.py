from __future__ import annotations

import logging
from typing import Protocol

import streamlit as st

SEVERITY_SUCCESS = "success"
SEVERITY_INFO = "info"
SEVERITY_ERROR = "error"

TOAST_ICONS = {
    SEVERITY_SUCCESS: "✅",
    SEVERITY_INFO: "ℹ️",
    SEVERITY_ERROR: "⚠️",
}


class Notifier(Protocol):
    def notify(self, title: str, description: str, severity: str = SEVERITY_INFO) -> None:
        ...


class NullNotifier:
    def notify(self, title: str, description: str, severity: str = SEVERITY_INFO) -> None:
        return None


class LoggingNotifier:
    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger("buspass.notifications")

    def notify(self, title: str, description: str, severity: str = SEVERITY_INFO) -> None:
        level = logging.WARNING if severity == SEVERITY_ERROR else logging.INFO
        self._logger.log(level, "%s: %s", title, description)


class StreamlitNotifier:
    """Shows notifications as Streamlit toasts."""

    def notify(self, title: str, description: str, severity: str = SEVERITY_INFO) -> None:
        st.toast(f"**{title}**  \n{description}", icon=TOAST_ICONS.get(severity, TOAST_ICONS[SEVERITY_INFO]))
