from __future__ import annotations

import pytest

from auth import Actor, actor_for_user
from config import Settings
from db import build_engine, build_session_factory, db_session, init_schema
from lifecycle import LifecycleEngine
from models import ROLE_ADMIN, ROLE_STUDENT, User
from store import RecordStore


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str, str]] = []

    def notify(self, title: str, description: str, severity: str = "info") -> None:
        self.messages.append((title, description, severity))

    @property
    def titles(self) -> list[str]:
        return [title for title, _, _ in self.messages]


def create_actor(factory, role: str, email: str, full_name: str) -> Actor:
    with db_session(factory) as db:
        user = User(role=role, email=email, full_name=full_name)
        db.add(user)
        db.flush()
        return actor_for_user(user)


@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'buspass.db'}")
    init_schema(engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def store(session_factory) -> RecordStore:
    return RecordStore(session_factory)


@pytest.fixture
def student(session_factory) -> Actor:
    return create_actor(session_factory, ROLE_STUDENT, "alice@college.edu", "Alice")


@pytest.fixture
def other_student(session_factory) -> Actor:
    return create_actor(session_factory, ROLE_STUDENT, "bob@college.edu", "Bob")


@pytest.fixture
def admin(session_factory) -> Actor:
    return create_actor(session_factory, ROLE_ADMIN, "office@transport.gov", "Transport Office")


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def lifecycle(store, notifier) -> LifecycleEngine:
    return LifecycleEngine(store, Settings(payment_latency_seconds=0), notifier)
