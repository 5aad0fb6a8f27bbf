from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, MutableMapping, Optional

import bcrypt
import streamlit as st
from sqlalchemy import select
from sqlalchemy.orm import Session

from errors import ValidationError
from models import ROLE_ADMIN, ROLE_STUDENT, User

SESSION_USER_KEY = "auth_user"


@dataclass(frozen=True)
class Actor:
    id: uuid.UUID
    is_admin: bool = False


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def register_user(db: Session, email: str, password: str, full_name: str) -> User:
    email = _normalize_email(email)
    full_name = (full_name or "").strip()
    errors: dict[str, str] = {}
    if not email or "@" not in email:
        errors["email"] = "A valid email address is required."
    if len(password or "") < 6:
        errors["password"] = "Password must be at least 6 characters."
    if not full_name:
        errors["full_name"] = "Full name is required."
    elif len(full_name) > 100:
        errors["full_name"] = "Full name must be at most 100 characters."
    if errors:
        raise ValidationError("Please correct the highlighted fields.", errors=errors)

    if db.scalar(select(User).where(User.email == email)):
        raise ValidationError("An account with this email already exists.", errors={"email": "Already registered."})

    user = User(role=ROLE_STUDENT, email=email, full_name=full_name, password_hash=hash_password(password))
    db.add(user)
    db.flush()
    return user


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    user = db.scalar(select(User).where(User.email == _normalize_email(email)))
    if not user or not user.password_hash:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def actor_for_user(user: User) -> Actor:
    return Actor(id=user.id, is_admin=user.role == ROLE_ADMIN)


def sign_in(user: User, state: MutableMapping[str, Any] | None = None) -> Actor:
    state = st.session_state if state is None else state
    state[SESSION_USER_KEY] = {"id": str(user.id), "role": user.role, "full_name": user.full_name}
    return actor_for_user(user)


def sign_out(state: MutableMapping[str, Any] | None = None) -> None:
    state = st.session_state if state is None else state
    state.pop(SESSION_USER_KEY, None)


def current_actor(state: MutableMapping[str, Any] | None = None) -> Optional[Actor]:
    """Return the signed-in actor from the Streamlit session, if any."""
    state = st.session_state if state is None else state
    payload = state.get(SESSION_USER_KEY)
    if not payload:
        return None
    return Actor(id=uuid.UUID(payload["id"]), is_admin=payload.get("role") == ROLE_ADMIN)
