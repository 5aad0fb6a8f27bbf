from __future__ import annotations

import os

from sqlalchemy import select
from sqlalchemy.orm import Session

from auth import hash_password
from models import ROLE_ADMIN, ROLE_STUDENT, User

DEFAULT_ACCOUNTS = [
    # role, email env var, default email, password env var, default password, full name
    (ROLE_ADMIN, "BUSPASS_ADMIN_EMAIL", "admin@buspass.local", "BUSPASS_ADMIN_PASSWORD", "Admin123!", "Transport Office"),
    (ROLE_STUDENT, "BUSPASS_STUDENT_EMAIL", "student@buspass.local", "BUSPASS_STUDENT_PASSWORD", "Student123!", "Demo Student"),
]


def seed_default_users(db: Session) -> dict[str, User]:
    """Create the default admin and demo student if they are missing."""
    seeded: dict[str, User] = {}
    for role, email_var, default_email, password_var, default_password, full_name in DEFAULT_ACCOUNTS:
        email = os.getenv(email_var, default_email).strip().lower()
        user = db.scalar(select(User).where(User.email == email))
        if not user:
            user = User(
                role=role,
                email=email,
                full_name=full_name,
                password_hash=hash_password(os.getenv(password_var, default_password)),
            )
            db.add(user)
            db.flush()
        seeded[role] = user
    return seeded
