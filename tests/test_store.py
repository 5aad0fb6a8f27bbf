from __future__ import annotations

import pytest

from errors import NotFoundError, StorageError
from models import BusPassApplication, User


def new_application(user_id, **overrides) -> BusPassApplication:
    values = {
        "user_id": user_id,
        "student_name": "Alice",
        "college_name": "MIT",
        "department": "CS",
        "year": "2",
        "route_from": "North Gate",
        "route_to": "Central Station",
    }
    values.update(overrides)
    return BusPassApplication(**values)


def test_update_applies_only_when_precondition_holds(store, student) -> None:
    with store.transaction() as db:
        application = store.insert(db, new_application(student.id))

    with store.transaction() as db:
        updated = store.update(
            db,
            BusPassApplication,
            application.id,
            {"status": "approved"},
            precondition={"status": "pending"},
        )
    assert updated is not None
    assert updated.status == "approved"

    with store.transaction() as db:
        stale = store.update(
            db,
            BusPassApplication,
            application.id,
            {"status": "rejected"},
            precondition={"status": "pending"},
        )
    assert stale is None

    with store.transaction() as db:
        assert store.get(db, BusPassApplication, application.id).status == "approved"


def test_transaction_rolls_back_on_domain_error(store, student) -> None:
    with pytest.raises(NotFoundError):
        with store.transaction() as db:
            store.insert(db, new_application(student.id))
            raise NotFoundError("gone")

    with store.transaction() as db:
        assert store.query(db, BusPassApplication) == []


def test_database_failures_surface_as_storage_error(store, student) -> None:
    with pytest.raises(StorageError) as excinfo:
        with store.transaction() as db:
            store.insert(db, new_application(student.id, year="9"))

    assert excinfo.value.__cause__ is not None
    with store.transaction() as db:
        assert store.query(db, BusPassApplication) == []


def test_query_filters_and_orders(store, student, other_student) -> None:
    with store.transaction() as db:
        store.insert(db, new_application(student.id, route_to="A"))
        store.insert(db, new_application(other_student.id, route_to="B"))
        store.insert(db, new_application(student.id, route_to="C"))

    with store.transaction() as db:
        newest_first = store.query(db, BusPassApplication, {"user_id": student.id}, order_by="created_at")
        oldest_first = store.query(db, BusPassApplication, {"user_id": student.id}, order_by="created_at", descending=False)
        roles = store.count_by(db, User, "role")

    assert [item.route_to for item in newest_first] == ["C", "A"]
    assert [item.route_to for item in oldest_first] == ["A", "C"]
    assert roles == {"student": 2}
