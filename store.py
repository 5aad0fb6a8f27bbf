"""
Record store over a SQLAlchemy sessionmaker.

The lifecycle engine only talks to the database through this class. Writes
that depend on current state go through :meth:`RecordStore.update`, which
applies the change only if the row still matches the given precondition, so
a check-then-write race cannot overwrite a concurrent change.
"""
from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from typing import Any, Iterator, Optional, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from errors import StorageError
from models import Base

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class RecordStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Yield a session; commit on success, roll back on any failure.

        Database failures surface as ``StorageError``. Any other exception
        raised inside the block propagates unchanged after the rollback.
        """
        session: Session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Record store transaction failed: %s", exc)
            raise StorageError(f"The record store could not complete the request: {exc.__class__.__name__}") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def insert(self, db: Session, record: ModelT) -> ModelT:
        db.add(record)
        db.flush()
        return record

    def get(self, db: Session, model: type[ModelT], record_id: uuid.UUID) -> Optional[ModelT]:
        return db.get(model, record_id)

    def update(
        self,
        db: Session,
        model: type[ModelT],
        record_id: uuid.UUID,
        values: dict[str, Any],
        precondition: dict[str, Any] | None = None,
    ) -> Optional[ModelT]:
        """Apply ``values`` to one row if it still matches ``precondition``.

        Returns the refreshed record, or ``None`` when no row matched (either
        the id is unknown or the precondition no longer holds).
        """
        statement = update(model).where(model.id == record_id)
        for column, expected in (precondition or {}).items():
            statement = statement.where(getattr(model, column) == expected)
        result = db.execute(statement.values(**values).execution_options(synchronize_session=False))
        if result.rowcount != 1:
            return None
        return db.get(model, record_id, populate_existing=True)

    def query(
        self,
        db: Session,
        model: type[ModelT],
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = True,
    ) -> list[ModelT]:
        statement = select(model)
        for column, expected in (filters or {}).items():
            statement = statement.where(getattr(model, column) == expected)
        if order_by:
            column = getattr(model, order_by)
            statement = statement.order_by(column.desc() if descending else column.asc())
        return list(db.scalars(statement).all())

    def count_by(self, db: Session, model: type[ModelT], column: str) -> dict[Any, int]:
        grouped = getattr(model, column)
        rows = db.execute(select(grouped, func.count()).group_by(grouped)).all()
        return {value: int(total) for value, total in rows}
