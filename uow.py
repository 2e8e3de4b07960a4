from __future__ import annotations
from typing import Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from extensions import db

M = TypeVar("M")


class UnitOfWork:
    """Transaction-scoped handle over the request session.

    with UnitOfWork() as uow:
        slot = uow.lock_for_update(TimeSlot, slot_id)
        ...
        uow.commit()

    Leaving the block without `commit()` (or with an exception) rolls back.
    """

    def __init__(self, session: Optional[Session] = None):
        self.session: Session = session or db.session
        self._done = False

    def __enter__(self) -> "UnitOfWork":
        self._done = False
        return self

    def __exit__(self, exc_type, exc, tb):
        if not self._done:
            self.rollback()
        return False

    # ---- загрузка ----
    def load(self, model: Type[M], ident) -> Optional[M]:
        return self.session.get(model, ident)

    def lock_for_update(self, model: Type[M], ident) -> Optional[M]:
        # populate_existing: перечитываем строку после получения блокировки
        stmt = (select(model)
                .where(model.id == ident)
                .with_for_update()
                .execution_options(populate_existing=True))
        return self.session.execute(stmt).scalar_one_or_none()

    # ---- запись ----
    def save(self, obj) -> None:
        self.session.add(obj)

    def delete(self, obj) -> None:
        self.session.delete(obj)

    def flush(self) -> None:
        self.session.flush()

    def commit(self) -> None:
        self.session.commit()
        self._done = True

    def rollback(self) -> None:
        self.session.rollback()
        self._done = True
