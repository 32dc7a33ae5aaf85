from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Generic, List, Optional, TypeVar

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.sql.elements import ColumnElement

from auditlog.db.session import SessionLocal
from auditlog.models.admin_log import AdminLog
from auditlog.services.admin_logs.filters import ADMIN_LOG_ORDERING

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class PageRequest:
    page: int = 0
    size: int = 20

    @property
    def offset(self) -> int:
        return self.page * self.size


@dataclass
class Page(Generic[T]):
    items: List[T]
    total: int
    page: int
    size: int

    @property
    def total_pages(self) -> int:
        if self.size <= 0:
            return 0
        return math.ceil(self.total / self.size)

    def map(self, fn: Callable[[T], U]) -> "Page[U]":
        return Page(items=[fn(item) for item in self.items], total=self.total, page=self.page, size=self.size)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AdminLogStore:
    """Append-only persistence for admin log records.

    Every call runs in its own short-lived session, so an append commits
    independently of whatever transaction the caller has open.
    """

    def __init__(self, session_factory: sessionmaker | Callable[[], Session], clock: Callable[[], datetime] = _utcnow):
        self._session_factory = session_factory
        self._clock = clock

    def append(self, record: AdminLog) -> AdminLog:
        if record.id is not None:
            raise ValueError("admin log records are append-only")
        record.timestamp = self._clock()
        if record.entity_id is None:
            record.entity_id = 0
        with self._session_factory() as db:
            db.add(record)
            db.commit()
            db.refresh(record)
            db.expunge(record)
        return record

    def find_page(self, page_request: PageRequest, where: Optional[ColumnElement[bool]] = None) -> Page[AdminLog]:
        count_stmt = select(func.count()).select_from(AdminLog)
        stmt = select(AdminLog)
        if where is not None:
            count_stmt = count_stmt.where(where)
            stmt = stmt.where(where)
        stmt = stmt.order_by(*ADMIN_LOG_ORDERING).offset(page_request.offset).limit(page_request.size)

        with self._session_factory() as db:
            total = db.scalar(count_stmt) or 0
            items = list(db.scalars(stmt).all())
            for item in items:
                db.expunge(item)
        return Page(items=items, total=total, page=page_request.page, size=page_request.size)

    def count(self) -> int:
        with self._session_factory() as db:
            return db.scalar(select(func.count()).select_from(AdminLog)) or 0

    def count_since(self, since: datetime) -> int:
        stmt = select(func.count()).select_from(AdminLog).where(AdminLog.timestamp >= since)
        with self._session_factory() as db:
            return db.scalar(stmt) or 0

    def count_since_for_actor(self, admin_username: str, since: datetime) -> int:
        stmt = (
            select(func.count())
            .select_from(AdminLog)
            .where(AdminLog.admin_username == admin_username, AdminLog.timestamp >= since)
        )
        with self._session_factory() as db:
            return db.scalar(stmt) or 0

    def distinct_actor_identities(self) -> List[str]:
        stmt = select(AdminLog.admin_username).distinct().order_by(AdminLog.admin_username.asc())
        with self._session_factory() as db:
            return list(db.scalars(stmt).all())


def get_admin_log_store() -> AdminLogStore:
    return AdminLogStore(SessionLocal)
