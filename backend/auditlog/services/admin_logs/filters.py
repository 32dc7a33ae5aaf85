from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, time, timezone
from enum import Enum
from typing import Optional, Type, TypeVar

from sqlalchemy import and_, true
from sqlalchemy.sql.elements import ColumnElement

from auditlog.models.admin_log import AdminAction, AdminEntityType, AdminLog

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

# Newest first; id breaks ties between records written in the same instant.
ADMIN_LOG_ORDERING = (AdminLog.timestamp.desc(), AdminLog.id.desc())

END_OF_DAY = time(23, 59, 59)
DATE_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True)
class AdminLogFilter:
    actor: Optional[str] = None
    entity_type: Optional[AdminEntityType] = None
    action: Optional[AdminAction] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return not any(
            (self.actor, self.entity_type, self.action, self.start, self.end)
        )


def compose_filter(criteria: AdminLogFilter) -> ColumnElement[bool]:
    clauses = []
    if criteria.actor:
        clauses.append(AdminLog.admin_username.icontains(criteria.actor, autoescape=True))
    if criteria.entity_type is not None:
        clauses.append(AdminLog.entity_type == criteria.entity_type)
    if criteria.action is not None:
        clauses.append(AdminLog.action == criteria.action)
    if criteria.start is not None:
        clauses.append(AdminLog.timestamp >= criteria.start)
    if criteria.end is not None:
        clauses.append(AdminLog.timestamp <= criteria.end)

    if not clauses:
        return true()
    return and_(*clauses)


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _parse_enum(enum_cls: Type[E], raw: Optional[str], label: str) -> Optional[E]:
    if _blank(raw):
        return None
    try:
        return enum_cls[raw.strip().upper()]
    except KeyError:
        logger.warning("Invalid %s: '%s' (will be ignored)", label, raw)
        return None


def parse_action(raw: Optional[str]) -> Optional[AdminAction]:
    return _parse_enum(AdminAction, raw, "action")


def parse_entity_type(raw: Optional[str]) -> Optional[AdminEntityType]:
    return _parse_enum(AdminEntityType, raw, "entityType")


def _parse_local_date(raw: Optional[str], at: time, label: str) -> Optional[datetime]:
    if _blank(raw):
        return None
    try:
        day = datetime.strptime(raw.strip(), DATE_FORMAT).date()
        # naive datetime.astimezone() interprets the value in the server's zone
        return datetime.combine(day, at).astimezone().astimezone(timezone.utc)
    except (ValueError, OverflowError):
        # days at the edge of the calendar can fall outside it once shifted to UTC
        logger.warning("Invalid %s format: '%s' (will be ignored)", label, raw)
        return None


def parse_start_date(raw: Optional[str]) -> Optional[datetime]:
    return _parse_local_date(raw, time.min, "startDate")


def parse_end_date(raw: Optional[str]) -> Optional[datetime]:
    return _parse_local_date(raw, END_OF_DAY, "endDate")


def criteria_from_params(
    admin_username: Optional[str] = None,
    entity_type: Optional[str] = None,
    action: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> AdminLogFilter:
    """Build filter criteria from raw query-string values.

    Malformed values are dropped with a warning rather than rejected, so a bad
    filter never turns the listing into an error.
    """
    return AdminLogFilter(
        actor=None if _blank(admin_username) else admin_username.strip(),
        entity_type=parse_entity_type(entity_type),
        action=parse_action(action),
        start=parse_start_date(start_date),
        end=parse_end_date(end_date),
    )
