from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from auditlog.core.config import settings
from auditlog.models.admin_log import AdminLog
from auditlog.schemas.admin_log import AdminLogOut, AdminLogStatsOut
from auditlog.services.admin_logs.filters import AdminLogFilter, compose_filter
from auditlog.services.admin_logs.store import AdminLogStore, Page, PageRequest

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
STATS_WINDOW = timedelta(hours=24)

# OFFSET is a signed 64-bit value on both SQLite and Postgres
MAX_OFFSET = 2**63 - 1
MAX_PAGE_INDEX = MAX_OFFSET // settings.ADMIN_LOG_MAX_PAGE_SIZE


def clamp_page_size(size: int, max_size: Optional[int] = None) -> int:
    limit = max_size if max_size is not None else settings.ADMIN_LOG_MAX_PAGE_SIZE
    return max(1, min(size, limit))


def format_timestamp(value: datetime) -> str:
    # SQLite hands back naive values; they were written as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone().strftime(TIMESTAMP_FORMAT)


def to_view(record: AdminLog) -> AdminLogOut:
    return AdminLogOut(
        id=record.id,
        timestamp=format_timestamp(record.timestamp),
        admin_username=record.admin_username,
        action=record.action.name,
        entity_type=record.entity_type.name,
        entity_id=record.entity_id,
        details=record.details,
        ip_address=record.ip_address,
    )


def list_page(
    store: AdminLogStore,
    criteria: Optional[AdminLogFilter] = None,
    page: int = 0,
    size: Optional[int] = None,
) -> Page[AdminLogOut]:
    if size is None:
        size = settings.ADMIN_LOG_DEFAULT_PAGE_SIZE
    page_request = PageRequest(page=min(max(page, 0), MAX_PAGE_INDEX), size=clamp_page_size(size))

    where = None
    if criteria is not None and not criteria.is_empty:
        where = compose_filter(criteria)

    logger.debug(
        "admin_logs_query page=%s size=%s criteria=%s",
        page_request.page,
        page_request.size,
        criteria,
    )
    return store.find_page(page_request, where).map(to_view)


def stats(store: AdminLogStore, now: Optional[datetime] = None) -> AdminLogStatsOut:
    now = now or datetime.now(timezone.utc)
    actors = store.distinct_actor_identities()
    return AdminLogStatsOut(
        total_count=store.count(),
        count_since_last_24h=store.count_since(now - STATS_WINDOW),
        distinct_actor_count=len(actors),
        distinct_actors=actors,
    )
