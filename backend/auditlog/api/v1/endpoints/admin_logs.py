import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError

from auditlog.core.config import settings
from auditlog.core.security import require_roles
from auditlog.models.role import ROLE_ADMIN, ROLE_SUPER_ADMIN
from auditlog.schemas.admin_log import AdminLogPageOut, AdminLogStatsOut
from auditlog.services.admin_logs import query
from auditlog.services.admin_logs.filters import criteria_from_params
from auditlog.services.admin_logs.store import AdminLogStore, get_admin_log_store

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=AdminLogPageOut)
def list_admin_logs(
    page: int = Query(default=0, ge=0, le=query.MAX_PAGE_INDEX),
    size: int = Query(
        default=settings.ADMIN_LOG_DEFAULT_PAGE_SIZE,
        ge=1,
        description="Clamped to ADMIN_LOG_MAX_PAGE_SIZE",
    ),
    admin_username: Optional[str] = Query(default=None, alias="adminUsername"),
    entity_type: Optional[str] = Query(default=None, alias="entityType"),
    action: Optional[str] = Query(default=None),
    start_date: Optional[str] = Query(default=None, alias="startDate", description="yyyy-MM-dd, inclusive"),
    end_date: Optional[str] = Query(default=None, alias="endDate", description="yyyy-MM-dd, inclusive"),
    store: AdminLogStore = Depends(get_admin_log_store),
    _user=Depends(require_roles(ROLE_ADMIN, ROLE_SUPER_ADMIN)),
) -> AdminLogPageOut:
    criteria = criteria_from_params(admin_username, entity_type, action, start_date, end_date)
    logger.info(
        "admin_logs_request page=%s size=%s admin_username=%s entity_type=%s action=%s start_date=%s end_date=%s",
        page,
        size,
        criteria.actor,
        criteria.entity_type,
        criteria.action,
        start_date,
        end_date,
    )
    try:
        result = query.list_page(store, criteria, page=page, size=size)
    except SQLAlchemyError:
        logger.exception("admin_logs_query_failed")
        raise

    return AdminLogPageOut(
        content=result.items,
        total_elements=result.total,
        total_pages=result.total_pages,
        page=result.page,
        size=result.size,
    )


@router.get("/stats", response_model=AdminLogStatsOut)
def admin_log_stats(
    store: AdminLogStore = Depends(get_admin_log_store),
    _user=Depends(require_roles(ROLE_ADMIN, ROLE_SUPER_ADMIN)),
) -> AdminLogStatsOut:
    try:
        return query.stats(store)
    except SQLAlchemyError:
        logger.exception("admin_log_stats_failed")
        raise
