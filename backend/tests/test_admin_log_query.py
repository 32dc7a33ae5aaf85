from datetime import datetime, timedelta, timezone

from auditlog.models.admin_log import AdminAction, AdminEntityType, AdminLog
from auditlog.services.admin_logs import query
from auditlog.services.admin_logs.filters import AdminLogFilter, criteria_from_params


def _append(store, action=AdminAction.READ, entity_type=AdminEntityType.TODO, actor="admin", **kwargs):
    return store.append(AdminLog(admin_username=actor, action=action, entity_type=entity_type, **kwargs))


def test_scenario_filters_by_entity_type_and_action(store):
    _append(store, AdminAction.READ, AdminEntityType.NOTICE)
    created = _append(store, AdminAction.CREATE, AdminEntityType.SCENARIO, entity_id=11)
    updated = _append(store, AdminAction.UPDATE, AdminEntityType.SCENARIO, entity_id=11)
    deleted = _append(store, AdminAction.DELETE, AdminEntityType.SCENARIO, entity_id=11)
    _append(store, AdminAction.UPDATE, AdminEntityType.TODO)

    page = query.list_page(store, criteria_from_params(entity_type="SCENARIO"))
    assert [view.id for view in page.items] == [deleted.id, updated.id, created.id]
    assert [view.action for view in page.items] == ["DELETE", "UPDATE", "CREATE"]

    page = query.list_page(store, AdminLogFilter(entity_type=AdminEntityType.SCENARIO, action=AdminAction.UPDATE))
    assert [view.id for view in page.items] == [updated.id]


def test_page_size_is_clamped(store):
    for _ in range(120):
        _append(store)

    page = query.list_page(store, AdminLogFilter(), page=0, size=500)

    assert len(page.items) == 100
    assert page.size == 100
    assert page.total == 120
    assert page.total_pages == 2


def test_clamp_page_size_bounds():
    assert query.clamp_page_size(500) == 100
    assert query.clamp_page_size(0) == 1
    assert query.clamp_page_size(30) == 30
    assert query.clamp_page_size(30, max_size=10) == 10


def test_default_page_size(store):
    for _ in range(25):
        _append(store)

    page = query.list_page(store)

    assert len(page.items) == 20
    assert page.page == 0


def test_no_matches_is_empty_page(store):
    _append(store)

    page = query.list_page(store, AdminLogFilter(actor="nobody"))

    assert page.items == []
    assert page.total == 0
    assert page.total_pages == 0


def test_view_projection(store, clock):
    clock.set(datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc))
    record = _append(
        store,
        AdminAction.DELETE,
        AdminEntityType.NOTICE_COMMENT,
        entity_id=42,
        details="Delete comment",
        ip_address="203.0.113.9",
    )

    view = query.to_view(record)

    expected = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc).astimezone().strftime("%Y-%m-%d %H:%M:%S")
    assert view.timestamp == expected
    assert view.action == "DELETE"
    assert view.entity_type == "NOTICE_COMMENT"
    assert view.entity_id == 42
    assert view.details == "Delete comment"
    assert view.ip_address == "203.0.113.9"


def test_stats_counts_trailing_day(store, clock):
    now = datetime.now(timezone.utc).replace(microsecond=0)
    clock.set(now - timedelta(hours=48))
    _append(store, actor="old_admin")
    _append(store, actor="old_admin")
    clock.set(now - timedelta(minutes=50))
    for actor in ("admin", "admin", "root", "admin", "root"):
        _append(store, actor=actor)

    result = query.stats(store, now=now)

    assert result.total_count == 7
    assert result.count_since_last_24h == 5
    assert result.distinct_actor_count == 3
    assert result.distinct_actors == ["admin", "old_admin", "root"]


def test_stats_on_empty_log(store):
    result = query.stats(store)

    assert result.total_count == 0
    assert result.count_since_last_24h == 0
    assert result.distinct_actors == []
