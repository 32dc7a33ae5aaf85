from datetime import datetime, timedelta, timezone

from conftest import auth_headers, login

from auditlog.models.admin_log import AdminAction, AdminEntityType, AdminLog
from auditlog.services.admin_logs import query


def _append(store, actor, action, entity_type, entity_id=None):
    return store.append(
        AdminLog(admin_username=actor, action=action, entity_type=entity_type, entity_id=entity_id)
    )


def _admin_token(client):
    return login(client, "admin", "admin1234")


def test_logs_require_admin(client, create_user):
    assert client.get("/api/v1/admin/logs").status_code == 401
    assert client.get("/api/v1/admin/logs/stats").status_code == 401

    create_user("viewer", "viewer123")
    token = login(client, "viewer", "viewer123")
    assert client.get("/api/v1/admin/logs", headers=auth_headers(token)).status_code == 403
    assert client.get("/api/v1/admin/logs/stats", headers=auth_headers(token)).status_code == 403


def test_bootstrap_is_recorded_as_system_event(client):
    token = _admin_token(client)

    response = client.get("/api/v1/admin/logs", headers=auth_headers(token))

    assert response.status_code == 200
    body = response.json()
    assert body["total_elements"] == 1
    event = body["content"][0]
    assert event["admin_username"] == "system"
    assert event["action"] == "CREATE"
    assert event["entity_type"] == "USER"
    assert event["entity_id"] > 0
    assert event["ip_address"] is None


def test_list_filters_by_entity_type_and_action(client, store):
    token = _admin_token(client)
    _append(store, "admin", AdminAction.CREATE, AdminEntityType.SCENARIO, 3)
    _append(store, "admin", AdminAction.UPDATE, AdminEntityType.SCENARIO, 3)
    _append(store, "admin", AdminAction.DELETE, AdminEntityType.SCENARIO, 3)

    response = client.get(
        "/api/v1/admin/logs",
        params={"entityType": "SCENARIO"},
        headers=auth_headers(token),
    )
    assert response.status_code == 200
    content = response.json()["content"]
    assert [item["action"] for item in content] == ["DELETE", "UPDATE", "CREATE"]

    response = client.get(
        "/api/v1/admin/logs",
        params={"entityType": "SCENARIO", "action": "UPDATE"},
        headers=auth_headers(token),
    )
    assert [item["action"] for item in response.json()["content"]] == ["UPDATE"]


def test_actor_and_date_range_are_combined(client, store, clock):
    token = _admin_token(client)
    clock.set(datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc))
    _append(store, "alice_admin", AdminAction.CREATE, AdminEntityType.NOTICE)
    clock.set(datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc))
    match = _append(store, "alice_admin", AdminAction.UPDATE, AdminEntityType.NOTICE)
    _append(store, "bob_admin", AdminAction.UPDATE, AdminEntityType.NOTICE)

    response = client.get(
        "/api/v1/admin/logs",
        params={"adminUsername": "alice", "startDate": "2025-02-01", "endDate": "2025-03-31"},
        headers=auth_headers(token),
    )

    assert response.status_code == 200
    assert [item["id"] for item in response.json()["content"]] == [match.id]


def test_malformed_filters_are_ignored(client, store):
    token = _admin_token(client)
    _append(store, "root", AdminAction.READ, AdminEntityType.TODO)
    _append(store, "root", AdminAction.READ, AdminEntityType.NOTICE)

    response = client.get(
        "/api/v1/admin/logs",
        params={
            "adminUsername": "root",
            "entityType": "SPACESHIP",
            "action": "PURGE",
            "startDate": "not-a-date",
            "endDate": "31/12/2025",
        },
        headers=auth_headers(token),
    )

    assert response.status_code == 200
    assert response.json()["total_elements"] == 2


def test_out_of_range_dates_are_ignored(client, store, local_zone):
    token = _admin_token(client)
    _append(store, "root", AdminAction.READ, AdminEntityType.TODO)

    local_zone("KST-9")
    response = client.get(
        "/api/v1/admin/logs",
        params={"adminUsername": "root", "startDate": "0001-01-01"},
        headers=auth_headers(token),
    )
    assert response.status_code == 200
    assert response.json()["total_elements"] == 1

    local_zone("EST+5")
    response = client.get(
        "/api/v1/admin/logs",
        params={"adminUsername": "root", "endDate": "9999-12-31"},
        headers=auth_headers(token),
    )
    assert response.status_code == 200
    assert response.json()["total_elements"] == 1


def test_page_size_is_clamped(client, store):
    token = _admin_token(client)
    for n in range(105):
        _append(store, "admin", AdminAction.READ, AdminEntityType.TODO, n)

    response = client.get("/api/v1/admin/logs", params={"size": 500}, headers=auth_headers(token))

    assert response.status_code == 200
    body = response.json()
    assert len(body["content"]) == 100
    assert body["size"] == 100
    # 105 appended plus the bootstrap event
    assert body["total_elements"] == 106
    assert body["total_pages"] == 2


def test_invalid_pagination_is_rejected(client):
    token = _admin_token(client)

    assert client.get("/api/v1/admin/logs", params={"page": -1}, headers=auth_headers(token)).status_code == 422
    assert client.get("/api/v1/admin/logs", params={"size": 0}, headers=auth_headers(token)).status_code == 422
    assert client.get("/api/v1/admin/logs", params={"page": 10**18}, headers=auth_headers(token)).status_code == 422

    last = client.get(
        "/api/v1/admin/logs",
        params={"page": query.MAX_PAGE_INDEX, "size": 100},
        headers=auth_headers(token),
    )
    assert last.status_code == 200
    assert last.json()["content"] == []


def test_view_fields(client, store):
    token = _admin_token(client)
    _append(store, "admin", AdminAction.DELETE, AdminEntityType.CALENDAR_EVENT, 12)

    item = client.get(
        "/api/v1/admin/logs",
        params={"entityType": "CALENDAR_EVENT"},
        headers=auth_headers(token),
    ).json()["content"][0]

    assert set(item) == {
        "id",
        "timestamp",
        "admin_username",
        "action",
        "entity_type",
        "entity_id",
        "details",
        "ip_address",
    }
    datetime.strptime(item["timestamp"], "%Y-%m-%d %H:%M:%S")
    assert item["entity_id"] == 12


def test_stats_endpoint(client, store, clock):
    token = _admin_token(client)
    now = datetime.now(timezone.utc).replace(microsecond=0)
    clock.set(now - timedelta(hours=48))
    _append(store, "old_admin", AdminAction.READ, AdminEntityType.TODO)
    clock.set(now - timedelta(minutes=10))
    _append(store, "admin", AdminAction.READ, AdminEntityType.TODO)

    response = client.get("/api/v1/admin/logs/stats", headers=auth_headers(token))

    assert response.status_code == 200
    body = response.json()
    # the bootstrap event was written moments ago
    assert body["total_count"] == 3
    assert body["count_since_last_24h"] == 2
    assert body["distinct_actor_count"] == 3
    assert body["distinct_actors"] == ["admin", "old_admin", "system"]
