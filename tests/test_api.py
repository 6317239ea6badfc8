from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.notification import NotificationType
from app.services import notification_service
from app.utils.timezone import utc_now

from conftest import PASSWORD, login, make_task, make_user


@pytest_asyncio.fixture
async def seeded(engine):
    Session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with Session() as db:
        admin = await make_user(db, "admin@example.com", "Ada Admin", role="admin", pay_rate=100, password=PASSWORD)
        ann = await make_user(db, "ann@example.com", "Ann Worker", pay_rate=40, password=PASSWORD)
        task = await make_task(db, assignees=[ann])
        await notification_service.create_notification(
            db, user_id=ann.id, type=NotificationType.SYSTEM, title="Hi", message="Welcome"
        )
    yield {"admin": admin, "ann": ann, "task": task}


@pytest.mark.asyncio
async def test_health(api):
    response = await api.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_login_me_logout(api, seeded):
    response = await api.post("/api/v1/auth/login", json={"email": "ann@example.com", "password": "wrong"})
    assert response.status_code == 401
    response = await api.post("/api/v1/auth/login", json={"email": "ann@example.com"})
    assert response.status_code == 400

    headers = await login(api, "ann@example.com")
    me = await api.get("/api/v1/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["email"] == "ann@example.com"
    assert "pay_rate" not in me.json()

    assert (await api.post("/api/v1/auth/logout", headers=headers)).status_code == 200
    api.cookies.clear()
    assert (await api.get("/api/v1/auth/me", headers=headers)).status_code == 401


@pytest.mark.asyncio
async def test_admin_only_routes(api, seeded):
    ann = await login(api, "ann@example.com")
    admin = await login(api, "admin@example.com")

    assert (await api.get("/api/v1/users/", headers=ann)).status_code == 403
    assert (await api.post("/api/v1/clients/", json={"name": "Beta"}, headers=ann)).status_code == 403

    users = await api.get("/api/v1/users/", headers=admin)
    assert users.status_code == 200
    assert {u["email"] for u in users.json()} == {"admin@example.com", "ann@example.com"}

    created = await api.post("/api/v1/clients/", json={"name": "Beta"}, headers=admin)
    assert created.status_code == 201


@pytest.mark.asyncio
async def test_domain_errors_map_to_status_codes(api, seeded):
    admin = await login(api, "admin@example.com")
    assert (await api.get("/api/v1/clients/999", headers=admin)).status_code == 404

    clients = (await api.get("/api/v1/clients/", headers=admin)).json()
    client_id = next(c["id"] for c in clients if c["name"] == "Acme")
    response = await api.delete(f"/api/v1/clients/{client_id}", headers=admin)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_time_entry_endpoints(api, seeded):
    ann = await login(api, "ann@example.com")
    admin = await login(api, "admin@example.com")
    task_id = seeded["task"].id

    response = await api.post("/api/v1/time-entries/", headers=ann, json={
        "task_id": task_id,
        "start_time": "2026-03-02T09:00:00.000Z",
        "end_time": "2026-03-02T10:30:00.000Z",
    })
    assert response.status_code == 201, response.text
    entry = response.json()
    assert entry["user_id"] == seeded["ann"].id
    assert entry["duration"] == 5400

    forbidden = await api.post("/api/v1/time-entries/", headers=ann, json={
        "user_id": seeded["admin"].id, "task_id": task_id, "duration": "1h",
    })
    assert forbidden.status_code == 403

    invalid = await api.post("/api/v1/time-entries/", headers=ann, json={"task_id": task_id, "duration": "soon"})
    assert invalid.status_code == 400

    mine = await api.get("/api/v1/time-entries/", headers=ann)
    assert [e["id"] for e in mine.json()] == [entry["id"]]

    assert (await api.get("/api/v1/time-entries/all", headers=ann)).status_code == 403
    assert len((await api.get("/api/v1/time-entries/all", headers=admin)).json()) == 1

    parsed = await api.post("/api/v1/time-entries/parse-duration", headers=ann, json={"value": "1h 30m"})
    assert parsed.json() == {"seconds": 5400, "formatted": "1h 30m", "hours": "1.50"}

    assert (await api.delete(f"/api/v1/time-entries/{entry['id']}", headers=ann)).status_code == 204
    assert (await api.get(f"/api/v1/time-entries/{entry['id']}", headers=ann)).status_code == 404


@pytest.mark.asyncio
async def test_timer_endpoints(api, seeded):
    ann = await login(api, "ann@example.com")
    admin = await login(api, "admin@example.com")
    task_id = seeded["task"].id

    assert (await api.get("/api/v1/timers/ongoing", headers=ann)).json() is None

    started = await api.post("/api/v1/timers/ongoing", headers=ann, json={"task_id": task_id})
    assert started.status_code == 201
    again = await api.post("/api/v1/timers/ongoing", headers=ann, json={"task_id": task_id})
    assert again.status_code == 400

    ongoing = (await api.get("/api/v1/timers/ongoing", headers=ann)).json()
    assert ongoing["task_name"] == "Build login page"
    assert len((await api.get("/api/v1/timers/all-ongoing", headers=admin)).json()) == 1

    stopped = await api.post("/api/v1/timers/stop", headers=ann, json={})
    assert stopped.status_code == 200
    assert stopped.json()["end_time"] is not None
    assert (await api.post("/api/v1/timers/stop", headers=ann, json={})).status_code == 404


@pytest.mark.asyncio
async def test_reports_hide_costs_from_non_admins(api, seeded):
    ann = await login(api, "ann@example.com")
    admin = await login(api, "admin@example.com")
    task_id = seeded["task"].id
    for headers in (ann, admin):
        response = await api.post("/api/v1/time-entries/", headers=headers, json={
            "task_id": task_id,
            "start_time": "2026-03-02T09:00:00.000Z",
            "end_time": "2026-03-02T11:00:00.000Z",
        })
        assert response.status_code == 201

    params = {"period": "custom", "start_date": "2026-03-01", "end_date": "2026-03-31"}
    as_ann = (await api.get("/api/v1/reports/team-stats", headers=ann, params=params)).json()
    assert [u["user_email"] for u in as_ann["users"]] == ["ann@example.com"]
    assert "total_cost" not in as_ann["users"][0]

    as_admin = (await api.get("/api/v1/reports/team-stats", headers=admin, params=params)).json()
    assert len(as_admin["users"]) == 2
    costs = {u["user_email"]: u["total_cost"] for u in as_admin["users"]}
    assert costs == {"admin@example.com": 200.0, "ann@example.com": 80.0}

    pdf = await api.get("/api/v1/reports/team-stats.pdf", headers=admin, params=params)
    assert pdf.status_code == 200
    assert pdf.headers["content-type"] == "application/pdf"
    assert pdf.content.startswith(b"%PDF")


@pytest.mark.asyncio
async def test_notification_endpoints(api, seeded):
    ann = await login(api, "ann@example.com")
    assert (await api.get("/api/v1/notifications/unread-count", headers=ann)).json() == {"count": 1}

    listed = (await api.get("/api/v1/notifications/", headers=ann)).json()
    assert listed[0]["title"] == "Hi"

    response = await api.patch(f"/api/v1/notifications/{listed[0]['id']}/read", headers=ann)
    assert response.status_code == 200
    assert (await api.get("/api/v1/notifications/unread-count", headers=ann)).json() == {"count": 0}
    assert (await api.patch("/api/v1/notifications/999/read", headers=ann)).status_code == 404


@pytest.mark.asyncio
async def test_pay_rates_are_admin_only(api, engine, seeded):
    Session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with Session() as db:
        await make_user(db, "dev@example.com", "Dev Eloper", role="developer", password=PASSWORD)
    dev = await login(api, "dev@example.com")
    admin = await login(api, "admin@example.com")
    ann_id = seeded["ann"].id

    denied = await api.patch(f"/api/v1/users/{ann_id}/pay-rate", headers=dev, json={"pay_rate": "999.00"})
    assert denied.status_code == 403

    listed = await api.get("/api/v1/users/", headers=dev)
    assert listed.status_code == 200
    assert all("pay_rate" not in u for u in listed.json())

    updated = await api.patch(f"/api/v1/users/{ann_id}/pay-rate", headers=admin, json={"pay_rate": "55.00"})
    assert updated.status_code == 200
    as_admin = (await api.get("/api/v1/users/", headers=admin)).json()
    rates = {u["email"]: u["pay_rate"] for u in as_admin}
    assert float(rates["ann@example.com"]) == 55.0


@pytest.mark.asyncio
async def test_running_timer_counts_toward_totals(api, seeded):
    ann = await login(api, "ann@example.com")
    admin = await login(api, "admin@example.com")
    task = seeded["task"]
    started_at = utc_now() - timedelta(minutes=10)
    day = started_at.date().isoformat()

    response = await api.post("/api/v1/timers/ongoing", headers=ann, json={
        "task_id": task.id, "client_time": int(started_at.timestamp() * 1000),
    })
    assert response.status_code == 201

    daily = (await api.get("/api/v1/reports/daily-duration-totals", headers=ann,
                           params={"start_date": day, "end_date": day})).json()
    assert [d["date"] for d in daily] == [day]
    assert daily[0]["total_seconds"] >= 600

    per_task = (await api.get("/api/v1/reports/task-daily-totals", headers=ann, params={"date": day})).json()
    assert per_task[0]["task_id"] == task.id
    assert per_task[0]["total_seconds"] >= 600

    team = await api.post("/api/v1/teams/", headers=admin, json={"name": "Web", "project_id": task.project_id})
    assert team.status_code == 201
    team_id = team.json()["id"]
    member = await api.post(f"/api/v1/teams/{team_id}/members", headers=admin, json={"user_id": seeded["ann"].id})
    assert member.status_code == 201
    dashboard = (await api.get(f"/api/v1/teams/{team_id}/dashboard", headers=admin)).json()
    assert dashboard["totals"]["total_seconds"] >= 600
