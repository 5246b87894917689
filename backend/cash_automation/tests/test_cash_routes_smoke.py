from datetime import datetime

import pytz

from cash_automation.models.payment import OrderPayment

HEADERS = {"X-Tenant-ID": "demo"}


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_missing_or_unknown_tenant(client, tenant):
    assert client.get("/cash-schedule/config").status_code == 400
    assert client.get("/cash-schedule/config", headers={"X-Tenant-ID": "nope"}).status_code == 404


def test_schedule_config_roundtrip(client, tenant):
    r = client.get("/cash-schedule/config", headers=HEADERS)
    assert r.status_code == 200
    assert r.json()["configured"] is False
    assert r.json()["auto_open_enabled"] is False

    r = client.put("/cash-schedule/config", headers=HEADERS, json={
        "auto_open_enabled": True,
        "auto_close_enabled": True,
        "open_hour": 8,
        "open_minute": 30,
        "close_hour": 20,
        "close_minute": 0,
        "active_days": [5, 1, 1, 3],
        "timezone": "America/Argentina/Buenos_Aires",
    })
    assert r.status_code == 200
    body = r.json()
    assert body["configured"] is True
    assert body["active_days"] == [1, 3, 5]
    assert body["open_minute"] == 30

    r = client.get("/cash-schedule/operations", headers=HEADERS)
    assert r.status_code == 200
    assert {op["type"] for op in r.json()} == {"auto_open", "auto_close"}


def test_schedule_config_rejects_bad_input(client, tenant):
    r = client.put("/cash-schedule/config", headers=HEADERS, json={"timezone": "Nowhere/Special"})
    assert r.status_code == 400
    r = client.put("/cash-schedule/config", headers=HEADERS, json={"open_hour": 24})
    assert r.status_code == 422
    r = client.put("/cash-schedule/config", headers=HEADERS, json={"active_days": [0, 8]})
    assert r.status_code == 422


def test_manual_open_and_close(client, db, tenant):
    r = client.get("/cash-register/current", headers=HEADERS)
    assert r.status_code == 404

    r = client.post("/cash-register/open", headers=HEADERS, json={"initial_usd": "100", "opened_by": "ana"})
    assert r.status_code == 200
    assert r.json()["status"] == "open"
    assert r.json()["initial_usd"] == "100.00"

    r = client.post("/cash-register/open", headers=HEADERS, json={"opened_by": "ana"})
    assert r.status_code == 409

    db.add(OrderPayment(tenant_id=tenant.id, payment_method="efectivo_usd", amount=40, amount_usd=40))
    db.commit()

    r = client.post("/cash-register/close", headers=HEADERS, json={"closed_by": "ana"})
    assert r.status_code == 200
    body = r.json()
    assert body["register"]["status"] == "closed"
    assert body["register"]["final_balance"] == "140.00"
    report_id = body["report_id"]

    r = client.post("/cash-register/close", headers=HEADERS, json={"closed_by": "ana"})
    assert r.status_code == 409

    r = client.get("/reports/daily", headers=HEADERS)
    assert r.status_code == 200
    [summary] = r.json()
    assert summary["id"] == report_id
    assert summary["is_auto_generated"] is False
    assert summary["closing_balance"] == "140.00"

    r = client.get(f"/reports/daily/{report_id}", headers=HEADERS)
    assert r.status_code == 200
    detail = r.json()
    assert detail["currency_breakdown"]["efectivo_usd"] == "40.00"
    assert detail["report_data"]["metadata"]["report_type"] == "manual_daily_close"

    assert client.get("/reports/daily/999", headers=HEADERS).status_code == 404


def test_operation_log_endpoint(client, tenant, configure_schedule, service):
    configure_schedule(tenant.id, auto_open_enabled=True)
    service.tick(datetime(2026, 10, 19, 12, 0, 30, tzinfo=pytz.utc))

    r = client.get("/cash-schedule/log", headers=HEADERS)
    assert r.status_code == 200
    [entry] = r.json()
    assert entry["operation_type"] == "auto_open"
    assert entry["status"] == "success"
    assert entry["local_date"] == "2026-10-19"


def test_service_start_stop(client):
    r = client.get("/cash-schedule/service-status")
    assert r.status_code == 200
    assert r.json()["is_running"] is False

    r = client.post("/cash-schedule/service/start")
    assert r.json()["changed"] is True
    assert r.json()["is_running"] is True

    r = client.post("/cash-schedule/service/start")
    assert r.json()["changed"] is False

    r = client.post("/cash-schedule/service/stop")
    assert r.json()["changed"] is True
    assert r.json()["is_running"] is False
