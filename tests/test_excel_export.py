"""Excel export of orders and how checkout queues it."""

import asyncio

import pytest
from filelock import FileLock

from oldrao import main
from oldrao.core.config import get_settings
from oldrao.services import ExcelManager
from oldrao.tasks import clear_excel_file, export_order_to_excel, health_check


def order_data(order_id: int, status: str = "Pending") -> dict:
    return {
        "order_id": order_id,
        "name": "Ravi Kumar",
        "phone": "98450 12345",
        "address": "12 MG Road",
        "items": [{"id": 1, "name": "Samosa", "price": 40.0, "qty": 2}],
        "total": 80.0,
        "payment": "cash",
        "status": status,
        "user_id": None,
        "created_at": "2026-10-19T12:00:00+00:00",
    }


@pytest.fixture
def export_dir(monkeypatch, tmp_path):
    monkeypatch.setattr(get_settings(), "data_directory", str(tmp_path / "exports"))
    return tmp_path / "exports"


def test_export_creates_workbook(export_dir):
    result = ExcelManager.export_order(order_data(1))

    assert result["success"] is True
    assert ExcelManager.orders_file().parent == export_dir
    rows = ExcelManager.get_all_orders()
    assert len(rows) == 1
    assert rows[0]["customer_name"] == "Ravi Kumar"
    assert rows[0]["items"] == "2 x Samosa"
    assert list(rows[0]) == ExcelManager.ORDER_COLUMNS


def test_export_replaces_row_on_status_change(export_dir):
    ExcelManager.export_order(order_data(1))
    ExcelManager.export_order(order_data(2))
    ExcelManager.export_order(order_data(1, status="Completed"))

    rows = {r["order_id"]: r for r in ExcelManager.get_all_orders()}
    assert set(rows) == {1, 2}
    assert rows[1]["order_status"] == "Completed"
    assert rows[2]["order_status"] == "Pending"


def test_clear_all(export_dir):
    ExcelManager.export_order(order_data(1))

    assert ExcelManager.clear_all() is True
    assert ExcelManager.get_all_orders() == []


def test_tasks_run_inline(export_dir):
    result = export_order_to_excel.apply(args=(order_data(7),)).get()

    assert result["success"] is True
    assert "processing_time_seconds" in result
    assert clear_excel_file.apply().get()["success"] is True


async def test_queue_disabled_by_default(checkout_payload, client, monkeypatch):
    calls = []
    monkeypatch.setattr(main, "_enqueue_export", lambda data: calls.append(data))

    resp = await client.post("/api/orders", json=checkout_payload)

    assert resp.status_code == 201
    assert calls == []


async def test_queue_runs_off_the_event_loop(monkeypatch, client, admin_client, checkout_payload):
    queued = []
    monkeypatch.setattr(main.settings, "excel_export_enabled", True)
    monkeypatch.setattr(main, "_enqueue_export", lambda data: queued.append(data))

    order_id = (await client.post("/api/orders", json=checkout_payload)).json()["order_id"]
    await admin_client.patch(f"/api/admin/orders/{order_id}/status", json={"status": "Preparing"})

    # Let the executor jobs finish
    for _ in range(50):
        if len(queued) == 2:
            break
        await asyncio.sleep(0.01)

    assert [d["status"] for d in queued] == ["Pending", "Preparing"]
    assert all(d["order_id"] == order_id for d in queued)
    assert queued[0]["total"] == 260.0


def test_broker_failure_is_logged_not_raised(monkeypatch, caplog):
    class BrokenTask:
        def delay(self, data):
            raise ConnectionError("broker unreachable")

    monkeypatch.setattr(main, "export_order_to_excel", BrokenTask())

    main._enqueue_export(order_data(3))

    assert "Could not queue Excel export for Order #3" in caplog.text


def test_health_task_reports_workbook(export_dir):
    ExcelManager.export_order(order_data(1))
    ExcelManager.export_order(order_data(2))

    report = health_check.apply().get()

    assert report["status"] == "healthy"
    assert report["workbook_exists"] is True
    assert report["exported_orders"] == 2


def test_lock_timeout_is_reported_as_retryable(export_dir, monkeypatch):
    monkeypatch.setattr(get_settings(), "excel_lock_timeout", 0.1)
    export_dir.mkdir(parents=True, exist_ok=True)
    held = FileLock(str(ExcelManager.orders_file()) + ".lock")

    with held:
        result = ExcelManager.export_order(order_data(1))

    assert result["success"] is False
    assert result["retryable"] is True
    assert ExcelManager.get_all_orders() == []


def test_unreadable_workbook_is_not_overwritten(export_dir):
    export_dir.mkdir(parents=True, exist_ok=True)
    workbook = ExcelManager.orders_file()
    workbook.write_bytes(b"not really a spreadsheet")

    result = ExcelManager.export_order(order_data(1))

    assert result["success"] is False
    assert result["message"]
    assert workbook.read_bytes() == b"not really a spreadsheet"
