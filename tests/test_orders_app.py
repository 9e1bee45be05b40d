"""Tests for the order pipeline demo application."""

import pytest

from durabus.apps.orders.handlers import InsufficientStockError, Notifier, Warehouse
from durabus.apps.orders.main import ORDERS, main, run_orders
from durabus.core.record import RecordState


async def test_run_orders_finishes_every_order():
    records = await run_orders()

    assert [r.payload["id"] for r in records] == [order["id"] for order in ORDERS]
    assert all(r.state is RecordState.FINISHED for r in records)


def test_warehouse_rejects_oversized_order():
    warehouse = Warehouse({"lantern": 1})

    with pytest.raises(InsufficientStockError, match="insufficient stock"):
        warehouse.reserve({"id": 9, "sku": "lantern", "quantity": 2})

    assert warehouse.stock == {"lantern": 1}
    assert warehouse.reserved == []


async def test_notifier_records_confirmation():
    notifier = Notifier()

    await notifier.confirm({"id": 4})

    assert notifier.sent == ["Order 4 confirmed"]


def test_main_prints_final_states(capsys):
    main()

    out = capsys.readouterr().out
    assert "order.created 2: finished" in out
    assert out.count("finished") == len(ORDERS)
