from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest
import pytz

from cash_automation.core.errors import AggregationFailure
from cash_automation.models.cash_movement import CashMovement
from cash_automation.models.debt_payment import DebtPayment
from cash_automation.models.expense import Expense
from cash_automation.models.order import Order, OrderItem
from cash_automation.models.payment import OrderPayment
from cash_automation.models.vendor import Vendor
from cash_automation.services import activity_store
from cash_automation.services.report_aggregator import aggregate, calculate_vendor_statistics

TZ = "America/Argentina/Buenos_Aires"
MONDAY = date(2026, 10, 19)


def utc(*args):
    return datetime(*args, tzinfo=pytz.utc)


def test_vendor_statistics_commission():
    vendor = SimpleNamespace(id=1, name="Lucía", phone=None, commission_percentage=Decimal("10"))
    orders = [
        SimpleNamespace(id=1, vendor_id=1, order_number="A-1", customer_name="Ana", total_usd=Decimal("400"),
                        status="completado", payment_status="pagado", created_at=utc(2026, 10, 19, 13)),
        SimpleNamespace(id=2, vendor_id=1, order_number="A-2", customer_name="Beto", total_usd=Decimal("600"),
                        status="pendiente", payment_status="pendiente", created_at=utc(2026, 10, 19, 14)),
    ]
    payments = [SimpleNamespace(order_id=1, amount_usd=Decimal("400"))]

    [stats] = calculate_vendor_statistics(orders, payments, [vendor])

    assert stats["total_sales"] == "1000.00"
    assert stats["estimated_profit"] == "300.00"
    assert stats["commission"] == "30.00"
    assert stats["average_order_value"] == "500.00"
    assert stats["commission_rate"] == "10.0"
    assert stats["completion_rate"] == "50.0"
    assert stats["payment_collection_rate"] == "50.0"
    assert stats["total_payments_received"] == "400.00"
    assert stats["vendor_phone"] == "N/A"
    assert [d["order_number"] for d in stats["order_details"]] == ["A-1", "A-2"]


def test_vendors_without_orders_are_excluded():
    vendors = [
        SimpleNamespace(id=1, name="Lucía", phone="123", commission_percentage=None),
        SimpleNamespace(id=2, name="Sin ventas", phone=None, commission_percentage=Decimal("15")),
    ]
    orders = [
        SimpleNamespace(id=1, vendor_id=1, order_number="A-1", customer_name=None, total_usd=Decimal("100"),
                        status="completado", payment_status="pagado", created_at=utc(2026, 10, 19, 13)),
    ]
    stats = calculate_vendor_statistics(orders, [], vendors)
    assert [s["vendor_id"] for s in stats] == [1]
    # Default commission rate applies when the vendor has none
    assert stats[0]["commission_rate"] == "10.0"
    assert stats[0]["commission"] == "3.00"


def _seed_day(db, tenant_id):
    vendor = Vendor(tenant_id=tenant_id, name="Lucía", commission_percentage=Decimal("10"))
    db.add(vendor)
    db.flush()

    first = Order(tenant_id=tenant_id, order_number="A-1", vendor_id=vendor.id, vendor_name=vendor.name,
                  total_usd=Decimal("400"), status="completado", payment_status="pagado",
                  created_at=utc(2026, 10, 19, 13))
    first.items.append(OrderItem(quantity=2, price_usd=Decimal("200")))
    second = Order(tenant_id=tenant_id, order_number="A-2", vendor_id=vendor.id, vendor_name=vendor.name,
                   total_usd=Decimal("600"), created_at=utc(2026, 10, 19, 15))
    second.items.append(OrderItem(quantity=1, price_usd=Decimal("600")))
    db.add_all([first, second])
    db.flush()

    db.add_all([
        OrderPayment(tenant_id=tenant_id, order_id=first.id, payment_method="efectivo_usd",
                     amount=Decimal("400"), amount_usd=Decimal("400"), created_at=utc(2026, 10, 19, 13, 5)),
        OrderPayment(tenant_id=tenant_id, order_id=second.id, payment_method="transferencia_ars",
                     amount=Decimal("720000"), amount_usd=Decimal("600"), exchange_rate=Decimal("1200"),
                     created_at=utc(2026, 10, 19, 15, 5)),
        Expense(tenant_id=tenant_id, description="Limpieza", amount=Decimal("100"), amount_usd=Decimal("100"),
                created_at=utc(2026, 10, 19, 16)),
        DebtPayment(tenant_id=tenant_id, customer_name="Ana", amount=Decimal("50"), amount_usd=Decimal("50"),
                    created_at=utc(2026, 10, 19, 17)),
        CashMovement(tenant_id=tenant_id, type="ingreso", subtype="venta", amount=Decimal("400"),
                     amount_usd=Decimal("400"), created_at=utc(2026, 10, 19, 13, 5)),
        # Sunday 23:30 local and Tuesday 00:30 local fall outside Monday
        Expense(tenant_id=tenant_id, description="Ayer", amount=Decimal("999"), amount_usd=Decimal("999"),
                created_at=utc(2026, 10, 19, 2, 30)),
        Expense(tenant_id=tenant_id, description="Mañana", amount=Decimal("999"), amount_usd=Decimal("999"),
                created_at=utc(2026, 10, 20, 3, 30)),
    ])
    db.commit()
    return vendor


def test_aggregate_day(db, tenant):
    _seed_day(db, tenant.id)

    payload = aggregate(db, tenant.id, MONDAY, TZ, generated_at=utc(2026, 10, 19, 21))

    assert payload.total_income == Decimal("1000.00")
    assert payload.total_expenses == Decimal("100.00")
    assert payload.total_debt_payments == Decimal("50.00")
    assert payload.net_profit == Decimal("900.00")
    assert payload.vendor_commissions == Decimal("30.00")
    assert payload.movement_count == 1
    assert payload.currency_totals["efectivo_usd"] == Decimal("400.00")
    assert payload.currency_totals["transferencia_ars"] == Decimal("720000.00")
    assert payload.currency_totals["financiera_usd"] == Decimal("0.00")

    data = payload.data
    assert set(data) == {
        "metadata",
        "financial_summary",
        "currency_breakdown",
        "transaction_details",
        "vendor_performance",
        "cash_movements",
        "product_activity",
        "counts",
    }
    assert data["metadata"]["report_date"] == "2026-10-19"
    assert data["metadata"]["timezone"] == TZ
    assert data["financial_summary"]["net_profit"] == "900.00"
    assert data["counts"]["total_orders"] == 2
    assert data["counts"]["total_expenses"] == 1
    assert data["product_activity"]["total_products_sold"] == 3
    assert data["vendor_performance"][0]["commission"] == "30.00"


def test_aggregate_empty_day(db, tenant):
    payload = aggregate(db, tenant.id, MONDAY, TZ)
    assert payload.net_profit == Decimal("0.00")
    assert payload.data["vendor_performance"] == []
    assert payload.data["counts"]["total_payments"] == 0


def test_aggregate_is_tenant_scoped(db, tenant, make_tenant):
    other = make_tenant("otro")
    _seed_day(db, other.id)
    payload = aggregate(db, tenant.id, MONDAY, TZ)
    assert payload.total_income == Decimal("0.00")


def test_fetch_error_becomes_aggregation_failure(db, tenant, monkeypatch):
    from sqlalchemy.exc import OperationalError

    def broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(activity_store, "get_expenses_by_date_range", broken)
    with pytest.raises(AggregationFailure):
        aggregate(db, tenant.id, MONDAY, TZ)
