"""
Service for building the daily closing report (cierre de caja).
Computes the financial summary and vendor performance for one local day
and returns the payload that is stored verbatim in DailyReport.report_data.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, TypedDict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cash_automation.core.config import settings
from cash_automation.core.errors import AggregationFailure
from cash_automation.core.serialization_helpers import (
    format_money,
    format_percent,
    quantize_money,
    serialize_datetime,
    to_decimal,
)
from cash_automation.core.timezone_utils import day_bounds_utc, ensure_utc, utc_now
from cash_automation.services import activity_store

# Constants
ESTIMATED_PROFIT_MARGIN = Decimal("0.30")  # Margen fijo del 30% sobre ventas
ORDER_COMPLETED = "completado"
ORDER_PAID = "pagado"
CURRENCY_BUCKETS = (
    "efectivo_ars",
    "efectivo_usd",
    "transferencia_ars",
    "transferencia_usd",
    "transferencia_usdt",
    "financiera_ars",
    "financiera_usd",
)


class FinancialSummary(TypedDict):
    """Monetary totals for the day, 2 decimals."""
    total_income: str
    total_expenses: str
    total_debt_payments: str
    net_profit: str
    total_vendor_commissions: str


class VendorStats(TypedDict):
    """Per-vendor performance entry in vendor_performance."""
    vendor_id: int
    vendor_name: str
    vendor_phone: str
    commission_rate: str
    total_orders: int
    completed_orders: int
    paid_orders: int
    total_sales: str
    total_payments_received: str
    estimated_profit: str
    commission: str
    average_order_value: str
    completion_rate: str
    payment_collection_rate: str
    order_details: List[Dict[str, Any]]


@dataclass
class ReportPayload:
    """Aggregated day: typed totals for the report row plus the JSON payload."""
    report_date: date
    total_income: Decimal
    total_expenses: Decimal
    total_debt_payments: Decimal
    net_profit: Decimal
    vendor_commissions: Decimal
    movement_count: int
    currency_totals: Dict[str, Decimal] = field(default_factory=dict)
    data: Dict[str, Any] = field(default_factory=dict)


def aggregate(
    db: Session,
    tenant_id: int,
    report_date: date,
    tz_name: str,
    report_type: str = "automatic_daily_close",
    generated_at: Optional[datetime] = None,
) -> ReportPayload:
    """
    Build the closing report for ``report_date`` (a local calendar day in ``tz_name``).

    Args:
        db: Database session
        tenant_id: Tenant whose records are aggregated
        report_date: Local day to report on
        tz_name: IANA zone used to turn the local day into a UTC range
        report_type: Label stored in the payload metadata
        generated_at: Generation instant (defaults to now)

    Returns:
        ReportPayload with totals and the full payload

    Raises:
        AggregationFailure: If any of the sub-fetches fails
    """
    start, end = day_bounds_utc(report_date, tz_name)

    try:
        orders = activity_store.get_orders_by_date_range(db, tenant_id, start, end)
        payments = activity_store.get_payments_by_date_range(db, tenant_id, start, end)
        expenses = activity_store.get_expenses_by_date_range(db, tenant_id, start, end)
        cash_movements = activity_store.get_cash_movements_by_date_range(db, tenant_id, start, end)
        debt_payments = activity_store.get_debt_payments_by_date_range(db, tenant_id, start, end)
        vendors = activity_store.get_vendors(db, tenant_id)
        products = activity_store.get_products(db, tenant_id)
        customers = activity_store.get_customers(db, tenant_id)
    except SQLAlchemyError as exc:
        raise AggregationFailure(f"Failed to fetch daily activity: {exc}", tenant_id=tenant_id) from exc

    vendor_stats = calculate_vendor_statistics(orders, payments, vendors)

    total_income = _sum_usd(payments)
    total_expenses = _sum_usd(expenses)
    total_debt_payments = _sum_usd(debt_payments)
    net_profit = total_income - total_expenses
    total_vendor_commissions = sum((to_decimal(v["commission"]) for v in vendor_stats), Decimal("0"))
    currency_totals = _calculate_currency_totals(payments)

    summary: FinancialSummary = {
        "total_income": format_money(total_income),
        "total_expenses": format_money(total_expenses),
        "total_debt_payments": format_money(total_debt_payments),
        "net_profit": format_money(net_profit),
        "total_vendor_commissions": format_money(total_vendor_commissions),
    }

    data = {
        "metadata": {
            "report_type": report_type,
            "generated_at": serialize_datetime(generated_at or utc_now()),
            "report_date": report_date.isoformat(),
            "tenant_id": tenant_id,
            "timezone": tz_name,
        },
        "financial_summary": summary,
        "currency_breakdown": {key: format_money(value) for key, value in currency_totals.items()},
        "transaction_details": {
            "orders": [_order_detail(o) for o in orders],
            "payments": [_payment_detail(p) for p in payments],
            "expenses": [_expense_detail(e) for e in expenses],
            "debt_payments": [_debt_payment_detail(dp) for dp in debt_payments],
        },
        "vendor_performance": vendor_stats,
        "cash_movements": [_cash_movement_detail(cm) for cm in cash_movements],
        "product_activity": {
            "total_products_sold": sum(item.quantity or 0 for o in orders for item in o.items),
            "products_changed": _count_products_changed(products, start, end),
        },
        "counts": {
            "total_orders": len(orders),
            "total_payments": len(payments),
            "total_expenses": len(expenses),
            "total_debt_payments": len(debt_payments),
            "total_cash_movements": len(cash_movements),
            "total_customers": len(customers),
            "active_vendors": len(vendor_stats),
        },
    }

    return ReportPayload(
        report_date=report_date,
        total_income=quantize_money(total_income),
        total_expenses=quantize_money(total_expenses),
        total_debt_payments=quantize_money(total_debt_payments),
        net_profit=quantize_money(net_profit),
        vendor_commissions=quantize_money(total_vendor_commissions),
        movement_count=len(cash_movements),
        currency_totals=currency_totals,
        data=data,
    )


def calculate_vendor_statistics(orders: List[Any], payments: List[Any], vendors: List[Any]) -> List[VendorStats]:
    """
    Per-vendor performance for the day. Vendors without orders are left out.

    estimated_profit = total_sales * 30%
    commission = estimated_profit * commission_rate / 100
    Rates are count / total_orders * 100, or 0.0 without orders.
    """
    stats: List[VendorStats] = []
    for vendor in vendors:
        vendor_orders = [o for o in orders if o.vendor_id == vendor.id]
        if not vendor_orders:
            continue

        order_ids = {o.id for o in vendor_orders}
        vendor_payments = [p for p in payments if p.order_id in order_ids]

        total_orders = len(vendor_orders)
        total_sales = _sum_field(vendor_orders, "total_usd")
        total_payments_received = _sum_usd(vendor_payments)
        commission_rate = to_decimal(
            vendor.commission_percentage
            if vendor.commission_percentage is not None
            else settings.default_commission_rate
        )
        estimated_profit = total_sales * ESTIMATED_PROFIT_MARGIN
        commission = estimated_profit * commission_rate / Decimal("100")

        completed_orders = sum(1 for o in vendor_orders if o.status == ORDER_COMPLETED)
        paid_orders = sum(1 for o in vendor_orders if o.payment_status == ORDER_PAID)

        stats.append({
            "vendor_id": vendor.id,
            "vendor_name": vendor.name,
            "vendor_phone": vendor.phone or "N/A",
            "commission_rate": format_percent(commission_rate),
            "total_orders": total_orders,
            "completed_orders": completed_orders,
            "paid_orders": paid_orders,
            "total_sales": format_money(total_sales),
            "total_payments_received": format_money(total_payments_received),
            "estimated_profit": format_money(estimated_profit),
            "commission": format_money(commission),
            "average_order_value": format_money(total_sales / total_orders),
            "completion_rate": _rate(completed_orders, total_orders),
            "payment_collection_rate": _rate(paid_orders, total_orders),
            "order_details": [
                {
                    "order_id": o.id,
                    "order_number": o.order_number,
                    "customer_name": o.customer_name,
                    "total_usd": format_money(o.total_usd),
                    "status": o.status,
                    "payment_status": o.payment_status,
                    "created_at": serialize_datetime(ensure_utc(o.created_at)),
                }
                for o in vendor_orders
            ],
        })
    return stats


def _rate(count: int, total: int) -> str:
    if total == 0:
        return "0.0"
    return format_percent(Decimal(count) / Decimal(total) * Decimal("100"))


def _sum_field(rows: List[Any], attr: str) -> Decimal:
    return sum((to_decimal(getattr(row, attr, None)) for row in rows), Decimal("0"))


def _sum_usd(rows: List[Any]) -> Decimal:
    return _sum_field(rows, "amount_usd")


def _calculate_currency_totals(payments: List[Any]) -> Dict[str, Decimal]:
    """
    Payment amounts (original currency) grouped by method, e.g. efectivo_ars.
    Methods outside the known buckets are ignored here; they still count in total_income.
    """
    totals = {key: Decimal("0") for key in CURRENCY_BUCKETS}
    for payment in payments:
        method = (payment.payment_method or "").lower()
        if method in totals:
            totals[method] += to_decimal(payment.amount)
    return {key: quantize_money(value) for key, value in totals.items()}


def _count_products_changed(products: List[Any], start: datetime, end: datetime) -> int:
    changed = 0
    for product in products:
        last_update = ensure_utc(product.updated_at or product.created_at)
        if last_update is not None and start <= last_update < end:
            changed += 1
    return changed


def _order_detail(order) -> Dict[str, Any]:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "customer_name": order.customer_name,
        "vendor_name": order.vendor_name,
        "total_usd": format_money(order.total_usd),
        "status": order.status,
        "payment_status": order.payment_status,
        "created_at": serialize_datetime(ensure_utc(order.created_at)),
    }


def _payment_detail(payment) -> Dict[str, Any]:
    return {
        "id": payment.id,
        "order_id": payment.order_id,
        "payment_method": payment.payment_method,
        "amount": format_money(payment.amount),
        "amount_usd": format_money(payment.amount_usd),
        "exchange_rate": format_money(payment.exchange_rate) if payment.exchange_rate is not None else None,
        "created_at": serialize_datetime(ensure_utc(payment.created_at)),
    }


def _expense_detail(expense) -> Dict[str, Any]:
    return {
        "id": expense.id,
        "description": expense.description,
        "category": expense.category,
        "amount": format_money(expense.amount),
        "amount_usd": format_money(expense.amount_usd),
        "payment_method": expense.payment_method,
        "provider": expense.provider,
        "created_at": serialize_datetime(ensure_utc(expense.created_at)),
    }


def _debt_payment_detail(debt_payment) -> Dict[str, Any]:
    return {
        "id": debt_payment.id,
        "order_id": debt_payment.order_id,
        "customer_name": debt_payment.customer_name,
        "amount": format_money(debt_payment.amount),
        "amount_usd": format_money(debt_payment.amount_usd),
        "payment_method": debt_payment.payment_method,
        "created_at": serialize_datetime(ensure_utc(debt_payment.created_at)),
    }


def _cash_movement_detail(movement) -> Dict[str, Any]:
    return {
        "id": movement.id,
        "type": movement.type,
        "subtype": movement.subtype,
        "amount": format_money(movement.amount),
        "currency": movement.currency,
        "amount_usd": format_money(movement.amount_usd),
        "description": movement.description,
        "vendor_name": movement.vendor_name,
        "customer_name": movement.customer_name,
        "created_at": serialize_datetime(ensure_utc(movement.created_at)),
    }
