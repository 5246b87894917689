"""
Read access to the day's business records (orders, payments, expenses, ...).
Every range query is tenant scoped and half-open: start <= created_at < end,
with both bounds in UTC.
"""
from datetime import datetime
from typing import List

from sqlalchemy.orm import Session, selectinload

from cash_automation.models.cash_movement import CashMovement
from cash_automation.models.customer import Customer
from cash_automation.models.debt_payment import DebtPayment
from cash_automation.models.expense import Expense
from cash_automation.models.order import Order
from cash_automation.models.payment import OrderPayment
from cash_automation.models.product import Product
from cash_automation.models.vendor import Vendor


def get_orders_by_date_range(db: Session, tenant_id: int, start: datetime, end: datetime) -> List[Order]:
    return (
        db.query(Order)
        .options(selectinload(Order.items))
        .filter(Order.tenant_id == tenant_id, Order.created_at >= start, Order.created_at < end)
        .order_by(Order.created_at, Order.id)
        .all()
    )


def get_payments_by_date_range(db: Session, tenant_id: int, start: datetime, end: datetime) -> List[OrderPayment]:
    return (
        db.query(OrderPayment)
        .filter(OrderPayment.tenant_id == tenant_id, OrderPayment.created_at >= start, OrderPayment.created_at < end)
        .order_by(OrderPayment.created_at, OrderPayment.id)
        .all()
    )


def get_expenses_by_date_range(db: Session, tenant_id: int, start: datetime, end: datetime) -> List[Expense]:
    return (
        db.query(Expense)
        .filter(Expense.tenant_id == tenant_id, Expense.created_at >= start, Expense.created_at < end)
        .order_by(Expense.created_at, Expense.id)
        .all()
    )


def get_cash_movements_by_date_range(db: Session, tenant_id: int, start: datetime, end: datetime) -> List[CashMovement]:
    return (
        db.query(CashMovement)
        .filter(CashMovement.tenant_id == tenant_id, CashMovement.created_at >= start, CashMovement.created_at < end)
        .order_by(CashMovement.created_at, CashMovement.id)
        .all()
    )


def get_debt_payments_by_date_range(db: Session, tenant_id: int, start: datetime, end: datetime) -> List[DebtPayment]:
    return (
        db.query(DebtPayment)
        .filter(DebtPayment.tenant_id == tenant_id, DebtPayment.created_at >= start, DebtPayment.created_at < end)
        .order_by(DebtPayment.created_at, DebtPayment.id)
        .all()
    )


def get_vendors(db: Session, tenant_id: int) -> List[Vendor]:
    return db.query(Vendor).filter(Vendor.tenant_id == tenant_id).order_by(Vendor.id).all()


def get_products(db: Session, tenant_id: int) -> List[Product]:
    return db.query(Product).filter(Product.tenant_id == tenant_id).order_by(Product.id).all()


def get_customers(db: Session, tenant_id: int) -> List[Customer]:
    return db.query(Customer).filter(Customer.tenant_id == tenant_id).order_by(Customer.id).all()
