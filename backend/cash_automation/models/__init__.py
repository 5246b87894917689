from .tenant import Tenant
from .cash_schedule import CashScheduleConfig
from .cash_register import CashRegister
from .daily_report import DailyReport
from .auto_operation_log import CashAutoOperationLog
from .vendor import Vendor
from .customer import Customer
from .product import Product
from .order import Order, OrderItem
from .payment import OrderPayment
from .expense import Expense
from .cash_movement import CashMovement
from .debt_payment import DebtPayment

__all__ = [
    "Tenant",
    "CashScheduleConfig",
    "CashRegister",
    "DailyReport",
    "CashAutoOperationLog",
    "Vendor",
    "Customer",
    "Product",
    "Order",
    "OrderItem",
    "OrderPayment",
    "Expense",
    "CashMovement",
    "DebtPayment",
]
