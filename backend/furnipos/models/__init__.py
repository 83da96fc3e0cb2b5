from .auth import User, SessionToken
from .catalog import Category, Product, Warehouse, Supplier, Customer, ExchangeRate
from .inventory import (
    StockItem,
    Purchase,
    PurchaseLine,
    Transfer,
    StockMovement,
    InventoryCheck,
    InventoryCheckLine,
)
from .sales import Sale, SaleLine, WorkshopTask
from .registers import Payment, CashRegisterBalance, CashRegisterOp, ExpenseCategory, Expense
from .communications import NotificationEvent
from .documents import DocumentSequence
from .staff import Shift, Advance

__all__ = [
    'User', 'SessionToken',
    'Category', 'Product', 'Warehouse', 'Supplier', 'Customer', 'ExchangeRate',
    'StockItem', 'Purchase', 'PurchaseLine', 'Transfer', 'StockMovement',
    'InventoryCheck', 'InventoryCheckLine',
    'Sale', 'SaleLine', 'WorkshopTask',
    'Payment', 'CashRegisterBalance', 'CashRegisterOp', 'ExpenseCategory', 'Expense',
    'NotificationEvent',
    'DocumentSequence',
    'Shift', 'Advance',
]
