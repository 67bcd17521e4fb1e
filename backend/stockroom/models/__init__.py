from .tenancy import Organization, Branch, User
from .catalog import Category, Product, Customer, Supplier
from .inventory import Warehouse, ProductStock, StockMovement
from .sales import Sale, SaleItem
from .purchases import PurchaseOrder, PurchaseOrderItem
from .audit import ReconciliationEvent
from .notifications import Notification

__all__ = [
    'Organization', 'Branch', 'User',
    'Category', 'Product', 'Customer', 'Supplier',
    'Warehouse', 'ProductStock', 'StockMovement',
    'Sale', 'SaleItem',
    'PurchaseOrder', 'PurchaseOrderItem',
    'ReconciliationEvent',
    'Notification',
]
