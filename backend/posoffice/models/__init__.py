from .auth import User, SessionToken
from .catalog import Category, Product, Supplier
from .purchases import Purchase, PurchaseDetail
from .sales import Sale, SaleDetail

__all__ = [
    'User', 'SessionToken',
    'Category', 'Product', 'Supplier',
    'Purchase', 'PurchaseDetail',
    'Sale', 'SaleDetail',
]
