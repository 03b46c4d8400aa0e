from .auth import User, SessionToken
from .inventory import Product, StockMovement
from .sales import Sale, SaleLine

__all__ = [
    'User', 'SessionToken',
    'Product', 'StockMovement',
    'Sale', 'SaleLine',
]
