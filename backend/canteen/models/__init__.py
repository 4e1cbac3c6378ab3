from .customers import Customer, CustomerType
from .products import Product
from .ledger import LedgerTransaction
from .settings import AppSettings

__all__ = [
    'Customer', 'CustomerType',
    'Product',
    'LedgerTransaction',
    'AppSettings',
]
