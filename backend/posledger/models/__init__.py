from .catalog import Product, InventoryTransaction
from .customers import Customer
from .sales import Order, OrderItem, Receipt, Cancellation
from .accounting import Account, Journal, LedgerTransaction

__all__ = [
    'Product', 'InventoryTransaction',
    'Customer',
    'Order', 'OrderItem', 'Receipt', 'Cancellation',
    'Account', 'Journal', 'LedgerTransaction',
]
