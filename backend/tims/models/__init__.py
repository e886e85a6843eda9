from .auth import User, SessionToken, USER_ROLES
from .inventory import InventoryItem, InventoryTransaction, ITEM_STATUSES, TRANSACTION_TYPES
from .suppliers import Supplier, Order, SUPPLIER_STATUSES, ORDER_STATUSES
from .notifications import Notification, NOTIFICATION_TYPES

__all__ = [
    'User', 'SessionToken', 'USER_ROLES',
    'InventoryItem', 'InventoryTransaction', 'ITEM_STATUSES', 'TRANSACTION_TYPES',
    'Supplier', 'Order', 'SUPPLIER_STATUSES', 'ORDER_STATUSES',
    'Notification', 'NOTIFICATION_TYPES',
]
