from .auth import User
from .tenancy import Store, StoreMember, StoreAccessGrant, StoreStatus, StoreVisibility
from .inventory import Product
from .cart import CartItem
from .orders import OrderGroup, Order, OrderItem, OrderStatus, PaymentStatus
from .security import SecurityEvent

__all__ = [
    'User',
    'Store', 'StoreMember', 'StoreAccessGrant', 'StoreStatus', 'StoreVisibility',
    'Product',
    'CartItem',
    'OrderGroup', 'Order', 'OrderItem', 'OrderStatus', 'PaymentStatus',
    'SecurityEvent',
]
