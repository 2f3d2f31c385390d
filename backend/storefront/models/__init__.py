from .catalog import Product, Variant, ProductDependency
from .orders import Order, OrderItem

__all__ = [
    'Product', 'Variant', 'ProductDependency',
    'Order', 'OrderItem',
]
