"""Models package - exports all SQLAlchemy models."""
from pdv.models.profile import Profile, UserRole
from pdv.models.product import Product
from pdv.models.customer import Customer
from pdv.models.sale import Sale, PaymentMethod, normalize_payment_method
from pdv.models.sale_item import SaleItem

__all__ = [
    'Profile', 'UserRole',
    'Product', 'Customer',
    'Sale', 'PaymentMethod', 'normalize_payment_method', 'SaleItem',
]
