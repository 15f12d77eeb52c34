"""Models package - exports all SQLAlchemy models."""
from app.models.platform import Platform, PLATFORM_COLORS, BUILTIN_PLATFORMS, ALL_PLATFORMS_NAME, new_id
from app.models.product import Product, DiscountType, StockLevel
from app.models.catalog import ProductCatalog, MAX_PRODUCTS, INITIAL_SLOTS
from app.models.order import Order, OrderSource, PaymentStatus, PAYMENT_STATUS_DISPLAY, ORDER_SOURCE_ICONS
from app.models.app_user import AppUser, CURRENCY_SYMBOLS
from app.models.session_timer import SessionTimer

__all__ = [
    'Platform', 'PLATFORM_COLORS', 'BUILTIN_PLATFORMS', 'ALL_PLATFORMS_NAME', 'new_id',
    'Product', 'DiscountType', 'StockLevel',
    'ProductCatalog', 'MAX_PRODUCTS', 'INITIAL_SLOTS',
    'Order', 'OrderSource', 'PaymentStatus', 'PAYMENT_STATUS_DISPLAY', 'ORDER_SOURCE_ICONS',
    'AppUser', 'CURRENCY_SYMBOLS',
    'SessionTimer',
]
