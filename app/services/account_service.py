"""Account service - data wipes and demo data for the local seller account."""
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from app.models import (
    Order, Platform, Product, ProductCatalog, DiscountType, PaymentStatus, AppUser
)
from app.services import catalog_service, platform_service
from app.services.entitlement_service import EntitlementTracker, get_or_create_current_user

logger = logging.getLogger(__name__)


def bootstrap(session, default_currency: str = 'USD ($)') -> AppUser:
    """Make sure the account, the built-in platforms and one catalog exist."""
    try:
        user = get_or_create_current_user(session, default_currency)
        platform_service.ensure_default_platforms(session)
        migrated = platform_service.migrate_builtin_colors(
            platform_service.list_platforms(session), session.query(Order).all()
        )
        if migrated:
            logger.info(f"Migrated {migrated} built-in platform colors")
        catalog_service.ensure_default_catalog(session)
        session.commit()
    except Exception:
        session.rollback()
        raise
    return user


def clear_orders(session, catalog_id: Optional[str] = None) -> int:
    """
    End-of-session clear: delete every order and reset one catalog to empty slots.

    Usage counters are untouched. Returns the number of deleted orders.
    """
    try:
        deleted = 0
        for order in session.query(Order).all():
            session.delete(order)
            deleted += 1

        catalogs = catalog_service.ensure_default_catalog(session)
        catalog = catalog_service.get_catalog(session, catalog_id) if catalog_id else catalogs[0]
        catalog_service.reset_catalog_products(catalog)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Cleared {deleted} orders and reset catalog {catalog.id}")
    return deleted


def delete_all_data(session, config: Optional[dict] = None) -> AppUser:
    """
    Full data wipe ("Delete My Data").

    Removes orders, catalogs and custom platforms, restores the defaults and
    zeroes the usage counters. Pro is cleared as part of account deletion.
    """
    config = config or {}
    try:
        for model in (Order, ProductCatalog, Product, Platform):
            for existing in session.query(model).all():
                session.delete(existing)
        session.flush()

        user = get_or_create_current_user(session, config.get('DEFAULT_CURRENCY', 'USD ($)'))
        EntitlementTracker.from_config(user, config).reset_all_usage(clear_pro=True)

        platform_service.ensure_default_platforms(session)
        catalog_service.ensure_default_catalog(session)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.warning("All user data deleted")
    return user


DEMO_PRODUCTS = [
    dict(name='Vintage T-Shirt', price=Decimal('29.99'), stock=15, low_stock_threshold=5, critical_stock_threshold=2),
    dict(name='Handmade Candle', price=Decimal('18.50'), stock=25, low_stock_threshold=8, critical_stock_threshold=3),
    dict(name='Organic Face Cream', price=Decimal('45.00'), stock=8, low_stock_threshold=5, critical_stock_threshold=2,
         discount_type=DiscountType.PERCENTAGE, discount_value=Decimal('10')),
    dict(name='Beaded Bracelet', price=Decimal('12.99'), stock=40, low_stock_threshold=10, critical_stock_threshold=5),
    dict(name='Art Print (Large)', price=Decimal('35.00'), stock=12, low_stock_threshold=4, critical_stock_threshold=2),
    dict(name='Handmade Soap Set', price=Decimal('22.00'), stock=3, low_stock_threshold=5, critical_stock_threshold=2),
]

# (product index, buyer, phone, address, platform name, qty, status, fulfilled, minutes ago)
DEMO_ORDERS = [
    (0, 'Sarah M.', '(555) 123-4567', '123 Main St, Austin TX', 'TikTok', 2, PaymentStatus.PAID, True, 60),
    (1, 'John D.', '(555) 234-5678', '456 Oak Ave, Portland OR', 'Instagram', 1, PaymentStatus.PAID, False, 30),
    (2, 'Emily R.', '(555) 345-6789', '', 'Facebook', 1, PaymentStatus.PENDING, False, 15),
    (3, 'SN-42', '', '', 'TikTok', 3, PaymentStatus.UNSET, False, 5),
    (4, 'Alex T.', '(555) 456-7890', '', 'Instagram', 1, PaymentStatus.PAID, True, 2),
]


def seed_demo_data(session, now: Optional[datetime] = None) -> ProductCatalog:
    """
    Replace catalogs and orders with a demo catalog and a handful of orders.

    Demo orders do not count against the free tier.
    """
    now = now or datetime.now()
    try:
        for model in (Order, ProductCatalog, Product):
            for existing in session.query(model).all():
                session.delete(existing)
        session.flush()

        platforms = {p.name: p for p in platform_service.ensure_default_platforms(session)}
        products = [Product(**fields) for fields in DEMO_PRODUCTS]
        catalog = ProductCatalog(name='Demo Products', products=products)
        session.add(catalog)

        for index, buyer, phone, address, platform_name, qty, status, fulfilled, minutes in DEMO_ORDERS:
            product = products[index]
            session.add(Order(
                product_id=product.id,
                product_name=product.name,
                product_barcode=product.barcode,
                buyer_name=buyer,
                phone_number=phone,
                address=address,
                platform=platforms.get(platform_name) or next(iter(platforms.values())),
                quantity=qty,
                price_per_unit=product.final_price.quantize(Decimal('0.01')),
                was_discounted=product.has_discount,
                payment_status=status,
                is_fulfilled=fulfilled,
                timestamp=now - timedelta(minutes=minutes)
            ))
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Seeded demo catalog {catalog.id} with {len(DEMO_ORDERS)} orders")
    return catalog
