"""
Order service with transactional logic.
Handles order creation from catalog products, status edits, deletion with
stock restoration, and CSV export.
"""
import csv
import io
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from app.exceptions import BusinessLogicError, LimitReachedError, NotFoundError
from app.models import Order, OrderSource
from app.services import catalog_service, platform_service
from app.services.entitlement_service import EntitlementTracker, lock_current_user
from app.signals import order_added, export_completed

logger = logging.getLogger(__name__)

CSV_HEADER = [
    'Order ID', 'Product', 'Buyer', 'Phone', 'Address', 'Platform', 'Source',
    'Quantity', 'Unit Price', 'Total', 'Payment Status', 'Fulfilled', 'Timestamp'
]


def list_orders(session) -> List[Order]:
    """All orders, newest first."""
    return session.query(Order).order_by(Order.timestamp.desc()).all()


def get_order(session, order_id: str) -> Order:
    order = session.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise NotFoundError(f'Order {order_id} not found')
    return order


def create_order(
    session,
    product_id: str,
    buyer_name: str,
    platform_id: Optional[str] = None,
    quantity: int = 1,
    phone_number: str = '',
    address: str = '',
    customer_notes: Optional[str] = None,
    order_source=OrderSource.LIVE_STREAM,
    config: Optional[dict] = None,
    now: Optional[datetime] = None
) -> Order:
    """
    Create an order from a catalog product.

    Steps:
    1. Reserve one free-tier order (conditional counter UPDATE)
    2. Snapshot product (name, barcode, discounted price) and platform
    3. Decrement product stock (floored at 0)
    4. Commit and emit ``order_added``

    Raises:
        LimitReachedError: Free account already used all free orders
        NotFoundError: Unknown product or platform
        BusinessLogicError: Product slot is not configured
        ValidationError: Invalid quantity or order source
    """
    config = config or {}
    try:
        user = lock_current_user(session, config.get('DEFAULT_CURRENCY', 'USD ($)'))
        tracker = EntitlementTracker.from_config(user, config)
        if not tracker.reserve_order():
            raise LimitReachedError('orders', tracker.order_limit)

        product = catalog_service.get_product(session, product_id)
        if product.is_empty:
            raise BusinessLogicError('Product is not configured yet')

        if platform_id:
            platform = platform_service.get_platform(session, platform_id)
        else:
            # Default to the first platform in display order
            platform = platform_service.ensure_default_platforms(session)[0]

        order = Order(
            product_id=product.id,
            product_name=product.name,
            product_barcode=product.barcode,
            buyer_name=(buyer_name or '').strip(),
            phone_number=(phone_number or '').strip(),
            address=(address or '').strip(),
            customer_notes=customer_notes or None,
            order_source=order_source,
            platform=platform,
            quantity=quantity,
            price_per_unit=product.final_price.quantize(Decimal('0.01')),
            was_discounted=product.has_discount,
            timestamp=now or datetime.now()
        )
        session.add(order)

        product.stock = max(0, product.stock - order.quantity)

        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Order created: {order.id} {order.product_name} x{order.quantity} on {order.platform_name}")
    order_added.send(session, order=order)
    return order


def update_payment_status(session, order_id: str, status=None) -> Order:
    """Set the payment status, or cycle Unset -> Pending -> Paid -> Unset when None."""
    order = get_order(session, order_id)
    try:
        order.payment_status = order.payment_status.next() if status is None else status
        session.commit()
    except Exception:
        session.rollback()
        raise
    return order


def set_fulfilled(session, order_id: str, fulfilled: Optional[bool] = None) -> Order:
    """Set the fulfillment flag, or toggle it when None."""
    order = get_order(session, order_id)
    try:
        order.is_fulfilled = (not order.is_fulfilled) if fulfilled is None else bool(fulfilled)
        session.commit()
    except Exception:
        session.rollback()
        raise
    return order


def delete_order(session, order_id: str) -> None:
    """Delete an order and give its quantity back to the product stock."""
    order = get_order(session, order_id)
    quantity = order.quantity
    try:
        catalog_service.adjust_stock(session, order.product_id, quantity)
        session.delete(order)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info(f"Order deleted: {order_id} (stock +{quantity})")


def _csv_text(value: str) -> str:
    return (value or '').replace(',', ';')


def generate_csv(orders) -> str:
    """Render orders as CSV text."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator='\n')
    writer.writerow(CSV_HEADER)
    for order in tuple(orders):
        buyer = order.buyer_name
        # Serial-number buyers ("SN-12") export as the bare number
        if buyer.startswith('SN-'):
            buyer = buyer[3:]
        writer.writerow([
            order.id,
            _csv_text(order.product_name),
            _csv_text(buyer),
            _csv_text(order.phone_number),
            _csv_text(order.address),
            order.platform_name,
            order.order_source.value,
            order.quantity,
            f'{order.price_per_unit:.2f}',
            f'{order.total_price:.2f}',
            order.payment_status.value,
            'Yes' if order.is_fulfilled else 'No',
            order.timestamp.strftime('%Y-%m-%d %H:%M:%S'),
        ])
    return buffer.getvalue()


def export_csv(session, orders, config: Optional[dict] = None) -> str:
    """
    Export orders to CSV, counting one export against the free tier.

    Raises:
        LimitReachedError: Free account already used all free exports
    """
    config = config or {}
    try:
        user = lock_current_user(session, config.get('DEFAULT_CURRENCY', 'USD ($)'))
        tracker = EntitlementTracker.from_config(user, config)
        if not tracker.reserve_export():
            raise LimitReachedError('exports', tracker.export_limit)

        text = generate_csv(orders)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"CSV export recorded ({user.exports_used} used)")
    export_completed.send(session, kind='csv', user=user)
    return text


def default_csv_filename(now: datetime) -> str:
    return f"LiveSales_{now.strftime('%Y-%m-%d_%H%M%S')}.csv"
