"""Order model."""
import enum
from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, String, Integer, Boolean, Numeric, DateTime, Text, Enum
from sqlalchemy.orm import validates
from app.database import Base
from app.exceptions import ValidationError
from app.models.platform import Platform, new_id
from app.models.product import to_decimal, to_int


class PaymentStatus(str, enum.Enum):
    """Payment status set by the seller."""
    UNSET = 'Unset'
    PENDING = 'Pending'
    PAID = 'Paid'

    def next(self) -> 'PaymentStatus':
        """Unset -> Pending -> Paid -> Unset."""
        return _PAYMENT_CYCLE[self]


_PAYMENT_CYCLE = {
    PaymentStatus.UNSET: PaymentStatus.PENDING,
    PaymentStatus.PENDING: PaymentStatus.PAID,
    PaymentStatus.PAID: PaymentStatus.UNSET,
}

PAYMENT_STATUS_DISPLAY = {
    PaymentStatus.UNSET: {'color': 'gray', 'icon': 'questionmark.circle'},
    PaymentStatus.PENDING: {'color': 'orange', 'icon': 'clock'},
    PaymentStatus.PAID: {'color': 'green', 'icon': 'checkmark.circle.fill'},
}


class OrderSource(str, enum.Enum):
    """Where the buyer placed the order."""
    LIVE_STREAM = 'Live Stream'
    TIKTOK_DM = 'TikTok DM'
    INSTAGRAM_DM = 'Instagram DM'
    FACEBOOK_DM = 'Facebook DM'
    WHATSAPP = 'WhatsApp'
    OTHER = 'Other'

    @classmethod
    def from_raw(cls, raw) -> 'OrderSource':
        """Map a stored raw value, falling back to live stream."""
        try:
            return cls(raw)
        except ValueError:
            return cls.LIVE_STREAM


ORDER_SOURCE_ICONS = {
    OrderSource.LIVE_STREAM: 'video.fill',
    OrderSource.TIKTOK_DM: 'music.note',
    OrderSource.INSTAGRAM_DM: 'camera.fill',
    OrderSource.FACEBOOK_DM: 'f.square.fill',
    OrderSource.WHATSAPP: 'phone.fill',
    OrderSource.OTHER: 'ellipsis.circle',
}


class Order(Base):
    """Order recorded during a selling session.

    Product and platform fields are snapshots taken at creation time, so
    historical orders stay stable when the product or platform is later
    edited or deleted. Only payment status and fulfillment change afterwards.
    """

    __tablename__ = 'orders'

    id = Column(String(36), primary_key=True, default=new_id)

    # Product snapshot
    product_id = Column(String(36), nullable=False, index=True)
    product_name = Column(String(200), nullable=False)
    product_barcode = Column(String(100), nullable=False, default='')

    # Buyer
    buyer_name = Column(String(200), nullable=False, default='')
    phone_number = Column(String(50), nullable=False, default='')
    address = Column(String(500), nullable=False, default='')
    customer_notes = Column(Text, nullable=True)
    order_source_raw = Column(String(40), nullable=False, default=OrderSource.LIVE_STREAM.value)

    # Platform snapshot
    platform_id = Column(String(36), nullable=False, index=True)
    platform_name = Column(String(100), nullable=False)
    platform_icon = Column(String(100), nullable=False)
    platform_color = Column(String(40), nullable=False)
    platform_is_custom = Column(Boolean, nullable=False, default=False)

    quantity = Column(Integer, nullable=False)
    price_per_unit = Column(Numeric(10, 2), nullable=False)
    was_discounted = Column(Boolean, nullable=False, default=False)
    payment_status = Column(
        Enum(PaymentStatus, name='payment_status', values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=PaymentStatus.UNSET
    )
    is_fulfilled = Column(Boolean, nullable=False, default=False)
    timestamp = Column(DateTime, nullable=False, default=datetime.now, index=True)

    def __init__(self, platform=None, order_source=None, **kwargs):
        for field in ('quantity', 'price_per_unit'):
            if kwargs.get(field) is None:
                raise ValidationError(f'{field} is required', field=field)
        if platform is not None:
            kwargs.update(
                platform_id=platform.id,
                platform_name=platform.name,
                platform_icon=platform.icon,
                platform_color=platform.color,
                platform_is_custom=bool(platform.is_custom),
            )
        if order_source is not None:
            try:
                kwargs['order_source_raw'] = OrderSource(order_source).value
            except ValueError:
                raise ValidationError(f'Unknown order source: {order_source!r}', field='order_source')
        kwargs.setdefault('id', new_id())
        kwargs.setdefault('product_barcode', '')
        kwargs.setdefault('buyer_name', '')
        kwargs.setdefault('phone_number', '')
        kwargs.setdefault('address', '')
        kwargs.setdefault('order_source_raw', OrderSource.LIVE_STREAM.value)
        kwargs.setdefault('platform_is_custom', False)
        kwargs.setdefault('was_discounted', False)
        kwargs.setdefault('payment_status', PaymentStatus.UNSET)
        kwargs.setdefault('is_fulfilled', False)
        kwargs.setdefault('timestamp', datetime.now())
        super().__init__(**kwargs)

    @validates('quantity')
    def validate_quantity(self, key, value):
        number = to_int(value, key)
        if number < 1:
            raise ValidationError('Quantity must be at least 1', field=key)
        return number

    @validates('price_per_unit')
    def validate_price(self, key, value):
        number = to_decimal(value, key)
        if number < 0:
            raise ValidationError('Price cannot be negative', field=key)
        return number

    @validates('payment_status')
    def validate_payment_status(self, key, value):
        if isinstance(value, PaymentStatus):
            return value
        try:
            return PaymentStatus(value)
        except ValueError:
            raise ValidationError(f'Unknown payment status: {value!r}', field=key)

    @validates('product_name', 'platform_name')
    def validate_required_text(self, key, value):
        if value is None:
            raise ValidationError(f'{key} is required', field=key)
        return str(value)

    @validates('timestamp')
    def validate_timestamp(self, key, value):
        if not isinstance(value, datetime):
            raise ValidationError('timestamp must be a datetime', field=key)
        return value

    @property
    def total_price(self) -> Decimal:
        return self.quantity * self.price_per_unit

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID

    @property
    def has_barcode(self) -> bool:
        return bool(self.product_barcode)

    @property
    def order_source(self) -> OrderSource:
        return OrderSource.from_raw(self.order_source_raw)

    @property
    def platform(self) -> Platform:
        """Detached platform rebuilt from the snapshot."""
        return Platform(
            id=self.platform_id,
            name=self.platform_name,
            icon=self.platform_icon,
            color=self.platform_color,
            is_custom=self.platform_is_custom,
        )

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'product_name': self.product_name,
            'product_barcode': self.product_barcode,
            'buyer_name': self.buyer_name,
            'phone_number': self.phone_number,
            'address': self.address,
            'customer_notes': self.customer_notes,
            'order_source': self.order_source.value,
            'order_source_icon': ORDER_SOURCE_ICONS[self.order_source],
            'platform': {
                'id': self.platform_id,
                'name': self.platform_name,
                'icon': self.platform_icon,
                'color': self.platform_color,
                'is_custom': bool(self.platform_is_custom),
            },
            'quantity': self.quantity,
            'price_per_unit': self.price_per_unit,
            'total_price': self.total_price,
            'was_discounted': bool(self.was_discounted),
            'payment_status': self.payment_status.value,
            'payment_status_display': PAYMENT_STATUS_DISPLAY[self.payment_status],
            'is_paid': self.is_paid,
            'is_fulfilled': bool(self.is_fulfilled),
            'timestamp': self.timestamp.isoformat(),
        }

    def __repr__(self):
        return (
            f"<Order(id={self.id}, product='{self.product_name}', "
            f"qty={self.quantity}, total={self.total_price})>"
        )
