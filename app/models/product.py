"""Product model."""
import enum
from decimal import Decimal, InvalidOperation
from sqlalchemy import Column, String, Integer, Numeric, LargeBinary, ForeignKey, Enum
from sqlalchemy.orm import relationship, validates
from app.database import Base
from app.exceptions import ValidationError
from app.models.platform import new_id


class DiscountType(str, enum.Enum):
    """How a product discount is applied."""
    NONE = 'None'
    PERCENTAGE = 'Percentage'
    AMOUNT = 'Amount'


class StockLevel(str, enum.Enum):
    """Stock badge level."""
    OK = 'ok'
    LOW = 'low'
    CRITICAL = 'critical'


def to_decimal(value, field: str) -> Decimal:
    """Coerce a numeric input to Decimal, rejecting garbage."""
    if isinstance(value, bool):
        raise ValidationError(f'{field} must be a number', field=field)
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f'{field} must be a number', field=field)
    if not number.is_finite():
        raise ValidationError(f'{field} must be a finite number', field=field)
    return number


def to_int(value, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f'{field} must be an integer', field=field)
    try:
        number = int(value)
    except (ValueError, TypeError):
        raise ValidationError(f'{field} must be an integer', field=field)
    if number != value and not isinstance(value, str):
        raise ValidationError(f'{field} must be an integer', field=field)
    return number


class Product(Base):
    """Product slot inside a catalog."""

    __tablename__ = 'product'

    id = Column(String(36), primary_key=True, default=new_id)
    catalog_id = Column(String(36), ForeignKey('product_catalog.id'), nullable=True)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(200), nullable=False, default='')
    price = Column(Numeric(10, 2), nullable=False, default=0)
    stock = Column(Integer, nullable=False, default=0)
    low_stock_threshold = Column(Integer, nullable=False, default=5)
    critical_stock_threshold = Column(Integer, nullable=False, default=2)
    discount_type = Column(
        Enum(DiscountType, name='discount_type', values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=DiscountType.NONE
    )
    discount_value = Column(Numeric(10, 2), nullable=False, default=0)
    barcode = Column(String(100), nullable=False, default='')
    image_data = Column(LargeBinary, nullable=True)

    # Relationships
    catalog = relationship('ProductCatalog', back_populates='products')

    def __init__(self, **kwargs):
        kwargs.setdefault('id', new_id())
        kwargs.setdefault('name', '')
        kwargs.setdefault('price', Decimal('0'))
        kwargs.setdefault('stock', 0)
        kwargs.setdefault('low_stock_threshold', 5)
        kwargs.setdefault('critical_stock_threshold', 2)
        kwargs.setdefault('discount_type', DiscountType.NONE)
        kwargs.setdefault('discount_value', Decimal('0'))
        kwargs.setdefault('barcode', '')
        super().__init__(**kwargs)

    @validates('name', 'barcode')
    def validate_text(self, key, value):
        return (value or '').strip()

    @validates('price', 'discount_value')
    def validate_money(self, key, value):
        number = to_decimal(value, key)
        if number < 0:
            raise ValidationError(f'{key} cannot be negative', field=key)
        return number

    @validates('stock', 'low_stock_threshold', 'critical_stock_threshold')
    def validate_counts(self, key, value):
        number = to_int(value, key)
        if number < 0:
            raise ValidationError(f'{key} cannot be negative', field=key)
        return number

    @validates('discount_type')
    def validate_discount_type(self, key, value):
        if isinstance(value, DiscountType):
            return value
        try:
            return DiscountType(value)
        except ValueError:
            raise ValidationError(f'Unknown discount type: {value!r}', field=key)

    @property
    def final_price(self) -> Decimal:
        """Price after discount, never negative."""
        price = self.price or Decimal('0')
        value = self.discount_value or Decimal('0')
        if self.discount_type == DiscountType.PERCENTAGE:
            return max(Decimal('0'), price * (1 - value / Decimal('100')))
        if self.discount_type == DiscountType.AMOUNT:
            return max(Decimal('0'), price - value)
        return price

    @property
    def has_discount(self) -> bool:
        return self.discount_type != DiscountType.NONE and (self.discount_value or 0) > 0

    @property
    def has_barcode(self) -> bool:
        return bool(self.barcode)

    @property
    def is_empty(self) -> bool:
        """Unconfigured slot: blank name, zero price and no stock."""
        return not (self.name or '').strip() and (self.price or 0) == 0 and (self.stock or 0) == 0

    @property
    def stock_level(self) -> StockLevel:
        if self.stock <= self.critical_stock_threshold:
            return StockLevel.CRITICAL
        if self.stock <= self.low_stock_threshold:
            return StockLevel.LOW
        return StockLevel.OK

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'price': self.price,
            'stock': self.stock,
            'low_stock_threshold': self.low_stock_threshold,
            'critical_stock_threshold': self.critical_stock_threshold,
            'discount_type': self.discount_type.value,
            'discount_value': self.discount_value,
            'final_price': self.final_price,
            'barcode': self.barcode,
            'has_image': self.image_data is not None,
            'stock_level': self.stock_level.value,
            'is_empty': self.is_empty,
        }

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', price={self.price})>"
