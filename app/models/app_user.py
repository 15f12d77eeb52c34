"""AppUser model - the seller account and its free-tier usage counters."""
from datetime import datetime
from sqlalchemy import Column, BigInteger, String, Boolean, Integer, DateTime
from sqlalchemy.orm import validates
from app.database import Base
from app.exceptions import ValidationError


# Currency label -> display symbol
CURRENCY_SYMBOLS = {
    'USD ($)': '$', 'CAD ($)': '$', 'AUD ($)': '$', 'MXN ($)': '$',
    'SGD ($)': '$', 'HKD ($)': '$', 'NZD ($)': '$',
    'EUR (€)': '€',
    'GBP (£)': '£',
    'NGN (₦)': '₦',
    'INR (₹)': '₹',
    'JPY (¥)': '¥', 'CNY (¥)': '¥',
    'KRW (₩)': '₩',
    'BRL (R$)': 'R$',
    'ZAR (R)': 'R',
    'PHP (₱)': '₱',
    'CHF (Fr)': 'Fr',
    'SEK (kr)': 'kr',
    'THB (฿)': '฿',
    'AED (د.إ)': 'د.إ',
    'SAR (﷼)': '﷼',
    'KES (KSh)': 'KSh',
    'GHS (₵)': '₵',
}
DEFAULT_CURRENCY_SYMBOL = '$'


class AppUser(Base):
    """Seller account owning the pro flag and usage counters."""

    __tablename__ = 'app_user'

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=True)
    name = Column(String(200), nullable=False, default='')
    company_name = Column(String(200), nullable=False, default='')
    currency = Column(String(40), nullable=False, default='USD ($)')
    is_pro = Column(Boolean, nullable=False, default=False)
    orders_used = Column(Integer, nullable=False, default=0)
    exports_used = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    def __init__(self, **kwargs):
        kwargs.setdefault('name', '')
        kwargs.setdefault('company_name', '')
        kwargs.setdefault('currency', 'USD ($)')
        kwargs.setdefault('is_pro', False)
        kwargs.setdefault('orders_used', 0)
        kwargs.setdefault('exports_used', 0)
        super().__init__(**kwargs)

    @validates('orders_used', 'exports_used')
    def validate_counter(self, key, value):
        if value is None or int(value) < 0:
            raise ValidationError(f'{key} cannot be negative', field=key)
        return int(value)

    @property
    def currency_symbol(self) -> str:
        return CURRENCY_SYMBOLS.get(self.currency, DEFAULT_CURRENCY_SYMBOL)

    def __repr__(self):
        return f"<AppUser(id={self.id}, pro={self.is_pro}, orders={self.orders_used}, exports={self.exports_used})>"
