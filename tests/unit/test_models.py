"""
Unit tests for SQLAlchemy models.
"""

import pytest
from decimal import Decimal
from app.exceptions import ValidationError
from app.models import (
    AppUser, DiscountType, Order, OrderSource, PaymentStatus, Platform, Product,
    ProductCatalog, StockLevel, MAX_PRODUCTS, INITIAL_SLOTS
)


class TestPlatformModel:
    """Tests for Platform model."""

    def test_builtins(self):
        """Built-in platforms come in display order with their icons and colors."""
        names = [(p.name, p.icon, p.color, p.is_custom) for p in Platform.builtins()]
        assert names == [
            ('TikTok', 'music.note', 'tiktok', False),
            ('Instagram', 'camera.fill', 'instagram', False),
            ('Facebook', 'f.square.fill', 'facebookblue', False),
        ]

    def test_ids_are_uppercase_uuids(self):
        platform = Platform(name='Shop')
        assert len(platform.id) == 36
        assert platform.id == platform.id.upper()

    def test_unknown_color_falls_back_to_gray(self):
        assert Platform(name='Shop', color='chartreuse').color_hex == '#8E8E93'
        assert Platform(name='Shop', color='tiktok').color_hex == '#EE1D52'

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            Platform(name='   ')


class TestProductModel:
    """Tests for Product model."""

    def test_defaults(self):
        product = Product()
        assert product.is_empty
        assert product.barcode == ''
        assert product.low_stock_threshold == 5
        assert product.critical_stock_threshold == 2
        assert product.discount_type == DiscountType.NONE

    def test_percentage_discount(self):
        product = Product(name='Cream', price=Decimal('45.00'),
                          discount_type=DiscountType.PERCENTAGE, discount_value=Decimal('10'))
        assert product.final_price == Decimal('40.5')
        assert product.has_discount

    def test_amount_discount_never_negative(self):
        product = Product(name='Soap', price=Decimal('5.00'),
                          discount_type='Amount', discount_value=Decimal('8'))
        assert product.final_price == Decimal('0')

    def test_percentage_over_100_clamped(self):
        product = Product(name='Soap', price=Decimal('5.00'),
                          discount_type=DiscountType.PERCENTAGE, discount_value=Decimal('150'))
        assert product.final_price == Decimal('0')

    def test_zero_discount_value_is_not_a_discount(self):
        product = Product(name='Soap', price=Decimal('5.00'),
                          discount_type=DiscountType.AMOUNT, discount_value=Decimal('0'))
        assert not product.has_discount
        assert product.final_price == Decimal('5.00')

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            Product(name='Soap', price=Decimal('-1'))

    def test_negative_stock_rejected(self):
        product = Product(name='Soap', price=Decimal('1'), stock=3)
        with pytest.raises(ValidationError):
            product.stock = -1

    def test_unknown_discount_type_rejected(self):
        with pytest.raises(ValidationError):
            Product(discount_type='BOGO')

    def test_stock_level(self):
        product = Product(name='Soap', price=Decimal('1'), stock=10)
        assert product.stock_level == StockLevel.OK
        product.stock = 5
        assert product.stock_level == StockLevel.LOW
        product.stock = 2
        assert product.stock_level == StockLevel.CRITICAL


class TestProductCatalogModel:
    """Tests for ProductCatalog model."""

    def test_new_catalog_has_initial_empty_slots(self):
        catalog = ProductCatalog()
        assert catalog.name == 'My Products'
        assert len(catalog.products) == INITIAL_SLOTS
        assert all(p.is_empty for p in catalog.products)
        assert catalog.configured_count == 0
        assert [p.position for p in catalog.products] == list(range(INITIAL_SLOTS))

    def test_full_catalog(self):
        catalog = ProductCatalog(products=[Product() for _ in range(MAX_PRODUCTS)])
        assert len(catalog.products) == MAX_PRODUCTS
        assert catalog.is_full
        assert not catalog.can_add_product

    def test_too_many_products_rejected(self):
        with pytest.raises(ValidationError) as exc:
            ProductCatalog(products=[Product() for _ in range(MAX_PRODUCTS + 1)])
        assert exc.value.field == 'products'

    def test_find_product(self):
        product = Product(name='Candle', price=Decimal('10'), stock=1)
        catalog = ProductCatalog(products=[Product(), product])
        assert catalog.find_product(product.id) is product
        assert catalog.find_product('missing') is None
        assert catalog.configured_count == 1


class TestOrderModel:
    """Tests for Order model."""

    @pytest.mark.parametrize('quantity, price', [(1, '0'), (2, '10.00'), (3, '19.99'), (100, '0.01')])
    def test_total_price(self, make_order, quantity, price):
        order = make_order(quantity=quantity, price=price)
        assert order.total_price == quantity * Decimal(price)

    def test_defaults(self, make_order):
        order = make_order()
        assert order.phone_number == ''
        assert order.address == ''
        assert order.customer_notes is None
        assert order.order_source == OrderSource.LIVE_STREAM
        assert order.payment_status == PaymentStatus.UNSET
        assert not order.is_paid
        assert not order.is_fulfilled

    def test_quantity_below_one_rejected(self, make_order):
        with pytest.raises(ValidationError):
            make_order(quantity=0)

    def test_negative_price_rejected(self, make_order):
        with pytest.raises(ValidationError):
            make_order(price='-0.01')

    @pytest.mark.parametrize('missing', ['quantity', 'price_per_unit'])
    def test_quantity_and_price_required(self, platforms, missing):
        fields = dict(product_id='P1', product_name='Candle', platform=platforms['TikTok'],
                      quantity=1, price_per_unit=Decimal('10'))
        del fields[missing]
        with pytest.raises(ValidationError) as exc:
            Order(**fields)
        assert exc.value.field == missing

    def test_unknown_order_source_rejected(self, make_order):
        with pytest.raises(ValidationError):
            make_order(order_source='Carrier Pigeon')

    def test_unknown_raw_source_reads_as_live_stream(self, make_order):
        order = make_order(order_source_raw='Carrier Pigeon')
        assert order.order_source == OrderSource.LIVE_STREAM

    def test_platform_snapshot(self, make_order, platforms):
        order = make_order(platform='Instagram')
        assert order.platform_id == platforms['Instagram'].id
        assert order.platform_name == 'Instagram'
        assert order.platform.to_dict() == platforms['Instagram'].to_dict()

    def test_payment_status_cycle(self):
        assert PaymentStatus.UNSET.next() == PaymentStatus.PENDING
        assert PaymentStatus.PENDING.next() == PaymentStatus.PAID
        assert PaymentStatus.PAID.next() == PaymentStatus.UNSET

    def test_is_paid(self, make_order):
        assert make_order(payment_status=PaymentStatus.PAID).is_paid
        assert make_order(payment_status='Paid').is_paid


class TestAppUserModel:
    """Tests for AppUser model."""

    def test_defaults(self):
        user = AppUser()
        assert user.is_pro is False
        assert user.orders_used == 0
        assert user.exports_used == 0
        assert user.currency_symbol == '$'

    def test_currency_symbol_lookup(self):
        assert AppUser(currency='EUR (€)').currency_symbol == '€'
        assert AppUser(currency='Unknown').currency_symbol == '$'

    def test_negative_counter_rejected(self):
        with pytest.raises(ValidationError):
            AppUser(orders_used=-1)

    def test_persisted(self, session):
        user = session.query(AppUser).one()
        assert user.id is not None
        assert user.currency == 'USD ($)'
