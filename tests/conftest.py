import pytest
from datetime import datetime
from decimal import Decimal

from app import create_app
from app.database import Base, get_engine, get_session
from app.models import Order, Platform, Product, ProductCatalog
from app.services.account_service import bootstrap

# Reference "now" for pure aggregation tests (2025 is not a leap year)
NOW = datetime(2025, 3, 31, 15, 30)


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.TestConfig')
    return app


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Fresh in-memory schema with the account, built-in platforms and one catalog."""
    db_session = get_session()
    db_session.remove()
    Base.metadata.drop_all(get_engine())
    Base.metadata.create_all(get_engine())
    bootstrap(db_session, app.config['DEFAULT_CURRENCY'])
    yield db_session
    db_session.rollback()
    db_session.remove()


@pytest.fixture(scope='function')
def catalog_id(session):
    """Id of a catalog holding one configured product and one empty slot."""
    catalog = ProductCatalog(
        name='Live Session',
        products=[
            Product(name='Candle', price=Decimal('10.00'), stock=5),
            Product(),
        ],
        position=1
    )
    session.add(catalog)
    session.commit()
    return catalog.id


@pytest.fixture(scope='function')
def product_id(session, catalog_id):
    """Id of the configured 'Candle' product (price 10.00, stock 5)."""
    return session.query(Product).filter(Product.name == 'Candle').one().id


@pytest.fixture(scope='function')
def empty_product_id(session, catalog_id):
    catalog = session.query(ProductCatalog).filter(ProductCatalog.id == catalog_id).one()
    return catalog.products[1].id


@pytest.fixture(scope='function')
def platforms():
    """Detached built-in platforms keyed by name."""
    return {p.name: p for p in Platform.builtins()}


@pytest.fixture(scope='function')
def make_order(platforms):
    """Factory for in-memory orders (never added to a session)."""
    def _make(product_name='Candle', price='10.00', quantity=1, platform='TikTok',
              timestamp=None, **kwargs):
        kwargs.setdefault('product_id', f'P-{product_name}')
        kwargs.setdefault('buyer_name', 'Sam')
        return Order(
            product_name=product_name,
            platform=platforms[platform],
            quantity=quantity,
            price_per_unit=Decimal(price),
            timestamp=timestamp or NOW,
            **kwargs
        )
    return _make
