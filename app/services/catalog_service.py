"""Catalog service - product catalogs and their product slots."""
import logging
from typing import List

from app.exceptions import BusinessLogicError, NotFoundError
from app.models import Product, ProductCatalog, MAX_PRODUCTS, INITIAL_SLOTS

logger = logging.getLogger(__name__)

EDITABLE_PRODUCT_FIELDS = (
    'name', 'price', 'stock', 'low_stock_threshold', 'critical_stock_threshold',
    'discount_type', 'discount_value', 'barcode', 'image_data',
)


def list_catalogs(session) -> List[ProductCatalog]:
    return session.query(ProductCatalog).order_by(ProductCatalog.position.asc()).all()


def ensure_default_catalog(session) -> List[ProductCatalog]:
    """Create "My Products" when no catalog exists and return all catalogs."""
    catalogs = list_catalogs(session)
    if catalogs:
        return catalogs

    catalog = ProductCatalog()
    session.add(catalog)
    session.flush()
    logger.info(f"Created default catalog {catalog.id}")
    return [catalog]


def get_catalog(session, catalog_id: str) -> ProductCatalog:
    catalog = session.query(ProductCatalog).filter(ProductCatalog.id == catalog_id).first()
    if not catalog:
        raise NotFoundError(f'Catalog {catalog_id} not found')
    return catalog


def get_product(session, product_id: str) -> Product:
    product = session.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError(f'Product {product_id} not found')
    return product


def create_catalog(session, name: str) -> ProductCatalog:
    existing = list_catalogs(session)
    try:
        catalog = ProductCatalog(
            name=name,
            position=max((c.position for c in existing), default=-1) + 1
        )
        session.add(catalog)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info(f"Catalog created: {catalog.name} ({catalog.id})")
    return catalog


def rename_catalog(session, catalog_id: str, name: str) -> ProductCatalog:
    catalog = get_catalog(session, catalog_id)
    try:
        catalog.name = name
        session.commit()
    except Exception:
        session.rollback()
        raise
    return catalog


def delete_catalog(session, catalog_id: str) -> None:
    """Delete a catalog and its products; the last catalog is kept."""
    catalog = get_catalog(session, catalog_id)
    if session.query(ProductCatalog).count() <= 1:
        raise BusinessLogicError('The last catalog cannot be deleted')

    try:
        session.delete(catalog)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info(f"Catalog deleted: {catalog_id}")


def add_product_slot(session, catalog_id: str) -> Product:
    """Append an empty product slot (max 12 per catalog)."""
    catalog = get_catalog(session, catalog_id)
    if catalog.is_full:
        raise BusinessLogicError(f'A catalog holds at most {MAX_PRODUCTS} products', status_code=409)

    try:
        product = Product()
        catalog.products.append(product)
        session.commit()
    except Exception:
        session.rollback()
        raise
    return product


def update_product(session, catalog_id: str, product_id: str, data: dict) -> Product:
    """
    Update editable fields of a product slot.

    Existing orders are unaffected: they hold their own product snapshot.
    """
    catalog = get_catalog(session, catalog_id)
    product = catalog.find_product(product_id)
    if not product:
        raise NotFoundError(f'Product {product_id} not found in catalog {catalog_id}')

    try:
        for field in EDITABLE_PRODUCT_FIELDS:
            if field in data:
                setattr(product, field, data[field])
        session.commit()
    except Exception:
        session.rollback()
        raise
    return product


def reset_catalog_products(catalog: ProductCatalog) -> None:
    """Replace every product slot with the initial empty slots."""
    catalog.products = [Product() for _ in range(INITIAL_SLOTS)]


def adjust_stock(session, product_id: str, delta: int) -> None:
    """Add ``delta`` to a product's stock (floored at 0). Missing products are ignored."""
    product = session.query(Product).filter(Product.id == product_id).first()
    if product is None:
        return
    product.stock = max(0, product.stock + delta)
