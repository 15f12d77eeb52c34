"""Product catalog model."""
from sqlalchemy import Column, String, Integer
from sqlalchemy.orm import relationship, validates
from sqlalchemy.ext.orderinglist import ordering_list
from app.database import Base
from app.exceptions import ValidationError
from app.models.platform import new_id
from app.models.product import Product


MAX_PRODUCTS = 12
INITIAL_SLOTS = 4
DEFAULT_CATALOG_NAME = 'My Products'


class ProductCatalog(Base):
    """Named, ordered set of product slots (max 12)."""

    __tablename__ = 'product_catalog'

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False, default=DEFAULT_CATALOG_NAME)
    position = Column(Integer, nullable=False, default=0)

    # Relationships
    products = relationship(
        'Product',
        back_populates='catalog',
        order_by='Product.position',
        collection_class=ordering_list('position'),
        cascade='all, delete-orphan'
    )

    def __init__(self, products=None, **kwargs):
        kwargs.setdefault('id', new_id())
        kwargs.setdefault('name', DEFAULT_CATALOG_NAME)
        kwargs.setdefault('position', 0)
        if products is None:
            products = [Product() for _ in range(INITIAL_SLOTS)]
        products = list(products)
        if len(products) > MAX_PRODUCTS:
            raise ValidationError(
                f'A catalog holds at most {MAX_PRODUCTS} products (got {len(products)})', field='products'
            )
        super().__init__(**kwargs)
        self.products = products

    @validates('name')
    def validate_name(self, key, value):
        if value is None or not str(value).strip():
            raise ValidationError('Catalog name is required', field='name')
        return str(value).strip()

    @property
    def is_full(self) -> bool:
        return len(self.products) >= MAX_PRODUCTS

    @property
    def can_add_product(self) -> bool:
        return not self.is_full

    @property
    def configured_products(self):
        return [p for p in self.products if not p.is_empty]

    @property
    def configured_count(self) -> int:
        return len(self.configured_products)

    def find_product(self, product_id):
        for product in self.products:
            if product.id == product_id:
                return product
        return None

    def to_dict(self, include_products=True):
        data = {
            'id': self.id,
            'name': self.name,
            'configured_count': self.configured_count,
            'is_full': self.is_full,
        }
        if include_products:
            data['products'] = [p.to_dict() for p in self.products]
        return data

    def __repr__(self):
        return f"<ProductCatalog(id={self.id}, name='{self.name}', products={len(self.products)})>"
