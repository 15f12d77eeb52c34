"""
Backup service.
Serializes orders, catalogs and platforms to a single JSON document and back,
and restores a decoded backup into the database.

Document shape (camelCase keys)::

    {
      "orders": [...], "catalogs": [...], "platforms": [...],
      "exportDate": "2025-01-31T18:04:05", "appVersion": "1.0.0",
      "schemaVersion": 2
    }

Older documents lack ``orderSourceRaw`` (or carry it as ``orderSource``) and
several optional order fields; these are filled in by one default-fill step
before any record is built.
"""
import base64
import binascii
import json
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List, NamedTuple, Optional

from app.exceptions import CorruptBackupError, ValidationError
from app.models import (
    Order, OrderSource, PaymentStatus, Platform, Product, ProductCatalog, DiscountType
)
from app.services import platform_service

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2
REQUIRED_KEYS = ('orders', 'catalogs', 'platforms', 'exportDate')

# Dates encoded by the iOS app as seconds since 2001-01-01 UTC
APPLE_REFERENCE_DATE = datetime(2001, 1, 1, tzinfo=timezone.utc)

ORDER_DEFAULTS = {
    'productBarcode': '',
    'phoneNumber': '',
    'address': '',
    'customerNotes': None,
    'wasDiscounted': False,
    'paymentStatus': PaymentStatus.UNSET.value,
    'isFulfilled': False,
    'orderSourceRaw': OrderSource.LIVE_STREAM.value,
}
ORDER_LEGACY_FIELDS = {
    'orderSource': 'orderSourceRaw',
}
ORDER_REQUIRED = ('id', 'productId', 'productName', 'buyerName', 'platform',
                  'quantity', 'pricePerUnit', 'timestamp')

PLATFORM_DEFAULTS = {
    'icon': 'star.fill',
    'color': 'gray',
    'isCustom': False,
}
PLATFORM_REQUIRED = ('id', 'name')

PRODUCT_DEFAULTS = {
    'lowStockThreshold': 5,
    'criticalStockThreshold': 2,
    'discountType': DiscountType.NONE.value,
    'discountValue': 0,
    'barcode': '',
    'imageData': None,
}
PRODUCT_REQUIRED = ('id', 'name', 'price', 'stock')

CATALOG_REQUIRED = ('id', 'name', 'products')


class BackupContents(NamedTuple):
    orders: List[Order]
    catalogs: List[ProductCatalog]
    platforms: List[Platform]


# --- Encoding ----------------------------------------------------------------

def _money(value: Decimal) -> float:
    return float(value)


def _encode_date(value: datetime) -> str:
    return value.isoformat()


def _encode_platform(platform) -> dict:
    return {
        'id': platform.id,
        'name': platform.name,
        'icon': platform.icon,
        'color': platform.color,
        'isCustom': bool(platform.is_custom),
    }


def _encode_product(product: Product) -> dict:
    return {
        'id': product.id,
        'name': product.name,
        'price': _money(product.price),
        'stock': product.stock,
        'lowStockThreshold': product.low_stock_threshold,
        'criticalStockThreshold': product.critical_stock_threshold,
        'discountType': product.discount_type.value,
        'discountValue': _money(product.discount_value),
        'barcode': product.barcode,
        'imageData': base64.b64encode(product.image_data).decode('ascii') if product.image_data is not None else None,
    }


def _encode_catalog(catalog: ProductCatalog) -> dict:
    return {
        'id': catalog.id,
        'name': catalog.name,
        'products': [_encode_product(p) for p in catalog.products],
    }


def _encode_order(order: Order) -> dict:
    return {
        'id': order.id,
        'productId': order.product_id,
        'productName': order.product_name,
        'productBarcode': order.product_barcode,
        'buyerName': order.buyer_name,
        'phoneNumber': order.phone_number,
        'address': order.address,
        'customerNotes': order.customer_notes,
        'orderSourceRaw': order.order_source_raw,
        'platform': _encode_platform(order.platform),
        'quantity': order.quantity,
        'pricePerUnit': _money(order.price_per_unit),
        'wasDiscounted': bool(order.was_discounted),
        'paymentStatus': order.payment_status.value,
        'isFulfilled': bool(order.is_fulfilled),
        'timestamp': _encode_date(order.timestamp),
    }


def serialize(orders, catalogs, platforms, exported_at: datetime,
              app_version: Optional[str] = None) -> dict:
    """Build the backup document for a full state snapshot."""
    document = {
        'orders': [_encode_order(o) for o in tuple(orders)],
        'catalogs': [_encode_catalog(c) for c in tuple(catalogs)],
        'platforms': [_encode_platform(p) for p in tuple(platforms)],
        'exportDate': _encode_date(exported_at),
        'schemaVersion': SCHEMA_VERSION,
    }
    if app_version is not None:
        document['appVersion'] = app_version
    return document


def dumps(document: dict) -> str:
    return json.dumps(document, ensure_ascii=False, indent=2)


# --- Decoding ----------------------------------------------------------------

def fill_defaults(record: dict, defaults: dict, legacy: Optional[dict] = None) -> dict:
    """
    Return a copy of ``record`` upgraded to the current schema.

    Legacy keys are renamed first (the current key wins when both exist),
    then absent or null optional keys receive their documented defaults.
    """
    filled = dict(record)
    for old_key, new_key in (legacy or {}).items():
        if old_key in filled:
            legacy_value = filled.pop(old_key)
            if filled.get(new_key) is None:
                filled[new_key] = legacy_value
    for key, default in defaults.items():
        if filled.get(key) is None:
            filled[key] = default
    return filled


def _require(record, keys, path: str) -> None:
    if not isinstance(record, dict):
        raise CorruptBackupError('expected an object', path=path)
    for key in keys:
        if record.get(key) is None:
            raise CorruptBackupError(f"missing field '{key}'", path=path)


def _require_list(document: dict, key: str) -> list:
    value = document[key]
    if not isinstance(value, list):
        raise CorruptBackupError(f"'{key}' must be an array", path=key)
    return value


def _decode_date(value, path: str) -> datetime:
    """Parse ISO-8601 text or Apple reference-date seconds into a naive local datetime."""
    if isinstance(value, bool):
        raise CorruptBackupError('invalid date', path=path)
    if isinstance(value, (int, float)):
        parsed = APPLE_REFERENCE_DATE + timedelta(seconds=value)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise CorruptBackupError(f'invalid date {value!r}', path=path)
    else:
        raise CorruptBackupError('invalid date', path=path)

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _decode_bool(value, path: str) -> bool:
    if not isinstance(value, bool):
        raise CorruptBackupError('expected true/false', path=path)
    return value


def _decode_text(value, path: str) -> str:
    if not isinstance(value, str):
        raise CorruptBackupError('expected a string', path=path)
    return value


def _decode_image(value, path: str) -> Optional[bytes]:
    if value is None:
        return None
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, TypeError, ValueError):
        raise CorruptBackupError('invalid base64 image data', path=path)


def _decode_platform(record, path: str) -> Platform:
    _require(record, PLATFORM_REQUIRED, path)
    data = fill_defaults(record, PLATFORM_DEFAULTS)
    return Platform(
        id=_decode_text(data['id'], f'{path}.id'),
        name=_decode_text(data['name'], f'{path}.name'),
        icon=_decode_text(data['icon'], f'{path}.icon'),
        color=_decode_text(data['color'], f'{path}.color'),
        is_custom=_decode_bool(data['isCustom'], f'{path}.isCustom'),
    )


def _decode_product(record, path: str) -> Product:
    _require(record, PRODUCT_REQUIRED, path)
    data = fill_defaults(record, PRODUCT_DEFAULTS)
    return Product(
        id=_decode_text(data['id'], f'{path}.id'),
        name=_decode_text(data['name'], f'{path}.name'),
        price=data['price'],
        stock=data['stock'],
        low_stock_threshold=data['lowStockThreshold'],
        critical_stock_threshold=data['criticalStockThreshold'],
        discount_type=data['discountType'],
        discount_value=data['discountValue'],
        barcode=_decode_text(data['barcode'], f'{path}.barcode'),
        image_data=_decode_image(data['imageData'], f'{path}.imageData'),
    )


def _decode_catalog(record, path: str) -> ProductCatalog:
    _require(record, CATALOG_REQUIRED, path)
    products = record['products']
    if not isinstance(products, list):
        raise CorruptBackupError("'products' must be an array", path=path)
    return ProductCatalog(
        id=_decode_text(record['id'], f'{path}.id'),
        name=_decode_text(record['name'], f'{path}.name'),
        products=[_decode_product(p, f'{path}.products[{i}]') for i, p in enumerate(products)],
    )


def _decode_order(record, path: str) -> Order:
    _require(record, ('id',), path)
    data = fill_defaults(record, ORDER_DEFAULTS, ORDER_LEGACY_FIELDS)
    _require(data, ORDER_REQUIRED, path)
    customer_notes = data['customerNotes']
    return Order(
        id=_decode_text(data['id'], f'{path}.id'),
        product_id=_decode_text(data['productId'], f'{path}.productId'),
        product_name=_decode_text(data['productName'], f'{path}.productName'),
        product_barcode=_decode_text(data['productBarcode'], f'{path}.productBarcode'),
        buyer_name=_decode_text(data['buyerName'], f'{path}.buyerName'),
        phone_number=_decode_text(data['phoneNumber'], f'{path}.phoneNumber'),
        address=_decode_text(data['address'], f'{path}.address'),
        customer_notes=_decode_text(customer_notes, f'{path}.customerNotes') if customer_notes is not None else None,
        order_source_raw=OrderSource.from_raw(data['orderSourceRaw']).value,
        platform=_decode_platform(data['platform'], f'{path}.platform'),
        quantity=data['quantity'],
        price_per_unit=data['pricePerUnit'],
        was_discounted=_decode_bool(data['wasDiscounted'], f'{path}.wasDiscounted'),
        payment_status=data['paymentStatus'],
        is_fulfilled=_decode_bool(data['isFulfilled'], f'{path}.isFulfilled'),
        timestamp=_decode_date(data['timestamp'], f'{path}.timestamp'),
    )


def _decode_records(items, decoder, prefix: str) -> list:
    decoded = []
    for index, item in enumerate(items):
        path = f'{prefix}[{index}]'
        try:
            decoded.append(decoder(item, path))
        except ValidationError as e:
            raise CorruptBackupError(e.message, path=f'{path}.{e.field}' if e.field else path)
    return decoded


def _check_unique_ids(entries) -> None:
    """``entries`` yields ``(path, id)`` pairs that share one id space."""
    seen = set()
    for path, record_id in entries:
        if record_id in seen:
            raise CorruptBackupError(f"duplicate id '{record_id}'", path=f'{path}.id')
        seen.add(record_id)


def _check_platform_names(platforms) -> None:
    accepted = []
    for index, platform in enumerate(platforms):
        error = platform_service.validate_platform_name(platform.name, accepted)
        if error:
            raise CorruptBackupError(error, path=f'platforms[{index}].name')
        accepted.append(platform)


def deserialize(document) -> BackupContents:
    """
    Decode a backup document.

    Raises:
        CorruptBackupError: If a required key is missing or malformed, if ids
            repeat within a table, or if platform names clash. Optional fields
            never fail the document; they fall back to defaults.
    """
    if not isinstance(document, dict):
        raise CorruptBackupError('document must be a JSON object')
    for key in REQUIRED_KEYS:
        if key not in document or document[key] is None:
            raise CorruptBackupError(f"missing top-level key '{key}'", path=key)

    _decode_date(document['exportDate'], 'exportDate')
    app_version = document.get('appVersion')
    if app_version is not None and not isinstance(app_version, str):
        raise CorruptBackupError('appVersion must be a string', path='appVersion')

    orders = _decode_records(_require_list(document, 'orders'), _decode_order, 'orders')
    catalogs = _decode_records(_require_list(document, 'catalogs'), _decode_catalog, 'catalogs')
    platforms = _decode_records(_require_list(document, 'platforms'), _decode_platform, 'platforms')

    _check_unique_ids((f'orders[{i}]', o.id) for i, o in enumerate(orders))
    _check_unique_ids((f'catalogs[{i}]', c.id) for i, c in enumerate(catalogs))
    _check_unique_ids(
        (f'catalogs[{i}].products[{j}]', p.id)
        for i, c in enumerate(catalogs) for j, p in enumerate(c.products)
    )
    _check_unique_ids((f'platforms[{i}]', p.id) for i, p in enumerate(platforms))
    _check_platform_names(platforms)
    return BackupContents(orders, catalogs, platforms)


def read_metadata(document: dict) -> dict:
    """Export date and app version of an already validated document."""
    return {
        'export_date': _decode_date(document['exportDate'], 'exportDate'),
        'app_version': document.get('appVersion'),
    }


def loads(text) -> dict:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CorruptBackupError(f'invalid JSON ({e})')


# --- Files -------------------------------------------------------------------

def default_backup_filename(now: datetime) -> str:
    return f"LiveLedger_Backup_{now.strftime('%Y-%m-%d_%H%M%S')}.json"


def write_backup(path, document: dict) -> None:
    with open(path, 'w', encoding='utf-8') as fh:
        fh.write(dumps(document))
    logger.info(f"Backup written to {path}")


def read_backup(path) -> dict:
    with open(path, 'r', encoding='utf-8') as fh:
        text = fh.read()
    return loads(text)


# --- Database ----------------------------------------------------------------

def export_state(session, exported_at: datetime, app_version: Optional[str] = None) -> dict:
    """Snapshot every order, catalog and platform in the database."""
    orders = session.query(Order).order_by(Order.timestamp.desc()).all()
    catalogs = session.query(ProductCatalog).order_by(ProductCatalog.position.asc()).all()
    platforms = session.query(Platform).order_by(Platform.position.asc()).all()
    return serialize(orders, catalogs, platforms, exported_at, app_version)


def restore_state(session, document) -> BackupContents:
    """
    Replace all orders, catalogs and platforms with the backup contents.

    The document is fully decoded before anything is deleted, so a corrupt
    backup leaves the current data untouched. Built-in platforms saved with
    pre-brand colors are migrated on the way in.
    """
    contents = deserialize(document)
    platform_service.migrate_builtin_colors(contents.platforms, contents.orders)
    try:
        # Catalog deletes cascade to their products
        for model in (Order, ProductCatalog, Product, Platform):
            for existing in session.query(model).all():
                session.delete(existing)
        session.flush()

        for index, platform in enumerate(contents.platforms):
            platform.position = index
            session.add(platform)
        for index, catalog in enumerate(contents.catalogs):
            catalog.position = index
            session.add(catalog)
        for order in contents.orders:
            session.add(order)

        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(
        f"Backup restored: {len(contents.orders)} orders, "
        f"{len(contents.catalogs)} catalogs, {len(contents.platforms)} platforms"
    )
    return contents
