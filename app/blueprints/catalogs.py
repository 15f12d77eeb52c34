"""Catalogs blueprint - catalogs and their product slots."""
import base64
import binascii
from typing import Any, Dict, Tuple

from flask import Blueprint, Response, jsonify

from app.database import get_session
from app.exceptions import ValidationError
from app.services import catalog_service
from app.utils.request_args import json_body

catalogs_bp = Blueprint('catalogs', __name__, url_prefix='/catalogs')


def _get_product_data_from_body() -> Dict[str, Any]:
    """Extract editable product fields; image_data arrives base64-encoded."""
    data = json_body()
    fields = {k: data[k] for k in catalog_service.EDITABLE_PRODUCT_FIELDS if k in data}

    if 'image_data' in data:
        raw = data['image_data']
        if raw is None:
            fields['image_data'] = None
        else:
            try:
                fields['image_data'] = base64.b64decode(raw, validate=True)
            except (binascii.Error, TypeError, ValueError):
                raise ValidationError('image_data must be base64', field='image_data')
    return fields


@catalogs_bp.route('/', methods=['GET'])
def list_catalogs() -> Response:
    session = get_session()
    return jsonify({'catalogs': [c.to_dict() for c in catalog_service.list_catalogs(session)]})


@catalogs_bp.route('/', methods=['POST'])
def create() -> Tuple[Response, int]:
    session = get_session()
    catalog = catalog_service.create_catalog(session, json_body().get('name') or '')
    return jsonify(catalog.to_dict()), 201


@catalogs_bp.route('/<catalog_id>', methods=['GET'])
def detail(catalog_id: str) -> Response:
    session = get_session()
    return jsonify(catalog_service.get_catalog(session, catalog_id).to_dict())


@catalogs_bp.route('/<catalog_id>', methods=['PATCH'])
def rename(catalog_id: str) -> Response:
    session = get_session()
    catalog = catalog_service.rename_catalog(session, catalog_id, json_body().get('name') or '')
    return jsonify(catalog.to_dict())


@catalogs_bp.route('/<catalog_id>', methods=['DELETE'])
def delete(catalog_id: str) -> Response:
    session = get_session()
    catalog_service.delete_catalog(session, catalog_id)
    return jsonify({'status': 'ok', 'deleted': catalog_id})


@catalogs_bp.route('/<catalog_id>/products', methods=['POST'])
def add_product(catalog_id: str) -> Tuple[Response, int]:
    """Append an empty product slot."""
    session = get_session()
    product = catalog_service.add_product_slot(session, catalog_id)
    return jsonify(product.to_dict()), 201


@catalogs_bp.route('/<catalog_id>/products/<product_id>', methods=['PUT'])
def update_product(catalog_id: str, product_id: str) -> Response:
    session = get_session()
    product = catalog_service.update_product(session, catalog_id, product_id, _get_product_data_from_body())
    return jsonify(product.to_dict())
