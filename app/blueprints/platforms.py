"""Platforms blueprint - built-in and custom sales channels."""
from typing import Tuple

from flask import Blueprint, Response, jsonify

from app.database import get_session
from app.models import PLATFORM_COLORS
from app.services import platform_service
from app.utils.request_args import json_body

platforms_bp = Blueprint('platforms', __name__, url_prefix='/platforms')


@platforms_bp.route('/', methods=['GET'])
def list_platforms() -> Response:
    session = get_session()
    platforms = platform_service.list_platforms(session)
    return jsonify({
        'platforms': [p.to_dict() for p in platforms],
        'colors': PLATFORM_COLORS,
    })


@platforms_bp.route('/check-name', methods=['POST'])
def check_name() -> Response:
    """Check a candidate custom platform name without creating it."""
    session = get_session()
    error = platform_service.validate_platform_name(
        json_body().get('name') or '', platform_service.list_platforms(session)
    )
    return jsonify({'valid': error is None, 'error': error})


@platforms_bp.route('/', methods=['POST'])
def create() -> Tuple[Response, int]:
    session = get_session()
    data = json_body()
    platform = platform_service.add_custom_platform(
        session,
        str(data.get('name') or ''),
        color=data.get('color') or 'gray'
    )
    return jsonify(platform.to_dict()), 201


@platforms_bp.route('/<platform_id>', methods=['DELETE'])
def delete(platform_id: str) -> Response:
    session = get_session()
    platform_service.delete_platform(session, platform_id)
    return jsonify({'status': 'ok', 'deleted': platform_id})
