"""Orders blueprint - order entry, status edits and CSV export."""
from datetime import datetime
from typing import Tuple

from flask import Blueprint, Response, current_app, jsonify, request

from app.database import get_session
from app.exceptions import ValidationError
from app.models import OrderSource, PaymentStatus
from app.services import analytics_service, order_service, account_service
from app.utils.request_args import json_body, parse_bool, parse_datetime_arg, parse_int

orders_bp = Blueprint('orders', __name__, url_prefix='/orders')


def _filtered_orders(session) -> list:
    """Apply the optional period/platform query filters to all orders."""
    orders = order_service.list_orders(session)

    period = request.args.get('period')
    if period:
        custom_range = None
        start = parse_datetime_arg(request.args.get('start'), 'start')
        end = parse_datetime_arg(request.args.get('end'), 'end', end_of_day=True)
        if start and end:
            custom_range = (start, end)
        orders = analytics_service.filter_by_period(orders, period, datetime.now(), custom_range)

    platform_id = request.args.get('platform_id') or None
    return analytics_service.filter_by_platform(orders, platform_id)


@orders_bp.route('/', methods=['GET'])
def list_orders() -> Response:
    """List orders, newest first."""
    session = get_session()
    orders = _filtered_orders(session)
    return jsonify({
        'orders': [o.to_dict() for o in orders],
        'count': len(orders),
        'total_revenue': analytics_service.total_revenue(orders),
    })


@orders_bp.route('/', methods=['POST'])
def create() -> Tuple[Response, int]:
    """
    Create an order.

    Body: product_id, buyer_name, platform_id?, quantity?, phone_number?,
    address?, customer_notes?, order_source?
    """
    session = get_session()
    data = json_body()

    product_id = str(data.get('product_id') or '').strip()
    if not product_id:
        raise ValidationError('product_id is required', field='product_id')

    order = order_service.create_order(
        session,
        product_id=product_id,
        buyer_name=data.get('buyer_name') or '',
        platform_id=data.get('platform_id') or None,
        quantity=parse_int(data.get('quantity'), 'quantity', default=1, minimum=1),
        phone_number=data.get('phone_number') or '',
        address=data.get('address') or '',
        customer_notes=data.get('customer_notes') or None,
        order_source=data.get('order_source') or OrderSource.LIVE_STREAM,
        config=current_app.config,
    )
    return jsonify(order.to_dict()), 201


@orders_bp.route('/<order_id>', methods=['GET'])
def detail(order_id: str) -> Response:
    session = get_session()
    return jsonify(order_service.get_order(session, order_id).to_dict())


@orders_bp.route('/<order_id>', methods=['DELETE'])
def delete(order_id: str) -> Response:
    session = get_session()
    order_service.delete_order(session, order_id)
    return jsonify({'status': 'ok', 'deleted': order_id})


@orders_bp.route('/<order_id>/payment-status', methods=['POST'])
def payment_status(order_id: str) -> Response:
    """Set {"status": "Paid"} or cycle to the next status with an empty body."""
    session = get_session()
    status = json_body().get('status')
    if status is not None:
        try:
            status = PaymentStatus(status)
        except ValueError:
            raise ValidationError(f'Unknown payment status: {status!r}', field='status')
    order = order_service.update_payment_status(session, order_id, status)
    return jsonify(order.to_dict())


@orders_bp.route('/<order_id>/fulfillment', methods=['POST'])
def fulfillment(order_id: str) -> Response:
    """Set {"fulfilled": true|false} or toggle with an empty body."""
    session = get_session()
    fulfilled = parse_bool(json_body().get('fulfilled'), 'fulfilled')
    order = order_service.set_fulfilled(session, order_id, fulfilled)
    return jsonify(order.to_dict())


@orders_bp.route('/clear', methods=['POST'])
def clear() -> Response:
    """End-of-session clear: drop all orders and reset a catalog to empty slots."""
    session = get_session()
    deleted = account_service.clear_orders(session, json_body().get('catalog_id') or None)
    current_app.logger.info(f"Session cleared ({deleted} orders)")
    return jsonify({'status': 'ok', 'deleted': deleted})


@orders_bp.route('/export.csv', methods=['GET'])
def export_csv() -> Response:
    """Download orders as CSV; counts one export against the free tier."""
    session = get_session()
    orders = _filtered_orders(session)
    text = order_service.export_csv(session, orders, current_app.config)

    filename = order_service.default_csv_filename(datetime.now())
    return Response(
        text,
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename={filename}'}
    )
