"""Analytics blueprint - dashboard summary and statistics."""
from datetime import datetime

from flask import Blueprint, Response, current_app, jsonify, request

from app.database import get_session
from app.services import analytics_service, order_service
from app.services.entitlement_service import get_or_create_current_user
from app.utils.request_args import parse_datetime_arg, parse_int

analytics_bp = Blueprint('analytics', __name__, url_prefix='/analytics')


@analytics_bp.route('/summary')
def summary() -> Response:
    """
    Dashboard metrics for one filter selection.

    Query params:
        period: today | week | month | custom (default: today)
        start, end: ISO dates for custom; a date-only end covers the whole day
        platform_id: restrict to one platform
        discount: all | with | without
        product: product name, repeatable
        limit: number of top products (default: TOP_PRODUCTS_LIMIT)
    """
    session = get_session()
    now = datetime.now()

    period = analytics_service.Period.parse(request.args.get('period', 'today'))
    custom_range = None
    if period == analytics_service.Period.CUSTOM:
        start = parse_datetime_arg(request.args.get('start'), 'start')
        end = parse_datetime_arg(request.args.get('end'), 'end', end_of_day=True)
        if start and end:
            custom_range = (start, end)

    data = analytics_service.build_summary(
        order_service.list_orders(session),
        period,
        now,
        custom_range=custom_range,
        platform_id=request.args.get('platform_id') or None,
        discount=request.args.get('discount', 'all'),
        product_names=request.args.getlist('product'),
        top_limit=parse_int(
            request.args.get('limit'), 'limit',
            default=current_app.config.get('TOP_PRODUCTS_LIMIT', 5), minimum=0
        ),
    )

    user = get_or_create_current_user(session, current_app.config.get('DEFAULT_CURRENCY', 'USD ($)'))
    data['currency_symbol'] = user.currency_symbol
    return jsonify(data)


@analytics_bp.route('/stats')
def stats() -> Response:
    """Today / this week / this month totals and best day of the month."""
    session = get_session()
    return jsonify(analytics_service.build_stats(order_service.list_orders(session), datetime.now()))
