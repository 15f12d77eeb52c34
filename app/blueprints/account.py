"""Account blueprint - entitlement signals, plan changes and data wipe."""
from flask import Blueprint, Response, current_app, jsonify

from app.database import get_session
from app.services import account_service
from app.services.entitlement_service import EntitlementTracker, lock_current_user

account_bp = Blueprint('account', __name__, url_prefix='/account')


def _account_payload(user, tracker: EntitlementTracker) -> dict:
    data = tracker.snapshot()
    data.update(
        id=user.id,
        name=user.name,
        company_name=user.company_name,
        currency=user.currency,
        currency_symbol=user.currency_symbol,
    )
    return data


def _tracker(session):
    user = lock_current_user(session, current_app.config.get('DEFAULT_CURRENCY', 'USD ($)'))
    return user, EntitlementTracker.from_config(user, current_app.config)


@account_bp.route('/', methods=['GET'])
def detail() -> Response:
    session = get_session()
    user, tracker = _tracker(session)
    return jsonify(_account_payload(user, tracker))


@account_bp.route('/upgrade', methods=['POST'])
def upgrade() -> Response:
    """Unlock unlimited orders and exports once the purchase has been verified."""
    session = get_session()
    try:
        user, tracker = _tracker(session)
        tracker.upgrade_to_pro()
        session.commit()
    except Exception:
        session.rollback()
        raise
    return jsonify(_account_payload(user, tracker))


@account_bp.route('/downgrade', methods=['POST'])
def downgrade() -> Response:
    session = get_session()
    try:
        user, tracker = _tracker(session)
        tracker.downgrade_to_free()
        session.commit()
    except Exception:
        session.rollback()
        raise
    return jsonify(_account_payload(user, tracker))


@account_bp.route('/delete-data', methods=['POST'])
def delete_data() -> Response:
    """Wipe orders, catalogs and custom platforms and reset the account."""
    session = get_session()
    user = account_service.delete_all_data(session, current_app.config)
    current_app.logger.warning(f"Account {user.id} data deleted via API")
    return jsonify(_account_payload(user, EntitlementTracker.from_config(user, current_app.config)))
