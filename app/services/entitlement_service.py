"""
Entitlement service for free/pro usage accounting.
Wraps an AppUser record and decides whether new orders and exports are allowed.
"""

import logging
import threading
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import object_session

from app.models import AppUser

logger = logging.getLogger(__name__)

FREE_ORDER_LIMIT = 20
FREE_EXPORT_LIMIT = 10

# Shared by every tracker in the process
_usage_lock = threading.RLock()


class EntitlementTracker:
    """
    Free-tier counters and limit checks for one account.

    ``can_add_order``/``record_order_added`` (and the export pair) follow a
    check-then-act contract: the record methods increment unconditionally.
    ``reserve_order``/``reserve_export`` check and count in one step. For a
    user bound to a session this is a conditional UPDATE, so concurrent
    requests and worker processes cannot both take the last free slot.
    """

    def __init__(self, user: AppUser, order_limit: int = FREE_ORDER_LIMIT,
                 export_limit: int = FREE_EXPORT_LIMIT, lock: Optional[threading.RLock] = None):
        self.user = user
        self.order_limit = order_limit
        self.export_limit = export_limit
        self._lock = lock or _usage_lock

    @classmethod
    def from_config(cls, user: AppUser, config) -> 'EntitlementTracker':
        return cls(
            user,
            order_limit=config.get('FREE_ORDER_LIMIT', FREE_ORDER_LIMIT),
            export_limit=config.get('FREE_EXPORT_LIMIT', FREE_EXPORT_LIMIT),
        )

    # Read-only signals

    @property
    def is_pro(self) -> bool:
        return bool(self.user.is_pro)

    @property
    def orders_used(self) -> int:
        return self.user.orders_used or 0

    @property
    def exports_used(self) -> int:
        return self.user.exports_used or 0

    def can_add_order(self) -> bool:
        return self.is_pro or self.orders_used < self.order_limit

    def can_export(self) -> bool:
        return self.is_pro or self.exports_used < self.export_limit

    def remaining_free_orders(self) -> int:
        return max(0, self.order_limit - self.orders_used)

    def remaining_free_exports(self) -> int:
        return max(0, self.export_limit - self.exports_used)

    # Mutations

    def record_order_added(self) -> None:
        with self._lock:
            self.user.orders_used = self.orders_used + 1

    def record_export(self) -> None:
        with self._lock:
            self.user.exports_used = self.exports_used + 1

    def _reserve(self, counter: str, limit: int) -> bool:
        """
        Check ``counter`` against ``limit`` and increment it in one step.

        The increment is part of the caller's transaction; a rollback
        releases the reservation.
        """
        with self._lock:
            session = object_session(self.user)
            if session is None:
                if not self.is_pro and (getattr(self.user, counter) or 0) >= limit:
                    return False
                setattr(self.user, counter, (getattr(self.user, counter) or 0) + 1)
                return True

            session.flush()
            column = getattr(AppUser, counter)
            updated = session.query(AppUser).filter(
                AppUser.id == self.user.id,
                or_(AppUser.is_pro.is_(True), column < limit)
            ).update({column: column + 1}, synchronize_session=False)
            session.expire(self.user, ['is_pro', counter])
            return updated == 1

    def reserve_order(self) -> bool:
        """Atomically check the order cap and count one order."""
        if not self._reserve('orders_used', self.order_limit):
            logger.warning(f"Order limit reached for user {self.user.id} ({self.orders_used}/{self.order_limit})")
            return False
        return True

    def reserve_export(self) -> bool:
        """Atomically check the export cap and count one export."""
        if not self._reserve('exports_used', self.export_limit):
            logger.warning(f"Export limit reached for user {self.user.id} ({self.exports_used}/{self.export_limit})")
            return False
        return True

    def upgrade_to_pro(self) -> None:
        # Counters are kept for history
        with self._lock:
            self.user.is_pro = True
        logger.info(f"User {self.user.id} upgraded to Pro")

    def downgrade_to_free(self) -> None:
        with self._lock:
            self.user.is_pro = False
        logger.info(f"User {self.user.id} downgraded to free plan")

    def reset_all_usage(self, clear_pro: bool = False) -> None:
        """Zero both counters; only an account deletion also clears Pro."""
        with self._lock:
            self.user.orders_used = 0
            self.user.exports_used = 0
            if clear_pro:
                self.user.is_pro = False
        logger.info(f"Usage counters reset for user {self.user.id} (clear_pro={clear_pro})")

    def snapshot(self) -> dict:
        return {
            'is_pro': self.is_pro,
            'orders_used': self.orders_used,
            'exports_used': self.exports_used,
            'order_limit': self.order_limit,
            'export_limit': self.export_limit,
            'can_add_order': self.can_add_order(),
            'can_export': self.can_export(),
            'remaining_free_orders': self.remaining_free_orders(),
            'remaining_free_exports': self.remaining_free_exports(),
        }


def get_or_create_current_user(session, default_currency: str = 'USD ($)') -> AppUser:
    """
    Get the local seller account, creating it on first use.

    Args:
        session: SQLAlchemy session
        default_currency: Currency label for a new account

    Returns:
        AppUser
    """
    user = session.query(AppUser).order_by(AppUser.id.asc()).first()
    if user:
        return user

    user = AppUser(currency=default_currency)
    session.add(user)
    session.flush()
    logger.info(f"Created local account {user.id}")
    return user


def lock_current_user(session, default_currency: str = 'USD ($)') -> AppUser:
    """Load the account row with FOR UPDATE so counter changes serialize across workers."""
    user = get_or_create_current_user(session, default_currency)
    return session.query(AppUser).filter(AppUser.id == user.id).with_for_update().one()
