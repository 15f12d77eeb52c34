"""
Unit tests for free/pro entitlement accounting.
"""

import pytest
from concurrent.futures import ThreadPoolExecutor

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from decimal import Decimal

from app.database import Base
from app.exceptions import LimitReachedError
from app.models import AppUser, Order, Product, ProductCatalog
from app.services import order_service
from app.services.account_service import bootstrap
from app.services.entitlement_service import (
    EntitlementTracker, FREE_ORDER_LIMIT, FREE_EXPORT_LIMIT, get_or_create_current_user
)


@pytest.fixture
def tracker():
    return EntitlementTracker(AppUser())


class TestLimits:
    """Tests for the free-tier caps."""

    def test_default_limits(self):
        assert FREE_ORDER_LIMIT == 20
        assert FREE_EXPORT_LIMIT == 10

    @pytest.mark.parametrize('used, is_pro, expected', [
        (0, False, True),
        (19, False, True),
        (20, False, False),
        (25, False, False),
        (20, True, True),
        (500, True, True),
    ])
    def test_can_add_order(self, used, is_pro, expected):
        tracker = EntitlementTracker(AppUser(orders_used=used, is_pro=is_pro))
        assert tracker.can_add_order() is expected

    def test_can_export(self):
        assert EntitlementTracker(AppUser(exports_used=9)).can_export()
        assert not EntitlementTracker(AppUser(exports_used=10)).can_export()
        assert EntitlementTracker(AppUser(exports_used=10, is_pro=True)).can_export()

    def test_remaining_never_negative(self):
        tracker = EntitlementTracker(AppUser(orders_used=30, exports_used=12))
        assert tracker.remaining_free_orders() == 0
        assert tracker.remaining_free_exports() == 0

    def test_limits_from_config(self):
        tracker = EntitlementTracker.from_config(AppUser(orders_used=2), {'FREE_ORDER_LIMIT': 2})
        assert not tracker.can_add_order()
        assert tracker.export_limit == FREE_EXPORT_LIMIT


class TestCounters:
    """Tests for recording usage."""

    def test_record_then_check(self, tracker):
        for _ in range(FREE_ORDER_LIMIT):
            assert tracker.can_add_order()
            tracker.record_order_added()
        assert not tracker.can_add_order()
        assert tracker.remaining_free_orders() == 0
        assert tracker.user.orders_used == FREE_ORDER_LIMIT

    def test_record_export(self, tracker):
        tracker.record_export()
        tracker.record_export()
        assert tracker.exports_used == 2
        assert tracker.remaining_free_exports() == FREE_EXPORT_LIMIT - 2

    def test_reserve_stops_at_cap(self):
        tracker = EntitlementTracker(AppUser(orders_used=FREE_ORDER_LIMIT - 1))
        assert tracker.reserve_order() is True
        assert tracker.reserve_order() is False
        assert tracker.orders_used == FREE_ORDER_LIMIT

    def test_reserve_export_stops_at_cap(self):
        tracker = EntitlementTracker(AppUser(exports_used=FREE_EXPORT_LIMIT))
        assert tracker.reserve_export() is False
        assert tracker.exports_used == FREE_EXPORT_LIMIT

    def test_concurrent_reservations_never_exceed_cap(self, tracker):
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: tracker.reserve_order(), range(50)))
        assert results.count(True) == FREE_ORDER_LIMIT
        assert tracker.orders_used == FREE_ORDER_LIMIT


class TestPlanChanges:
    """Tests for upgrade, downgrade and resets."""

    def test_upgrade_keeps_counters(self):
        tracker = EntitlementTracker(AppUser(orders_used=20, exports_used=10))
        tracker.upgrade_to_pro()
        assert tracker.is_pro
        assert tracker.can_add_order()
        assert tracker.can_export()
        assert tracker.orders_used == 20

    def test_downgrade_restores_caps(self):
        tracker = EntitlementTracker(AppUser(orders_used=20, is_pro=True))
        tracker.downgrade_to_free()
        assert not tracker.can_add_order()

    def test_reset_keeps_pro_by_default(self):
        tracker = EntitlementTracker(AppUser(orders_used=5, exports_used=3, is_pro=True))
        tracker.reset_all_usage()
        assert (tracker.orders_used, tracker.exports_used) == (0, 0)
        assert tracker.is_pro

    def test_reset_can_clear_pro(self):
        tracker = EntitlementTracker(AppUser(orders_used=5, is_pro=True))
        tracker.reset_all_usage(clear_pro=True)
        assert not tracker.is_pro
        assert tracker.orders_used == 0

    def test_snapshot(self):
        snapshot = EntitlementTracker(AppUser(orders_used=4, exports_used=1)).snapshot()
        assert snapshot['remaining_free_orders'] == 16
        assert snapshot['remaining_free_exports'] == 9
        assert snapshot['can_add_order'] is True
        assert snapshot['is_pro'] is False


class TestCurrentUser:
    """Tests for the persisted local account."""

    def test_get_or_create_is_idempotent(self, session):
        first = get_or_create_current_user(session)
        second = get_or_create_current_user(session)
        assert first.id == second.id
        assert session.query(AppUser).count() == 1


@pytest.fixture
def file_db(tmp_path):
    """Session factory over a file-backed SQLite database holding one free account."""
    engine = create_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine)
    with factory() as setup:
        user = AppUser()
        setup.add(user)
        setup.commit()
        user_id = user.id
    yield factory, user_id
    engine.dispose()


class TestSharedReservations:
    """Reservations through separate sessions respect the cap stored in the database."""

    def test_stale_check_cannot_take_last_slot(self, file_db):
        factory, user_id = file_db
        first, second = factory(), factory()
        try:
            tracker_a = EntitlementTracker(first.get(AppUser, user_id), order_limit=1)
            tracker_b = EntitlementTracker(second.get(AppUser, user_id), order_limit=1)
            assert tracker_a.can_add_order()
            assert tracker_b.can_add_order()

            assert tracker_b.reserve_order() is True
            second.commit()

            assert tracker_a.reserve_order() is False
            first.rollback()
        finally:
            first.close()
            second.close()

        with factory() as check:
            assert check.get(AppUser, user_id).orders_used == 1

    def test_rollback_releases_reservation(self, file_db):
        factory, user_id = file_db
        with factory() as session:
            tracker = EntitlementTracker(session.get(AppUser, user_id), export_limit=1)
            assert tracker.reserve_export() is True
            session.rollback()
            assert tracker.exports_used == 0
            assert tracker.reserve_export() is True
            session.commit()
            assert tracker.reserve_export() is False

    def test_threads_with_own_sessions_never_exceed_cap(self, file_db):
        factory, user_id = file_db

        def reserve(_):
            with factory() as session:
                tracker = EntitlementTracker(session.get(AppUser, user_id), order_limit=5)
                reserved = tracker.reserve_order()
                session.commit()
                return reserved

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(reserve, range(12)))

        assert results.count(True) == 5
        with factory() as check:
            assert check.get(AppUser, user_id).orders_used == 5

    def test_stale_session_cannot_create_order_past_limit(self, file_db):
        factory, _ = file_db
        config = {'FREE_ORDER_LIMIT': 1}
        with factory() as setup:
            bootstrap(setup)
            catalog = ProductCatalog(name='Live', products=[Product(name='Candle', price=Decimal('10'), stock=5)])
            setup.add(catalog)
            setup.commit()
            product_id = catalog.products[0].id

        first, second = factory(), factory()
        try:
            # Both sessions have already seen the account with no orders used
            assert second.query(AppUser).one().orders_used == 0
            order_service.create_order(first, product_id, 'Sam', config=config)

            with pytest.raises(LimitReachedError):
                order_service.create_order(second, product_id, 'Alex', config=config)
        finally:
            first.close()
            second.close()

        with factory() as check:
            assert check.query(Order).count() == 1
            assert check.query(AppUser).one().orders_used == 1
