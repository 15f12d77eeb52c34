"""
Integration tests for order entry, status edits and CSV export.
"""
import pytest

from app.models import AppUser, Order, Product


def _create(client, product_id, **overrides):
    body = {'product_id': product_id, 'buyer_name': 'Sam', 'quantity': 1}
    body.update(overrides)
    return client.post('/orders/', json=body)


def _set_usage(session, **values):
    user = session.query(AppUser).one()
    for key, value in values.items():
        setattr(user, key, value)
    session.commit()


class TestCreateOrder:
    """Tests for POST /orders/."""

    def test_create_order_snapshots_product(self, client, session, product_id):
        response = _create(client, product_id, quantity=2, phone_number='(555) 123-4567')

        assert response.status_code == 201
        data = response.get_json()
        assert data['product_name'] == 'Candle'
        assert data['quantity'] == 2
        assert data['price_per_unit'] == 10.0
        assert data['total_price'] == 20.0
        assert data['payment_status'] == 'Unset'
        assert data['order_source'] == 'Live Stream'
        assert data['platform']['name'] == 'TikTok'

    def test_create_order_decrements_stock(self, client, session, product_id):
        _create(client, product_id, quantity=2)
        assert session.query(Product).filter(Product.id == product_id).one().stock == 3

    def test_stock_floored_at_zero(self, client, session, product_id):
        _create(client, product_id, quantity=9)
        assert session.query(Product).filter(Product.id == product_id).one().stock == 0

    def test_create_order_counts_usage(self, client, session, product_id):
        _create(client, product_id)
        _create(client, product_id)
        assert session.query(AppUser).one().orders_used == 2

    def test_discounted_price_snapshot(self, client, session, product_id):
        product = session.query(Product).filter(Product.id == product_id).one()
        product.discount_type = 'Amount'
        product.discount_value = 2.5
        session.commit()

        data = _create(client, product_id).get_json()
        assert data['price_per_unit'] == 7.5
        assert data['was_discounted'] is True

    def test_selected_platform_and_source(self, client, session, product_id):
        instagram = client.get('/platforms/').get_json()['platforms'][1]
        data = _create(client, product_id, platform_id=instagram['id'], order_source='Instagram DM').get_json()
        assert data['platform']['name'] == 'Instagram'
        assert data['order_source'] == 'Instagram DM'

    def test_free_limit_reached(self, client, session, product_id):
        _set_usage(session, orders_used=20)

        response = _create(client, product_id)
        assert response.status_code == 402
        data = response.get_json()
        assert data['status'] == 'error'
        assert data['kind'] == 'orders'
        assert session.query(Order).count() == 0
        assert session.query(Product).filter(Product.id == product_id).one().stock == 5

    def test_pro_has_no_limit(self, client, session, product_id):
        _set_usage(session, orders_used=20, is_pro=True)
        assert _create(client, product_id).status_code == 201

    def test_empty_product_rejected(self, client, empty_product_id):
        assert _create(client, empty_product_id).status_code == 400

    def test_unknown_product(self, client, session):
        assert _create(client, 'NOPE').status_code == 404

    @pytest.mark.parametrize('quantity', [0, -1, 'two'])
    def test_invalid_quantity(self, client, product_id, quantity):
        assert _create(client, product_id, quantity=quantity).status_code == 400

    def test_unknown_order_source(self, client, session, product_id):
        assert _create(client, product_id, order_source='Pigeon').status_code == 400
        assert session.query(AppUser).one().orders_used == 0


class TestOrderStatus:
    """Tests for payment status and fulfillment edits."""

    def test_payment_status_cycles(self, client, product_id):
        order_id = _create(client, product_id).get_json()['id']

        statuses = [
            client.post(f'/orders/{order_id}/payment-status').get_json()['payment_status']
            for _ in range(3)
        ]
        assert statuses == ['Pending', 'Paid', 'Unset']

    def test_payment_status_set(self, client, product_id):
        order_id = _create(client, product_id).get_json()['id']
        data = client.post(f'/orders/{order_id}/payment-status', json={'status': 'Paid'}).get_json()
        assert data['payment_status'] == 'Paid'
        assert data['is_paid'] is True

    def test_payment_status_invalid(self, client, product_id):
        order_id = _create(client, product_id).get_json()['id']
        response = client.post(f'/orders/{order_id}/payment-status', json={'status': 'Refunded'})
        assert response.status_code == 400

    def test_fulfillment_toggle_and_set(self, client, product_id):
        order_id = _create(client, product_id).get_json()['id']
        assert client.post(f'/orders/{order_id}/fulfillment').get_json()['is_fulfilled'] is True
        assert client.post(f'/orders/{order_id}/fulfillment').get_json()['is_fulfilled'] is False
        data = client.post(f'/orders/{order_id}/fulfillment', json={'fulfilled': True}).get_json()
        assert data['is_fulfilled'] is True

    def test_unknown_order(self, client, session):
        assert client.post('/orders/NOPE/payment-status').status_code == 404
        assert client.get('/orders/NOPE').status_code == 404


class TestDeleteOrder:
    """Tests for DELETE /orders/<id>."""

    def test_delete_restores_stock(self, client, session, product_id):
        order_id = _create(client, product_id, quantity=3).get_json()['id']

        response = client.delete(f'/orders/{order_id}')
        assert response.status_code == 200
        assert session.query(Order).count() == 0
        assert session.query(Product).filter(Product.id == product_id).one().stock == 5

    def test_delete_keeps_usage(self, client, session, product_id):
        order_id = _create(client, product_id).get_json()['id']
        client.delete(f'/orders/{order_id}')
        assert session.query(AppUser).one().orders_used == 1


class TestListOrders:
    """Tests for GET /orders/ and the session clear."""

    def test_list_newest_first(self, client, product_id):
        first = _create(client, product_id, buyer_name='First').get_json()['id']
        second = _create(client, product_id, buyer_name='Second').get_json()['id']

        data = client.get('/orders/').get_json()
        assert data['count'] == 2
        assert [o['id'] for o in data['orders']] == [second, first]
        assert data['total_revenue'] == 20.0

    def test_filter_by_platform(self, client, product_id):
        facebook = client.get('/platforms/').get_json()['platforms'][2]
        _create(client, product_id)
        _create(client, product_id, platform_id=facebook['id'])

        data = client.get(f"/orders/?platform_id={facebook['id']}").get_json()
        assert data['count'] == 1
        assert data['orders'][0]['platform']['name'] == 'Facebook'

    def test_clear_orders(self, client, session, product_id, catalog_id):
        _create(client, product_id)
        response = client.post('/orders/clear', json={'catalog_id': catalog_id})

        assert response.get_json()['deleted'] == 1
        assert session.query(Order).count() == 0
        catalog = client.get(f'/catalogs/{catalog_id}').get_json()
        assert len(catalog['products']) == 4
        assert catalog['configured_count'] == 0


class TestCsvExport:
    """Tests for GET /orders/export.csv."""

    def test_export_csv(self, client, session, product_id):
        _create(client, product_id, buyer_name='SN-42', address='1 Main St, Austin')

        response = client.get('/orders/export.csv')
        assert response.status_code == 200
        assert response.mimetype == 'text/csv'
        assert 'attachment; filename=LiveSales_' in response.headers['Content-Disposition']

        lines = response.get_data(as_text=True).splitlines()
        assert lines[0].startswith('Order ID,Product,Buyer')
        assert len(lines) == 2
        fields = lines[1].split(',')
        assert fields[2] == '42'
        assert fields[4] == '1 Main St; Austin'
        assert fields[8] == '10.00'
        assert fields[11] == 'No'

        assert session.query(AppUser).one().exports_used == 1

    def test_export_limit_reached(self, client, session):
        _set_usage(session, exports_used=10)

        response = client.get('/orders/export.csv')
        assert response.status_code == 402
        assert response.get_json()['kind'] == 'exports'
        assert session.query(AppUser).one().exports_used == 10

    def test_pro_exports_unlimited(self, client, session):
        _set_usage(session, exports_used=10, is_pro=True)
        assert client.get('/orders/export.csv').status_code == 200
