"""
Integration tests for the checkout endpoints (dialog cart and barcode till).
"""

from pdv.models import Product, Sale


def stock_of(session, product_id):
    session.expire_all()
    return session.get(Product, product_id).stock_quantity


class TestDialogCheckout:

    def test_full_sale_decrements_stock(self, auth_client, session, vendedor, product_x, product_y):
        x_id, y_id, vendedor_id = product_x.id, product_y.id, vendedor.id

        auth_client.post('/checkout/dialog/add', json={'product_id': x_id})
        auth_client.post(f'/checkout/dialog/items/{x_id}/increment')
        response = auth_client.post('/checkout/dialog/add', json={'product_id': y_id})
        cart = response.json['cart']
        assert cart['state'] == 'building'
        assert cart['subtotal'] == '45.00'
        assert cart['total_cost'] == '27.00'
        assert cart['profit'] == '18.00'

        auth_client.post('/checkout/dialog/payment-method', json={'payment_method': 'pix'})
        response = auth_client.post('/checkout/dialog/finalize')

        assert response.status_code == 200
        assert response.json['notification']['title'] == 'Venda finalizada!'
        assert response.json['cart']['state'] == 'empty'
        assert response.json['cart']['items'] == []
        sale = response.json['sale']
        assert sale['total_amount'] == '45.00'
        assert sale['payment_method'] == 'pix'
        assert sale['sold_by'] == vendedor_id
        assert stock_of(session, x_id) == 8
        assert stock_of(session, y_id) == 4

    def test_finalize_empty_cart(self, auth_client, session):
        response = auth_client.post('/checkout/dialog/finalize')

        assert response.status_code == 400
        assert response.json['outcome'] == 'empty_cart'
        assert session.query(Sale).count() == 0

    def test_quantity_beyond_stock_is_rejected(self, auth_client, product_y):
        y_id = product_y.id
        auth_client.post('/checkout/dialog/add', json={'product_id': y_id})
        response = auth_client.post(f'/checkout/dialog/items/{y_id}/quantity', json={'quantity': 6})

        assert response.status_code == 409
        assert response.json['outcome'] == 'insufficient_stock'
        assert response.json['cart']['items'][0]['quantity'] == 1

    def test_stock_sold_elsewhere_fails_the_sale(self, auth_client, session, product_y):
        y_id = product_y.id
        auth_client.post('/checkout/dialog/add', json={'product_id': y_id})
        auth_client.post(f'/checkout/dialog/items/{y_id}/quantity', json={'quantity': 3})

        # Another till sells part of the stock meanwhile
        session.get(Product, y_id).stock_quantity = 2
        session.commit()

        response = auth_client.post('/checkout/dialog/finalize')
        assert response.status_code == 409
        assert response.json['cart']['state'] == 'failed'
        assert session.query(Sale).count() == 0
        assert stock_of(session, y_id) == 2

    def test_unknown_mode(self, auth_client):
        assert auth_client.get('/checkout/balcao/').status_code == 404

    def test_requires_login(self, client):
        assert client.post('/checkout/dialog/finalize').status_code == 401


class TestTillCheckout:

    def test_scan_outcomes(self, auth_client, product_x, product_out_of_stock):
        missing = auth_client.post('/checkout/till/scan', json={'barcode': '0000'})
        empty = auth_client.post('/checkout/till/scan', json={'barcode': '7890000000035'})
        found = auth_client.post('/checkout/till/scan', json={'barcode': '7890000000011'})

        assert missing.json['outcome'] == 'not_found'
        assert empty.json['outcome'] == 'out_of_stock'
        assert found.status_code == 200
        assert found.json['cart']['last_item']['name'] == 'Batom Matte'
        assert found.json['cart']['item_count'] == 1

    def test_completed_sale_stays_on_screen_until_next_scan(self, auth_client, session, product_x, product_y):
        auth_client.post('/checkout/till/scan', json={'barcode': '7890000000011'})
        response = auth_client.post('/checkout/till/finalize')

        assert response.json['cart']['state'] == 'completed'
        assert response.json['cart']['items'][0]['name'] == 'Batom Matte'
        assert response.json['cart']['last_sale']['total_amount'] == '10.00'

        again = auth_client.post('/checkout/till/finalize')
        assert again.json['outcome'] == 'already_completed'
        assert session.query(Sale).count() == 1

        response = auth_client.post('/checkout/till/scan', json={'barcode': '7890000000028'})
        cart = response.json['cart']
        assert cart['state'] == 'building'
        assert [i['name'] for i in cart['items']] == ['Perfume Floral']

    def test_cart_receipt(self, auth_client, product_x):
        auth_client.post('/checkout/till/scan', json={'barcode': '7890000000011'})
        response = auth_client.get('/checkout/till/receipt')

        assert response.status_code == 200
        html = response.get_data(as_text=True)
        assert 'SIMPLY COSMÉTICOS' in html
        assert 'Batom Matte x1' in html
        assert 'Maria Vendedora' in html

    def test_receipt_of_empty_cart(self, auth_client, session):
        assert auth_client.get('/checkout/till/receipt').status_code == 400

    def test_edit_after_completion_does_not_revive_sold_cart(self, auth_client, session, product_x):
        x_id = product_x.id
        auth_client.post('/checkout/till/scan', json={'barcode': '7890000000011'})
        assert auth_client.post('/checkout/till/finalize').status_code == 200

        response = auth_client.post(f'/checkout/till/items/{x_id}/increment')
        assert response.json['cart']['state'] == 'empty'
        assert response.json['cart']['items'] == []

        auth_client.post('/checkout/till/scan', json={'barcode': '7890000000011'})
        response = auth_client.post('/checkout/till/finalize')

        assert response.status_code == 200
        assert response.json['cart']['state'] == 'completed'
        assert session.query(Sale).count() == 2
        assert stock_of(session, x_id) == 8


class TestCartCustomer:

    def test_known_customer(self, auth_client, customer):
        customer_id = customer.id
        response = auth_client.post('/checkout/dialog/customer', json={'customer_id': customer_id})

        assert response.status_code == 200
        assert response.json['cart']['customer_id'] == customer_id

    def test_unknown_customer_is_rejected(self, auth_client, session, product_x):
        auth_client.post('/checkout/dialog/add', json={'product_id': product_x.id})
        response = auth_client.post('/checkout/dialog/customer', json={'customer_id': 999})

        assert response.status_code == 400
        assert response.json['cart']['customer_id'] is None
        assert auth_client.post('/checkout/dialog/finalize').status_code == 200
