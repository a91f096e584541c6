"""
Integration tests for the product store (barcode lookup outcomes, CRUD results).
"""

from decimal import Decimal


class TestBarcodeLookup:

    def test_unknown_code_is_not_found(self, session, container, product_x):
        result = container.product_store().get_product_by_barcode('0000000000000')

        assert not result.ok
        assert result.outcome == 'not_found'
        assert result.status_code == 404
        assert result.notification.title == 'Produto não encontrado'

    def test_product_without_stock_is_out_of_stock(self, session, container, product_out_of_stock):
        result = container.product_store().get_product_by_barcode('7890000000035')

        assert not result.ok
        assert result.outcome == 'out_of_stock'
        assert result.status_code == 409
        assert 'sem estoque' in result.notification.description

    def test_found_product(self, session, container, product_x):
        result = container.product_store().get_product_by_barcode('7890000000011')

        assert result.ok
        assert result.data.id == product_x.id

    def test_inactive_product_is_not_found(self, session, container, product_x):
        container.product_service.update_product(product_x.id, {'active': False})
        result = container.product_store().get_product_by_barcode('7890000000011')
        assert result.outcome == 'not_found'


class TestProductEdits:

    def test_create_product_result(self, session, container):
        store = container.product_store()
        result = store.create_product({'name': 'Rímel', 'price': '29,90', 'cost': '12.00', 'stock_quantity': 4})

        assert result.ok
        assert result.notification.title == 'Produto criado!'
        assert result.data.price == Decimal('29.90')
        assert store.items == [result.data]

    def test_invalid_product_returns_failure(self, session, container):
        result = container.product_store().create_product({'name': '', 'price': '10'})

        assert not result.ok
        assert result.status_code == 400
        assert result.notification.variant == 'destructive'

    def test_negative_stock_is_rejected(self, session, container, product_x):
        result = container.product_store().update_stock(product_x.id, -1)
        assert not result.ok

    def test_low_stock_lists_products_at_or_below_minimum(self, session, container,
                                                          product_x, product_out_of_stock):
        result = container.product_store().low_stock()
        assert [p.name for p in result.data] == ['Base Líquida']
