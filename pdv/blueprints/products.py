"""Products blueprint - catalog CRUD, barcode lookup and stock edits."""
from flask import Blueprint, jsonify, request

from pdv.container import get_container
from pdv.middleware import require_login
from pdv.utils.responses import request_data, result_response

products_bp = Blueprint('products', __name__, url_prefix='/products')


def _serialize(result):
    return result.data.to_dict() if result.ok and result.data is not None else None


@products_bp.route('/')
@require_login
def list_products():
    """List products ordered by name (active only unless ?include_inactive=1)."""
    store = get_container().product_store()
    result = store.load(include_inactive=request.args.get('include_inactive') == '1')
    if not result.ok:
        return result_response(result)
    return jsonify({'status': 'success', 'products': [p.to_dict() for p in result.data]})


@products_bp.route('/', methods=['POST'])
@require_login
def create_product():
    result = get_container().product_store().create_product(request_data())
    response, status = result_response(result, product=_serialize(result))
    return response, (201 if result.ok else status)


@products_bp.route('/low-stock')
@require_login
def low_stock():
    result = get_container().product_store().low_stock()
    if not result.ok:
        return result_response(result)
    return jsonify({'status': 'success', 'products': [p.to_dict() for p in result.data]})


@products_bp.route('/barcode/<path:code>')
@require_login
def get_by_barcode(code):
    """Till lookup: outcome 'not_found' (404), 'out_of_stock' (409) or the product."""
    result = get_container().product_store().get_product_by_barcode(code)
    return result_response(result, product=_serialize(result))


@products_bp.route('/<int:product_id>')
@require_login
def get_product(product_id):
    result = get_container().product_store().get_product(product_id)
    return result_response(result, product=_serialize(result))


@products_bp.route('/<int:product_id>/update', methods=['POST'])
@require_login
def update_product(product_id):
    result = get_container().product_store().update_product(product_id, request_data())
    return result_response(result, product=_serialize(result))


@products_bp.route('/<int:product_id>/delete', methods=['POST'])
@require_login
def delete_product(product_id):
    return result_response(get_container().product_store().delete_product(product_id))


@products_bp.route('/<int:product_id>/stock', methods=['POST'])
@require_login
def update_stock(product_id):
    data = request_data()
    result = get_container().product_store().update_stock(product_id, data.get('stock_quantity'))
    return result_response(result, product=_serialize(result))
