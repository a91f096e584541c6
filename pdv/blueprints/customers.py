"""Customers blueprint - customer records."""
from flask import Blueprint, jsonify, g

from pdv.container import get_container
from pdv.middleware import require_login
from pdv.utils.responses import request_data, result_response

customers_bp = Blueprint('customers', __name__, url_prefix='/customers')


def _serialize(result):
    return result.data.to_dict() if result.ok and result.data is not None else None


@customers_bp.route('/')
@require_login
def list_customers():
    """List all customers ordered by name."""
    result = get_container().customer_store().load()
    if not result.ok:
        return result_response(result)
    return jsonify({'status': 'success', 'customers': [c.to_dict() for c in result.data]})


@customers_bp.route('/', methods=['POST'])
@require_login
def create_customer():
    result = get_container().customer_store().create_customer(request_data(), g.user_id)
    response, status = result_response(result, customer=_serialize(result))
    return response, (201 if result.ok else status)


@customers_bp.route('/<int:customer_id>')
@require_login
def get_customer(customer_id):
    result = get_container().customer_store().get_customer(customer_id)
    return result_response(result, customer=_serialize(result))


@customers_bp.route('/<int:customer_id>/update', methods=['POST'])
@require_login
def update_customer(customer_id):
    result = get_container().customer_store().update_customer(customer_id, request_data())
    return result_response(result, customer=_serialize(result))


@customers_bp.route('/<int:customer_id>/delete', methods=['POST'])
@require_login
def delete_customer(customer_id):
    return result_response(get_container().customer_store().delete_customer(customer_id))
