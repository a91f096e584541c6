"""
Checkout blueprint - cart operations for the dialog cart and the barcode till.

The cart of each mode is kept in the Flask session under ``cart_<mode>``.
"""
from flask import Blueprint, jsonify, session, g, render_template, current_app

from pdv.container import get_container
from pdv.database import utcnow
from pdv.exceptions import NotFoundError
from pdv.middleware import require_login
from pdv.services.checkout_service import Cart, CHECKOUT_MODES
from pdv.services.receipt_service import receipt_from_cart
from pdv.utils.responses import request_data, result_response

checkout_bp = Blueprint('checkout', __name__, url_prefix='/checkout')


def _session_key(mode: str) -> str:
    return f'cart_{mode}'


def _load_cart(mode: str) -> Cart:
    if mode not in CHECKOUT_MODES:
        raise NotFoundError(f'Modo de venda inválido: {mode}')
    return Cart.from_dict(session.get(_session_key(mode)), mode=mode)


def _save_cart(cart: Cart) -> None:
    session[_session_key(cart.mode)] = cart.to_dict()
    session.modified = True


def _respond(cart: Cart, result):
    _save_cart(cart)
    return result_response(result, cart=cart.to_view())


@checkout_bp.route('/<mode>/')
@require_login
def view_cart(mode):
    """Current cart; in till mode also resets a finished sale once the delay has passed."""
    cart = _load_cart(mode)
    get_container().checkout().poll(cart)
    _save_cart(cart)
    return jsonify({'status': 'success', 'cart': cart.to_view()})


@checkout_bp.route('/<mode>/add', methods=['POST'])
@require_login
def add_product(mode):
    cart = _load_cart(mode)
    data = request_data()
    try:
        product_id = int(data.get('product_id'))
    except (TypeError, ValueError):
        raise NotFoundError('Produto não informado')
    return _respond(cart, get_container().checkout().add_product(cart, product_id))


@checkout_bp.route('/<mode>/scan', methods=['POST'])
@require_login
def scan(mode):
    cart = _load_cart(mode)
    barcode = (request_data().get('barcode') or '').strip()
    return _respond(cart, get_container().checkout().add_by_barcode(cart, barcode))


@checkout_bp.route('/<mode>/items/<int:product_id>/increment', methods=['POST'])
@require_login
def increment(mode, product_id):
    cart = _load_cart(mode)
    return _respond(cart, get_container().checkout().increment(cart, product_id))


@checkout_bp.route('/<mode>/items/<int:product_id>/decrement', methods=['POST'])
@require_login
def decrement(mode, product_id):
    cart = _load_cart(mode)
    return _respond(cart, get_container().checkout().decrement(cart, product_id))


@checkout_bp.route('/<mode>/items/<int:product_id>/quantity', methods=['POST'])
@require_login
def set_quantity(mode, product_id):
    cart = _load_cart(mode)
    quantity = request_data().get('quantity')
    return _respond(cart, get_container().checkout().set_quantity(cart, product_id, quantity))


@checkout_bp.route('/<mode>/items/<int:product_id>/remove', methods=['POST'])
@require_login
def remove(mode, product_id):
    cart = _load_cart(mode)
    return _respond(cart, get_container().checkout().remove(cart, product_id))


@checkout_bp.route('/<mode>/payment-method', methods=['POST'])
@require_login
def set_payment_method(mode):
    cart = _load_cart(mode)
    method = request_data().get('payment_method')
    return _respond(cart, get_container().checkout().set_payment_method(cart, method))


@checkout_bp.route('/<mode>/customer', methods=['POST'])
@require_login
def set_customer(mode):
    cart = _load_cart(mode)
    customer_id = request_data().get('customer_id')
    return _respond(cart, get_container().checkout().set_customer(cart, customer_id))


@checkout_bp.route('/<mode>/notes', methods=['POST'])
@require_login
def set_notes(mode):
    cart = _load_cart(mode)
    return _respond(cart, get_container().checkout().set_notes(cart, request_data().get('notes')))


@checkout_bp.route('/<mode>/finalize', methods=['POST'])
@require_login
def finalize(mode):
    cart = _load_cart(mode)
    result = get_container().checkout().finalize(cart, g.user_id)
    _save_cart(cart)
    if result.ok:
        current_app.logger.info(f"Venda {result.data.id} finalizada por user_id={g.user_id} ({mode})")
    return result_response(
        result,
        cart=cart.to_view(),
        sale=result.data.to_dict() if result.ok else None,
    )


@checkout_bp.route('/<mode>/reset', methods=['POST'])
@require_login
def reset(mode):
    cart = _load_cart(mode)
    return _respond(cart, get_container().checkout().reset(cart))


@checkout_bp.route('/<mode>/receipt')
@require_login
def receipt(mode):
    """Printable receipt (HTML) for the cart on screen."""
    cart = _load_cart(mode)
    if cart.is_empty:
        return jsonify({'status': 'error', 'message': 'O carrinho está vazio.'}), 400
    context = receipt_from_cart(
        cart, current_app.config['BUSINESS_NAME'], current_app.config['APP_TIMEZONE'],
        utcnow(), operator=g.user.full_name,
    )
    return render_template('sales/receipt.html', receipt=context)
