"""Authentication blueprint - login, logout, registration."""
from flask import Blueprint, jsonify, session, g, current_app
from flask_wtf.csrf import generate_csrf

from pdv.container import get_container
from pdv.middleware import require_login
from pdv.models import UserRole
from pdv.utils.responses import request_data, result_response

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


@auth_bp.route('/csrf-token')
def csrf_token():
    """Token for JSON clients (sent back in the X-CSRFToken header)."""
    return jsonify({'csrf_token': generate_csrf()})


@auth_bp.route('/login', methods=['POST'])
def login():
    data = request_data()
    store = get_container().auth_store(session)
    result = store.login(data.get('email', ''), data.get('password', ''))
    if not result.ok:
        return result_response(result)
    return result_response(result, user=result.data.to_dict())


@auth_bp.route('/logout', methods=['POST'])
@require_login
def logout():
    store = get_container().auth_store(session)
    return result_response(store.logout())


@auth_bp.route('/register', methods=['POST'])
def register():
    """
    Register an operator. Anyone may register a 'vendedor'; only a logged-in
    admin may choose another role.
    """
    data = request_data()
    role = UserRole.VENDEDOR.value
    if g.get('user') is not None and g.user.is_admin and data.get('role'):
        role = data['role']

    if data.get('password_confirm') is not None and data.get('password') != data.get('password_confirm'):
        return jsonify({'status': 'error', 'message': 'As senhas não conferem'}), 400

    store = get_container().auth_store(session)
    result = store.register(
        data.get('email', ''), data.get('password', ''), data.get('full_name'), role,
    )
    if not result.ok:
        return result_response(result)

    current_app.logger.info(f"Novo usuário registrado: {result.data.email}")
    return result_response(result, user=result.data.to_dict())


@auth_bp.route('/me')
@require_login
def me():
    return jsonify({'status': 'success', 'user': g.user.to_dict()})
