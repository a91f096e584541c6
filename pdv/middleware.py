"""Middleware for authentication and role checks."""
from functools import wraps
from flask import session, g, current_app

from pdv.exceptions import AuthenticationRequiredError, UnauthorizedError


def load_user():
    """
    Load the current operator into g (Flask's per-request global).

    Called before each request. Sets g.user and g.user_id when the session
    holds the id of an active profile; a stale id is dropped from the session.
    """
    g.user = None
    g.user_id = None

    user_id = session.get('user_id')
    if not user_id:
        return

    from pdv.container import get_container
    user = get_container().auth_service.get_current_user(user_id)
    if user:
        g.user = user
        g.user_id = user.id
    else:
        current_app.logger.info(f"Sessão descartada: usuário {user_id} inexistente ou inativo")
        session.pop('user_id', None)


def require_login(f):
    """Decorator: require an authenticated operator (401 JSON otherwise)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            raise AuthenticationRequiredError()
        return f(*args, **kwargs)
    return decorated_function


def require_admin(f):
    """
    Decorator: require the 'admin' role.

    Must be used AFTER require_login.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not g.user.is_admin:
            current_app.logger.warning(f"Acesso negado (admin) para user_id={g.user.id}")
            raise UnauthorizedError('Apenas administradores podem realizar esta ação')
        return f(*args, **kwargs)
    return decorated_function
