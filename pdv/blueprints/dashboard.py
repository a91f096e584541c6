"""Dashboard blueprint - headline figures."""
from decimal import Decimal

from flask import Blueprint, jsonify, current_app

from pdv.container import get_container
from pdv.database import utcnow
from pdv.exceptions import PdvError
from pdv.middleware import require_login

dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/dashboard')


@dashboard_bp.route('/')
@require_login
def index():
    """Total and today's sales, sales count, profit, product and low-stock counts."""
    try:
        stats = get_container().report_service.get_dashboard(utcnow())
    except PdvError as e:
        current_app.logger.error(f"Erro ao carregar dashboard: {e.message}")
        return jsonify({
            'status': 'error',
            'notification': {
                'title': 'Erro ao carregar dados',
                'description': e.message,
                'variant': 'destructive',
            },
            'message': e.message,
        }), e.status_code

    return jsonify({
        'status': 'success',
        'stats': {k: str(v) if isinstance(v, Decimal) else v for k, v in stats.items()},
    })
