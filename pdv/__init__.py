"""Flask application factory."""
from flask import Flask, jsonify, request
from flask_wtf.csrf import CSRFProtect
from werkzeug.exceptions import HTTPException
from pdv.database import init_db
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Initialize CSRF protection
    csrf = CSRFProtect(app)

    from flask_wtf.csrf import CSRFError

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        app.logger.warning(f"CSRF Error: {e.description}")
        return jsonify({'status': 'error', 'message': 'A sessão expirou. Recarregue a página.'}), 400

    # Error tracking in production
    if os.getenv('SENTRY_DSN') and (app.config.get('ENV') == 'production' or os.getenv('FLASK_ENV') == 'production'):
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Production: Enable ProxyFix for HTTPS behind a reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)

    # Initialize database
    init_db(app)

    # Services shared by every request
    from pdv.container import ServiceContainer
    app.extensions['pdv'] = ServiceContainer(app.config)

    # Jinja filters (receipt)
    from pdv.utils.formatters import (
        format_currency, format_date, format_datetime, format_payment_method, format_sale_number,
    )
    app.jinja_env.filters['currency'] = format_currency
    app.jinja_env.filters['date_br'] = format_date
    app.jinja_env.filters['datetime_br'] = format_datetime
    app.jinja_env.filters['payment_method'] = format_payment_method
    app.jinja_env.filters['sale_number'] = format_sale_number

    # Load the current operator before each request
    from pdv.middleware import load_user

    @app.before_request
    def before_request_handler():
        """Load user context for each request."""
        load_user()

    # Error Handlers
    from pdv.exceptions import PdvError

    @app.errorhandler(PdvError)
    def handle_pdv_error(error):
        """Handle custom application exceptions."""
        app.logger.error(f"PdvError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'status': 'error', 'message': 'Não encontrado'}), 404

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({'status': 'error', 'message': error.description}), error.code

    @app.errorhandler(500)
    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.error(f"Unhandled Exception on {request.path}: {error}", exc_info=True)
        return jsonify({'status': 'error', 'message': 'Erro interno do servidor'}), 500

    # Register blueprints
    from pdv.blueprints.auth import auth_bp
    from pdv.blueprints.products import products_bp
    from pdv.blueprints.customers import customers_bp
    from pdv.blueprints.sales import sales_bp
    from pdv.blueprints.checkout import checkout_bp
    from pdv.blueprints.reports import reports_bp
    from pdv.blueprints.dashboard import dashboard_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(checkout_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(dashboard_bp)

    # CLI commands
    from pdv.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app
