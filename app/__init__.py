"""Flask application factory."""
import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from app.database import init_db


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    if not app.debug and not app.testing:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
        )

    from app.utils.formatters import LedgerJSONProvider
    app.json = LedgerJSONProvider(app)

    # Setup Prometheus metrics instrumentation
    from app.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: Enable ProxyFix for HTTPS behind a reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)

    # Initialize database
    init_db(app)

    # Error Handlers
    from app.exceptions import LedgerError

    @app.errorhandler(LedgerError)
    def handle_ledger_error(error):
        """Handle custom application exceptions."""
        if error.status_code >= 500:
            app.logger.error(f"LedgerError [{error.status_code}]: {error.message}")
        else:
            app.logger.warning(f"LedgerError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'status': 'error', 'message': error.description or error.name}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.error(f"Unhandled Exception: {error}", exc_info=error)
        return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok', 'version': app.config.get('APP_VERSION')})

    # Register blueprints
    from app.blueprints.orders import orders_bp
    from app.blueprints.analytics import analytics_bp
    from app.blueprints.catalogs import catalogs_bp
    from app.blueprints.platforms import platforms_bp
    from app.blueprints.account import account_bp
    from app.blueprints.backup import backup_bp
    from app.blueprints.session_timer import timer_bp
    from app.blueprints.metrics import metrics_bp

    app.register_blueprint(orders_bp)
    app.register_blueprint(analytics_bp)
    app.register_blueprint(catalogs_bp)
    app.register_blueprint(platforms_bp)
    app.register_blueprint(account_bp)
    app.register_blueprint(backup_bp)
    app.register_blueprint(timer_bp)
    app.register_blueprint(metrics_bp)

    # Register CLI commands
    from app.cli_commands import init_cli_commands
    init_cli_commands(app)

    # Seed the account, built-in platforms and first catalog
    if app.config.get('CREATE_TABLES', False):
        from app.database import get_session
        from app.services.account_service import bootstrap
        with app.app_context():
            bootstrap(get_session(), app.config.get('DEFAULT_CURRENCY', 'USD ($)'))

    app.logger.info(
        f"LiveLedger started (free limits: {app.config.get('FREE_ORDER_LIMIT')} orders, "
        f"{app.config.get('FREE_EXPORT_LIMIT')} exports)"
    )
    return app
