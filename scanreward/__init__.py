"""
ScanReward Loyalty Engine
Flask application factory
"""
import os
import logging

from flask import Flask
from flask_cors import CORS

from .extensions import db, migrate
from .config import get_config, validate_config
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(config_name: str = None) -> Flask:
    """
    Application factory for creating Flask app instances.

    Args:
        config_name: Configuration environment (development, production, testing)

    Returns:
        Configured Flask application
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    # Setup logging before anything else
    setup_logging()

    validate_config(config_name)

    app = Flask(__name__)
    app.config.from_object(get_config(config_name))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    cors_origins = [
        origin.strip()
        for origin in os.getenv('CORS_ORIGINS', 'http://localhost:3000').split(',')
        if origin.strip()
    ]
    CORS(app, origins=cors_origins, allow_headers=['Content-Type', 'Authorization', 'X-Client-ID'])

    register_blueprints(app)

    # Register CLI commands
    from .commands import init_app as init_commands
    init_commands(app)

    register_error_handlers(app)

    @app.route('/health')
    def health_check():
        return {'status': 'healthy', 'service': 'scanreward'}

    logger.info(f"ScanReward app created ({config_name})")
    return app


def register_blueprints(app: Flask) -> None:
    """Register all API blueprints."""
    from .api import scans_bp, registrations_bp, rewards_bp, redemptions_bp, gifts_bp

    app.register_blueprint(scans_bp, url_prefix='/api/scans')
    app.register_blueprint(registrations_bp, url_prefix='/api/registrations')
    app.register_blueprint(rewards_bp, url_prefix='/api/rewards')
    app.register_blueprint(redemptions_bp, url_prefix='/api/redemptions')
    app.register_blueprint(gifts_bp, url_prefix='/api/gifts')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from .utils.errors import ErrorCode, error_response, loyalty_error_response
    from .utils.exceptions import LoyaltyError

    @app.errorhandler(LoyaltyError)
    def handle_loyalty_error(error):
        return loyalty_error_response(error)

    @app.errorhandler(400)
    def bad_request(error):
        return error_response('Bad request', ErrorCode.INVALID_REQUEST, 400, log_error=False)

    @app.errorhandler(404)
    def not_found(error):
        return error_response('Not found', ErrorCode.NOT_FOUND, 404, log_error=False)

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return error_response('Internal server error', ErrorCode.INTERNAL_ERROR, 500)
