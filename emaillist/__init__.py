"""
Email List - A Flask subscription list service
==============================================

Collects email addresses over a small JSON API and hands the list back as a
CSV download to callers holding the shared API key.

Usage:
    from flask import Flask
    from emaillist import EmailList

    app = Flask(__name__)
    EmailList(app, {'API_KEY': 'secret'})

or simply:

    from emaillist import create_app
    app = create_app()
"""

__version__ = '0.1.0'

import logging
import os

from flask import Flask, current_app, jsonify, request
from flask_cors import CORS

from .core.config import Config
from .core.database import SubscriptionStore
from .core.logging_service import LoggingService
from .core.rate_limit import RateLimiter, get_client_ip

logger = logging.getLogger(__name__)


class EmailList:
    """Flask extension wiring the store, rate limiter, logging and blueprints onto an app"""

    def __init__(self, app=None, config=None):
        self._config = dict(config or {})
        self._registered_modules = []
        self.store = None
        self.log_service = None
        self.limiter = None
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self._apply_config(app)
        self._configure_logging(app)
        self._setup_database(app)

        self.limiter = RateLimiter(
            max_requests=app.config['RATE_LIMIT_MAX'],
            window_seconds=app.config['RATE_LIMIT_WINDOW'],
        )

        origins = self._cors_origins(app.config['CORS_ORIGINS'])
        # Open default answers with a literal '*' rather than echoing the origin
        CORS(app, origins=origins, send_wildcard=(origins == '*'))
        app.before_request(self._enforce_rate_limit)
        self._register_error_handlers(app)
        self._register_modules(app)

        app.extensions['emaillist'] = self
        logger.info(f"Email list initialised with database {self.store.db_path}")

    def get_registered_modules(self):
        return list(self._registered_modules)

    # ------------------------------------------------------------------
    # Setup helpers
    # ------------------------------------------------------------------

    def _apply_config(self, app):
        """Config defaults < values already on app.config < values passed to EmailList"""
        explicit = set(self._config) | {key for key in ('DB_DIR', 'EMAILS_DB') if key in app.config}

        for key, value in Config.as_dict().items():
            app.config.setdefault(key, value)
        app.config.update(self._config)

        # A custom DB_DIR moves the database unless its path was given too
        if 'DB_DIR' in explicit and 'EMAILS_DB' not in explicit:
            app.config['EMAILS_DB'] = os.path.join(app.config['DB_DIR'], 'emails.db')

    def _configure_logging(self, app):
        level = str(app.config.get('LOG_LEVEL', 'INFO')).upper()
        logging.getLogger('emaillist').setLevel(getattr(logging, level, logging.INFO))

    def _setup_database(self, app):
        """Ensure the database directory, emails table and log table exist"""
        self.store = SubscriptionStore(app.config['EMAILS_DB'], table=app.config['EMAILS_TABLE'])
        self.store.init_db()
        self.log_service = LoggingService(app.config['EMAILS_DB'], table=app.config['LOGS_TABLE'])
        self.log_service.ensure_logs_table()

    @staticmethod
    def _cors_origins(value):
        if isinstance(value, (list, tuple)):
            return list(value)
        if not value or value.strip() == '*':
            return '*'
        return [origin.strip() for origin in value.split(',') if origin.strip()]

    def _enforce_rate_limit(self):
        """before_request hook: reject callers over their request budget"""
        if not current_app.config.get('RATE_LIMIT_ENABLED', True):
            return None

        client_ip = get_client_ip(request, current_app.config.get('TRUST_PROXY', False))
        if self.limiter.allow(client_ip):
            return None

        logger.warning(f"Rate limit exceeded for {client_ip} on {request.method} {request.path}")
        response = jsonify({'error': 'Too many requests, please try again later.'})
        response.status_code = 429
        response.headers['Retry-After'] = str(self.limiter.retry_after(client_ip))
        return response

    def _register_error_handlers(self, app):
        @app.errorhandler(404)
        def not_found(error):
            return jsonify({'error': 'Not found'}), 404

        @app.errorhandler(405)
        def method_not_allowed(error):
            return jsonify({'error': 'Method not allowed'}), 405

        @app.errorhandler(500)
        def internal_error(error):
            original = getattr(error, 'original_exception', None) or error
            logger.error(f"Unhandled error on {request.path}: {original}")
            self.log_service.log_error_with_traceback('app', original, {'path': request.path})
            return jsonify({'error': 'Internal server error'}), 500

    def _register_modules(self, app):
        from .modules.subscribers import subscribers_bp
        from .modules.ops import ops_health_bp

        for name, blueprint in (('subscribers', subscribers_bp), ('ops', ops_health_bp)):
            app.register_blueprint(blueprint)
            self._registered_modules.append(name)
            logger.debug(f"Registered module: {name}")


def create_app(config=None):
    """Build a Flask app with the email list service mounted"""
    app = Flask(__name__)
    EmailList(app, config)
    return app


__all__ = ['EmailList', 'create_app', 'Config']
