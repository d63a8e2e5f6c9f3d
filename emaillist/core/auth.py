import hmac
import logging
from functools import wraps

from flask import current_app, jsonify, request

logger = logging.getLogger(__name__)

API_KEY_PARAM = 'API_KEY'


def check_api_key(supplied, expected):
    """Exact, constant-time comparison. A server without a configured key accepts nothing."""
    if not expected or supplied is None:
        return False
    return hmac.compare_digest(str(supplied).encode('utf-8'), str(expected).encode('utf-8'))


def api_key_required(f):
    """Decorator to require the shared secret as the API_KEY query parameter"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        supplied = request.args.get(API_KEY_PARAM)
        if not check_api_key(supplied, current_app.config.get('API_KEY')):
            ext = current_app.extensions.get('emaillist')
            details = {'path': request.path, 'key_supplied': supplied is not None}
            if ext is not None:
                ext.log_service.warning('auth', 'Rejected request with invalid API key', details)
            else:
                logger.warning(f"Rejected request with invalid API key: {details}")
            return jsonify({'error': 'Unauthorized'}), 401
        return f(*args, **kwargs)
    return decorated_function
