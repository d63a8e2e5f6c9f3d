"""
Ops Routes
==========

Public health endpoint. Reports 503 when the subscription store can't be read.
"""

import logging

from flask import current_app, jsonify

from emaillist.core.database import StorageError, utc_timestamp
from . import ops_health_bp

logger = logging.getLogger(__name__)


def _build_health_response():
    """Build the health check response dict and its HTTP status code."""
    ext = current_app.extensions['emaillist']
    checks = {}
    status = 'ok'

    try:
        checks['subscribers'] = ext.store.count()
        checks['database'] = 'ok'
    except StorageError as e:
        logger.error(f"Health check could not read the store: {e}")
        ext.log_service.error('ops', 'Health check could not read the store', {'error': str(e)})
        checks['database'] = 'error'
        status = 'critical'

    result = {
        'status': status,
        'timestamp': utc_timestamp(),
        'checks': checks,
    }
    return result, 503 if status == 'critical' else 200


@ops_health_bp.route('/')
@ops_health_bp.route('')
def health_check():
    """Public health check for uptime monitors"""
    result, code = _build_health_response()
    return jsonify(result), code
