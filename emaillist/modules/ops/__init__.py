"""
Ops Module
==========

Public /health endpoint for uptime monitors (no auth).

Usage:
    from emaillist.modules.ops import ops_health_bp

    app.register_blueprint(ops_health_bp)  # Registers at /health
"""

from flask import Blueprint

ops_health_bp = Blueprint(
    'ops_health',
    __name__,
    url_prefix='/health'
)

from . import routes
