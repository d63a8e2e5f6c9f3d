"""
Subscribers Module
==================

Provides:
- Public API for subscribing and unsubscribing an email address
- CSV export of the list (shared-secret auth)
"""

from flask import Blueprint

subscribers_bp = Blueprint(
    'subscribers',
    __name__,
    url_prefix='/api'
)

from . import routes
