"""
Subscribers Routes
==================

Provides:
- POST /api/subscribe -- add an email address
- POST /api/unsubscribe -- remove an email address
- GET /api/emails -- download the list as CSV (?API_KEY=... required)
"""

# The duplicate-subscribe (400) and unknown-unsubscribe (404) responses carry
# success-worded text. Existing clients key off the status code and may match
# on the text too, so both are kept as they are.

import csv
import io
import logging

from flask import current_app, jsonify, request, Response

from emaillist.core.auth import api_key_required
from emaillist.core.database import DuplicateEmailError, StorageError, utc_timestamp
from emaillist.core.validation import ValidationError, require_email, validate_email_payload
from . import subscribers_bp

logger = logging.getLogger(__name__)

EXPORT_FIELDS = ['email']


def _ext():
    return current_app.extensions['emaillist']


def export_filename(timestamp=None):
    """emails_<ISO timestamp>.csv with colons swapped for hyphens"""
    timestamp = timestamp or utc_timestamp()
    return f"emails_{timestamp.replace(':', '-')}.csv"


def render_csv(emails):
    """CSV text with an `email` header row, one row per address"""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator='\n')
    writer.writerow(EXPORT_FIELDS)
    for email in emails:
        writer.writerow([email])
    return buffer.getvalue()


# ===================
# PUBLIC API ROUTES
# ===================

@subscribers_bp.route('/subscribe', methods=['POST'])
def subscribe():
    """Handle new subscription requests"""
    data = request.get_json(silent=True)

    try:
        email = validate_email_payload(data)
    except ValidationError as e:
        return jsonify({'error': e.message}), 400

    try:
        _ext().store.insert(email)
    except DuplicateEmailError:
        logger.info(f"Duplicate subscription attempt: {email}")
        return jsonify({'error': 'Subscribed successfully'}), 400
    except StorageError as e:
        logger.error(f"Error saving email: {e}")
        _ext().log_service.log_error_with_traceback('subscribers', e, {'action': 'subscribe'})
        return jsonify({'error': 'Failed to save email'}), 500

    logger.info(f"New subscription added: {email}")
    return jsonify({'message': 'Subscribed successfully'}), 200


@subscribers_bp.route('/unsubscribe', methods=['POST'])
def unsubscribe():
    """Handle unsubscribe requests"""
    data = request.get_json(silent=True)

    try:
        email = require_email(data)
    except ValidationError as e:
        return jsonify({'error': e.message}), 400

    try:
        deleted = _ext().store.delete(email)
    except StorageError as e:
        logger.error(f"Error deleting email: {e}")
        _ext().log_service.log_error_with_traceback('subscribers', e, {'action': 'unsubscribe'})
        return jsonify({'error': 'Failed to unsubscribe'}), 500

    if deleted == 0:
        logger.info(f"Unsubscribe for unknown address: {email}")
        return jsonify({'error': 'Unsubscribed successfully'}), 404

    logger.info(f"Unsubscribed: {email}")
    return jsonify({'message': 'Unsubscribed successfully'}), 200


# ===================
# EXPORT (API KEY)
# ===================

@subscribers_bp.route('/emails', methods=['GET'])
@api_key_required
def export_emails():
    """Export the subscriber list as a CSV attachment"""
    try:
        emails = _ext().store.list_all()
    except StorageError as e:
        logger.error(f"Error fetching emails: {e}")
        _ext().log_service.log_error_with_traceback('subscribers', e, {'action': 'export'})
        return Response('Failed to fetch emails', status=500, mimetype='text/plain')

    filename = export_filename()
    logger.info(f"Exported {len(emails)} emails as {filename}")

    response = Response(render_csv(emails), status=200, mimetype='text/csv')
    response.headers['Content-Disposition'] = f'attachment; filename={filename}'
    return response
