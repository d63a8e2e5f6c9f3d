"""
Request payload validation for subscription endpoints.

Values are checked, never rewritten: whatever passes validation is stored
exactly as the caller sent it.
"""

import re

# RFC 5322 atext atoms separated by single dots; hostname labels ending in an
# alphabetic or punycode (xn--) TLD
LOCAL_ATOM = r"[a-zA-Z0-9!#$%&'*+/=?^_`{|}~-]+"
DOMAIN_LABEL = r'[a-zA-Z0-9-]+'
TLD = r'(?:[a-zA-Z]{2,}|xn--[a-zA-Z0-9-]+)'
EMAIL_REGEX = re.compile(
    LOCAL_ATOM + r'(?:\.' + LOCAL_ATOM + r')*'
    + '@' + DOMAIN_LABEL + r'(?:\.' + DOMAIN_LABEL + r')*\.' + TLD
)

MAX_EMAIL_LENGTH = 254
MAX_LOCAL_PART_LENGTH = 64


class ValidationError(ValueError):
    """Base class for rejected request payloads. `message` is safe to show the caller."""

    message = 'Invalid request'

    def __init__(self, message=None):
        if message:
            self.message = message
        super().__init__(self.message)


class MissingFieldError(ValidationError):
    message = 'Email is required'


class InvalidEmailError(ValidationError):
    message = 'Invalid email address'


def is_valid_email(value):
    """Check standard email syntax without normalising the value"""
    if not isinstance(value, str) or len(value) > MAX_EMAIL_LENGTH:
        return False
    if EMAIL_REGEX.fullmatch(value) is None:
        return False
    return len(value.rsplit('@', 1)[0]) <= MAX_LOCAL_PART_LENGTH


def require_email(data):
    """Return the `email` field of a JSON body as a string, without a format check"""
    if not isinstance(data, dict):
        raise MissingFieldError()

    email = data.get('email')
    if email is None or email == '':
        raise MissingFieldError()
    if not isinstance(email, str):
        raise InvalidEmailError()
    return email


def validate_email_payload(data):
    """Presence and format check for a subscribe body. Returns the email unchanged."""
    email = require_email(data)
    if not is_valid_email(email):
        raise InvalidEmailError()
    return email
