import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """
    Base configuration for the email list service.
    Every value can be overridden through the environment (or a .env file).
    """
    # Server
    PORT = int(os.getenv('PORT', '3001'))

    # Shared secret for the export endpoint, passed as ?API_KEY=...
    API_KEY = os.getenv('API_KEY')

    # Database paths - use environment variables or fallback to DB_DIR
    DB_DIR = os.getenv('DB_DIR', os.path.join(os.getcwd(), 'databases'))
    EMAILS_DB = os.getenv('EMAILS_DB', os.path.join(DB_DIR, 'emails.db'))

    # Table names
    EMAILS_TABLE = 'emails'
    LOGS_TABLE = 'app_logs'

    # Rate limiting (per client IP)
    RATE_LIMIT_ENABLED = _env_flag('RATE_LIMIT_ENABLED', True)
    RATE_LIMIT_MAX = int(os.getenv('RATE_LIMIT_MAX', '10'))
    RATE_LIMIT_WINDOW = int(os.getenv('RATE_LIMIT_WINDOW', '60'))
    # Only honour X-Forwarded-For when running behind a trusted proxy
    TRUST_PROXY = _env_flag('TRUST_PROXY', False)

    # Comma-separated list, '*' allows any origin
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    @classmethod
    def as_dict(cls):
        """Upper-case settings as a plain dict, ready for app.config.update()"""
        return {key: getattr(cls, key) for key in dir(cls) if key.isupper()}
