"""
Email List Core
===============

Configuration, storage, validation, rate limiting and access control shared
by the HTTP modules.
"""

from .config import Config
from .database import SubscriptionStore, StoreError, DuplicateEmailError, StorageError
from .logging_service import LoggingService
from .rate_limit import RateLimiter

__all__ = [
    'Config', 'SubscriptionStore', 'StoreError', 'DuplicateEmailError',
    'StorageError', 'LoggingService', 'RateLimiter',
]
