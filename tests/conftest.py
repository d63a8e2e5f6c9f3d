"""
Shared fixtures for the email list tests.

Every test gets its own temporary database directory and its own app, so the
store and the rate limiter never leak state between tests.
"""

import os
import shutil
import tempfile

import pytest

from emaillist import create_app

TEST_API_KEY = "test-api-key"


@pytest.fixture
def tmp_db_dir():
    """Create a temporary directory for test databases, cleaned up after."""
    d = tempfile.mkdtemp(prefix="emaillist-test-")
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def app(tmp_db_dir):
    """App with an isolated database and a known API key."""
    app = create_app({
        "TESTING": True,
        "DB_DIR": tmp_db_dir,
        "API_KEY": TEST_API_KEY,
        "RATE_LIMIT_ENABLED": True,
        "RATE_LIMIT_MAX": 10,
        "RATE_LIMIT_WINDOW": 60,
        "TRUST_PROXY": False,
    })
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def ext(app):
    return app.extensions["emaillist"]


@pytest.fixture
def store(ext):
    return ext.store


@pytest.fixture
def db_path(tmp_db_dir):
    return os.path.join(tmp_db_dir, "emails.db")
