"""
Tests for API configuration.
"""

import pytest
from pydantic import ValidationError

from api.config import APIConfig


def test_defaults(monkeypatch):
    """Test defaults bind locally and use the booksdb database."""
    for name in ("HOST", "PORT", "MONGODB_URL", "MONGODB_DATABASE", "SHUTDOWN_TIMEOUT", "REQUEST_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)

    settings = APIConfig(_env_file=None)

    assert settings.host == "127.0.0.1"
    assert settings.port == 8000
    assert settings.mongodb_database == "booksdb"
    assert settings.mongodb_collection == "books"
    assert settings.shutdown_timeout == 30
    assert settings.request_timeout == 15
    assert settings.api_prefix == "/api"


def test_environment_overrides(monkeypatch):
    """Test settings are read from the environment."""
    monkeypatch.setenv("PORT", "9090")
    monkeypatch.setenv("MONGODB_URL", "mongodb://db.internal:27017")
    monkeypatch.setenv("SHUTDOWN_TIMEOUT", "5")

    settings = APIConfig(_env_file=None)

    assert settings.port == 9090
    assert settings.mongodb_url == "mongodb://db.internal:27017"
    assert settings.shutdown_timeout == 5


def test_log_level_normalised():
    """Test log level is upper-cased."""
    assert APIConfig(log_level="debug", _env_file=None).log_level == "DEBUG"


def test_invalid_log_level():
    """Test unknown log levels are rejected."""
    with pytest.raises(ValidationError):
        APIConfig(log_level="verbose", _env_file=None)


def test_invalid_log_format():
    """Test unknown log formats are rejected."""
    with pytest.raises(ValidationError):
        APIConfig(log_format="xml", _env_file=None)


def test_negative_shutdown_timeout():
    """Test the drain timeout cannot be negative."""
    with pytest.raises(ValidationError):
        APIConfig(shutdown_timeout=-1, _env_file=None)


def test_negative_request_timeout():
    """Test negative request timeouts are rejected."""
    with pytest.raises(ValidationError):
        APIConfig(request_timeout=-1, _env_file=None)
