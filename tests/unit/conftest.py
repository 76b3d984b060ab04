"""
Pytest configuration for unit tests.

Provides a gateway app wired to a test configuration and a factory for mock
upstream responses, so no test touches the network.
"""

from unittest import mock

import pytest
from requests.structures import CaseInsensitiveDict

from debuglogs_gateway.config import ENV_OVERRIDES, CONFIG_PATH_ENV, GatewayConfig
from debuglogs_gateway.gateway import create_app

ORIGIN = "https://readlogs.pages.dev"
DEV_ORIGIN = "http://127.0.0.1:8080"
KEY = "a" * 64
HASH_KEY = "0123456789abcdef" * 4


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep gateway environment overrides out of every test."""
    for env_var in ENV_OVERRIDES.values():
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)


@pytest.fixture
def config():
    return GatewayConfig()


@pytest.fixture
def app(config):
    """Create Flask app."""
    app = create_app(config)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Create Flask test client."""
    return app.test_client()


@pytest.fixture
def make_upstream_response():
    """Return a factory for mock ``requests.Response`` objects."""

    def _make(status_code=200, body=b"log-bundle", headers=None):
        resp = mock.MagicMock()
        resp.status_code = status_code
        all_headers = {"Content-Length": str(len(body))}
        all_headers.update(headers or {})
        resp.headers = CaseInsensitiveDict(all_headers)
        resp.raw.stream.return_value = iter([body])
        resp.iter_content.return_value = iter([body])
        return resp

    return _make


@pytest.fixture
def mock_get(make_upstream_response):
    """Patch the upstream GET; the default reply is a 200 with a small body."""
    with mock.patch("debuglogs_gateway.upstream.requests.get") as mock_request:
        mock_request.return_value = make_upstream_response()
        yield mock_request
