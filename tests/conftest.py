"""
Pytest configuration and shared fixtures.
"""

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import pytest
from unittest.mock import Mock, MagicMock

from coselpro.core.client import GatewayClient
from coselpro.core.config import GatewayConfig
from coselpro.core.credentials import Credentials
from coselpro.core.token import Token

TEST_URI = "http://proliant:3000"


def _response(
    status: int = 200,
    payload: Any = None,
    text: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Mock:
    r = Mock()
    r.status_code = status
    r.headers = headers or {"Content-Type": "application/json"}
    if payload is not None:
        body = json.dumps(payload)
        r.text = body
        r.content = body.encode("utf-8")
        r.json.return_value = payload
    else:
        r.text = text or ""
        r.content = r.text.encode("utf-8")
        r.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
    return r


@pytest.fixture
def make_response():
    """Factory for mocked requests.Response objects."""
    return _response


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point the home directory to a temporary one and clear COSELPRO_* env vars."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for var in (
        "COSELPRO_URI",
        "COSELPRO_SCHEMA",
        "COSELPRO_TIMEOUT",
        "COSELPRO_VERIFY_TLS",
        "COSELPRO_TOKEN_FILE",
        "COSELPRO_LOGIN",
        "COSELPRO_PASSWORD",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return home


@pytest.fixture
def token_file(tmp_path):
    """Token cache path inside the test directory."""
    return tmp_path / "coselpro_token.json"


@pytest.fixture
def http():
    """Mocked requests.Session."""
    return MagicMock()


@pytest.fixture
def client(http, token_file):
    """GatewayClient sending through the mocked HTTP session."""
    cfg = GatewayConfig(base_url=TEST_URI, token_path=str(token_file))
    return GatewayClient(cfg, http=http)


@pytest.fixture
def credentials():
    """Credentials of the consultation account."""
    return Credentials(TEST_URI, "consult", "consult")


@pytest.fixture
def now():
    return datetime.now(timezone.utc)


@pytest.fixture
def active_token(now):
    """Token valid for another hour."""
    return Token(token="tok-active", expire=now + timedelta(hours=1), user_name="Consultation")


@pytest.fixture
def expired_token(now):
    """Token that expired ten minutes ago."""
    return Token(token="tok-expired", expire=now - timedelta(minutes=10), user_name="Consultation")


@pytest.fixture
def token_payload():
    """Factory for gateway token answers."""

    def _payload(token: str, expire: datetime, user_name: str = "Consultation") -> Dict[str, Any]:
        return {"token": token, "expire": expire.isoformat(), "user_name": user_name}

    return _payload
