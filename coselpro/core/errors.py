"""
coselpro.core.errors - Exception hierarchy
==========================================

All failures raised by the client derive from ``CoSelProError``:

- CredentialsError: malformed endpoint or failed console input
- TokenError: token file I/O, or remote issuance/renewal failure
- SessionError: session construction, renewal, or expired token
- GatewayUpstreamError: non-2xx answer from the REST gateway
"""

from __future__ import annotations

from typing import Dict, Optional


class CoSelProError(Exception):
    """Base exception for all CoSelPro client errors."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class GatewayUpstreamError(CoSelProError):
    """
    Exception raised when the REST gateway answers with an error status.

    Attributes
    ----------
    status : int
        HTTP status code
    body : str
        Response body or extracted gateway error message
    url : str
        The URL that was called
    headers : dict
        Response headers
    """

    def __init__(
        self,
        status: int,
        body: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
    ):
        snippet = (body or "")[:1200]
        super().__init__(f"Gateway upstream error {status} for {url}: {snippet}")
        self.status = status
        self.body = body or ""
        self.url = url
        self.headers = headers or {}


# ---------------- credentials ----------------

class CredentialsError(CoSelProError):
    """Credentials could not be built."""


class UriEntryError(CredentialsError):
    """Endpoint address is malformed or could not be read."""


class LoginEntryError(CredentialsError):
    """Login could not be read from the console."""


class PasswordEntryError(CredentialsError):
    """Password could not be read from the console."""


# ---------------- token ----------------

class TokenError(CoSelProError):
    """A usable token could not be produced or stored."""


class TokenSavingError(TokenError):
    """Token file could not be written."""


class TokenLoadingError(TokenError):
    """Token file is missing, unreadable, or does not match the token schema."""


class TokenParsingError(TokenError):
    """
    Token issuance or renewal failed.

    Covers an unreachable gateway, a non-2xx answer and a response body that
    does not decode into a token.
    """

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        status: Optional[int] = None,
    ) -> None:
        super().__init__(message, cause)
        self.status = status


# ---------------- session ----------------

class SessionError(CoSelProError):
    """A session could not be built or used."""


class NewTokenError(SessionError):
    """Session creation failed because no token could be obtained."""


class RenewTokenError(SessionError):
    """Session renewal failed because the token could not be extended."""


class ExpiredTokenError(SessionError):
    """The token held or offered is no longer active."""
