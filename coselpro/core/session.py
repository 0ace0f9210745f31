"""
coselpro.core.session - Authenticated CoSelPro session
======================================================

A ``CoSelPro`` value pairs a gateway handle with an active token. It is never
mutated: renewal returns a new session, and the previous one stays usable
until its own token expires.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging

from coselpro.core.client import GatewayClient
from coselpro.core.credentials import Credentials
from coselpro.core.errors import (
    ExpiredTokenError,
    NewTokenError,
    RenewTokenError,
    TokenError,
)
from coselpro.core.query import RequestBuilder
from coselpro.core.token import DEFAULT_SAFETY_MARGIN_MINUTES, Token

logger = logging.getLogger("coselpro.session")


class CoSelPro:
    """
    Authenticated session on the CoSelPro gateway.

    Parameters
    ----------
    client : GatewayClient
        Gateway handle; its schema is the session schema
    token : Token
        Active token

    Use the ``from_*`` constructors rather than calling the class directly:
    they enforce that the token is active.

    Examples
    --------
    >>> cred = Credentials("http://proliant:3000", "consult", "consult")
    >>> api = CoSelPro.from_credentials(None, cred)
    >>> api.user_name
    'Consultation'
    >>> rows = api.scoped("company").select("company_id", "company").json()
    >>> api = api.renew()
    """

    __slots__ = ("_client", "_token")

    def __init__(self, client: GatewayClient, token: Token) -> None:
        self._client = client
        self._token = token

    def __repr__(self) -> str:
        return (
            f"CoSelPro(base={self._client.base!r}, schema={self.schema!r}, "
            f"user_name={self.user_name!r}, expire={self._token.expire.isoformat()!r})"
        )

    # ---------------- constructors ----------------

    @classmethod
    def from_token(cls, client: GatewayClient, token: Token) -> "CoSelPro":
        """
        Build a session from a token that has not expired yet.

        Purely local: no request is sent.

        Raises
        ------
        ExpiredTokenError
            If the token is expired
        """
        if not token.active(0):
            logger.error("Token of %s expired at %s", token.user_name, token.expire.isoformat())
            raise ExpiredTokenError(f"Token of {token.user_name} expired at {token.expire.isoformat()}")
        return cls(client, token)

    @classmethod
    def from_credentials(
        cls,
        client: "GatewayClient | str | None",
        credentials: Credentials,
        *,
        persist: bool = True,
    ) -> "CoSelPro":
        """
        Log in and build a session.

        Parameters
        ----------
        client : GatewayClient, str or None
            Gateway handle, gateway URL, or None for ``credentials.host``
        credentials : Credentials
            User credentials
        persist : bool
            Cache the issued token (best effort, see ``Token.from_credentials``)

        Raises
        ------
        NewTokenError
            If no token could be obtained
        ExpiredTokenError
            If the gateway issued an already expired token
        """
        if client is None:
            client = credentials.host
        if isinstance(client, str):
            client = GatewayClient(client)
        try:
            token = Token.from_credentials(credentials, client, persist=persist)
        except TokenError as e:
            raise NewTokenError(f"Unable to obtain token: {e}", e) from e
        return cls.from_token(client, token)

    @classmethod
    def from_cache(
        cls,
        client: GatewayClient,
        path: Optional[Union[str, Path]] = None,
    ) -> "CoSelPro":
        """
        Build a session from the cached token.

        Raises
        ------
        NewTokenError
            If the cache file cannot be read
        ExpiredTokenError
            If the cached token is expired
        """
        try:
            token = Token.load(path or client.cfg.token_path)
        except TokenError as e:
            raise NewTokenError(f"Unable to load cached token: {e}", e) from e
        return cls.from_token(client, token)

    # ---------------- accessors ----------------

    @property
    def client(self) -> GatewayClient:
        return self._client

    @property
    def schema(self) -> str:
        return self._client.schema

    @property
    def token(self) -> Token:
        return self._token

    @property
    def user_name(self) -> str:
        """Display name of the authenticated user."""
        return self._token.user_name

    # ---------------- renewal ----------------

    def renew(self, *, persist: bool = True) -> "CoSelPro":
        """
        Extend the token and return a new session holding it.

        This session is left untouched.

        Raises
        ------
        RenewTokenError
            If the gateway did not extend the token
        """
        try:
            token = self._token.renew(self._client, persist=persist)
        except TokenError as e:
            raise RenewTokenError(f"Unable to renew token: {e}", e) from e
        return type(self)(self._client, token)

    def refreshed(
        self,
        safety_margin_minutes: int = DEFAULT_SAFETY_MARGIN_MINUTES,
        *,
        persist: bool = True,
    ) -> "CoSelPro":
        """Return this session, or a renewed one when expiry is within the margin."""
        if self._token.active(safety_margin_minutes):
            return self
        logger.info("Token of %s expires in %s, renewing", self.user_name, self._token.remaining())
        return self.renew(persist=persist)

    # ---------------- requests ----------------

    def _ensure_active(self) -> None:
        if not self._token.active(0):
            logger.error("Session token of %s expired at %s", self.user_name, self._token.expire.isoformat())
            raise ExpiredTokenError(
                f"Session token of {self.user_name} expired at {self._token.expire.isoformat()}"
            )

    def scoped(self, table: str) -> RequestBuilder:
        """
        Request builder for ``table``, authorized with the session token.

        Raises
        ------
        ExpiredTokenError
            If the token expired since the session was built
        """
        self._ensure_active()
        return self._client.from_(table, token=self._token.token)

    def rpc(self, function: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        """
        Call an authorized gateway function and decode its JSON answer.

        Raises
        ------
        ExpiredTokenError
            If the token expired, checked before any request
        GatewayUpstreamError
            On a non-2xx response
        requests.RequestException
            When the gateway cannot be reached
        """
        self._ensure_active()
        r = self._client.rpc(function, payload, token=self._token.token)
        if not r.content:
            return None
        return r.json()
