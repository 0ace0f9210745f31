"""
coselpro.core.connection - High-level connection management
===========================================================

Provides a ConnectionContext that reuses the cached token when possible and
only asks for credentials when it has to.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from coselpro.core.client import GatewayClient
from coselpro.core.config import GatewayConfig
from coselpro.core.credentials import Credentials
from coselpro.core.errors import NewTokenError, RenewTokenError, TokenLoadingError
from coselpro.core.session import CoSelPro
from coselpro.core.token import DEFAULT_SAFETY_MARGIN_MINUTES, Token

logger = logging.getLogger("coselpro.connection")


class ConnectionContext:
    """
    High-level connection manager for the CoSelPro gateway.

    Session resolution, in order:

    1. cached token active under the safety margin: used as is
    2. cached token still valid but inside the margin: renewed
    3. login with explicit credentials (arguments or COSELPRO_LOGIN /
       COSELPRO_PASSWORD), or a console prompt when ``interactive`` is set

    Parameters
    ----------
    base_url : str, optional
        Gateway URL. Falls back to COSELPRO_URI env var.
    login : str, optional
        Falls back to COSELPRO_LOGIN env var.
    password : str, optional
        Falls back to COSELPRO_PASSWORD env var.
    schema : str, optional
        Falls back to COSELPRO_SCHEMA env var, then "rest".
    token_path : str, optional
        Token cache file. Falls back to COSELPRO_TOKEN_FILE env var.
    interactive : bool
        Prompt on the console when no usable token or credentials exist.
    safety_margin_minutes : int
        Renew a cached token expiring within this margin.
    verify : bool, optional
        SSL verification. Falls back to COSELPRO_VERIFY_TLS env var.
    timeout : float, optional
        Request timeout in seconds.

    Examples
    --------
    >>> with ConnectionContext(interactive=True) as conn:
    ...     print(conn.session.user_name)
    ...     rows = conn.session.scoped("company").select().limit(10).json()
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        login: Optional[str] = None,
        password: Optional[str] = None,
        schema: Optional[str] = None,
        token_path: Optional[str] = None,
        interactive: bool = False,
        safety_margin_minutes: int = DEFAULT_SAFETY_MARGIN_MINUTES,
        verify: Optional[bool] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._cfg = GatewayConfig.from_env(
            base_url=base_url,
            schema=schema,
            token_path=token_path,
            verify=verify,
            timeout=timeout,
        )
        self._login = login or os.environ.get("COSELPRO_LOGIN", "")
        self._password = password or os.environ.get("COSELPRO_PASSWORD", "")
        self._interactive = interactive
        self._margin = safety_margin_minutes

        self._client: Optional[GatewayClient] = None
        self._session: Optional[CoSelPro] = None

    @property
    def client(self) -> GatewayClient:
        """Get or create the gateway handle."""
        if self._client is None:
            self._client = GatewayClient(self._cfg)
        return self._client

    @property
    def session(self) -> CoSelPro:
        """Get or create the authenticated session."""
        if self._session is None:
            self._session = self._build_session()
        return self._session

    def _from_cache(self) -> Optional[CoSelPro]:
        try:
            token = Token.load(self._cfg.token_path)
        except TokenLoadingError as e:
            logger.info("No usable cached token. (%s)", e)
            return None
        if not token.active(0):
            logger.info("Cached token of %s expired at %s", token.user_name, token.expire.isoformat())
            return None

        cached = CoSelPro.from_token(self.client, token)
        if token.active(self._margin):
            logger.debug("Using cached token of %s", token.user_name)
            return cached
        try:
            return cached.renew()
        except RenewTokenError as e:
            logger.warning("Cached token could not be renewed. (%s)", e)
            return None

    def _credentials(self) -> Credentials:
        if self._login and self._password:
            return Credentials(self._cfg.base_url, self._login, self._password)
        if self._interactive:
            return Credentials.from_console_prompt(default_uri=self._cfg.base_url)
        raise NewTokenError(
            "Missing credentials. Set COSELPRO_LOGIN/COSELPRO_PASSWORD environment "
            "variables, pass login/password parameters, or use interactive=True."
        )

    def _build_session(self) -> CoSelPro:
        cached = self._from_cache()
        if cached is not None:
            return cached
        credentials = self._credentials()
        client = self.client
        if credentials.host.rstrip("/") + "/" != client.base:
            # prompted URI differs from the configured one
            self.close()
            self._cfg.base_url = credentials.host
            client = self.client
        return CoSelPro.from_credentials(client, credentials)

    def renew(self) -> CoSelPro:
        """Replace the held session with a renewed one and return it."""
        self._session = self.session.renew()
        return self._session

    def close(self) -> None:
        """Close the connection."""
        if self._client is not None:
            self._client.close()
            self._client = None
        self._session = None

    def __enter__(self) -> "ConnectionContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def base_url(self) -> str:
        """The configured gateway URL."""
        return self._cfg.base_url

    @property
    def schema(self) -> str:
        """The configured schema."""
        return self._cfg.schema
