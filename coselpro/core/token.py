"""
coselpro.core.token - Bearer token lifecycle
============================================

A token is issued by the gateway's ``login`` function, extended by its
``extend_token`` function, and cached as JSON in the user's profile so that
later runs do not ask for credentials again.

The cache file is not locked: concurrent writers from independent processes
race, last write wins.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging
import os

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from requests import Response

from coselpro.core.client import GatewayClient
from coselpro.core.credentials import Credentials
from coselpro.core.errors import (
    GatewayUpstreamError,
    TokenLoadingError,
    TokenParsingError,
    TokenSavingError,
)

TOKEN_DEFAULT_FILE_NAME = "coselpro_token.json"
DEFAULT_SAFETY_MARGIN_MINUTES = 5

FUNCTION_LOGIN = "login"
FUNCTION_EXTEND_TOKEN = "extend_token"

logger = logging.getLogger("coselpro.token")


def token_file_path(path: Optional[Union[str, Path]] = None) -> Path:
    """
    Location of the token cache file.

    Resolution order: explicit ``path``, ``COSELPRO_TOKEN_FILE``, the home
    directory, then the current working directory.
    """
    if path:
        return Path(path)
    env_path = os.environ.get("COSELPRO_TOKEN_FILE")
    if env_path:
        return Path(env_path)
    try:
        directory = Path.home()
    except (RuntimeError, KeyError) as e:
        logger.warning("Failed to get user home directory. (%s)", e)
        directory = Path.cwd()
    return directory / TOKEN_DEFAULT_FILE_NAME


class Token(BaseModel):
    """
    Bearer token issued by the CoSelPro gateway.

    Instances are immutable; renewal returns a new token.

    Parameters
    ----------
    token : str
        Opaque bearer string, sent verbatim as authorization
    expire : datetime
        Expiry instant, always timezone-aware UTC. ISO-8601 strings and
        epoch seconds are accepted; naive values are read as UTC.
    user_name : str
        Display name of the authenticated user

    Examples
    --------
    >>> token = Token.from_credentials(credentials)
    >>> token.active()
    True
    >>> token = token.renew(client)
    """

    model_config = ConfigDict(frozen=True)

    token: str = Field(repr=False)
    expire: datetime
    user_name: str

    @field_validator("expire")
    @classmethod
    def expire_as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    # ---------------- validity ----------------

    def active(
        self,
        safety_margin_minutes: Optional[int] = None,
        *,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        True if the token is still valid ``safety_margin_minutes`` from now.

        The margin defaults to 5 minutes; 0 checks strict expiry.
        """
        if safety_margin_minutes is None:
            safety_margin_minutes = DEFAULT_SAFETY_MARGIN_MINUTES
        now = now or datetime.now(timezone.utc)
        return self.expire > now + timedelta(minutes=safety_margin_minutes)

    def remaining(self, *, now: Optional[datetime] = None) -> timedelta:
        """Time left before expiry, negative once expired."""
        return self.expire - (now or datetime.now(timezone.utc))

    # ---------------- persistence ----------------

    def save(self, path: Optional[Union[str, Path]] = None) -> Path:
        """
        Write the token to the cache file, replacing its content.

        Returns
        -------
        Path
            The file written

        Raises
        ------
        TokenSavingError
            If the token cannot be serialized or the file cannot be written
        """
        file_path = token_file_path(path)
        try:
            content = self.model_dump_json()
        except ValueError as e:
            logger.error("Failed to serialize the token. (%s)", e)
            raise TokenSavingError(f"Failed to serialize the token: {e}", e) from e
        try:
            with open(file_path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            logger.error("Failed to open the file %s. (%s)", file_path, e)
            raise TokenSavingError(f"Failed to write {file_path}: {e}", e) from e
        logger.debug("Token for %s saved to %s", self.user_name, file_path)
        return file_path

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "Token":
        """
        Read a token from the cache file.

        Raises
        ------
        TokenLoadingError
            If the file is missing, unreadable, or does not hold a token
        """
        file_path = token_file_path(path)
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                content = f.read()
        except OSError as e:
            logger.error("Failed to open the file %s. (%s)", file_path, e)
            raise TokenLoadingError(f"Failed to read {file_path}: {e}", e) from e
        try:
            return cls.model_validate_json(content)
        except ValidationError as e:
            logger.error("Failed to deserialize the file %s. (%s)", file_path, e)
            raise TokenLoadingError(f"Invalid token file {file_path}: {e}", e) from e

    def _store(self, path: Optional[Union[str, Path]]) -> bool:
        # Issuance stays valid when the cache cannot be written.
        try:
            self.save(path)
        except TokenSavingError as e:
            logger.warning("Error saving token, keeping it in memory only. (%s)", e)
            return False
        return True

    # ---------------- gateway ----------------

    @classmethod
    def _parse_response(cls, r: Response, context: str) -> "Token":
        try:
            data: Any = r.json()
        except ValueError as e:
            logger.error("%s: response is not JSON. (%s)", context, e)
            raise TokenParsingError(f"{context}: response is not JSON", e, status=r.status_code) from e
        # set-returning functions answer with a one-row array
        if isinstance(data, list) and len(data) == 1:
            data = data[0]
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            logger.error("%s: incorrect server response format. (%s)", context, e)
            raise TokenParsingError(
                f"{context}: incorrect server response format", e, status=r.status_code
            ) from e

    @classmethod
    def _call(
        cls,
        client: GatewayClient,
        function: str,
        payload: Optional[Dict[str, Any]],
        *,
        token: Optional[str],
        context: str,
    ) -> "Token":
        try:
            r = client.rpc(function, payload, token=token)
        except GatewayUpstreamError as e:
            logger.error("%s: HTTP error %s", context, e.status)
            raise TokenParsingError(f"{context}: HTTP error {e.status}", e, status=e.status) from e
        except requests.RequestException as e:
            logger.error("%s: unable to connect to CoSelPro API. (%s)", context, e)
            raise TokenParsingError(f"{context}: unable to connect to CoSelPro API", e) from e
        return cls._parse_response(r, context)

    @classmethod
    def from_credentials(
        cls,
        credentials: Credentials,
        client: Optional[GatewayClient] = None,
        *,
        persist: bool = True,
        path: Optional[Union[str, Path]] = None,
    ) -> "Token":
        """
        Obtain a new token with the ``login`` function.

        Parameters
        ----------
        credentials : Credentials
            User credentials; ``credentials.host`` is used when no client is given
        client : GatewayClient, optional
            Gateway handle, already scoped to the right schema
        persist : bool
            Cache the token on success. A failed write is logged as a warning
            and does not invalidate the returned token.
        path : str or Path, optional
            Cache file override

        Raises
        ------
        TokenParsingError
            Gateway unreachable, credentials rejected, or malformed answer
        """
        if client is None:
            with GatewayClient(credentials.host) as own_client:
                return cls.from_credentials(credentials, own_client, persist=persist, path=path)

        token = cls._call(
            client,
            FUNCTION_LOGIN,
            {"username": credentials.login, "pass": credentials.password_digest()},
            token=None,
            context="Getting token",
        )
        logger.info("Token issued for %s, expires %s", token.user_name, token.expire.isoformat())
        if persist:
            token._store(path or client.cfg.token_path)
        return token

    def renew(
        self,
        client: GatewayClient,
        *,
        persist: bool = True,
        path: Optional[Union[str, Path]] = None,
    ) -> "Token":
        """
        Extend validity with the ``extend_token`` function.

        The call is authorized by this token. The gateway is expected to
        answer with the same user name and a later expiry; a deviation is
        logged and the answer returned as is.

        Raises
        ------
        TokenParsingError
            Gateway unreachable, token rejected, or malformed answer
        """
        renewed = self._call(
            client,
            FUNCTION_EXTEND_TOKEN,
            None,
            token=self.token,
            context="Renewing token",
        )
        if renewed.user_name != self.user_name or renewed.expire <= self.expire:
            logger.warning(
                "Renewed token breaks gateway contract: user %r -> %r, expire %s -> %s",
                self.user_name,
                renewed.user_name,
                self.expire.isoformat(),
                renewed.expire.isoformat(),
            )
        else:
            logger.info("Token renewed for %s, expires %s", renewed.user_name, renewed.expire.isoformat())
        if persist:
            renewed._store(path or client.cfg.token_path)
        return renewed
