"""
coselpro.core.credentials - User credentials
============================================

Endpoint, login and password used once to obtain a token. Credentials are
never written to disk.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional
from urllib.parse import urlsplit
import getpass
import hashlib
import logging

from coselpro.core.errors import LoginEntryError, PasswordEntryError, UriEntryError

logger = logging.getLogger("coselpro.credentials")


def validate_uri(host: str) -> str:
    """
    Check that ``host`` is an absolute http(s) URI and return it stripped.

    Raises
    ------
    UriEntryError
        If the address does not parse as a URI with scheme and host
    """
    host = (host or "").strip()
    try:
        parts = urlsplit(host)
        _ = parts.port  # raises on a non-numeric port
    except ValueError as e:
        raise UriEntryError(f"Invalid URI {host!r}: {e}", e) from e
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise UriEntryError(f"Invalid URI {host!r}: expected http(s)://host[:port][/path]")
    return host


@dataclass(frozen=True)
class Credentials:
    """
    Connection credentials for the CoSelPro gateway.

    Parameters
    ----------
    host : str
        Gateway address, validated as an http(s) URI
    login : str
        User identifier, stored lower-cased
    password : str
        Raw password, kept in memory only

    Examples
    --------
    >>> cred = Credentials("http://proliant:3000", "Consult", "consult")
    >>> cred.login
    'consult'
    >>> cred.password_digest()
    'md55e73b42456347af1be4be2d0c8eda64a'
    """
    host: str
    login: str
    password: str = field(repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "host", validate_uri(self.host))
        object.__setattr__(self, "login", self.login.strip().lower())

    def password_digest(self) -> str:
        """
        Hashed password in the gateway's expected format.

        ``"md5" + hex(md5(password + login))``; this is a wire format, not a
        protection of the secret.
        """
        digest = hashlib.md5((self.password + self.login).encode("utf-8")).hexdigest()
        return f"md5{digest}"

    @classmethod
    def from_console_prompt(
        cls,
        *,
        read_line: Callable[[str], str] = input,
        read_password: Callable[[str], str] = getpass.getpass,
        default_uri: Optional[str] = None,
    ) -> "Credentials":
        """
        Prompt for URI, login and password on the console.

        The password is read without echo. An empty URI answer selects
        ``default_uri`` when one is given.

        Raises
        ------
        UriEntryError, LoginEntryError, PasswordEntryError
            Depending on which entry could not be read or is invalid
        """
        print("Issue CoSelPro connection credentials:")

        prompt = f"uri [{default_uri}]: " if default_uri else "uri: "
        try:
            uri = read_line(prompt).strip() or (default_uri or "")
        except (OSError, EOFError) as e:
            logger.error("Failed to read URI. (%s)", e)
            raise UriEntryError(f"Failed to read URI: {e}", e) from e

        try:
            login = read_line("login: ")
        except (OSError, EOFError) as e:
            logger.error("Failed to read login. (%s)", e)
            raise LoginEntryError(f"Failed to read login: {e}", e) from e

        try:
            password = read_password("password: ")
        except (OSError, EOFError) as e:
            logger.error("Failed to read password. (%s)", e)
            raise PasswordEntryError(f"Failed to read password: {e}", e) from e

        return cls(uri, login, password.strip())
