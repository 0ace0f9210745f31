"""
coselpro.core - Core connectivity and authentication
====================================================

This module provides the foundational classes for talking to CoSelPro:

- Credentials: gateway address, login and password (hashed on the wire)
- Token: bearer token issuance, renewal, expiry and on-disk cache
- CoSelPro: immutable authenticated session handing out request builders
- GatewayClient: low-level HTTP handle with schema selection and RPC calls
- ConnectionContext: high-level connection manager (cache first, then login)

"""

from coselpro.core.config import GatewayConfig
from coselpro.core.client import GatewayClient
from coselpro.core.query import RequestBuilder
from coselpro.core.credentials import Credentials
from coselpro.core.token import Token, token_file_path
from coselpro.core.session import CoSelPro
from coselpro.core.connection import ConnectionContext
from coselpro.core.errors import (
    CoSelProError,
    GatewayUpstreamError,
    CredentialsError,
    UriEntryError,
    LoginEntryError,
    PasswordEntryError,
    TokenError,
    TokenSavingError,
    TokenLoadingError,
    TokenParsingError,
    SessionError,
    NewTokenError,
    RenewTokenError,
    ExpiredTokenError,
)

__all__ = [
    "GatewayConfig",
    "GatewayClient",
    "RequestBuilder",
    "Credentials",
    "Token",
    "token_file_path",
    "CoSelPro",
    "ConnectionContext",
    "CoSelProError",
    "GatewayUpstreamError",
    "CredentialsError",
    "UriEntryError",
    "LoginEntryError",
    "PasswordEntryError",
    "TokenError",
    "TokenSavingError",
    "TokenLoadingError",
    "TokenParsingError",
    "SessionError",
    "NewTokenError",
    "RenewTokenError",
    "ExpiredTokenError",
]
