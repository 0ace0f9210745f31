"""
CoSelPro Python client (coselpro)
=================================

Client-side session management for the CoSelPro component selection and
procurement database, reached through a PostgREST-style REST gateway.

Usage
-----
>>> from coselpro import ConnectionContext
>>> from coselpro.procurement import CrossesClient, XCompanyRequest
>>>
>>> with ConnectionContext(interactive=True) as conn:
...     # Generic table access
...     rows = conn.session.scoped("company").select("company_id", "company").limit(10).json()
...
...     # Cross-reference lookup
...     company = CrossesClient(conn).x_company(XCompanyRequest(company="ti"))

Subpackages
-----------
- coselpro.core: Credentials, token lifecycle, authenticated session
- coselpro.procurement: CoSelPro domain functions

"""

__version__ = "0.3.0"
__author__ = "CoSelPro Team"

# Core exports - available at package root
from coselpro.core.config import GatewayConfig
from coselpro.core.client import GatewayClient
from coselpro.core.credentials import Credentials
from coselpro.core.token import Token
from coselpro.core.session import CoSelPro
from coselpro.core.connection import ConnectionContext
from coselpro.core.errors import (
    CoSelProError,
    GatewayUpstreamError,
    CredentialsError,
    TokenError,
    SessionError,
    ExpiredTokenError,
)

__all__ = [
    # Version
    "__version__",
    # Core
    "GatewayConfig",
    "GatewayClient",
    "Credentials",
    "Token",
    "CoSelPro",
    "ConnectionContext",
    # Errors
    "CoSelProError",
    "GatewayUpstreamError",
    "CredentialsError",
    "TokenError",
    "SessionError",
    "ExpiredTokenError",
]
