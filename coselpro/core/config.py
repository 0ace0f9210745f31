"""
coselpro.core.config - Gateway configuration
============================================

Connection settings for the CoSelPro REST gateway, resolved from explicit
arguments first and ``COSELPRO_*`` environment variables second. A ``.env``
file in the working directory is loaded when present.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from dotenv import load_dotenv

from coselpro import __version__

DEFAULT_SCHEMA = "rest"


@dataclass
class GatewayConfig:
    """
    Connection configuration for the CoSelPro REST gateway.

    Parameters
    ----------
    base_url : str
        Gateway root URL, e.g. "http://proliant:3000"
    schema : str
        Schema selected on every request (default: "rest")
    timeout : float
        Request timeout in seconds (default: 60.0)
    retries : int
        Transport retry attempts (default: 0, no automatic retry)
    backoff : float
        Backoff factor for retries (default: 0.5)
    verify : bool or str
        SSL verification (True, False, or path to CA bundle)
    user_agent : str
        User-Agent header value
    token_path : str, optional
        Token cache file; None selects ~/coselpro_token.json

    Examples
    --------
    >>> cfg = GatewayConfig(base_url="http://proliant:3000")
    >>> cfg.schema
    'rest'
    """
    base_url: str
    schema: str = DEFAULT_SCHEMA
    timeout: float = 60.0
    retries: int = 0
    backoff: float = 0.5
    verify: Union[bool, str] = True
    user_agent: str = f"coselpro-client/{__version__}"
    token_path: Optional[str] = None

    @classmethod
    def from_env(cls, **overrides: Any) -> "GatewayConfig":
        """
        Build a configuration from COSELPRO_* environment variables.

        Keyword arguments that are not None take precedence over the
        environment.
        """
        env_path = Path.cwd() / ".env"
        if env_path.exists():
            load_dotenv(env_path)

        values = {k: v for k, v in overrides.items() if v is not None}

        base_url = values.pop("base_url", None) or os.environ.get("COSELPRO_URI", "")
        if not base_url:
            raise ValueError(
                "Missing base_url. Set COSELPRO_URI environment variable "
                "or pass base_url parameter."
            )

        values.setdefault("schema", os.environ.get("COSELPRO_SCHEMA", DEFAULT_SCHEMA))
        values.setdefault("timeout", float(os.environ.get("COSELPRO_TIMEOUT", "60")))
        if "verify" not in values:
            values["verify"] = os.environ.get("COSELPRO_VERIFY_TLS", "true").lower() != "false"
        if "token_path" not in values and os.environ.get("COSELPRO_TOKEN_FILE"):
            values["token_path"] = os.environ["COSELPRO_TOKEN_FILE"]

        return cls(base_url=base_url, **values)
