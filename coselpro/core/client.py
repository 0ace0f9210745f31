"""
coselpro.core.client - CoSelPro REST gateway client
===================================================

Low-level HTTP handle for the PostgREST-style CoSelPro gateway with:
- Schema selection through profile headers
- Named RPC calls (``POST <base>/rpc/<function>``)
- Per-request bearer authentication
- Error extraction from gateway responses
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence, Tuple, Union
import json
import logging
import time

import requests
from requests import Response, Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from coselpro.core.config import GatewayConfig
from coselpro.core.errors import GatewayUpstreamError
from coselpro.core.query import RequestBuilder

_READ_METHODS = frozenset({"GET", "HEAD"})


class GatewayClient:
    """
    HTTP handle for the CoSelPro REST gateway.

    The handle holds no credentials: bearer tokens are passed per request, so
    a single client can be shared by several sessions. ``with_schema`` returns
    a sibling handle sharing the same HTTP connection pool.

    Parameters
    ----------
    cfg : GatewayConfig or str
        Connection configuration, or a bare gateway URL

    Examples
    --------
    >>> with GatewayClient("http://proliant:3000") as client:
    ...     r = client.rpc("login", {"username": "consult", "pass": "md5..."})
    """

    def __init__(
        self,
        cfg: "GatewayConfig | str",
        *,
        http: Optional[Session] = None,
    ) -> None:
        if isinstance(cfg, str):
            cfg = GatewayConfig(base_url=cfg)
        self.cfg = cfg
        self.base = cfg.base_url.rstrip("/") + "/"
        self.schema = cfg.schema
        self.timeout = float(cfg.timeout)
        self.verify = cfg.verify
        self.logger = logging.getLogger("coselpro.http")

        self.session = http if http is not None else self._build_session()

    def close(self) -> None:
        """Close the underlying HTTP session."""
        try:
            self.session.close()
        except Exception:
            pass

    def __enter__(self) -> "GatewayClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"GatewayClient(base={self.base!r}, schema={self.schema!r})"

    # ---------------- session ----------------

    def _build_session(self) -> Session:
        sess = requests.Session()
        sess.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": self.cfg.user_agent,
        })

        retry = Retry(
            total=self.cfg.retries,
            backoff_factor=self.cfg.backoff,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset({"GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry, pool_connections=20, pool_maxsize=50)
        sess.mount("https://", adapter)
        sess.mount("http://", adapter)
        return sess

    def with_schema(self, schema: str) -> "GatewayClient":
        """Return a handle targeting another schema, sharing this HTTP session."""
        clone = GatewayClient(self.cfg, http=self.session)
        clone.schema = schema
        return clone

    # ---------------- helpers ----------------

    def _url(self, path: str) -> str:
        return f"{self.base}{path.lstrip('/')}"

    def _headers(
        self,
        method: str,
        token: Optional[str] = None,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self.schema:
            if method.upper() in _READ_METHODS:
                headers["Accept-Profile"] = self.schema
            else:
                headers["Content-Profile"] = self.schema
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if extra_headers:
            headers.update(extra_headers)
        return headers

    def _extract_gateway_error(self, r: Response) -> str:
        try:
            data = r.json()
        except Exception:
            return r.text
        if not isinstance(data, dict):
            return r.text

        parts = []
        for key in ("code", "message", "details", "hint"):
            value = data.get(key)
            if value:
                parts.append(f"{key}={value}")
        return " | ".join(parts) or r.text

    def _raise_for_error(self, r: Response, url: str) -> None:
        if r.status_code >= 400 or r.status_code in (301, 302, 303, 307, 308):
            body = self._extract_gateway_error(r)
            raise GatewayUpstreamError(r.status_code, body, url, dict(r.headers))

    # ---------------- public ops ----------------

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Union[Dict[str, str], Sequence[Tuple[str, str]]]] = None,
        data: Optional[str] = None,
        token: Optional[str] = None,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> Response:
        """
        Execute a request against a gateway path.

        Parameters
        ----------
        method : str
            HTTP method
        path : str
            Path relative to the gateway root, e.g. "company" or "rpc/login"
        params : dict, optional
            Query string parameters
        data : str, optional
            Request body, already serialized
        token : str, optional
            Bearer token for this request only
        extra_headers : dict, optional
            Additional HTTP headers

        Returns
        -------
        Response
            The HTTP response (2xx only)

        Raises
        ------
        GatewayUpstreamError
            On a non-2xx response
        requests.RequestException
            When the gateway cannot be reached
        """
        url = self._url(path)
        t0 = time.perf_counter()
        r = self.session.request(
            method=method,
            url=url,
            params=params,
            headers=self._headers(method, token, extra_headers),
            data=data,
            timeout=self.timeout,
            verify=self.verify,
        )
        self._raise_for_error(r, url)
        dt = (time.perf_counter() - t0) * 1000.0
        self.logger.debug("%s %s %sms", method.upper(), url, round(dt, 1))
        return r

    def rpc(
        self,
        function: str,
        payload: Optional[Dict[str, Any]] = None,
        *,
        token: Optional[str] = None,
    ) -> Response:
        """
        Call a named gateway function.

        An empty or missing payload sends an empty body.
        """
        data = json.dumps(payload, separators=(",", ":")) if payload else ""
        return self.request("POST", f"rpc/{function}", data=data, token=token)

    def from_(self, table: str, *, token: Optional[str] = None) -> RequestBuilder:
        """Start a query against a table of the current schema."""
        return RequestBuilder(self, table, token=token)
