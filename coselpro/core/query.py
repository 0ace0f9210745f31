"""
coselpro.core.query - Table query builder
=========================================

Fluent, single-use request builder for PostgREST-style table access.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, TYPE_CHECKING
import json

from requests import Response

if TYPE_CHECKING:
    from coselpro.core.client import GatewayClient

_RESERVED = set(',.:()"\\ ')


def render_filter_value(value: Any) -> str:
    """Render a scalar for the right-hand side of a PostgREST filter."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def quote_filter_value(value: Any) -> str:
    """
    Render a value for use inside a PostgREST ``in.(...)`` list.

    Strings holding reserved characters are double-quoted with backslash
    escapes.

    Examples
    --------
    >>> quote_filter_value("a,b")
    '"a,b"'
    """
    text = render_filter_value(value)
    if any(c in _RESERVED for c in text):
        return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'
    return text


def _join_csv(items: Sequence[str]) -> str:
    """Join items as comma-separated values, stripping whitespace."""
    return ",".join([s.strip() for s in items if s and s.strip()])


class RequestBuilder:
    """
    Query builder for one table of the client's schema.

    Parameters
    ----------
    client : GatewayClient
        Gateway handle the request is sent through
    table : str
        Table or view name
    token : str, optional
        Bearer token sent with the request

    Examples
    --------
    >>> rows = (
    ...     session.scoped("company")
    ...     .select("company_id", "company")
    ...     .ilike("company", "ti*")
    ...     .order("company")
    ...     .limit(50)
    ...     .json()
    ... )
    """

    def __init__(
        self,
        client: "GatewayClient",
        table: str,
        *,
        token: Optional[str] = None,
    ) -> None:
        self.client = client
        self.table = table
        self.token = token
        self.method = "GET"
        self.params: List[Tuple[str, str]] = []
        self.headers: Dict[str, str] = {}
        self.body: Optional[str] = None

    def __repr__(self) -> str:
        return f"RequestBuilder(table={self.table!r}, method={self.method!r}, params={self.params!r})"

    # ---------------- verbs ----------------

    def select(self, *columns: str) -> "RequestBuilder":
        """Read rows; no columns selects all of them."""
        self.method = "GET"
        self.params.append(("select", _join_csv(columns) or "*"))
        return self

    def insert(self, rows: "Dict[str, Any] | Iterable[Dict[str, Any]]") -> "RequestBuilder":
        """Insert one row or a list of rows, returning the stored representation."""
        self.method = "POST"
        if not isinstance(rows, dict):
            rows = list(rows)
        self.body = json.dumps(rows, separators=(",", ":"), default=str)
        self.headers["Prefer"] = "return=representation"
        return self

    def update(self, values: Dict[str, Any]) -> "RequestBuilder":
        """Update rows matched by the filters."""
        self.method = "PATCH"
        self.body = json.dumps(values, separators=(",", ":"), default=str)
        self.headers["Prefer"] = "return=representation"
        return self

    def delete(self) -> "RequestBuilder":
        """Delete rows matched by the filters."""
        self.method = "DELETE"
        self.headers["Prefer"] = "return=representation"
        return self

    # ---------------- filters ----------------

    def filter(self, column: str, operator: str, value: Any) -> "RequestBuilder":
        """Add a raw ``column=operator.value`` filter."""
        self.params.append((column, f"{operator}.{render_filter_value(value)}"))
        return self

    def eq(self, column: str, value: Any) -> "RequestBuilder":
        return self.filter(column, "eq", value)

    def neq(self, column: str, value: Any) -> "RequestBuilder":
        return self.filter(column, "neq", value)

    def gt(self, column: str, value: Any) -> "RequestBuilder":
        return self.filter(column, "gt", value)

    def gte(self, column: str, value: Any) -> "RequestBuilder":
        return self.filter(column, "gte", value)

    def lt(self, column: str, value: Any) -> "RequestBuilder":
        return self.filter(column, "lt", value)

    def lte(self, column: str, value: Any) -> "RequestBuilder":
        return self.filter(column, "lte", value)

    def like(self, column: str, pattern: str) -> "RequestBuilder":
        # patterns use * as wildcard, never quoted
        self.params.append((column, f"like.{pattern}"))
        return self

    def ilike(self, column: str, pattern: str) -> "RequestBuilder":
        self.params.append((column, f"ilike.{pattern}"))
        return self

    def is_(self, column: str, value: Optional[bool]) -> "RequestBuilder":
        return self.filter(column, "is", value)

    def in_(self, column: str, values: Iterable[Any]) -> "RequestBuilder":
        items = ",".join(quote_filter_value(v) for v in values)
        self.params.append((column, f"in.({items})"))
        return self

    # ---------------- modifiers ----------------

    def order(self, column: str, *, desc: bool = False) -> "RequestBuilder":
        self.params.append(("order", f"{column}.{'desc' if desc else 'asc'}"))
        return self

    def limit(self, count: int) -> "RequestBuilder":
        self.params.append(("limit", str(int(count))))
        return self

    def offset(self, count: int) -> "RequestBuilder":
        self.params.append(("offset", str(int(count))))
        return self

    # ---------------- execution ----------------

    def execute(self) -> Response:
        """
        Send the request.

        Raises
        ------
        GatewayUpstreamError
            On a non-2xx response
        """
        return self.client.request(
            self.method,
            self.table,
            params=self.params,
            data=self.body,
            token=self.token,
            extra_headers=self.headers or None,
        )

    def json(self) -> Any:
        """Send the request and decode the JSON body (None when empty)."""
        r = self.execute()
        if not r.content:
            return None
        return r.json()
