"""
coselpro.procurement.base - Base class for procurement clients
==============================================================
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from coselpro.core.connection import ConnectionContext
    from coselpro.core.session import CoSelPro


class ProcurementClient:
    """
    Base class for CoSelPro domain clients.

    Parameters
    ----------
    connection : ConnectionContext or CoSelPro
        Connection manager or authenticated session

    With a ConnectionContext the current session is looked up on every call,
    so a renewal through the context is picked up.
    """

    def __init__(self, connection: "ConnectionContext | CoSelPro") -> None:
        # Handle both ConnectionContext and raw session
        from coselpro.core.connection import ConnectionContext
        from coselpro.core.session import CoSelPro

        if isinstance(connection, ConnectionContext):
            self._conn: Optional[ConnectionContext] = connection
            self._session: Optional[CoSelPro] = None
        elif isinstance(connection, CoSelPro):
            self._conn = None
            self._session = connection
        else:
            raise TypeError(
                f"Expected ConnectionContext or CoSelPro, got {type(connection)}"
            )

    @property
    def session(self) -> "CoSelPro":
        """The authenticated session requests go through."""
        if self._conn is not None:
            return self._conn.session
        assert self._session is not None
        return self._session

    def query(
        self,
        table: str,
        *,
        columns: Optional[List[str]] = None,
        filters: Optional[Dict[str, Any]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Read rows from a table with equality filters.

        Parameters
        ----------
        table : str
            Table or view name
        columns : list of str, optional
            Columns to select (all when omitted)
        filters : dict, optional
            ``column -> value`` equality filters
        order : str, optional
            Column to sort on, ascending
        limit : int, optional
            Maximum rows

        Returns
        -------
        list of dict
            Query results
        """
        builder = self.session.scoped(table).select(*(columns or []))
        for column, value in (filters or {}).items():
            builder = builder.eq(column, value)
        if order:
            builder = builder.order(order)
        if limit is not None:
            builder = builder.limit(limit)
        return builder.json() or []
