"""
procmap/db/session.py
---------------------
Storage session: the only two call shapes the engine uses against the
database, ``execute`` and ``query``, both routed through ``cursor.callproc``.

psycopg2 renders a dict of parameters as named arguments
(``SELECT * FROM UserSave("Id" := %s, ...)``). Argument names are quoted, so
the stored functions must declare them with the same casing; the function
name itself is not quoted and folds to lower case on the server.
"""

from collections.abc import Mapping
from contextlib import contextmanager
from typing import Any, Generator, Optional, Union

import psycopg2
from psycopg2 import extras

from procmap.config import normalize_connection_name
from procmap.db.connection import get_connection, release_connection
from procmap.exceptions import ProcedureError
from procmap.models.parameters import ParameterSet
from procmap.utils.logger import get_logger

logger = get_logger(__name__)

Params = Union[ParameterSet, Mapping[str, Any], None]


def _values(params: Params) -> dict[str, Any]:
    if params is None:
        return {}
    if isinstance(params, ParameterSet):
        return params.as_dict()
    return dict(params)


class StorageSession:
    """A single open connection used for the whole of one engine call."""

    def __init__(self, conn, connection_name: str):
        self._conn = conn
        self.connection_name = connection_name

    def execute(self, procedure: str, params: Params = None) -> None:
        """
        Run a stored procedure for its side effects.

        If the procedure returns a row and ``params`` is a ParameterSet, the
        output parameters are captured from that row.

        Raises:
            ProcedureError: If the procedure fails on the server.
        """
        logger.debug(f"EXECUTE {procedure} {_values(params)}")
        row = None
        try:
            with self._conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.callproc(procedure, _values(params))
                if cur.description is not None:
                    row = cur.fetchone()
        except psycopg2.Error as e:
            logger.error(f"Procedure {procedure} failed: {e}")
            raise ProcedureError(procedure, str(e).strip()) from e
        if row is not None and isinstance(params, ParameterSet):
            params.capture(row)

    def query(self, procedure: str, params: Params = None) -> list[dict[str, Any]]:
        """
        Run a stored procedure and return every row it produces.

        Returns:
            List of ``column -> value`` dicts (empty if no rows).

        Raises:
            ProcedureError: If the procedure fails on the server.
        """
        logger.debug(f"QUERY {procedure} {_values(params)}")
        try:
            with self._conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.callproc(procedure, _values(params))
                rows = cur.fetchall() if cur.description is not None else []
        except psycopg2.Error as e:
            logger.error(f"Procedure {procedure} failed: {e}")
            raise ProcedureError(procedure, str(e).strip()) from e
        return [dict(r) for r in rows]

    @contextmanager
    def savepoint(self, name: str = "procmap_savepoint") -> Generator[None, None, None]:
        """
        Run a block inside a savepoint so a failing procedure does not
        abort the surrounding transaction.
        """
        with self._conn.cursor() as cur:
            cur.execute(f"SAVEPOINT {name}")
        try:
            yield
        except ProcedureError:
            with self._conn.cursor() as cur:
                cur.execute(f"ROLLBACK TO SAVEPOINT {name}")
            raise
        with self._conn.cursor() as cur:
            cur.execute(f"RELEASE SAVEPOINT {name}")


@contextmanager
def open_session(connection_name: Optional[str] = None) -> Generator[StorageSession, None, None]:
    """
    Open a storage session for one engine call.

    Commits when the block completes, rolls back and re-raises otherwise.

    Usage:
        with open_session("Default") as session:
            rows = session.query("UserGet", {"Id": 1})

    Raises:
        StorageConnectionError: If the connection name cannot be resolved.
    """
    name = normalize_connection_name(connection_name)
    conn = get_connection(name)
    try:
        yield StorageSession(conn, name)
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        release_connection(conn, name)
