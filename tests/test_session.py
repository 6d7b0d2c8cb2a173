"""Tests for the psycopg2-backed storage session."""

from unittest.mock import MagicMock

import psycopg2
import pytest

from procmap import Direction, ParameterSet, ProcedureError
from procmap.db import session as session_module
from procmap.db.session import StorageSession, open_session


@pytest.fixture
def conn():
    connection = MagicMock()
    cursor = connection.cursor.return_value.__enter__.return_value
    cursor.description = [("Id",)]
    return connection


def _cursor(conn):
    return conn.cursor.return_value.__enter__.return_value


class TestExecute:
    def test_captures_output_parameters(self, conn):
        _cursor(conn).fetchone.return_value = {"Id": 17}
        params = ParameterSet()
        params.add("UserName", "tester")
        params.add("Id", 0, Direction.INPUT_OUTPUT)

        StorageSession(conn, "Default").execute("UserSave", params)

        _cursor(conn).callproc.assert_called_once_with("UserSave", {"UserName": "tester", "Id": 0})
        assert params.get("Id") == 17

    def test_no_result_set(self, conn):
        _cursor(conn).description = None
        params = ParameterSet()
        params.add("Id", 4)

        StorageSession(conn, "Default").execute("UserDelete", params)

        _cursor(conn).fetchone.assert_not_called()
        assert params.get("Id") == 4

    def test_database_error_becomes_procedure_error(self, conn):
        _cursor(conn).callproc.side_effect = psycopg2.ProgrammingError("function usersave does not exist")

        with pytest.raises(ProcedureError, match="UserSave: function usersave does not exist") as excinfo:
            StorageSession(conn, "Default").execute("UserSave", {"Id": 0})
        assert excinfo.value.procedure == "UserSave"


class TestQuery:
    def test_returns_plain_dicts(self, conn):
        _cursor(conn).fetchall.return_value = [{"Id": 1, "Name": "admin"}]

        rows = StorageSession(conn, "Default").query("RoleGet", {"Id": 1})

        assert rows == [{"Id": 1, "Name": "admin"}]
        assert type(rows[0]) is dict
        _cursor(conn).callproc.assert_called_once_with("RoleGet", {"Id": 1})

    def test_no_parameters(self, conn):
        _cursor(conn).fetchall.return_value = []

        assert StorageSession(conn, "Default").query("RoleGetAll") == []
        _cursor(conn).callproc.assert_called_once_with("RoleGetAll", {})

    def test_no_result_set(self, conn):
        _cursor(conn).description = None

        assert StorageSession(conn, "Default").query("RoleGetAll") == []

    def test_database_error(self, conn):
        _cursor(conn).callproc.side_effect = psycopg2.OperationalError("server closed the connection")

        with pytest.raises(ProcedureError, match="RoleGetAll"):
            StorageSession(conn, "Default").query("RoleGetAll")


class TestSavepoint:
    def _statements(self, conn):
        return [c.args[0] for c in _cursor(conn).execute.call_args_list]

    def test_released_on_success(self, conn):
        with StorageSession(conn, "Default").savepoint():
            pass

        assert self._statements(conn) == ["SAVEPOINT procmap_savepoint", "RELEASE SAVEPOINT procmap_savepoint"]

    def test_rolled_back_on_procedure_error(self, conn):
        with pytest.raises(ProcedureError):
            with StorageSession(conn, "Default").savepoint("lookup"):
                raise ProcedureError("UserRoleGetForUser", "boom")

        assert self._statements(conn) == ["SAVEPOINT lookup", "ROLLBACK TO SAVEPOINT lookup"]


class TestOpenSession:
    @pytest.fixture
    def pool(self, monkeypatch, conn):
        released = []
        monkeypatch.setattr(session_module, "get_connection", lambda name: conn)
        monkeypatch.setattr(session_module, "release_connection", lambda c, name: released.append((c, name)))
        return released

    def test_commits_and_releases(self, conn, pool):
        with open_session() as session:
            assert session.connection_name == "Default"

        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()
        assert pool == [(conn, "Default")]

    def test_rolls_back_on_error(self, conn, pool):
        with pytest.raises(ProcedureError):
            with open_session("Reporting"):
                raise ProcedureError("UserSave", "boom")

        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        assert pool == [(conn, "Reporting")]
