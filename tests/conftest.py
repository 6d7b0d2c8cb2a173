"""Pytest configuration and fixtures."""

from collections import defaultdict
from contextlib import contextmanager

import pytest

from procmap import AuditContext, Engine, ParameterSet, ProcedureError
from tests.entities import User

AUDIT_PARAMS = ("UserName", "IP")


class FakeSession:
    def __init__(self, storage: "FakeStorage"):
        self.storage = storage

    def execute(self, procedure, params=None):
        self.storage.execute(procedure, params)

    def query(self, procedure, params=None):
        return self.storage.query(procedure, params)

    @contextmanager
    def savepoint(self, name="procmap_savepoint"):
        self.storage.savepoints += 1
        yield


class FakeStorage:
    """
    In-memory stand-in for the stored procedures, driven by the naming
    convention. Records every call and can be told to fail a procedure.
    """

    def __init__(self):
        self.tables: dict[str, dict[int, dict]] = defaultdict(dict)
        self.calls: list[tuple[str, dict]] = []
        self.failing: set[str] = set()
        self.sessions_opened = 0
        self.savepoints = 0
        self._next_id: dict[str, int] = defaultdict(int)

    @contextmanager
    def open(self, connection_name=None):
        self.sessions_opened += 1
        yield FakeSession(self)

    # ── procedures ────────────────────────────────────────

    def execute(self, procedure, params=None):
        values = params.as_dict() if isinstance(params, ParameterSet) else dict(params or {})
        self.calls.append((procedure, values))
        if procedure in self.failing:
            raise ProcedureError(procedure, "injected failure")

        if procedure.endswith("Save"):
            table = procedure[: -len("Save")]
            row = {k: v for k, v in values.items() if k not in AUDIT_PARAMS}
            entity_id = row.get("Id") or 0
            if entity_id:
                self.tables[table].setdefault(entity_id, {}).update(row)
            else:
                self._next_id[table] += 1
                entity_id = self._next_id[table]
                row["Id"] = entity_id
                self.tables[table][entity_id] = row
            if isinstance(params, ParameterSet):
                params.capture({"Id": entity_id})
        elif procedure.endswith("Delete"):
            self.tables[procedure[: -len("Delete")]].pop(values["Id"], None)
        else:
            raise ProcedureError(procedure, "unknown procedure")

    def query(self, procedure, params=None):
        values = dict(params or {})
        self.calls.append((procedure, values))
        if procedure in self.failing:
            raise ProcedureError(procedure, "injected failure")

        if "GetFor" in procedure:
            child, parent = procedure.split("GetFor")
            key = f"{parent}Id"
            return [dict(r) for _, r in sorted(self.tables[child].items()) if r.get(key) == values[key]]
        if procedure.endswith("GetAll"):
            table = procedure[: -len("GetAll")]
            return [
                dict(r) for _, r in sorted(self.tables[table].items())
                if all(r.get(k) == v for k, v in values.items())
            ]
        if procedure.endswith("Get"):
            row = self.tables[procedure[: -len("Get")]].get(values["Id"])
            return [dict(row)] if row else []
        raise ProcedureError(procedure, "unknown procedure")

    # ── helpers ───────────────────────────────────────────

    def procedures(self) -> list[str]:
        return [name for name, _ in self.calls]

    def writes(self) -> list[str]:
        return [p for p in self.procedures() if p.endswith(("Save", "Delete"))]

    def insert(self, table: str, **row) -> int:
        """Store a row directly, bypassing the engine."""
        self._next_id[table] += 1
        row["Id"] = self._next_id[table]
        self.tables[table][row["Id"]] = row
        return row["Id"]


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def audit():
    return AuditContext(user_name="tester", ip="10.0.0.1")


@pytest.fixture
def engine(storage, audit):
    return Engine(session_factory=storage.open, audit=audit)


@pytest.fixture
def make_user():
    def _make(**overrides):
        fields = dict(
            uid="u1",
            first_name="John",
            last_name="Doe",
            email="j@d.com",
            language_code="en",
        )
        fields.update(overrides)
        return User(**fields)

    return _make
