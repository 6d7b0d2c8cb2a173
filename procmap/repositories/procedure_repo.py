"""
procmap/repositories/procedure_repo.py
--------------------------------------
Data access layer for entity procedures.
Every stored-procedure name the engine calls is built here.
"""

from collections.abc import Mapping
from contextlib import AbstractContextManager
from typing import Any, Optional

from procmap.audit import AuditContext
from procmap.exceptions import ProcedureError
from procmap.models.fields import ID_COLUMN
from procmap.models.parameters import ParameterSet
from procmap.utils.logger import get_logger

logger = get_logger(__name__)


def save_procedure(type_name: str) -> str:
    return f"{type_name}Save"


def delete_procedure(type_name: str) -> str:
    return f"{type_name}Delete"


def get_procedure(type_name: str) -> str:
    return f"{type_name}Get"


def get_all_procedure(type_name: str) -> str:
    return f"{type_name}GetAll"


def children_procedure(child_name: str, parent_name: str) -> str:
    return f"{child_name}GetFor{parent_name}"


def row_id(row: Mapping[str, Any]) -> Optional[int]:
    """The ``Id`` column of a row, matched case-insensitively."""
    if ID_COLUMN in row:
        return row[ID_COLUMN]
    for key, value in row.items():
        if str(key).lower() == ID_COLUMN.lower():
            return value
    return None


class ProcedureRepository:
    """Runs entity procedures on one open storage session."""

    def __init__(self, session):
        self.session = session

    def savepoint(self) -> AbstractContextManager:
        return self.session.savepoint()

    # ── SAVE ──────────────────────────────────────────────

    def save(self, type_name: str, params: ParameterSet) -> int:
        """
        Insert or update a row through ``{Type}Save``.

        Args:
            type_name: Registered entity name.
            params: Audit and entity parameters; ``Id`` must be input/output.

        Returns:
            The identifier handed back by the procedure.

        Raises:
            ProcedureError: If the procedure fails or returns no identifier.
        """
        procedure = save_procedure(type_name)
        self.session.execute(procedure, params)
        entity_id = params.get(ID_COLUMN)
        if not entity_id:
            raise ProcedureError(procedure, "returned no identifier")
        logger.info(f"Saved {type_name} #{entity_id}")
        return int(entity_id)

    # ── DELETE ────────────────────────────────────────────

    def delete(self, type_name: str, entity_id: int, audit: AuditContext) -> None:
        """Delete one row through ``{Type}Delete``."""
        params = ParameterSet()
        for name, value in audit.as_parameters().items():
            params.add(name, value)
        params.add(ID_COLUMN, entity_id)
        self.session.execute(delete_procedure(type_name), params)
        logger.info(f"Deleted {type_name} #{entity_id}")

    # ── READ ──────────────────────────────────────────────

    def get(self, type_name: str, entity_id: int) -> Optional[dict[str, Any]]:
        """
        Fetch a single row through ``{Type}Get``.

        Returns:
            The first row, or None if the procedure returned nothing.
        """
        rows = self.session.query(get_procedure(type_name), {ID_COLUMN: entity_id})
        return rows[0] if rows else None

    def get_all(
        self, type_name: str, filters: Optional[Mapping[str, Any]] = None
    ) -> list[dict[str, Any]]:
        """Fetch every row ``{Type}GetAll`` returns for the given filters."""
        return self.session.query(get_all_procedure(type_name), dict(filters or {}))

    def get_children(
        self, child_name: str, parent_name: str, parent_id: int
    ) -> list[dict[str, Any]]:
        """Fetch the child rows stored under one parent."""
        return self.session.query(
            children_procedure(child_name, parent_name),
            {f"{parent_name}Id": parent_id},
        )
