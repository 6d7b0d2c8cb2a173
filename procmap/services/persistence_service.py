"""
procmap/services/persistence_service.py
---------------------------------------
Save cascade and delete.

A save validates the whole graph, writes the entity, then reconciles each
declared child collection against what is already stored: children in the
collection are saved, stored children missing from it are deleted.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from procmap.audit import AuditContext
from procmap.config import MAX_DEPTH
from procmap.exceptions import ProcedureError, ValidationError
from procmap.mapping import to_parameters
from procmap.models.entity import EntityMeta
from procmap.models.parameters import ParameterSet
from procmap.models.relationships import HasManyLink
from procmap.registry import Registry
from procmap.repositories.procedure_repo import ProcedureRepository, row_id
from procmap.services.traversal import Traversal
from procmap.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReconciliationSkipped:
    """
    Stored children of one relationship could not be listed, so no
    removed-child deletions were made for it on this save.
    """

    parent_type: str
    child_type: str
    parent_id: int
    cause: Exception


@dataclass
class SaveResult:
    """
    Outcome of ``save``. Truthy when the entity was written.

    Attributes:
        saved: False only when validation rejected the graph.
        errors: Validation messages (empty when saved).
        skipped: Relationships whose reconciliation could not run.
    """

    saved: bool
    errors: list[str] = field(default_factory=list)
    skipped: list[ReconciliationSkipped] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.saved

    def raise_for_errors(self) -> None:
        """Raise ValidationError if the save was rejected."""
        if not self.saved:
            raise ValidationError(self.errors)


@dataclass
class _SaveCall:
    """State shared by every step of one top-level save."""

    repo: ProcedureRepository
    audit: AuditContext
    cascade_children: bool
    force_write_empty_collections: bool
    traversal: Traversal
    result: SaveResult
    # (object, attribute, previous value) for every assignment made on the graph.
    assigned: list[tuple[Any, str, Any]] = field(default_factory=list)

    def assign(self, obj: Any, attribute: str, value: Any) -> None:
        self.assigned.append((obj, attribute, getattr(obj, attribute, None)))
        setattr(obj, attribute, value)

    def undo(self) -> None:
        """Put back every value changed during a save that was rolled back."""
        for obj, attribute, previous in reversed(self.assigned):
            setattr(obj, attribute, previous)
        self.assigned.clear()


class PersistenceService:
    """Writes entity graphs through their Save and Delete procedures."""

    def __init__(
        self,
        registry: Registry,
        session_factory: Callable[[Optional[str]], Any],
        connection_name: Optional[str] = None,
        audit: Optional[AuditContext] = None,
        max_depth: int = MAX_DEPTH,
    ):
        self.registry = registry
        self.session_factory = session_factory
        self.connection_name = connection_name
        self.audit = audit or AuditContext()
        self.max_depth = max_depth

    # ── SAVE ──────────────────────────────────────────────

    def save(
        self,
        entity: Any,
        cascade_children: bool = True,
        force_write_empty_collections: bool = False,
        context: Optional[AuditContext] = None,
    ) -> SaveResult:
        """
        Validate and save an entity and, optionally, its child collections.

        Args:
            entity: A registered entity instance.
            cascade_children: Save and reconcile has-many collections.
            force_write_empty_collections: Treat an unset (None) collection
                as empty, deleting every stored child of that relationship.
            context: Audit identity for this call (defaults to the service's).

        Ids and foreign keys assigned during a failed save are restored to
        their previous values before the error propagates.

        Returns:
            SaveResult. Validation failures are reported here; nothing is
            written and no session is opened.

        Raises:
            ProcedureError: A save or delete procedure failed. The session is
                rolled back.
            StorageConnectionError: No session could be opened.
            CycleError: The graph loops back on itself or is too deep.
        """
        self.registry.finalize()
        meta = self.registry.get(type(entity))

        valid, errors = entity.validate(max_depth=self.max_depth)
        if not valid:
            logger.warning(f"{meta.name} not saved: {len(errors)} validation error(s)")
            return SaveResult(saved=False, errors=errors)

        result = SaveResult(saved=True)
        call = None
        try:
            with self.session_factory(self.connection_name) as session:
                call = _SaveCall(
                    repo=ProcedureRepository(session),
                    audit=context or self.audit,
                    cascade_children=cascade_children,
                    force_write_empty_collections=force_write_empty_collections,
                    traversal=Traversal(self.max_depth),
                    result=result,
                )
                self._save(call, entity)
        except Exception:
            if call is not None:
                call.undo()
                logger.warning(f"{meta.name} save rolled back; in-memory ids restored")
            raise
        return result

    def _save(self, call: _SaveCall, entity: Any) -> None:
        meta = self.registry.get(type(entity))
        with call.traversal.visit(id(entity), f"{meta.name}#{entity.id or 'new'}"):
            params = ParameterSet()
            for name, value in call.audit.as_parameters().items():
                params.add(name, value)
            for param in to_parameters(entity):
                params.add(param.name, param.value, param.direction)

            call.assign(entity, "id", call.repo.save(meta.name, params))

            if not call.cascade_children:
                return
            for link in meta.children:
                self._reconcile(call, meta, entity, link)

    def _reconcile(self, call: _SaveCall, meta: EntityMeta, entity: Any, link: HasManyLink) -> None:
        children = getattr(entity, link.collection_field, None)
        if children is None:
            if not call.force_write_empty_collections:
                return
            children = []

        stale_ids = self._stored_child_ids(call, meta, entity.id, link)
        for child in children:
            stale_ids.discard(child.id)
            call.assign(child, link.foreign_key.name, entity.id)
            self._save(call, child)

        for child_id in sorted(stale_ids):
            call.repo.delete(link.child_name, child_id, call.audit)

    def _stored_child_ids(
        self, call: _SaveCall, meta: EntityMeta, parent_id: int, link: HasManyLink
    ) -> set[int]:
        """
        Ids of the children currently stored under the parent.

        A failing lookup does not abort the save; it is recorded on the
        result and nothing is deleted for this relationship.
        """
        try:
            with call.repo.savepoint():
                rows = call.repo.get_children(link.child_name, meta.name, parent_id)
        except ProcedureError as e:
            logger.warning(
                f"Could not list {link.child_name} for {meta.name} #{parent_id}; "
                f"removed children will not be deleted: {e}"
            )
            call.result.skipped.append(
                ReconciliationSkipped(meta.name, link.child_name, parent_id, e)
            )
            return set()
        return {int(i) for i in (row_id(r) for r in rows) if i}

    # ── DELETE ────────────────────────────────────────────

    def delete(
        self,
        target: Any,
        entity_id: Optional[int] = None,
        context: Optional[AuditContext] = None,
    ) -> bool:
        """
        Delete one stored entity through its Delete procedure.
        Child rows are not touched.

        Args:
            target: An entity instance, or an entity class with ``entity_id``.
            entity_id: Id to delete (defaults to the instance's id).
            context: Audit identity for this call.

        Returns:
            False for an unsaved entity (nothing to delete), True otherwise.
        """
        cls = target if isinstance(target, type) else type(target)
        if entity_id is None and not isinstance(target, type):
            entity_id = target.id
        meta = self.registry.get(cls)
        if not entity_id:
            return False

        with self.session_factory(self.connection_name) as session:
            ProcedureRepository(session).delete(meta.name, entity_id, context or self.audit)
        return True
