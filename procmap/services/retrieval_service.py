"""
procmap/services/retrieval_service.py
-------------------------------------
Get by id, get all, and lazy materialization of declared relationships.
"""

from collections.abc import Mapping
from typing import Any, Callable, Optional, TypeVar

from procmap.config import MAX_DEPTH
from procmap.mapping import from_row
from procmap.registry import Registry
from procmap.repositories.procedure_repo import ProcedureRepository
from procmap.services.traversal import Traversal
from procmap.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RetrievalService:
    """Reads entities through their Get, GetAll and GetFor procedures."""

    def __init__(
        self,
        registry: Registry,
        session_factory: Callable[[Optional[str]], Any],
        connection_name: Optional[str] = None,
        max_depth: int = MAX_DEPTH,
    ):
        self.registry = registry
        self.session_factory = session_factory
        self.connection_name = connection_name
        self.max_depth = max_depth

    def get(self, cls: type[T], entity_id: Optional[int], lazy_load: bool = False) -> Optional[T]:
        """
        Fetch one entity by id.

        An id of 0 (or None) is never stored, so it returns None without
        touching storage.

        Args:
            cls: Registered entity class.
            entity_id: Primary key.
            lazy_load: Also load every declared relationship, recursively.

        Returns:
            The entity, or None if no row came back.
        """
        if not entity_id:
            return None
        self.registry.finalize()
        meta = self.registry.get(cls)

        with self.session_factory(self.connection_name) as session:
            repo = ProcedureRepository(session)
            row = repo.get(meta.name, entity_id)
            if row is None:
                logger.debug(f"{meta.name} #{entity_id} not found")
                return None
            obj = from_row(cls, row)
            if lazy_load:
                self._load(repo, obj, Traversal(self.max_depth))
        return obj

    def get_all(self, cls: type[T], parameters: Optional[Mapping[str, Any]] = None) -> list[T]:
        """
        Fetch every entity the GetAll procedure returns for ``parameters``.
        Relationships are not loaded.

        Returns:
            List of entities (empty when nothing matches).
        """
        self.registry.finalize()
        meta = self.registry.get(cls)
        with self.session_factory(self.connection_name) as session:
            rows = ProcedureRepository(session).get_all(meta.name, parameters)
        return [from_row(cls, row) for row in rows]

    def load_relationships(self, entity: T) -> T:
        """
        Attach every declared relationship of ``entity``, recursively.

        Has-many collections are replaced with the stored children (an empty
        list when there are none). Belongs-to parents are attached to their
        declared field when the foreign key is set.

        Raises:
            CycleError: A relationship leads back to an entity already on the path.
        """
        self.registry.finalize()
        with self.session_factory(self.connection_name) as session:
            self._load(ProcedureRepository(session), entity, Traversal(self.max_depth))
        return entity

    def _load(self, repo: ProcedureRepository, entity: Any, traversal: Traversal) -> None:
        meta = self.registry.get(type(entity))
        with traversal.visit((meta.name, entity.id), f"{meta.name}#{entity.id}"):
            if entity.id:
                for link in meta.children:
                    rows = repo.get_children(link.child_name, meta.name, entity.id)
                    children = [from_row(link.child, row) for row in rows]
                    for child in children:
                        self._load(repo, child, traversal)
                    setattr(entity, link.collection_field, children)

            for link in meta.parents:
                if link.parent_field is None:
                    continue
                parent_id = getattr(entity, link.foreign_key.name, None)
                if not parent_id:
                    continue
                row = repo.get(link.parent_name, parent_id)
                if row is None:
                    continue
                parent = from_row(link.parent, row)
                self._load(repo, parent, traversal)
                setattr(entity, link.parent_field, parent)
