"""
procmap/engine.py
-----------------
Entry point wiring the registry, the storage session factory and the
persistence / retrieval services together.

Usage:
    engine = Engine(audit=AuditContext.for_process())
    user = User(uid="u1", first_name="John", last_name="Doe",
                email="j@d.com", language_code="en")
    engine.save(user).raise_for_errors()
    same = engine.get(User, user.id, lazy_load=True)
"""

from collections.abc import Mapping
from typing import Any, Callable, Optional, TypeVar

from procmap.audit import AuditContext
from procmap.config import MAX_DEPTH
from procmap.db.session import open_session
from procmap.registry import Registry, default_registry
from procmap.services.persistence_service import PersistenceService, SaveResult
from procmap.services.retrieval_service import RetrievalService

T = TypeVar("T")


class Engine:
    """
    Facade over PersistenceService and RetrievalService.

    Args:
        registry: Entity registry (defaults to the one behind ``@entity``).
        session_factory: ``factory(connection_name)`` returning a context
            manager that yields a storage session.
        connection_name: Named connection to use (blank means "Default").
        audit: Default acting identity for writes.
        max_depth: Deepest recursion allowed for saves and loads.
    """

    def __init__(
        self,
        registry: Optional[Registry] = None,
        session_factory: Callable[[Optional[str]], Any] = open_session,
        connection_name: Optional[str] = None,
        audit: Optional[AuditContext] = None,
        max_depth: int = MAX_DEPTH,
    ):
        self.registry = registry if registry is not None else default_registry
        self.persistence = PersistenceService(
            self.registry, session_factory, connection_name, audit, max_depth
        )
        self.retrieval = RetrievalService(
            self.registry, session_factory, connection_name, max_depth
        )

    def validate(self, entity: Any) -> tuple[bool, list[str]]:
        return entity.validate(max_depth=self.persistence.max_depth)

    def save(
        self,
        entity: Any,
        cascade_children: bool = True,
        force_write_empty_collections: bool = False,
        context: Optional[AuditContext] = None,
    ) -> SaveResult:
        return self.persistence.save(
            entity, cascade_children, force_write_empty_collections, context
        )

    def delete(
        self,
        target: Any,
        entity_id: Optional[int] = None,
        context: Optional[AuditContext] = None,
    ) -> bool:
        return self.persistence.delete(target, entity_id, context)

    def get(self, cls: type[T], entity_id: Optional[int], lazy_load: bool = False) -> Optional[T]:
        return self.retrieval.get(cls, entity_id, lazy_load)

    def get_all(self, cls: type[T], parameters: Optional[Mapping[str, Any]] = None) -> list[T]:
        return self.retrieval.get_all(cls, parameters)

    def load_relationships(self, entity: T) -> T:
        return self.retrieval.load_relationships(entity)
