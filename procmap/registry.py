"""
procmap/registry.py
-------------------
Metadata resolver. Each entity type is registered once, at import time,
producing a static table of persistable fields and relationships keyed by
type name. Relationship targets are checked when the registry is finalized,
so configuration mistakes surface at startup and never per call.
"""

import dataclasses
from typing import Any, Iterable, Optional, Union, get_type_hints

from procmap.exceptions import MetadataError
from procmap.models.entity import Entity, EntityMeta
from procmap.models.fields import (
    ID_COLUMN,
    FieldKind,
    FieldSpec,
    column_options,
    infer_kind,
    to_column_name,
)
from procmap.models.relationships import (
    BelongsTo,
    BelongsToLink,
    HasMany,
    HasManyLink,
    type_name,
)
from procmap.utils.logger import get_logger
from procmap.validation import build_rules

logger = get_logger(__name__)


def _type_hints(cls: type) -> dict[str, Any]:
    """
    Resolved annotations of ``cls``, keyed by attribute name.

    A name that cannot be resolved maps to None, so that field is treated as
    not persistable while the rest of the class still resolves.
    """
    localns = dict(vars(cls))
    try:
        return get_type_hints(cls, localns=localns)
    except NameError:
        pass

    hints: dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        single = type(cls.__name__, (), {"__annotations__": {f.name: f.type}, "__module__": cls.__module__})
        try:
            hints.update(get_type_hints(single, localns=localns))
        except NameError:
            hints[f.name] = None
    return hints


def _build_field(cls: type, f: dataclasses.Field, hints: dict[str, Any]) -> Optional[FieldSpec]:
    options = column_options(f)
    if options.exclude:
        return None

    if options.kind is not None:
        if options.kind is FieldKind.ENUM and options.enum_type is None:
            raise MetadataError(f"{cls.__name__}.{f.name}: ENUM fields need enum_type")
        kind, nullable, enum_type = options.kind, True, options.enum_type
    else:
        inferred = infer_kind(hints.get(f.name))
        if inferred is None:
            return None
        kind, nullable, enum_type = inferred

    return FieldSpec(
        name=f.name,
        column=options.name or to_column_name(f.name),
        kind=kind,
        nullable=nullable,
        enum_type=enum_type,
        ignore_on_insert=options.ignore_on_insert,
        ignore_on_update=options.ignore_on_update,
        rules=build_rules(options),
    )


class Registry:
    """Static metadata table for entity types."""

    def __init__(self) -> None:
        self._types: dict[str, EntityMeta] = {}
        self._finalized = False

    # ── REGISTRATION ──────────────────────────────────────

    def register(
        self,
        cls: type,
        has_many: Iterable[HasMany] = (),
        belongs_to: Iterable[BelongsTo] = (),
        name: Optional[str] = None,
    ) -> type:
        """
        Register an entity dataclass.

        Args:
            cls: A dataclass deriving from ``Entity``.
            has_many: Owned child collections.
            belongs_to: Parents referenced through ``{Parent}Id`` fields.
            name: Type name used in procedure names (defaults to the class name).

        Returns:
            ``cls``, so this can back a decorator.

        Raises:
            MetadataError: If the declaration is malformed.
        """
        name = name or cls.__name__
        if not dataclasses.is_dataclass(cls) or not issubclass(cls, Entity):
            raise MetadataError(f"{name} must be a dataclass deriving from Entity")
        if name in self._types and self._types[name].cls is not cls:
            raise MetadataError(f"An entity named '{name}' is already registered")

        # Rows are materialized through cls(), so every field needs a default.
        missing = [
            f.name for f in dataclasses.fields(cls)
            if f.init
            and f.default is dataclasses.MISSING
            and f.default_factory is dataclasses.MISSING
        ]
        if missing:
            raise MetadataError(f"{name}: fields {missing} need a default value")

        hints = _type_hints(cls)
        fields: list[FieldSpec] = []
        seen_columns: set[str] = set()
        for f in dataclasses.fields(cls):
            spec = _build_field(cls, f, hints)
            if spec is None:
                continue
            if spec.column in seen_columns:
                raise MetadataError(f"{name}: column '{spec.column}' is mapped twice")
            seen_columns.add(spec.column)
            fields.append(spec)

        id_specs = [s for s in fields if s.is_id]
        if not id_specs or id_specs[0].kind is not FieldKind.INTEGER:
            raise MetadataError(f"{name} needs an integer '{ID_COLUMN}' field")

        has_many = tuple(has_many)
        belongs_to = tuple(belongs_to)
        relationship_fields = [r.collection_field for r in has_many]
        relationship_fields += [r.parent_field for r in belongs_to if r.parent_field]
        duplicates = {f for f in relationship_fields if relationship_fields.count(f) > 1}
        if duplicates:
            raise MetadataError(f"{name}: more than one relationship on {sorted(duplicates)}")

        meta = EntityMeta(
            cls=cls,
            name=name,
            fields=fields,
            attributes=frozenset(f.name for f in dataclasses.fields(cls)),
            has_many=has_many,
            belongs_to=belongs_to,
        )
        cls.__entity_meta__ = meta
        self._types[name] = meta
        self._finalized = False
        logger.debug(f"Registered entity {name} with {len(fields)} persistable fields")
        return cls

    def entity(
        self,
        cls: Optional[type] = None,
        *,
        has_many: Iterable[HasMany] = (),
        belongs_to: Iterable[BelongsTo] = (),
        name: Optional[str] = None,
    ):
        """
        Decorator form of ``register``.

        Usage:
            @registry.entity(has_many=[HasMany("UserRole", "user_roles")])
            @dataclass
            class User(Entity):
                ...
        """
        def decorate(target: type) -> type:
            return self.register(target, has_many=has_many, belongs_to=belongs_to, name=name)

        if cls is not None:
            return decorate(cls)
        return decorate

    # ── LOOKUP ────────────────────────────────────────────

    def get(self, target: Union[type, str]) -> EntityMeta:
        """
        Metadata for a registered class or type name.

        Raises:
            MetadataError: If nothing is registered under that type.
        """
        meta = self._types.get(type_name(target))
        if meta is None or (isinstance(target, type) and meta.cls is not target):
            raise MetadataError(f"{type_name(target)} is not a registered entity")
        return meta

    def __contains__(self, target: object) -> bool:
        if not isinstance(target, (type, str)):
            return False
        meta = self._types.get(type_name(target))
        return meta is not None and (not isinstance(target, type) or meta.cls is target)

    def __len__(self) -> int:
        return len(self._types)

    # ── FINALIZATION ──────────────────────────────────────

    def finalize(self) -> None:
        """
        Resolve every relationship against the registered types.
        Safe to call repeatedly; only does work after a new registration.

        Raises:
            MetadataError: If a relationship target or key field is missing.
        """
        if self._finalized:
            return
        for meta in self._types.values():
            meta.children = [self._link_has_many(meta, rel) for rel in meta.has_many]
            meta.parents = [self._link_belongs_to(meta, rel) for rel in meta.belongs_to]
        self._finalized = True
        logger.info(f"Entity registry finalized ({len(self._types)} types).")

    def _link_has_many(self, meta: EntityMeta, rel: HasMany) -> HasManyLink:
        child = self._target(meta, rel.child_type)
        if rel.collection_field not in meta.attributes:
            raise MetadataError(
                f"{meta.name} declares HasMany({child.name}) but has no field "
                f"'{rel.collection_field}'"
            )
        foreign_key = child.field_by_column(f"{meta.name}Id")
        if foreign_key is None:
            raise MetadataError(f"{child.name} has no '{meta.name}Id' field for {meta.name}")
        return HasManyLink(
            child=child.cls,
            child_name=child.name,
            collection_field=rel.collection_field,
            foreign_key=foreign_key,
        )

    def _link_belongs_to(self, meta: EntityMeta, rel: BelongsTo) -> BelongsToLink:
        parent = self._target(meta, rel.parent_type)
        foreign_key = meta.field_by_column(f"{parent.name}Id")
        if foreign_key is None:
            raise MetadataError(f"{meta.name} has no '{parent.name}Id' field for {parent.name}")
        if rel.parent_field is not None and rel.parent_field not in meta.attributes:
            raise MetadataError(
                f"{meta.name} declares BelongsTo({parent.name}) but has no field "
                f"'{rel.parent_field}'"
            )
        return BelongsToLink(
            parent=parent.cls,
            parent_name=parent.name,
            parent_field=rel.parent_field,
            foreign_key=foreign_key,
        )

    def _target(self, meta: EntityMeta, target: Union[type, str]) -> EntityMeta:
        try:
            return self.get(target)
        except MetadataError:
            raise MetadataError(
                f"{meta.name} references {type_name(target)}, which is not registered"
            ) from None


default_registry = Registry()


def entity(
    cls: Optional[type] = None,
    *,
    has_many: Iterable[HasMany] = (),
    belongs_to: Iterable[BelongsTo] = (),
    name: Optional[str] = None,
):
    """Register an entity with the default registry (decorator)."""
    return default_registry.entity(cls, has_many=has_many, belongs_to=belongs_to, name=name)
