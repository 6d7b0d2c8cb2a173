"""
procmap/models/entity.py
------------------------
Base class for mapped entities and the static metadata built for each
registered type.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional

from procmap.exceptions import MetadataError
from procmap.models.fields import ID_COLUMN, FieldSpec
from procmap.models.relationships import BelongsTo, BelongsToLink, HasMany, HasManyLink


@dataclass
class EntityMeta:
    """
    Metadata table entry for one registered entity type.

    Built once at registration; ``children`` and ``parents`` are filled in
    when the registry is finalized.
    """

    cls: type
    name: str
    fields: list[FieldSpec]
    attributes: frozenset[str]
    has_many: tuple[HasMany, ...] = ()
    belongs_to: tuple[BelongsTo, ...] = ()
    children: list[HasManyLink] = field(default_factory=list)
    parents: list[BelongsToLink] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._by_column = {f.column: f for f in self.fields}
        self._by_column_lower = {f.column.lower(): f for f in self.fields}

    @property
    def id_field(self) -> FieldSpec:
        return self._by_column[ID_COLUMN]

    def field_by_column(self, column: str) -> Optional[FieldSpec]:
        """Exact match first, then case-insensitive."""
        spec = self._by_column.get(column)
        if spec is None:
            spec = self._by_column_lower.get(column.lower())
        return spec

    def write_fields(self, is_insert: bool) -> list[FieldSpec]:
        """Persistable fields for an insert (``is_insert``) or an update."""
        return [f for f in self.fields if f.is_written(is_insert)]


def meta_of(target: Any) -> EntityMeta:
    """
    Metadata for an entity instance or class.

    Raises:
        MetadataError: If the type was never registered.
    """
    cls = target if isinstance(target, type) else type(target)
    meta = cls.__dict__.get("__entity_meta__")
    if meta is None:
        raise MetadataError(f"{cls.__name__} is not a registered entity")
    return meta


class Entity:
    """
    Base class for mapped entities.

    Subclasses are dataclasses with an integer ``id`` field (0 or None
    while unsaved), registered once with ``@entity(...)``.
    """

    __entity_meta__: ClassVar[EntityMeta]

    @property
    def is_transient(self) -> bool:
        return not getattr(self, "id", None)

    def validate(self, max_depth: Optional[int] = None) -> tuple[bool, list[str]]:
        """
        Validate this entity and its populated has-many children.

        Args:
            max_depth: Deepest graph allowed (PROCMAP_MAX_DEPTH by default).

        Returns:
            ``(is_valid, messages)``. The messages are also kept on ``errors``.
        """
        from procmap.validation import validate

        valid, errors = validate(self, max_depth)
        self._errors = errors
        return valid, errors

    @property
    def errors(self) -> list[str]:
        """Messages from the last ``validate()`` call."""
        return list(getattr(self, "_errors", []))
