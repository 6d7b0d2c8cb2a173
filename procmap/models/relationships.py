"""
procmap/models/relationships.py
-------------------------------
Type-level relationship declarations and their resolved links.
"""

from dataclasses import dataclass
from typing import Optional, Union

from procmap.models.fields import FieldSpec


def type_name(target: Union[type, str]) -> str:
    return target if isinstance(target, str) else target.__name__


@dataclass(frozen=True)
class HasMany:
    """
    The declaring type owns zero or more ``child_type`` entities held in
    ``collection_field``. The child exposes a ``{Parent}Id`` foreign key.
    """

    child_type: Union[type, str]
    collection_field: str

    @property
    def child_name(self) -> str:
        return type_name(self.child_type)


@dataclass(frozen=True)
class BelongsTo:
    """
    The declaring type holds a ``{Parent}Id`` foreign key to ``parent_type``.
    When ``parent_field`` is set, retrieval attaches the loaded parent there.
    """

    parent_type: Union[type, str]
    parent_field: Optional[str] = None

    @property
    def parent_name(self) -> str:
        return type_name(self.parent_type)


@dataclass(frozen=True)
class HasManyLink:
    """A HasMany declaration resolved against the registry."""

    child: type
    child_name: str
    collection_field: str
    foreign_key: FieldSpec


@dataclass(frozen=True)
class BelongsToLink:
    """A BelongsTo declaration resolved against the registry."""

    parent: type
    parent_name: str
    parent_field: Optional[str]
    foreign_key: FieldSpec
