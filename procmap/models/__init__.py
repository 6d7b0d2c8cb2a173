"""
models/ - Metadata Model
========================
Entity base class, field descriptors, relationship declarations and the
parameter set handed to stored procedures.
"""

from procmap.models.entity import Entity, EntityMeta, meta_of
from procmap.models.fields import FieldKind, FieldSpec, column
from procmap.models.parameters import Direction, Parameter, ParameterSet
from procmap.models.relationships import BelongsTo, HasMany

__all__ = [
    "BelongsTo",
    "Direction",
    "Entity",
    "EntityMeta",
    "FieldKind",
    "FieldSpec",
    "HasMany",
    "Parameter",
    "ParameterSet",
    "column",
    "meta_of",
]
