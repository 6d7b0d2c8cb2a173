"""
procmap
=======
Maps dataclass entity graphs onto a relational store reached only through
named stored procedures.
"""

from procmap.audit import AuditContext, resolve_ip
from procmap.engine import Engine
from procmap.exceptions import (
    CycleError,
    MappingError,
    MetadataError,
    ProcedureError,
    ProcMapError,
    StorageConnectionError,
    ValidationError,
)
from procmap.mapping import from_row, to_parameters
from procmap.models import (
    BelongsTo,
    Direction,
    Entity,
    FieldKind,
    FieldSpec,
    HasMany,
    ParameterSet,
    column,
)
from procmap.registry import Registry, default_registry, entity
from procmap.services.persistence_service import ReconciliationSkipped, SaveResult
from procmap.validation import EmailAddress, MaxLength, Required, validate

__all__ = [
    "AuditContext",
    "BelongsTo",
    "CycleError",
    "Direction",
    "EmailAddress",
    "Engine",
    "Entity",
    "FieldKind",
    "FieldSpec",
    "HasMany",
    "MappingError",
    "MaxLength",
    "MetadataError",
    "ParameterSet",
    "ProcMapError",
    "ProcedureError",
    "ReconciliationSkipped",
    "Registry",
    "Required",
    "SaveResult",
    "StorageConnectionError",
    "ValidationError",
    "column",
    "default_registry",
    "entity",
    "from_row",
    "resolve_ip",
    "to_parameters",
    "validate",
]
