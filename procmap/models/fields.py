"""
procmap/models/fields.py
------------------------
Field-level metadata: scalar kinds, per-field write policy and the
``column()`` marker used on entity dataclass fields.
"""

import dataclasses
import types
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Optional, Union, get_args, get_origin

ID_COLUMN = "Id"
# Maintained by the database; never written by the engine.
AUDIT_DATE_COLUMNS = frozenset({"DateCreated", "DateUpdated"})

_METADATA_KEY = "procmap"


class FieldKind(str, Enum):
    """Scalar kinds that can be written to and read from a procedure."""

    STRING = "string"
    BOOL = "bool"
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    DATETIME = "datetime"
    BINARY = "binary"
    ENUM = "enum"


_KIND_BY_TYPE: dict[type, FieldKind] = {
    str: FieldKind.STRING,
    bool: FieldKind.BOOL,
    int: FieldKind.INTEGER,
    float: FieldKind.FLOAT,
    Decimal: FieldKind.DECIMAL,
    datetime: FieldKind.DATETIME,
    date: FieldKind.DATETIME,
    bytes: FieldKind.BINARY,
    bytearray: FieldKind.BINARY,
}


@dataclass(frozen=True)
class ColumnOptions:
    """Options attached to a dataclass field by ``column()``."""

    name: Optional[str] = None
    kind: Optional[FieldKind] = None
    enum_type: Optional[type] = None
    ignore_on_insert: bool = False
    ignore_on_update: bool = False
    required: bool = False
    max_length: Optional[int] = None
    email: bool = False
    rules: tuple = ()
    exclude: bool = False


@dataclass(frozen=True)
class FieldSpec:
    """
    A persistable field of a registered entity.

    Attributes:
        name: Python attribute name (e.g. ``user_id``).
        column: Column / procedure parameter name (e.g. ``UserId``).
        kind: Scalar kind used for writing and for coercing row values.
        nullable: Whether the declared type was Optional.
        enum_type: Enum class for ENUM fields.
        ignore_on_insert: Leave out of the parameter set when inserting.
        ignore_on_update: Leave out of the parameter set when updating.
        rules: Field-level validation rules, evaluated in order.
    """

    name: str
    column: str
    kind: FieldKind
    nullable: bool = False
    enum_type: Optional[type] = None
    ignore_on_insert: bool = False
    ignore_on_update: bool = False
    rules: tuple = ()

    @property
    def is_id(self) -> bool:
        return self.column == ID_COLUMN

    def is_written(self, is_insert: bool) -> bool:
        """Whether this field belongs in the parameter set for the operation."""
        if self.is_id:
            return True
        if self.column in AUDIT_DATE_COLUMNS:
            return False
        return not (self.ignore_on_insert if is_insert else self.ignore_on_update)


def column(
    default: Any = None,
    *,
    default_factory: Union[Callable[[], Any], Any] = dataclasses.MISSING,
    name: Optional[str] = None,
    kind: Optional[FieldKind] = None,
    enum_type: Optional[type] = None,
    ignore_on_insert: bool = False,
    ignore_on_update: bool = False,
    required: bool = False,
    max_length: Optional[int] = None,
    email: bool = False,
    rules: tuple = (),
    exclude: bool = False,
):
    """
    Declare a mapped dataclass field.

    Usage:
        @entity()
        @dataclass
        class User(Entity):
            id: int = 0
            uid: str = column(name="UID", required=True, max_length=250)
            current_ip: str = column(ignore_on_update=True)

    Args:
        default: Default value (every entity field needs one).
        default_factory: Alternative to ``default`` for mutable values.
        name: Column name, when it is not the CamelCase of the attribute.
        kind: Force a scalar kind instead of inferring it from the annotation.
        enum_type: Enum class, required with ``kind=FieldKind.ENUM``.
        ignore_on_insert: Never send this field when inserting.
        ignore_on_update: Never send this field when updating.
        required: Value must be present (and not blank for strings).
        max_length: Maximum length for strings / binary values.
        email: Value must look like an e-mail address.
        rules: Extra callables ``rule(spec, value) -> message | None``.
        exclude: Do not map this field at all.
    """
    options = ColumnOptions(
        name=name,
        kind=kind,
        enum_type=enum_type,
        ignore_on_insert=ignore_on_insert,
        ignore_on_update=ignore_on_update,
        required=required,
        max_length=max_length,
        email=email,
        rules=tuple(rules),
        exclude=exclude,
    )
    metadata = {_METADATA_KEY: options}
    if default_factory is not dataclasses.MISSING:
        return dataclasses.field(default_factory=default_factory, metadata=metadata)
    return dataclasses.field(default=default, metadata=metadata)


def column_options(f: dataclasses.Field) -> ColumnOptions:
    return f.metadata.get(_METADATA_KEY, ColumnOptions())


def to_column_name(attribute: str) -> str:
    """``language_code`` -> ``LanguageCode``."""
    return "".join(part[:1].upper() + part[1:] for part in attribute.split("_") if part)


def infer_kind(annotation: Any) -> Optional[tuple[FieldKind, bool, Optional[type]]]:
    """
    Work out the scalar kind of a resolved type annotation.

    Returns:
        ``(kind, nullable, enum_type)``, or None when the type is not a
        persistable scalar (collections, entities, unresolved names).
    """
    nullable = False
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(annotation) if a is not type(None)]
        if len(args) != 1:
            return None
        annotation, nullable = args[0], True

    if not isinstance(annotation, type):
        return None
    # IntEnum / StrEnum are also int / str; the enum check must come first.
    if issubclass(annotation, Enum):
        return FieldKind.ENUM, nullable, annotation
    kind = _KIND_BY_TYPE.get(annotation)
    if kind is None:
        return None
    return kind, nullable, None
