"""
procmap/mapping.py
------------------
Entity mapper: entity -> procedure parameters, and procedure row -> entity.
"""

from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, TypeVar

from procmap.exceptions import MappingError
from procmap.models.entity import meta_of
from procmap.models.fields import FieldKind, FieldSpec
from procmap.models.parameters import Direction, ParameterSet

T = TypeVar("T")


class _Unconvertible(Exception):
    """Raised by a coercer when a value does not fit the field kind."""


# ── TO PARAMETERS ─────────────────────────────────────────

def enum_to_parameter(spec: FieldSpec, value: Any) -> Any:
    """
    Serialize an enum by member name so stored values survive member
    reordering. A raw value that is not a member is sent as-is.
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.name
    try:
        return spec.enum_type(value).name
    except (ValueError, TypeError):
        return value


def to_parameters(entity: Any) -> ParameterSet:
    """
    Build the ordered parameter set for saving ``entity``.

    Only fields written for the current operation are included: the
    operation is an insert when the entity has no id yet. ``Id`` is bound
    input/output so the procedure can hand back the generated key.
    """
    meta = meta_of(entity)
    is_insert = not getattr(entity, meta.id_field.name, None)
    params = ParameterSet()
    for spec in meta.write_fields(is_insert):
        value = getattr(entity, spec.name)
        if spec.is_id:
            params.add(spec.column, value or 0, Direction.INPUT_OUTPUT)
            continue
        if spec.kind is FieldKind.ENUM:
            value = enum_to_parameter(spec, value)
        params.add(spec.column, value)
    return params


# ── FROM ROW ──────────────────────────────────────────────

def _to_string(spec: FieldSpec, value: Any) -> str:
    if isinstance(value, str):
        return value
    raise _Unconvertible


def _to_integer(spec: FieldSpec, value: Any) -> int:
    if isinstance(value, bool):
        raise _Unconvertible
    if isinstance(value, int):
        return value
    if isinstance(value, Decimal) and value == value.to_integral_value():
        return int(value)
    raise _Unconvertible


def _to_bool(spec: FieldSpec, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise _Unconvertible


def _to_float(spec: FieldSpec, value: Any) -> float:
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return float(value)
    raise _Unconvertible


def _to_decimal(spec: FieldSpec, value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return Decimal(str(value))
    raise _Unconvertible


def _to_datetime(spec: FieldSpec, value: Any) -> date:
    if isinstance(value, (datetime, date)):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            raise _Unconvertible from None
    raise _Unconvertible


def _to_binary(spec: FieldSpec, value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    raise _Unconvertible


def _to_enum(spec: FieldSpec, value: Any) -> Enum:
    enum_type = spec.enum_type
    if isinstance(value, enum_type):
        return value
    if isinstance(value, str) and value in enum_type.__members__:
        return enum_type[value]
    try:
        return enum_type(value)
    except (ValueError, TypeError):
        raise _Unconvertible from None


_COERCERS: dict[FieldKind, Callable[[FieldSpec, Any], Any]] = {
    FieldKind.STRING: _to_string,
    FieldKind.INTEGER: _to_integer,
    FieldKind.BOOL: _to_bool,
    FieldKind.FLOAT: _to_float,
    FieldKind.DECIMAL: _to_decimal,
    FieldKind.DATETIME: _to_datetime,
    FieldKind.BINARY: _to_binary,
    FieldKind.ENUM: _to_enum,
}


def coerce(type_name: str, spec: FieldSpec, value: Any) -> Any:
    """
    Convert a stored value to the field's kind.

    Raises:
        MappingError: If the value cannot be converted.
    """
    try:
        return _COERCERS[spec.kind](spec, value)
    except _Unconvertible:
        raise MappingError(
            f"{type_name}.{spec.column}: cannot map {value!r} "
            f"({type(value).__name__}) to {spec.kind.value}"
        ) from None


def from_row(cls: type[T], row: Mapping[str, Any]) -> T:
    """
    Build an entity of type ``cls`` from a result row.

    Columns holding SQL NULL leave the field at its default. Columns with no
    matching field are ignored, so procedures may return wider result sets.

    Raises:
        MappingError: If a value cannot be coerced to its field kind.
    """
    meta = meta_of(cls)
    obj = cls()
    for column_name, value in row.items():
        if value is None:
            continue
        spec = meta.field_by_column(str(column_name))
        if spec is None:
            continue
        setattr(obj, spec.name, coerce(meta.name, spec, value))
    return obj
