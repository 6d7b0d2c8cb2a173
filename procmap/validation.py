"""
procmap/validation.py
---------------------
Field-level rules and the aggregator that walks an entity graph.

A rule is any callable ``rule(spec, value) -> str | None`` returning an
error message, or None when the value is acceptable.
"""

import re
from contextvars import ContextVar
from typing import Any, Optional

from procmap.config import MAX_DEPTH
from procmap.exceptions import CycleError
from procmap.models.entity import meta_of
from procmap.models.fields import ColumnOptions, FieldSpec

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+$")

# Entities currently being validated, outermost first.
_validating: ContextVar[tuple] = ContextVar("procmap_validating", default=())
_depth_limit: ContextVar[int] = ContextVar("procmap_validation_depth", default=MAX_DEPTH)


class Required:
    """Value must not be None, and strings must not be blank."""

    def __call__(self, spec: FieldSpec, value: Any) -> Optional[str]:
        if value is None or (isinstance(value, str) and not value.strip()):
            return f"The {spec.column} field is required."
        return None


class MaxLength:
    """Strings and byte values must not be longer than ``length``."""

    def __init__(self, length: int):
        self.length = length

    def __call__(self, spec: FieldSpec, value: Any) -> Optional[str]:
        if value is not None and len(value) > self.length:
            return (
                f"The field {spec.column} must be a string or array type "
                f"with a maximum length of '{self.length}'."
            )
        return None


class EmailAddress:
    """A single ``@`` with something on both sides. None passes."""

    def __call__(self, spec: FieldSpec, value: Any) -> Optional[str]:
        if value is None:
            return None
        if not isinstance(value, str) or not _EMAIL_RE.match(value):
            return f"The {spec.column} field is not a valid e-mail address."
        return None


def build_rules(options: ColumnOptions) -> tuple:
    """Turn ``column()`` options into an ordered tuple of rules."""
    rules: list = []
    if options.required:
        rules.append(Required())
    if options.max_length is not None:
        rules.append(MaxLength(options.max_length))
    if options.email:
        rules.append(EmailAddress())
    rules.extend(options.rules)
    return tuple(rules)


def validate_fields(entity: Any) -> list[str]:
    """Evaluate every field rule of ``entity``, children not included."""
    errors: list[str] = []
    for spec in meta_of(entity).fields:
        value = getattr(entity, spec.name, None)
        for rule in spec.rules:
            message = rule(spec, value)
            if message:
                errors.append(message)
    return errors


def validate(entity: Any, max_depth: Optional[int] = None) -> tuple[bool, list[str]]:
    """
    Validate an entity and, if its own fields pass, every child in its
    populated has-many collections.

    Children are validated through their own ``validate()`` so any
    validatable type can sit in a collection. All children are visited even
    after one fails, so the caller sees every broken child at once.
    Belongs-to targets are not validated.

    Args:
        entity: The entity to check.
        max_depth: Deepest graph allowed. Nested calls inherit the limit of
            the outermost call; PROCMAP_MAX_DEPTH applies when none is set.

    Returns:
        ``(is_valid, messages)`` with messages in visiting order.

    Raises:
        CycleError: An entity sits inside its own collection graph, or the
            graph is deeper than the depth limit.
    """
    if max_depth is not None:
        limit_token = _depth_limit.set(max_depth)
        try:
            return validate(entity)
        finally:
            _depth_limit.reset(limit_token)

    meta = meta_of(entity)
    path = _validating.get()
    limit = _depth_limit.get()
    if any(node is entity for node in path):
        raise CycleError(f"Relationship cycle detected while validating {meta.name}")
    if len(path) >= limit:
        raise CycleError(f"Maximum traversal depth {limit} exceeded validating {meta.name}")

    token = _validating.set(path + (entity,))
    try:
        errors = validate_fields(entity)
        valid = not errors
        if not valid:
            return valid, errors

        for rel in meta.has_many:
            children = getattr(entity, rel.collection_field, None)
            if not children:
                continue
            for child in children:
                child_valid, child_errors = child.validate()
                if not child_valid:
                    valid = False
                    errors.extend(child_errors)
        return valid, errors
    finally:
        _validating.reset(token)
