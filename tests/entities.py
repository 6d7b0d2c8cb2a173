"""Sample user/role/permission entities shared by the tests."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from procmap import BelongsTo, Entity, HasMany, column, entity


class Status(Enum):
    ACTIVE = 1
    SUSPENDED = 2


def positive(spec, value):
    if value is not None and value <= 0:
        return f"The {spec.column} field must be greater than zero."
    return None


@entity
@dataclass
class Permission(Entity):
    id: int = 0
    controller: str = column(default=None, required=True, max_length=100)
    action: str = column(default=None, required=True, max_length=100)


@entity(belongs_to=[BelongsTo("Role"), BelongsTo(Permission, "permission")])
@dataclass
class RolePermission(Entity):
    id: int = 0
    role_id: int = column(default=0, required=True)
    permission_id: int = column(default=0, required=True)
    permission: Optional[Permission] = None


@entity(has_many=[HasMany(RolePermission, "role_permissions")])
@dataclass
class Role(Entity):
    id: int = 0
    name: str = column(default=None, required=True, max_length=100)
    role_permissions: Optional[list[RolePermission]] = None


@entity(belongs_to=[BelongsTo(Role, "role")])
@dataclass
class UserRole(Entity):
    id: int = 0
    user_id: int = column(default=0, required=True)
    role_id: int = column(default=0, required=True, rules=(positive,))
    role: Optional[Role] = None


@entity(has_many=[HasMany(UserRole, "user_roles")])
@dataclass
class User(Entity):
    id: int = 0
    uid: str = column(default=None, name="UID", required=True, max_length=250)
    first_name: str = column(default=None, required=True, max_length=100)
    last_name: str = column(default=None, required=True, max_length=100)
    email: str = column(default=None, required=True, email=True, max_length=100)
    sms: Optional[str] = column(default=None, name="SMS", max_length=100)
    language_code: str = column(default=None, required=True)
    is_active: bool = False
    current_ip: Optional[str] = column(default=None, ignore_on_update=True)
    status: Status = Status.ACTIVE
    date_created: Optional[datetime] = None
    date_updated: Optional[datetime] = None
    user_roles: Optional[list[UserRole]] = None
