from enum import Enum
from typing import Dict, FrozenSet, Union

from storefront_app.errors import ValidationError


class Role(str, Enum):
    CLIENTE = "cliente"
    ADMINISTRADOR = "administrador"
    SUPERVISOR = "supervisor"
    ENTREGADOR = "entregador"


class Permission(str, Enum):
    PLACE_ORDERS = "place_orders"
    VIEW_OWN_ORDERS = "view_own_orders"
    VIEW_ALL_ORDERS = "view_all_orders"
    MANAGE_ORDERS = "manage_orders"
    UPDATE_DELIVERY_STATUS = "update_delivery_status"
    MANAGE_USERS = "manage_users"


ROLE_PERMISSIONS: Dict[Role, FrozenSet[Permission]] = {
    Role.CLIENTE: frozenset({
        Permission.PLACE_ORDERS,
        Permission.VIEW_OWN_ORDERS,
    }),
    Role.ADMINISTRADOR: frozenset(Permission),
    Role.SUPERVISOR: frozenset({
        Permission.PLACE_ORDERS,
        Permission.VIEW_OWN_ORDERS,
        Permission.VIEW_ALL_ORDERS,
        Permission.MANAGE_ORDERS,
        Permission.UPDATE_DELIVERY_STATUS,
    }),
    Role.ENTREGADOR: frozenset({
        Permission.VIEW_OWN_ORDERS,
        Permission.UPDATE_DELIVERY_STATUS,
    }),
}

# Role sets used by the authorization gates.
ADMIN_ONLY = frozenset({Role.ADMINISTRADOR})
ORDER_MANAGERS = frozenset({Role.ADMINISTRADOR, Role.SUPERVISOR})

RoleLike = Union[Role, str]


def parse_role(value: RoleLike) -> Role:
    """Coerce input to a Role; anything outside the enumeration is rejected."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        allowed = ", ".join(r.value for r in Role)
        raise ValidationError(f"Invalid role {value!r}. Must be one of: {allowed}")


def _as_role(value: RoleLike):
    try:
        return parse_role(value)
    except ValidationError:
        return None


def has_permission(role: RoleLike, permission: Permission) -> bool:
    r = _as_role(role)
    if r is None:
        return False
    return permission in ROLE_PERMISSIONS[r]


def can_manage_orders(role: RoleLike) -> bool:
    return _as_role(role) in ORDER_MANAGERS


def is_admin_role(role: RoleLike) -> bool:
    # Supervisors are deliberately not admins for user management.
    return _as_role(role) is Role.ADMINISTRADOR


def is_delivery_role(role: RoleLike) -> bool:
    return _as_role(role) is Role.ENTREGADOR
