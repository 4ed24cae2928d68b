"""
UAE TaxDesk - Artifact Permissions

Role-based visibility for generated compliance artifacts. Roles are owned by
the host application; this module only answers whether a role may see or
create invoice documents and tax figures.

Permission Matrix:
==================

| Permission          | Admin | Accountant | Assistant | SME Client | Viewer |
|---------------------|-------|------------|-----------|------------|--------|
| view_invoices       | X     | X          | X         | X          |        |
| create_invoices     | X     | X          |           | X          |        |
| view_tax_figures    | X     | X          | X         | X          | X      |
| manage_tax_filings  | X     | X          |           |            |        |
| manage_notifications| X     | X          | X         | X          | X      |
"""

from enum import Enum
from typing import Optional, Set

from taxdesk.utils.error_handling import InsufficientPermissionsException


class UserRole(str, Enum):
    """Roles recognised by the host application."""
    ADMIN = "admin"
    ACCOUNTANT = "accountant"
    ASSISTANT = "assistant"
    SME_CLIENT = "sme_client"
    VIEWER = "viewer"


class Permission(str, Enum):
    """Permissions checked by the engine."""
    VIEW_INVOICES = "view_invoices"
    CREATE_INVOICES = "create_invoices"
    VIEW_TAX_FIGURES = "view_tax_figures"
    MANAGE_TAX_FILINGS = "manage_tax_filings"
    MANAGE_NOTIFICATIONS = "manage_notifications"


ROLE_PERMISSIONS: dict[UserRole, Set[Permission]] = {
    UserRole.ADMIN: set(Permission),
    UserRole.ACCOUNTANT: set(Permission),
    UserRole.ASSISTANT: {
        Permission.VIEW_INVOICES,
        Permission.VIEW_TAX_FIGURES,
        Permission.MANAGE_NOTIFICATIONS,
    },
    UserRole.SME_CLIENT: {
        Permission.VIEW_INVOICES,
        Permission.CREATE_INVOICES,
        Permission.VIEW_TAX_FIGURES,
        Permission.MANAGE_NOTIFICATIONS,
    },
    UserRole.VIEWER: {
        Permission.VIEW_TAX_FIGURES,
        Permission.MANAGE_NOTIFICATIONS,
    },
}


def get_role_permissions(role: UserRole) -> Set[Permission]:
    """Get all permissions for a role."""
    return ROLE_PERMISSIONS.get(role, set())


def has_permission(role: Optional[str], permission: Permission) -> bool:
    """Check if a role (given as its string value) has a permission."""
    if not role:
        return False
    try:
        user_role = UserRole(role.lower())
    except ValueError:
        return False
    return permission in get_role_permissions(user_role)


def require_permission(role: Optional[str], permission: Permission) -> None:
    """Raise InsufficientPermissionsException unless the role holds the permission."""
    if not has_permission(role, permission):
        raise InsufficientPermissionsException(permission.value, user_role=role)
