# permissions/roles.py

"""
ROLES + CAPABILITIES

Views protect capabilities, not raw roles:
- A role maps to a default set of capabilities.
- HasCapability / HasAnyCapability read `required_capability` /
  `required_any_capabilities` from the view (deny-by-default when unset).
"""

from __future__ import annotations

from typing import Optional

from rest_framework.permissions import BasePermission


# =========================================================
# ROLE CONSTANTS
# =========================================================
ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_CASHIER = "cashier"
ROLE_CUSTOMER = "customer"

STAFF_ROLES = {
    ROLE_ADMIN,
    ROLE_MANAGER,
    ROLE_CASHIER,
}


# =========================================================
# CAPABILITIES
# =========================================================
CAP_POS_OPERATE = "pos.operate"          # carts, sessions, totals
CAP_POS_CHECKOUT = "pos.checkout"        # complete a sale
CAP_STOCK_RESERVE = "stock.reserve"      # direct reserve/release calls
CAP_CATALOG_VIEW = "catalog.view"
CAP_CUSTOMERS_VIEW = "customers.view"
CAP_SALES_VIEW = "sales.view"

ALL_CAPABILITIES = {
    CAP_POS_OPERATE,
    CAP_POS_CHECKOUT,
    CAP_STOCK_RESERVE,
    CAP_CATALOG_VIEW,
    CAP_CUSTOMERS_VIEW,
    CAP_SALES_VIEW,
}


# =========================================================
# ROLE → CAPABILITY MAP
# =========================================================
ROLE_CAPABILITIES: dict[str, set[str]] = {
    ROLE_ADMIN: {
        *ALL_CAPABILITIES,
    },
    ROLE_MANAGER: {
        *ALL_CAPABILITIES,
    },
    ROLE_CASHIER: {
        CAP_POS_OPERATE,
        CAP_POS_CHECKOUT,
        CAP_STOCK_RESERVE,
        CAP_CATALOG_VIEW,
        CAP_CUSTOMERS_VIEW,
    },
    ROLE_CUSTOMER: set(),
}


# =========================================================
# Helpers
# =========================================================
def get_user_role(user) -> Optional[str]:
    return getattr(user, "role", None)


def effective_capabilities_for(user) -> set[str]:
    if getattr(user, "is_superuser", False):
        return set(ALL_CAPABILITIES)
    return set(ROLE_CAPABILITIES.get(get_user_role(user), set()))


# =========================================================
# Base Role Permission
# =========================================================
class BaseRolePermission(BasePermission):
    """
    Base permission for role-based access control.

    Subclasses must define:
    - allowed_roles (set)
    """

    allowed_roles: set[str] = set()

    def has_permission(self, request, view):
        user = request.user

        if not user or not user.is_authenticated:
            return False

        user_role = get_user_role(user)
        if not user_role:
            return False

        return user_role in self.allowed_roles


# =========================================================
# Capability Permissions
# =========================================================
class HasCapability(BasePermission):
    """
    Require a specific capability.

    Usage:
        permission_classes = [IsAuthenticated, HasCapability]
        required_capability = CAP_POS_OPERATE
    """

    message = "You do not have permission to perform this action."

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, "required_capability", None)
        if not required:
            # Deny-by-default to avoid accidental open endpoints
            return False

        return required in effective_capabilities_for(user)


class HasAnyCapability(BasePermission):
    """
    Require ANY capability from a set.

    Usage:
        required_any_capabilities = {CAP_CATALOG_VIEW, CAP_POS_OPERATE}
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, "required_any_capabilities", None)
        if not required:
            return False

        caps = effective_capabilities_for(user)
        return any(cap in caps for cap in set(required))


class IsStaff(BaseRolePermission):
    allowed_roles = STAFF_ROLES
