# med_core/common/permissions.py

from __future__ import annotations

from typing import Set

from rest_framework.permissions import BasePermission, SAFE_METHODS

# Group/role names (Django auth Group names recommended)
ROLE_ADMIN = "ADMIN"
ROLE_CLINICIAN = "CLINICIAN"
ROLE_CAREGIVER = "CAREGIVER"
ROLE_PATIENT = "PATIENT"
ROLE_READONLY = "READONLY"


def _user_roles(user) -> Set[str]:
    """
    Resolve roles from:
    1) Django groups: user.groups (recommended)
    2) Directory profile role (user.profile.role)

    Authenticated users without any role are treated as READONLY.
    """
    roles: Set[str] = set()

    if not user or not getattr(user, "is_authenticated", False):
        return roles

    # Superuser treated as admin
    if getattr(user, "is_superuser", False):
        roles.add(ROLE_ADMIN)
        return roles

    if hasattr(user, "groups"):
        roles.update(name.upper() for name in user.groups.values_list("name", flat=True))

    profile = getattr(user, "profile", None)
    if profile is not None and profile.role and profile.is_active:
        roles.add(str(profile.role).upper())

    if not roles:
        roles.add(ROLE_READONLY)

    return roles


class BaseRolePermission(BasePermission):
    """
    Base permission class for role-based access control.

    - Requires authentication.
    - ADMIN bypass.
    - Uses allowed_roles_per_action for strict RBAC.
    - Unknown SAFE actions fall back to list/retrieve instead of denying.
    """
    message = "You do not have permission to perform this action."

    # Override in subclasses: dict of action -> set of allowed roles
    allowed_roles_per_action: dict[str, set[str]] = {
        "list": {ROLE_ADMIN},
        "retrieve": {ROLE_ADMIN},
        "create": {ROLE_ADMIN},
        "update": {ROLE_ADMIN},
        "partial_update": {ROLE_ADMIN},
        "destroy": {ROLE_ADMIN},
    }

    def _infer_action(self, request, view) -> str | None:
        action = getattr(view, "action", None)
        if action:
            return action

        kwargs = getattr(view, "kwargs", {}) or {}
        is_detail = "pk" in kwargs or "id" in kwargs

        method = request.method.upper()
        if method in ("GET", "HEAD", "OPTIONS"):
            return "retrieve" if is_detail else "list"
        if method == "POST":
            return "create"
        if method == "PUT":
            return "update"
        if method == "PATCH":
            return "partial_update"
        if method == "DELETE":
            return "destroy"
        return None

    def has_permission(self, request, view) -> bool:
        user = request.user
        if not user or not getattr(user, "is_authenticated", False):
            return False

        roles = _user_roles(user)

        if ROLE_ADMIN in roles:
            return True

        action = self._infer_action(request, view)
        allowed = self.allowed_roles_per_action.get(action)

        if allowed is None and request.method in SAFE_METHODS:
            kwargs = getattr(view, "kwargs", {}) or {}
            is_detail = "pk" in kwargs or "id" in kwargs
            read_action = "retrieve" if is_detail else "list"
            allowed = self.allowed_roles_per_action.get(read_action)

        if allowed is not None:
            return bool(roles & allowed)

        # Unknown action => deny by default
        return False

    def has_object_permission(self, request, view, obj) -> bool:
        return self.has_permission(request, view)


_CARE_TEAM = {ROLE_ADMIN, ROLE_CLINICIAN, ROLE_CAREGIVER, ROLE_PATIENT}


class MedicationPermission(BaseRolePermission):
    """Permissions for medication records"""
    allowed_roles_per_action = {
        "list": _CARE_TEAM | {ROLE_READONLY},
        "history": _CARE_TEAM | {ROLE_READONLY},
        "retrieve": _CARE_TEAM | {ROLE_READONLY},
        "create": _CARE_TEAM,
        "update": _CARE_TEAM,
        "partial_update": _CARE_TEAM,
        "destroy": _CARE_TEAM,
        # organization-wide listing is a care-provider view
        "organization": {ROLE_ADMIN, ROLE_CLINICIAN},
    }


class AuditPermission(BaseRolePermission):
    """Permissions for audit trail access"""
    allowed_roles_per_action = {
        "list": {ROLE_ADMIN, ROLE_CLINICIAN},
        "retrieve": {ROLE_ADMIN, ROLE_CLINICIAN},
        "create": set(),
        "update": set(),
        "partial_update": set(),
        "destroy": set(),
    }
