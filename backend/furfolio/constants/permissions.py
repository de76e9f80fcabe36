"""Central enum definitions for roles, permissions and the default access matrix.
Extend cautiously; never rename values silently. Tokens carry the string values,
so a rename invalidates every issued token.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Optional


class Role(str, Enum):
    OWNER = 'owner'
    ADMIN = 'admin'
    MANAGER = 'manager'
    RECEPTIONIST = 'receptionist'
    GROOMER = 'groomer'
    BATHER = 'bather'
    ACCOUNTANT = 'accountant'
    GUEST = 'guest'
    UNKNOWN = 'unknown'

    @property
    def is_admin(self) -> bool:
        return self in ADMIN_ROLES

    @classmethod
    def parse(cls, raw: Optional[str]) -> 'Role':
        """Lenient lookup used for token claims: anything unrecognised is UNKNOWN."""
        if raw is None:
            return cls.UNKNOWN
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.UNKNOWN


class Permission(str, Enum):
    VIEW_DASHBOARD = 'viewDashboard'
    VIEW_CLIENTS = 'viewClients'
    EDIT_CLIENTS = 'editClients'
    VIEW_APPOINTMENTS = 'viewAppointments'
    EDIT_APPOINTMENTS = 'editAppointments'
    VIEW_CHARGES = 'viewCharges'
    EDIT_CHARGES = 'editCharges'
    VIEW_STAFF = 'viewStaff'
    MANAGE_STAFF = 'manageStaff'
    VIEW_REPORTS = 'viewReports'
    EXPORT_DATA = 'exportData'
    SUBMIT_INCIDENT = 'submitIncident'
    VIEW_INCIDENTS = 'viewIncidents'
    RUN_DIAGNOSTICS = 'runDiagnostics'
    MANAGE_SETTINGS = 'manageSettings'
    AUDIT_LOGS = 'auditLogs'
    OVERRIDE_RESTRICTIONS = 'overrideRestrictions'


ADMIN_ROLES = frozenset({Role.OWNER, Role.ADMIN})

ALL_PERMISSIONS: FrozenSet[Permission] = frozenset(Permission)

# Role -> explicit allow-list. Flat on purpose: no role inherits from another.
ROLE_PRESETS: Dict[Role, FrozenSet[Permission]] = {
    Role.OWNER: ALL_PERMISSIONS,
    Role.ADMIN: ALL_PERMISSIONS,
    Role.MANAGER: frozenset({
        Permission.VIEW_DASHBOARD,
        Permission.VIEW_CLIENTS, Permission.EDIT_CLIENTS,
        Permission.VIEW_APPOINTMENTS, Permission.EDIT_APPOINTMENTS,
        Permission.VIEW_CHARGES, Permission.EDIT_CHARGES,
        Permission.VIEW_STAFF, Permission.MANAGE_STAFF,
        Permission.VIEW_REPORTS, Permission.EXPORT_DATA,
        Permission.SUBMIT_INCIDENT, Permission.VIEW_INCIDENTS,
        Permission.RUN_DIAGNOSTICS,
    }),
    Role.RECEPTIONIST: frozenset({
        Permission.VIEW_DASHBOARD,
        Permission.VIEW_CLIENTS, Permission.EDIT_CLIENTS,
        Permission.VIEW_APPOINTMENTS, Permission.EDIT_APPOINTMENTS,
        Permission.VIEW_CHARGES,
        Permission.SUBMIT_INCIDENT,
    }),
    Role.GROOMER: frozenset({
        Permission.VIEW_CLIENTS,
        Permission.VIEW_APPOINTMENTS, Permission.EDIT_APPOINTMENTS,
        Permission.SUBMIT_INCIDENT, Permission.VIEW_INCIDENTS,
    }),
    Role.BATHER: frozenset({
        Permission.VIEW_APPOINTMENTS,
        Permission.SUBMIT_INCIDENT,
    }),
    Role.ACCOUNTANT: frozenset({
        Permission.VIEW_DASHBOARD,
        Permission.VIEW_CHARGES, Permission.EDIT_CHARGES,
        Permission.VIEW_REPORTS, Permission.EXPORT_DATA,
    }),
    Role.GUEST: frozenset({Permission.VIEW_DASHBOARD}),
    Role.UNKNOWN: frozenset(),
}


@dataclass(frozen=True)
class PermissionSet:
    role: Role
    permissions: FrozenSet[Permission]

    def __contains__(self, permission: Permission) -> bool:
        return permission in self.permissions

    def codes(self) -> List[str]:
        return sorted(p.value for p in self.permissions)


def permissions_for(role: Role) -> PermissionSet:
    return PermissionSet(role=role, permissions=ROLE_PRESETS.get(role, frozenset()))


def matrix_as_codes() -> Dict[str, List[str]]:
    """Role value -> sorted permission values, in Role declaration order."""
    return {role.value: permissions_for(role).codes() for role in Role}
