"""Role-based access control session.

One AccessControl instance represents one session: a single active role, an
optional superuser override and an audit sink receiving every grant, denial
and role change. Answers come from the static matrix in
furfolio.constants.permissions; the matrix itself is never mutated here.

Usage:
    ac = AccessControl(Role.GROOMER, audit_sink=LoggingAuditSink())
    if ac.can(Permission.EDIT_APPOINTMENTS):
        ...
    ac.require(Permission.MANAGE_STAFF)   # raises AccessDenied
"""
from __future__ import annotations
import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional

from furfolio.constants.permissions import Permission, Role, permissions_for

logger = logging.getLogger(__name__)

SUPERUSER_REASON = 'Superuser override'


class AuditEventKind(str, Enum):
    ROLE_CHANGED = 'roleChanged'
    ACCESS_GRANTED = 'accessGranted'
    ACCESS_DENIED = 'accessDenied'


@dataclass(frozen=True)
class AuditEvent:
    kind: AuditEventKind
    role: Role
    permission: Optional[Permission] = None
    reason: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'kind': self.kind.value,
            'role': self.role.value,
            'permission': self.permission.value if self.permission else None,
            'reason': self.reason,
            'timestamp': self.timestamp.isoformat(),
        }


class AccessDenied(Exception):
    """Raised by AccessControl.require; carries the call site for diagnostics."""

    def __init__(self, role: Role, permission: Permission, reason: str,
                 filename: Optional[str] = None, lineno: Optional[int] = None):
        super().__init__(reason)
        self.role = role
        self.permission = permission
        self.reason = reason
        self.filename = filename
        self.lineno = lineno

    def __str__(self):
        if self.filename:
            return f"{self.reason} ({self.filename}:{self.lineno})"
        return self.reason


class NullAuditSink:
    def record(self, event: AuditEvent) -> None:
        return None


class LoggingAuditSink:
    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('furfolio.audit')

    def record(self, event: AuditEvent) -> None:
        level = logging.WARNING if event.kind is AuditEventKind.ACCESS_DENIED else logging.INFO
        self.logger.log(level, 'access %s role=%s permission=%s reason=%s',
                        event.kind.value, event.role.value,
                        event.permission.value if event.permission else '-',
                        event.reason or '-')


class AccessControl:
    def __init__(self, role: Role = Role.UNKNOWN, *, audit_sink=None, superuser_override: bool = False):
        self._role = role
        self.audit_sink = audit_sink or NullAuditSink()
        self.superuser_override = superuser_override
        self._observers: List[Callable[[Role, Role], None]] = []

    @property
    def current_role(self) -> Role:
        return self._role

    def observe(self, callback: Callable[[Role, Role], None]) -> None:
        """Register callback(old_role, new_role), invoked after every set_role."""
        self._observers.append(callback)

    def set_role(self, role: Role) -> None:
        old = self._role
        self._role = role
        self._emit(AuditEvent(AuditEventKind.ROLE_CHANGED, role))
        for cb in list(self._observers):
            cb(old, role)

    def can(self, permission: Permission, role: Optional[Role] = None, log: bool = True) -> bool:
        effective = role if role is not None else self._role
        if self.superuser_override:
            if log:
                self._emit(AuditEvent(AuditEventKind.ACCESS_GRANTED, effective, permission, SUPERUSER_REASON))
            return True
        allowed = permission in permissions_for(effective)
        if log:
            kind = AuditEventKind.ACCESS_GRANTED if allowed else AuditEventKind.ACCESS_DENIED
            self._emit(AuditEvent(kind, effective, permission))
        return allowed

    def require(self, permission: Permission) -> None:
        if self.can(permission):
            return
        frame = inspect.currentframe()
        caller = frame.f_back if frame is not None else None
        try:
            filename = caller.f_code.co_filename if caller is not None else None
            lineno = caller.f_lineno if caller is not None else None
        finally:
            del frame, caller
        raise AccessDenied(
            self._role,
            permission,
            f"Role '{self._role.value}' lacks permission '{permission.value}'",
            filename,
            lineno,
        )

    def _emit(self, event: AuditEvent) -> None:
        # Audit must never change the outcome of an access decision
        try:
            self.audit_sink.record(event)
        except Exception:
            logger.exception('audit sink failed for %s', event.kind.value)


__all__ = [
    'AccessControl', 'AccessDenied', 'AuditEvent', 'AuditEventKind',
    'LoggingAuditSink', 'NullAuditSink', 'SUPERUSER_REASON',
]
