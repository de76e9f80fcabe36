from __future__ import annotations
from flask import current_app
from flask_jwt_extended import get_jwt, get_jwt_identity
from furfolio.constants.permissions import Permission, Role, permissions_for
from furfolio.services.access_control import AccessControl, LoggingAuditSink
from furfolio.services.audit import DatabaseAuditSink, add_audit


def current_role() -> Role:
    return Role.parse(get_jwt().get('role'))


def superuser_requested() -> bool:
    """Superuser claims are honoured only when the deployment allows the override."""
    if not current_app.config.get('ALLOW_SUPERUSER_OVERRIDE'):
        return False
    return bool(get_jwt().get('superuser'))


def current_access_control() -> AccessControl:
    """Fresh AccessControl seeded from the verified JWT of the current request."""
    if current_app.config.get('PERSIST_AUDIT', True):
        sink = DatabaseAuditSink(actor_id=get_jwt_identity())
    else:
        sink = LoggingAuditSink(current_app.logger)
    return AccessControl(current_role(), audit_sink=sink, superuser_override=superuser_requested())


def may_assume(ac: AccessControl, target: Role) -> bool:
    """A session may switch to a role whose grants it already holds.

    Anything wider needs overrideRestrictions; that check is audited like any other.
    """
    if permissions_for(target).permissions <= permissions_for(ac.current_role).permissions:
        return True
    return ac.can(Permission.OVERRIDE_RESTRICTIONS)


def record_rejected_role_change(ac: AccessControl, target: Role) -> None:
    current_app.logger.warning('role change rejected: %s -> %s', ac.current_role.value, target.value)
    if current_app.config.get('PERSIST_AUDIT', True):
        add_audit('ROLE.CHANGE_REJECTED', 'Role', target.value,
                  {'from_role': ac.current_role.value},
                  role=ac.current_role.value, actor_id=get_jwt_identity())
