from __future__ import annotations
import logging
from typing import Any, Dict, Optional
from flask_jwt_extended import get_jwt_identity, get_jwt
from furfolio import get_db
from furfolio.models.audit import AuditLog
from furfolio.services.access_control import AuditEvent

logger = logging.getLogger(__name__)


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[str] = None,
              meta: Optional[Dict[str, Any]] = None, *, role: Optional[str] = None,
              actor_id: Optional[str] = None, session=None):
    """Persist an audit log entry within the current DB session.

    Parameters:
      action: short action code e.g. ACCESS.GRANTED, ROLE.CHANGED, INTEGRITY.ESCALATE
      entity: optional entity name (Dog, Appointment, Permission, ...)
      entity_id: optional identifier string
      meta: additional JSON-safe dictionary (will be shallow copied)
      role/actor_id: explicit values win over the ones read from the request JWT
    """
    session = session or get_db()
    claims = {}
    try:
        claims = get_jwt() or {}
    except Exception:
        pass  # no JWT context (CLI, tests without auth) – keep empty
    if actor_id is None:
        try:
            ident = get_jwt_identity()
            actor_id = str(ident) if ident is not None else None
        except Exception:
            actor_id = None
    entry = AuditLog(
        actor_id=actor_id,
        role=role or claims.get('role') or 'unknown',
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta=dict(meta or {}),
    )
    session.add(entry)
    # No commit here; caller's transaction boundary controls durability.
    return entry


_EVENT_ACTIONS = {
    'roleChanged': 'ROLE.CHANGED',
    'accessGranted': 'ACCESS.GRANTED',
    'accessDenied': 'ACCESS.DENIED',
}


class DatabaseAuditSink:
    """AccessControl audit sink writing one AuditLog row per event."""

    def __init__(self, session=None, actor_id: Optional[str] = None):
        self.session = session
        self.actor_id = actor_id

    def record(self, event: AuditEvent) -> None:
        meta = {'timestamp': event.timestamp.isoformat()}
        if event.reason:
            meta['reason'] = event.reason
        add_audit(
            _EVENT_ACTIONS[event.kind.value],
            entity='Permission' if event.permission else 'Role',
            entity_id=event.permission.value if event.permission else event.role.value,
            meta=meta,
            role=event.role.value,
            actor_id=self.actor_id,
            session=self.session,
        )


class DatabaseIssueSink:
    """Integrity audit + escalation sink backed by AuditLog."""

    def __init__(self, session=None, actor_id: Optional[str] = None):
        self.session = session
        self.actor_id = actor_id

    def record(self, issue) -> None:
        add_audit('INTEGRITY.ISSUE', issue.entity_type, issue.entity_id,
                  {'type': issue.type.value, 'message': issue.message},
                  actor_id=self.actor_id, session=self.session)

    def escalate(self, issue, role) -> None:
        add_audit('INTEGRITY.ESCALATE', issue.entity_type, issue.entity_id,
                  {
                      'type': issue.type.value,
                      'message': issue.message,
                      'escalate_to': issue.escalate_to.value if issue.escalate_to else None,
                  },
                  role=role.value if role is not None else None,
                  actor_id=self.actor_id, session=self.session)


class LoggingAnalyticsSink:
    def __init__(self, logger_: Optional[logging.Logger] = None):
        self.logger = logger_ or logging.getLogger('furfolio.analytics')

    def track(self, name: str, payload: Dict[str, Any]) -> None:
        self.logger.info('analytics %s %s', name, payload)
