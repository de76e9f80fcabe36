from flask import Blueprint, current_app
from flask_jwt_extended import get_jwt_identity
from furfolio import get_db
from furfolio.constants.permissions import Permission
from furfolio.decorators.auth import require_permissions
from furfolio.services.audit import DatabaseIssueSink, LoggingAnalyticsSink
from furfolio.services.integrity import DatabaseIntegrityChecker, IntegrityContext, load_snapshot
from furfolio.services.policy import current_access_control

integrity_bp = Blueprint('integrity', __name__)


def build_checker(actor_id=None) -> DatabaseIntegrityChecker:
    issue_sink = DatabaseIssueSink(actor_id=actor_id) if current_app.config.get('PERSIST_AUDIT', True) else None
    return DatabaseIntegrityChecker(
        current_app.config.get('INTEGRITY_CUSTOM_CHECKS', ()),
        audit_sink=issue_sink,
        analytics_sink=LoggingAnalyticsSink(current_app.logger),
        escalation_sink=issue_sink,
    )


@integrity_bp.post('/check')
@require_permissions(Permission.RUN_DIAGNOSTICS)
def run_check():
    actor_id = get_jwt_identity()
    context = IntegrityContext(role=current_access_control().current_role, user_id=actor_id)
    session = get_db()
    issues = build_checker(actor_id).run(load_snapshot(session), context)
    session.commit()
    return {
        'passed': not issues,
        'count': len(issues),
        'issues': [issue.to_dict() for issue in issues],
    }
