from flask import Blueprint, request, abort
from flask_jwt_extended import create_access_token, jwt_required, get_jwt, get_jwt_identity
from sqlalchemy import select
from furfolio import get_db
from furfolio.config.settings import normalize_pagination
from furfolio.constants.permissions import Permission, Role, matrix_as_codes, permissions_for
from furfolio.decorators.auth import require_permissions
from furfolio.models.audit import AuditLog
from furfolio.models.entities import User
from furfolio.services.policy import current_access_control, may_assume, record_rejected_role_change

access_bp = Blueprint('access', __name__)


def _parse_enum(enum_cls, raw, field_name: str):
    if raw is None:
        abort(400, description=f'{field_name} required')
    try:
        return enum_cls(raw)
    except ValueError:
        abort(400, description=f'unknown {field_name} {raw!r}')


def _issue_token(identity: str, role: Role, superuser: bool = False) -> str:
    claims = {'role': role.value}
    if superuser:
        claims['superuser'] = True
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    return create_access_token(identity=identity, additional_claims=claims)


@access_bp.post('/auth/login')
def login():
    data = request.json or {}
    username = data.get('username')
    if not username:
        abort(400, description='username required')
    session = get_db()
    user = session.execute(select(User).where(User.username==username)).scalar_one_or_none()
    if not user or not user.is_active:
        abort(401, description='unknown or inactive user')
    role = Role.parse(user.role)
    return {'access_token': _issue_token(str(user.id), role), 'role': role.value}


@access_bp.get('/auth/me')
@jwt_required()
def me():
    ac = current_access_control()
    return {
        'id': get_jwt_identity(),
        'role': ac.current_role.value,
        'superuser': ac.superuser_override,
        'permissions': permissions_for(ac.current_role).codes(),
    }


@access_bp.get('/can')
@jwt_required()
def can():
    permission = _parse_enum(Permission, request.args.get('permission'), 'permission')
    role_raw = request.args.get('role')
    role = _parse_enum(Role, role_raw, 'role') if role_raw is not None else None
    ac = current_access_control()
    # what-if queries about another role are answered but not audited as grants or denials
    allowed = ac.can(permission, role, log=role is None)
    get_db().commit()
    return {
        'role': (role or ac.current_role).value,
        'permission': permission.value,
        'allowed': allowed,
    }


@access_bp.get('/matrix')
@require_permissions(Permission.MANAGE_STAFF)
def matrix():
    return {'data': matrix_as_codes()}


@access_bp.post('/session/role')
@require_permissions(Permission.MANAGE_STAFF)
def switch_role():
    data = request.json or {}
    role = _parse_enum(Role, data.get('role'), 'role')
    ac = current_access_control()
    if not may_assume(ac, role):
        record_rejected_role_change(ac, role)
        get_db().commit()
        abort(403, description=f"Role '{ac.current_role.value}' cannot switch to role '{role.value}'")
    ac.set_role(role)
    get_db().commit()
    token = _issue_token(get_jwt_identity(), ac.current_role, bool(get_jwt().get('superuser')))
    return {'access_token': token, 'role': ac.current_role.value}


@access_bp.get('/audit/logs')
@require_permissions(Permission.AUDIT_LOGS)
def list_audit_logs():
    try:
        limit, offset = normalize_pagination(request.args.get('limit'), request.args.get('offset'))
    except ValueError as e:
        abort(400, description=str(e))
    session = get_db()
    q = session.query(AuditLog)
    action = request.args.get('action')
    if action:
        q = q.filter(AuditLog.action == action)
    total = q.count()
    rows = q.order_by(AuditLog.id.desc()).offset(offset).limit(limit).all()
    return {
        'data': [row.to_dict() for row in rows],
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows)
        }
    }
