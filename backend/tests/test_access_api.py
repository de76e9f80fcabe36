import pytest
from furfolio import get_db
from furfolio.constants.permissions import Role, matrix_as_codes
from furfolio.models.audit import AuditLog
from tests.test_utils_seed import auth_headers, ensure_user, login


def test_login_issues_token_with_role_claim(client):
    ensure_user('rita', Role.GROOMER)
    headers = login(client, 'rita')
    me = client.get('/access/auth/me', headers=headers)
    assert me.status_code == 200
    body = me.get_json()
    assert body['role'] == 'groomer'
    assert 'editAppointments' in body['permissions']
    assert body['superuser'] is False


def test_login_rejects_unknown_and_inactive_users(client):
    ensure_user('ghost', Role.OWNER, is_active=False)
    assert client.post('/access/auth/login', json={'username': 'ghost'}).status_code == 401
    assert client.post('/access/auth/login', json={'username': 'nobody'}).status_code == 401
    assert client.post('/access/auth/login', json={}).status_code == 400


def test_can_uses_session_role_unless_role_given(client, app_context):
    headers = auth_headers('groomer-1', Role.GROOMER)
    ok = client.get('/access/can?permission=editAppointments', headers=headers).get_json()
    assert ok == {'role': 'groomer', 'permission': 'editAppointments', 'allowed': True}
    denied = client.get('/access/can?permission=manageStaff', headers=headers).get_json()
    assert denied['allowed'] is False
    other = client.get('/access/can?permission=manageStaff&role=manager', headers=headers).get_json()
    assert other == {'role': 'manager', 'permission': 'manageStaff', 'allowed': True}


def test_can_rejects_unknown_values(client, app_context):
    headers = auth_headers('groomer-2', Role.GROOMER)
    assert client.get('/access/can?permission=flyPlane', headers=headers).status_code == 400
    assert client.get('/access/can?permission=viewClients&role=wizard', headers=headers).status_code == 400
    assert client.get('/access/can', headers=headers).status_code == 400


def test_can_requires_token(client):
    assert client.get('/access/can?permission=viewClients').status_code == 401


def test_matrix_requires_manage_staff(client, app_context):
    assert client.get('/access/matrix', headers=auth_headers('g', Role.GROOMER)).status_code == 403
    resp = client.get('/access/matrix', headers=auth_headers('m', Role.MANAGER))
    assert resp.status_code == 200
    assert resp.get_json()['data'] == matrix_as_codes()


def test_denial_is_audited(client, app_context):
    resp = client.get('/access/matrix', headers=auth_headers('bather-7', Role.BATHER))
    assert resp.status_code == 403
    assert resp.get_json()['error']['detail'] == "Role 'bather' lacks permission 'manageStaff'"
    session = get_db()
    row = session.query(AuditLog).filter_by(action='ACCESS.DENIED', actor_id='bather-7').one()
    assert row.role == 'bather'
    assert row.entity == 'Permission'
    assert row.entity_id == 'manageStaff'


def test_switch_role_reissues_token_and_audits(client, app_context):
    headers = auth_headers('mgr-1', Role.MANAGER)
    resp = client.post('/access/session/role', json={'role': 'groomer'}, headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['role'] == 'groomer'
    new_headers = {'Authorization': f"Bearer {body['access_token']}"}
    assert client.get('/access/matrix', headers=new_headers).status_code == 403
    session = get_db()
    changed = session.query(AuditLog).filter_by(action='ROLE.CHANGED', actor_id='mgr-1').all()
    assert [c.role for c in changed] == ['groomer']


def test_switch_role_validates_role(client, app_context):
    headers = auth_headers('mgr-2', Role.MANAGER)
    assert client.post('/access/session/role', json={'role': 'emperor'}, headers=headers).status_code == 400
    assert client.post('/access/session/role', json={'role': 'unknown'}, headers=headers).status_code == 200


def test_audit_logs_listing_requires_audit_permission(client, app_context):
    client.get('/access/matrix', headers=auth_headers('recep-1', Role.RECEPTIONIST))
    assert client.get('/access/audit/logs', headers=auth_headers('recep-1', Role.RECEPTIONIST)).status_code == 403
    resp = client.get('/access/audit/logs?action=ACCESS.DENIED&limit=500', headers=auth_headers('own-1', Role.OWNER))
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['pagination']['limit'] == 200
    assert body['data']
    assert all(row['action'] == 'ACCESS.DENIED' for row in body['data'])
    assert 'recep-1' in {row['actor_id'] for row in body['data']}


def test_audit_logs_bad_pagination(client, app_context):
    resp = client.get('/access/audit/logs?limit=abc', headers=auth_headers('own-2', Role.OWNER))
    assert resp.status_code == 400


def test_superuser_claim_ignored_unless_enabled(client, app_context, monkeypatch):
    headers = auth_headers('su-1', Role.GUEST, superuser=True)
    assert client.get('/access/matrix', headers=headers).status_code == 403
    monkeypatch.setitem(app_context.config, 'ALLOW_SUPERUSER_OVERRIDE', True)
    assert client.get('/access/matrix', headers=headers).status_code == 200
    session = get_db()
    granted = session.query(AuditLog).filter_by(action='ACCESS.GRANTED', actor_id='su-1').all()
    assert any(row.meta.get('reason') == 'Superuser override' for row in granted)


def test_audit_disabled_falls_back_to_logging(client, app_context, monkeypatch, caplog):
    monkeypatch.setitem(app_context.config, 'PERSIST_AUDIT', False)
    caplog.set_level('INFO')
    resp = client.get('/access/can?permission=viewDashboard', headers=auth_headers('quiet-1', Role.GUEST))
    assert resp.get_json()['allowed'] is True
    assert get_db().query(AuditLog).filter_by(actor_id='quiet-1').count() == 0
    assert any('accessGranted' in r.getMessage() for r in caplog.records)


@pytest.mark.parametrize('target', ['owner', 'admin'])
def test_manager_cannot_switch_to_wider_role(client, app_context, target):
    actor = f'mgr-up-{target}'
    headers = auth_headers(actor, Role.MANAGER)
    resp = client.post('/access/session/role', json={'role': target}, headers=headers)
    assert resp.status_code == 403
    assert resp.get_json()['error']['detail'] == f"Role 'manager' cannot switch to role '{target}'"
    assert client.get('/access/audit/logs', headers=headers).status_code == 403
    session = get_db()
    rejected = session.query(AuditLog).filter_by(action='ROLE.CHANGE_REJECTED', actor_id=actor).one()
    assert rejected.role == 'manager'
    assert rejected.entity_id == target
    assert rejected.meta == {'from_role': 'manager'}
    assert session.query(AuditLog).filter_by(action='ROLE.CHANGED', actor_id=actor).count() == 0
    denied = session.query(AuditLog).filter_by(action='ACCESS.DENIED', actor_id=actor,
                                               entity_id='overrideRestrictions').count()
    assert denied == 1


def test_owner_can_switch_to_narrower_role(client, app_context):
    resp = client.post('/access/session/role', json={'role': 'admin'}, headers=auth_headers('own-3', Role.OWNER))
    assert resp.status_code == 200
    assert resp.get_json()['role'] == 'admin'


def test_override_allows_wider_switch(client, app_context, monkeypatch):
    monkeypatch.setitem(app_context.config, 'ALLOW_SUPERUSER_OVERRIDE', True)
    headers = auth_headers('mgr-su', Role.MANAGER, superuser=True)
    resp = client.post('/access/session/role', json={'role': 'owner'}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()['role'] == 'owner'


def test_what_if_query_is_not_audited(client, app_context):
    headers = auth_headers('guest-q', Role.GUEST)
    body = client.get('/access/can?permission=auditLogs&role=owner', headers=headers).get_json()
    assert body == {'role': 'owner', 'permission': 'auditLogs', 'allowed': True}
    session = get_db()
    assert session.query(AuditLog).filter_by(actor_id='guest-q').count() == 0
    client.get('/access/can?permission=auditLogs', headers=headers)
    rows = session.query(AuditLog).filter_by(actor_id='guest-q').all()
    assert [(r.action, r.role) for r in rows] == [('ACCESS.DENIED', 'guest')]
