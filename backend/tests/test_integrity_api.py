import uuid

from furfolio.constants.permissions import Role
from furfolio.models.audit import AuditLog
from furfolio.models.entities import Dog, Task
from tests.test_utils_seed import auth_headers, healthy_household, jane_rex_scenario


def _seed(session, *objects):
    session.add_all(objects)
    session.commit()


def test_check_requires_run_diagnostics(client, app_context, clean_db):
    resp = client.post('/integrity/check', headers=auth_headers('g-1', Role.GROOMER))
    assert resp.status_code == 403


def test_clean_database_passes(client, app_context, clean_db):
    _seed(clean_db, *healthy_household())
    resp = client.post('/integrity/check', headers=auth_headers('own-1', Role.OWNER))
    assert resp.status_code == 200
    assert resp.get_json() == {'passed': True, 'count': 0, 'issues': []}


def test_owner_sees_business_rule_violations(client, app_context, clean_db):
    _seed(clean_db, *jane_rex_scenario())
    body = client.post('/integrity/check', headers=auth_headers('own-2', Role.OWNER)).get_json()
    assert body['passed'] is False
    assert body['count'] == 6
    types = sorted(i['type'] for i in body['issues'])
    assert types == sorted([
        'ownerNoDogs', 'orphanedDog', 'dogNoAppointments',
        'orphanedAppointment', 'orphanedAppointment', 'businessRuleViolation',
    ])


def test_manager_runs_checks_without_business_rules(client, app_context, clean_db):
    _seed(clean_db, *jane_rex_scenario())
    body = client.post('/integrity/check', headers=auth_headers('mgr-1', Role.MANAGER)).get_json()
    assert body['count'] == 5
    assert 'businessRuleViolation' not in {i['type'] for i in body['issues']}


def test_issues_and_escalations_are_audited(client, app_context, clean_db):
    shared = uuid.uuid4()
    owner, dog, appt = healthy_household()
    _seed(clean_db, owner, dog, appt, Task(id=shared, title='Restock shampoo'), Dog(id=shared, name='Twin', owner=owner))
    body = client.post('/integrity/check', headers=auth_headers('adm-1', Role.ADMIN)).get_json()
    dup = [i for i in body['issues'] if i['type'] == 'duplicateID']
    assert len(dup) == 1
    assert dup[0]['requires_escalation'] is True
    assert dup[0]['escalate_to'] == 'admin'
    escalations = clean_db.query(AuditLog).filter_by(action='INTEGRITY.ESCALATE').all()
    assert [e.entity_id for e in escalations] == [str(shared)]
    assert escalations[0].role == 'admin'
    recorded = clean_db.query(AuditLog).filter_by(action='INTEGRITY.ISSUE', actor_id='adm-1').count()
    assert recorded == body['count']


def test_custom_checks_from_config(client, app_context, clean_db, monkeypatch):
    class AlwaysFails:
        name = 'always-fails'

        def run(self, snapshot, context):
            raise RuntimeError('boom')

    monkeypatch.setitem(app_context.config, 'INTEGRITY_CUSTOM_CHECKS', [AlwaysFails()])
    _seed(clean_db, *healthy_household())
    body = client.post('/integrity/check', headers=auth_headers('own-3', Role.OWNER)).get_json()
    assert body['count'] == 1
    assert body['issues'][0]['type'] == 'checkFailed'
    assert body['issues'][0]['entity_id'] == 'always-fails'
