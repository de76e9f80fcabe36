"""Test seeding utilities to reduce duplication.

These helpers centralize creation of users, tokens and the small grooming-shop
object graphs the integrity tests reason about.
"""
from typing import Iterable, Optional
from flask_jwt_extended import create_access_token
from furfolio import get_db
from furfolio.constants.permissions import Role
from furfolio.models.entities import Appointment, Dog, DogOwner, User


def ensure_user(username: str, role: Role = Role.UNKNOWN, is_active: bool = True) -> User:
    session = get_db()
    u = session.query(User).filter_by(username=username).one_or_none()
    if not u:
        u = User(username=username, role=role.value, is_active=is_active)
        session.add(u); session.commit()
    return u


def auth_headers(identity: str, role: Role, superuser: bool = False):
    """Bearer header for a crafted token; call inside an app context."""
    claims = {'role': role.value}
    if superuser:
        claims['superuser'] = True
    token = create_access_token(identity=str(identity), additional_claims=claims)
    return {'Authorization': f'Bearer {token}'}


def login(client, username: str):
    resp = client.post('/access/auth/login', json={'username': username})
    assert resp.status_code == 200, resp.get_json()
    return {'Authorization': f"Bearer {resp.get_json()['access_token']}"}


def healthy_household(owner_name: str = 'Ann', dog_name: str = 'Biscuit', tags: Optional[Iterable[str]] = None):
    """Owner with one dog and one fully linked appointment: produces no issues."""
    owner = DogOwner(name=owner_name, tags=list(tags or []))
    dog = Dog(name=dog_name, owner=owner, tags=list(tags or []))
    appt = Appointment(owner=owner, dog=dog, service_type=Appointment.SERVICE_FULL)
    return owner, dog, appt


def jane_rex_scenario():
    """VIP owner without dogs, an ownerless dog and a fully orphaned appointment."""
    jane = DogOwner(name='Jane', tags=['VIP'])
    rex = Dog(name='Rex', owner=None, tags=[])
    appt = Appointment(owner=None, dog=None)
    return jane, rex, appt


__all__ = ['ensure_user', 'auth_headers', 'login', 'healthy_household', 'jane_rex_scenario']
