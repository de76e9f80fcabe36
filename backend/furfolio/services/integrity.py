"""Database integrity checker.

Runs a fixed pipeline of independent checks over an in-memory snapshot of every
entity collection and returns the findings as IntegrityIssue values. Findings
are data, not errors: run_all_checks always returns a (possibly empty) list.

Pipeline order:
    orphaned dogs, orphaned appointments, orphaned charges, duplicate ids,
    dogs without appointments, owners without dogs, business rules (admin
    context only), injected custom checks.

Custom checks are objects with run(snapshot, context) returning a list of
issues, or a coroutine resolving to one. They are awaited one after another;
a check that raises is logged and reported as a checkFailed issue while the
rest of the pipeline continues.

Sinks (all optional, all duck-typed, sync or async):
    audit_sink.record(issue)
    analytics_sink.track(name, payload)
    escalation_sink.escalate(issue, role)
A failing sink is logged and ignored.
"""
from __future__ import annotations
import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import select

from furfolio.constants.permissions import Role
from furfolio.models.entities import (
    Appointment, Charge, Dog, DogOwner, StaffMember, Task, User, VaccinationRecord,
)

logger = logging.getLogger(__name__)

VIP_TAG = 'VIP'
ESCALATION_ROLE = Role.ADMIN


class IssueType(str, Enum):
    ORPHANED_DOG = 'orphanedDog'
    ORPHANED_APPOINTMENT = 'orphanedAppointment'
    ORPHANED_CHARGE = 'orphanedCharge'
    DUPLICATE_ID = 'duplicateID'
    DOG_NO_APPOINTMENTS = 'dogNoAppointments'
    OWNER_NO_DOGS = 'ownerNoDogs'
    BUSINESS_RULE_VIOLATION = 'businessRuleViolation'
    CHECK_FAILED = 'checkFailed'

    @property
    def requires_escalation(self) -> bool:
        return self in ESCALATING_TYPES


ESCALATING_TYPES = frozenset({IssueType.DUPLICATE_ID, IssueType.BUSINESS_RULE_VIOLATION})


@dataclass(frozen=True)
class IntegrityIssue:
    type: IssueType
    message: str
    entity_id: str
    entity_type: str
    escalate_to: Optional[Role] = None

    @property
    def requires_escalation(self) -> bool:
        return self.type.requires_escalation

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type.value,
            'message': self.message,
            'entity_id': self.entity_id,
            'entity_type': self.entity_type,
            'requires_escalation': self.requires_escalation,
            'escalate_to': self.escalate_to.value if self.escalate_to else None,
        }


def make_issue(issue_type: IssueType, message: str, entity_id, entity_type: str) -> IntegrityIssue:
    return IntegrityIssue(
        type=issue_type,
        message=message,
        entity_id=str(entity_id),
        entity_type=entity_type,
        escalate_to=ESCALATION_ROLE if issue_type.requires_escalation else None,
    )


@dataclass(frozen=True)
class IntegrityContext:
    role: Role = Role.UNKNOWN
    user_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role.is_admin


@dataclass
class IntegritySnapshot:
    owners: Sequence[Any] = field(default_factory=list)
    dogs: Sequence[Any] = field(default_factory=list)
    appointments: Sequence[Any] = field(default_factory=list)
    charges: Sequence[Any] = field(default_factory=list)
    staff: Sequence[Any] = field(default_factory=list)
    users: Sequence[Any] = field(default_factory=list)
    tasks: Sequence[Any] = field(default_factory=list)
    vaccination_records: Sequence[Any] = field(default_factory=list)

    def typed_collections(self) -> List[Tuple[str, Sequence[Any]]]:
        return [
            ('DogOwner', self.owners),
            ('Dog', self.dogs),
            ('Appointment', self.appointments),
            ('Charge', self.charges),
            ('StaffMember', self.staff),
            ('User', self.users),
            ('Task', self.tasks),
            ('VaccinationRecord', self.vaccination_records),
        ]


def load_snapshot(session) -> IntegritySnapshot:
    """Read every entity collection from the database."""
    def all_of(model):
        return list(session.execute(select(model)).scalars().all())
    return IntegritySnapshot(
        owners=all_of(DogOwner),
        dogs=all_of(Dog),
        appointments=all_of(Appointment),
        charges=all_of(Charge),
        staff=all_of(StaffMember),
        users=all_of(User),
        tasks=all_of(Task),
        vaccination_records=all_of(VaccinationRecord),
    )


# --- Built-in checks ---

def check_for_orphaned_dogs(dogs: Iterable[Any]) -> List[IntegrityIssue]:
    return [
        make_issue(IssueType.ORPHANED_DOG, f"Dog {d.name} ({d.id}) is not linked to any owner.", d.id, 'Dog')
        for d in dogs if d.owner is None
    ]


def check_for_orphaned_appointments(appointments: Iterable[Any]) -> List[IntegrityIssue]:
    issues = []
    for appt in appointments:
        if appt.owner is None:
            issues.append(make_issue(IssueType.ORPHANED_APPOINTMENT,
                                     f"Appointment ({appt.id}) has no owner linked.", appt.id, 'Appointment'))
        if appt.dog is None:
            issues.append(make_issue(IssueType.ORPHANED_APPOINTMENT,
                                     f"Appointment ({appt.id}) has no dog linked.", appt.id, 'Appointment'))
    return issues


def check_for_orphaned_charges(charges: Iterable[Any]) -> List[IntegrityIssue]:
    issues = []
    for charge in charges:
        for attr, label in (('owner', 'owner'), ('dog', 'dog'), ('appointment', 'appointment')):
            if getattr(charge, attr) is None:
                issues.append(make_issue(IssueType.ORPHANED_CHARGE,
                                         f"Charge ({charge.id}) is not linked to any {label}.", charge.id, 'Charge'))
    return issues


def check_for_duplicate_ids(snapshot: IntegritySnapshot) -> List[IntegrityIssue]:
    """One issue per id claimed by more than one entity type. Same-type repeats are not reported."""
    claimed: Dict[str, set] = {}
    for type_name, items in snapshot.typed_collections():
        for item in items:
            claimed.setdefault(str(item.id), set()).add(type_name)
    return [
        make_issue(IssueType.DUPLICATE_ID,
                   f"Duplicate ID ({entity_id}) found in: {', '.join(sorted(types))}.",
                   entity_id, ', '.join(sorted(types)))
        for entity_id, types in claimed.items() if len(types) > 1
    ]


def check_for_dogs_without_appointments(dogs: Iterable[Any]) -> List[IntegrityIssue]:
    return [
        make_issue(IssueType.DOG_NO_APPOINTMENTS, f"Dog {d.name} ({d.id}) has no appointments.", d.id, 'Dog')
        for d in dogs if not d.appointments
    ]


def check_for_owners_without_dogs(owners: Iterable[Any]) -> List[IntegrityIssue]:
    return [
        make_issue(IssueType.OWNER_NO_DOGS, f"Owner {o.name} ({o.id}) has no dogs.", o.id, 'DogOwner')
        for o in owners if not o.dogs
    ]


def _has_tag(entity, tag: str) -> bool:
    return tag in (getattr(entity, 'tags', None) or ())


def custom_business_rule_checks(snapshot: IntegritySnapshot,
                                context: Optional[IntegrityContext]) -> List[IntegrityIssue]:
    # Business rules are only reported to admin-equivalent roles
    if context is None or not context.is_admin:
        return []
    issues = []
    for owner in snapshot.owners:
        if _has_tag(owner, VIP_TAG) and not any(_has_tag(d, VIP_TAG) for d in owner.dogs or ()):
            issues.append(make_issue(IssueType.BUSINESS_RULE_VIOLATION,
                                     f"VIP owner {owner.name} ({owner.id}) has no VIP dog.", owner.id, 'DogOwner'))
    return issues


async def _resolve(value):
    if inspect.isawaitable(value):
        return await value
    return value


def _check_name(check) -> str:
    return getattr(check, 'name', None) or type(check).__name__


class DatabaseIntegrityChecker:
    def __init__(self, custom_checks: Sequence[Any] = (), *, audit_sink=None, analytics_sink=None,
                 escalation_sink=None):
        self.custom_checks = list(custom_checks)
        self.audit_sink = audit_sink
        self.analytics_sink = analytics_sink
        self.escalation_sink = escalation_sink

    async def run_all_checks(self, snapshot: IntegritySnapshot,
                             context: Optional[IntegrityContext] = None) -> List[IntegrityIssue]:
        issues: List[IntegrityIssue] = []
        issues += check_for_orphaned_dogs(snapshot.dogs)
        issues += check_for_orphaned_appointments(snapshot.appointments)
        issues += check_for_orphaned_charges(snapshot.charges)
        issues += check_for_duplicate_ids(snapshot)
        issues += check_for_dogs_without_appointments(snapshot.dogs)
        issues += check_for_owners_without_dogs(snapshot.owners)
        issues += custom_business_rule_checks(snapshot, context)
        for check in self.custom_checks:
            issues += await self._run_custom_check(check, snapshot, context)

        if issues:
            logger.error('Integrity check: %d issue(s).', len(issues))
            role = context.role if context is not None else None
            for issue in issues:
                logger.warning('%s: %s', issue.type.value, issue.message)
                await self._notify(self.audit_sink, 'record', issue)
                await self._notify(self.analytics_sink, 'track', 'integrity_issue', issue.to_dict())
                if issue.requires_escalation:
                    await self._notify(self.escalation_sink, 'escalate', issue, role)
        else:
            logger.info('Database passed all integrity checks.')
        return issues

    def run(self, snapshot: IntegritySnapshot, context: Optional[IntegrityContext] = None) -> List[IntegrityIssue]:
        """Blocking entry point for callers without a running event loop (routes, CLI)."""
        return asyncio.run(self.run_all_checks(snapshot, context))

    async def _run_custom_check(self, check, snapshot, context) -> List[IntegrityIssue]:
        name = _check_name(check)
        try:
            found = await _resolve(check.run(snapshot, context))
        except Exception as e:
            logger.exception('Custom integrity check %s failed', name)
            return [make_issue(IssueType.CHECK_FAILED, f"Custom check {name} failed: {e}", name, 'IntegrityCheck')]
        return list(found or [])

    async def _notify(self, sink, method: str, *args) -> None:
        if sink is None:
            return
        try:
            await _resolve(getattr(sink, method)(*args))
        except Exception:
            logger.exception('Integrity sink %s.%s failed', type(sink).__name__, method)


__all__ = [
    'DatabaseIntegrityChecker', 'IntegrityContext', 'IntegrityIssue', 'IntegritySnapshot', 'IssueType',
    'ESCALATING_TYPES', 'load_snapshot', 'make_issue',
    'check_for_orphaned_dogs', 'check_for_orphaned_appointments', 'check_for_orphaned_charges',
    'check_for_duplicate_ids', 'check_for_dogs_without_appointments', 'check_for_owners_without_dogs',
    'custom_business_rule_checks',
]
