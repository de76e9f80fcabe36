#!/usr/bin/env python
"""Run the database integrity checker against DATABASE_URL.

Usage:
    python backend/scripts/check_integrity.py                 # run as owner, print a table
    python backend/scripts/check_integrity.py --role groomer  # business rules skipped for non-admin roles
    python backend/scripts/check_integrity.py --json          # machine readable output
    python backend/scripts/check_integrity.py --strict        # exit 2 if any issue requires escalation

Exit Codes:
  0 no issues, or issues without --strict
  2 --strict and at least one escalating issue
"""
from __future__ import annotations
import os, sys, argparse, json, logging

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from furfolio import create_app, get_db  # type: ignore
from furfolio.constants.permissions import Role
from furfolio.models.entities import Base
from furfolio.services.audit import DatabaseIssueSink
from furfolio.services.integrity import DatabaseIntegrityChecker, IntegrityContext, load_snapshot


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Run Furfolio database integrity checks")
    p.add_argument('--role', default=Role.OWNER.value, choices=[r.value for r in Role],
                   help='Role the checks run under (default: owner)')
    p.add_argument('--json', action='store_true', help='Print issues as JSON')
    p.add_argument('--strict', action='store_true', help='Exit 2 when an escalating issue is found')
    p.add_argument('--audit', action='store_true', help='Persist issues and escalations to audit_logs')
    return p.parse_args(argv)


def print_issue_table(issues):
    if not issues:
        print('[OK] Database passed all integrity checks.')
        return
    type_w = max(len(i.type.value) for i in issues)
    print(f"{'Type'.ljust(type_w)} | Esc | Message")
    print('-' * (type_w + 40))
    for issue in issues:
        esc = 'yes' if issue.requires_escalation else 'no'
        print(f"{issue.type.value.ljust(type_w)} | {esc.rjust(3)} | {issue.message}")


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.WARNING, format='%(levelname)s %(name)s: %(message)s')
    app = create_app()
    with app.app_context():
        session = get_db()
        try:
            # Lightweight fallback if migrations not run yet
            Base.metadata.create_all(session.get_bind())
            sink = DatabaseIssueSink(session=session, actor_id='cli') if args.audit else None
            checker = DatabaseIntegrityChecker(audit_sink=sink, escalation_sink=sink)
            issues = checker.run(load_snapshot(session), IntegrityContext(role=Role(args.role), user_id='cli'))
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    if args.json:
        print(json.dumps([i.to_dict() for i in issues], indent=2))
    else:
        print_issue_table(issues)
    if args.strict and any(i.requires_escalation for i in issues):
        return 2
    return 0


if __name__ == '__main__':
    sys.exit(main())
