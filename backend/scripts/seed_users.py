#!/usr/bin/env python
"""Idempotent seed script for login users.

Usage:
    python backend/scripts/seed_users.py                       # ensure the owner account exists
    python backend/scripts/seed_users.py --user rita:groomer   # also ensure rita with role groomer
    python backend/scripts/seed_users.py --show-matrix         # print role -> permission counts
"""
from __future__ import annotations
import os, sys, argparse
from sqlalchemy import select

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from furfolio import create_app, get_db  # type: ignore
from furfolio.constants.permissions import Role, matrix_as_codes
from furfolio.models.entities import Base, User


def ensure_user(session, username: str, role: Role) -> bool:
    existing = session.execute(select(User).where(User.username==username)).scalar_one_or_none()
    if existing:
        if existing.role != role.value:
            print(f"[WARN] {username} exists with role {existing.role}; leaving unchanged")
        return False
    session.add(User(username=username, role=role.value, is_active=True))
    print(f"[INFO] Created user {username} ({role.value})")
    return True


def parse_user_arg(raw: str):
    if ':' not in raw:
        raise argparse.ArgumentTypeError(f"expected USERNAME:ROLE, got {raw!r}")
    name, role = raw.split(':', 1)
    try:
        return name, Role(role)
    except ValueError:
        raise argparse.ArgumentTypeError(f"unknown role {role!r}")


def print_matrix():
    rows = matrix_as_codes()
    name_w = max(len(r) for r in rows)
    print(f"{'Role'.ljust(name_w)} | Count | Sample (up to 6)")
    print('-' * (name_w + 40))
    for name, codes in rows.items():
        print(f"{name.ljust(name_w)} | {str(len(codes)).rjust(5)} | {', '.join(codes[:6])}")


def main(argv=None):
    p = argparse.ArgumentParser(description="Seed Furfolio login users")
    p.add_argument('--user', action='append', default=[], type=parse_user_arg, metavar='USERNAME:ROLE')
    p.add_argument('--show-matrix', action='store_true', help='Print the default access matrix')
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    args = p.parse_args(argv)

    app = create_app()
    with app.app_context():
        session = get_db()
        try:
            Base.metadata.create_all(session.get_bind())
            created = 0
            owner_name = os.getenv('SEED_OWNER_USERNAME', 'owner')
            for username, role in [(owner_name, Role.OWNER)] + list(args.user):
                created += ensure_user(session, username, role)
            if args.dry_run:
                session.rollback()
                print(f"[DRY-RUN] (rolled back) Users would create: {created}")
            else:
                session.commit()
                print(f"[DONE] Users created: {created}")
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
    if args.show_matrix:
        print('\nAccess Matrix Summary:')
        print_matrix()


if __name__ == '__main__':
    main()
