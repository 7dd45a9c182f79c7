#!/usr/bin/env python
"""Idempotent seed script for the per-level default roles.

Usage:
    python backend/scripts/seed_roles.py               # seed normally
    python backend/scripts/seed_roles.py --show-roles  # print level -> role summary (after ensuring seed)
    python backend/scripts/seed_roles.py --dry-run     # run logic then rollback (no DB changes)

When SEED_SUPER_EMAIL is set, a level-1 vendor is bootstrapped with the Super role's
permissions (SEED_SUPER_ID, SEED_SUPER_NAME, SEED_SUPER_PASSWORD refine it).
"""
from __future__ import annotations
import os, sys, argparse, textwrap
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from vendorhub import create_app, get_db  # type: ignore
from vendorhub.constants.permissions import DELEGATABLE_MODULES, LEVEL_SUPER, LEVEL_NAMES, copy_matrix, flatten_matrix, matrix_from_paths
from vendorhub.models.authz import Base, Role, DefaultPermissionGrant, PermissionHistoryEntry
from vendorhub.models.vendor import Vendor
from vendorhub.models import delegation, audit  # noqa: F401  (register tables for create_all)
from seeds.default_roles import DEFAULT_ROLES


def ensure_roles(session):
    existing = {r.role_name for r in session.execute(select(Role)).scalars().all()}
    created = 0
    for level, template in sorted(DEFAULT_ROLES.items()):
        if template['role_name'] in existing:
            continue
        session.add(Role(
            role_name=template['role_name'],
            level=level,
            permissions=matrix_from_paths(template['permissions']),
            can_delegate=template['can_delegate'],
            delegatable_permissions=matrix_from_paths(template['delegatable_permissions'], DELEGATABLE_MODULES),
        ))
        created += 1
    session.flush()
    return created


def ensure_super_vendor(session):
    email = os.getenv('SEED_SUPER_EMAIL')
    if not email:
        return False
    if session.execute(select(Vendor).where(Vendor.email == email)).scalar_one_or_none():
        return False
    role = session.execute(select(Role).where(Role.level == LEVEL_SUPER).order_by(Role.id)).scalars().first()
    if role is None:
        print('[WARN] Super role missing; skipping super vendor creation')
        return False
    vendor = Vendor(
        unique_id=os.getenv('SEED_SUPER_ID', 'SUPER-001'),
        name=os.getenv('SEED_SUPER_NAME', 'Super Vendor'),
        email=email,
        level=LEVEL_SUPER,
    )
    vendor.set_password(os.getenv('SEED_SUPER_PASSWORD', 'ChangeMe123!'))
    session.add(vendor)
    session.flush()
    grant = DefaultPermissionGrant(
        vendor_unique_id=vendor.unique_id,
        vendor_level=LEVEL_SUPER,
        granted_permissions=copy_matrix(role.permissions),
    )
    grant.history.append(PermissionHistoryEntry(
        granted_by=vendor.unique_id,
        change_type=PermissionHistoryEntry.CHANGE_DEFAULT,
        permission='ALL',
        previous_value=False,
        new_value=True,
        notes=f'Initial permissions set from role {role.role_name}',
    ))
    session.add(grant)
    print(f"[INFO] Created super vendor {vendor.unique_id} <{email}> with temporary password.")
    return True


def print_role_summary(session):
    rows = session.execute(select(Role).order_by(Role.level, Role.id)).scalars().all()
    if not rows:
        print("[INFO] No roles present.")
        return
    name_w = max(len(r.role_name) for r in rows)
    print(f"{'Level'.ljust(9)} | {'Role'.ljust(name_w)} | Granted | Delegatable")
    print('-' * (name_w + 36))
    for r in rows:
        level = f"{r.level} {LEVEL_NAMES.get(r.level, '?')}"
        delegatable = len(flatten_matrix(r.delegatable_permissions)) if r.can_delegate else 0
        print(f"{level.ljust(9)} | {r.role_name.ljust(name_w)} | {str(len(flatten_matrix(r.permissions))).rjust(7)} | {str(delegatable).rjust(11)}")


def parse_args():
    p = argparse.ArgumentParser(
        description="Seed default vendor roles",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_roles.py\n  dry run: seed_roles.py --dry-run\n  show roles: seed_roles.py --show-roles\n""")
    )
    p.add_argument('--show-roles', action='store_true', help='Print the role summary after seeding')
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    return p.parse_args()


def main():
    args = parse_args()
    app = create_app()
    with app.app_context():
        session = get_db()
        try:
            session.execute(select(Role.id).limit(1))
        except OperationalError:
            # Auto-create schema for bootstrap; in real env prefer alembic upgrade
            session.rollback()
            Base.metadata.create_all(session.get_bind())

        try:
            created = ensure_roles(session)
            bootstrapped = ensure_super_vendor(session)
            if args.dry_run:
                session.rollback()
                print(f"[DRY-RUN] (rolled back) Roles would create: {created}, super vendor: {bootstrapped}")
            else:
                session.commit()
                print(f"[DONE] Roles created: {created}, super vendor: {bootstrapped}")
            if args.show_roles:
                print('\nRole Summary:')
                print_role_summary(session)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

if __name__ == '__main__':
    main()
