"""
Seed Super Role
===============
Grants the ``super`` role to one identifier in the role directory. The API
only assigns ``admin`` and ``user``, so the first super is granted here.

Usage (from project root, with the package installed):
    python backend/scripts/seed_super_admin.py --email owner@example.com
    python backend/scripts/seed_super_admin.py --email owner@example.com --init-db

Flags:
    --email    EMAIL  (required) Identifier as issued by the identity provider
    --init-db         Create missing tables first (development databases only)
"""

import argparse
import sys

from leadconsole.core.database import SessionLocal, init_db
from leadconsole.core.exceptions import ConsoleError
from leadconsole.core.transactions import transaction
from leadconsole.models.role_directory import Role
from leadconsole.services.role_directory import RoleDirectoryRepository


def main() -> int:
    parser = argparse.ArgumentParser(description="Grant the super role to an identifier.")
    parser.add_argument("--email", required=True, help="Identifier to grant the super role to")
    parser.add_argument("--init-db", action="store_true", help="Create tables before seeding")
    args = parser.parse_args()

    print("=" * 60)
    print("  SEED SUPER ROLE")
    print("=" * 60)

    if args.init_db:
        print("\n1. Creating tables...")
        init_db()
        print("  [OK] Tables ready")

    print(f"\n2. Granting super to {args.email}...")
    db = SessionLocal()
    try:
        repository = RoleDirectoryRepository(db)
        with transaction(db):
            repository.assign(args.email, Role.SUPER)
        directory = repository.get()
    except ConsoleError as e:
        print(f"  [FAIL] {e.kind}: {e.message}")
        return 1
    finally:
        db.close()

    print(f"  [OK] {args.email} resolves to '{directory.resolve(args.email).value}'")
    print(f"  Directory version: {directory.version}, members: {len(directory.roles)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
