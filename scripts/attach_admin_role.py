#!/usr/bin/env python3
"""Attach the admin role to a user (idempotent).

Usage:
  python scripts/attach_admin_role.py --email owner@example.com
"""

import sys
import os
import argparse
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.invites.models import Role, User
from scripts._db_utils import script_session


def attach_admin_role(db_url: str, email: str) -> str:
    with script_session(db_url) as s:
        user = s.query(User).filter(User.email == email.strip().lower()).one_or_none()
        if not user:
            return f"User not found: {email}"
        role = s.query(Role).filter(Role.key == "admin").one_or_none()
        if not role:
            return "Admin role not found. Run python scripts/init_db.py first."
        if role in (user.roles or []):
            return f"User already has admin role: {email}"
        user.roles.append(role)
    return f"Admin role attached to {email}"


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--email", required=True, help="User email to attach admin role")
    args = parser.parse_args()

    db_url = (os.environ.get("DATABASE_URL") or "sqlite:///invites.db").strip()
    print(attach_admin_role(db_url, args.email))


if __name__ == "__main__":
    main()
