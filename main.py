#!/usr/bin/env python3
"""
Gatekeeper -- administration CLI.

Self-registration can never create an admin, so this is the only way to
bootstrap one. Also generates the signing secret and runs maintenance.

Usage:
  python main.py gen-secret
  python main.py gen-secret --env-file /etc/gatekeeper/.env
  python main.py create-admin --username root --email root@example.com --password 'S3cret-pass'
  python main.py set-role --email bob@example.com --role admin
  python main.py deactivate --email bob@example.com
  python main.py purge-revoked

Environment variables (see core/config.py):
  SECRET_KEY     Required unless DEBUG=true. gen-secret writes one.
  DATABASE_URL   Defaults to the SQLite file beside the auth package.
  BCRYPT_ROUNDS  Cost factor for new password hashes (default 12).
"""

import argparse
import logging
import re
import secrets
import sys
from pathlib import Path
from typing import Optional

from auth.errors import DuplicateUser, InvalidPassword
from auth.models import Role
from auth.passwords import MAX_PASSWORD_BYTES, PasswordHasher
from auth.revocation import RevocationRegistry
from auth.service import normalize_email
from auth.store import RevocationStore, UserStore
from core.config import get_settings

logger = logging.getLogger("gatekeeper.cli")

_SECRET_LINE = re.compile(r"^\s*SECRET_KEY\s*=\s*\S+")


def gen_secret(env_file: Path) -> int:
    """Append a fresh SECRET_KEY to env_file unless one is already set.

    Does not touch get_settings(): in production mode Settings refuses to load
    without a secret, which is exactly the situation this command fixes.
    """
    existing = env_file.read_text().splitlines() if env_file.is_file() else []
    if any(_SECRET_LINE.match(line) for line in existing):
        print(f"  SECRET_KEY already present in {env_file}; leaving it unchanged.")
        return 0
    existing.append(f"SECRET_KEY={secrets.token_hex(64)}")
    env_file.write_text("\n".join(existing) + "\n")
    print(f"  Wrote a new SECRET_KEY to {env_file}.")
    return 0


def _open_user_store() -> UserStore:
    settings = get_settings()
    return UserStore(settings.database_url, timeout=settings.db_timeout_seconds)


def create_admin(username: str, email: str, password: str) -> int:
    settings = get_settings()
    store = _open_user_store()
    try:
        hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
        user = store.create_user(username, normalize_email(email), hasher.hash(password), Role.ADMIN)
    except DuplicateUser:
        print(f"  [!] A user named '{username}' or with email '{email}' already exists.")
        return 1
    except InvalidPassword:
        print(f"  [!] Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        return 1
    finally:
        store.close()
    logger.info("Created admin id=%s username=%s", user.id, user.username)
    print(f"  Created admin '{user.username}' (id={user.id}).")
    return 0


def set_role(email: str, role: str) -> int:
    """Change a user's role. Takes effect on that user's next request."""
    store = _open_user_store()
    try:
        user = store.find_user_by_email(normalize_email(email))
        if user is None:
            print(f"  [!] No active user with email '{email}'.")
            return 1
        store.set_role(user.id, Role(role))
    finally:
        store.close()
    print(f"  '{user.username}' is now {role}.")
    return 0


def deactivate(email: str) -> int:
    """Soft-delete a user. Their existing tokens stop working immediately."""
    store = _open_user_store()
    try:
        user = store.find_user_by_email(normalize_email(email))
        if user is None:
            print(f"  [!] No active user with email '{email}'.")
            return 1
        store.set_active(user.id, False)
    finally:
        store.close()
    print(f"  Deactivated '{user.username}'.")
    return 0


def purge_revoked() -> int:
    settings = get_settings()
    store = RevocationStore(settings.database_url, timeout=settings.db_timeout_seconds)
    try:
        removed = RevocationRegistry(store).purge_expired()
    finally:
        store.close()
    print(f"  Removed {removed} expired revocation record(s).")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="gatekeeper",
        description="Gatekeeper administration: secrets, admin accounts, maintenance.",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p_secret = sub.add_parser("gen-secret", help="Write a SECRET_KEY into an env file")
    p_secret.add_argument("--env-file", default=".env", help="Env file to update (default: .env)")

    p_admin = sub.add_parser("create-admin", help="Create an admin account")
    p_admin.add_argument("--username", required=True)
    p_admin.add_argument("--email", required=True)
    p_admin.add_argument("--password", required=True)

    p_role = sub.add_parser("set-role", help="Change a user's role")
    p_role.add_argument("--email", required=True)
    p_role.add_argument("--role", required=True, choices=[r.value for r in Role])

    p_deact = sub.add_parser("deactivate", help="Soft-delete a user")
    p_deact.add_argument("--email", required=True)

    sub.add_parser("purge-revoked", help="Drop revocation records for already-expired tokens")

    args = parser.parse_args(argv)

    if args.command == "gen-secret":
        return gen_secret(Path(args.env_file))
    if args.command == "create-admin":
        return create_admin(args.username, args.email, args.password)
    if args.command == "set-role":
        return set_role(args.email, args.role)
    if args.command == "deactivate":
        return deactivate(args.email)
    if args.command == "purge-revoked":
        return purge_revoked()

    parser.print_help()
    return 2


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)-5s %(name)s %(message)s")
    sys.exit(main())
