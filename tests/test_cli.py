"""Tests for main.py -- the administration CLI."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

import main as cli
from auth.models import Role
from auth.passwords import PasswordHasher
from auth.store import RevocationStore, UserStore
from core.config import get_settings


@pytest.fixture
def db_url(tmp_path: Path, monkeypatch) -> str:
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    get_settings.cache_clear()
    yield url
    get_settings.cache_clear()


def _user_store(url: str) -> UserStore:
    return UserStore(url)


# ---------------------------------------------------------------------------
# gen-secret
# ---------------------------------------------------------------------------


def test_gen_secret_writes_new_file(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    assert cli.main(["gen-secret", "--env-file", str(env_file)]) == 0
    line = env_file.read_text().strip()
    assert line.startswith("SECRET_KEY=")
    assert len(line.split("=", 1)[1]) == 128


def test_gen_secret_appends_to_existing_file(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("DEBUG=false\n")
    cli.gen_secret(env_file)
    lines = env_file.read_text().splitlines()
    assert lines[0] == "DEBUG=false"
    assert lines[1].startswith("SECRET_KEY=")


def test_gen_secret_keeps_existing_secret(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("SECRET_KEY=keep-me\n")
    cli.gen_secret(env_file)
    assert env_file.read_text() == "SECRET_KEY=keep-me\n"


# ---------------------------------------------------------------------------
# Account administration
# ---------------------------------------------------------------------------


def test_create_admin(db_url: str) -> None:
    assert cli.main(["create-admin", "--username", "root", "--email", "Root@X.com", "--password", "Rootpass123"]) == 0

    store = _user_store(db_url)
    user = store.find_user_by_email("root@x.com")
    store.close()
    assert user is not None
    assert user.role is Role.ADMIN
    assert PasswordHasher(rounds=4).verify("Rootpass123", user.hashed_password)


def test_create_admin_duplicate_returns_1(db_url: str) -> None:
    args = ["create-admin", "--username", "root", "--email", "root@x.com", "--password", "Rootpass123"]
    assert cli.main(args) == 0
    assert cli.main(args) == 1


def test_set_role_and_deactivate(db_url: str) -> None:
    store = _user_store(db_url)
    bob = store.create_user("bob", "bob@x.com", "h", Role.USER)
    store.close()

    assert cli.main(["set-role", "--email", "BOB@x.com", "--role", "admin"]) == 0
    store = _user_store(db_url)
    assert store.find_user_by_id(bob.id).role is Role.ADMIN
    store.close()

    assert cli.main(["deactivate", "--email", "bob@x.com"]) == 0
    store = _user_store(db_url)
    assert store.find_user_by_id(bob.id) is None
    store.close()


def test_unknown_email_returns_1(db_url: str) -> None:
    assert cli.main(["set-role", "--email", "ghost@x.com", "--role", "admin"]) == 1
    assert cli.main(["deactivate", "--email", "ghost@x.com"]) == 1


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------


def test_purge_revoked(db_url: str, capsys) -> None:
    now = datetime.now(timezone.utc)
    store = RevocationStore(db_url)
    store.mark_revoked("old", now - timedelta(days=1))
    store.mark_revoked("current", now + timedelta(days=1))
    store.close()

    assert cli.main(["purge-revoked"]) == 0
    assert "Removed 1" in capsys.readouterr().out

    store = RevocationStore(db_url)
    assert not store.is_revoked("old")
    assert store.is_revoked("current")
    store.close()


def test_no_command_prints_help(capsys) -> None:
    assert cli.main([]) == 2
    assert "usage" in capsys.readouterr().out.lower()


def test_create_admin_over_long_password_returns_1(db_url: str, capsys) -> None:
    args = ["create-admin", "--username", "root", "--email", "root@x.com", "--password", "A1" + "x" * 78]
    assert cli.main(args) == 1
    assert "[!]" in capsys.readouterr().out

    store = _user_store(db_url)
    assert store.find_user_by_email("root@x.com") is None
    store.close()
