"""
tests/test_cli.py -- Tests for the main.py admin commands.

UserStore inside main.py is swapped for a factory that returns a store on a
shared in-memory database, so create-admin and set-role act on a store the
test can inspect. close() is a no-op on that store so the data survives the
command.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

import main
from auth.models import Role


@pytest.fixture()
def cli_store(stores):
    user_store, _ = stores
    with patch.object(main, "UserStore", return_value=user_store), patch.object(user_store, "close"):
        yield user_store


def test_create_admin(cli_store, capsys) -> None:
    code = main.main(["create-admin", "--name", "Root", "--email", "Root@X.com", "--password", "secret1"])
    assert code == 0
    admin = cli_store.find_by_email("root@x.com")
    assert admin.role == Role.admin
    assert cli_store.check_password(admin, "secret1")
    assert "created" in capsys.readouterr().out


def test_create_admin_rejects_existing_email(cli_store) -> None:
    args = ["create-admin", "--name", "Root", "--email", "root@x.com", "--password", "secret1"]
    assert main.main(args) == 0
    assert main.main(args) == 1


def test_create_admin_rejects_short_password(cli_store) -> None:
    assert main.main(["create-admin", "--name", "R", "--email", "r@x.com", "--password", "123"]) == 1
    assert cli_store.find_by_email("r@x.com") is None


def test_set_role(cli_store) -> None:
    main.main(["create-admin", "--name", "Bob", "--email", "bob@x.com", "--password", "secret1"])
    assert main.main(["set-role", "bob@x.com", "author"]) == 0
    assert cli_store.find_by_email("bob@x.com").role == Role.author


def test_set_role_unknown_user(cli_store) -> None:
    assert main.main(["set-role", "ghost@x.com", "author"]) == 1


def test_set_role_rejects_unknown_role(cli_store) -> None:
    with pytest.raises(SystemExit):
        main.main(["set-role", "bob@x.com", "owner"])
