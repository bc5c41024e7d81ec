#!/usr/bin/env python3
"""
Quill -- blog platform API server and admin tool.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8000
  python main.py serve --reload
  python main.py create-admin --name "Ana" --email ana@example.com --password s3cret!
  python main.py set-role bob@example.com author

Self-registration can never produce an admin, so create-admin is the only way
to bootstrap one.

Environment variables (see core/config.py):
  DEBUG                  true for local development; generates throwaway secrets.
  ACCESS_TOKEN_SECRET    Required outside DEBUG. At least 32 characters.
  REFRESH_TOKEN_SECRET   Required outside DEBUG. At least 32 characters, distinct.
  DATABASE_URL           SQLAlchemy URL. Defaults to quill.db next to this file.
"""

import argparse
import logging
import sys

from auth.models import Role, User
from auth.passwords import hash_password
from auth.store import UserStore

logger = logging.getLogger("quill.cli")


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _create_admin(args: argparse.Namespace) -> int:
    if len(args.password) < 6:
        print("  [!] Password must be at least 6 characters.")
        return 1
    if len(args.password.encode("utf-8")) > 72:
        print("  [!] Password cannot exceed 72 bytes.")
        return 1

    store = UserStore()
    try:
        if store.find_by_email(args.email) is not None:
            print(f"  [!] A user with email '{args.email}' already exists. Use set-role instead.")
            return 1
        user = store.create(
            User(
                name=args.name,
                email=args.email,
                password_hash=hash_password(args.password),
                role=Role.admin,
            )
        )
    finally:
        store.close()
    logger.info("Created admin %s", user.id)
    print(f"  Admin '{user.email}' created (id {user.id}).")
    return 0


def _set_role(args: argparse.Namespace) -> int:
    store = UserStore()
    try:
        user = store.find_by_email(args.email)
        if user is None:
            print(f"  [!] No user with email '{args.email}'.")
            return 1
        user.role = Role(args.role)
        store.save(user, fields=("role",))
    finally:
        store.close()
    logger.info("Set role of %s to %s", user.id, user.role.value)
    print(f"  '{user.email}' is now {user.role.value}. Takes effect at their next token refresh.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quill",
        description="Quill blog platform: run the API server or manage accounts.",
        epilog=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the API server with uvicorn.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only).")
    serve.set_defaults(func=_serve)

    admin = sub.add_parser("create-admin", help="Create an admin account.")
    admin.add_argument("--name", required=True)
    admin.add_argument("--email", required=True)
    admin.add_argument("--password", required=True)
    admin.set_defaults(func=_create_admin)

    role = sub.add_parser("set-role", help="Change an existing user's role.")
    role.add_argument("email")
    role.add_argument("role", choices=[r.value for r in Role])
    role.set_defaults(func=_set_role)

    return parser


def main(argv=None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)-5s %(name)s %(message)s")
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
