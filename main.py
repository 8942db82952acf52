#!/usr/bin/env python3
"""
Auth API -- command line entry point.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8000
  python main.py serve --reload
  python main.py init-db
  python main.py create-user --name "Jane Doe" --email jane@test.com

Environment variables (see core/config.py for the full list):
  JWT_SECRET     Token signing secret, 32+ characters. Required in production.
  APP_ENV        "production" enables Secure cookies and requires JWT_SECRET.
  DATABASE_URL   SQLAlchemy URL of the user store (default: auth/users.db).
"""

import argparse
import getpass
import sys

from auth.flow import AuthFlow
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import get_settings
from core.logging_config import configure_logging


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _init_db(args: argparse.Namespace) -> int:
    settings = get_settings()
    store = UserStore(db_url=settings.database_url)
    try:
        print(f"  Schema ready ({store.count_users()} user(s)).")
    finally:
        store.close()
    return 0


def _create_user(args: argparse.Namespace) -> int:
    """Register a user from the terminal with the same validation as the API.

    The password is read with getpass so it never appears in shell history.
    """
    settings = get_settings()
    password = args.password if args.password is not None else getpass.getpass("Password: ")
    store = UserStore(db_url=settings.database_url)
    try:
        flow = AuthFlow(
            store,
            PasswordHasher(rounds=settings.bcrypt_rounds),
            TokenService(secret=settings.jwt_secret, expire_seconds=settings.token_expire_seconds),
        )
        outcome = flow.register(args.name, args.email, password)
    finally:
        store.close()

    if not outcome.ok:
        print(f"  [!] {outcome.message}", file=sys.stderr)
        return 1
    print(f"  Created user {outcome.payload['id']} <{outcome.payload['email']}>")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="auth-api",
        description="Login/register API with cookie-based JWT sessions.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP server with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")
    serve.set_defaults(func=_serve)

    init_db = sub.add_parser("init-db", help="Create the users table if it does not exist")
    init_db.set_defaults(func=_init_db)

    create = sub.add_parser("create-user", help="Register a user from the command line")
    create.add_argument("--name", required=True, help="Display name (letters and spaces, 2-100 chars)")
    create.add_argument("--email", required=True, help="Login email")
    # Hidden: for scripted setups and tests. Interactive use should rely on the prompt.
    create.add_argument("--password", default=None, help=argparse.SUPPRESS)
    create.set_defaults(func=_create_user)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(get_settings())
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
