#!/usr/bin/env python3
"""
Conduit auth core -- operator command line.

Usage:
  python main.py generate-key /etc/conduit/secret.key
  python main.py create-user alice@example.com alice
  python main.py serve --host 0.0.0.0 --port 8080

Environment variables:
  SECRET_KEY_FILE  Path to the signing key file (preferred).
  SECRET_KEY       Inline signing key, at least 32 characters.
  DATABASE_URL     SQLAlchemy URL of the user database.
  BCRYPT_ROUNDS    Password hashing cost (default 12).
"""

import argparse
import getpass
import os
import secrets
import sys
from pathlib import Path

KEY_BYTES = 32


def generate_key(path: str) -> int:
    """Write KEY_BYTES random bytes to path with owner-only permissions.

    Refuses to overwrite an existing file: replacing the key invalidates every
    session token already issued.
    """
    key_path = Path(path).expanduser()
    if key_path.exists():
        print(f"  [!] '{path}' already exists. Remove it first to rotate the key.")
        return 1
    try:
        fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    except OSError as e:
        print(f"  [!] Could not create '{path}': {e}")
        return 1
    with os.fdopen(fd, "wb") as fh:
        fh.write(secrets.token_bytes(KEY_BYTES))
    print(f"  [+] Wrote {KEY_BYTES}-byte signing key to {key_path}")
    print(f"      export SECRET_KEY_FILE={key_path}")
    return 0


def create_user(email: str, username: str) -> int:
    """Register an account from the terminal. The password is read with getpass."""
    from auth.errors import AuthError
    from auth.service import AuthenticationService
    from auth.store import CredentialStore
    from core.config import get_settings, load_signing_key

    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Repeat password: "):
        print("  [!] Passwords do not match.")
        return 1

    # pydantic's ValidationError subclasses ValueError.
    try:
        settings = get_settings()
        signing_key = load_signing_key(settings)
    except ValueError as e:
        print(f"  [!] {e}")
        return 1

    store = CredentialStore(db_url=settings.database_url)
    try:
        service = AuthenticationService(
            store,
            signing_key,
            session_lifetime=settings.token_expire_seconds,
            bcrypt_rounds=settings.bcrypt_rounds,
        )
        user, _token = service.signup(email, username, password)
    except AuthError as e:
        print(f"  [!] {e.message}")
        return 1
    finally:
        store.close()
    print(f"  [+] Created user {user.username} ({user.id})")
    return 0


def serve(host: str, port: int, reload: bool) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=host, port=port, reload=reload)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="conduit",
        description="Conduit auth core -- key management, user bootstrap and server.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_key = sub.add_parser("generate-key", help="Write a new random signing key file")
    p_key.add_argument("path", help="Destination file (must not exist)")

    p_user = sub.add_parser("create-user", help="Create an account; prompts for the password")
    p_user.add_argument("email")
    p_user.add_argument("username")

    p_serve = sub.add_parser("serve", help="Run the API with uvicorn")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8080)
    p_serve.add_argument("--reload", action="store_true")

    args = parser.parse_args(argv)

    if args.command == "generate-key":
        return generate_key(args.path)
    if args.command == "create-user":
        return create_user(args.email, args.username)
    return serve(args.host, args.port, args.reload)


if __name__ == "__main__":
    sys.exit(main())
