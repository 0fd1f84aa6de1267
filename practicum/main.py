"""
Practicum backend - main entry point.

    python -m practicum.main serve
    python -m practicum.main create-admin --name "Ada" --email ada@example.com

`create-admin` bootstraps the first staff account; everyone else is
invited through the API.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging

import uvicorn

from practicum.auth.permissions import Role
from practicum.config import Settings, configure_logging, get_settings
from practicum.core.errors import AccountConflictError
from practicum.services.container import build_services
from practicum.storage import UniqueViolationError

logger = logging.getLogger(__name__)


async def create_admin(settings: Settings, name: str, email: str, password: str) -> int:
    """Create an admin user. Returns the new user's id."""
    services = build_services(settings)
    try:
        user = await services.storage.users.create(
            name=name,
            email=email,
            password_hash=await services.hasher.hash(password),
            role=Role.ADMIN.value,
            permissions=[],
        )
    except UniqueViolationError as e:
        raise AccountConflictError(f"A user with email {email} already exists") from e
    return user.id


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(prog="practicum")
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.add_argument("--reload", action="store_true")

    admin = commands.add_parser("create-admin", help="Create an admin user")
    admin.add_argument("--name", required=True)
    admin.add_argument("--email", required=True)

    args = parser.parse_args()
    settings = get_settings()
    configure_logging(settings)

    if args.command == "serve":
        uvicorn.run(
            "practicum.api.app:create_app",
            factory=True,
            host=args.host or settings.api_host,
            port=args.port or settings.api_port,
            reload=args.reload,
        )
    elif args.command == "create-admin":
        password = getpass.getpass("Password: ")
        user_id = asyncio.run(create_admin(settings, args.name, args.email, password))
        logger.info("Admin user created with id %s", user_id)


if __name__ == "__main__":
    main()
