"""Bootstrap an admin account.

Usage:
    ADMIN_EMAIL=admin@example.org ADMIN_PASSWORD=... community-bootstrap-admin
    community-bootstrap-admin --email admin@example.org --password ... --name "Site Admin"

An existing account with that email is promoted to admin instead.
"""
import argparse
import asyncio
import os
import sys

from .core.auth import auth_service
from .core.exceptions import BaseAPIException
from .core.logging import configure_logging
from .database import close_db, init_db, session_scope
from .models.user import UserRole


async def bootstrap_admin(email: str, password: str, full_name: str) -> dict:
    """Create or promote an admin user.

    Returns:
        dict with user_id, email, and status ('created', 'promoted' or 'already_admin')
    """
    await init_db()
    try:
        async with session_scope() as db:
            existing_user = await auth_service.get_user_by_email(db, email)

            if existing_user is not None:
                if existing_user.role == UserRole.ADMIN:
                    status = "already_admin"
                else:
                    await auth_service.set_role(db, existing_user.id, UserRole.ADMIN)
                    status = "promoted"
                return {"user_id": str(existing_user.id), "email": existing_user.email, "status": status}

            # register() only grants "user" without an admin actor
            user = await auth_service.register(
                db,
                full_name=full_name,
                email=email,
                password=password,
            )
            await auth_service.set_role(db, user.id, UserRole.ADMIN)
            return {"user_id": str(user.id), "email": user.email, "status": "created"}
    finally:
        await close_db()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create or promote an admin account")
    parser.add_argument("--email", default=os.environ.get("ADMIN_EMAIL"))
    parser.add_argument("--password", default=os.environ.get("ADMIN_PASSWORD"))
    parser.add_argument("--name", default=os.environ.get("ADMIN_NAME", "Administrator"))
    args = parser.parse_args(argv)

    if not args.email or not args.password:
        parser.error("--email and --password (or ADMIN_EMAIL and ADMIN_PASSWORD) are required")

    configure_logging()
    try:
        result = asyncio.run(bootstrap_admin(args.email, args.password, args.name))
    except BaseAPIException as exc:
        print(f"Error: {exc.message} {exc.details or ''}".rstrip(), file=sys.stderr)
        return 1

    print(f"{result['status']}: {result['email']} (id: {result['user_id']})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
