"""
Create a reviewer (or promote an existing account) so it can approve and
decline submissions.

    python -m fwb_gallery.scripts.create_reviewer --email mod@example.com --name "Mod" --password ...
"""

from __future__ import annotations

import argparse
import asyncio

from sqlalchemy import select

from fwb_gallery.db import SessionLocal
from fwb_gallery.models.user import User
from fwb_gallery.security import hash_password


async def create_reviewer(email: str, name: str, password: str | None, role: str = "reviewer") -> User:
    async with SessionLocal() as session:
        user = await session.scalar(select(User).where(User.email == email.lower()))
        if user is None:
            if not password:
                raise SystemExit("--password is required for a new account")
            user = User(email=email.lower(), name=name, password_hash=hash_password(password), role=role)
            session.add(user)
            print(f"Created {role} {email}")
        else:
            user.role = role
            print(f"Promoted {email} to {role}")
        await session.commit()
        return user


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or promote a reviewer account")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", default="Reviewer")
    parser.add_argument("--password")
    parser.add_argument("--role", choices=["reviewer", "admin"], default="reviewer")
    args = parser.parse_args()
    asyncio.run(create_reviewer(args.email, args.name, args.password, args.role))


if __name__ == "__main__":
    main()
