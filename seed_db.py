#!/usr/bin/env python3
"""
Seed script for local development.

Loads three demo users and two mirrored conversations into the configured
database. The conversations only exist locally; their SIDs are made up and
the provider knows nothing about them.
"""

import argparse
import asyncio
import sys
import uuid

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import hash_password
from app.domains.conversation.mirror import MirrorStore
from app.domains.user.service import UserService
from app.schemas.conversation import RemoteConversation, RemoteParticipant
from models import Base, Conversation, Participant, User

DEMO_PASSWORD = "password123"

DEMO_USERS = [
    ("john@example.com", "John Doe"),
    ("jane@example.com", "Jane Smith"),
    ("bob@example.com", "Bob Wilson"),
]

# Conversation SID, friendly name, indexes into DEMO_USERS
DEMO_CONVERSATIONS = [
    ("CH_test_1", "General Chat", [0, 1, 2]),
    ("CH_test_2", "Project Discussion", [0, 1]),
]


async def clear_data(db: AsyncSession) -> None:
    """Delete every participant, conversation and user row."""
    await db.execute(delete(Participant))
    await db.execute(delete(Conversation))
    await db.execute(delete(User))
    await db.commit()


async def seed(db: AsyncSession, reset: bool = True) -> dict:
    """Insert the demo data and return how many rows of each kind were written."""
    if reset:
        await clear_data(db)

    users_service = UserService(db)
    mirror = MirrorStore(db)

    users = []
    for email, name in DEMO_USERS:
        users.append(
            await users_service.create_user(
                email=email,
                password_hash=hash_password(DEMO_PASSWORD),
                username=name,
                identity=str(uuid.uuid4()),
            )
        )

    participants = 0
    for position, (sid, friendly_name, members) in enumerate(DEMO_CONVERSATIONS, start=1):
        await mirror.save_conversation(RemoteConversation(sid=sid, friendly_name=friendly_name))
        saved = await mirror.save_participants(
            sid,
            [
                (
                    RemoteParticipant(
                        sid=f"MB_{users[i].id.hex}_{position}",
                        identity=users[i].identity,
                        conversation_sid=sid,
                    ),
                    users[i],
                )
                for i in members
            ],
        )
        participants += len(saved)

    return {"users": len(users), "conversations": len(DEMO_CONVERSATIONS), "participants": participants}


async def run(reset: bool) -> dict:
    from app.database import AsyncSessionLocal, engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        async with AsyncSessionLocal() as session:
            return await seed(session, reset=reset)
    finally:
        await engine.dispose()


def main():
    """Main entry point for the seed script."""
    parser = argparse.ArgumentParser(description="Seed the database with demo users and conversations")
    parser.add_argument(
        "--no-reset", action="store_true", help="Keep existing rows instead of clearing them first"
    )
    args = parser.parse_args()

    counts = asyncio.run(run(reset=not args.no_reset))

    print("✅ Database seeded successfully!")
    print(
        f"   {counts['users']} users, {counts['conversations']} conversations, "
        f"{counts['participants']} participants"
    )
    print(f"   Every demo user logs in with password '{DEMO_PASSWORD}'")
    return 0


if __name__ == "__main__":
    sys.exit(main())
