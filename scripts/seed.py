"""Seed script for local development: a few travellers and who follows whom."""

import asyncio
import logging

from travelgram.config import get_settings
from travelgram.db.neo4j import Neo4jDatabase
from travelgram.models.user import UserCreate
from travelgram.repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)

USERS = [
    UserCreate(uid="seed-anna", username="Anna", email="anna@example.com", interests=["hiking", "museums"]),
    UserCreate(uid="seed-bob", username="Bob", email="bob@example.com", interests=["street food"]),
    UserCreate(uid="seed-anil", username="Anil", email="anil@example.com", interests=["trains", "mountains"]),
    UserCreate(uid="seed-marie", username="Marie", email="marie@example.com", bio="Paris local"),
]

FOLLOWS = [
    ("seed-anna", "seed-marie"),
    ("seed-bob", "seed-marie"),
    ("seed-bob", "seed-anna"),
    ("seed-anil", "seed-anna"),
    ("seed-marie", "seed-anil"),
]


async def seed_data():
    """Seed Neo4j with test profiles."""
    graph = Neo4jDatabase(get_settings())
    await graph.connect()
    users = UserRepository(graph)

    try:
        for data in USERS:
            await users.create(data)
        logger.info(f"Created {len(USERS)} users")

        for follower_id, target_id in FOLLOWS:
            await users.follow(follower_id, target_id)
        logger.info(f"Created {len(FOLLOWS)} follow edges")
    finally:
        await graph.disconnect()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed_data())
