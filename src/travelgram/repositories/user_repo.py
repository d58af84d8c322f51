"""User profile and follow-graph repository for Neo4j operations."""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, Optional

from neo4j import AsyncSession, Query
from neo4j.exceptions import DriverError, Neo4jError, ServiceUnavailable

from ..db.neo4j import Neo4jDatabase
from ..exceptions import (
    DependencyUnavailable,
    NotFoundError,
    RepositoryError,
    ValidationError,
)
from ..models.user import UserCreate, UserProfile, UserUpdate

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2

_PROFILE_RETURN = """
OPTIONAL MATCH (follower:User)-[:FOLLOWS]->(u)
WITH u, collect(DISTINCT follower.id) AS followers
OPTIONAL MATCH (u)-[:FOLLOWS]->(followed:User)
RETURN u, followers, collect(DISTINCT followed.id) AS following
"""


def _to_profile(node, followers=None, following=None) -> UserProfile:
    return UserProfile(
        id=node["id"],
        email=node.get("email"),
        username=node.get("username") or node["id"],
        bio=node.get("bio") or "",
        photo_url=node.get("photo_url"),
        interests=list(node.get("interests") or []),
        followers=[f for f in (followers or []) if f],
        following=[f for f in (following or []) if f],
        created_at=datetime.fromisoformat(node["created_at"]),
        updated_at=datetime.fromisoformat(node["updated_at"]),
    )


class UserRepository:
    """Repository for User nodes and FOLLOWS edges."""

    def __init__(self, graph: Neo4jDatabase):
        self.graph = graph

    def _query(self, text: str) -> Query:
        return Query(text, timeout=self.graph.query_timeout)

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with self.graph.session() as session:
                yield session
        # ServiceUnavailable is itself a DriverError
        except ServiceUnavailable as e:
            raise DependencyUnavailable(f"Social graph store unavailable: {e}") from e
        except (Neo4jError, DriverError) as e:
            logger.error(f"Social graph store error: {e}")
            raise RepositoryError(f"Social graph store error: {e}") from e
        except asyncio.TimeoutError as e:
            logger.error("Social graph query timed out")
            raise RepositoryError("Social graph query timed out") from e

    async def create(self, data: UserCreate) -> UserProfile:
        """Create or overwrite a profile. Existing FOLLOWS edges are kept."""
        now = datetime.utcnow().isoformat()
        query = """
        MERGE (u:User {id: $id})
        ON CREATE SET u.created_at = $now
        SET u.email = $email,
            u.username = $username,
            u.username_lower = toLower($username),
            u.bio = $bio,
            u.photo_url = $photo_url,
            u.interests = $interests,
            u.updated_at = $now
        WITH u
        """ + _PROFILE_RETURN

        async with self._session() as session:
            result = await session.run(
                self._query(query),
                id=data.uid,
                email=data.email,
                username=data.username,
                bio=data.bio,
                photo_url=data.photo_url,
                interests=data.interests,
                now=now,
            )
            record = await result.single()

        return _to_profile(record["u"], record["followers"], record["following"])

    async def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        """Get a profile with its adjacency lists."""
        query = "MATCH (u:User {id: $id})" + _PROFILE_RETURN

        async with self._session() as session:
            result = await session.run(self._query(query), id=user_id)
            record = await result.single()

        if not record:
            return None
        return _to_profile(record["u"], record["followers"], record["following"])

    async def exists(self, user_id: str) -> bool:
        query = """
        MATCH (u:User {id: $id})
        RETURN count(u) AS found
        """
        async with self._session() as session:
            result = await session.run(self._query(query), id=user_id)
            record = await result.single()
        return bool(record and record["found"])

    async def update(self, user_id: str, data: UserUpdate) -> Optional[UserProfile]:
        """Update profile fields. Adjacency lists are not writable here."""
        updates = {k: v for k, v in data.model_dump().items() if v is not None}
        if not updates:
            return await self.get_by_id(user_id)

        if "username" in updates:
            updates["username_lower"] = updates["username"].lower()
        updates["updated_at"] = datetime.utcnow().isoformat()

        set_clause = ", ".join([f"u.{k} = ${k}" for k in updates.keys()])
        query = f"""
        MATCH (u:User {{id: $id}})
        SET {set_clause}
        WITH u
        """ + _PROFILE_RETURN

        async with self._session() as session:
            result = await session.run(self._query(query), id=user_id, **updates)
            record = await result.single()

        if not record:
            return None
        return _to_profile(record["u"], record["followers"], record["following"])

    async def search(self, query_text: str, limit: int = 50) -> list[UserProfile]:
        """Case-insensitive substring match on username."""
        query_text = (query_text or "").strip()
        if len(query_text) < MIN_SEARCH_LENGTH:
            return []

        query = """
        MATCH (u:User)
        WHERE u.username_lower CONTAINS toLower($needle)
        RETURN u
        ORDER BY u.username_lower
        LIMIT $limit
        """
        async with self._session() as session:
            result = await session.run(self._query(query), needle=query_text, limit=limit)
            records = await result.data()

        return [_to_profile(r["u"]) for r in records]

    async def get_following_ids(self, user_id: str) -> list[str]:
        query = """
        MATCH (u:User {id: $id})-[:FOLLOWS]->(followed:User)
        RETURN followed.id AS id
        """
        async with self._session() as session:
            result = await session.run(self._query(query), id=user_id)
            records = await result.data()
        return [r["id"] for r in records]

    async def get_followers(self, user_id: str) -> list[UserProfile]:
        """Profiles of users following ``user_id``."""
        if not await self.exists(user_id):
            raise NotFoundError("User not found")

        query = """
        MATCH (u:User)-[:FOLLOWS]->(:User {id: $id})
        RETURN u
        ORDER BY u.username_lower
        """
        async with self._session() as session:
            result = await session.run(self._query(query), id=user_id)
            records = await result.data()
        return [_to_profile(r["u"]) for r in records]

    async def get_following(self, user_id: str) -> list[UserProfile]:
        """Profiles of users ``user_id`` follows."""
        if not await self.exists(user_id):
            raise NotFoundError("User not found")

        query = """
        MATCH (:User {id: $id})-[:FOLLOWS]->(u:User)
        RETURN u
        ORDER BY u.username_lower
        """
        async with self._session() as session:
            result = await session.run(self._query(query), id=user_id)
            records = await result.data()
        return [_to_profile(r["u"]) for r in records]

    async def _check_pair(self, follower_id: str, target_id: str, action: str) -> None:
        if follower_id == target_id:
            raise ValidationError(f"You cannot {action} yourself")
        if not await self.exists(target_id):
            raise NotFoundError("User not found")
        if not await self.exists(follower_id):
            raise NotFoundError("Follower not found")

    async def follow(self, follower_id: str, target_id: str) -> None:
        """Create the FOLLOWS edge. Following twice keeps one edge."""
        await self._check_pair(follower_id, target_id, "follow")

        query = """
        MATCH (a:User {id: $follower_id})
        MATCH (b:User {id: $target_id})
        MERGE (a)-[r:FOLLOWS]->(b)
        ON CREATE SET r.since = $now
        RETURN count(r) AS linked
        """
        async with self._session() as session:
            result = await session.run(
                self._query(query),
                follower_id=follower_id,
                target_id=target_id,
                now=datetime.utcnow().isoformat(),
            )
            await result.consume()
        logger.info(f"User {follower_id} now follows {target_id}")

    async def unfollow(self, follower_id: str, target_id: str) -> None:
        """Remove the FOLLOWS edge if present."""
        await self._check_pair(follower_id, target_id, "unfollow")

        query = """
        MATCH (:User {id: $follower_id})-[r:FOLLOWS]->(:User {id: $target_id})
        DELETE r
        RETURN count(r) AS unlinked
        """
        async with self._session() as session:
            result = await session.run(
                self._query(query), follower_id=follower_id, target_id=target_id
            )
            await result.consume()
        logger.info(f"User {follower_id} unfollowed {target_id}")
