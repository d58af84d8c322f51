"""Pytest configuration and fixtures."""

import io
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from neo4j import Query
from sqlalchemy.pool import StaticPool

from travelgram.config import Settings
from travelgram.db.postgres import PostgresDatabase
from travelgram.exceptions import DependencyUnavailable, NotFoundError, StorageError
from travelgram.media.staging import StagingArea
from travelgram.media.storage import generate_stored_name
from travelgram.models.media import StoredObject
from travelgram.models.user import UserCreate
from travelgram.repositories.media_repo import MediaRepository
from travelgram.repositories.user_repo import UserRepository


def _result(single=None, data=None):
    result = MagicMock()
    result.single = AsyncMock(return_value=single)
    result.data = AsyncMock(return_value=data or [])
    result.consume = AsyncMock()
    return result


class FakeGraph:
    """In-memory stand-in for ``Neo4jDatabase`` answering the user repository queries."""

    query_timeout = 30.0

    def __init__(self):
        self.users = {}
        self.edges = set()
        self.ready = True
        self.queries = []
        # query fragment -> exception raised when a matching query runs
        self.failures = {}

    def is_ready(self) -> bool:
        return self.ready

    def _profile_record(self, user_id):
        return {
            "u": self.users[user_id],
            "followers": [a for a, b in self.edges if b == user_id],
            "following": [b for a, b in self.edges if a == user_id],
        }

    def _sorted(self, ids):
        nodes = [self.users[i] for i in ids if i in self.users]
        return [{"u": n} for n in sorted(nodes, key=lambda n: n["username_lower"])]

    async def mock_run(self, query, **params):
        """Mock query execution."""
        self.queries.append(query)
        query = query.text if isinstance(query, Query) else query
        for fragment, error in self.failures.items():
            if fragment in query:
                raise error

        if "MERGE (u:User {id: $id})" in query:
            # Create
            node = self.users.setdefault(params["id"], {"id": params["id"], "created_at": params["now"]})
            node.update({
                "email": params["email"],
                "username": params["username"],
                "username_lower": params["username"].lower(),
                "bio": params["bio"],
                "photo_url": params["photo_url"],
                "interests": params["interests"],
                "updated_at": params["now"],
            })
            return _result(single=self._profile_record(params["id"]))

        if "count(u) AS found" in query:
            return _result(single={"found": int(params["id"] in self.users)})

        if "MERGE (a)-[r:FOLLOWS]->(b)" in query:
            self.edges.add((params["follower_id"], params["target_id"]))
            return _result()

        if "DELETE r" in query:
            self.edges.discard((params["follower_id"], params["target_id"]))
            return _result()

        if "CONTAINS toLower($needle)" in query:
            needle = params["needle"].lower()
            ids = [i for i, n in self.users.items() if needle in n["username_lower"]]
            return _result(data=self._sorted(ids)[: params["limit"]])

        if "RETURN followed.id AS id" in query:
            return _result(data=[{"id": b} for a, b in self.edges if a == params["id"]])

        if "MATCH (u:User)-[:FOLLOWS]->(:User {id: $id})" in query:
            return _result(data=self._sorted(a for a, b in self.edges if b == params["id"]))

        if "MATCH (:User {id: $id})-[:FOLLOWS]->(u:User)" in query:
            return _result(data=self._sorted(b for a, b in self.edges if a == params["id"]))

        if "MATCH (u:User {id: $id})" in query:
            user_id = params["id"]
            if user_id not in self.users:
                return _result(single=None)
            if "SET" in query:
                # Update
                for key, value in params.items():
                    if key != "id":
                        self.users[user_id][key] = value
            return _result(single=self._profile_record(user_id))

        raise AssertionError(f"Unexpected query: {query}")

    @asynccontextmanager
    async def session(self):
        if not self.ready:
            raise DependencyUnavailable("Social graph store is not connected")
        session = AsyncMock()
        session.run = self.mock_run
        yield session


class FakeStream:
    """Iterable chunks with the ``ObjectStream`` close contract."""

    def __init__(self, chunks):
        self.chunks = chunks
        self.closed = False

    def __iter__(self):
        yield from self.chunks

    def close(self):
        self.closed = True


class FakeBinaryStore:
    """In-memory binary store with the ``BinaryStore`` interface."""

    prefix = "uploads"

    def __init__(self):
        self.objects = {}
        self.ready = True
        self.fail_put = False
        self.fail_delete = False
        self.opened = []
        self.put = AsyncMock(side_effect=self._put)

    def is_ready(self) -> bool:
        return self.ready

    def object_key(self, stored_name: str) -> str:
        return f"{self.prefix}/{stored_name}"

    async def _put(self, stream, length, suggested_name, content_type="application/octet-stream", metadata=None):
        if not self.ready:
            raise DependencyUnavailable("Binary store connection is not ready")
        if self.fail_put:
            raise StorageError("Binary store upload failed: connection reset")
        stored_name = generate_stored_name(suggested_name)
        object_id = self.object_key(stored_name)
        self.objects[object_id] = stream.read(length)
        return StoredObject(object_id=object_id, stored_name=stored_name)

    async def open_read_stream(self, stored_name: str):
        object_id = self.object_key(stored_name)
        if object_id not in self.objects:
            raise NotFoundError("File not found in binary store")
        stream = FakeStream([self.objects[object_id]])
        self.opened.append(stream)
        return stream

    async def read_bytes(self, stored_name: str) -> bytes:
        return b"".join(await self.open_read_stream(stored_name))

    async def delete(self, object_id: str) -> None:
        if self.fail_delete:
            raise StorageError("Binary store delete failed: timeout")
        self.objects.pop(object_id, None)


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at throwaway local paths."""
    return Settings(
        staging_dir=str(tmp_path / "staging"),
        gemini_api_key="",
        openai_api_key="",
        firebase_project_id="",
        firebase_credentials_file="",
    )


@pytest.fixture
def staging(settings):
    area = StagingArea(settings.staging_dir)
    area.ensure()
    return area


@pytest.fixture
def stage_file(staging):
    """Write bytes into the staging area and return the staged file."""

    async def _stage(content: bytes, name: str = "photo.jpg", content_type: str = "image/jpeg"):
        return await staging.stage(io.BytesIO(content), name, content_type)

    return _stage


@pytest_asyncio.fixture
async def metadata_db():
    """In-memory SQLite metadata database."""
    db = PostgresDatabase(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await db.connect()
    yield db
    await db.disconnect()


@pytest.fixture
def media_repo(metadata_db):
    return MediaRepository(metadata_db)


@pytest.fixture
def graph():
    return FakeGraph()


@pytest.fixture
def user_repo(graph):
    return UserRepository(graph)


@pytest.fixture
def binary_store():
    return FakeBinaryStore()


@pytest.fixture
def make_user(user_repo):
    """Create a profile in the fake graph."""

    async def _make(uid: str, username: str = None, **fields):
        return await user_repo.create(UserCreate(uid=uid, username=username or uid, **fields))

    return _make
