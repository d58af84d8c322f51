"""Tests for feed composition."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from neo4j.exceptions import SessionExpired

from travelgram.exceptions import RepositoryError
from travelgram.media.feed import DEFAULT_USERNAME, FeedComposer
from travelgram.models.media import MediaKind

from factories import T0, make_asset


@pytest.fixture
def composer(media_repo, user_repo, settings):
    return FeedComposer(media_repo, user_repo, settings)


@pytest.mark.asyncio
async def test_feed_includes_followed_users(composer, media_repo, user_repo, make_user):
    """u1 follows u2 who posted from Paris: one entry with u2's username."""
    await make_user("u1", "viewer")
    await make_user("u2", "Marie", photo_url="https://cdn.example/marie.png")
    await user_repo.follow("u1", "u2")
    await media_repo.insert(make_asset(owner_id="u2", location="Paris"))

    feed = await composer.compose_feed("u1")

    assert len(feed) == 1
    assert feed[0].location == "Paris"
    assert feed[0].username == "Marie"
    assert feed[0].user_photo_url == "https://cdn.example/marie.png"
    assert feed[0].audio_id is None


@pytest.mark.asyncio
async def test_feed_owner_set_and_cap(composer, media_repo, user_repo, make_user):
    for uid in ("viewer", "a", "b", "c"):
        await make_user(uid)
    await user_repo.follow("viewer", "a")
    await user_repo.follow("viewer", "b")

    for i in range(10):
        for owner in ("viewer", "a", "b", "c"):
            await media_repo.insert(make_asset(owner_id=owner, at=T0 + timedelta(minutes=i)))

    feed = await composer.compose_feed("viewer")

    assert len(feed) == 20
    assert {e.user_id for e in feed} <= {"viewer", "a", "b"}
    times = [e.uploaded_at for e in feed]
    assert times == sorted(times, reverse=True)


@pytest.mark.asyncio
async def test_feed_for_user_following_nobody(composer, media_repo, make_user):
    await make_user("loner")
    await media_repo.insert(make_asset(owner_id="loner"))
    await media_repo.insert(make_asset(owner_id="someone-else"))

    feed = await composer.compose_feed("loner")

    assert [e.user_id for e in feed] == ["loner"]


@pytest.mark.asyncio
async def test_audio_correlation(composer, media_repo, make_user):
    """Explicit links win; otherwise the closest audio within the window."""
    await make_user("u1")
    linked_image = await media_repo.insert(make_asset(at=T0))
    windowed_image = await media_repo.insert(make_asset(at=T0 + timedelta(hours=1)))
    lonely_image = await media_repo.insert(make_asset(at=T0 + timedelta(hours=2)))

    linked_audio = await media_repo.insert(
        make_asset(kind=MediaKind.AUDIO, at=T0 + timedelta(hours=5), image_id=linked_image)
    )
    near_audio = await media_repo.insert(
        make_asset(kind=MediaKind.AUDIO, at=T0 + timedelta(hours=1, seconds=20))
    )

    feed = {e.id: e for e in await composer.compose_feed("u1")}

    assert feed[linked_image].audio_id == linked_audio
    assert feed[windowed_image].audio_id == near_audio
    assert feed[lonely_image].audio_id is None


@pytest.mark.asyncio
async def test_feed_urls(composer, media_repo, make_user):
    await make_user("u1")
    image_id = await media_repo.insert(make_asset())
    audio_id = await media_repo.insert(make_asset(kind=MediaKind.AUDIO, image_id=image_id))

    entry = (await composer.compose_feed("u1"))[0].with_urls("http://api.test/")

    assert entry.image_url == f"http://api.test/api/images/{image_id}"
    assert entry.audio_url == f"http://api.test/api/audio/{audio_id}"


@pytest.mark.asyncio
async def test_failed_audio_lookup_degrades_entry(composer, media_repo, make_user):
    await make_user("u1")
    await media_repo.insert(make_asset())
    media_repo.find_linked_audio = AsyncMock(side_effect=RepositoryError("boom"))

    feed = await composer.compose_feed("u1")

    assert len(feed) == 1
    assert feed[0].audio_id is None


@pytest.mark.asyncio
async def test_missing_profile_uses_default_username(composer, media_repo, user_repo, make_user):
    await make_user("u1")
    await make_user("ghost")
    await user_repo.follow("u1", "ghost")
    await media_repo.insert(make_asset(owner_id="ghost"))
    user_repo.get_by_id = AsyncMock(return_value=None)

    feed = await composer.compose_feed("u1")

    assert feed[0].username == DEFAULT_USERNAME
    assert feed[0].user_photo_url is None


@pytest.mark.asyncio
async def test_profile_feed_is_unbounded(composer, media_repo, make_user):
    await make_user("u1")
    for i in range(25):
        await media_repo.insert(make_asset(at=T0 + timedelta(seconds=i)))
    await media_repo.insert(make_asset(owner_id="u2"))

    entries = await composer.compose_profile_feed("u1")

    assert len(entries) == 25
    assert entries[0].uploaded_at == T0 + timedelta(seconds=24)
    assert all(e.user_id == "u1" for e in entries)


@pytest.mark.asyncio
async def test_dropped_graph_session_degrades_profile(composer, media_repo, graph, make_user):
    await make_user("u1", "viewer")
    await media_repo.insert(make_asset(location="Lisbon"))
    graph.failures["OPTIONAL MATCH (follower:User)"] = SessionExpired("connection dropped")

    feed = await composer.compose_feed("u1")

    assert len(feed) == 1
    assert feed[0].location == "Lisbon"
    assert feed[0].username == DEFAULT_USERNAME


@pytest.mark.asyncio
async def test_window_match_skips_audio_linked_elsewhere(composer, media_repo, make_user):
    """Audio linked to B stays with B even when it was recorded near A."""
    await make_user("u1")
    image_a = await media_repo.insert(make_asset(at=T0))
    image_b = await media_repo.insert(make_asset(at=T0 + timedelta(seconds=30)))
    audio_b = await media_repo.insert(
        make_asset(kind=MediaKind.AUDIO, at=T0 + timedelta(seconds=35), image_id=image_b)
    )

    feed = {e.id: e for e in await composer.compose_feed("u1")}

    assert feed[image_a].audio_id is None
    assert feed[image_b].audio_id == audio_b
