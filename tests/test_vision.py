"""Tests for the vision relay."""

from uuid import uuid4

import httpx
import pytest

from travelgram.exceptions import (
    DependencyUnavailable,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from travelgram.media.vision import DEFAULT_TAGS, VisionRelay, extract_tags

from factories import gemini_client, make_asset


def image_transport(status_code=200, content=b"remote-jpeg"):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, content=content, headers={"content-type": "image/png"})

    return httpx.MockTransport(handler)


@pytest.fixture
def relay(settings, binary_store, media_repo):
    return VisionRelay(settings, binary_store, media_repo, transport=image_transport())


def test_extract_tags():
    assert extract_tags("Lovely harbour, wonderful boats and colourful houses everywhere today") == [
        "Lovely",
        "harbour",
        "wonderful",
        "colourful",
        "houses",
    ]
    assert extract_tags("a big red boat") == DEFAULT_TAGS


@pytest.mark.asyncio
async def test_generate_description_from_url(relay):
    relay._ai_client = gemini_client()

    text = await relay.generate_description("https://example.com/boat.png")

    assert text == "A sunny harbour with colourful fishing boats"
    prompt, image = relay._ai_client.generate_content_async.call_args.args[0]
    assert image == {"mime_type": "image/png", "data": b"remote-jpeg"}


@pytest.mark.asyncio
async def test_generate_description_from_stored_image(relay, binary_store, media_repo):
    relay._ai_client = gemini_client()
    binary_store.objects["uploads/abc.jpg"] = b"stored-jpeg"
    asset = make_asset().model_copy(update={"filename": "abc.jpg", "object_id": "uploads/abc.jpg"})
    image_id = await media_repo.insert(asset)

    await relay.generate_description(f"/api/images/{image_id}")

    _, image = relay._ai_client.generate_content_async.call_args.args[0]
    assert image == {"mime_type": "image/jpeg", "data": b"stored-jpeg"}


@pytest.mark.asyncio
async def test_unknown_stored_image(relay):
    relay._ai_client = gemini_client()

    with pytest.raises(NotFoundError):
        await relay.generate_description(f"/api/images/{uuid4()}")


@pytest.mark.asyncio
@pytest.mark.parametrize("ref", ["", "   ", "not-a-url", "/api/images/12345"])
async def test_invalid_reference(relay, ref):
    relay._ai_client = gemini_client()

    with pytest.raises(ValidationError):
        await relay.generate_description(ref)


@pytest.mark.asyncio
async def test_remote_fetch_failure(settings, binary_store, media_repo):
    relay = VisionRelay(settings, binary_store, media_repo, transport=image_transport(404))
    relay._ai_client = gemini_client()

    with pytest.raises(UpstreamError):
        await relay.generate_description("https://example.com/missing.png")


@pytest.mark.asyncio
async def test_model_error_becomes_upstream_error(relay):
    client = gemini_client()
    client.generate_content_async.side_effect = ValueError("response was blocked")
    relay._ai_client = client

    with pytest.raises(UpstreamError):
        await relay.generate_description("https://example.com/boat.png")


@pytest.mark.asyncio
async def test_no_provider_configured(relay):
    with pytest.raises(DependencyUnavailable):
        await relay.generate_description("https://example.com/boat.png")


@pytest.mark.asyncio
async def test_analyze_image_returns_tags(relay):
    relay._ai_client = gemini_client("Marvellous coastline beneath towering cliffs")

    text, tags = await relay.analyze_image("https://example.com/coast.png")

    assert text == "Marvellous coastline beneath towering cliffs"
    assert tags == ["Marvellous", "coastline", "beneath", "towering", "cliffs"]
