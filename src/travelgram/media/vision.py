"""Vision relay - captions travel photos with a generative model.

The image is either fetched from an http(s) URL or loaded from the binary
store when the reference ends in a media id. It is sent to Gemini (or
OpenAI when only an OpenAI key is configured) and the answer is reshaped
into plain caption text.
"""

import asyncio
import base64
import logging
from typing import Optional
from uuid import UUID

import httpx
from google.api_core import exceptions as google_exceptions
from openai import OpenAIError

from ..config import Settings
from ..exceptions import (
    DependencyUnavailable,
    UpstreamError,
    ValidationError,
)
from ..models.media import MediaKind
from ..repositories.media_repo import MediaRepository
from .storage import BinaryStore

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "image/jpeg"
DEFAULT_TAGS = ["travel", "trip", "discovery"]

DESCRIPTION_PROMPT = (
    "What do you see in this picture? If there is a historical place or object "
    "in it, what is its history? Why is it worth seeing? Why should other people "
    "visit this place or see this object? Which other places or objects would "
    "interest people who liked this one?"
)

ANALYSIS_PROMPT = """Please answer the following questions about this image:
1. What do you see in this picture?
2. If there is a historical place or object in it, what is its history?
3. Why is it important to see what is in this image?
4. Why should other people visit this place or see this object?
5. Which other places or objects would catch the eye of people who saw this one, and where can similar ones be found?

Write the answer as one fluent paragraph, not as separate sections. The user will share it on social media."""


def extract_tags(text: str, limit: int = 5) -> list[str]:
    """First words longer than five characters, used as lightweight tags."""
    words = [w.strip(".,;:!?\"'()[]") for w in (text or "").split()]
    tags = [w for w in words if len(w) > 5][:limit]
    return tags or list(DEFAULT_TAGS)


class VisionRelay:
    """Relay between the app and the external vision model."""

    def __init__(
        self,
        settings: Settings,
        store: BinaryStore,
        media: MediaRepository,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.store = store
        self.media = media
        self.transport = transport
        self._ai_client = None

    def _get_ai_client(self):
        """Get AI vision client (Gemini or OpenAI)."""
        if self._ai_client is None:
            if self.settings.gemini_api_key:
                import google.generativeai as genai
                genai.configure(api_key=self.settings.gemini_api_key)
                self._ai_client = genai.GenerativeModel(self.settings.gemini_vision_model)
            elif self.settings.openai_api_key:
                from openai import AsyncOpenAI
                self._ai_client = AsyncOpenAI(
                    api_key=self.settings.openai_api_key,
                    timeout=self.settings.ai_timeout_seconds,
                )
        if self._ai_client is None:
            raise DependencyUnavailable(
                "No AI client configured (need GEMINI_API_KEY or OPENAI_API_KEY)"
            )
        return self._ai_client

    async def load_image(self, image_ref: str) -> tuple[bytes, str]:
        """Resolve an image reference to ``(bytes, content_type)``."""
        image_ref = (image_ref or "").strip()
        if not image_ref:
            raise ValidationError("Image URL is required")

        if image_ref.startswith("http"):
            return await self._fetch_url(image_ref)

        last_segment = image_ref.rstrip("/").split("/")[-1]
        try:
            image_id = UUID(last_segment)
        except ValueError:
            raise ValidationError("Invalid image URL or id")

        asset = await self.media.find_by_id(image_id, MediaKind.IMAGE)
        data = await self.store.read_bytes(asset.filename)
        return data, asset.content_type or DEFAULT_CONTENT_TYPE

    async def _fetch_url(self, url: str) -> tuple[bytes, str]:
        logger.info(f"Fetching image from {url}")
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.ai_timeout_seconds,
                transport=self.transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Image download failed: {e}") from e

        if response.status_code != 200:
            raise UpstreamError(f"Image download failed: HTTP {response.status_code}")

        content_type = response.headers.get("content-type", "").split(";")[0].strip()
        if not content_type.startswith("image/"):
            content_type = DEFAULT_CONTENT_TYPE
        return response.content, content_type

    async def _ask(self, prompt: str, image_data: bytes, content_type: str) -> str:
        """Send prompt and image to the model and return its text answer."""
        ai_client = self._get_ai_client()

        try:
            if hasattr(ai_client, "generate_content_async"):
                # Gemini
                response = await asyncio.wait_for(
                    ai_client.generate_content_async([
                        prompt,
                        {"mime_type": content_type, "data": image_data},
                    ]),
                    timeout=self.settings.ai_timeout_seconds,
                )
                return response.text

            # OpenAI
            base64_image = base64.b64encode(image_data).decode()
            response = await ai_client.chat.completions.create(
                model=self.settings.openai_vision_model,
                messages=[{
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:{content_type};base64,{base64_image}"},
                        },
                    ],
                }],
                max_tokens=1000,
            )
            return response.choices[0].message.content or ""
        except asyncio.TimeoutError as e:
            raise UpstreamError("AI service timed out") from e
        except (google_exceptions.GoogleAPIError, OpenAIError, ValueError) as e:
            # ValueError: Gemini refuses to expose .text for blocked candidates
            logger.error(f"AI service error: {e}")
            raise UpstreamError(f"AI service error: {e}") from e

    async def generate_description(self, image_ref: str) -> str:
        """Caption text for the referenced image."""
        logger.info(f"Generating description for {image_ref}")
        image_data, content_type = await self.load_image(image_ref)
        text = await self._ask(DESCRIPTION_PROMPT, image_data, content_type)
        logger.info(f"AI description ready ({len(text)} chars)")
        return text

    async def analyze_image(self, image_ref: str) -> tuple[str, list[str]]:
        """Longer analysis paragraph plus a few tags."""
        logger.info(f"Analyzing image {image_ref}")
        image_data, content_type = await self.load_image(image_ref)
        text = await self._ask(ANALYSIS_PROMPT, image_data, content_type)
        if not text:
            text = "No analysis result was returned"
        return text, extract_tags(text)
