"""Gemini-backed studio client.

Each operation translates one domain request into a single
``generate_content`` call via the google-genai SDK and parses the reply
into the studio's models. Structured replies are requested with a response
schema; the style analysis is the only free-text call.
"""

from __future__ import annotations

import logging
from typing import Any

from google import genai
from google.genai import types

from kidbook.client import StudioClient
from kidbook.config import StudioConfig, load_config, resolve_api_key
from kidbook.errors import GenerationFailedError, MalformedResponseError
from kidbook.images import DEFAULT_MIME_TYPE, apply_style, parse_data_uri, to_data_uri
from kidbook.llm import parse_structured
from kidbook.models import BookPage, ImageSize, MarketingMetadata, TrendInsight
from kidbook.prompts import (
    REFERENCE_ANALYSIS_PROMPT,
    TREND_PROMPT,
    get_edit_prompt,
    get_seo_prompt,
    get_story_prompt,
)

logger = logging.getLogger(__name__)

IMAGE_ASPECT_RATIO = "1:1"

_STRING = types.Schema(type=types.Type.STRING)

TREND_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={"topic": _STRING, "title": _STRING, "reason": _STRING},
    required=["topic", "title", "reason"],
)

STORY_SCHEMA = types.Schema(
    type=types.Type.ARRAY,
    items=types.Schema(
        type=types.Type.OBJECT,
        properties={
            "pageNumber": types.Schema(type=types.Type.INTEGER),
            "text": _STRING,
            "imagePrompt": _STRING,
        },
        required=["pageNumber", "text", "imagePrompt"],
    ),
)

SEO_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "title": _STRING,
        "description": _STRING,
        "keywords": types.Schema(type=types.Type.ARRAY, items=_STRING),
    },
    required=["title", "description", "keywords"],
)


def _search_tool() -> types.Tool:
    return types.Tool(google_search=types.GoogleSearch())


def _extract_image(response: Any, *, label: str) -> str:
    """Return the first inline image part of ``response`` as a data URI.

    Raises:
        GenerationFailedError: If the response carries no image payload.
    """
    for candidate in response.candidates or []:
        content = candidate.content
        for part in (content.parts if content is not None else None) or []:
            inline = part.inline_data
            if inline is not None and inline.data:
                return to_data_uri(inline.data, inline.mime_type or DEFAULT_MIME_TYPE)
    raise GenerationFailedError(f"No image in response ({label})")


def validate_story_pages(pages: list[BookPage], page_count: int) -> list[BookPage]:
    """Check a parsed structure holds pages 1..page_count and order them.

    Raises:
        MalformedResponseError: On a count or numbering mismatch.
    """
    if len(pages) != page_count:
        raise MalformedResponseError(
            f"Expected {page_count} pages, got {len(pages)} (story-structure)"
        )
    ordered = sorted(pages, key=lambda p: p.page_number)
    numbers = [p.page_number for p in ordered]
    if numbers != list(range(1, page_count + 1)):
        raise MalformedResponseError(
            f"Pages must be numbered 1..{page_count}, got {numbers} (story-structure)"
        )
    return ordered


class GeminiStudioClient(StudioClient):
    """Studio client backed by the Gemini API."""

    def __init__(self, config: StudioConfig | None = None) -> None:
        self.config = config or load_config()

    def _get_client(self) -> genai.Client:
        """Build a client for this call; the credential is resolved every time."""
        return genai.Client(api_key=resolve_api_key(self.config) or None)

    async def _generate(
        self,
        *,
        model: str,
        contents: Any,
        config: types.GenerateContentConfig | None = None,
        label: str,
    ) -> Any:
        logger.debug("Calling Gemini model=%s (%s)", model, label)
        async with self._get_client().aio as aclient:
            return await aclient.models.generate_content(
                model=model,
                contents=contents,
                config=config,
            )

    async def find_trending_topic(self) -> TrendInsight:
        response = await self._generate(
            model=self.config.gemini.text_model,
            contents=TREND_PROMPT,
            config=types.GenerateContentConfig(
                tools=[_search_tool()],
                response_mime_type="application/json",
                response_schema=TREND_SCHEMA,
            ),
            label="trend",
        )
        return parse_structured(response.text, TrendInsight, label="trend")

    async def generate_story_structure(
        self,
        topic: str,
        page_count: int,
        deep_thinking: bool = False,
    ) -> list[BookPage]:
        if page_count < 1:
            raise ValueError(f"page_count must be positive, got {page_count}")

        budget = self.config.gemini.deep_thinking_budget if deep_thinking else 0
        response = await self._generate(
            model=self.config.gemini.text_model,
            contents=get_story_prompt(topic, page_count, self.config.book.story_language),
            config=types.GenerateContentConfig(
                tools=[_search_tool()],
                response_mime_type="application/json",
                response_schema=STORY_SCHEMA,
                thinking_config=types.ThinkingConfig(thinking_budget=budget),
            ),
            label="story-structure",
        )
        pages = parse_structured(response.text, list[BookPage], label="story-structure")
        return validate_story_pages(pages, page_count)

    async def generate_image(
        self,
        prompt: str,
        size: ImageSize = ImageSize.LOW,
        use_pro: bool = False,
    ) -> str:
        # Every tier is served by the configured image model at a fixed aspect ratio.
        logger.debug("Image request size=%s pro=%s", ImageSize(size).value, use_pro)
        response = await self._generate(
            model=self.config.gemini.image_model,
            contents=types.Content(
                role="user",
                parts=[types.Part.from_text(text=apply_style(prompt, self.config.book.style_suffix))],
            ),
            config=types.GenerateContentConfig(
                image_config=types.ImageConfig(aspect_ratio=IMAGE_ASPECT_RATIO),
            ),
            label="image",
        )
        return _extract_image(response, label="image")

    async def edit_image(self, image_url: str, edit_prompt: str) -> str:
        mime_type, data = parse_data_uri(image_url)
        response = await self._generate(
            model=self.config.gemini.image_model,
            contents=types.Content(
                role="user",
                parts=[
                    types.Part.from_bytes(data=data, mime_type=mime_type),
                    types.Part.from_text(text=get_edit_prompt(edit_prompt)),
                ],
            ),
            label="image-edit",
        )
        return _extract_image(response, label="image-edit")

    async def generate_seo(self, topic: str, title: str) -> MarketingMetadata:
        book = self.config.book
        response = await self._generate(
            model=self.config.gemini.seo_model,
            contents=get_seo_prompt(topic, title, book.seo_language, book.keyword_count),
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=SEO_SCHEMA,
            ),
            label="seo",
        )
        return parse_structured(response.text, MarketingMetadata, label="seo")

    async def analyze_reference_image(self, image_url: str) -> str:
        mime_type, data = parse_data_uri(image_url)
        response = await self._generate(
            model=self.config.gemini.text_model,
            contents=types.Content(
                role="user",
                parts=[
                    types.Part.from_bytes(data=data, mime_type=mime_type),
                    types.Part.from_text(text=REFERENCE_ANALYSIS_PROMPT),
                ],
            ),
            label="reference-analysis",
        )
        return response.text or ""
