"""Interface for the generative service behind the studio."""

from __future__ import annotations

from abc import ABC, abstractmethod

from kidbook.models import BookPage, ImageSize, MarketingMetadata, TrendInsight


class StudioClient(ABC):
    """One async method per generation call the workflow makes.

    Implementations hold no state across calls.
    """

    @abstractmethod
    async def find_trending_topic(self) -> TrendInsight:
        """Suggest a trending niche, a book title, and why."""

    @abstractmethod
    async def generate_story_structure(
        self,
        topic: str,
        page_count: int,
        deep_thinking: bool = False,
    ) -> list[BookPage]:
        """Return exactly ``page_count`` pages numbered 1..page_count."""

    @abstractmethod
    async def generate_image(
        self,
        prompt: str,
        size: ImageSize = ImageSize.LOW,
        use_pro: bool = False,
    ) -> str:
        """Illustrate ``prompt`` and return the image as a data URI."""

    @abstractmethod
    async def edit_image(self, image_url: str, edit_prompt: str) -> str:
        """Return a replacement for ``image_url`` with the edit applied."""

    @abstractmethod
    async def generate_seo(self, topic: str, title: str) -> MarketingMetadata:
        """Write marketplace listing copy for the book."""

    @abstractmethod
    async def analyze_reference_image(self, image_url: str) -> str:
        """Describe the visual style of a reference image in prose."""
