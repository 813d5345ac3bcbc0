"""Data models for a book project and its workflow."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ImageSize(str, Enum):
    """Requested resolution tier for page illustrations."""

    LOW = "1K"
    MEDIUM = "2K"
    HIGH = "4K"


class WorkflowStep(str, Enum):
    PLANNING = "planning"
    GENERATING_VISUALS = "generating-visuals"
    MARKETING = "marketing"
    PREVIEW = "preview"


class BookPage(BaseModel):
    """One page of the book: narrative text plus its illustration."""

    model_config = ConfigDict(populate_by_name=True)

    page_number: int = Field(alias="pageNumber", ge=1)
    text: str
    image_prompt: str = Field(alias="imagePrompt")
    image_url: str | None = None  # base64 data URI
    is_generating: bool = False

    @property
    def has_image(self) -> bool:
        return bool(self.image_url)


class MarketingMetadata(BaseModel):
    """Marketplace listing copy (title, description, keyword tags)."""

    title: str
    description: str
    keywords: list[str] = Field(default_factory=list)


class TrendInsight(BaseModel):
    """A trending niche suggested by search-grounded analysis."""

    topic: str
    title: str
    reason: str


class BookProject(BaseModel):
    """The book being assembled.

    Pages are stored in page order: ``pages[n - 1]`` is page ``n``.
    """

    title: str
    topic: str
    image_size: ImageSize = ImageSize.LOW
    pages: list[BookPage] = Field(default_factory=list)
    seo: MarketingMetadata | None = None

    def page(self, number: int) -> BookPage:
        """Return page ``number`` (1-based)."""
        if number < 1 or number > len(self.pages):
            raise IndexError(f"Page {number} out of range (1-{len(self.pages)})")
        return self.pages[number - 1]

    @property
    def missing_images(self) -> list[BookPage]:
        return [p for p in self.pages if not p.has_image]

    @property
    def all_illustrated(self) -> bool:
        return bool(self.pages) and not self.missing_images
