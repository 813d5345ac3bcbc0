"""Workflow controller -- drives the studio client through the book steps.

All mutable state lives in a :class:`StudioSession` passed to the
controller, so independent sessions never share anything. Every successful
call writes its result into the session immediately and notifies the
optional ``on_change`` listener, which lets a view render progress (e.g.
each page illustration as soon as it arrives).

Two flows are supported:

* Manual: plan -> illustrate pages (one at a time or in bulk) -> marketing
  -> preview, each step triggered by the caller.
* Auto-pilot: trend -> structure -> every illustration -> marketing ->
  preview with no interaction. The first failure aborts the run; state
  already applied is kept.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from kidbook.client import StudioClient
from kidbook.config import StudioConfig
from kidbook.errors import WorkflowStateError
from kidbook.models import BookPage, BookProject, ImageSize, WorkflowStep
from kidbook.prompts import with_reference_analysis

logger = logging.getLogger(__name__)

AUTO_PILOT_PAGE_COUNT = 5

TREND_FAILED = "Could not fetch trend data right now."
PLANNING_FAILED = "Planning failed."
MISSING_TOPIC = "Enter a topic before planning."
IMAGE_FAILED = "Image generation failed for page {number}."
EDIT_FAILED = "Image edit failed for page {number}."
SEO_FAILED = "Marketing metadata generation failed."
AUTO_PILOT_FAILED = "Auto-pilot hit an error. Please try again."

STATUS_TREND = "Analyzing Google Trends and recent pain points..."
STATUS_STRUCTURE = "Designing the book structure and story..."
STATUS_IMAGES = "Illustrating every page (this can take a while)..."
STATUS_PAGE = "Illustrating page {number} of {total}..."
STATUS_SEO = "Preparing marketing and SEO data..."

COPYABLE_FIELDS = ("title", "description")

PLANNING_INPUTS = (
    "topic",
    "book_title",
    "page_count",
    "image_size",
    "deep_thinking",
    "use_pro_images",
    "reference_image",
    "trend_reason",
)

_EDGES: dict[WorkflowStep, frozenset[WorkflowStep]] = {
    WorkflowStep.PLANNING: frozenset({WorkflowStep.GENERATING_VISUALS}),
    WorkflowStep.GENERATING_VISUALS: frozenset({WorkflowStep.MARKETING}),
    WorkflowStep.MARKETING: frozenset({WorkflowStep.PREVIEW, WorkflowStep.GENERATING_VISUALS}),
    WorkflowStep.PREVIEW: frozenset({WorkflowStep.PLANNING}),
}

# Auto-pilot skips the marketing screen.
_AUTO_PILOT_EDGES = frozenset({(WorkflowStep.GENERATING_VISUALS, WorkflowStep.PREVIEW)})


@dataclass
class StudioSession:
    """State for one studio session: current step, project, and inputs."""

    step: WorkflowStep = WorkflowStep.PLANNING
    project: BookProject | None = None

    # Planning inputs
    topic: str = ""
    book_title: str = ""
    page_count: int = 5
    image_size: ImageSize = ImageSize.LOW
    deep_thinking: bool = False
    use_pro_images: bool = False
    reference_image: str | None = None  # data URI
    trend_reason: str | None = None

    # Transient flags
    busy: bool = False
    status: str | None = None
    generating_index: int | None = None  # page number in flight
    error: str | None = None
    copy_feedback: str | None = None

    @classmethod
    def from_config(cls, config: StudioConfig) -> StudioSession:
        """Seed planning defaults from the [book] config section."""
        return cls(page_count=config.book.page_count, image_size=config.book.image_size)


class StudioController:
    """Sequence studio client calls and own the session state."""

    def __init__(
        self,
        client: StudioClient,
        session: StudioSession | None = None,
        *,
        config: StudioConfig | None = None,
        on_change: Callable[[StudioSession], None] | None = None,
    ) -> None:
        self.client = client
        self.config = config if config is not None else StudioConfig()
        self.session = session if session is not None else StudioSession.from_config(self.config)
        self.on_change = on_change

    # -- state helpers ---------------------------------------------------

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self.session)

    def _report(self, message: str, exc: BaseException) -> None:
        """Record one user-facing failure message for a failed call."""
        logger.warning(message, exc_info=exc)
        self.session.error = message
        self._notify()

    @contextlib.contextmanager
    def _busy(self) -> Iterator[None]:
        self.session.busy = True
        self.session.error = None
        self._notify()
        try:
            yield
        finally:
            self.session.busy = False
            self._notify()

    def _reject_if_busy(self, operation: str) -> bool:
        if self.session.busy:
            logger.warning("Ignoring %s: another operation is in progress", operation)
            return True
        return False

    def _require_project(self) -> BookProject:
        if self.session.project is None:
            raise WorkflowStateError(f"No project in step {self.session.step.value}")
        return self.session.project

    def _require_step(self, *steps: WorkflowStep) -> None:
        if self.session.step not in steps:
            allowed = ", ".join(s.value for s in steps)
            raise WorkflowStateError(
                f"Operation needs step {allowed}, session is in {self.session.step.value}"
            )

    def _transition(self, target: WorkflowStep, *, auto_pilot: bool = False) -> None:
        current = self.session.step
        if target is current:
            return
        allowed = target in _EDGES[current] or (
            auto_pilot and (current, target) in _AUTO_PILOT_EDGES
        )
        if not allowed:
            raise WorkflowStateError(f"Cannot move from {current.value} to {target.value}")
        if target is not WorkflowStep.PLANNING:
            self._require_project()
        logger.info("Workflow step %s -> %s", current.value, target.value)
        self.session.step = target
        self._notify()

    def _set_status(self, status: str | None) -> None:
        self.session.status = status
        if status:
            logger.info(status)
        self._notify()

    async def _illustrate(self, page: BookPage, size: ImageSize, use_pro: bool) -> None:
        """Generate one page image; the page keeps its old image on failure."""
        page.is_generating = True
        self.session.generating_index = page.page_number
        self._notify()
        try:
            page.image_url = await self.client.generate_image(page.image_prompt, size, use_pro)
        finally:
            page.is_generating = False
            self.session.generating_index = None
            self._notify()

    # -- planning --------------------------------------------------------

    async def discover_trend(self) -> bool:
        """Fill topic, title, and trend reason from search-grounded analysis."""
        if self._reject_if_busy("trend discovery"):
            return False
        self._require_step(WorkflowStep.PLANNING)
        with self._busy():
            try:
                trend = await self.client.find_trending_topic()
            except Exception as exc:
                self._report(TREND_FAILED, exc)
                return False
            self.session.topic = trend.topic
            self.session.book_title = trend.title
            self.session.trend_reason = trend.reason
            self._notify()
        return True

    async def start_planning(self) -> bool:
        """Build the project from the planning inputs.

        When a reference image is set, its style description is folded into
        the topic sent to the structure call (the project keeps the plain
        topic).
        """
        if self._reject_if_busy("planning"):
            return False
        self._require_step(WorkflowStep.PLANNING)
        s = self.session
        topic = s.topic.strip()
        if not topic:
            s.error = MISSING_TOPIC
            self._notify()
            return False

        with self._busy():
            try:
                analysis = ""
                if s.reference_image:
                    analysis = await self.client.analyze_reference_image(s.reference_image)
                pages = await self.client.generate_story_structure(
                    with_reference_analysis(topic, analysis),
                    s.page_count,
                    s.deep_thinking,
                )
            except Exception as exc:
                self._report(PLANNING_FAILED, exc)
                return False

            s.project = BookProject(
                title=s.book_title.strip() or f"The Adventure of {topic}",
                topic=topic,
                pages=pages,
                image_size=s.image_size,
            )
            logger.info("Planned %r with %d pages", s.project.title, len(pages))
            self._transition(WorkflowStep.GENERATING_VISUALS)
        return True

    # -- visuals ---------------------------------------------------------

    async def generate_page_image(self, number: int) -> bool:
        """Generate or regenerate the image of page ``number`` (1-based)."""
        if self._reject_if_busy("page image"):
            return False
        self._require_step(WorkflowStep.GENERATING_VISUALS)
        project = self._require_project()
        page = project.page(number)
        with self._busy():
            return await self._generate_one(project, page)

    async def _generate_one(self, project: BookProject, page: BookPage) -> bool:
        try:
            await self._illustrate(page, project.image_size, self.session.use_pro_images)
        except Exception as exc:
            self._report(IMAGE_FAILED.format(number=page.page_number), exc)
            return False
        return True

    async def generate_all_images(self) -> int:
        """Illustrate every page that has no image yet, one after another.

        A failed page is reported and the loop moves on to the next page.

        Returns:
            Number of pages illustrated by this call.
        """
        if self._reject_if_busy("bulk image generation"):
            return 0
        self._require_step(WorkflowStep.GENERATING_VISUALS)
        project = self._require_project()
        generated = 0
        with self._busy():
            for page in project.pages:
                if page.has_image:
                    continue
                if await self._generate_one(project, page):
                    generated += 1
        logger.info("Illustrated %d page(s), %d still missing", generated, len(project.missing_images))
        return generated

    async def edit_page_image(self, number: int, edit_prompt: str) -> bool:
        """Replace page ``number``'s image with an edited version."""
        if self._reject_if_busy("image edit"):
            return False
        self._require_step(WorkflowStep.GENERATING_VISUALS)
        project = self._require_project()
        page = project.page(number)
        if not edit_prompt.strip() or not page.has_image:
            logger.warning("Nothing to edit on page %d", number)
            return False

        with self._busy():
            try:
                new_url = await self.client.edit_image(page.image_url, edit_prompt)
            except Exception as exc:
                self._report(EDIT_FAILED.format(number=number), exc)
                return False
            page.image_url = new_url
            self._notify()
        return True

    # -- marketing & preview ---------------------------------------------

    @property
    def can_generate_marketing(self) -> bool:
        project = self.session.project
        return project is not None and project.all_illustrated

    async def generate_marketing(self) -> bool:
        """Generate listing copy once every page is illustrated."""
        if self._reject_if_busy("marketing"):
            return False
        self._require_step(WorkflowStep.GENERATING_VISUALS, WorkflowStep.MARKETING)
        project = self._require_project()
        if not project.all_illustrated:
            raise WorkflowStateError("Every page needs an image before marketing")

        with self._busy():
            try:
                seo = await self.client.generate_seo(project.topic, project.title)
            except Exception as exc:
                self._report(SEO_FAILED, exc)
                return False
            project.seo = seo
            self._transition(WorkflowStep.MARKETING)
        return True

    def back_to_visuals(self) -> None:
        self._require_step(WorkflowStep.MARKETING)
        self._transition(WorkflowStep.GENERATING_VISUALS)

    def go_to_preview(self) -> None:
        self._require_step(WorkflowStep.MARKETING)
        self._transition(WorkflowStep.PREVIEW)

    def reset(self) -> None:
        """Start a new project.

        Drops the project and returns every planning input to its configured
        default.
        """
        self._transition(WorkflowStep.PLANNING)
        s = self.session
        defaults = StudioSession.from_config(self.config)
        s.project = None
        for name in PLANNING_INPUTS:
            setattr(s, name, getattr(defaults, name))
        s.status = None
        s.generating_index = None
        s.error = None
        s.copy_feedback = None
        self._notify()

    def copy_marketing_field(self, field: str, writer: Callable[[str], None]) -> str:
        """Hand the literal title or description to a clipboard ``writer``."""
        if field not in COPYABLE_FIELDS:
            raise ValueError(f"Unknown field {field!r}; expected one of {COPYABLE_FIELDS}")
        project = self._require_project()
        if project.seo is None:
            raise WorkflowStateError("No marketing metadata to copy")
        text = getattr(project.seo, field)
        writer(text)
        self.session.copy_feedback = field
        self._notify()
        return text

    # -- auto-pilot ------------------------------------------------------

    async def run_auto_pilot(self, page_count: int = AUTO_PILOT_PAGE_COUNT) -> bool:
        """Run trend -> structure -> illustrations -> marketing unattended."""
        if self._reject_if_busy("auto-pilot"):
            return False
        s = self.session
        with self._busy():
            # Auto-pilot may start from any screen.
            s.step = WorkflowStep.PLANNING
            self._notify()
            try:
                self._set_status(STATUS_TREND)
                trend = await self.client.find_trending_topic()
                s.topic = trend.topic
                s.book_title = trend.title
                s.trend_reason = trend.reason
                self._notify()

                self._set_status(STATUS_STRUCTURE)
                pages = await self.client.generate_story_structure(trend.topic, page_count, True)
                s.project = BookProject(
                    title=trend.title,
                    topic=trend.topic,
                    pages=pages,
                    image_size=ImageSize.LOW,
                )
                self._transition(WorkflowStep.GENERATING_VISUALS)

                self._set_status(STATUS_IMAGES)
                total = len(s.project.pages)
                for page in s.project.pages:
                    self._set_status(STATUS_PAGE.format(number=page.page_number, total=total))
                    await self._illustrate(page, ImageSize.LOW, False)

                self._set_status(STATUS_SEO)
                s.project.seo = await self.client.generate_seo(trend.topic, trend.title)
                self._notify()

                self._transition(WorkflowStep.PREVIEW, auto_pilot=True)
            except WorkflowStateError:
                raise
            except Exception as exc:
                self._report(AUTO_PILOT_FAILED, exc)
                return False
            finally:
                self._set_status(None)
        return True
