"""Zip bundles for a finished book.

Two bundles are produced from a :class:`BookProject`:

* images-only -- ``images/page_<n>.png`` per illustrated page
* full kit -- ``illustrations/page_<n>.png``, ``MARKETING_METADATA.txt``
  (when marketing copy exists) and ``STORY_CONTENT.txt``

Pages without an image are skipped. Everything here is a pure transform
to bytes except :func:`save_archive`.
"""

from __future__ import annotations

import contextlib
import io
import logging
import os
import re
import tempfile
import zipfile
from enum import Enum
from pathlib import Path

from kidbook.images import data_uri_payload
from kidbook.models import BookProject, MarketingMetadata

logger = logging.getLogger(__name__)

IMAGES_FOLDER = "images"
KIT_IMAGES_FOLDER = "illustrations"
MARKETING_FILENAME = "MARKETING_METADATA.txt"
STORY_FILENAME = "STORY_CONTENT.txt"

PAGE_SEPARATOR = "\n" + "-" * 20 + "\n\n"
CONTENT_MARKER = "CONTENT:\n\n"

_UNSAFE_FILENAME_RE = re.compile(r'[\\/:*?"<>|\x00-\x1f]+')


class ArchiveKind(str, Enum):
    IMAGES = "images"
    FULL_KIT = "full-kit"


def page_image_name(page_number: int) -> str:
    return f"page_{page_number}.png"


def _page_header(page_number: int) -> str:
    return f"Page {page_number}:\n"


def render_marketing_metadata(seo: MarketingMetadata) -> str:
    return (
        f"Title: {seo.title}\n\n"
        f"Description:\n{seo.description}\n\n"
        f"Tags: {', '.join(seo.keywords)}"
    )


def render_story_content(project: BookProject) -> str:
    """Render the story text file: a header, then one block per page."""
    blocks = [f"{_page_header(p.page_number)}{p.text}\n" for p in project.pages]
    return (
        f"Book Title: {project.title}\n"
        f"Topic: {project.topic}\n\n"
        f"{CONTENT_MARKER}"
        f"{PAGE_SEPARATOR.join(blocks)}"
    )


def parse_story_content(content: str) -> list[str]:
    """Recover the per-page texts, in page order, from a story text file.

    A page ends where the separator is followed by the next page's header,
    so page text may itself contain the separator line.

    Raises:
        ValueError: If the text lacks the content marker or a page header.
    """
    _header, marker, body = content.partition(CONTENT_MARKER)
    if not marker:
        raise ValueError("Story content has no CONTENT section")
    if not body:
        return []

    texts: list[str] = []
    position = 0
    number = 1
    while True:
        header = _page_header(number)
        if not body.startswith(header, position):
            raise ValueError(f"Malformed page block: {body[position : position + 40]!r}")
        start = position + len(header)
        end = body.find("\n" + PAGE_SEPARATOR + _page_header(number + 1), start)
        if end == -1:
            if len(body) <= start or not body.endswith("\n"):
                raise ValueError(f"Malformed page block: {body[position : position + 40]!r}")
            texts.append(body[start:-1])
            return texts
        texts.append(body[start:end])
        position = end + 1 + len(PAGE_SEPARATOR)
        number += 1


def _write_page_images(zf: zipfile.ZipFile, project: BookProject, folder: str) -> int:
    written = 0
    for page in project.pages:
        if not page.has_image:
            continue
        zf.writestr(f"{folder}/{page_image_name(page.page_number)}", data_uri_payload(page.image_url))
        written += 1
    return written


def build_images_archive(project: BookProject) -> bytes:
    """Zip every page illustration under ``images/``."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        count = _write_page_images(zf, project, IMAGES_FOLDER)
    logger.debug("Images archive for %r holds %d image(s)", project.title, count)
    return buf.getvalue()


def build_full_kit_archive(project: BookProject) -> bytes:
    """Zip illustrations, marketing metadata, and the story text."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        count = _write_page_images(zf, project, KIT_IMAGES_FOLDER)
        if project.seo is not None:
            zf.writestr(MARKETING_FILENAME, render_marketing_metadata(project.seo))
        zf.writestr(STORY_FILENAME, render_story_content(project))
    logger.debug("Full kit for %r holds %d image(s)", project.title, count)
    return buf.getvalue()


def archive_filename(project: BookProject, kind: ArchiveKind) -> str:
    """Download name for a bundle, e.g. ``My Book_Assets.zip``."""
    title = _UNSAFE_FILENAME_RE.sub("_", project.title).strip() or "book"
    suffix = "Images" if kind is ArchiveKind.IMAGES else "Assets"
    return f"{title}_{suffix}.zip"


def build_archive(project: BookProject, kind: ArchiveKind) -> bytes:
    if kind is ArchiveKind.IMAGES:
        return build_images_archive(project)
    return build_full_kit_archive(project)


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def save_archive(project: BookProject, kind: ArchiveKind, output_dir: Path) -> Path:
    """Build a bundle and write it atomically into ``output_dir``."""
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / archive_filename(project, kind)
    data = build_archive(project, kind)

    fd, tmp = tempfile.mkstemp(dir=output_dir, suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.chmod(tmp, 0o666 & ~_current_umask())
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp)
        raise

    logger.info("Wrote %s (%d bytes)", path, len(data))
    return path
