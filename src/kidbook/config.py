"""Studio configuration loaded from .kidbook.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field

from kidbook.models import ImageSize

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".kidbook.toml"
CONFIG_SEARCH_PATHS = [Path(".")]

DEFAULT_STYLE_SUFFIX = (
    "Whimsical children's book illustration style, soft lighting, "
    "vibrant colors, clean lines, high quality digital art."
)

# Credential env vars, first non-empty wins.
API_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_AI_API_KEY", "API_KEY")


class GeminiSectionConfig(BaseModel):
    """[gemini] section."""

    api_key: str = ""
    text_model: str = "gemini-3-flash-preview"
    image_model: str = "gemini-2.5-flash-image"
    seo_model: str = "gemini-flash-lite-latest"
    deep_thinking_budget: int = 16384


class BookSectionConfig(BaseModel):
    """[book] section."""

    page_count: int = Field(default=5, ge=1)
    image_size: ImageSize = ImageSize.LOW
    story_language: str = "Thai"
    seo_language: str = "Thai"
    keyword_count: int = 13
    style_suffix: str = DEFAULT_STYLE_SUFFIX


class OutputConfig(BaseModel):
    """[output] section."""

    directory: str = "./books"


class StudioConfig(BaseModel):
    """Top-level configuration for the studio."""

    gemini: GeminiSectionConfig = Field(default_factory=GeminiSectionConfig)
    book: BookSectionConfig = Field(default_factory=BookSectionConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


def load_config(path: str | Path | None = None) -> StudioConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .kidbook.toml in CWD
    3. ~/.config/kidbook/config.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged StudioConfig.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        global_config = Path.home() / ".config" / "kidbook" / "config.toml"
        if not data and global_config.exists():
            data = _load_toml(global_config)
            logger.info("Loaded config from %s", global_config)

    config = StudioConfig.model_validate(data) if data else StudioConfig()

    return _apply_env_vars(config)


def merge_cli_overrides(config: StudioConfig, **cli_kwargs: object) -> StudioConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "output_directory": ("output", "directory"),
        "page_count": ("book", "page_count"),
        "image_size": ("book", "image_size"),
        "text_model": ("gemini", "text_model"),
        "image_model": ("gemini", "image_model"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = value

    return StudioConfig.model_validate(data)


def resolve_api_key(config: StudioConfig | None = None) -> str:
    """Return the configured API credential, or "" when none is set.

    Env vars take precedence over the TOML value so a key selected for the
    current shell wins without editing the file.
    """
    for env_var in API_KEY_ENV_VARS:
        value = os.environ.get(env_var, "").strip()
        if value:
            return value
    return config.gemini.api_key if config is not None else ""


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: StudioConfig) -> StudioConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "KIDBOOK_TEXT_MODEL": ("gemini", "text_model"),
        "KIDBOOK_IMAGE_MODEL": ("gemini", "image_model"),
        "KIDBOOK_SEO_MODEL": ("gemini", "seo_model"),
        "KIDBOOK_OUTPUT_DIR": ("output", "directory"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    api_key = resolve_api_key()
    if api_key:
        data["gemini"]["api_key"] = api_key

    return StudioConfig.model_validate(data)
