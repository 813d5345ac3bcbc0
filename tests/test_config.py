"""Tests for kidbook.config: defaults, TOML loading, env vars, CLI overrides."""

from pathlib import Path

import pytest
from kidbook.config import (
    API_KEY_ENV_VARS,
    DEFAULT_STYLE_SUFFIX,
    StudioConfig,
    load_config,
    merge_cli_overrides,
    resolve_api_key,
)
from kidbook.models import ImageSize

_ENV_VARS = (
    *API_KEY_ENV_VARS,
    "KIDBOOK_TEXT_MODEL",
    "KIDBOOK_IMAGE_MODEL",
    "KIDBOOK_SEO_MODEL",
    "KIDBOOK_OUTPUT_DIR",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Remove env vars that _apply_env_vars reads so tests see TOML values."""
    for key in _ENV_VARS:
        monkeypatch.delenv(key, raising=False)


class TestStudioConfigDefaults:
    def test_default_models(self):
        cfg = StudioConfig()
        assert cfg.gemini.text_model == "gemini-3-flash-preview"
        assert cfg.gemini.image_model == "gemini-2.5-flash-image"
        assert cfg.gemini.seo_model == "gemini-flash-lite-latest"
        assert cfg.gemini.deep_thinking_budget == 16384

    def test_default_book(self):
        cfg = StudioConfig()
        assert cfg.book.page_count == 5
        assert cfg.book.image_size is ImageSize.LOW
        assert cfg.book.keyword_count == 13
        assert cfg.book.style_suffix == DEFAULT_STYLE_SUFFIX

    def test_default_output(self):
        assert StudioConfig().output.directory == "./books"


class TestLoadConfig:
    def test_load_from_explicit_path(self, tmp_path):
        toml_path = tmp_path / ".kidbook.toml"
        toml_path.write_text(
            '[book]\npage_count = 8\nimage_size = "2K"\nstory_language = "English"\n'
        )
        cfg = load_config(toml_path)
        assert cfg.book.page_count == 8
        assert cfg.book.image_size is ImageSize.MEDIUM
        assert cfg.book.story_language == "English"

    def test_load_missing_path_returns_defaults(self, tmp_path):
        cfg = load_config(tmp_path / "nonexistent.toml")
        assert cfg.book.page_count == 5

    def test_load_searches_cwd(self, tmp_path, monkeypatch):
        (tmp_path / ".kidbook.toml").write_text('[output]\ndirectory = "./out"\n')
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr("kidbook.config.CONFIG_SEARCH_PATHS", [Path(".")])
        cfg = load_config()
        assert cfg.output.directory == "./out"

    def test_invalid_toml_falls_back_to_defaults(self, tmp_path):
        toml_path = tmp_path / ".kidbook.toml"
        toml_path.write_text("[book\npage_count = ")
        cfg = load_config(toml_path)
        assert cfg.book.page_count == 5

    def test_env_overrides_toml(self, tmp_path, monkeypatch):
        toml_path = tmp_path / ".kidbook.toml"
        toml_path.write_text('[gemini]\ntext_model = "from-toml"\n')
        monkeypatch.setenv("KIDBOOK_TEXT_MODEL", "from-env")
        monkeypatch.setenv("KIDBOOK_OUTPUT_DIR", "/tmp/books")
        cfg = load_config(toml_path)
        assert cfg.gemini.text_model == "from-env"
        assert cfg.output.directory == "/tmp/books"

    def test_env_api_key_is_applied(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GOOGLE_AI_API_KEY", "env-key")
        cfg = load_config(tmp_path / "nonexistent.toml")
        assert cfg.gemini.api_key == "env-key"


class TestResolveApiKey:
    def test_no_key_anywhere(self):
        assert resolve_api_key() == ""
        assert resolve_api_key(StudioConfig()) == ""

    def test_config_value_used_without_env(self):
        cfg = StudioConfig.model_validate({"gemini": {"api_key": "toml-key"}})
        assert resolve_api_key(cfg) == "toml-key"

    def test_env_precedence_order(self, monkeypatch):
        monkeypatch.setenv("API_KEY", "generic")
        monkeypatch.setenv("GOOGLE_AI_API_KEY", "google")
        assert resolve_api_key() == "google"
        monkeypatch.setenv("GEMINI_API_KEY", "gemini")
        assert resolve_api_key() == "gemini"

    def test_blank_env_is_skipped(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "  ")
        monkeypatch.setenv("API_KEY", "fallback")
        assert resolve_api_key() == "fallback"


class TestMergeCliOverrides:
    def test_overrides_set_values(self):
        cfg = merge_cli_overrides(
            StudioConfig(),
            output_directory="/srv/books",
            page_count=3,
            image_size=ImageSize.HIGH,
            image_model="custom-image",
        )
        assert cfg.output.directory == "/srv/books"
        assert cfg.book.page_count == 3
        assert cfg.book.image_size is ImageSize.HIGH
        assert cfg.gemini.image_model == "custom-image"

    def test_none_values_are_ignored(self):
        base = StudioConfig()
        cfg = merge_cli_overrides(base, page_count=None, output_directory=None)
        assert cfg == base

    def test_unknown_keys_are_ignored(self):
        cfg = merge_cli_overrides(StudioConfig(), colour="blue")
        assert cfg == StudioConfig()


class TestConfigSearch:
    def test_home_config_toml_used_when_cwd_has_none(self, tmp_path, monkeypatch):
        home = tmp_path / "home"
        (home / ".config" / "kidbook").mkdir(parents=True)
        (home / ".config" / "kidbook" / "config.toml").write_text("[book]\npage_count = 7\n")
        (home / ".config" / "kidbook" / ".kidbook.toml").write_text("[book]\npage_count = 9\n")
        work = tmp_path / "work"
        work.mkdir()
        monkeypatch.setenv("HOME", str(home))
        monkeypatch.chdir(work)

        assert load_config().book.page_count == 7

    def test_cwd_file_wins_over_home(self, tmp_path, monkeypatch):
        home = tmp_path / "home"
        (home / ".config" / "kidbook").mkdir(parents=True)
        (home / ".config" / "kidbook" / "config.toml").write_text("[book]\npage_count = 7\n")
        work = tmp_path / "work"
        work.mkdir()
        (work / ".kidbook.toml").write_text("[book]\npage_count = 2\n")
        monkeypatch.setenv("HOME", str(home))
        monkeypatch.chdir(work)

        assert load_config().book.page_count == 2
