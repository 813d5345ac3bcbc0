"""Tests for kidbook.images data-URI helpers and style suffix."""

import pytest
from kidbook.config import DEFAULT_STYLE_SUFFIX
from kidbook.images import (
    apply_style,
    data_uri_payload,
    load_image_file,
    parse_data_uri,
    to_data_uri,
)


class TestDataUri:
    def test_encode(self):
        assert to_data_uri(b"abc") == "data:image/png;base64,YWJj"
        assert to_data_uri(b"abc", "image/jpeg").startswith("data:image/jpeg;base64,")

    def test_parse(self):
        mime, data = parse_data_uri("data:image/webp;base64,YWJj")
        assert mime == "image/webp"
        assert data == b"abc"

    def test_payload(self):
        assert data_uri_payload(to_data_uri(b"\x89PNG\r\n")) == b"\x89PNG\r\n"

    @pytest.mark.parametrize(
        "value",
        [
            "https://example.com/page.png",
            "data:image/png,YWJj",
            "data:image/png;base64,not base64!",
            "",
        ],
    )
    def test_parse_rejects(self, value):
        with pytest.raises(ValueError):
            parse_data_uri(value)


class TestLoadImageFile:
    def test_known_type(self, tmp_path):
        path = tmp_path / "ref.jpg"
        path.write_bytes(b"jpeg-bytes")
        mime, data = parse_data_uri(load_image_file(path))
        assert mime == "image/jpeg"
        assert data == b"jpeg-bytes"

    def test_unknown_type_defaults_to_png(self, tmp_path, caplog):
        path = tmp_path / "reference.bin"
        path.write_bytes(b"raw")
        with caplog.at_level("WARNING", logger="kidbook.images"):
            uri = load_image_file(path)
        assert uri.startswith("data:image/png;base64,")
        assert "Unrecognized image type" in caplog.text


class TestApplyStyle:
    def test_appends_default_suffix(self):
        assert apply_style("A cat on a mat") == f"A cat on a mat. {DEFAULT_STYLE_SUFFIX}"

    def test_no_double_period(self):
        assert apply_style("A cat on a mat.  ", "Crayon style.") == "A cat on a mat. Crayon style."
