"""Tests for data-URI helpers and export filenames."""
import base64

import pytest

from persona_studio.core.payload import (
    is_image_mime,
    parse_data_uri,
    reference_filename,
    story_image_filename,
    to_data_uri,
)


class TestDataUri:
    def test_to_data_uri_encodes_payload(self) -> None:
        uri = to_data_uri(b"abc", "image/webp")
        assert uri == "data:image/webp;base64," + base64.b64encode(b"abc").decode()

    def test_parse_data_uri_returns_mime_and_bytes(self) -> None:
        mime_type, data = parse_data_uri(to_data_uri(b"\x00\x01png", "image/png"))
        assert mime_type == "image/png"
        assert data == b"\x00\x01png"

    def test_bare_base64_defaults_to_jpeg(self) -> None:
        mime_type, data = parse_data_uri(base64.b64encode(b"jpeg").decode())
        assert mime_type == "image/jpeg"
        assert data == b"jpeg"

    def test_invalid_base64_raises_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_data_uri("data:image/png;base64,@@not-base64@@")

    @pytest.mark.parametrize(
        ("mime_type", "expected"),
        [("image/png", True), ("image/jpeg", True), ("text/plain", False), (None, False), ("", False)],
    )
    def test_is_image_mime(self, mime_type, expected) -> None:
        assert is_image_mime(mime_type) is expected


class TestFilenames:
    def test_story_image_filename_is_one_based(self) -> None:
        assert story_image_filename("story-abc", 0) == "story-abc-1.png"
        assert story_image_filename("story-abc", 7) == "story-abc-8.png"

    def test_reference_filename_uses_timestamp(self) -> None:
        assert reference_filename(1700000000000) == "influencer-reference-1700000000000.png"

    def test_reference_filename_defaults_to_now(self) -> None:
        name = reference_filename()
        stamp = name.removeprefix("influencer-reference-").removesuffix(".png")
        assert stamp.isdigit()
        assert len(stamp) == 13
