"""Tests for text/binary classification and the legacy binary wrapper."""

import pytest

from vault_sync.core.models import BinaryContent, TextContent
from vault_sync.sync.encoding import (
    content_from_remote,
    is_binary_path,
    unwrap_binary,
    wrap_binary,
)


@pytest.mark.parametrize(
    "path",
    [
        "img.png",
        "photos/IMG.JPG",
        "a.jpeg",
        "anim.gif",
        "doc.pdf",
        "song.mp3",
        "clip.mp4",
        "pic.webp",
        "icon.svg",
        "favicon.ico",
    ],
)
def test_binary_extensions(path):
    assert is_binary_path(path) is True


@pytest.mark.parametrize(
    "path", ["note.md", "data.json", "png", "dir.png/readme.txt", "Makefile"]
)
def test_text_paths(path):
    assert is_binary_path(path) is False


def test_wrapper_roundtrip_every_byte_value():
    data = bytes(range(256))
    assert unwrap_binary(wrap_binary(data)) == data


def test_wrapper_of_empty_bytes():
    assert wrap_binary(b"") == "[BINARY:]"
    assert unwrap_binary("[BINARY:]") == b""


@pytest.mark.parametrize(
    "text", ["plain text", "[BINARY:not base64!]", "[BINARY:abc", "BINARY:YQ==]"]
)
def test_unwrap_rejects_non_wrappers(text):
    assert unwrap_binary(text) is None


class TestContentFromRemote:
    def test_text_path_decodes_utf8(self):
        assert content_from_remote("a.md", "héllo".encode("utf-8")) == TextContent(
            "héllo"
        )

    def test_binary_path_keeps_raw_bytes(self):
        data = b"\x89PNG\r\n"
        assert content_from_remote("a.png", data) == BinaryContent(data)

    def test_binary_path_unwraps_legacy_wrapper(self):
        wrapped = wrap_binary(b"\x00\xff").encode("ascii")
        assert content_from_remote("a.png", wrapped) == BinaryContent(b"\x00\xff")

    def test_text_path_keeps_wrapper_text(self):
        wrapped = wrap_binary(b"\x00\xff")
        assert content_from_remote("a.md", wrapped.encode("ascii")) == TextContent(
            wrapped
        )

    def test_invalid_utf8_on_text_path_stays_bytes(self):
        data = b"\xff\xfe\x00bad"
        assert content_from_remote("a.txt", data) == BinaryContent(data)

    def test_empty_file(self):
        assert content_from_remote("empty.md", b"") == TextContent("")
