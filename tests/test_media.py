"""Tests for media upload helpers."""

import hashlib

import pytest

from wacore.media import MediaError, PlaceholderMediaUploader


def test_content_addressed_url():
    uploader = PlaceholderMediaUploader("https://cdn.example.com/")
    uploaded = uploader.upload(b"abc", "text/plain")
    digest = hashlib.sha256(b"abc").hexdigest()
    assert uploaded.url == f"https://cdn.example.com/{digest}"
    assert uploaded.sha256 == digest
    assert uploaded.size == 3
    assert uploader.uploads == 1


def test_bytes_default_mimetype():
    uploaded = PlaceholderMediaUploader().upload_source(b"\x00")
    assert uploaded.mimetype == "application/octet-stream"


def test_file_source(tmp_path):
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x00\x01")
    uploaded = PlaceholderMediaUploader().upload_source(str(path))
    assert uploaded.mimetype == "video/mp4"
    assert uploaded.size == 2


def test_missing_file(tmp_path):
    with pytest.raises(MediaError):
        PlaceholderMediaUploader().upload_source(tmp_path / "absent.png")
