"""Tests for vidctl.core.validation module."""

from __future__ import annotations

from pathlib import Path

import pytest

from vidctl.core.exceptions import InvalidURLError, PathValidationError, ValidationError
from vidctl.core.validation import (
    validate_batch,
    validate_channel_id,
    validate_server_url,
    validate_timeout,
    validate_upload_file,
    validate_upload_id,
    validate_workers,
)

# =============================================================================
# URL Validation Tests
# =============================================================================


class TestValidateServerUrl:
    """Tests for validate_server_url."""

    def test_strips_trailing_slash(self):
        assert validate_server_url(" https://videos.example.com/ ") == "https://videos.example.com"

    @pytest.mark.parametrize("url", ["", "   ", "videos.example.com", "ftp://x.org", "https://"])
    def test_invalid(self, url):
        with pytest.raises(InvalidURLError):
            validate_server_url(url)


# =============================================================================
# Identifier Validation Tests
# =============================================================================


class TestIdentifiers:
    """Tests for channel and upload id validation."""

    def test_channel_id(self):
        assert validate_channel_id(42) == "42"
        assert validate_channel_id(" news-1 ") == "news-1"

    @pytest.mark.parametrize("channel", ["", "a/b", "x" * 65])
    def test_invalid_channel_id(self, channel):
        with pytest.raises(ValidationError):
            validate_channel_id(channel)

    def test_upload_id(self):
        assert validate_upload_id("2f0c9a7e-1d4b-4c1e-9d8f-3a7f1e2b5c6d") == (
            "2f0c9a7e-1d4b-4c1e-9d8f-3a7f1e2b5c6d"
        )

    @pytest.mark.parametrize("upload_id", ["", "../etc", "a b"])
    def test_invalid_upload_id(self, upload_id):
        with pytest.raises(ValidationError):
            validate_upload_id(upload_id)


# =============================================================================
# File Validation Tests
# =============================================================================


class TestFiles:
    """Tests for upload file and batch validation."""

    def test_upload_file(self, tmp_path: Path):
        path = tmp_path / "clip.mp4"
        path.write_bytes(b"x")
        assert validate_upload_file(path) == path.resolve()

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(PathValidationError, match="does not exist"):
            validate_upload_file(tmp_path / "missing.mp4")

    def test_directory_is_not_a_file(self, tmp_path: Path):
        with pytest.raises(PathValidationError, match="is not a file"):
            validate_upload_file(tmp_path)

    def test_batch(self, make_file):
        paths = [make_file(f"clip{i}.mp4", 10) for i in range(3)]
        assert validate_batch(paths) == [p.resolve() for p in paths]

    def test_empty_batch(self):
        with pytest.raises(ValidationError, match="No files"):
            validate_batch([])

    def test_batch_too_large(self, make_file):
        paths = [make_file(f"clip{i}.mp4", 10) for i in range(6)]
        with pytest.raises(ValidationError, match="Too many files"):
            validate_batch(paths)

    def test_batch_limit_override(self, make_file):
        paths = [make_file(f"clip{i}.mp4", 10) for i in range(3)]
        with pytest.raises(ValidationError):
            validate_batch(paths, max_files=2)

    def test_duplicate_files(self, make_file):
        path = make_file("clip.mp4", 10)
        with pytest.raises(ValidationError, match="Duplicate"):
            validate_batch([path, path])


# =============================================================================
# Numeric Validation Tests
# =============================================================================


def test_validate_workers():
    assert validate_workers(4) == 4
    with pytest.raises(ValidationError):
        validate_workers(0)
    with pytest.raises(ValidationError):
        validate_workers(33)


def test_validate_timeout():
    assert validate_timeout(30) == 30
    with pytest.raises(ValidationError):
        validate_timeout(0)
