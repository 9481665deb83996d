"""Shared test fixtures and configuration."""

import logging
import os
import tempfile
import pytest
from ffcompose.media import MediaContext, Workspace


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield tmp_dir


def _write(path: str, data: bytes) -> str:
    with open(path, "wb") as f:
        f.write(data)
    return path


@pytest.fixture
def sample_video_path(temp_dir):
    """Create a sample video file path (placeholder content)."""
    return _write(os.path.join(temp_dir, "sample.mp4"), b"fake video data")


@pytest.fixture
def sample_image_path(temp_dir):
    """Create a sample image file path (placeholder content)."""
    return _write(os.path.join(temp_dir, "sample.jpg"), b"fake image data")


@pytest.fixture
def sample_audio_path(temp_dir):
    """Create a sample audio file path (placeholder content)."""
    return _write(os.path.join(temp_dir, "sample.mp3"), b"fake audio data")


@pytest.fixture
def ctx():
    """Media context with a fixed ffmpeg command name."""
    context = MediaContext(ffmpeg="ffmpeg", logger=logging.getLogger("ffcompose.tests"))
    yield context
    context.cleanup()


@pytest.fixture
def workspace(temp_dir):
    """Workspace rooted in a temporary directory."""
    return Workspace(os.path.join(temp_dir, "workspace"))


@pytest.fixture
def upload(workspace):
    """Write a file into the workspace uploads directory and return its name."""

    def _upload(name: str, data: bytes = b"data") -> str:
        _write(os.path.join(workspace.uploads_dir, name), data)
        return name

    return _upload
