"""Integration tests that run a real FFmpeg binary.

Inputs are generated with FFmpeg's lavfi sources, so no media assets are
needed. The tests are skipped when ``ffmpeg`` is not on the PATH.
"""

import os
import re
import shutil
import subprocess
import pytest
from ffcompose import Composition, OutputOptions, ProcessingChain

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(shutil.which("ffmpeg") is None, reason="ffmpeg not installed"),
]


def lavfi(source, out_path, *extra):
    subprocess.run(
        ["ffmpeg", "-y", "-loglevel", "error", "-f", "lavfi", "-i", source, *extra, out_path],
        check=True,
        capture_output=True,
    )
    return out_path


@pytest.fixture
def media(temp_dir):
    """Small generated image, video and audio files."""
    return {
        "red": lavfi("color=c=red:s=320x240", os.path.join(temp_dir, "red.png"), "-frames:v", "1"),
        "blue": lavfi("color=c=blue:s=240x320", os.path.join(temp_dir, "blue.png"), "-frames:v", "1"),
        "clip": lavfi(
            "testsrc=size=320x240:rate=25",
            os.path.join(temp_dir, "clip.mp4"),
            "-t", "2", "-c:v", "mpeg4",
        ),
        "tone": lavfi("sine=frequency=440:duration=3", os.path.join(temp_dir, "tone.wav")),
    }


def content_widths(path):
    """Per-frame width of the non-black area, as reported by cropdetect."""
    completed = subprocess.run(
        ["ffmpeg", "-i", path, "-vf", "cropdetect=limit=0.1:round=2:reset=1", "-f", "null", "-"],
        check=True,
        capture_output=True,
        text=True,
    )
    return [int(w) for w in re.findall(r"\bw:(\d+)", completed.stderr)]


def small_options():
    return OutputOptions.bitrate("mpeg4", "500k", width=320, height=240, fps=25)


class TestRealComposition:
    """Render compositions end to end."""

    def test_slideshow_with_audio(self, ctx, media, temp_dir):
        """Test two images with transitions and a background track."""
        progress = []
        composition = Composition(options=small_options(), ctx=ctx)
        composition.add_image(media["red"], duration=1.5, transition="fade")
        composition.add_image(media["blue"], duration=1.5, transition="zoomIn")
        composition.add_audio(media["tone"], volume=50, fade="both", fade_duration=0.5)

        out_path = os.path.join(temp_dir, "out", "slideshow.mp4")
        result = composition.to_file(out_path, on_progress=progress.append)

        assert result.output_path == os.path.abspath(out_path)
        assert os.path.getsize(out_path) > 0
        assert all(0 <= p <= 100 for p in progress)

    def test_zoom_in_grows_content(self, ctx, media, temp_dir):
        """Test zoom in shows the image growing from half to full size."""
        composition = Composition(options=small_options(), ctx=ctx)
        composition.add_image(media["red"], duration=2, transition="zoomIn", transition_duration=1)

        out_path = os.path.join(temp_dir, "zoom.mp4")
        composition.to_file(out_path, timeout=60)

        widths = content_widths(out_path)
        assert min(widths) <= 200
        assert max(widths) >= 300
        assert widths[-1] >= 300

    def test_video_and_image(self, ctx, media, temp_dir):
        """Test a trimmed clip followed by a still image."""
        composition = Composition(options=small_options(), ctx=ctx)
        composition.add_video(media["clip"], duration=1, transition="slideLeft")
        composition.add_image(media["red"], duration=1, position="top-left", scale_mode="fill")

        out_path = os.path.join(temp_dir, "mixed.mp4")
        composition.to_file(out_path, timeout=60)

        assert os.path.getsize(out_path) > 0


class TestRealProcessing:
    """Run single-file operations end to end."""

    def test_resize_then_extract_frame(self, ctx, workspace, media):
        """Test a two-step chain leaves only the final file."""
        shutil.copy(media["clip"], os.path.join(workspace.uploads_dir, "clip.mp4"))

        result = ProcessingChain(workspace, ctx).run(
            "clip.mp4",
            [
                {"type": "resize", "params": {"width": 160, "height": 120}},
                {"type": "extractFrame", "params": {"time": 0.5}},
            ],
            timeout=60,
        )

        assert result.output_file.endswith("_clip.jpg")
        assert os.listdir(workspace.output_dir) == [result.output_file]
        assert len(result.commands) == 2
