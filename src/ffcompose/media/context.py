"""Media runtime context: tool paths, detection and temporary file management."""

import tempfile
import logging
import os
import re
import shutil
import subprocess
from typing import Optional, Dict, Iterable
from pydantic import BaseModel

# Common install locations checked when FFMPEG_PATH is not set
COMMON_FFMPEG_PATHS = (
    "C:\\ffmpeg\\bin\\ffmpeg.exe",
    "C:\\Program Files\\ffmpeg\\bin\\ffmpeg.exe",
    "C:\\Program Files (x86)\\ffmpeg\\bin\\ffmpeg.exe",
    "/usr/local/bin/ffmpeg",
    "/opt/homebrew/bin/ffmpeg",
)

_FFMPEG_VERSION_RE = re.compile(r"ffmpeg version ([^\s]+)", re.IGNORECASE)


class ToolStatus(BaseModel):
    """Installation status of an external command-line tool."""

    installed: bool
    command: Optional[str] = None
    version: Optional[str] = None
    message: str


def resolve_ffmpeg_path(
    environ: Optional[Dict[str, str]] = None,
    candidates: Iterable[str] = COMMON_FFMPEG_PATHS,
) -> str:
    """
    Resolve the FFmpeg executable path.

    Order: ``FFMPEG_PATH`` environment variable, common install locations,
    ``PATH`` lookup, and finally the bare ``ffmpeg`` command name.

    Args:
        environ: Environment mapping (defaults to ``os.environ``)
        candidates: Install locations to probe

    Returns:
        Path or command name for FFmpeg
    """
    env = os.environ if environ is None else environ

    if env.get("FFMPEG_PATH"):
        return env["FFMPEG_PATH"]

    for candidate in candidates:
        if os.path.exists(candidate):
            return candidate

    found = shutil.which("ffmpeg", path=env.get("PATH"))
    return found or "ffmpeg"


class MediaContext:
    """Configuration for media operations, constructed once and passed around."""

    def __init__(
        self,
        ffmpeg: Optional[str] = None,
        magick: Optional[str] = None,
        tmp_root: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize media context.

        Args:
            ffmpeg: Path to ffmpeg binary (resolved automatically if omitted)
            magick: Path to the ImageMagick binary (detected lazily if omitted)
            tmp_root: Root directory for temporary files
            logger: Logger instance for debugging
        """
        self.ffmpeg = ffmpeg or resolve_ffmpeg_path()
        self.magick = magick
        self.logger = logger or logging.getLogger(__name__)

        self._tmp = tempfile.TemporaryDirectory(dir=tmp_root)
        self.tmp = self._tmp.name

        self._ffmpeg_status: Optional[ToolStatus] = None

    @classmethod
    def from_env(
        cls,
        environ: Optional[Dict[str, str]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "MediaContext":
        """
        Build a context from environment variables.

        Reads ``FFMPEG_PATH``, ``MAGICK_PATH`` and ``FFCOMPOSE_TMP``.
        """
        env = os.environ if environ is None else environ
        return cls(
            ffmpeg=resolve_ffmpeg_path(env),
            magick=env.get("MAGICK_PATH") or None,
            tmp_root=env.get("FFCOMPOSE_TMP") or None,
            logger=logger,
        )

    def check_ffmpeg(self, refresh: bool = False) -> ToolStatus:
        """
        Detect FFmpeg and its version.

        The result is cached on the context; pass ``refresh=True`` to probe
        again.

        Returns:
            Installation status of FFmpeg
        """
        if self._ffmpeg_status is not None and not refresh:
            return self._ffmpeg_status

        try:
            result = subprocess.run(
                [self.ffmpeg, "-version"], capture_output=True, text=True, timeout=10
            )
            output = (result.stdout or result.stderr or "").strip()

            if result.returncode == 0 and output:
                match = _FFMPEG_VERSION_RE.search(output)
                version = match.group(1) if match else "unknown"
                status = ToolStatus(
                    installed=True,
                    command=self.ffmpeg,
                    version=version,
                    message=f"FFmpeg {version} is installed",
                )
                self.logger.debug(f"FFmpeg {version} detected at {self.ffmpeg}")
            else:
                status = ToolStatus(
                    installed=False,
                    message=f"FFmpeg not working: {result.stderr.strip()}",
                )

        except FileNotFoundError:
            status = ToolStatus(
                installed=False,
                message="FFmpeg not found. Install FFmpeg or set FFMPEG_PATH",
            )
        except subprocess.TimeoutExpired:
            status = ToolStatus(installed=False, message="FFmpeg detection timed out")

        if not status.installed:
            self.logger.warning(status.message)

        self._ffmpeg_status = status
        return status

    def temp_path(self, suffix: str = "", prefix: str = "ffc_") -> str:
        """
        Generate a temporary file path.

        Args:
            suffix: File suffix/extension (e.g., ".png")
            prefix: File prefix

        Returns:
            Temporary file path
        """
        fd, path = tempfile.mkstemp(suffix=suffix, prefix=prefix, dir=self.tmp)
        os.close(fd)  # Close file descriptor, we just need the path
        return path

    def cleanup(self) -> None:
        """Clean up temporary files."""
        try:
            self._tmp.cleanup()
            self.logger.debug("Temporary files cleaned up")
        except OSError as e:
            self.logger.warning(f"Error cleaning up temporary files: {e}")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.cleanup()
