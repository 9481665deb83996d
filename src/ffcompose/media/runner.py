"""Process runner: launches external tools and tracks FFmpeg progress."""

import re
import subprocess
import threading
from typing import List, Optional
from pydantic import BaseModel
from .context import MediaContext
from ..core.types import ProgressCb
from ..core.errors import (
    EncoderLaunchFailure,
    EncoderProcessFailure,
    EncoderTimeout,
)

# FFmpeg reports elapsed output time as "time=HH:MM:SS.ss"
PROGRESS_RE = re.compile(r"time=(\d+):(\d+):(\d+\.\d+)")

_READ_CHUNK = 1024
_TAIL_KEEP = 64


class RunResult(BaseModel):
    """Outcome of a successful process run."""

    command: str
    stdout: str
    stderr: str


def parse_progress(text: str) -> Optional[float]:
    """
    Parse the last elapsed-time marker in a chunk of FFmpeg output.

    Returns:
        Elapsed seconds, or None when the text holds no marker
    """
    matches = PROGRESS_RE.findall(text)
    if not matches:
        return None
    hours, minutes, seconds = matches[-1]
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def progress_percent(elapsed: float, total_duration: Optional[float]) -> Optional[float]:
    """Completion percentage capped at 100, or None without a known total."""
    if not total_duration or total_duration <= 0:
        return None
    return min(100.0, elapsed / total_duration * 100)


def format_command(argv: List[str]) -> str:
    """Render an argument list as a display command line."""
    return f'"{argv[0]}" ' + " ".join(argv[1:])


class ProcessRunner:
    """Runs an external command, streams its output and checks the exit code."""

    def __init__(self, ctx: MediaContext):
        """Initialize with media context."""
        self.ctx = ctx

    def run(
        self,
        argv: List[str],
        total_duration: Optional[float] = None,
        on_progress: ProgressCb = None,
        timeout: Optional[float] = None,
    ) -> RunResult:
        """
        Execute a command to completion.

        Args:
            argv: Executable followed by its arguments
            total_duration: Expected output length, used for percentages
            on_progress: Called with the completion percentage
            timeout: Seconds before the process is killed (None = no limit)

        Returns:
            Executed command text and captured output

        Raises:
            EncoderLaunchFailure: If the executable cannot be started
            EncoderTimeout: If the time limit is exceeded
            EncoderProcessFailure: If the process exits with a non-zero code
        """
        command = format_command(argv)
        self.ctx.logger.info(f"Running: {command}")

        try:
            process = subprocess.Popen(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
                errors="replace",
            )
        except OSError as e:
            raise EncoderLaunchFailure(
                f"Failed to start {argv[0]}: {e}", {"command": command}
            )

        stdout_parts: List[str] = []
        stderr_parts: List[str] = []
        timed_out = threading.Event()

        def _kill():
            timed_out.set()
            process.kill()

        timer = threading.Timer(timeout, _kill) if timeout else None

        # Drain stdout in the background so a full pipe never blocks the tool
        stdout_reader = threading.Thread(
            target=self._drain,
            args=(process.stdout, stdout_parts, total_duration, on_progress),
            daemon=True,
        )
        stdout_reader.start()
        if timer:
            timer.start()

        try:
            # FFmpeg writes progress to stderr
            self._drain(process.stderr, stderr_parts, total_duration, on_progress)
            process.wait()
            stdout_reader.join()
        finally:
            if timer:
                timer.cancel()

        stdout = "".join(stdout_parts)
        stderr = "".join(stderr_parts)

        if timed_out.is_set():
            raise EncoderTimeout(
                f"{argv[0]} did not finish within {timeout} seconds",
                exit_code=process.returncode,
                stderr=stderr,
                command=command,
            )

        if process.returncode != 0:
            raise EncoderProcessFailure(
                f"{argv[0]} failed with exit code {process.returncode}: "
                f"{(stderr or stdout).strip()}",
                exit_code=process.returncode,
                stderr=stderr or stdout,
                command=command,
            )

        self.ctx.logger.info("Process completed successfully")
        return RunResult(command=command, stdout=stdout, stderr=stderr)

    def _drain(
        self,
        stream,
        parts: List[str],
        total_duration: Optional[float],
        on_progress: ProgressCb,
    ) -> None:
        """Read a pipe to EOF, reporting progress markers as they arrive."""
        if stream is None:
            return
        tail = ""
        for chunk in iter(lambda: stream.read(_READ_CHUNK), ""):
            parts.append(chunk)
            if not on_progress:
                continue
            window = tail + chunk
            tail = window[-_TAIL_KEEP:]
            elapsed = parse_progress(window)
            if elapsed is None:
                continue
            percent = progress_percent(elapsed, total_duration)
            if percent is not None:
                self.ctx.logger.debug(f"Progress: {percent:.2f}%")
                on_progress(percent)
