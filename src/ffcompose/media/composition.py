"""Video composition from an ordered list of image, video and audio resources."""

import os
from typing import List, Optional, Any
from pydantic import BaseModel
from .context import MediaContext
from .encoders import OutputOptions
from .resources import Resource, ResourcePartition, classify
from .assembler import AssembledGraph, assemble
from .invocation import InvocationBuilder, InvocationPlan
from .runner import ProcessRunner
from ..core.types import ResourceKind, ProgressCb
from ..core.errors import EmptyResourceList, WorkspaceError


class ComposeResult(BaseModel):
    """Result of a finished composition."""

    command: str
    output_path: str
    stdout: str = ""
    stderr: str = ""


class Composition:
    """Ordered resource list rendered into one video by a single FFmpeg run."""

    def __init__(
        self,
        options: Optional[OutputOptions] = None,
        ctx: Optional[MediaContext] = None,
    ):
        """
        Initialize composition.

        Args:
            options: Output canvas and encoding settings (defaults: 1280x720, 25 fps, H.264)
            ctx: Media context for operations
        """
        self.options = options or OutputOptions()
        self.ctx = ctx or MediaContext()
        self._resources: List[Resource] = []

    @property
    def resources(self) -> List[Resource]:
        """Resources in the order they were added."""
        return list(self._resources)

    # Resource management
    def add(self, resource: Resource) -> "Composition":
        """Append a resource descriptor."""
        self._resources.append(resource)
        return self

    def add_image(self, path: str, duration: float, **attrs: Any) -> "Composition":
        """
        Append a still image shown for ``duration`` seconds.

        Args:
            path: Image file path
            duration: Display time in seconds (required, must be positive)
            **attrs: Visual attributes (transition, position, scale_mode, ...)
        """
        return self.add(
            Resource(kind=ResourceKind.IMAGE, path=path, duration=duration, **attrs)
        )

    def add_video(
        self,
        path: str,
        duration: Optional[float] = None,
        start_time: Optional[float] = None,
        **attrs: Any,
    ) -> "Composition":
        """
        Append a video clip.

        Args:
            path: Video file path
            duration: Seconds to read from the source (None = until the end)
            start_time: Seek position in the source, in seconds
            **attrs: Visual attributes (transition, position, scale_mode, ...)
        """
        return self.add(
            Resource(
                kind=ResourceKind.VIDEO,
                path=path,
                duration=duration,
                start_time=start_time,
                **attrs,
            )
        )

    def add_audio(
        self,
        path: str,
        duration: Optional[float] = None,
        start_time: Optional[float] = None,
        **attrs: Any,
    ) -> "Composition":
        """
        Append an audio track mixed under the video.

        Args:
            path: Audio file path
            duration: Seconds to read from the source
            start_time: Seek position in the source, in seconds
            **attrs: Audio attributes (volume, fade, fade_duration)
        """
        return self.add(
            Resource(
                kind=ResourceKind.AUDIO,
                path=path,
                duration=duration,
                start_time=start_time,
                **attrs,
            )
        )

    # Build methods
    def partition(self, check_files: bool = True) -> ResourcePartition:
        """Validate and classify the resources."""
        if not self._resources:
            raise EmptyResourceList()
        return classify(self._resources, check_files=check_files)

    def graph(self, check_files: bool = True) -> AssembledGraph:
        """Assemble the filter graph without building the full invocation."""
        return assemble(self.partition(check_files), self.options.canvas())

    def build(self, out_path: str, check_files: bool = True) -> InvocationPlan:
        """
        Build the encoder invocation.

        Args:
            out_path: Output file path
            check_files: Whether to require every input to exist on disk

        Returns:
            Invocation plan
        """
        partition = self.partition(check_files)
        builder = InvocationBuilder(self.options, executable=self.ctx.ffmpeg)
        return builder.build(partition, out_path)

    def dry_run(self, out_path: str = "OUT.mp4") -> str:
        """
        Generate the FFmpeg command without executing it.

        Returns:
            FFmpeg command string
        """
        return self.build(out_path, check_files=False).command()

    # Export methods
    def to_file(
        self,
        out_path: str,
        on_progress: ProgressCb = None,
        timeout: Optional[float] = None,
    ) -> ComposeResult:
        """
        Render the composition to a file.

        Args:
            out_path: Output file path
            on_progress: Progress callback receiving a percentage
            timeout: Seconds before the encoder is killed (None = no limit)

        Returns:
            Executed command and output path
        """
        plan = self.build(out_path)
        self._prepare_output(plan.output_path)

        self.ctx.logger.info(f"Filter graph: {plan.filter_graph}")
        self.ctx.logger.info(f"Output path: {plan.output_path}")

        result = ProcessRunner(self.ctx).run(
            plan.full_argv(),
            total_duration=plan.total_duration,
            on_progress=on_progress,
            timeout=timeout,
        )

        self.ctx.logger.info(f"Composition finished: {plan.output_path}")
        return ComposeResult(
            command=result.command,
            output_path=plan.output_path,
            stdout=result.stdout,
            stderr=result.stderr,
        )

    def _prepare_output(self, output_path: str) -> None:
        """Ensure the output directory exists and is writable; drop stale output."""
        output_dir = os.path.dirname(output_path)
        os.makedirs(output_dir, exist_ok=True)

        probe = os.path.join(output_dir, ".write_test")
        try:
            with open(probe, "w") as f:
                f.write("test")
            os.remove(probe)
        except OSError as e:
            raise WorkspaceError(
                f"Output directory is not writable: {output_dir} - {e}",
                {"directory": output_dir},
            )

        if os.path.exists(output_path):
            try:
                os.remove(output_path)
            except OSError as e:
                self.ctx.logger.warning(f"Could not remove existing output file: {e}")
