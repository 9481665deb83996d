"""Invocation builder: ordered FFmpeg argument list for a composition."""

import os
from typing import List, Optional
from pydantic import BaseModel
from .assembler import AssembledGraph, assemble
from .encoders import OutputOptions
from .resources import Resource, ResourcePartition
from ..core.types import ResourceKind, fmt_number


class InvocationPlan(BaseModel):
    """Complete, ordered encoder invocation for one composition."""

    executable: str
    argv: List[str]  # Arguments only, executable excluded
    filter_graph: str
    output_path: str
    total_duration: float
    video_pad: str
    audio_pad: Optional[str] = None

    def full_argv(self) -> List[str]:
        """Executable followed by all arguments."""
        return [self.executable, *self.argv]

    def command(self) -> str:
        """Human-readable command line, as logged and returned to callers."""
        return f'"{self.executable}" ' + " ".join(self.argv)


def input_args(resource: Resource) -> List[str]:
    """
    Input arguments for one resource.

    Seek and length flags must precede ``-i``; FFmpeg applies them to the
    input that follows.
    """
    args: List[str] = []
    if resource.kind != ResourceKind.IMAGE:
        if resource.start_time is not None and resource.start_time > 0:
            args.extend(["-ss", fmt_number(resource.start_time)])
        if resource.duration is not None and resource.duration > 0:
            args.extend(["-t", fmt_number(resource.duration)])
    args.extend(["-i", os.path.abspath(resource.path)])
    return args


class InvocationBuilder:
    """Serializes output options and an assembled graph into FFmpeg arguments."""

    def __init__(self, options: OutputOptions, executable: str = "ffmpeg"):
        """
        Initialize builder.

        Args:
            options: Output canvas and encoding settings
            executable: FFmpeg executable recorded in the plan
        """
        self.options = options
        self.executable = executable

    def build(
        self,
        partition: ResourcePartition,
        out_path: str,
        assembled: Optional[AssembledGraph] = None,
    ) -> InvocationPlan:
        """
        Build the invocation plan.

        Args:
            partition: Classified resources
            out_path: Destination file
            assembled: Pre-assembled graph (assembled here when omitted)

        Returns:
            Invocation plan with arguments in encoder order
        """
        if assembled is None:
            assembled = assemble(partition, self.options.canvas())

        argv = ["-y"]

        for resource in partition.ordered():
            argv.extend(input_args(resource))

        filter_graph = assembled.filter_complex()
        argv.extend(["-filter_complex", filter_graph])

        argv.extend(self.options.video_args())
        argv.extend(["-map", assembled.video_pad])

        if assembled.audio_pad is not None:
            argv.extend(self.options.audio_args())
            argv.extend(["-map", assembled.audio_pad])
        elif partition.videos:
            # No explicit audio: carry over the first video's own track if present
            first_video = len(partition.images)
            argv.extend(["-map", f"{first_video}:a?"])
            argv.extend(self.options.audio_args())

        output_path = os.path.abspath(out_path)
        argv.append(output_path)

        return InvocationPlan(
            executable=self.executable,
            argv=argv,
            filter_graph=filter_graph,
            output_path=output_path,
            total_duration=partition.total_duration,
            video_pad=assembled.video_pad,
            audio_pad=assembled.audio_pad,
        )
