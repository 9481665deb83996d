"""Single-resource FFmpeg operations and chained processing."""

import math
import os
import time
from typing import Any, Callable, Dict, List, Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_snake
from .context import MediaContext
from .graph import Filter, FilterChain, FilterGraph, VIDEO_OUT
from .runner import ProcessRunner
from .workspace import Workspace
from ..core.types import Position, fmt_number
from ..core.errors import InvalidResourceParameters

Params = Dict[str, Any]


class Operation(BaseModel):
    """One step of a processing chain, e.g. ``{"type": "resize", "params": {...}}``."""

    type: str
    params: Params = Field(default_factory=dict)


class ChainResult(BaseModel):
    """Result of a processing chain."""

    output_file: str
    path: str
    commands: List[str]


# Parameter parsing
def _number(params: Params, key: str, cast, default=None, required: bool = False):
    value = params.get(key)
    if value is None or value == "":
        if required:
            raise InvalidResourceParameters(
                f"Missing required parameter: {key}", {"parameter": key}
            )
        return default
    try:
        number = cast(float(value)) if cast is int else cast(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidResourceParameters(
            f"Invalid value for {key}: {value!r}", {"parameter": key}
        )
    if isinstance(number, float) and not math.isfinite(number):
        raise InvalidResourceParameters(
            f"{key} must be a finite number, got {value!r}", {"parameter": key}
        )
    return number


def _positive(value, key: str):
    if value is None or value <= 0:
        raise InvalidResourceParameters(
            f"{key} must be positive, got {value}", {"parameter": key}
        )
    return value


def _parse_size(text: str, key: str = "resolution"):
    parts = str(text).lower().split("x")
    try:
        width, height = int(parts[0]), int(parts[1])
    except (IndexError, ValueError):
        raise InvalidResourceParameters(
            f"{key} must look like WIDTHxHEIGHT, got {text!r}", {"parameter": key}
        )
    if len(parts) != 2 or width <= 0 or height <= 0:
        raise InvalidResourceParameters(
            f"{key} must look like WIDTHxHEIGHT, got {text!r}", {"parameter": key}
        )
    return width, height


def _trim_args(params: Params) -> List[str]:
    args = []
    start = _number(params, "startTime", float)
    if start:
        args.extend(["-ss", fmt_number(start)])
    return args


def _length_args(params: Params) -> List[str]:
    duration = _number(params, "duration", float)
    if duration:
        return ["-t", fmt_number(duration)]
    return []


# Operation builders: (input, output, params) -> arguments without executable
def convert(input_path: str, output_path: str, params: Params) -> List[str]:
    """Transcode with optional quality, size, frame rate and trimming."""
    args = ["-y", *_trim_args(params), "-i", input_path, *_length_args(params)]
    args.extend(["-c:v", params.get("videoCodec") or "libx264"])
    args.extend(["-c:a", params.get("audioCodec") or "aac"])

    quality = _number(params, "quality", int)
    if quality is not None:
        args.extend(["-crf", str(quality)])
    if params.get("size"):
        width, height = _parse_size(params["size"], "size")
        args.extend(["-s", f"{width}x{height}"])
    fps = _number(params, "fps", float)
    if fps:
        args.extend(["-r", fmt_number(fps)])
    if params.get("audioBitrate"):
        args.extend(["-b:a", str(params["audioBitrate"])])

    args.append(output_path)
    return args


def resize(input_path: str, output_path: str, params: Params) -> List[str]:
    """Scale the video, by default keeping the aspect ratio inside the box."""
    width = _positive(_number(params, "width", int, required=True), "width")
    height = _positive(_number(params, "height", int, required=True), "height")

    scale = Filter(name="scale", params=[width, height])
    if params.get("maintainAspectRatio", True) is not False:
        scale.params.append("force_original_aspect_ratio=decrease")

    return ["-y", "-i", input_path, "-vf", scale.render(), "-c:a", "copy", output_path]


def crop(input_path: str, output_path: str, params: Params) -> List[str]:
    """Cut a ``width`` x ``height`` window at ``x``, ``y``."""
    width = _positive(_number(params, "width", int, required=True), "width")
    height = _positive(_number(params, "height", int, required=True), "height")
    x = _number(params, "x", int, default=0)
    y = _number(params, "y", int, default=0)
    if x < 0 or y < 0:
        raise InvalidResourceParameters("Crop offsets must not be negative")

    return [
        "-y",
        *_trim_args(params),
        "-i",
        input_path,
        *_length_args(params),
        "-vf",
        Filter(name="crop", params=[width, height, x, y]).render(),
        "-c:a",
        "copy",
        output_path,
    ]


def extract_frame(input_path: str, output_path: str, params: Params) -> List[str]:
    """Grab one frame at ``time`` seconds as an image."""
    at = _number(params, "time", float, default=0.0)
    if at < 0:
        raise InvalidResourceParameters("Frame time must not be negative")

    args = ["-y", "-ss", fmt_number(at), "-i", input_path, "-frames:v", "1"]
    if params.get("size"):
        width, height = _parse_size(params["size"], "size")
        args.extend(["-s", f"{width}x{height}"])
    args.append(output_path)
    return args


def extract_audio(input_path: str, output_path: str, params: Params) -> List[str]:
    """Drop the video stream and keep the audio track."""
    args = ["-y", "-i", input_path, "-vn"]
    if params.get("audioCodec"):
        args.extend(["-c:a", params["audioCodec"]])
    if params.get("audioBitrate"):
        args.extend(["-b:a", str(params["audioBitrate"])])
    args.append(output_path)
    return args


def watermark_position(position: Position, x: int, y: int) -> List[str]:
    """Overlay coordinates for a corner or center, offset by ``x``/``y``."""
    return {
        Position.TOP_LEFT: [str(x), str(y)],
        Position.TOP_RIGHT: [f"W-w-{x}", str(y)],
        Position.BOTTOM_LEFT: [str(x), f"H-h-{y}"],
        Position.BOTTOM_RIGHT: [f"W-w-{x}", f"H-h-{y}"],
        Position.CENTER: ["(W-w)/2", "(H-h)/2"],
    }[position]


def add_watermark(input_path: str, output_path: str, params: Params) -> List[str]:
    """
    Overlay an image on the video.

    ``params["watermarkPath"]`` must already be a resolved file path.
    """
    watermark = params.get("watermarkPath")
    if not watermark or not os.path.exists(watermark):
        raise InvalidResourceParameters(
            "Watermark file not found", {"watermarkPath": watermark}
        )

    position = Position.parse(params.get("position") or Position.BOTTOM_RIGHT.value)
    x = _number(params, "x", int, default=10)
    y = _number(params, "y", int, default=10)
    scale = _positive(_number(params, "scale", float, default=1.0), "scale")
    opacity = _number(params, "opacity", float, default=1.0)
    if not 0 <= opacity <= 1:
        raise InvalidResourceParameters(
            f"Watermark opacity must be within 0..1, got {opacity}"
        )

    graph = FilterGraph()
    graph.add(
        FilterChain(
            inputs=["1:v"],
            filters=[
                Filter(name="scale", params=[f"iw*{fmt_number(scale)}", f"ih*{fmt_number(scale)}"]),
                Filter(name="format", params=["rgba"]),
                Filter(name="colorchannelmixer", params=[f"aa={fmt_number(opacity)}"]),
            ],
            output="wm",
        )
    )
    graph.add(
        FilterChain(
            inputs=["0:v", "wm"],
            filters=[Filter(name="overlay", params=watermark_position(position, x, y))],
            output=VIDEO_OUT,
        )
    )

    return [
        "-y",
        "-i",
        input_path,
        "-i",
        watermark,
        "-filter_complex",
        graph.serialize(),
        "-map",
        f"[{VIDEO_OUT}]",
        "-map",
        "0:a?",
        "-c:a",
        "copy",
        output_path,
    ]


def image_to_video(input_path: str, output_path: str, params: Params) -> List[str]:
    """Loop a still image into an H.264 clip letterboxed to ``resolution``."""
    duration = _positive(_number(params, "duration", float, default=5.0), "duration")
    fps = _positive(_number(params, "fps", int, default=25), "fps")
    width, height = _parse_size(params.get("resolution") or "1280x720")

    chain = ",".join(
        f.render()
        for f in [
            Filter(name="scale", params=[width, height, "force_original_aspect_ratio=decrease"]),
            Filter(name="pad", params=[width, height, "(ow-iw)/2", "(oh-ih)/2"]),
            Filter(name="setsar", params=[1]),
        ]
    )

    return [
        "-y",
        "-loop",
        "1",
        "-i",
        input_path,
        "-t",
        fmt_number(duration),
        "-r",
        str(fps),
        "-vf",
        chain,
        "-c:v",
        "libx264",
        "-pix_fmt",
        "yuv420p",
        output_path,
    ]


OPERATIONS: Dict[str, Callable[[str, str, Params], List[str]]] = {
    "convert": convert,
    "resize": resize,
    "crop": crop,
    "extract_frame": extract_frame,
    "extract_audio": extract_audio,
    "add_watermark": add_watermark,
    "image_to_video": image_to_video,
}

# Operations whose output container is chosen by "format" regardless of position
_FORCED_FORMATS = {"extract_frame": "jpg", "extract_audio": "mp3"}


def operation_name(type_: str) -> str:
    """Normalize ``extractFrame`` / ``extract_frame`` to the registry key."""
    name = to_snake(type_ or "")
    if name not in OPERATIONS:
        raise InvalidResourceParameters(
            f"Unsupported operation type: {type_}", {"type": type_}
        )
    return name


class ProcessingChain:
    """Runs FFmpeg operations one after another on an uploaded file."""

    def __init__(self, workspace: Workspace, ctx: Optional[MediaContext] = None):
        """
        Initialize processing chain.

        Args:
            workspace: Workspace providing the uploads and output directories
            ctx: Media context for operations
        """
        self.workspace = workspace
        self.ctx = ctx or MediaContext()

    def run(
        self,
        filename: str,
        operations: List[Any],
        timeout: Optional[float] = None,
    ) -> ChainResult:
        """
        Apply ``operations`` in order, each reading the previous step's output.

        Args:
            filename: Name of a file in the uploads directory
            operations: ``Operation`` models or ``{"type", "params"}`` dicts
            timeout: Per-step encoder time limit in seconds

        Returns:
            Final output file name, its public path and every executed command

        Raises:
            InvalidResourceParameters: For an empty list or an unknown operation
            ResourceNotFound: If the input or watermark upload does not exist
        """
        steps = [Operation.model_validate(op) for op in operations or []]
        if not steps:
            raise InvalidResourceParameters("operations must be a non-empty list")

        # Validate every type before any encoder run
        names = [operation_name(step.type) for step in steps]

        input_path = self.workspace.resolve_upload(filename)
        base_name, source_ext = os.path.splitext(filename)

        runner = ProcessRunner(self.ctx)
        current = input_path
        commands: List[str] = []
        temp_files: List[str] = []

        try:
            for i, (name, step) in enumerate(zip(names, steps)):
                params = dict(step.params)
                fmt = params.get("format") or _FORCED_FORMATS.get(name)
                stamp = int(time.time() * 1000)

                if i == len(steps) - 1:
                    ext = f".{fmt}" if fmt else source_ext
                    output_path = os.path.join(
                        self.workspace.output_dir, f"processed_{stamp}_{base_name}{ext}"
                    )
                else:
                    ext = os.path.splitext(current)[1] or ".mp4"
                    if name in _FORCED_FORMATS:
                        ext = f".{fmt}"
                    output_path = os.path.join(
                        self.workspace.output_dir, f"temp_{stamp}_{i}{ext}"
                    )
                    temp_files.append(output_path)

                if name == "add_watermark":
                    if not params.get("watermarkPath"):
                        raise InvalidResourceParameters("watermarkPath is required")
                    params["watermarkPath"] = self.workspace.resolve_upload(
                        params["watermarkPath"]
                    )

                argv = OPERATIONS[name](current, output_path, params)
                self.ctx.logger.info(f"Step {i + 1}/{len(steps)}: {name}")
                result = runner.run([self.ctx.ffmpeg, *argv], timeout=timeout)
                commands.append(result.command)

                if current != input_path:
                    self.workspace.remove_quietly(current, self.ctx.logger)
                current = output_path

        except Exception:
            for path in temp_files:
                self.workspace.remove_quietly(path, self.ctx.logger)
            raise

        for path in temp_files:
            if path != current:
                self.workspace.remove_quietly(path, self.ctx.logger)

        output_file = os.path.basename(current)
        return ChainResult(
            output_file=output_file,
            path=self.workspace.public_path(current),
            commands=commands,
        )
