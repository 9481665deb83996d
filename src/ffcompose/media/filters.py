"""Per-resource filter chains: scaling, placement, effects and transitions."""

import math
from typing import List, Optional, Tuple
from pydantic import BaseModel
from .graph import Filter, FilterChain
from .resources import Resource, DEFAULT_VIDEO_DURATION, DEFAULT_AUDIO_FADE_DURATION
from ..core.types import (
    ResourceKind,
    ScaleMode,
    Position,
    Transition,
    AudioFade,
    fmt_number,
)
from ..core.errors import InvalidResourceParameters

# Zoom transitions interpolate the scale factor from start to 1.0
ZOOM_START = {Transition.ZOOM_IN: 0.5, Transition.ZOOM_OUT: 1.5}

PAD_OFFSETS = {
    Position.CENTER: ("(ow-iw)/2", "(oh-ih)/2"),
    Position.TOP_LEFT: ("0", "0"),
    Position.TOP_RIGHT: ("ow-iw", "0"),
    Position.BOTTOM_LEFT: ("0", "oh-ih"),
    Position.BOTTOM_RIGHT: ("ow-iw", "oh-ih"),
}


class Canvas(BaseModel):
    """Target frame geometry shared by every visual chain."""

    width: int
    height: int
    fps: float
    color: str = "0x000000"  # FFmpeg color syntax

    def check(self) -> None:
        """Validate canvas geometry."""
        if self.width <= 0 or self.height <= 0:
            raise InvalidResourceParameters(
                f"Canvas size must be positive, got {self.width}x{self.height}",
                {"width": self.width, "height": self.height},
            )
        if not math.isfinite(self.fps) or self.fps <= 0:
            raise InvalidResourceParameters(
                f"Frame rate must be a positive number, got {self.fps}",
                {"fps": self.fps},
            )


def video_pad(index: int) -> str:
    """Output pad label for the visual chain of input ``index``."""
    return f"v{index}"


def audio_pad(index: int) -> str:
    """Output pad label for the audio chain of input ``index``."""
    return f"a{index}"


def _pad_to_canvas(canvas: Canvas, position: Position = Position.CENTER) -> Filter:
    x, y = PAD_OFFSETS[position]
    return Filter(
        name="pad", params=[canvas.width, canvas.height, x, y, f"color={canvas.color}"]
    )


def scale_and_position(resource: Resource, canvas: Canvas) -> List[Filter]:
    """
    Fit a visual resource onto the canvas.

    Scales according to ``scale_mode``, pads to the exact canvas size at
    ``position``, then applies rotation and opacity when requested.
    """
    w, h = canvas.width, canvas.height
    mode = ScaleMode.parse(resource.scale_mode)

    if mode == ScaleMode.FIT:
        filters = [Filter(name="scale", params=[w, h, "force_original_aspect_ratio=decrease"])]
    else:
        filters = [Filter(name="scale", params=[w, h, "force_original_aspect_ratio=increase"])]
        if mode == ScaleMode.CROP:
            filters.append(Filter(name="crop", params=[w, h]))

    filters.append(_pad_to_canvas(canvas, Position.parse(resource.position)))

    if resource.rotation != 0:
        radians = resource.rotation * math.pi / 180
        filters.append(
            Filter(
                name="rotate",
                params=[radians, f"fillcolor={canvas.color}", f"ow={w}", f"oh={h}"],
            )
        )

    if resource.opacity < 100:
        alpha = resource.opacity / 100
        filters.append(Filter(name="format", params=["yuva420p"]))
        filters.append(
            Filter(name="colorchannelmixer", params=[f"aa={fmt_number(alpha)}"])
        )

    return filters


def _slide_window(
    transition: Transition, canvas: Canvas, progress: str
) -> Tuple[Filter, Filter]:
    """Double-size pad plus a moving crop window that ends on the content."""
    w, h = canvas.width, canvas.height
    color = f"color={canvas.color}"

    if transition == Transition.SLIDE_LEFT:
        pad = Filter(name="pad", params=[2 * w, h, w, 0, color])
        crop = Filter(name="crop", params=[w, h, f"{w}*{progress}", 0])
    elif transition == Transition.SLIDE_RIGHT:
        pad = Filter(name="pad", params=[2 * w, h, 0, 0, color])
        crop = Filter(name="crop", params=[w, h, f"{w}*(1-{progress})", 0])
    elif transition == Transition.SLIDE_UP:
        pad = Filter(name="pad", params=[w, 2 * h, 0, h, color])
        crop = Filter(name="crop", params=[w, h, 0, f"{h}*{progress}"])
    else:
        pad = Filter(name="pad", params=[w, 2 * h, 0, 0, color])
        crop = Filter(name="crop", params=[w, h, 0, f"{h}*(1-{progress})"])

    return pad, crop


def transition_filters(
    resource: Resource, total_duration: float, canvas: Canvas
) -> List[Filter]:
    """
    Build transition filters for a visual resource.

    Args:
        resource: Visual resource carrying ``transition``/``transition_duration``
        total_duration: Length of the resource in the output, in seconds
        canvas: Target canvas

    Returns:
        Filters to append after the base chain (empty for ``none``)
    """
    transition = Transition.parse(resource.transition)
    d = resource.transition_duration
    if transition == Transition.NONE or d <= 0:
        return []

    filters: List[Filter] = []
    d_text = fmt_number(d)

    if transition in (Transition.FADE, Transition.FADE_IN):
        filters.append(Filter(name="fade", params=["t=in", "st=0", f"d={d_text}"]))
    if transition in (Transition.FADE, Transition.FADE_OUT):
        start = max(0, total_duration - d)
        filters.append(
            Filter(name="fade", params=["t=out", f"st={fmt_number(start)}", f"d={d_text}"])
        )

    progress = f"min(1,t/{d_text})"

    if transition in (
        Transition.SLIDE_LEFT,
        Transition.SLIDE_RIGHT,
        Transition.SLIDE_UP,
        Transition.SLIDE_DOWN,
    ):
        filters.extend(_slide_window(transition, canvas, progress))
        filters.append(_pad_to_canvas(canvas))

    if transition in ZOOM_START:
        filters.extend(_zoom(ZOOM_START[transition], canvas, d_text))

    return filters


def _zoom(start: float, canvas: Canvas, duration_text: str) -> List[Filter]:
    """
    Zoom from ``start`` to 1.0 at a constant canvas-sized output.

    ``zoompan`` cuts a centered ``iw/zoom`` x ``ih/zoom`` window and scales it
    to the canvas on every frame. Factors below 1 first center the frame on
    an enlarged background, so zoom 1 shows it at ``start`` size.
    """
    # Frame counter based, zoompan has no per-frame ``t``
    fps = fmt_number(canvas.fps)
    factor = f"{fmt_number(start)}+(1-{fmt_number(start)})*min(1,on/{fps}/{duration_text})"

    filters: List[Filter] = []
    zoom = factor
    if start < 1:
        grow = round(1 / start)
        filters.append(
            Filter(
                name="pad",
                params=[
                    canvas.width * grow,
                    canvas.height * grow,
                    "(ow-iw)/2",
                    "(oh-ih)/2",
                    f"color={canvas.color}",
                ],
            )
        )
        zoom = f"{grow}*({factor})"

    filters.append(
        Filter(
            name="zoompan",
            params=[
                f"z={zoom}",
                "x=iw/2-(iw/zoom/2)",
                "y=ih/2-(ih/zoom/2)",
                "d=1",
                f"s={canvas.width}x{canvas.height}",
                f"fps={fps}",
            ],
        )
    )
    filters.append(Filter(name="setsar", params=[1]))
    return filters


def build_visual_chain(resource: Resource, index: int, canvas: Canvas) -> FilterChain:
    """
    Build the filter chain for one image or video input.

    Images are looped, normalized and trimmed to their declared duration;
    videos are normalized only (seek and length are applied on the input side).
    """
    filters: List[Filter] = []

    if resource.kind == ResourceKind.IMAGE:
        if not (resource.duration and resource.duration > 0):
            raise InvalidResourceParameters(
                f"Image resource requires a positive duration: {resource.path}",
                {"path": resource.path, "field": "duration"},
            )
        duration = resource.duration
        filters.append(Filter(name="loop", params=[-1, "size=1", "start=0"]))
        filters.extend(scale_and_position(resource, canvas))
        filters.append(Filter(name="setsar", params=[1]))
        filters.append(Filter(name="fps", params=[canvas.fps, "round=up"]))
        filters.append(Filter(name="trim", params=[f"duration={fmt_number(duration)}"]))
    elif resource.kind == ResourceKind.VIDEO:
        duration = resource.duration or DEFAULT_VIDEO_DURATION
        filters.extend(scale_and_position(resource, canvas))
        filters.append(Filter(name="setsar", params=[1]))
        filters.append(Filter(name="fps", params=[canvas.fps]))
    else:
        raise ValueError(f"Not a visual resource: {resource.kind}")

    filters.extend(transition_filters(resource, duration, canvas))

    return FilterChain(inputs=[f"{index}:v"], filters=filters, output=video_pad(index))


def build_audio_chain(resource: Resource, index: int) -> Optional[FilterChain]:
    """
    Build the volume/fade chain for one audio input.

    Returns:
        The chain, or None when no filter applies and the raw stream can be
        used directly
    """
    filters: List[Filter] = []

    if resource.volume != 100:
        filters.append(Filter(name="volume", params=[resource.volume / 100]))

    fade = AudioFade.parse(resource.fade)
    fd = resource.fade_duration
    if fade != AudioFade.NONE and fd > 0:
        if fade in (AudioFade.FADE_IN, AudioFade.BOTH):
            filters.append(
                Filter(name="afade", params=["t=in", "st=0", f"d={fmt_number(fd)}"])
            )
        if fade in (AudioFade.FADE_OUT, AudioFade.BOTH):
            length = resource.duration or DEFAULT_AUDIO_FADE_DURATION
            start = max(0, length - fd)
            filters.append(
                Filter(
                    name="afade",
                    params=["t=out", f"st={fmt_number(start)}", f"d={fmt_number(fd)}"],
                )
            )

    if not filters:
        return None

    return FilterChain(inputs=[f"{index}:a"], filters=filters, output=audio_pad(index))
