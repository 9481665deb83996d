"""Core types and enums for the ffcompose SDK."""

import math
from enum import Enum
from typing import Optional, Callable, Union

# Progress callback type: receives completion percentage (0-100)
ProgressCb = Optional[Callable[[float], None]]


class ResourceKind(str, Enum):
    """Kind of an input resource."""

    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


class ScaleMode(str, Enum):
    """Scale modes for fitting a visual resource onto the canvas."""

    FIT = "fit"  # Keep aspect ratio, shrink inside canvas (may leave bars)
    FILL = "fill"  # Keep aspect ratio, grow to cover canvas
    CROP = "crop"  # Same as FILL, then hard crop to canvas size

    @classmethod
    def parse(cls, value: Optional[str]) -> "ScaleMode":
        """Parse a scale mode, falling back to FIT."""
        try:
            return cls(value)
        except ValueError:
            return cls.FIT


class Position(str, Enum):
    """Anchor positions used when padding to the canvas."""

    CENTER = "center"
    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Position":
        """Parse a position, falling back to CENTER."""
        try:
            return cls(value)
        except ValueError:
            return cls.CENTER


class Transition(str, Enum):
    """Transition effects applied at the start/end of a visual resource."""

    NONE = "none"
    FADE = "fade"
    FADE_IN = "fadein"
    FADE_OUT = "fadeout"
    SLIDE_LEFT = "slideLeft"
    SLIDE_RIGHT = "slideRight"
    SLIDE_UP = "slideUp"
    SLIDE_DOWN = "slideDown"
    ZOOM_IN = "zoomIn"
    ZOOM_OUT = "zoomOut"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Transition":
        """Parse a transition name; unknown names mean no transition."""
        try:
            return cls(value)
        except ValueError:
            return cls.NONE


class AudioFade(str, Enum):
    """Fade modes for audio resources."""

    NONE = "none"
    FADE_IN = "fadein"
    FADE_OUT = "fadeout"
    BOTH = "both"

    @classmethod
    def parse(cls, value: Optional[str]) -> "AudioFade":
        """Parse an audio fade mode; unknown modes mean no fade."""
        try:
            return cls(value)
        except ValueError:
            return cls.NONE


class Directory(str, Enum):
    """Workspace directories exposed for listing and deletion."""

    UPLOADS = "uploads"
    OUTPUT = "output"


def fmt_number(value: Union[int, float]) -> str:
    """
    Render a number the way it should appear inside FFmpeg arguments.

    Integral floats lose their trailing ``.0`` (``3.0`` -> ``"3"``), other
    floats keep full precision (``0.5`` -> ``"0.5"``).
    """
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, int):
        return str(value)
    if math.isfinite(value) and float(value).is_integer():
        return str(int(value))
    return repr(float(value))
