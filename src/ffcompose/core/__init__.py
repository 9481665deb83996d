"""Core module for ffcompose."""

from .types import (
    ProgressCb,
    ResourceKind,
    ScaleMode,
    Position,
    Transition,
    AudioFade,
    Directory,
    fmt_number,
)
from .errors import (
    FFComposeError,
    ResourceNotFound,
    InvalidResourceParameters,
    EmptyResourceList,
    NoVisualContent,
    DownloadFailure,
    EncoderLaunchFailure,
    EncoderProcessFailure,
    EncoderTimeout,
    ImageToolFailure,
    WorkspaceError,
)

__all__ = [
    "ProgressCb",
    "ResourceKind",
    "ScaleMode",
    "Position",
    "Transition",
    "AudioFade",
    "Directory",
    "fmt_number",
    "FFComposeError",
    "ResourceNotFound",
    "InvalidResourceParameters",
    "EmptyResourceList",
    "NoVisualContent",
    "DownloadFailure",
    "EncoderLaunchFailure",
    "EncoderProcessFailure",
    "EncoderTimeout",
    "ImageToolFailure",
    "WorkspaceError",
]
