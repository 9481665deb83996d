"""ffcompose - Compose videos from images, clips and audio with FFmpeg and ImageMagick."""

from .__version__ import __version__
from .client import ResourceDownloader
from .media import (
    Resource,
    Composition,
    OutputOptions,
    MediaContext,
    ProcessingChain,
    ImageTool,
    Workspace,
)
from .service import ComposeService
from .core import (
    ResourceKind,
    ScaleMode,
    Position,
    Transition,
    AudioFade,
    FFComposeError,
)


__all__ = [
    "__version__",
    "ResourceDownloader",
    "Resource",
    "Composition",
    "OutputOptions",
    "MediaContext",
    "ProcessingChain",
    "ImageTool",
    "Workspace",
    "ComposeService",
    "ResourceKind",
    "ScaleMode",
    "Position",
    "Transition",
    "AudioFade",
    "FFComposeError",
]
