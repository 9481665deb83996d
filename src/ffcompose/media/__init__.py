"""Media module for composition, processing and image operations."""

from .context import MediaContext, ToolStatus, resolve_ffmpeg_path
from .resources import Resource, ResourcePartition, classify, validate_resource
from .graph import Filter, FilterChain, FilterGraph
from .filters import Canvas, build_visual_chain, build_audio_chain
from .assembler import AssembledGraph, assemble
from .encoders import OutputOptions
from .invocation import InvocationBuilder, InvocationPlan
from .runner import ProcessRunner, RunResult
from .composition import Composition, ComposeResult
from .operations import Operation, ProcessingChain, ChainResult
from .imagemagick import ImageTool
from .workspace import Workspace, FileInfo, FileListing, ClearResult, format_file_size

__all__ = [
    "MediaContext",
    "ToolStatus",
    "resolve_ffmpeg_path",
    "Resource",
    "ResourcePartition",
    "classify",
    "validate_resource",
    "Filter",
    "FilterChain",
    "FilterGraph",
    "Canvas",
    "build_visual_chain",
    "build_audio_chain",
    "AssembledGraph",
    "assemble",
    "OutputOptions",
    "InvocationBuilder",
    "InvocationPlan",
    "ProcessRunner",
    "RunResult",
    "Composition",
    "ComposeResult",
    "Operation",
    "ProcessingChain",
    "ChainResult",
    "ImageTool",
    "Workspace",
    "FileInfo",
    "FileListing",
    "ClearResult",
    "format_file_size",
]
