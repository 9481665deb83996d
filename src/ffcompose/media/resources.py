"""Resource descriptors, parameter validation and kind classification."""

import math
import mimetypes
import os
from typing import List, Optional, Iterable, Any
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from ..core.types import ResourceKind
from ..core.errors import InvalidResourceParameters, ResourceNotFound

# Fallback durations used when a resource does not declare one
DEFAULT_VIDEO_DURATION = 5.0
DEFAULT_AUDIO_FADE_DURATION = 10.0


class Resource(BaseModel):
    """One entry of the ordered input list of a composition."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    kind: ResourceKind = Field(alias="type")
    path: str
    duration: Optional[float] = None
    start_time: Optional[float] = None

    # Visual attributes (images and videos)
    transition: str = "none"
    transition_duration: float = 0.5
    position: str = "center"
    scale_mode: str = "fit"
    rotation: float = 0.0  # Degrees
    opacity: float = 100.0  # Percent

    # Audio attributes
    fade: str = "none"
    fade_duration: float = 1.0
    volume: float = 100.0  # Percent

    @property
    def is_visual(self) -> bool:
        """Whether this resource contributes video frames."""
        return self.kind in (ResourceKind.IMAGE, ResourceKind.VIDEO)

    @property
    def timeline_duration(self) -> float:
        """Duration this resource occupies in the output (used for progress)."""
        if self.kind == ResourceKind.IMAGE:
            return self.duration or 0.0
        return self.duration or DEFAULT_VIDEO_DURATION


class ResourcePartition(BaseModel):
    """Resources split by kind, each list in original relative order."""

    images: List[Resource] = []
    videos: List[Resource] = []
    audios: List[Resource] = []

    @property
    def visuals(self) -> List[Resource]:
        """Visual resources in input order (images first, then videos)."""
        return self.images + self.videos

    def ordered(self) -> List[Resource]:
        """All resources in input order; list position is the input index."""
        return self.images + self.videos + self.audios

    @property
    def total_duration(self) -> float:
        """Sum of per-resource durations of the visual timeline."""
        return sum(r.timeline_duration for r in self.visuals)


def guess_kind(path: str) -> Optional[ResourceKind]:
    """Guess a resource kind from a file name using its MIME type."""
    content_type, _ = mimetypes.guess_type(path)
    if not content_type:
        return None
    major = content_type.split("/", 1)[0]
    try:
        return ResourceKind(major)
    except ValueError:
        return None


def _check_number(
    resource: Resource,
    field: str,
    value: Any,
    minimum: Optional[float] = None,
    maximum: Optional[float] = None,
) -> None:
    if value is None:
        return
    if not math.isfinite(value):
        raise InvalidResourceParameters(
            f"{field} must be a finite number for {resource.path}",
            {"path": resource.path, "field": field, "value": str(value)},
        )
    if minimum is not None and value < minimum:
        raise InvalidResourceParameters(
            f"{field} must be >= {minimum} for {resource.path}, got {value}",
            {"path": resource.path, "field": field, "value": value},
        )
    if maximum is not None and value > maximum:
        raise InvalidResourceParameters(
            f"{field} must be <= {maximum} for {resource.path}, got {value}",
            {"path": resource.path, "field": field, "value": value},
        )


def validate_resource(resource: Resource) -> None:
    """
    Reject malformed numeric parameters before they reach a filter graph.

    Raises:
        InvalidResourceParameters: If a value is non-finite or out of range,
            or an image has no positive duration
    """
    _check_number(resource, "duration", resource.duration, minimum=0)
    _check_number(resource, "start_time", resource.start_time, minimum=0)
    _check_number(
        resource, "transition_duration", resource.transition_duration, minimum=0
    )
    _check_number(resource, "rotation", resource.rotation)
    _check_number(resource, "opacity", resource.opacity, minimum=0, maximum=100)
    _check_number(resource, "fade_duration", resource.fade_duration, minimum=0)
    _check_number(resource, "volume", resource.volume, minimum=0)

    if resource.kind == ResourceKind.IMAGE and not (
        resource.duration and resource.duration > 0
    ):
        raise InvalidResourceParameters(
            f"Image resource requires a positive duration: {resource.path}",
            {"path": resource.path, "field": "duration"},
        )


def classify(resources: Iterable[Resource], check_files: bool = True) -> ResourcePartition:
    """
    Validate resources and split them into images, videos and audios.

    Args:
        resources: Resources in request order
        check_files: Whether to verify every path exists on disk

    Returns:
        Partition preserving the relative order within each kind

    Raises:
        ResourceNotFound: If a path does not exist
        InvalidResourceParameters: If a resource has malformed parameters
    """
    partition = ResourcePartition()

    for resource in resources:
        if check_files and not os.path.exists(resource.path):
            raise ResourceNotFound(resource.path)

        validate_resource(resource)

        if resource.kind == ResourceKind.IMAGE:
            partition.images.append(resource)
        elif resource.kind == ResourceKind.VIDEO:
            partition.videos.append(resource)
        else:
            partition.audios.append(resource)

    return partition
