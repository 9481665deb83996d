"""Graph assembler: merges per-resource chains into one filter graph."""

from typing import List, Optional
from pydantic import BaseModel
from .graph import Filter, FilterChain, FilterGraph, VIDEO_OUT, AUDIO_OUT
from .filters import Canvas, build_visual_chain, build_audio_chain
from .resources import ResourcePartition
from ..core.errors import NoVisualContent, EmptyResourceList

# amix parameters: longest input decides length, short dropout transition
AMIX_DURATION = "longest"
AMIX_DROPOUT_TRANSITION = 2


class AssembledGraph(BaseModel):
    """Result of assembling a partition into one filter graph."""

    graph: FilterGraph
    video_pad: str
    audio_pad: Optional[str] = None  # "[outa]" when any audio is mixed
    video_inputs: List[int] = []
    audio_inputs: List[int] = []

    def filter_complex(self) -> str:
        """Serialized ``-filter_complex`` expression."""
        return self.graph.serialize()


def assemble(partition: ResourcePartition, canvas: Canvas) -> AssembledGraph:
    """
    Build the complete filter graph for a partition.

    Inputs are enumerated images first, then videos, then audios; every pad
    label derives from that input index.

    Args:
        partition: Classified resources
        canvas: Target canvas

    Returns:
        Assembled graph with its final video and audio pads

    Raises:
        EmptyResourceList: If the partition holds no resources
        NoVisualContent: If there is no image or video resource
    """
    ordered = partition.ordered()
    if not ordered:
        raise EmptyResourceList()
    if not partition.visuals:
        raise NoVisualContent()

    canvas.check()

    graph = FilterGraph()
    video_inputs: List[int] = []
    audio_labels: List[str] = []
    audio_inputs: List[int] = []

    for index, resource in enumerate(ordered):
        if resource.is_visual:
            graph.add(build_visual_chain(resource, index, canvas))
            video_inputs.append(index)
        else:
            chain = build_audio_chain(resource, index)
            if chain is not None:
                graph.add(chain)
                audio_labels.append(f"[{chain.output}]")
            else:
                audio_labels.append(f"{index}:a")
            audio_inputs.append(index)

    # Visual timeline
    if len(video_inputs) == 1:
        # No identity concat for a single clip; its output becomes the final pad
        graph.rename_output(f"v{video_inputs[0]}", VIDEO_OUT)
    else:
        graph.add(
            FilterChain(
                inputs=[f"v{i}" for i in video_inputs],
                filters=[
                    Filter(name="concat", params=[f"n={len(video_inputs)}", "v=1", "a=0"])
                ],
                output=VIDEO_OUT,
            )
        )

    # Audio mix: every audio pad, even a single one, goes through one amix
    audio_pad: Optional[str] = None
    if audio_labels:
        graph.add(
            FilterChain(
                inputs=[label.strip("[]") for label in audio_labels],
                filters=[
                    Filter(
                        name="amix",
                        params=[
                            f"inputs={len(audio_labels)}",
                            f"duration={AMIX_DURATION}",
                            f"dropout_transition={AMIX_DROPOUT_TRANSITION}",
                        ],
                    )
                ],
                output=AUDIO_OUT,
            )
        )
        audio_pad = f"[{AUDIO_OUT}]"

    return AssembledGraph(
        graph=graph,
        video_pad=f"[{VIDEO_OUT}]",
        audio_pad=audio_pad,
        video_inputs=video_inputs,
        audio_inputs=audio_inputs,
    )
