"""Typed filter-graph representation, serialized to FFmpeg text on demand."""

from typing import List, Optional, Union
from pydantic import BaseModel
from ..core.types import fmt_number

# Canonical output pads of an assembled graph
VIDEO_OUT = "outv"
AUDIO_OUT = "outa"

Param = Union[str, int, float]


def _render_param(value: Param) -> str:
    """Render one filter argument, quoting it when it contains separators."""
    text = value if isinstance(value, str) else fmt_number(value)
    if "," in text or "'" in text or ";" in text:
        return "'" + text.replace("'", "\\'") + "'"
    return text


class Filter(BaseModel):
    """A single filter operation, e.g. ``scale=1280:720``."""

    name: str
    params: List[Param] = []

    def render(self) -> str:
        """Serialize as ``name=arg1:arg2``."""
        if not self.params:
            return self.name
        return f"{self.name}={':'.join(_render_param(p) for p in self.params)}"


class FilterChain(BaseModel):
    """Linear chain of filters from input pads to one output pad."""

    inputs: List[str]
    filters: List[Filter]
    output: str

    def render(self) -> str:
        """Serialize as ``[in]f1,f2[out]``."""
        ins = "".join(f"[{p}]" for p in self.inputs)
        body = ",".join(f.render() for f in self.filters)
        return f"{ins}{body}[{self.output}]"


class FilterGraph(BaseModel):
    """Ordered collection of filter chains."""

    chains: List[FilterChain] = []

    def add(self, chain: FilterChain) -> FilterChain:
        """Append a chain, rejecting duplicate output pads."""
        if chain.output in self.output_pads():
            raise ValueError(f"Duplicate pad label in filter graph: [{chain.output}]")
        self.chains.append(chain)
        return chain

    def output_pads(self) -> List[str]:
        """Output pad labels in chain order."""
        return [c.output for c in self.chains]

    def find(self, output: str) -> Optional[FilterChain]:
        """Find the chain producing the given output pad."""
        for chain in self.chains:
            if chain.output == output:
                return chain
        return None

    def rename_output(self, old: str, new: str) -> None:
        """Rename a chain's output pad."""
        chain = self.find(old)
        if chain is None:
            raise KeyError(old)
        if new != old and new in self.output_pads():
            raise ValueError(f"Duplicate pad label in filter graph: [{new}]")
        chain.output = new

    def operators(self) -> List[str]:
        """Names of all filters in the graph, in order."""
        return [f.name for c in self.chains for f in c.filters]

    def serialize(self) -> str:
        """Serialize the graph as a ``-filter_complex`` expression."""
        return ";".join(c.render() for c in self.chains)

    def __bool__(self) -> bool:
        return bool(self.chains)
