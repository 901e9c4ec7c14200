"""Tool calls and the accumulator that rebuilds them from stream deltas."""

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

UNKNOWN_TOOL_NAME = "unknown"
EMPTY_ARGUMENTS = "{}"


@dataclass(frozen=True)
class ToolCall:
    """A complete tool call requested by the model.

    ``arguments`` is the raw JSON text as the model produced it; it is only
    parsed when the call is executed.
    """
    id: str
    name: str
    arguments: str = EMPTY_ARGUMENTS

    def to_dict(self) -> Dict[str, Any]:
        """OpenAI-compatible ``tool_calls`` entry."""
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass
class AccumulatedToolCall:
    index: int
    id: Optional[str] = None
    name: Optional[str] = None
    argument_parts: List[str] = field(default_factory=list)

    @property
    def arguments(self) -> str:
        return "".join(self.argument_parts)


def new_call_id() -> str:
    return f"call_{uuid.uuid4().hex}"


class ToolCallAccumulator:
    """Merges index-addressed tool-call fragments into whole calls.

    Providers stream a call as many deltas sharing an ``index``; the first
    one usually carries the id and name, the rest carry argument fragments.
    Fragments for different indices may interleave.
    """

    def __init__(self):
        # dict insertion order == order in which each index first appeared
        self._calls: Dict[int, AccumulatedToolCall] = {}

    def __len__(self) -> int:
        return len(self._calls)

    def add(
        self,
        index: int,
        call_id: Optional[str] = None,
        name: Optional[str] = None,
        arguments: Optional[str] = None,
    ) -> None:
        acc = self._calls.get(index)
        if acc is None:
            acc = AccumulatedToolCall(index=index)
            self._calls[index] = acc
        if call_id and acc.id is None:
            acc.id = call_id
        if name and acc.name is None:
            acc.name = name
        if arguments:
            acc.argument_parts.append(arguments)

    def finalize(self) -> List[ToolCall]:
        calls = []
        for acc in self._calls.values():
            calls.append(ToolCall(
                id=acc.id or new_call_id(),
                name=acc.name or UNKNOWN_TOOL_NAME,
                arguments=acc.arguments or EMPTY_ARGUMENTS,
            ))
        return calls

    def reset(self) -> None:
        self._calls.clear()
