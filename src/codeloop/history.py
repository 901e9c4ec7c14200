"""Chat messages and the per-session conversation history."""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .tool_calls import ToolCall

SYSTEM = "system"
USER = "user"
ASSISTANT = "assistant"
TOOL = "tool"


@dataclass(frozen=True)
class Message:
    """A chat message."""

    role: str  # "system", "user", "assistant", "tool"
    content: Optional[str] = None
    tool_calls: Tuple[ToolCall, ...] = ()
    tool_call_id: Optional[str] = None

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=USER, content=content)

    @classmethod
    def assistant(cls, content: Optional[str], tool_calls: Sequence[ToolCall] = ()) -> "Message":
        # An empty reply is sent without a content field at all.
        return cls(role=ASSISTANT, content=content or None, tool_calls=tuple(tool_calls))

    @classmethod
    def tool(cls, tool_call_id: str, content: str) -> "Message":
        return cls(role=TOOL, content=content, tool_call_id=tool_call_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to API-compatible dictionary."""
        result: Dict[str, Any] = {"role": self.role}

        if self.content is not None:
            result["content"] = self.content

        if self.tool_calls:
            result["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]

        if self.tool_call_id:
            result["tool_call_id"] = self.tool_call_id

        return result


class ConversationHistory:
    """Append-only, chronologically ordered list of messages.

    Owned by one AgentLoop; nothing else mutates it.
    """

    def __init__(self, messages: Iterable[Message] = ()):
        self._messages: List[Message] = list(messages)

    def append(self, message: Message) -> None:
        self._messages.append(message)

    def extend(self, messages: Iterable[Message]) -> None:
        self._messages.extend(messages)

    def clear(self) -> None:
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    def __getitem__(self, index):
        return self._messages[index]

    @property
    def messages(self) -> Tuple[Message, ...]:
        return tuple(self._messages)

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [m.to_dict() for m in self._messages]
