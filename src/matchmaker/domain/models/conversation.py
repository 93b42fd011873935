"""Conversation domain models.

This module defines the Turn model and the append-only ConversationLog that
every session owns.

Core Concepts:
    - Role identification: USER vs ASSISTANT for prompt rendering
    - Input modality: text, voice (transcribed) or system-initiated
    - Windowing: stages only ever see the most recent N turns, and the window
      is a read-time view that never mutates the log

Rendering format (one labelled line per turn; further lines of a multi-line
message are indented by CONTINUATION_INDENT):

    Matchmaker: Hi! Tell me about your dream partner.
    User: Someone kind who loves hiking.
      And someone who reads.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Iterator, List, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

NO_CONVERSATION = "No conversation yet."
CONTINUATION_INDENT = "  "


class Role(str, Enum):
    """Author of a turn."""

    USER = "user"
    ASSISTANT = "assistant"


class Via(str, Enum):
    """How the turn entered the conversation."""

    TEXT = "text"
    VOICE = "voice"
    SYSTEM = "system"


ROLE_LABELS = {
    Role.ASSISTANT: "Matchmaker",
    Role.USER: "User",
}
_LABEL_ROLES = {label: role for role, label in ROLE_LABELS.items()}


def _render_turn(turn: "Turn") -> str:
    first, *rest = turn.content.split("\n")
    lines = [f"{ROLE_LABELS[turn.role]}: {first}"]
    lines.extend(CONTINUATION_INDENT + line for line in rest)
    return "\n".join(lines)


class Turn(BaseModel):
    """Single chat message. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    role: Role
    content: str
    via: Via = Via.TEXT
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ConversationLog:
    """Ordered, append-only record of a session's turns."""

    def __init__(self, turns: Optional[List[Turn]] = None):
        self._turns: List[Turn] = list(turns or [])

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(list(self._turns))

    def __bool__(self) -> bool:
        return bool(self._turns)

    def append(self, turn: Turn) -> None:
        self._turns.append(turn)

    def extended(self, turns: List[Turn]) -> "ConversationLog":
        """Return a new log with ``turns`` appended; this log is untouched."""
        return ConversationLog(self._turns + list(turns))

    def window(self, n: int) -> List[Turn]:
        """Return the last ``n`` turns in order (a copy)."""
        if n <= 0:
            return []
        return list(self._turns[-n:])

    def render(self, n: Optional[int] = None) -> str:
        """Render turns as ``"<Role>: <content>"`` lines.

        Args:
            n: Window size; None renders the full log.

        Returns:
            Newline-joined transcript, or NO_CONVERSATION for an empty log
        """
        turns = self._turns if n is None else self.window(n)
        if not turns:
            return NO_CONVERSATION
        return "\n".join(_render_turn(t) for t in turns)

    @staticmethod
    def parse(text: str) -> List[Tuple[Role, str]]:
        """Inverse of render(): recover (role, content) pairs in order.

        Indented lines continue the preceding turn; the indent is removed.

        Raises:
            ValueError: A line is neither labelled nor indented
        """
        if text == NO_CONVERSATION:
            return []

        parsed: List[Tuple[Role, str]] = []
        for line in text.split("\n"):
            if parsed and line.startswith(CONTINUATION_INDENT):
                role, content = parsed[-1]
                parsed[-1] = (role, f"{content}\n{line[len(CONTINUATION_INDENT):]}")
                continue
            label, sep, rest = line.partition(": ")
            if sep and label in _LABEL_ROLES:
                parsed.append((_LABEL_ROLES[label], rest))
            else:
                raise ValueError(f"Transcript line has no role label: {line!r}")
        return parsed
