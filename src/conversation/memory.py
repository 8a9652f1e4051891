"""In-process dialogue memory for a single conversation."""

from typing import Literal

from .schemas import DialogueTurn

ROLE_LABELS = {"user": "Human", "assistant": "Assistant"}


class SessionMemory:
    """Ordered dialogue of one conversation.

    Not shared between conversations and not persisted. Each engine owns
    exactly one instance.
    """

    def __init__(self) -> None:
        self._turns: list[DialogueTurn] = []

    def append(self, role: Literal["user", "assistant"], text: str) -> None:
        self._turns.append(DialogueTurn(role=role, text=text))

    def history(self) -> list[DialogueTurn]:
        """Return a copy of the turns in the order they occurred."""
        return list(self._turns)

    def clear(self) -> None:
        self._turns.clear()

    def format_history(self) -> str:
        """Render the dialogue as ``Human:``/``Assistant:`` lines for prompting."""
        return "\n".join(f"{ROLE_LABELS[t.role]}: {t.text}" for t in self._turns)

    def __len__(self) -> int:
        return len(self._turns)
