"""In-memory conversation log."""

import logging
from collections.abc import Callable, Iterable, Sequence

from screenvision.domain.entities.turn import ConversationTurn, Role

logger = logging.getLogger(__name__)

# Invoked with the full history after every append or clear
HistoryListener = Callable[[tuple[ConversationTurn, ...]], None]


def format_history(turns: Iterable[ConversationTurn]) -> str:
    """Format turns as "<Role>: <content>" lines, oldest first.

    Args:
        turns: Turns in chronological order.

    Returns:
        Newline-joined lines, or "" when there are no turns.
    """
    return "\n".join(turn.format_for_prompt() for turn in turns)


class ConversationStore:
    """Ordered, append-only conversation log plus a last-analysis slot.

    Owned by a single orchestrator; not safe for concurrent mutation.
    """

    def __init__(self) -> None:
        self._turns: list[ConversationTurn] = []
        self._last_analysis = ""
        self._listeners: list[HistoryListener] = []

    @property
    def history(self) -> tuple[ConversationTurn, ...]:
        """Snapshot of all turns in insertion order."""
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def append(self, turn: ConversationTurn) -> None:
        """Append a turn and notify listeners."""
        self._turns.append(turn)
        self._notify()

    def recent_turns(
        self,
        n: int,
        exclude_roles: Sequence[Role] = (Role.SYSTEM,),
    ) -> list[ConversationTurn]:
        """Return the last n turns whose role is not excluded, oldest first."""
        if n <= 0:
            return []
        qualifying = [turn for turn in self._turns if turn.role not in exclude_roles]
        return qualifying[-n:]

    def recent_history_text(
        self,
        n: int,
        exclude_roles: Sequence[Role] = (Role.SYSTEM,),
    ) -> str:
        """Format the last n qualifying turns for a prompt.

        Args:
            n: Maximum number of turns.
            exclude_roles: Roles to skip. System notices by default.

        Returns:
            "User: ..." / "Assistant: ..." lines joined by newlines, or ""
            when no turn qualifies.
        """
        return format_history(self.recent_turns(n, exclude_roles))

    def set_last_analysis(self, text: str) -> None:
        self._last_analysis = text

    def get_last_analysis(self) -> str:
        return self._last_analysis

    def clear(self) -> None:
        """Drop all turns and the last analysis, then notify listeners."""
        self._turns = []
        self._last_analysis = ""
        self._notify()

    def add_listener(self, listener: HistoryListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: HistoryListener) -> None:
        """Unregister a listener. Unknown listeners are ignored."""
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _notify(self) -> None:
        snapshot = self.history
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception(
                    "History listener %s failed",
                    getattr(listener, "__name__", repr(listener)),
                )
