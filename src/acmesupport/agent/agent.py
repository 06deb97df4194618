import asyncio
import logging
from typing import AsyncIterator, Callable, Dict

from ..models import ConversationState
from ..services.llm import GenerateReply, get_reply_generator
from .dialogue import DialogueController, TurnOutcome

logger = logging.getLogger(__name__)


class SessionBusyError(RuntimeError):
    """A turn was submitted while the session is still awaiting a reply."""


class SupportAgentService:
    """Keeps one dialogue controller per session and exposes replies as token streams."""

    def __init__(
        self,
        controller_factory: Callable[[str], DialogueController] | None = None,
    ) -> None:
        self._controller_factory = controller_factory or self._default_controller
        self._controllers: Dict[str, DialogueController] = {}
        self._outcomes: Dict[str, TurnOutcome] = {}
        self._generate_reply: GenerateReply | None = None

    def _default_controller(self, session_id: str) -> DialogueController:
        if self._generate_reply is None:
            self._generate_reply = get_reply_generator()
        return DialogueController(session_id=session_id, generate_reply=self._generate_reply)

    def get_controller(self, session_id: str) -> DialogueController:
        """Return or create the DialogueController for the given session_id."""
        if session_id not in self._controllers:
            logger.info("Creating session: %s", session_id)
            self._controllers[session_id] = self._controller_factory(session_id)
        return self._controllers[session_id]

    def find_controller(self, session_id: str) -> DialogueController | None:
        """Return the existing controller for session_id without creating one."""
        return self._controllers.get(session_id)

    def get_session(self, session_id: str) -> ConversationState:
        """Return the ConversationState for the given session_id.

        Args:
            session_id: Unique identifier for the session (str).

        Returns:
            ConversationState: Transcript, last intent, escalation flag and suggestions.
        """
        return self.get_controller(session_id).state

    def last_outcome(self, session_id: str) -> TurnOutcome | None:
        return self._outcomes.get(session_id)

    async def run_turn_stream(self, session_id: str, user_message: str) -> AsyncIterator[str]:
        """Run one turn and yield the reply as it is revealed.

        Args:
            session_id: Unique session identifier (str).
            user_message: User query text (str).

        Yields:
            str: Newly revealed text for each streaming step, or the apology text
                when the model fallback failed.

        Raises:
            SessionBusyError: The session is still awaiting a previous reply.
        """
        controller = self.get_controller(session_id)
        queue: asyncio.Queue[str | None] = asyncio.Queue()

        outcome = await controller.submit(user_message, on_step=queue.put_nowait)
        if not outcome.accepted:
            if controller.busy:
                raise SessionBusyError(f"Session {session_id} is awaiting a reply")
            return
        self._outcomes[session_id] = outcome

        if outcome.stream is None:
            if outcome.reply:
                yield outcome.reply
            return

        outcome.stream.add_done_callback(lambda _task: queue.put_nowait(None))
        sent = ""
        while True:
            snapshot = await queue.get()
            if snapshot is None:
                break
            delta = snapshot[len(sent):]
            sent = snapshot
            if delta:
                yield delta


_SERVICE = SupportAgentService()


def get_controller(session_id: str) -> DialogueController:
    return _SERVICE.get_controller(session_id)


def find_controller(session_id: str) -> DialogueController | None:
    return _SERVICE.find_controller(session_id)


def get_session(session_id: str) -> ConversationState:
    return _SERVICE.get_session(session_id)


def last_outcome(session_id: str) -> TurnOutcome | None:
    return _SERVICE.last_outcome(session_id)


async def run_turn_stream(session_id: str, user_message: str) -> AsyncIterator[str]:
    async for token in _SERVICE.run_turn_stream(session_id, user_message):
        yield token


__all__ = [
    "SessionBusyError",
    "SupportAgentService",
    "find_controller",
    "get_controller",
    "get_session",
    "last_outcome",
    "run_turn_stream",
]
