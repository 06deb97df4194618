"""Per-turn orchestration: classify, dispatch or fall back, compose, stream."""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List

from ..errors import ReplyGenerationError
from ..models import ConversationState, Intent, IntentKind, Message, Role, TurnPhase
from ..services.llm import GenerateReply, build_prompt
from ..settings import get_settings
from .classifier import classify
from .streaming import StepCallback, StreamingDelivery
from .suggestions import TICKET_SUGGESTIONS, suggestions_for
from .tone import apply_tone
from .tools import confirm_escalation, dispatch, is_affirmative

logger = logging.getLogger(__name__)

APOLOGY = "Sorry, I ran into a problem generating a response. Please try again."


@dataclass
class TurnOutcome:
    """What a single call to :meth:`DialogueController.submit` produced."""

    accepted: bool
    intent: Intent | None = None
    reply: str | None = None
    stream: asyncio.Task | None = None
    failed: bool = False
    suggestions: List[str] = field(default_factory=list)


class DialogueController:
    """Owns the transcript and the cross-turn state of one conversation."""

    def __init__(
        self,
        session_id: str = "default",
        generate_reply: GenerateReply | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
        system_prompt: str | None = None,
        stream_interval: float | None = None,
        stream_steps: int | None = None,
    ) -> None:
        settings = get_settings()
        self.state = ConversationState(session_id=session_id)
        self._generate_reply = generate_reply
        self._rng = rng or random.Random()
        self._clock = clock or datetime.now
        self._system_prompt = system_prompt or settings.system_prompt
        self.delivery = StreamingDelivery(
            self.state.messages,
            interval=settings.stream_interval_seconds if stream_interval is None else stream_interval,
            steps=stream_steps or settings.stream_steps,
        )

    @property
    def busy(self) -> bool:
        return self.state.phase is TurnPhase.AWAITING_MODEL

    @property
    def streaming(self) -> bool:
        return self.delivery.active

    async def submit(self, text: str, on_step: StepCallback | None = None) -> TurnOutcome:
        """Handle one user turn.

        Args:
            text: Raw user input.
            on_step: Called with the revealed content after each streaming step.

        Returns:
            TurnOutcome: ``accepted`` is False for blank input or while a turn is
                already awaiting the model.
        """
        trimmed = text.strip()
        if not trimmed or self.busy:
            return TurnOutcome(accepted=False, suggestions=list(self.state.suggestions))

        self.delivery.supersede()
        self.state.messages.append(Message(role=Role.USER, content=trimmed))
        self.state.phase = TurnPhase.AWAITING_MODEL
        logger.info("Turn start session_id=%s", self.state.session_id)

        try:
            if self.state.escalation_pending:
                self.state.escalation_pending = False
                if is_affirmative(trimmed):
                    return self._confirm_escalation(trimmed, on_step)
                logger.info("Escalation offer lapsed for session_id=%s", self.state.session_id)

            intent = classify(trimmed)
            self.state.last_intent = intent
            logger.info("Intent %s for session_id=%s", intent.kind.value, self.state.session_id)

            result = dispatch(intent, self.state, rng=self._rng, now=self._clock())
            if result is not None:
                reply = apply_tone(result.as_reply(), trimmed)
            else:
                try:
                    reply = apply_tone(await self._fallback(), trimmed)
                except Exception as e:
                    logger.exception("Model fallback failed: %s", e)
                    self.state.messages.append(Message(role=Role.MODEL, content=APOLOGY))
                    return TurnOutcome(
                        accepted=True,
                        intent=intent,
                        reply=APOLOGY,
                        failed=True,
                        suggestions=list(self.state.suggestions),
                    )

            self.state.suggestions = suggestions_for(intent)
            return TurnOutcome(
                accepted=True,
                intent=intent,
                reply=reply,
                stream=self.delivery.stream(reply, on_step),
                suggestions=list(self.state.suggestions),
            )
        finally:
            self.state.phase = TurnPhase.IDLE

    def _confirm_escalation(self, text: str, on_step: StepCallback | None) -> TurnOutcome:
        reply = apply_tone(confirm_escalation(self._rng), text)
        self.state.last_intent = Intent(kind=IntentKind.UNKNOWN)
        self.state.suggestions = list(TICKET_SUGGESTIONS)
        return TurnOutcome(
            accepted=True,
            intent=Intent(kind=IntentKind.ESCALATE),
            reply=reply,
            stream=self.delivery.stream(reply, on_step),
            suggestions=list(self.state.suggestions),
        )

    async def _fallback(self) -> str:
        if self._generate_reply is None:
            raise ReplyGenerationError("No language model is configured")
        prompt = build_prompt(self._system_prompt, self.state.messages)
        return await self._generate_reply(prompt)
