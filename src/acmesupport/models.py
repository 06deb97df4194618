from dataclasses import dataclass, field
from enum import Enum
from typing import List


class Role(str, Enum):
    USER = "user"
    MODEL = "model"


class IntentKind(str, Enum):
    ORDER_STATUS = "order_status"
    SHIPPING_ETA = "shipping_eta"
    RETURN_POLICY = "return_policy"
    REFUND_POLICY = "refund_policy"
    ACCOUNT_HELP = "account_help"
    ESCALATE = "escalate"
    UNKNOWN = "unknown"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class TurnPhase(str, Enum):
    IDLE = "idle"
    AWAITING_MODEL = "awaiting_model"


@dataclass
class Message:
    """A single transcript entry. Content is only mutated while streaming."""

    role: Role
    content: str = ""

    def to_dict(self) -> dict:
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class Intent:
    """Classified purpose of a user message with best-effort extracted fields."""

    kind: IntentKind = IntentKind.UNKNOWN
    order_id: str | None = None
    postal_code: str | None = None


@dataclass(frozen=True)
class ToolResult:
    """Deterministic answer body before tone adjustment."""

    title: str
    body: str

    def as_reply(self) -> str:
        return f"{self.title}:\n{self.body}"


@dataclass(frozen=True)
class HelpItem:
    title: str
    content: str


GREETING = "Hi! I’m your ACME support assistant. How can I help today?"

INITIAL_SUGGESTIONS: List[str] = [
    "Where is my order?",
    "What’s your return policy?",
    "Talk to a human",
]


@dataclass
class ConversationState:
    """Per-session conversation state (transcript, last intent, escalation flag)."""

    session_id: str
    messages: List[Message] = field(
        default_factory=lambda: [Message(role=Role.MODEL, content=GREETING)]
    )
    last_intent: Intent = field(default_factory=Intent)
    escalation_pending: bool = False
    phase: TurnPhase = TurnPhase.IDLE
    suggestions: List[str] = field(default_factory=lambda: list(INITIAL_SUGGESTIONS))
