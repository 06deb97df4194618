import logging
import random
import re
import string
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Any, Callable, Dict, List

from ..models import ConversationState, Intent, IntentKind, ToolResult

logger = logging.getLogger(__name__)

ORDER_STATUSES: List[str] = [
    "Processing",
    "Packed",
    "Shipped",
    "Out for delivery",
    "Delivered",
]

AFFIRMATIVE = re.compile(r"^(yes|yep|yeah|confirm|please)\b", re.IGNORECASE)

TICKET_ALPHABET = string.ascii_uppercase + string.digits
TICKET_LENGTH = 6

_DEFAULT_RNG = random.Random()


def order_status(order_id: str | None = None, rng: random.Random | None = None) -> ToolResult:
    """Report a (mocked) status for an order, or ask for the order id."""
    if not order_id:
        return ToolResult(
            title="Order status",
            body="I can check that—please share your order ID (e.g., ORD-12345).",
        )
    status = (rng or _DEFAULT_RNG).choice(ORDER_STATUSES)
    return ToolResult(
        title="Order status",
        body=(
            f"Order {order_id} is currently: {status}. "
            "If this seems wrong, I can escalate to a human."
        ),
    )


def shipping_eta(
    order_id: str | None = None,
    postal_code: str | None = None,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> ToolResult:
    """Estimate delivery 2-5 days out, or ask for the missing details."""
    if not order_id or not postal_code:
        return ToolResult(
            title="Shipping ETA",
            body="Share your order ID and destination ZIP to estimate delivery.",
        )
    days = (rng or _DEFAULT_RNG).randint(2, 5)
    eta = (now or datetime.now()) + timedelta(days=days)
    return ToolResult(
        title="Shipping ETA",
        body=f"Estimated delivery for {order_id} to {postal_code}: {eta.strftime('%a %b %d %Y')}.",
    )


def return_policy() -> ToolResult:
    return ToolResult(
        title="Return policy",
        body=(
            "You can return most items within 30 days in original condition. "
            "Start in My Orders > Return. Prepaid label provided in eligible regions."
        ),
    )


def refund_policy() -> ToolResult:
    return ToolResult(
        title="Refund policy",
        body=(
            "Refunds are issued to the original payment method within 5–7 business "
            "days after we receive your return."
        ),
    )


def account_help() -> ToolResult:
    return ToolResult(
        title="Account help",
        body=(
            "For password resets, use Forgot Password on the sign-in page. "
            "For email or profile changes, go to Account Settings."
        ),
    )


def escalation_offer() -> ToolResult:
    return ToolResult(
        title="Escalation",
        body=(
            "I can connect you with a human agent. Please confirm: type 'yes' to "
            "proceed or ask anything else to continue with me."
        ),
    )


def is_affirmative(text: str) -> bool:
    """True if ``text`` starts with an explicit confirmation token."""
    return AFFIRMATIVE.match(text.strip()) is not None


def new_ticket_id(rng: random.Random | None = None) -> str:
    return "".join((rng or _DEFAULT_RNG).choices(TICKET_ALPHABET, k=TICKET_LENGTH))


def confirm_escalation(rng: random.Random | None = None) -> str:
    """Open a (mocked) support ticket and return the confirmation reply."""
    ticket_id = new_ticket_id(rng)
    logger.info("Created support ticket #%s", ticket_id)
    return (
        "Okay, connecting you to a human agent. "
        f"I created support ticket #{ticket_id}. An agent will reach out by email shortly."
    )


@lru_cache(maxsize=1)
def _get_cached_function_map() -> Dict[IntentKind, Callable[..., ToolResult]]:
    """Internal implementation for get_tool_function_map (cached)."""
    return {
        IntentKind.ORDER_STATUS: order_status,
        IntentKind.SHIPPING_ETA: shipping_eta,
        IntentKind.RETURN_POLICY: return_policy,
        IntentKind.REFUND_POLICY: refund_policy,
        IntentKind.ACCOUNT_HELP: account_help,
        IntentKind.ESCALATE: escalation_offer,
    }


def get_tool_function_map() -> Dict[IntentKind, Callable[..., ToolResult]]:
    """Return the map of intent kinds to deterministic tool functions.

    Returns:
        Dict[IntentKind, Callable[..., ToolResult]]: One tool per intent; ``unknown`` has none.
    """
    return _get_cached_function_map()


def _tool_arguments(
    intent: Intent, rng: random.Random | None, now: datetime | None
) -> Dict[str, Any]:
    if intent.kind is IntentKind.ORDER_STATUS:
        return {"order_id": intent.order_id, "rng": rng}
    if intent.kind is IntentKind.SHIPPING_ETA:
        return {
            "order_id": intent.order_id,
            "postal_code": intent.postal_code,
            "rng": rng,
            "now": now,
        }
    return {}


def dispatch(
    intent: Intent,
    state: ConversationState,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> ToolResult | None:
    """Run the tool for ``intent``.

    Args:
        intent: Classified intent for the current turn.
        state: Conversation state; an escalation offer marks it pending.
        rng: Randomness source for mocked statuses and ETAs.
        now: Reference time for ETA computation.

    Returns:
        ToolResult | None: The tool's answer, or None for ``unknown`` so the
            caller falls back to the language model.
    """
    func = get_tool_function_map().get(intent.kind)
    if func is None:
        return None

    logger.info("Executing tool: %s", intent.kind.value)
    result = func(**_tool_arguments(intent, rng, now))

    if intent.kind is IntentKind.ESCALATE:
        state.last_intent = intent
        state.escalation_pending = True
    return result
