"""Heuristic intent classification over raw user text.

Rules are evaluated top to bottom and the first match wins, so the order of
``INTENT_RULES`` is the priority order. Several rules can match the same text
(e.g. "where is my order and when will it arrive"), which is why order status
sits above shipping ETA.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Sequence, Tuple

from ..models import Intent, IntentKind

logger = logging.getLogger(__name__)


_PREFIXED_ORDER_ID = re.compile(r"\b(ord-?\d[a-z0-9-]{2,})", re.IGNORECASE)
# Narrower than any 5+ char token: an id after "order" must contain a digit,
# so "track order ABCDEF" or "order please" asks for the id instead.
_MARKED_ORDER_ID = re.compile(
    r"\border\b(?:\s+(?:id|number|no\.?))?\s*[#:]?\s*((?=[a-z-]*\d)[a-z0-9][a-z0-9-]{4,})",
    re.IGNORECASE,
)
_POSTAL_CODE = re.compile(r"\b(\d{5})(?:-\d{4})?\b")


def _words(*terms: str) -> re.Pattern[str]:
    """Match any of ``terms`` starting at a word boundary."""
    return re.compile(r"\b(?:" + "|".join(re.escape(t) for t in terms) + r")", re.IGNORECASE)


def extract_order_id(text: str) -> Tuple[str | None, Tuple[int, int] | None]:
    """Return the order id found in ``text`` (upper-cased) and its span."""
    for pattern in (_PREFIXED_ORDER_ID, _MARKED_ORDER_ID):
        match = pattern.search(text)
        if match:
            return match.group(1).upper(), match.span(1)
    return None, None


def extract_postal_code(text: str, exclude: Tuple[int, int] | None = None) -> str | None:
    """Return the first 5-digit postal code that does not overlap ``exclude``."""
    for match in _POSTAL_CODE.finditer(text):
        if exclude and match.start() < exclude[1] and exclude[0] < match.end():
            continue
        return match.group(1)
    return None


def _order_status(text: str) -> Intent:
    order_id, _ = extract_order_id(text)
    return Intent(kind=IntentKind.ORDER_STATUS, order_id=order_id)


def _shipping_eta(text: str) -> Intent:
    order_id, span = extract_order_id(text)
    return Intent(
        kind=IntentKind.SHIPPING_ETA,
        order_id=order_id,
        postal_code=extract_postal_code(text, exclude=span),
    )


@dataclass(frozen=True)
class IntentRule:
    """A trigger (all ``patterns`` must match somewhere) and its intent builder."""

    kind: IntentKind
    patterns: Sequence[re.Pattern[str]]
    build: Callable[[str], Intent] | None = None

    def matches(self, text: str) -> bool:
        return all(p.search(text) for p in self.patterns)

    def resolve(self, text: str) -> Intent:
        if self.build is not None:
            return self.build(text)
        return Intent(kind=self.kind)


INTENT_RULES: Tuple[IntentRule, ...] = (
    IntentRule(
        IntentKind.ORDER_STATUS,
        (_words("where", "status", "track"), _words("order", "package")),
        _order_status,
    ),
    IntentRule(
        IntentKind.SHIPPING_ETA,
        (
            _words("when", "arrive", "coming", "eta", "delivery"),
            _words("order", "package", "shipping"),
        ),
        _shipping_eta,
    ),
    IntentRule(
        IntentKind.RETURN_POLICY,
        (_words("return", "exchange"), _words("policy", "how", "can i")),
    ),
    IntentRule(
        IntentKind.REFUND_POLICY,
        (_words("refund"), _words("policy", "how", "timeline")),
    ),
    IntentRule(
        IntentKind.ACCOUNT_HELP,
        (_words("login", "account", "password", "profile", "email change"),),
    ),
    IntentRule(
        IntentKind.ESCALATE,
        (_words("human", "agent", "representative", "someone", "escalate"),),
    ),
)


def classify(text: str, rules: Sequence[IntentRule] = INTENT_RULES) -> Intent:
    """Map raw input text to an Intent. Falls back to ``unknown``."""
    for rule in rules:
        if rule.matches(text):
            intent = rule.resolve(text)
            logger.debug("Classified as %s: %r", intent.kind.value, text[:80])
            return intent
    return Intent(kind=IntentKind.UNKNOWN)
