import re

from ..models import Sentiment

NEGATIVE_TERMS = re.compile(
    r"angry|upset|frustrated|bad|hate|terrible|worst|unacceptable|late|delay|broken|missing",
    re.IGNORECASE,
)
POSITIVE_TERMS = re.compile(
    r"great|thanks|thank you|awesome|perfect|good|love",
    re.IGNORECASE,
)

EMPATHY_OPENER = "I’m really sorry for the trouble. "
CELEBRATION_OPENER = "Happy to hear that! "


def sentiment(text: str) -> Sentiment:
    """Coarse sentiment of a single turn; mixed or no signal is neutral."""
    negative = NEGATIVE_TERMS.search(text) is not None
    positive = POSITIVE_TERMS.search(text) is not None
    if negative and not positive:
        return Sentiment.NEGATIVE
    if positive and not negative:
        return Sentiment.POSITIVE
    return Sentiment.NEUTRAL


def apply_tone(reply: str, source_text: str) -> str:
    """Prefix ``reply`` with an opener matching the sentiment of ``source_text``."""
    mood = sentiment(source_text)
    if mood is Sentiment.NEGATIVE:
        return f"{EMPATHY_OPENER}{reply}"
    if mood is Sentiment.POSITIVE:
        return f"{CELEBRATION_OPENER}{reply}"
    return reply
