"""Agent package for the ACME customer support bot.

This package exposes a service-style interface for the bot while keeping the
routing pipeline (classification, tools, tone, streaming) organized in
separate modules.
"""

from .agent import (
    SessionBusyError,
    SupportAgentService,
    find_controller,
    get_controller,
    get_session,
    last_outcome,
    run_turn_stream,
)
from .classifier import classify
from .dialogue import DialogueController, TurnOutcome
from .tone import apply_tone, sentiment
from .tools import dispatch

__all__ = [
    "DialogueController",
    "SessionBusyError",
    "SupportAgentService",
    "TurnOutcome",
    "apply_tone",
    "classify",
    "dispatch",
    "find_controller",
    "get_controller",
    "get_session",
    "last_outcome",
    "run_turn_stream",
    "sentiment",
]
