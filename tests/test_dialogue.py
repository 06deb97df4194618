import asyncio
import random
import re
from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from acmesupport.agent.dialogue import APOLOGY, DialogueController
from acmesupport.agent.suggestions import TICKET_SUGGESTIONS, suggestions_for
from acmesupport.errors import ConfigurationMissingError, ReplyGenerationError
from acmesupport.models import GREETING, INITIAL_SUGGESTIONS, Intent, IntentKind, Role, TurnPhase


def make_controller(generate_reply=None, interval: float = 0.0) -> DialogueController:
    return DialogueController(
        session_id="s1",
        generate_reply=generate_reply,
        rng=random.Random(42),
        clock=lambda: datetime(2026, 10, 19, 9, 0),
        system_prompt="SYSTEM",
        stream_interval=interval,
    )


def test_initial_state() -> None:
    controller = make_controller()
    assert [m.content for m in controller.state.messages] == [GREETING]
    assert controller.state.last_intent.kind is IntentKind.UNKNOWN
    assert controller.state.suggestions == INITIAL_SUGGESTIONS
    assert controller.state.phase is TurnPhase.IDLE


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
async def test_blank_input_is_noop(text: str) -> None:
    controller = make_controller()
    outcome = await controller.submit(text)
    assert outcome.accepted is False
    assert len(controller.state.messages) == 1


@pytest.mark.asyncio
async def test_tool_turn_streams_titled_reply() -> None:
    controller = make_controller()
    outcome = await controller.submit("  What's your return policy?  ")

    assert outcome.accepted is True
    assert outcome.intent.kind is IntentKind.RETURN_POLICY
    assert await outcome.stream is True

    user, reply = controller.state.messages[-2:]
    assert user.role is Role.USER and user.content == "What's your return policy?"
    assert reply.role is Role.MODEL
    assert reply.content == outcome.reply
    assert reply.content.startswith("Return policy:\nYou can return most items")
    assert controller.state.suggestions == suggestions_for(Intent(kind=IntentKind.RETURN_POLICY))
    assert controller.state.phase is TurnPhase.IDLE


@pytest.mark.asyncio
async def test_tool_reply_is_tone_composed() -> None:
    controller = make_controller()
    outcome = await controller.submit("My order is late and I'm upset, where is my order ORD-55555?")
    await outcome.stream
    assert outcome.reply.startswith("I’m really sorry for the trouble. Order status:\n")
    assert "ORD-55555" in outcome.reply


@pytest.mark.asyncio
async def test_missing_order_id_asks_clarifying_question() -> None:
    controller = make_controller()
    outcome = await controller.submit("where is my order")
    await outcome.stream
    assert "please share your order ID" in controller.state.messages[-1].content


@pytest.mark.asyncio
async def test_unknown_intent_falls_back_to_model() -> None:
    generate = AsyncMock(return_value="We ship worldwide.")
    controller = make_controller(generate)

    outcome = await controller.submit("Do you ship to Canada? thanks")
    assert await outcome.stream is True

    prompt = generate.await_args.args[0]
    assert prompt == (
        "SYSTEM\n\n"
        f"Assistant: {GREETING}\n\n"
        "User: Do you ship to Canada? thanks"
    )
    assert outcome.reply == "Happy to hear that! We ship worldwide."
    assert controller.state.messages[-1].content == outcome.reply
    assert controller.state.suggestions == ["Track an order", "Returns & refunds", "Talk to a human"]


@pytest.mark.asyncio
async def test_model_failure_appends_apology_without_streaming() -> None:
    generate = AsyncMock(side_effect=ReplyGenerationError("boom"))
    controller = make_controller(generate)

    outcome = await controller.submit("tell me a joke")

    assert outcome.failed is True
    assert outcome.stream is None
    assert controller.state.messages[-1].content == APOLOGY
    assert controller.state.messages[-1].role is Role.MODEL
    assert controller.state.phase is TurnPhase.IDLE
    assert controller.state.suggestions == INITIAL_SUGGESTIONS
    generate.assert_awaited_once()


@pytest.mark.asyncio
async def test_missing_configuration_only_breaks_fallback() -> None:
    generate = AsyncMock(side_effect=ConfigurationMissingError("no key"))
    controller = make_controller(generate)

    failed = await controller.submit("tell me a joke")
    assert failed.failed is True

    outcome = await controller.submit("Refund timeline")
    assert outcome.failed is False
    assert await outcome.stream is True
    assert controller.state.messages[-1].content.startswith("Refund policy:")


@pytest.mark.asyncio
async def test_unexpected_model_error_degrades_to_apology() -> None:
    controller = make_controller(AsyncMock(side_effect=RuntimeError("generation error")))

    outcome = await controller.submit("tell me a joke")

    assert outcome.accepted is True
    assert outcome.failed is True
    assert outcome.reply == APOLOGY
    assert controller.state.messages[-1].role is Role.MODEL
    assert controller.state.messages[-1].content == APOLOGY
    assert controller.state.phase is TurnPhase.IDLE


@pytest.mark.asyncio
async def test_no_generator_degrades_to_apology() -> None:
    controller = make_controller(None)
    outcome = await controller.submit("tell me a joke")
    assert outcome.failed is True
    assert controller.state.messages[-1].content == APOLOGY


@pytest.mark.asyncio
async def test_escalation_round_trip_issues_ticket() -> None:
    controller = make_controller()

    offer = await controller.submit("I want to talk to a human")
    await offer.stream
    assert offer.intent.kind is IntentKind.ESCALATE
    assert controller.state.escalation_pending is True
    assert controller.state.suggestions[0] == "Yes, connect me"

    confirm = await controller.submit("yes please")
    await confirm.stream

    assert re.search(r"support ticket #[A-Z0-9]{6}\.", confirm.reply)
    assert controller.state.messages[-1].content == confirm.reply
    assert controller.state.escalation_pending is False
    assert controller.state.last_intent.kind is IntentKind.UNKNOWN
    assert controller.state.suggestions == TICKET_SUGGESTIONS


@pytest.mark.asyncio
async def test_affirmative_ticket_skips_classification() -> None:
    generate = AsyncMock(return_value="unused")
    controller = make_controller(generate)
    await (await controller.submit("escalate this")).stream

    outcome = await controller.submit("Yes, where is my order ORD-12345")
    await outcome.stream

    assert "support ticket" in outcome.reply
    assert "Order status" not in outcome.reply
    generate.assert_not_awaited()


@pytest.mark.asyncio
async def test_escalation_offer_lapses_after_one_turn() -> None:
    generate = AsyncMock(return_value="Sure.")
    controller = make_controller(generate)
    await (await controller.submit("can someone help me")).stream

    declined = await controller.submit("no thanks")
    await declined.stream
    assert controller.state.escalation_pending is False
    assert declined.intent.kind is IntentKind.UNKNOWN
    generate.assert_awaited_once()

    later = await controller.submit("yes")
    await later.stream
    assert "support ticket" not in later.reply
    assert generate.await_count == 2


@pytest.mark.asyncio
async def test_non_affirmative_reply_can_reoffer_escalation() -> None:
    controller = make_controller()
    await (await controller.submit("talk to a human")).stream
    outcome = await controller.submit("no, a real representative")
    await outcome.stream
    assert outcome.intent.kind is IntentKind.ESCALATE
    assert controller.state.escalation_pending is True


@pytest.mark.asyncio
async def test_input_rejected_while_awaiting_model() -> None:
    release = asyncio.Event()

    async def slow_reply(prompt: str) -> str:
        await release.wait()
        return "Done."

    controller = make_controller(slow_reply)
    first = asyncio.create_task(controller.submit("tell me a joke"))
    await asyncio.sleep(0)
    assert controller.busy is True

    rejected = await controller.submit("where is my order")
    assert rejected.accepted is False

    release.set()
    outcome = await first
    await outcome.stream
    user_messages = [m.content for m in controller.state.messages if m.role is Role.USER]
    assert user_messages == ["tell me a joke"]


@pytest.mark.asyncio
async def test_new_turn_supersedes_in_flight_stream() -> None:
    generate = AsyncMock(return_value="A long answer. " * 60)
    controller = make_controller(generate, interval=0.001)

    first = await controller.submit("tell me something long")
    await asyncio.sleep(0.003)
    assert controller.streaming is True
    second = await controller.submit("Refund timeline")

    assert await second.stream is True
    assert await first.stream is False

    old_reply, user, new_reply = controller.state.messages[-3:]
    assert user.content == "Refund timeline"
    assert new_reply.content == second.reply
    assert first.reply.startswith(old_reply.content)
    assert old_reply.content != first.reply
