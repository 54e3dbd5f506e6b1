"""Message pipeline: session resolution, action dispatch and reply delivery."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, TypedDict
from uuid import uuid4

from langgraph.graph import END, StateGraph

from poupapig_assistant.errors import DomainError, ValidationError
from poupapig_assistant.models import ExecutedAction, User
from poupapig_assistant.services.dispatcher import ActionDispatcher
from poupapig_assistant.services.notifications import Notifier
from poupapig_assistant.services.session import SessionResolver
from poupapig_assistant.services.webhook import InboundMessage

logger = logging.getLogger(__name__)

NOT_UNDERSTOOD_REPLY = "Desculpe, não entendi sua mensagem. Pode reformular? 🤔"
APOLOGY_REPLY = "Desculpe, tive um problema ao processar sua mensagem. Pode tentar novamente? 🤔"


class PipelineState(TypedDict):
    identity: str
    text: str
    display_name: str
    user: User | None
    is_first_contact: bool
    reply_text: str
    actions: list[ExecutedAction]


@dataclass(frozen=True)
class ProcessResult:
    message_id: str
    reply_text: str
    actions: list[ExecutedAction] = field(default_factory=list)


def new_message_id() -> str:
    return f"msg_{int(time.time() * 1000)}_{uuid4().hex[:7]}"


def _build_graph(
    sessions: SessionResolver, dispatcher: ActionDispatcher, notifier: Notifier
) -> Any:
    async def resolve_session(state: PipelineState) -> dict[str, Any]:
        user, is_first_contact = await sessions.resolve(state["identity"], state["display_name"])
        return {"user": user, "is_first_contact": is_first_contact}

    async def first_contact(state: PipelineState) -> dict[str, Any]:
        result = await sessions.handle_first_contact(state["user"], state["text"])
        return {"reply_text": result.reply_text, "actions": result.executed_actions}

    async def dispatch(state: PipelineState) -> dict[str, Any]:
        result = await dispatcher.dispatch(state["user"], state["text"])
        return {"reply_text": result.reply_text, "actions": result.executed_actions}

    async def deliver(state: PipelineState) -> dict[str, Any]:
        await notifier.send_message(state["user"].phone, state["reply_text"])
        return {}

    def route_session(state: PipelineState) -> str:
        return "first_contact" if state.get("is_first_contact") else "dispatch"

    graph = StateGraph(PipelineState)
    graph.add_node("resolve_session", resolve_session)
    graph.add_node("first_contact", first_contact)
    graph.add_node("dispatch", dispatch)
    graph.add_node("deliver", deliver)

    graph.set_entry_point("resolve_session")
    graph.add_conditional_edges(
        "resolve_session",
        route_session,
        {"first_contact": "first_contact", "dispatch": "dispatch"},
    )
    graph.add_edge("first_contact", "deliver")
    graph.add_edge("dispatch", "deliver")
    graph.add_edge("deliver", END)
    return graph.compile()


class MessagePipeline:
    def __init__(
        self, sessions: SessionResolver, dispatcher: ActionDispatcher, notifier: Notifier
    ) -> None:
        self._notifier = notifier
        self._graph = _build_graph(sessions, dispatcher, notifier)

    async def run(self, inbound: InboundMessage) -> ProcessResult:
        """Process one inbound message end to end.

        Failures still answer the sender with a safe reply before the
        exception is re-raised to the caller.
        """
        initial_state: PipelineState = {
            "identity": inbound.identity,
            "text": inbound.text,
            "display_name": inbound.display_name,
            "user": None,
            "is_first_contact": False,
            "reply_text": "",
            "actions": [],
        }
        try:
            state = await self._graph.ainvoke(initial_state)
        except (ValidationError, DomainError) as exc:
            logger.warning("Could not process message from %s: %s", inbound.identity, exc.message)
            await self._reply_safely(inbound.identity, NOT_UNDERSTOOD_REPLY)
            raise
        except Exception:
            logger.exception("Failed to process message from %s", inbound.identity)
            await self._reply_safely(inbound.identity, APOLOGY_REPLY)
            raise

        logger.info(
            "Processed message from %s with %d action(s)", inbound.identity, len(state["actions"])
        )
        return ProcessResult(
            message_id=new_message_id(),
            reply_text=state["reply_text"],
            actions=list(state["actions"]),
        )

    async def _reply_safely(self, identity: str, text: str) -> None:
        try:
            await self._notifier.send_message(identity, text)
        except Exception:
            logger.exception("Failed to send fallback reply to %s", identity)
