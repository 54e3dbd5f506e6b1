"""Normalization of inbound Evolution API webhook deliveries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from poupapig_assistant.errors import ValidationError

DEFAULT_TRANSPORT_SUFFIX = "@s.whatsapp.net"
DEFAULT_DISPLAY_NAME = "Usuário"


@dataclass(frozen=True)
class InboundMessage:
    identity: str
    text: str
    display_name: str
    channel: str
    is_self_echo: bool = False
    message_id: str | None = None


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def normalize_identity(raw: str, suffix: str = DEFAULT_TRANSPORT_SUFFIX) -> str:
    identity = raw.strip()
    if suffix and identity.endswith(suffix):
        identity = identity[: -len(suffix)]
    return identity


def _extract_text(message: dict[str, Any]) -> str:
    conversation = message.get("conversation")
    if isinstance(conversation, str) and conversation:
        return conversation
    reply = _as_dict(_as_dict(message.get("listResponseMessage")).get("singleSelectReply"))
    selected = reply.get("selectedRowId")
    if isinstance(selected, str) and selected:
        return selected
    return ""


def extract_inbound_message(
    payload: Any, transport_suffix: str = DEFAULT_TRANSPORT_SUFFIX
) -> InboundMessage:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid webhook payload")

    data = _as_dict(payload.get("data"))
    key = _as_dict(data.get("key"))
    remote_jid = key.get("remoteJid")
    if not isinstance(remote_jid, str) or not remote_jid.strip():
        raise ValidationError("Phone number not provided")

    display_name = data.get("pushName")
    if not isinstance(display_name, str) or len(display_name.strip()) < 2:
        display_name = DEFAULT_DISPLAY_NAME

    return InboundMessage(
        identity=normalize_identity(remote_jid, transport_suffix),
        text=_extract_text(_as_dict(data.get("message"))).strip(),
        display_name=display_name.strip(),
        channel=str(payload.get("instance") or ""),
        is_self_echo=bool(key.get("fromMe", False)),
        message_id=key.get("id"),
    )
