"""Stock `identify` functions mapping an update to a session key.

Both return the sentinel ``"0"`` for events they cannot read instead of
raising, so one malformed update never breaks a batch.
"""

from __future__ import annotations

import typing as t

from .core.models import Event

UNKNOWN = "0"

# Update kinds that carry a message object, checked in this order.
_MESSAGE_KEYS = ("message", "edited_message", "channel_post", "edited_channel_post")


def _message(payload: t.Any) -> t.Optional[dict]:
    if not isinstance(payload, dict):
        return None
    for key in _MESSAGE_KEYS:
        msg = payload.get(key)
        if isinstance(msg, dict):
            return msg
    cb = payload.get("callback_query")
    if isinstance(cb, dict) and isinstance(cb.get("message"), dict):
        return cb["message"]
    return None


def _sender(payload: t.Any) -> t.Optional[dict]:
    if not isinstance(payload, dict):
        return None
    for key in ("callback_query", "inline_query", *_MESSAGE_KEYS):
        obj = payload.get(key)
        if isinstance(obj, dict) and isinstance(obj.get("from"), dict):
            return obj["from"]
    return None


def per_from_id(event: Event) -> str:
    sender = _sender(getattr(event, "payload", None))
    if sender is None or sender.get("id") is None:
        return UNKNOWN
    return str(sender["id"])


def per_chat_id(event: Event) -> str:
    msg = _message(getattr(event, "payload", None))
    chat = msg.get("chat") if msg else None
    if not isinstance(chat, dict) or chat.get("id") is None:
        return UNKNOWN
    return str(chat["id"])
