from __future__ import annotations

import logging
import typing as t

import httpx

from ..core.errors import ProtocolError, RemoteError, TransportError
from ..core.models import Batch, Event, Identity
from ..utils.config import TransportConfig
from .base import EventSource

logger = logging.getLogger(__name__)


class TelegramEventSource(EventSource):
    """Telegram Bot API long-poll source over httpx.

    Only the calls the poll loop needs are modelled (`getUpdates`, `getMe`);
    everything else goes through `call(method, payload)` as plain JSON.
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: str = "https://api.telegram.org",
        timeout_seconds: float = 40.0,
        allowed_updates: t.Optional[t.List[str]] = None,
        client: t.Optional[httpx.AsyncClient] = None,
    ) -> None:
        token = str(token or "").strip()
        if not token:
            raise ValueError("a bot token is required")
        self._base_url = f"{base_url.rstrip('/')}/bot{token}"
        self._allowed_updates = allowed_updates
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    @classmethod
    def from_config(cls, config: TransportConfig, client: t.Optional[httpx.AsyncClient] = None) -> "TelegramEventSource":
        token = config.resolve_token()
        if not token:
            raise ValueError("TELEGRAM_BOT_TOKEN is not set")
        return cls(
            token,
            base_url=config.base_url,
            timeout_seconds=config.timeout_seconds,
            allowed_updates=config.allowed_updates,
            client=client,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(self, method: str, payload: t.Optional[dict] = None) -> t.Any:
        try:
            r = await self._client.post(f"{self._base_url}/{method}", json=payload or {})
        except httpx.TimeoutException as exc:
            raise TransportError(f"{method} timed out") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} failed: {exc}") from exc

        try:
            data = r.json()
        except ValueError as exc:
            raise ProtocolError(f"{method} returned a non-JSON body (HTTP {r.status_code})") from exc
        if not isinstance(data, dict):
            raise ProtocolError(f"{method} returned {type(data).__name__}, expected an object")
        if not data.get("ok"):
            raise RemoteError(method, data.get("error_code"), str(data.get("description", "") or ""))
        return data.get("result")

    async def fetch_events(self, cursor: int, wait_hint: int) -> Batch:
        payload: t.Dict[str, t.Any] = {"offset": int(cursor), "timeout": int(wait_hint)}
        if self._allowed_updates is not None:
            payload["allowed_updates"] = list(self._allowed_updates)
        result = await self.request("getUpdates", payload)
        if not isinstance(result, list):
            raise ProtocolError("getUpdates result is not a list")

        events: Batch = []
        for upd in result:
            if not isinstance(upd, dict):
                raise ProtocolError("getUpdates returned a non-object update")
            update_id = upd.get("update_id")
            if not isinstance(update_id, int) or isinstance(update_id, bool):
                raise ProtocolError(f"update without an integer update_id: {update_id!r}")
            events.append(Event(event_id=update_id, payload=upd))
        events.sort(key=lambda e: e.event_id)
        return events

    async def resolve_identity(self) -> Identity:
        result = await self.request("getMe")
        if not isinstance(result, dict) or not isinstance(result.get("id"), int):
            raise ProtocolError("getMe result has no integer id")
        name = str(result.get("username") or result.get("first_name") or "")
        return Identity(id=result["id"], name=name)

    async def call(self, method: str, payload: t.Optional[dict] = None) -> t.Any:
        return await self.request(method, payload)

    async def send_message(self, chat_id: t.Union[int, str], text: str, **options: t.Any) -> t.Any:
        payload: t.Dict[str, t.Any] = {"chat_id": chat_id, "text": str(text)}
        payload.update({k: v for k, v in options.items() if v is not None})
        return await self.call("sendMessage", payload)
