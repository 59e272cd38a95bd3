#!/usr/bin/env python3

import asyncio
import logging
from typing import Optional

import click

from pollster import (
    PollerConfig,
    RegistryConfig,
    Session,
    SessionRegistry,
    TelegramEventSource,
    TransportConfig,
    per_chat_id,
    per_from_id,
)
from pollster.monitoring import metrics

logger = logging.getLogger("echo_bot")


class EchoSession(Session):
    """Replies to every text message with the same text."""

    async def on_create(self) -> None:
        logger.info("session %s created", self.identifier)

    async def process_event(self, event) -> None:
        message = event.payload.get("message")
        if not isinstance(message, dict) or not message.get("text"):
            return
        await self.transport.send_message(
            message["chat"]["id"],
            message["text"],
            reply_to_message_id=message.get("message_id"),
        )

    async def on_remove(self) -> None:
        logger.info("session %s removed", self.identifier)


@click.command()
@click.option("--token", envvar="TELEGRAM_BOT_TOKEN", required=True, help="Bot token (or TELEGRAM_BOT_TOKEN)")
@click.option(
    "--log-level",
    default="INFO",
    help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
)
@click.option("--poll-interval", default=1.5, type=float, help="Seconds between polls")
@click.option(
    "--idle-timeout",
    default=300.0,
    type=float,
    help="Seconds of inactivity before a session is removed (0 disables)",
)
@click.option(
    "--per",
    type=click.Choice(["chat", "user"], case_sensitive=False),
    default="chat",
    help="One session per chat or per user",
)
@click.option("--no-skip-backlog", is_flag=True, default=False, help="Answer messages sent while the bot was down")
def main(token: str, log_level: str, poll_interval: float, idle_timeout: float, per: str, no_skip_backlog: bool) -> None:
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    idle: Optional[float] = idle_timeout if idle_timeout > 0 else None

    source = TelegramEventSource.from_config(TransportConfig(token=token))
    registry = SessionRegistry(
        source,
        EchoSession,
        per_chat_id if per.lower() == "chat" else per_from_id,
        RegistryConfig(idle_timeout_seconds=idle),
        PollerConfig(
            poll_interval_seconds=poll_interval,
            cooldown_interval_seconds=4 * poll_interval,
            skip_backlog=not no_skip_backlog,
        ),
    )

    async def on_stop() -> None:
        await source.aclose()
        logger.info(
            "cycles: batch=%d empty=%d error=%d",
            metrics.poll_cycles_total.get(outcome="batch"),
            metrics.poll_cycles_total.get(outcome="empty"),
            metrics.poll_cycles_total.get(outcome="error"),
        )

    if not asyncio.run(registry.run(stop_hook=on_stop)):
        raise SystemExit(1)


if __name__ == "__main__":
    main()
