"""Telegram bot front-end for the expense tracker."""

from __future__ import annotations

import logging
from typing import Any

from telegram import Update
from telegram.constants import ParseMode
from telegram.error import BadRequest
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from .chat import ChatAdapter, ChatMessage, dispatch
from .config import get_settings
from .db import Base, engine
from .executor import CommandExecutor, build_executor
from .migrations import run_migrations

logger = logging.getLogger(__name__)

settings = get_settings()

if not settings.telegram_bot_token:
    logger.warning(
        "Telegram bot token is not configured. Bot cannot start without TELEGRAM_BOT_TOKEN.")

EXECUTOR_KEY = "executor"


class TelegramAdapter(ChatAdapter):
    def identify(self, raw: Any) -> ChatMessage | None:
        update: Update = raw
        user = update.effective_user
        message = update.effective_message
        if user is None or message is None or not message.text:
            return None
        return ChatMessage(
            owner_id=str(user.id),
            display_name=user.first_name or user.username,
            text=message.text,
        )

    async def send(self, raw: Any, text: str) -> None:
        update: Update = raw
        try:
            await update.effective_chat.send_message(text, parse_mode=ParseMode.MARKDOWN)
        except BadRequest:
            # Descriptions can contain stray Markdown characters.
            await update.effective_chat.send_message(text)


def _executor(context: ContextTypes.DEFAULT_TYPE) -> CommandExecutor:
    return context.application.bot_data[EXECUTOR_KEY]


async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await dispatch(TelegramAdapter(), _executor(context), update)


def build_application(executor: CommandExecutor | None = None) -> Application:
    if not settings.telegram_bot_token:
        raise RuntimeError("TELEGRAM_BOT_TOKEN is missing from configuration.")

    application = ApplicationBuilder().token(settings.telegram_bot_token).build()
    application.bot_data[EXECUTOR_KEY] = executor or build_executor()

    # /start and /help parse to the help shortcut like any other text.
    application.add_handler(CommandHandler(["start", "help"], handle_text))
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text))
    return application


def main() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    if not settings.telegram_bot_token:
        raise SystemExit(
            "Please set TELEGRAM_BOT_TOKEN in the environment to run the bot.")
    Base.metadata.create_all(bind=engine)
    run_migrations(engine)
    application = build_application()
    logger.info("Starting Telegram bot...")
    application.run_polling(drop_pending_updates=True)


if __name__ == "__main__":
    main()
