"""
Telegram bot — command handlers and Application factory.

Commands:
    /start | /help      show help
    /hooty <prompt>     generate a Hoooty image for <prompt>
"""

import logging

from telegram import Update
from telegram.ext import Application, CommandHandler, ContextTypes

from config import Settings
from workers.dedup import DedupStore
from workers.job_worker import ImageJobPoller

logger = logging.getLogger(__name__)

PROMPT_PREFIX = "hoooty"

_HELP = (
    "🦉 Hoooty Bot\n\n"
    "/hooty <prompt> — generate a Hoooty image\n"
    "  e.g. /hooty flying over a city\n\n"
    "/help — show this message"
)
_USAGE = "Please provide a prompt, e.g., /hooty flying over a city"
_WORKING = "Generating your Hoooty image... 🦉✨"
_FAILED = "Something went wrong generating the image."


def extract_prompt(text: str) -> str:
    """Drop the leading /hooty (or /hooty@BotName) token."""
    parts = text.strip().split(None, 1)
    if not parts or not parts[0].startswith("/"):
        return text.strip()
    return parts[1].strip() if len(parts) > 1 else ""


# ── /help & /start ─────────────────────────────────────────────────────────────

async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.message.reply_text(_HELP)


# ── /hooty ─────────────────────────────────────────────────────────────────────

async def hooty_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.message
    if message is None:
        return

    chat_id = update.effective_chat.id
    message_id = message.message_id

    guard: DedupStore = context.bot_data["guard"]
    if not guard.admit((chat_id, message_id)):
        logger.info(
            "Duplicate command dropped",
            extra={"chat_id": chat_id, "message_id": message_id},
        )
        return

    prompt = extract_prompt(message.text or "")
    if not prompt:
        await message.reply_text(_USAGE)
        return

    await message.reply_text(_WORKING)

    poller: ImageJobPoller = context.bot_data["poller"]
    try:
        image_url = await poller.generate(f"{PROMPT_PREFIX} {prompt}")
        await message.reply_photo(photo=image_url)
    except Exception as exc:
        logger.error(
            "Image generation error: %s", exc,
            extra={"chat_id": chat_id, "message_id": message_id},
            exc_info=True,
        )
        await message.reply_text(_FAILED)
        return

    logger.info("Image sent", extra={"chat_id": chat_id, "message_id": message_id})


# ── App factory ────────────────────────────────────────────────────────────────

def create_bot_app(
    settings: Settings,
    guard: DedupStore,
    poller: ImageJobPoller,
) -> Application:
    builder = Application.builder().token(settings.telegram_bot_token)
    if settings.webhook_mode:
        # Updates arrive through the FastAPI webhook route, not getUpdates
        builder = builder.updater(None)
    app = builder.build()

    app.bot_data["guard"] = guard
    app.bot_data["poller"] = poller

    app.add_handler(CommandHandler("start", help_command))
    app.add_handler(CommandHandler("help", help_command))
    # block=False so one slow prediction does not hold up other chats
    app.add_handler(CommandHandler("hooty", hooty_command, block=False))

    return app
