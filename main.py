"""
Hoooty Image Bot — main entry point.

Starts:
    • Structured JSON logging
    • Telegram bot (long polling, or webhook when PUBLIC_DOMAIN is set)
    • FastAPI HTTP server (health check + webhook receiver)
"""

import json
import logging
import os
import secrets
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv

load_dotenv()  # must run before LOG_LEVEL is read

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from telegram import Update

from agent.replicate import ReplicateClient
from bot.telegram_bot import create_bot_app
from config import ConfigError, Settings, load_settings
from workers.dedup import DispatchGuard
from workers.job_worker import ImageJobPoller

ALIVE_TEXT = "🦉 Hoooty Bot is alive"
WEBHOOK_PATH = "/telegram/webhook"
SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


# ── Structured JSON logging ────────────────────────────────────────────────────

class _JSONFormatter(logging.Formatter):
    """One JSON object per log line."""

    _SKIP = frozenset({
        "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
        "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
        "created", "msecs", "relativeCreated", "thread", "threadName",
        "processName", "process", "message", "taskName",
    })

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        out: dict = {
            "ts":     self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level":  record.levelname,
            "logger": record.name,
            "msg":    record.message,
        }
        if record.exc_info:
            out["exc"] = self.formatException(record.exc_info)
        # extra= fields passed by callers
        for k, v in record.__dict__.items():
            if k not in self._SKIP:
                out[k] = v
        return json.dumps(out, default=str, ensure_ascii=False)


def setup_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(_JSONFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True
    # httpx logs every request URL at INFO, which is one line per poll
    logging.getLogger("httpx").setLevel(logging.WARNING)


setup_logging(os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)


# ── App factory ────────────────────────────────────────────────────────────────

def create_app(settings: Settings) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        replicate = ReplicateClient(
            settings.replicate_api_token,
            model_version=settings.replicate_model_version,
            base_url=settings.replicate_api_url,
        )
        bot = create_bot_app(settings, DispatchGuard(), ImageJobPoller(replicate))
        try:
            await bot.initialize()
            await bot.start()

            if settings.webhook_mode:
                await bot.bot.set_webhook(
                    url=settings.webhook_url,
                    secret_token=settings.webhook_secret,
                    drop_pending_updates=True,
                )
                logger.info("Telegram webhook registered", extra={"url": settings.webhook_url})
            else:
                await bot.updater.start_polling(drop_pending_updates=True)
                logger.info("Telegram bot polling started")
        except BaseException:
            await replicate.aclose()
            raise

        app.state.bot_app = bot
        yield

        logger.info("Shutting down")
        app.state.bot_app = None
        if bot.updater is not None and bot.updater.running:
            await bot.updater.stop()
        await bot.stop()
        await bot.shutdown()
        await replicate.aclose()

    app = FastAPI(title="Hoooty Image Bot", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.bot_app = None

    @app.get("/", response_class=PlainTextResponse)
    async def alive():
        return ALIVE_TEXT

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post(WEBHOOK_PATH)
    async def telegram_webhook(request: Request):
        if not settings.webhook_mode:
            raise HTTPException(status_code=404, detail="Webhook mode is disabled")
        if settings.webhook_secret and not secrets.compare_digest(
            request.headers.get(SECRET_HEADER, ""), settings.webhook_secret
        ):
            raise HTTPException(status_code=403, detail="Bad secret token")

        bot = request.app.state.bot_app
        if bot is None:
            raise HTTPException(status_code=503, detail="Bot is not running")

        try:
            payload = await request.json()
            if not isinstance(payload, dict):
                raise ValueError("update must be a JSON object")
            update = Update.de_json(payload, bot.bot)
        except (ValueError, TypeError, KeyError) as exc:
            logger.warning("Malformed webhook update", extra={"error": str(exc)})
            raise HTTPException(status_code=400, detail="Malformed update") from exc

        await bot.update_queue.put(update)
        return {"ok": True}

    return app


# ── Entry point ────────────────────────────────────────────────────────────────

def main() -> None:
    logger.info("Starting Hoooty Bot")
    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.critical(str(exc))
        raise SystemExit(1) from exc

    setup_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host="0.0.0.0",
        port=settings.port,
        log_config=None,   # let our handler take over
    )


if __name__ == "__main__":
    main()
