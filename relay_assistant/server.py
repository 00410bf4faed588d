"""FastAPI webhook server.

    POST /webhook   Telegram update -> Dispatcher
    GET  /healthz   liveness plus in-flight stream count

The lifespan connects the key-value store on startup and, on shutdown,
waits for detached streams before closing connections.
"""

from __future__ import annotations

import hmac
from contextlib import asynccontextmanager
from typing import Any, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from relay_assistant._logging import configure_logging, get_component_logger
from relay_assistant.config.settings import Settings
from relay_assistant.orchestration.types import DispatchStatus
from relay_assistant.orchestration.wiring import Assistant, create_assistant

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


def create_app(assistant: Optional[Assistant] = None, log: Optional[Any] = None) -> FastAPI:
    """Build the webhook app around a wired assistant (from env when omitted)."""
    if assistant is None:
        assistant = create_assistant(Settings.from_env())
    logger = get_component_logger("webhook_server", log)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await assistant.start()
        logger.info("server_started", kv_backend=assistant.kv.backend)
        try:
            yield
        finally:
            await assistant.shutdown()
            logger.info("server_stopped")

    app = FastAPI(title="relay-assistant", version="0.1.0", lifespan=lifespan)
    app.state.assistant = assistant

    @app.post("/webhook")
    async def webhook(request: Request):
        secret = assistant.settings.webhook_secret
        if secret:
            supplied = request.headers.get(SECRET_HEADER, "")
            if not hmac.compare_digest(supplied.encode("utf-8"), secret.encode("utf-8")):
                logger.warning("webhook_secret_mismatch")
                return PlainTextResponse("Forbidden", status_code=403)

        try:
            update = await request.json()
        except ValueError:
            return PlainTextResponse("Bad Request", status_code=400)
        if not isinstance(update, dict):
            return PlainTextResponse("Bad Request", status_code=400)

        try:
            status = await assistant.dispatcher.handle_update(update)
        except Exception as e:
            logger.error(
                "webhook_dispatch_failed",
                update_id=update.get("update_id"),
                error=str(e),
                error_type=type(e).__name__,
            )
            return PlainTextResponse("Internal Server Error", status_code=500)

        if status == DispatchStatus.UNAUTHORIZED:
            return PlainTextResponse("Unauthorized", status_code=403)
        return PlainTextResponse("OK")

    @app.get("/healthz")
    async def healthz():
        return JSONResponse({
            "status": "ok",
            "kv_backend": assistant.kv.backend,
            "streams_in_flight": len(assistant.tasks),
        })

    return app


def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level, settings.log_json)
    app = create_app(create_assistant(settings))
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
