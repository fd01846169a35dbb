"""
Main entry point for RallyBot.
"""

import sys
from typing import Optional

import structlog
from aiohttp import web

from .bot import SlackNotifier, WebhookHandler
from .challenge import ChallengeStateMachine
from .config import Config, get_config
from .database import ChallengeStore, MemoryChallengeStore, MongoChallengeStore
from .database.connection import get_database_manager
from .utils.logging import setup_logging

logger = structlog.get_logger(__name__)

HANDLER_KEY = web.AppKey("handler", WebhookHandler)
STORE_KEY = web.AppKey("store", ChallengeStore)
NOTIFIER_KEY = web.AppKey("notifier", SlackNotifier)


def create_store(config: Config) -> ChallengeStore:
    """Build the configured challenge store."""
    if config.store_backend == "memory":
        logger.warning("Using in-memory challenge store; state is lost on restart")
        return MemoryChallengeStore()
    return MongoChallengeStore()


async def events(request: web.Request) -> web.Response:
    raw_body = await request.text()
    result = await request.app[HANDLER_KEY].handle_event(request.headers, raw_body)
    return web.Response(status=result.status_code, text=result.body)


async def interactions(request: web.Request) -> web.Response:
    raw_body = await request.text()
    result = await request.app[HANDLER_KEY].handle_interaction(request.headers, raw_body)
    return web.Response(status=result.status_code, text=result.body)


async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


def create_app(config: Optional[Config] = None, store: Optional[ChallengeStore] = None,
               notifier: Optional[SlackNotifier] = None) -> web.Application:
    """Create the aiohttp application serving the Slack webhooks."""
    config = config or get_config()
    store = store or create_store(config)
    notifier = notifier or SlackNotifier()

    app = web.Application()
    app[STORE_KEY] = store
    app[NOTIFIER_KEY] = notifier
    app[HANDLER_KEY] = WebhookHandler(
        ChallengeStateMachine(store),
        notifier,
        signing_secret=config.slack_signing_secret,
        signature_max_age=config.signature_max_age,
        signature_version=config.signature_version,
    )

    app.router.add_post("/slack/events", events)
    app.router.add_post("/slack/interactions", interactions)
    app.router.add_get("/health", health)

    app.on_startup.append(_startup)
    app.on_cleanup.append(_cleanup)
    return app


async def _startup(app: web.Application):
    if isinstance(app[STORE_KEY], MongoChallengeStore):
        # Fail fast on a bad MongoDB URL instead of on the first webhook.
        await get_database_manager()
    logger.info("RallyBot started")


async def _cleanup(app: web.Application):
    try:
        await app[STORE_KEY].close()
        await app[NOTIFIER_KEY].close()
    except Exception as e:
        logger.error("Error during shutdown", error=str(e))
    logger.info("RallyBot shutdown complete")


def cli_main():
    """CLI entry point for console_scripts."""
    config = get_config()
    setup_logging(config)
    try:
        web.run_app(create_app(config), host=config.host, port=config.port, print=None)
    except KeyboardInterrupt:
        print("Application interrupted by user")
        sys.exit(0)
    except Exception as e:
        print(f"Application failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    cli_main()
