import asyncio
import inspect
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from openai import AsyncOpenAI

from dal.session_dal import SqliteSessionStore
from routes.chat_route import router as chat_router
from routes.telegram_route import router as telegram_router
from services.commerce.woocommerce_client import WooCommerceClient
from services.dialogue.orchestrator import DialogueOrchestrator
from services.image_fetcher import ImageFetcher
from services.openai.content_generator import ContentGenerator
from services.openai.intent_resolver import IntentResolver
from services.search_trends import SearchTrendSource
from services.session_store import DEFAULT_TTL_SECONDS, InMemorySessionStore
from services.settings_store import JsonSettingsStore
from services.telegram.bot_api import TelegramBotClient
from utils.database_cleaner import MemoryCleaner, SessionCleaner
from utils.database_init import AsyncDatabaseInitializer

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the session store (SQLite at DATABASE_DIR/sessions.db when DATABASE_DIR
        is set, in-memory otherwise), the image fetcher and their periodic
        cleanup tasks
      - the OpenAI async client, content generator and intent resolver
      - the WooCommerce and (optional) Telegram clients
    and attach the assembled orchestrator to `app.state`.
    """
    openai_api_key = os.getenv("OPENAI_API_KEY")
    if not openai_api_key:
        raise RuntimeError("OPENAI_API_KEY environment variable is not set")

    ttl_seconds = DEFAULT_TTL_SECONDS
    fetcher = ImageFetcher(ttl_seconds=ttl_seconds)
    purgers = [fetcher.purge_expired]
    cleaners = []
    if os.getenv("DATABASE_DIR"):
        db_initializer = AsyncDatabaseInitializer()
        await db_initializer.ensure_database()
        app.state.db_initializer = db_initializer
        store = SqliteSessionStore(db_initializer, ttl_seconds=ttl_seconds)
        cleaners = [SessionCleaner(db_initializer, ttl_seconds)]
    else:
        store = InMemorySessionStore(ttl_seconds=ttl_seconds)
        purgers.append(store.purge_expired)
    cleaners.append(MemoryCleaner(purgers))
    app.state.session_store = store

    try:
        openai_client = AsyncOpenAI()
    except Exception as exc:
        raise RuntimeError("Failed to initialize OpenAI Async client") from exc

    app.state.openai_client = openai_client

    commerce = WooCommerceClient()
    app.state.commerce_client = commerce

    telegram_client = None
    if os.getenv("TELEGRAM_BOT_TOKEN"):
        telegram_client = TelegramBotClient()
    app.state.telegram_client = telegram_client

    app.state.orchestrator = DialogueOrchestrator(
        store,
        IntentResolver(openai_client),
        commerce=commerce,
        generator=ContentGenerator(openai_client),
        settings=JsonSettingsStore(fetcher=fetcher),
        trends=SearchTrendSource(),
        fetcher=fetcher,
        messaging=telegram_client,
        channel_id=telegram_client.channel_id if telegram_client else None,
    )

    cleanup_tasks = [asyncio.create_task(cleaner.run_periodic_cleanup()) for cleaner in cleaners]

    try:
        yield
    finally:
        for task in cleanup_tasks:
            task.cancel()
        # Gracefully close the OpenAI client if it exposes a close/aclose method.
        client = getattr(app.state, "openai_client", None)
        if client is not None:
            aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
            if aclose is not None:
                try:
                    if inspect.iscoroutinefunction(aclose):
                        await aclose()
                    else:
                        result = aclose()
                        if inspect.isawaitable(result):
                            await result
                except Exception as exc:
                    logging.warning("Error closing OpenAI client: %s", exc)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    app = FastAPI(lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        """
        Report which collaborators were configured at startup.
        """
        state = request.app.state
        return {
            "ok": True,
            "session_store": type(getattr(state, "session_store", None)).__name__,
            "openai_available": getattr(state, "openai_client", None) is not None,
            "commerce_available": getattr(state, "commerce_client", None) is not None,
            "telegram_available": getattr(state, "telegram_client", None) is not None,
        }

    # Register application routers
    app.include_router(chat_router)
    app.include_router(telegram_router)

    return app


app = create_app()
