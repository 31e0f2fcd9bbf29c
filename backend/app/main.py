"""Application factory and entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from app.api import create_api_router, create_health_router, install_error_handlers
from app.config import Settings
from app.logging_config import setup_logging
from app.market.cache import PriceCache
from app.market.instruments import SUPPORTED_INSTRUMENTS
from app.market.simulator import PriceGenerator
from app.stream.directory import ConnectionDirectory
from app.stream.dispatcher import BroadcastDispatcher
from app.stream.routes import create_stream_router
from app.stream.session import SessionController
from app.subscriptions.registry import SubscriptionRegistry
from app.subscriptions.store import DebouncedWriter, JsonFileStore

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Wire the price generator, registry, directory and routers into one app.

    All shared state is owned by objects created here and passed by reference;
    the lifespan starts the tick and persistence tasks and stops them on
    shutdown (with a final flush of pending user data).
    """
    settings = settings or Settings.from_env()

    price_cache = PriceCache(history_size=settings.history_size)
    registry = SubscriptionRegistry(SUPPORTED_INSTRUMENTS)
    directory = ConnectionDirectory()
    dispatcher = BroadcastDispatcher(directory)
    controller = SessionController(
        registry,
        directory,
        price_cache,
        dispatcher,
        max_queue=settings.outbound_queue_size,
    )
    generator = PriceGenerator(price_cache, SUPPORTED_INSTRUMENTS, update_interval=settings.tick_interval)
    generator.add_listener(dispatcher.dispatch)

    store = JsonFileStore(settings.data_file)
    writer = DebouncedWriter(store, registry.snapshot, delay=settings.save_debounce)
    registry.add_listener(writer.mark_dirty)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        registry.load(store.load())
        await writer.start()
        await generator.start()
        logger.info("Supported instruments: %s", ", ".join(SUPPORTED_INSTRUMENTS))
        try:
            yield
        finally:
            await generator.stop()
            await controller.close_all()
            await writer.stop()

    app = FastAPI(title="Price Fan-out", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.price_cache = price_cache
    app.state.registry = registry
    app.state.directory = directory
    app.state.controller = controller
    app.state.generator = generator
    app.state.writer = writer

    install_error_handlers(app)
    app.include_router(create_health_router(controller))
    app.include_router(create_api_router(controller, price_cache))
    app.include_router(create_stream_router(controller))

    if settings.static_dir is not None:
        if settings.static_dir.is_dir():
            app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
        else:
            logger.warning("Static directory %s not found, not serving assets", settings.static_dir)

    return app


def main() -> None:
    import uvicorn

    settings = Settings.from_env()
    setup_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
