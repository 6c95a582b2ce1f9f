"""
Application lifecycle for RideMyLay realtime.

Startup creates the schema, builds the shared store and starts the
notification retention task; shutdown stops the task and closes the
database. The socket gateway is created by the factory so Socket.IO can be
mounted before the app starts; it is given the store here.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..config import get_config
from ..persistence import DatabaseManager, RealtimeStore
from ..realtime import NotificationRetentionTask
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger("server.lifespan")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    config = getattr(app.state, "config", None) or get_config()
    logger.info("Starting RideMyLay realtime server")

    database = DatabaseManager(config.database)
    await database.create_schema()
    store = RealtimeStore.from_database(database)
    app.state.database = database
    app.state.store = store

    gateway = getattr(app.state, "gateway", None)
    if gateway is not None:
        gateway.attach_store(store)

    retention = NotificationRetentionTask(store.notifications, config.notifications)
    await retention.start()
    app.state.retention_task = retention
    logger.info("RideMyLay realtime server started", database=database.get_engine().dialect.name)

    try:
        yield
    finally:
        logger.info("Shutting down RideMyLay realtime server")
        await retention.stop()
        await database.close()
        logger.info("RideMyLay realtime server stopped")
