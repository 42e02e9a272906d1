from __future__ import annotations

import asyncio
import logging
import os

from todocore.config import Settings, load_settings
from todocore.domain.tasks.service import TaskService
from todocore.infra.clock.system_clock import SystemClock
from todocore.infra.db.connection import Database
from todocore.infra.db.repo.documents_sqlite import SqliteDocumentStore
from todocore.logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def build_service(settings: Settings) -> TaskService:
    os.makedirs(os.path.dirname(settings.db_path) or ".", exist_ok=True)
    store = SqliteDocumentStore(Database(str(settings.db_path)))
    await store.init()
    return TaskService(store, SystemClock(settings.timezone))


async def main() -> None:
    settings = load_settings()
    setup_logging(settings.log_level)

    service = await build_service(settings)
    tasks = await service.list_tasks()
    open_count = sum(1 for t in tasks if not t.completed)
    logger.info("Store ready db=%s tasks=%d open=%d", settings.db_path, len(tasks), open_count)


if __name__ == "__main__":
    asyncio.run(main())
