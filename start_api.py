#!/usr/bin/env python3
"""
Container entry point: wait for the database, migrate to head, seed the
operator defaults, then hand the process over to uvicorn.
"""
import os
import sys
from pathlib import Path

import wait_for_db  # noqa: F401  (blocks until the DB answers)

from alembic import command
from alembic.config import Config

from app.core.config import settings
from app.core.logging import configure_logging, get_logger
from app.seed import run as seed_defaults

configure_logging(level=settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
log = get_logger("start_api")

migrations = Config(str(Path(__file__).resolve().parent / "alembic.ini"))
command.upgrade(migrations, "head")
log.info("migrations applied")

seed_defaults()

port = os.getenv("PORT", "8000")
log.info("starting uvicorn", extra={"port": port})
os.execv(
    sys.executable,
    [sys.executable, "-m", "uvicorn", "app.main:app", "--host", "0.0.0.0", "--port", port],
)
