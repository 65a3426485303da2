"""
FastAPI application bootstrap with: \n
- Lifespan-managed schema creation, system role seeding and super admin bootstrap \n
- Background cleanup of idle chat sockets \n
- CORS configured for the frontend \n
- Encrypted REST routers, the chat WebSocket and uploaded files under ``/uploads`` \n

Environment contract (from `settings`): \n
- FRONTEND_URL: allowed CORS origin. \n
- SUPER_ADMIN_USERNAME / SUPER_ADMIN_EMAIL / SUPER_ADMIN_PASSWORD: created at startup when all three are set. \n
- UPLOAD_DIR: directory served under ``/uploads``. \n
- LOG_LEVEL: level of the ``uvicorn`` logger. \n
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from marketplace.api import account_api, admin_api, chat_api, client_api, public_api, settings_api, supplier_api, ws_api
from marketplace.api.errors import register_error_handlers
from marketplace.api.presence import cleanup_loop
from marketplace.database.config.config import settings
from marketplace.database.core.admin_funcs import ensure_super_admin, seed_system_roles
from marketplace.database.schema import create_schema

logger = logging.getLogger("uvicorn")
"""Logger instance for capturing and emitting Uvicorn server logs."""
logger.setLevel(settings.LOG_LEVEL.upper())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    App lifespan manager.

    Notes
    ------------
    - On startup (before yielding):
        * Create missing tables and seed the built-in ``admin`` role.
        * Create the configured super admin if it does not exist yet.
        * Start the idle-socket cleanup task.
    - On shutdown (after yielding):
        * Cancel the cleanup task.
    """
    create_schema()
    seed_system_roles()
    if settings.SUPER_ADMIN_USERNAME and settings.SUPER_ADMIN_EMAIL and settings.SUPER_ADMIN_PASSWORD:
        ensure_super_admin(
            username=settings.SUPER_ADMIN_USERNAME,
            email=settings.SUPER_ADMIN_EMAIL,
            password=settings.SUPER_ADMIN_PASSWORD,
        )
    cleanup_task = asyncio.create_task(cleanup_loop())
    logger.info("Marketplace backend started")

    try:
        yield
    finally:
        cleanup_task.cancel()
        try:
            await cleanup_task
        except asyncio.CancelledError:
            pass
        logger.info("Marketplace backend shut down")


app = FastAPI(lifespan=lifespan)

# -----------------------
# CORS configuration
# -----------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# -----------------------
# API routes
# -----------------------
for module in (account_api, supplier_api, settings_api, client_api, public_api, admin_api, chat_api, ws_api):
    app.include_router(module.router)

# -----------------------
# Uploaded files
# -----------------------
os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")
