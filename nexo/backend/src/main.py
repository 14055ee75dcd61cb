"""Entrypoint for the FastAPI application."""

import os
from dotenv import load_dotenv

# Load .env locally only; deployed environments inject variables directly
env_path = os.path.join(os.path.dirname(__file__), "../.env")
if os.path.exists(env_path):
    load_dotenv(dotenv_path=os.path.abspath(env_path))

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import (
    admin_users,
    approvals,
    attachments,
    audit,
    failures,
    health,
    inventory,
    maintenance,
    meta,
    tickets,
)
from .core.logging import configure_logging


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Nexo Clinic Operations", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, prefix="/api")
    app.include_router(meta.router, prefix="/api")
    app.include_router(tickets.router, prefix="/api")
    app.include_router(inventory.router, prefix="/api")
    app.include_router(approvals.router, prefix="/api")
    app.include_router(maintenance.router, prefix="/api")
    app.include_router(failures.router, prefix="/api")
    app.include_router(attachments.router, prefix="/api")
    app.include_router(admin_users.router, prefix="/api")
    app.include_router(audit.router, prefix="/api")

    return app


app = create_app()
