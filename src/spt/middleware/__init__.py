"""Middleware registration."""

from fastapi import FastAPI

from spt.config import Settings
from spt.middleware.error_handler import setup_error_handlers
from spt.middleware.logging import setup_logging


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure logging and register the JSON error handlers."""
    setup_logging(settings)
    setup_error_handlers(app)
