"""
asgi.py -- ASGI entry point for the CRM demo backend.

Configures logging for the server process and exposes the FastAPI app.
Library modules only create loggers; this file and main.py are the two
places that configure them.

Run with:  uvicorn asgi:app --reload
"""

import logging

from api.main import app  # noqa: F401
from core.config import get_settings

logging.basicConfig(
    level=logging.DEBUG if get_settings().debug else logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
