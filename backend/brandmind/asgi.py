"""
ASGI entry point.

    uvicorn brandmind.asgi:app
"""

import logging
import os

from dotenv import load_dotenv

from brandmind.main import create_app

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = create_app()
