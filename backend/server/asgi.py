"""
ASGI entry point for the keyword counter.

Used by uvicorn (see server/main.py). Environment comes from .env when present.
"""

from dotenv import load_dotenv

load_dotenv()

from config import AppConfig  # pylint: disable=wrong-import-position
from server.app import create_app  # pylint: disable=wrong-import-position

app = create_app(AppConfig.load_from_env())
