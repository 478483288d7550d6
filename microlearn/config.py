import logging
import os
from pathlib import Path
from dotenv import load_dotenv

root = Path(__file__).resolve().parents[1]
load_dotenv(dotenv_path=root / ".env")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./microlearn.db")

WHATSAPP_API_ENDPOINT = os.getenv("WHATSAPP_API_ENDPOINT", "https://live-mt-server.wati.io/8076")
WHATSAPP_API_KEY = os.getenv("WHATSAPP_API_KEY", "")
WHATSAPP_TIMEOUT_SECONDS = float(os.getenv("WHATSAPP_TIMEOUT_SECONDS", "10"))

PHONE_COUNTRY_CODE = os.getenv("PHONE_COUNTRY_CODE", "91")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def setup_logging():
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def get_cors_settings():
    return {
        "allow_origins": CORS_ORIGINS,
        "allow_credentials": True,
        "allow_methods": ["*"],
        "allow_headers": ["*"],
    }


def get_whatsapp_settings():
    """Provider settings handed to the notification sender's constructor."""
    return {
        "base_url": WHATSAPP_API_ENDPOINT,
        "api_key": WHATSAPP_API_KEY,
        "timeout": WHATSAPP_TIMEOUT_SECONDS,
    }
