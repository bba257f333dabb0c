# config.py
import os
from pathlib import Path
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent

# Load environment variables from .env if present
load_dotenv(BASE_DIR / '.env')


class Config:
    # MongoDB (template settings persistence)
    MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
    DB_NAME = os.getenv("DB_NAME", "proforma")
    SETTINGS_COLLECTION = os.getenv("SETTINGS_COLLECTION", "pdf_template_settings")

    # Comma separated list, "*" allows everything
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

    # Where saved exports land when written to disk
    EXPORTS_DIR = os.getenv("EXPORTS_DIR", (BASE_DIR / "pdfs").as_posix())

    # TrueType fonts used by the raster capture
    FONT_DIR = os.getenv("FONT_DIR", (BASE_DIR / "assets" / "fonts").as_posix())

    # Local image files are only read from inside this directory
    IMAGE_ASSET_DIR = os.getenv("IMAGE_ASSET_DIR", (BASE_DIR / "assets" / "images").as_posix())

    # Comma separated hosts images may be fetched from, empty allows any
    IMAGE_ALLOWED_HOSTS = [h.strip().lower() for h in os.getenv("IMAGE_ALLOWED_HOSTS", "").split(",") if h.strip()]

    # Export capture
    RASTER_SCALE = float(os.getenv("RASTER_SCALE", "2"))
    IMAGE_PRELOAD_TIMEOUT = float(os.getenv("IMAGE_PRELOAD_TIMEOUT", "30"))

    # Thumbnail preview width in pixels
    THUMBNAIL_WIDTH = int(os.getenv("THUMBNAIL_WIDTH", "240"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
