"""
Configuration module for mailsetup.
"""
import os
from typing import Optional

from dotenv import load_dotenv

from mailsetup.utils.logger import Logger

# Load environment variables from .env file
load_dotenv()

logger = Logger().get_logger(__name__)

_PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
CATALOG_DIR = os.path.join(_PACKAGE_DIR, "providers", "data")

DEFAULT_DB_URL = "sqlite:///" + os.path.join("data", "mailsetup.db")
DEFAULT_BACKUP_PATH = os.path.join("data", "accounts_backup.json")
DEFAULT_WORKER_THREADS = 4
MIN_WORKER_THREADS = 1
DEFAULT_CHECK_INTERVAL_MINUTES = 15
MIN_CHECK_INTERVAL_MINUTES = 1


def _get_path(name: str, default: str) -> str:
    raw = (os.getenv(name) or "").strip()
    return raw or default


def get_providers_path() -> str:
    return _get_path(
        "MAILSETUP_PROVIDERS_PATH", os.path.join(CATALOG_DIR, "providers.xml")
    )


def get_product_providers_path() -> str:
    return _get_path(
        "MAILSETUP_PRODUCT_PROVIDERS_PATH",
        os.path.join(CATALOG_DIR, "providers_product.xml"),
    )


def get_oauth_path() -> str:
    return _get_path("MAILSETUP_OAUTH_PATH", os.path.join(CATALOG_DIR, "oauth.xml"))


def get_vendor_policy() -> Optional[str]:
    raw = (os.getenv("MAILSETUP_VENDOR_POLICY") or "").strip()
    return raw or None


def get_db_url() -> str:
    return _get_path("MAILSETUP_DB_URL", DEFAULT_DB_URL)


def get_backup_path() -> str:
    return _get_path("MAILSETUP_BACKUP_PATH", DEFAULT_BACKUP_PATH)


def _parse_int_env_with_min(name: str, default: int, min_value: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default

    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Invalid {name} '{raw}', using default {default}")
        return default

    if value < min_value:
        logger.warning(f"{name} {value} is too small, clamping to {min_value}")
        return min_value
    return value


def get_worker_threads() -> int:
    return _parse_int_env_with_min(
        "MAILSETUP_WORKER_THREADS", DEFAULT_WORKER_THREADS, MIN_WORKER_THREADS
    )


def get_default_check_interval() -> int:
    return _parse_int_env_with_min(
        "MAILSETUP_DEFAULT_CHECK_INTERVAL",
        DEFAULT_CHECK_INTERVAL_MINUTES,
        MIN_CHECK_INTERVAL_MINUTES,
    )
