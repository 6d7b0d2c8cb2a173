"""
procmap/config.py
-----------------
Central configuration module. Loads environment variables
from the .env file and exposes them as typed constants.
"""

import os
from dotenv import load_dotenv

from procmap.exceptions import StorageConnectionError

load_dotenv()


# ── PostgreSQL (the "Default" connection) ─────────────────
DB_HOST: str = os.getenv("DB_HOST", "localhost")
DB_PORT: int = int(os.getenv("DB_PORT", "5432"))
DB_NAME: str = os.getenv("DB_NAME", "procmap")
DB_USER: str = os.getenv("DB_USER", "procmap_user")
DB_PASS: str = os.getenv("DB_PASS", "")

DATABASE_URL: str = os.getenv(
    "DATABASE_URL",
    f"postgresql://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)

# ── Named connections ─────────────────────────────────────
DEFAULT_CONNECTION_NAME: str = "Default"
CONNECTION_ENV_PREFIX: str = "PROCMAP_CONNECTION_"

# ── Pooling ───────────────────────────────────────────────
POOL_MIN_CONN: int = int(os.getenv("POOL_MIN_CONN", "1"))
POOL_MAX_CONN: int = int(os.getenv("POOL_MAX_CONN", "5"))

# ── Engine ────────────────────────────────────────────────
MAX_DEPTH: int = int(os.getenv("PROCMAP_MAX_DEPTH", "16"))

# ── Logging ───────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


def normalize_connection_name(name: str | None) -> str:
    """Blank or missing names resolve to the default connection."""
    if name is None or not name.strip():
        return DEFAULT_CONNECTION_NAME
    return name.strip()


def get_connection_string(name: str | None = None) -> str:
    """
    Resolve a connection name to a libpq connection string.

    Lookup order:
        1. PROCMAP_CONNECTION_<NAME> (upper-cased name).
        2. DATABASE_URL, for the default connection only.

    Raises:
        StorageConnectionError: If the name cannot be resolved.
    """
    name = normalize_connection_name(name)
    dsn = os.getenv(CONNECTION_ENV_PREFIX + name.upper(), "")
    if dsn:
        return dsn
    if name == DEFAULT_CONNECTION_NAME and DATABASE_URL:
        return DATABASE_URL
    raise StorageConnectionError(f"No connection string configured for '{name}'")
