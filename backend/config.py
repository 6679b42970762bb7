"""Application-wide configuration constants."""

import os
from pathlib import Path


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# --- Identity ---
APP_NAME = "Relay Booth"
CLIENT_ID_PREFIX = "client_"
DEFAULT_DEVICE_NAME = "Unknown Device"

# --- Networking ---
API_HOST = os.environ.get("RELAY_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("RELAY_PORT", "8080"))
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get(
        "RELAY_CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"
    ).split(",")
    if origin.strip()
]

# --- Storage ---
UPLOAD_DIR = os.environ.get(
    "RELAY_UPLOAD_DIR", str(Path(__file__).parent / "uploads")
)
# Reject filenames that resolve outside UPLOAD_DIR (off: names are used verbatim)
STRICT_FILENAMES = _env_flag("RELAY_STRICT_FILENAMES")

# --- Logging ---
LOG_LEVEL = os.environ.get("RELAY_LOG_LEVEL", "INFO").upper()
