"""Configuration defaults, overridable through environment variables.

MODELARCHIVE_CACHE_DIR        root of the extracted-archive cache
MODELARCHIVE_MODEL_STORE      root that local model references resolve against
MODELARCHIVE_DOWNLOAD_TIMEOUT socket timeout for remote fetches, in seconds
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional

from .util import log

DOWNLOAD_TIMEOUT_SECONDS = 30.0

CACHE_DIR_ENV = "MODELARCHIVE_CACHE_DIR"
MODEL_STORE_ENV = "MODELARCHIVE_MODEL_STORE"
DOWNLOAD_TIMEOUT_ENV = "MODELARCHIVE_DOWNLOAD_TIMEOUT"


def get_cache_directory() -> Path:
    """Get the directory extracted archives are cached under."""
    override = os.environ.get(CACHE_DIR_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    return Path(tempfile.gettempdir()) / "models"


def get_model_store() -> Optional[str]:
    """Get the configured model store root, or None if unset."""
    model_store = os.environ.get(MODEL_STORE_ENV, "").strip()
    return model_store or None


def get_download_timeout() -> float:
    """Get the socket timeout used for remote fetches."""
    raw = os.environ.get(DOWNLOAD_TIMEOUT_ENV, "").strip()
    if not raw:
        return DOWNLOAD_TIMEOUT_SECONDS

    try:
        timeout = float(raw)
    except ValueError:
        log(f"Ignoring invalid {DOWNLOAD_TIMEOUT_ENV}={raw!r}; using {DOWNLOAD_TIMEOUT_SECONDS}s")
        return DOWNLOAD_TIMEOUT_SECONDS

    if timeout <= 0:
        log(f"Ignoring non-positive {DOWNLOAD_TIMEOUT_ENV}={raw!r}; using {DOWNLOAD_TIMEOUT_SECONDS}s")
        return DOWNLOAD_TIMEOUT_SECONDS
    return timeout
