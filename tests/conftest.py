"""Shared fixtures: in-memory archives, fake HTTP responses, cache roots."""

from __future__ import annotations

import io
import json
import zipfile
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from modelarchive.store import ArchiveStore

VALID_MANIFEST: dict[str, Any] = {
    "createdOn": "18/10/2026 10:15:00",
    "runtime": "python",
    "archiverVersion": "0.9.0",
    "model": {
        "modelName": "squeezenet",
        "modelVersion": "1.0",
        "handler": "image_classifier",
        "serializedFile": "squeezenet.pt",
    },
}


class FakeResponse(io.BytesIO):
    """Stand-in for the object ``urllib.request.urlopen`` returns."""

    def __init__(self, body: bytes, status: int = 200, headers: Optional[dict[str, str]] = None):
        super().__init__(body)
        self.status = status
        self.headers = headers or {}


def _build_archive(files: dict[str, Any]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, content in files.items():
            if isinstance(content, dict):
                content = json.dumps(content)
            archive.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture
def make_archive() -> Callable[..., bytes]:
    """Build zip bytes from ``{member name: bytes | str | dict}``."""
    return _build_archive


@pytest.fixture
def make_model_archive() -> Callable[..., bytes]:
    """Build a model archive whose manifest is *manifest* (omitted when None)."""

    def factory(manifest: Optional[Any] = VALID_MANIFEST, weights: bytes = b"weights") -> bytes:
        files: dict[str, Any] = {"squeezenet.pt": weights}
        if manifest is not None:
            files["MAR-INF/MANIFEST.json"] = manifest
        return _build_archive(files)

    return factory


@pytest.fixture
def fake_response() -> type[FakeResponse]:
    return FakeResponse


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    d = tmp_path / "cache" / "models"
    d.mkdir(parents=True)
    return d


@pytest.fixture
def store(cache_dir: Path) -> ArchiveStore:
    return ArchiveStore(cache_dir)


@pytest.fixture
def model_store(tmp_path: Path) -> Path:
    d = tmp_path / "model_store"
    d.mkdir()
    return d


def cache_entries(cache_dir: Path) -> list[str]:
    """Names of promoted cache entries (staging excluded)."""
    return sorted(p.name for p in cache_dir.iterdir() if not p.name.startswith("."))


def staging_leftovers(cache_dir: Path) -> list[str]:
    staging = cache_dir / ".partial"
    if not staging.exists():
        return []
    return sorted(p.name for p in staging.iterdir())


@pytest.fixture
def entries() -> Callable[[Path], list[str]]:
    return cache_entries


@pytest.fixture
def leftovers() -> Callable[[Path], list[str]]:
    return staging_leftovers
