"""Content-addressed store of extracted model archives.

Cache Directory Structure:
<cache root>/
  .partial/
    model1a2b3c.download/      staging, exclusive to one materialize() call
  3f786850e387550fdab836ed7e6dc881de23001b/
    MAR-INF/MANIFEST.json
    model.pt
  abc123/                      keyed by ETag when the server sent one

An entry only appears through a single rename from ``.partial/`` on the same
filesystem, so a cache directory is never observed half-extracted.
"""

from __future__ import annotations

import hashlib
import os
import re
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import BinaryIO, Optional

from .errors import InvalidModelError
from .util import format_bytes, log

STAGING_DIR_NAME = ".partial"
COPY_CHUNK_SIZE = 65536
MAX_CACHE_KEY_LENGTH = 255

_CACHE_KEY_RE = re.compile(r"^[A-Za-z0-9_\-][A-Za-z0-9._\-]*$")


def is_valid_cache_key(cache_key: Optional[str]) -> bool:
    """Return True when *cache_key* is usable as a single directory name."""
    if not cache_key or len(cache_key) > MAX_CACHE_KEY_LENGTH:
        return False
    return _CACHE_KEY_RE.match(cache_key) is not None


def remove_tree_quietly(path: Path) -> None:
    """Remove a directory tree, best-effort."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass
    except OSError as error:
        log(f"Failed to remove directory {path}: {error}")


class _DigestReader:
    """Read-through wrapper that hashes every byte pulled from *stream*."""

    def __init__(self, stream: BinaryIO):
        self._stream = stream
        self._digest = hashlib.sha1()
        self.bytes_read = 0

    def read(self, size: int = -1) -> bytes:
        chunk = self._stream.read(size)
        self._digest.update(chunk)
        self.bytes_read += len(chunk)
        return chunk

    def hexdigest(self) -> str:
        return self._digest.hexdigest()


class ArchiveStore:
    """Extracts archive streams into ``<cache_dir>/<cache key>`` directories."""

    def __init__(self, cache_dir: Path):
        self.cache_dir = Path(cache_dir)

    @property
    def staging_root(self) -> Path:
        return self.cache_dir / STAGING_DIR_NAME

    def entry_path(self, cache_key: str) -> Path:
        """Get the directory for *cache_key* without checking it exists."""
        if not is_valid_cache_key(cache_key):
            raise ValueError(f"Invalid cache key: {cache_key!r}")
        return self.cache_dir / cache_key

    def lookup(self, cache_key: str) -> Optional[Path]:
        """Return the extracted directory for *cache_key*, or None on a miss."""
        model_dir = self.entry_path(cache_key)
        if model_dir.is_dir():
            return model_dir
        return None

    def materialize(self, stream: BinaryIO, cache_key: Optional[str] = None) -> Path:
        """Extract *stream* and promote it into the cache.

        Args:
            stream: Readable binary stream holding a zip archive.
            cache_key: Key vouched for by the origin (an ETag). When omitted
                the SHA-1 of the raw stream bytes is used.

        Returns:
            The cache directory holding the extracted archive. If an entry for
            the key already exists, that entry is returned and the fresh
            extraction is discarded.

        Raises:
            InvalidModelError: The stream is not a zip archive.
            ValueError: ``cache_key`` is not a valid directory name.
            OSError: Extraction or promotion failed.
        """
        if cache_key is not None and not is_valid_cache_key(cache_key):
            raise ValueError(f"Invalid cache key: {cache_key!r}")

        self.staging_root.mkdir(parents=True, exist_ok=True)
        staging_dir = Path(
            tempfile.mkdtemp(prefix="model", suffix=".download", dir=self.staging_root)
        )

        try:
            digest = self._extract(stream, staging_dir)
        except BaseException:
            remove_tree_quietly(staging_dir)
            raise

        return self._promote(staging_dir, cache_key or digest)

    def _extract(self, stream: BinaryIO, staging_dir: Path) -> str:
        """Unzip *stream* into *staging_dir*; return the hex SHA-1 of its bytes."""
        reader = _DigestReader(stream)

        # zipfile needs a seekable source.
        with tempfile.TemporaryFile(dir=staging_dir.parent) as spool:
            shutil.copyfileobj(reader, spool, COPY_CHUNK_SIZE)
            spool.seek(0)
            try:
                with zipfile.ZipFile(spool) as archive:
                    archive.extractall(staging_dir)
            except zipfile.BadZipFile as error:
                raise InvalidModelError(f"Model archive is not a valid zip file: {error}") from error

        log(f"Extracted {format_bytes(reader.bytes_read)} archive into {staging_dir.name}")
        return reader.hexdigest()

    def _promote(self, staging_dir: Path, cache_key: str) -> Path:
        """Move *staging_dir* into place, or defer to an existing entry."""
        model_dir = self.entry_path(cache_key)

        if model_dir.is_dir():
            log(f"model folder already exists: {cache_key}")
            remove_tree_quietly(staging_dir)
            return model_dir

        try:
            os.rename(staging_dir, model_dir)
        except OSError:
            # Lost a race with another caller extracting the same content.
            if model_dir.is_dir():
                log(f"model folder created concurrently: {cache_key}")
                remove_tree_quietly(staging_dir)
                return model_dir
            remove_tree_quietly(staging_dir)
            raise

        return model_dir
