"""Resolve model references to archive byte streams.

A reference is either an ``http(s)://`` URL, fetched with a plain GET, or a
path relative to the configured model store.
"""

from __future__ import annotations

import http.client
import re
import urllib.error
import urllib.request
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union

from .config import DOWNLOAD_TIMEOUT_SECONDS
from .errors import DownloadError, ModelNotFoundError
from .store import is_valid_cache_key
from .util import log

URL_PATTERN = re.compile(r"http(s)?://.*", re.IGNORECASE)


@dataclass
class ArchiveSource:
    """An open archive stream and the cache key its origin supplied."""

    reference: str
    stream: BinaryIO
    cache_key: Optional[str] = None
    remote: bool = False


def is_url(reference: str) -> bool:
    """Return True when *reference* names a remote archive."""
    return URL_PATTERN.fullmatch(reference) is not None


def normalize_etag(etag: Optional[str]) -> Optional[str]:
    """Turn an ``ETag`` header value into a cache key, or None if unusable."""
    if etag is None:
        return None

    etag = etag.strip()
    if len(etag) > 2 and etag.startswith('"') and etag.endswith('"'):
        etag = etag[1:-1]

    if not is_valid_cache_key(etag):
        if etag:
            log(f"Ignoring ETag unusable as a cache directory name: {etag!r}")
        return None
    return etag


def resolve_local_archive(model_store: Union[str, Path, None], reference: str) -> Path:
    """Resolve a model-store reference to an archive file.

    Raises:
        ModelNotFoundError: The reference escapes the store, the store is not
            configured, or the reference does not name a regular file.
    """
    if ".." in reference:
        raise ModelNotFoundError(f"Relative path is not allowed in url: {reference}")

    if Path(reference).is_absolute():
        raise ModelNotFoundError(f"Absolute path is not allowed in url: {reference}")

    if not model_store:
        raise ModelNotFoundError("Model store has not been configured.")

    location = Path(model_store) / reference
    if not location.exists():
        raise ModelNotFoundError(f"Model not found in model store: {reference}")

    if location.is_file():
        return location

    raise ModelNotFoundError(f"Model not found at: {reference}")


def open_url(url: str, timeout: float = DOWNLOAD_TIMEOUT_SECONDS):
    """Send a GET for *url* and return the response once it reports 2xx.

    Raises:
        ModelNotFoundError: The URL is malformed or cannot be connected to
            as written (bad scheme, host or port).
        DownloadError: The server answered non-2xx, timed out, or the
            connection failed.
    """
    try:
        request = urllib.request.Request(url)
        response = urllib.request.urlopen(request, timeout=timeout)
    except urllib.error.HTTPError as e:
        e.close()
        raise DownloadError(
            f"Failed to download model from: {url}, code: {e.code}", url, status_code=e.code
        ) from e
    except (ValueError, OverflowError, http.client.InvalidURL) as e:
        # OverflowError: port out of range surfaces from the socket layer.
        raise ModelNotFoundError(f"Invalid model url: {url}") from e
    except TimeoutError as e:
        raise DownloadError(f"Download model timeout: {url}", url, timed_out=True) from e
    except urllib.error.URLError as e:
        if isinstance(e.reason, TimeoutError):
            raise DownloadError(f"Download model timeout: {url}", url, timed_out=True) from e
        raise DownloadError(f"Failed to download model from: {url}: {e.reason}", url) from e
    except (OSError, http.client.HTTPException) as e:
        raise DownloadError(f"Failed to download model from: {url}: {e}", url) from e

    status = getattr(response, "status", 200)
    if not 200 <= status < 300:
        response.close()
        raise DownloadError(
            f"Failed to download model from: {url}, code: {status}", url, status_code=status
        )
    return response


@contextmanager
def resolve(
    model_store: Union[str, Path, None],
    reference: str,
    timeout: float = DOWNLOAD_TIMEOUT_SECONDS,
) -> Iterator[ArchiveSource]:
    """Open the archive a model reference points at.

    Transfer failures raised while the caller reads a remote stream inside
    the ``with`` block are reported as :class:`DownloadError`.
    """
    if not is_url(reference):
        path = resolve_local_archive(model_store, reference)
        with open(path, "rb") as stream:
            yield ArchiveSource(reference=reference, stream=stream)
        return

    response = open_url(reference, timeout)
    try:
        yield ArchiveSource(
            reference=reference,
            stream=response,
            cache_key=normalize_etag(response.headers.get("ETag")),
            remote=True,
        )
    except TimeoutError as e:
        raise DownloadError(
            f"Download model timeout: {reference}", reference, timed_out=True
        ) from e
    except (ConnectionError, http.client.IncompleteRead) as e:
        raise DownloadError(f"Failed to download model from: {reference}: {e}", reference) from e
    finally:
        response.close()
