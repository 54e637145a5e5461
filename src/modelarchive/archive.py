"""Model archive handles and the fetch → extract → validate pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from .config import get_cache_directory, get_download_timeout
from .errors import InvalidModelError
from .fetch import resolve
from .manifest import Manifest, read_manifest, validate_manifest
from .store import ArchiveStore, remove_tree_quietly
from .util import log


class ModelArchive:
    """A model archive extracted to disk, plus its manifest."""

    def __init__(self, manifest: Manifest, url: str, model_dir: Path, extracted: bool):
        self._manifest = manifest
        self._url = url
        self._model_dir = Path(model_dir)
        self._extracted = extracted

    @property
    def manifest(self) -> Manifest:
        return self._manifest

    @property
    def url(self) -> str:
        """The reference this archive was resolved from."""
        return self._url

    @property
    def model_dir(self) -> Path:
        return self._model_dir

    @property
    def extracted(self) -> bool:
        """True when this pipeline created ``model_dir``; gates :meth:`clean`."""
        return self._extracted

    @property
    def handler(self) -> Optional[str]:
        model = self._manifest.model
        return model.handler if model is not None else None

    @property
    def model_name(self) -> Optional[str]:
        model = self._manifest.model
        return model.model_name if model is not None else None

    @property
    def model_version(self) -> Optional[str]:
        model = self._manifest.model
        return model.model_version if model is not None else None

    def validate(self) -> None:
        """Check the manifest, removing the extracted directory if it fails.

        Raises:
            InvalidModelError: A required manifest field is missing.
        """
        try:
            validate_manifest(self._manifest)
        except InvalidModelError as e:
            log(f"Invalid model archive {self._url}: {e.message}")
            self.clean()
            raise

    def clean(self) -> None:
        """Delete the extracted directory, if this pipeline created it."""
        if self._url and self._extracted:
            remove_tree_quietly(self._model_dir)

    def __repr__(self) -> str:
        return (
            f"ModelArchive(url={self._url!r}, model_dir={str(self._model_dir)!r}, "
            f"model_name={self.model_name!r}, extracted={self._extracted})"
        )


def load(url: str, model_dir: Path, extracted: bool) -> ModelArchive:
    """Wrap an extracted directory in a :class:`ModelArchive`.

    The manifest is read but not validated. If reading fails and the
    directory was freshly extracted, the directory is removed.
    """
    try:
        manifest = read_manifest(model_dir)
    except Exception:
        if extracted:
            remove_tree_quietly(Path(model_dir))
        raise
    return ModelArchive(manifest, url, model_dir, extracted)


def download_model(
    model_store: Union[str, Path, None],
    url: str,
    store: Optional[ArchiveStore] = None,
    timeout: Optional[float] = None,
) -> ModelArchive:
    """Fetch and extract the archive *url* refers to.

    Args:
        model_store: Root that non-URL references resolve against.
        url: An ``http(s)://`` URL or a path relative to ``model_store``.
        store: Cache to extract into. Defaults to the configured cache directory.
        timeout: Socket timeout for remote fetches, in seconds.

    Returns:
        An unvalidated :class:`ModelArchive`; call :meth:`ModelArchive.validate`.

    Raises:
        ModelNotFoundError: The reference cannot be resolved.
        DownloadError: The remote fetch failed.
        InvalidModelError: The archive or its manifest cannot be parsed.
    """
    if store is None:
        store = ArchiveStore(get_cache_directory())
    if timeout is None:
        timeout = get_download_timeout()

    with resolve(model_store, url, timeout) as source:
        model_dir = store.lookup(source.cache_key) if source.cache_key else None
        if model_dir is not None:
            log(f"model folder already exists: {source.cache_key}")
        else:
            model_dir = store.materialize(source.stream, source.cache_key)

    return load(url, model_dir, True)


def prepare_model(
    model_store: Union[str, Path, None],
    url: str,
    store: Optional[ArchiveStore] = None,
    timeout: Optional[float] = None,
) -> ModelArchive:
    """Fetch, extract and validate a model archive in one call."""
    archive = download_model(model_store, url, store=store, timeout=timeout)
    archive.validate()
    return archive
