"""Model archive acquisition: fetch, extract, cache and validate."""

from .archive import ModelArchive, download_model, load, prepare_model
from .errors import DownloadError, InvalidModelError, ModelArchiveError, ModelNotFoundError
from .manifest import EngineSection, Manifest, ModelSection, RuntimeType
from .store import ArchiveStore

__all__ = [
    "ArchiveStore",
    "DownloadError",
    "EngineSection",
    "InvalidModelError",
    "Manifest",
    "ModelArchive",
    "ModelArchiveError",
    "ModelNotFoundError",
    "ModelSection",
    "RuntimeType",
    "download_model",
    "load",
    "prepare_model",
]
