"""Exceptions raised by the model archive pipeline."""

from __future__ import annotations

from typing import Optional


class ModelArchiveError(Exception):
    """Base exception for model archive errors."""

    def __init__(self, message: str, code: str = "E_MODEL"):
        self.message = message
        self.code = code
        super().__init__(message)


class ModelNotFoundError(ModelArchiveError):
    """Raised when a model reference cannot be resolved to an archive."""

    def __init__(self, message: str):
        super().__init__(message, "E_MODEL_NOT_FOUND")


class DownloadError(ModelArchiveError):
    """Raised when fetching a remote archive fails."""

    def __init__(
        self,
        message: str,
        url: str = "",
        status_code: Optional[int] = None,
        timed_out: bool = False,
    ):
        self.url = url
        self.status_code = status_code
        self.timed_out = timed_out
        super().__init__(message, "E_DOWNLOAD")


class InvalidModelError(ModelArchiveError):
    """Raised when an archive or its manifest is not a valid model."""

    def __init__(self, message: str):
        super().__init__(message, "E_INVALID_MODEL")
