"""Model archive manifest: parsing and required-field validation.

The manifest lives at ``MAR-INF/MANIFEST.json`` inside an extracted archive:

{
  "createdOn": "18/10/2026 10:15:00",
  "runtime": "python",
  "archiverVersion": "0.9.0",
  "model": {
    "modelName": "squeezenet",
    "modelVersion": "1.0",
    "handler": "image_classifier",
    "serializedFile": "squeezenet.pt"
  },
  "engine": {"engineName": "MXNet", "engineVersion": "1.6"}
}

Every field is optional at parse time; :func:`validate_manifest` decides what
a usable model needs.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from jsonschema import Draft7Validator

from .errors import InvalidModelError

MANIFEST_PATH = "MAR-INF/MANIFEST.json"

_OPTIONAL_STRING = {"type": ["string", "null"]}

# Structural checks only: section and field types, never required fields.
MANIFEST_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "createdOn": _OPTIONAL_STRING,
        "description": _OPTIONAL_STRING,
        "archiverVersion": _OPTIONAL_STRING,
        "runtime": _OPTIONAL_STRING,
        "model": {
            "type": ["object", "null"],
            "properties": {
                "modelName": _OPTIONAL_STRING,
                "modelVersion": _OPTIONAL_STRING,
                "description": _OPTIONAL_STRING,
                "handler": _OPTIONAL_STRING,
                "serializedFile": _OPTIONAL_STRING,
                "modelFile": _OPTIONAL_STRING,
                "extensions": _OPTIONAL_STRING,
                "requirementsFile": _OPTIONAL_STRING,
            },
        },
        "engine": {
            "type": ["object", "null"],
            "properties": {
                "engineName": _OPTIONAL_STRING,
                "engineVersion": _OPTIONAL_STRING,
            },
        },
    },
}

_validator = Draft7Validator(MANIFEST_SCHEMA)


class RuntimeType(Enum):
    """Runtimes a model archive may declare."""

    PYTHON = "python"
    PYTHON2 = "python2"
    PYTHON3 = "python3"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional[RuntimeType]:
        """Map a manifest runtime string to a member; unknown values map to None."""
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass
class ModelSection:
    """The ``model`` section of a manifest."""

    model_name: Optional[str] = None
    model_version: Optional[str] = None
    description: Optional[str] = None
    handler: Optional[str] = None
    serialized_file: Optional[str] = None
    model_file: Optional[str] = None
    extensions: Optional[str] = None
    requirements_file: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ModelSection:
        return cls(
            model_name=data.get("modelName"),
            model_version=data.get("modelVersion"),
            description=data.get("description"),
            handler=data.get("handler"),
            serialized_file=data.get("serializedFile"),
            model_file=data.get("modelFile"),
            extensions=data.get("extensions"),
            requirements_file=data.get("requirementsFile"),
        )


@dataclass
class EngineSection:
    """The optional ``engine`` section of a manifest."""

    engine_name: Optional[str] = None
    engine_version: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineSection:
        return cls(
            engine_name=data.get("engineName"),
            engine_version=data.get("engineVersion"),
        )


@dataclass
class Manifest:
    """Parsed manifest. Absent sections are None."""

    created_on: Optional[str] = None
    description: Optional[str] = None
    archiver_version: Optional[str] = None
    runtime: Optional[RuntimeType] = None
    model: Optional[ModelSection] = None
    engine: Optional[EngineSection] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Manifest:
        """Create from a decoded manifest document.

        Raises:
            InvalidModelError: A section or field has the wrong JSON type.
        """
        errors = sorted(_validator.iter_errors(data), key=lambda e: list(e.absolute_path))
        if errors:
            err = errors[0]
            path = ".".join(str(p) for p in err.absolute_path) or "(root)"
            raise InvalidModelError(f"Failed to parse manifest file: {path}: {err.message}")

        model = data.get("model")
        engine = data.get("engine")
        return cls(
            created_on=data.get("createdOn"),
            description=data.get("description"),
            archiver_version=data.get("archiverVersion"),
            runtime=RuntimeType.parse(data.get("runtime")),
            model=ModelSection.from_dict(model) if model is not None else None,
            engine=EngineSection.from_dict(engine) if engine is not None else None,
        )


def read_manifest(model_dir: Path) -> Manifest:
    """Load the manifest of an extracted archive.

    A missing manifest file is not an error here; it yields an empty
    :class:`Manifest`, which then fails :func:`validate_manifest`.

    Raises:
        InvalidModelError: The manifest file exists but cannot be parsed.
    """
    manifest_file = Path(model_dir) / MANIFEST_PATH
    if not manifest_file.is_file():
        return Manifest()

    try:
        with open(manifest_file, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidModelError(f"Failed to parse manifest file: {e}") from e

    return Manifest.from_dict(data)


def validate_manifest(manifest: Manifest) -> None:
    """Check the fields every servable model needs.

    Raises:
        InvalidModelError: Naming the first missing field.
    """
    model = manifest.model
    if model is None:
        raise InvalidModelError("Missing Model entry in manifest file.")

    if model.model_name is None:
        raise InvalidModelError("Model name is not defined.")

    if manifest.runtime is None:
        raise InvalidModelError("Runtime is not defined or invalid.")

    if manifest.engine is not None and manifest.engine.engine_name is None:
        raise InvalidModelError("engineName is required in <engine>.")
