"""Flat-file store for the strategy dashboard documents.

Each document type maps to one whitelisted JSON file inside the data
directory. Writes keep a single ``.backup.json`` copy of the previous
version next to the file.
"""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Any

from app.core.errors import DataNotFoundError, DataStoreError, ValidationAppError

logger = logging.getLogger(__name__)

TYPE_TO_FILENAME: dict[str, str] = {
    "outcomes": "strategic-outcomes.json",
    "revenue": "revenue-targets.json",
    "priorities": "priorities.json",
    "history": "kpi-history.json",
}

ALL_TYPE = "all"
READABLE_TYPES: tuple[str, ...] = (*TYPE_TO_FILENAME, ALL_TYPE)
WRITABLE_TYPES: tuple[str, ...] = tuple(TYPE_TO_FILENAME)


class StrategyDataStore:
    """Read and write strategy JSON documents under ``data_dir``."""

    def __init__(self, data_dir: str | Path) -> None:
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _resolve(self, filename: str) -> Path:
        """Return the absolute path for ``filename``, refusing traversal."""
        if not filename.endswith(".json") or ".." in filename or "/" in filename or "\\" in filename:
            raise ValidationAppError(code="invalid_filename", message="Invalid filename")

        base = self._data_dir.resolve()
        path = (base / filename).resolve()
        if not path.is_relative_to(base):
            raise ValidationAppError(code="path_traversal", message="Path traversal detected")
        return path

    def _read_file(self, filename: str) -> Any | None:
        path = self._resolve(filename)
        try:
            with path.open("r", encoding="utf-8") as fh:
                return json.load(fh)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(
                "data_store.read_failed",
                extra={"data_file": filename, "error_type": type(exc).__name__},
            )
            return None

    def read(self, data_type: str | None) -> Any:
        """Load one document, or every document when ``data_type`` is ``all``.

        Args:
            data_type: One of READABLE_TYPES; None is rejected like an unknown type.

        Returns:
            Parsed JSON. For ``all`` a dict keyed by type, with ``None`` for
            missing documents.

        Raises:
            ValidationAppError: Unknown type.
            DataNotFoundError: A single requested document does not exist.
        """
        if data_type not in READABLE_TYPES:
            raise ValidationAppError(
                code="invalid_type",
                message=f"Type must be one of: {', '.join(READABLE_TYPES)}",
                details={"allowed_types": list(READABLE_TYPES)},
            )

        if data_type == ALL_TYPE:
            return {name: self._read_file(filename) for name, filename in TYPE_TO_FILENAME.items()}

        data = self._read_file(TYPE_TO_FILENAME[data_type])
        if data is None:
            raise DataNotFoundError(
                code="data_not_found",
                message="Data not found",
                details={"data_type": data_type},
            )
        return data

    def write(self, data_type: str, payload: Any) -> Path:
        """Persist ``payload`` as the document for ``data_type``.

        The previous version, if any, is copied to ``<name>.backup.json``.

        Raises:
            ValidationAppError: Unknown/read-only type, or a null, false, zero or
                empty-string payload. Empty lists and objects are accepted.
            DataStoreError: The file could not be written.
        """
        if data_type not in WRITABLE_TYPES:
            raise ValidationAppError(
                code="invalid_type",
                message=f"Type must be one of: {', '.join(WRITABLE_TYPES)}",
                details={"allowed_types": list(WRITABLE_TYPES)},
            )
        if payload is None or (not payload and not isinstance(payload, (list, dict))):
            raise ValidationAppError(code="missing_data", message="Missing data payload")

        filename = TYPE_TO_FILENAME[data_type]
        path = self._resolve(filename)
        backup = path.with_name(filename.replace(".json", ".backup.json"))

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if path.is_file():
                shutil.copyfile(path, backup)
            with path.open("w", encoding="utf-8") as fh:
                json.dump(payload, fh, indent=2)
        except OSError as exc:
            logger.error(
                "data_store.write_failed",
                extra={"data_file": filename, "error_type": type(exc).__name__},
            )
            raise DataStoreError(code="data_store_error", message="Failed to save data") from exc

        logger.info("data_store.saved", extra={"data_type": data_type, "data_file": filename})
        return path
