"""Filesystem mirror of created recipe records, for disaster recovery only."""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Mapping

from .constants import JSON_INDENT
from .types import ExtractedRecipe

LOGGER = logging.getLogger(__name__)

_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]+")
MAX_TITLE_CHARS = 80


def sanitize_filename(value: str, *, max_chars: int = MAX_TITLE_CHARS) -> str:
    """Turn free text into a filesystem-safe name fragment."""

    cleaned = _UNSAFE_FILENAME_RE.sub("_", value.strip()).strip("._")
    return cleaned[:max_chars] or "untitled"


class RecipeBackup:
    """Write one JSON file per created record under `backup_dir`.

    Backups are best-effort: write failures are logged and swallowed so a full
    disk never interrupts a crawl.
    """

    def __init__(self, backup_dir: str | Path) -> None:
        self.backup_dir = Path(backup_dir)

    def path_for(self, record: ExtractedRecipe) -> Path:
        title = sanitize_filename(record.display_name)
        return self.backup_dir / f"{record.id}_{title}.json"

    def save(self, record: ExtractedRecipe) -> Path | None:
        """Write `record`; return the written path, or None on failure."""

        path = self.path_for(record)
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            _atomic_write_json(path, record.to_json())
        except OSError as exc:
            LOGGER.error("Failed to write backup for %s: %s", record.url, exc)
            return None

        LOGGER.debug("Backed up %s to %s", record.url, path)
        return path


def _atomic_write_json(path: Path, payload: Mapping[str, Any]) -> None:
    content = json.dumps(payload, ensure_ascii=False, indent=JSON_INDENT, sort_keys=True) + "\n"
    tmp_fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=path.name + ".",
        suffix=".tmp",
    )
    try:
        with os.fdopen(tmp_fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass
        raise


__all__ = [
    "RecipeBackup",
    "sanitize_filename",
]
