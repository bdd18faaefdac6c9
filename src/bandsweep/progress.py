# Copyright (c) Syntropy Systems
"""Crash-safe persistence of campaign progress."""
from __future__ import annotations

import logging
import os
from contextlib import suppress
from pathlib import Path

from pydantic import ValidationError

from bandsweep.errors import ProgressLoadError, ProgressSaveError
from bandsweep.models.results import Progress, utcnow

logger = logging.getLogger(__name__)


class ProgressStore:
    """Reads and atomically rewrites a single progress JSON file.

    A reader always sees either the previous complete snapshot or the new one:
    the snapshot is written to ``<path>.tmp``, synced, then renamed over the
    target.
    """

    path: Path

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    @property
    def tmp_path(self) -> Path:
        """Scratch file used while writing a new snapshot."""
        return self.path.with_suffix(self.path.suffix + ".tmp")

    def exists(self) -> bool:
        """Return whether a progress file is present."""
        return self.path.exists()

    def load(self) -> Progress | None:
        """Load the snapshot, or None if there is no progress file.

        Raises:
            ProgressLoadError: the file exists but cannot be read or parsed

        """
        if not self.path.exists():
            return None

        try:
            progress = Progress.model_validate_json(self.path.read_bytes())
        except (OSError, ValidationError, ValueError) as e:
            msg = f"Could not load progress file {self.path}: {e}"
            raise ProgressLoadError(msg) from e

        logger.info(
            "Loaded progress from %s (%d attempted, last updated %s)",
            self.path,
            len(progress.completed_combinations),
            progress.last_updated,
        )
        return progress

    def save(self, progress: Progress) -> None:
        """Write the full snapshot atomically and stamp ``last_updated``.

        Raises:
            ProgressSaveError: the snapshot could not be written

        """
        progress.last_updated = utcnow()
        payload = progress.model_dump_json(by_alias=True, indent=2)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.tmp_path.open("w", encoding="utf-8") as f:
                _ = f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(self.tmp_path, self.path)
        except OSError as e:
            with suppress(OSError):
                self.tmp_path.unlink()
            msg = f"Could not save progress file {self.path}: {e}"
            raise ProgressSaveError(msg) from e

        logger.debug("Progress saved to %s", self.path)

    def delete(self) -> bool:
        """Remove the progress file. Returns whether a file was removed."""
        if not self.path.exists():
            return False
        self.path.unlink()
        logger.info("Removed progress file %s", self.path)
        return True
