"""
Append-only JSONL output for training records.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from typing import Optional, TextIO

from adapter.models import TrainingRecord
from errors import OutputWriteError

logger = logging.getLogger(__name__)


class JsonlSink:
    """
    One output file per run, shared by every writer.

    Writes are serialized by a lock; each record is one complete line.
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()
        self.lines_written = 0
        try:
            self._file: Optional[TextIO] = open(path, "w", encoding="utf-8")
        except OSError as e:
            raise OutputWriteError(path, str(e)) from e

    @classmethod
    def create(cls, output_dir: str, started_at: Optional[float] = None) -> "JsonlSink":
        """
        Create ``<output_dir>/output_<start-ms>.jsonl``, making the directory if needed.
        """
        started_at = time.time() if started_at is None else started_at
        try:
            os.makedirs(output_dir, exist_ok=True)
        except OSError as e:
            raise OutputWriteError(output_dir, str(e)) from e
        return cls(os.path.join(output_dir, f"output_{int(started_at * 1000)}.jsonl"))

    @property
    def closed(self) -> bool:
        return self._file is None

    def write(self, record: TrainingRecord) -> None:
        line = record.to_line()
        with self._lock:
            if self._file is None:
                raise OutputWriteError(self.path, "sink already closed")
            try:
                self._file.write(line)
                self._file.flush()
            except OSError as e:
                raise OutputWriteError(self.path, str(e)) from e
            self.lines_written += 1

    def close(self) -> None:
        with self._lock:
            if self._file is None:
                return
            self._file.close()
            self._file = None
        logger.debug(f"Closed {self.path} after {self.lines_written} lines")


__all__ = ["JsonlSink"]
