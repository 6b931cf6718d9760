"""
Append-only JSON-lines error logs.

One JSON object per line, file opened in append mode for every write, parent
directory created on demand. File I/O runs in a worker thread so the event
loop keeps serving requests; a per-log lock keeps lines from interleaving.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Union

from faultline.utils.logging import get_logger

logger = get_logger(__name__)


class AppendOnlyLog:
    """Line-delimited JSON file that is only ever appended to."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    async def append(self, record: Dict[str, Any]) -> None:
        """
        Append one record as a single JSON line.

        Raises:
            OSError: If the directory or file cannot be written
            TypeError: If the record is not JSON serialisable
        """
        line = json.dumps(record, ensure_ascii=False) + "\n"
        async with self._lock:
            await asyncio.to_thread(self._write_line, line)

    def _write_line(self, line: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(line)

    def read_records(self) -> list[Dict[str, Any]]:
        """Load every record; used by tooling and tests, never by the write path."""
        if not self.path.exists():
            return []
        with self.path.open("r", encoding="utf-8") as handle:
            return [json.loads(line) for line in handle if line.strip()]
