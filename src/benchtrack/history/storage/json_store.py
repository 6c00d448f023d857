"""JSON file storage for benchmark history.

This module persists history in the layout continuous-benchmarking
dashboards read: a mapping from tool to the ordered list of runs, each
run embedding its commit and bench list. Both plain JSON and the
``window.BENCHMARK_DATA = {...}`` script flavour are supported.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any

from benchtrack.core.exceptions import BenchtrackError, StorageError
from benchtrack.core.normalize import normalize
from benchtrack.history.models import HistoryRecord

logger = logging.getLogger(__name__)

JS_PREFIX = "window.BENCHMARK_DATA = "


class JSONFileStore:
    """JSON file storage for benchmark history.

    Uses atomic writes (temp file + fsync + rename) so a crash never leaves
    a torn file. The document read from disk is kept in memory and only
    ever appended to; run records and fields this class does not know
    about are written back untouched.

    Example:
        >>> storage = JSONFileStore("dev/bench/data.js", repo_url="https://github.com/org/repo")
        >>> store = await HistoryStore.open(storage)
    """

    def __init__(
        self,
        path: str | Path = "benchmark-data/data.json",
        repo_url: str | None = None,
    ) -> None:
        """Initialize the JSON file store.

        Args:
            path: Path to the history file. A ``.js`` suffix selects the
                script flavour for new files.
            repo_url: Repository URL recorded as ``repoUrl``.
        """
        self._path = Path(path)
        self._repo_url = repo_url
        self._document: dict[str, Any] | None = None
        self._as_script = self._path.suffix == ".js"
        # tool name -> key of "entries" its runs are filed under
        self._groups: dict[str, str] = {}
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_document(self) -> dict[str, Any]:
        """Read and decode the history file.

        Raises:
            StorageError: If the file cannot be read or is not a history document.
        """
        if not self._path.exists():
            return {"entries": {}}

        try:
            content = self._path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to read benchmark history from {self._path}: {e}") from e

        text = content.strip()
        if not text:
            return {"entries": {}}

        if text.startswith("window.BENCHMARK_DATA"):
            self._as_script = True
            _, _, text = text.partition("=")
            text = text.strip().rstrip(";")

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt benchmark history in {self._path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("entries", {}), dict):
            raise StorageError(f"Corrupt benchmark history in {self._path}: 'entries' must be an object")
        data.setdefault("entries", {})
        return data

    def _write_document(self, document: dict[str, Any]) -> None:
        """Write the document with an atomic replace."""
        self._path.parent.mkdir(parents=True, exist_ok=True)

        content = json.dumps(document, indent=2, ensure_ascii=False)
        if self._as_script:
            content = f"{JS_PREFIX}{content}"
        content += "\n"

        temp_fd, temp_path = tempfile.mkstemp(
            dir=self._path.parent,
            prefix=".benchtrack_",
            suffix=".tmp",
        )
        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            Path(temp_path).replace(self._path)
        except Exception:
            Path(temp_path).unlink(missing_ok=True)
            raise

    def _records_from_document(self, document: dict[str, Any]) -> list[HistoryRecord]:
        records: list[HistoryRecord] = []
        for group, runs in document["entries"].items():
            if not isinstance(runs, list):
                logger.warning(f"Skipping benchmark group '{group}' in {self._path}: expected a list of runs")
                continue
            for index, raw_run in enumerate(runs):
                payload = dict(raw_run) if isinstance(raw_run, dict) else raw_run
                if isinstance(payload, dict):
                    payload.setdefault("tool", group)
                try:
                    run = normalize(payload)
                except BenchtrackError as e:
                    logger.warning(f"Skipping unreadable run {group}[{index}] in {self._path}: {e}")
                    continue
                self._groups.setdefault(run.tool, group)
                records.extend(
                    HistoryRecord(tool=run.tool, commit=run.commit, entry=entry, run_timestamp=run.date)
                    for entry in run.benches
                )
        return records

    async def _load_document(self) -> dict[str, Any]:
        if self._document is None:
            self._document = self._read_document()
            for group, runs in self._document["entries"].items():
                for run in runs if isinstance(runs, list) else []:
                    if isinstance(run, dict) and isinstance(run.get("tool"), str):
                        self._groups.setdefault(run["tool"], group)
        return self._document

    async def load(self) -> list[HistoryRecord]:
        """Load every record from the history file.

        Returns:
            Records in file order.

        Raises:
            StorageError: If the file is unreadable or corrupt.
        """
        async with self._lock:
            self._document = self._read_document()
            self._groups.clear()
            return self._records_from_document(self._document)

    async def append(self, record: HistoryRecord) -> None:
        """Persist a record, filing it under its run.

        Entries sharing tool, commit and run timestamp are grouped into one
        run record; otherwise a new run record is appended for the tool.

        Args:
            record: The record to persist.

        Raises:
            StorageError: If the file cannot be written. The in-memory
                document is rolled back so it keeps matching the disk.
        """
        async with self._lock:
            document = await self._load_document()
            new_tool = record.tool not in self._groups
            group = self._groups.setdefault(record.tool, record.tool)
            new_group = group not in document["entries"]
            runs: list[Any] = document["entries"].setdefault(group, [])

            target = None
            for run in reversed(runs):
                if not isinstance(run, dict):
                    continue
                commit = run.get("commit") or {}
                if (
                    run.get("tool", group) == record.tool
                    and run.get("date") == record.run_timestamp
                    and commit.get("id") == record.commit_id
                ):
                    target = run
                    break

            previous_update = document.get("lastUpdate")
            previous_repo = document.get("repoUrl")
            if target is not None:
                target.setdefault("benches", []).append(record.entry.to_dict())
            else:
                runs.append(
                    {
                        "commit": record.commit.to_dict(),
                        "date": record.run_timestamp,
                        "tool": record.tool,
                        "benches": [record.entry.to_dict()],
                    }
                )

            document["lastUpdate"] = int(time.time() * 1000)
            if self._repo_url is not None:
                document["repoUrl"] = self._repo_url

            try:
                self._write_document(document)
            except (OSError, ValueError) as e:
                # ValueError covers text the codec cannot encode
                if target is not None:
                    target["benches"].pop()
                else:
                    runs.pop()
                if new_group:
                    del document["entries"][group]
                if new_tool:
                    del self._groups[record.tool]
                _restore(document, "lastUpdate", previous_update)
                _restore(document, "repoUrl", previous_repo)
                raise StorageError(f"Failed to write benchmark history to {self._path}: {e}") from e

            logger.debug(f"Persisted {record.key} @ {record.commit_id} to {self._path}")


def _restore(document: dict[str, Any], key: str, value: Any) -> None:
    if value is None:
        document.pop(key, None)
    else:
        document[key] = value
