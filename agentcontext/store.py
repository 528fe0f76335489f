"""
Persistence for the ledger and its history log.

The ledger is one JSON object rewritten in full on every mutation; history
is a separate JSON array, newest first, so it can grow without slowing the
hot path. Writes go through a temp file and os.replace, and mutating
callers hold an advisory lock for the whole load/mutate/store cycle.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

try:
    import fcntl
except ImportError:  # pragma: no cover - non-POSIX
    fcntl = None  # type: ignore[assignment]

from .config import LedgerConfig, load_config
from .models import HistoryEntry, LedgerState

logger = logging.getLogger(__name__)


class LedgerBusyError(TimeoutError):
    """Another process held the ledger lock for longer than the timeout."""


def _atomic_write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = (json.dumps(data, indent=2, ensure_ascii=False) + "\n").encode("utf-8")
    tmp_fp: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="wb",
            delete=False,
            dir=str(path.parent),
            prefix=path.name + ".tmp.",
        ) as f:
            tmp_fp = Path(f.name)
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(str(tmp_fp), str(path))
        tmp_fp = None
    finally:
        if tmp_fp is not None and tmp_fp.exists():
            tmp_fp.unlink()


def _read_json(path: Path) -> Any:
    """Read JSON; None if the file is missing, unreadable, or malformed."""
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable %s: %s", path, e)
        return None


class LedgerStore:
    """File-backed ledger for one context root.

    Storage layout (relative to the context root, configurable):
        state/.sleep.json          ledger state
        state/.sleep-history.json  consolidation history
        state/.sleep.lock          advisory lock
    """

    def __init__(self, context_root: Path, config: LedgerConfig | None = None):
        self.context_root = context_root
        self.config = config or load_config(context_root)
        self.state_path = context_root / self.config.state_file
        self.history_path = context_root / self.config.history_file
        self.lock_path = context_root / self.config.lock_file
        self._lock_depth = 0

    # --- State ---

    def load(self) -> LedgerState:
        """Load the ledger. Missing or malformed files give a fresh state."""
        data = _read_json(self.state_path)
        if data is None:
            return LedgerState()
        if not isinstance(data, dict):
            logger.warning("Ignoring %s: expected a JSON object", self.state_path)
            return LedgerState()
        return LedgerState.from_dict(data)

    def save(self, state: LedgerState) -> None:
        _atomic_write_json(self.state_path, state.to_dict())

    @contextmanager
    def lock(self) -> Iterator[None]:
        """Exclusive advisory lock on the ledger (re-entrant per store)."""
        if self._lock_depth > 0 or fcntl is None:
            self._lock_depth += 1
            try:
                yield
            finally:
                self._lock_depth -= 1
            return

        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(str(self.lock_path), os.O_CREAT | os.O_RDWR, 0o600)
        start = time.monotonic()
        try:
            while True:
                try:
                    fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                    break
                except BlockingIOError:
                    if (time.monotonic() - start) >= self.config.lock_timeout_s:
                        raise LedgerBusyError(f"Ledger is busy (lock: {self.lock_path}); retry shortly")
                    time.sleep(0.05)
            self._lock_depth = 1
            try:
                yield
            finally:
                self._lock_depth = 0
                fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)

    @contextmanager
    def transaction(self) -> Iterator[LedgerState]:
        """
        Load, yield for mutation, and save on clean exit.

        If the block raises, nothing is written and the exception propagates.
        """
        with self.lock():
            state = self.load()
            yield state
            self.save(state)

    # --- History ---

    def read_history(self, limit: int | None = None) -> list[HistoryEntry]:
        """Read history entries, newest first."""
        data = _read_json(self.history_path)
        if not isinstance(data, list):
            return []
        entries = []
        for raw in data:
            if not isinstance(raw, dict):
                continue
            try:
                entries.append(HistoryEntry.from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed history entry: %s", e)
        if limit is not None:
            return entries[:limit]
        return entries

    def write_history(self, entries: list[HistoryEntry]) -> None:
        _atomic_write_json(self.history_path, [e.to_dict() for e in entries])

    def prepend_history(self, entry: HistoryEntry) -> None:
        with self.lock():
            data = _read_json(self.history_path)
            raw = data if isinstance(data, list) else []
            _atomic_write_json(self.history_path, [entry.to_dict(), *raw])
