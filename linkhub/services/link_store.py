from __future__ import annotations

import json
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path

from flask import Flask, current_app

from linkhub.models import Link

_STORE_LOCKS: dict[str, threading.RLock] = {}
_STORE_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    key = str(path.resolve())
    with _STORE_LOCKS_GUARD:
        lock = _STORE_LOCKS.get(key)
        if lock is None:
            lock = threading.RLock()
            _STORE_LOCKS[key] = lock
        return lock


class LinkStore:
    """The hub's entries, kept as one JSON array in ``path``.

    Writers inside this process are serialized per file; the file itself is
    replaced atomically. Concurrent writers in other processes are
    last-write-wins.
    """

    def __init__(self, path, logger=None):
        self.path = Path(path)
        self.logger = logger
        self._lock = _lock_for(self.path)

    def read_raw(self) -> list:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        parsed = json.loads(raw)
        if not isinstance(parsed, list):
            if self.logger:
                self.logger.warning(
                    "%s is not a JSON array; treating it as empty.", self.path
                )
            return []
        return parsed

    def read(self) -> list[Link]:
        return [Link.from_dict(item) for item in self.read_raw() if isinstance(item, dict)]

    def write(self, links) -> None:
        payload = [link.as_dict() for link in links]
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(payload, handle, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise

    @contextmanager
    def transaction(self):
        """Hold the store lock around a read-modify-write cycle.

        Yields the current entries; callers persist the result with
        :meth:`write` before leaving the block.
        """
        with self._lock:
            yield self.read()


def get_link_store(app: Flask | None = None) -> LinkStore:
    app = app or current_app
    return LinkStore(app.config["LINKS_FILE"], logger=app.logger)
