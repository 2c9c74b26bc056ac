"""Upload id to stored blueprint location mapping."""

from __future__ import annotations

import threading
from typing import Dict, Optional, Protocol

from common.logging import get_logger

from .errors import DuplicateBlueprintError
from .models import BlueprintRecord

LOGGER = get_logger(__name__)


class BlueprintRegistry(Protocol):
    """Insert-once, read-many store of upload records."""

    def put(self, record: BlueprintRecord) -> None: ...

    def get(self, blueprint_id: str) -> Optional[BlueprintRecord]: ...

    def __len__(self) -> int: ...


class InMemoryBlueprintRegistry:
    """Process-lifetime registry guarded by a lock.

    Entries are never evicted; a restart forgets every upload, so this is not
    a system of record.
    """

    def __init__(self) -> None:
        self._records: Dict[str, BlueprintRecord] = {}
        self._lock = threading.Lock()

    def put(self, record: BlueprintRecord) -> None:
        with self._lock:
            if record.id in self._records:
                raise DuplicateBlueprintError(f"Blueprint id already registered: {record.id}")
            self._records[record.id] = record
        LOGGER.debug("Registered blueprint", blueprint_id=record.id)

    def get(self, blueprint_id: str) -> Optional[BlueprintRecord]:
        with self._lock:
            return self._records.get(blueprint_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


__all__ = ["BlueprintRegistry", "InMemoryBlueprintRegistry"]
