from __future__ import annotations

import logging
from typing import Dict, Iterator

from .models import ClearanceRecord

logger = logging.getLogger(__name__)


class ClearanceCache:
    """Last server entry verdict per space, scoped to one identity.

    Records are only ever written from server responses. Writes overwrite
    unconditionally; removals are idempotent.
    """

    def __init__(self) -> None:
        self._records: Dict[str, ClearanceRecord] = {}

    def get(self, space_id: str) -> ClearanceRecord | None:
        return self._records.get(space_id)

    def write(self, space_id: str, record: ClearanceRecord) -> None:
        self._records[space_id] = record

    def invalidate(self, space_id: str) -> bool:
        removed = self._records.pop(space_id, None) is not None
        if removed:
            logger.debug("invalidated clearance for %s", space_id)
        return removed

    def clear(self) -> None:
        if self._records:
            logger.debug("clearing clearance for %d igloos", len(self._records))
        self._records.clear()

    def snapshot(self) -> Dict[str, ClearanceRecord]:
        return dict(self._records)

    def __contains__(self, space_id: object) -> bool:
        return space_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._records))
