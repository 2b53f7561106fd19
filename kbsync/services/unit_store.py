"""
Knowledge unit stores.

The matching routes load candidate units from a store when a request names a
library instead of passing units inline.
"""

import logging
import threading
from typing import Dict, Iterable, List, Optional, Protocol

from kbsync.models.knowledge import KnowledgeUnit

logger = logging.getLogger(__name__)


class KnowledgeUnitStore(Protocol):
    async def list_active_units(self, library_id: Optional[str] = None) -> List[KnowledgeUnit]:
        ...


class InMemoryUnitStore:
    """Knowledge units held in memory, keyed by id."""

    def __init__(self, units: Optional[Iterable[KnowledgeUnit]] = None):
        self._lock = threading.Lock()
        self._units: Dict[str, KnowledgeUnit] = {}
        for unit in units or []:
            self.add(unit)

    def add(self, unit: KnowledgeUnit) -> None:
        with self._lock:
            self._units[unit.id] = unit

    def remove(self, unit_id: str) -> None:
        with self._lock:
            self._units.pop(unit_id, None)

    async def list_active_units(self, library_id: Optional[str] = None) -> List[KnowledgeUnit]:
        """Active units, optionally restricted to one library."""
        with self._lock:
            units = list(self._units.values())
        return [
            unit
            for unit in units
            if unit.status == "active" and (library_id is None or unit.library_id == library_id)
        ]
