"""
Staging Store

Holds raw provider content pending assignment to knowledge units.

The store alone owns deduplication: an item is identified by
(source_type, external_id, library_id, customer_id). Staging an item that is
already known refreshes its title/content/metadata and counts it as skipped.
Stored in-memory only; a lock keeps the per-item check-then-insert atomic.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol, Tuple

from kbsync.models.staging import RawItem, SourceType, StagedItem, StageResult
from kbsync.utils.helpers import generate_preview

logger = logging.getLogger(__name__)


class StagingCollaborator(Protocol):
    """What the discovery loop needs from a staging store."""

    async def stage(
        self,
        items: List[RawItem],
        source_type: SourceType,
        library_id: str,
        customer_id: Optional[str] = None,
    ) -> StageResult:
        ...


class InMemoryStagingStore:
    """Thread-safe in-memory staging store."""

    def __init__(self):
        self._lock = threading.Lock()
        self._items: Dict[str, StagedItem] = {}
        self._by_key: Dict[Tuple[str, str, str, Optional[str]], str] = {}

    async def stage(
        self,
        items: List[RawItem],
        source_type: SourceType,
        library_id: str,
        customer_id: Optional[str] = None,
    ) -> StageResult:
        """
        Stage a batch of raw items.

        Args:
            items: Raw items from a provider
            source_type: Provider the items came from
            library_id: Target library
            customer_id: Optional customer scope

        Returns:
            StageResult with newly staged vs already known counts
        """
        staged = 0
        skipped = 0

        with self._lock:
            for raw in items:
                item = StagedItem(
                    source_type=source_type,
                    external_id=raw.external_id,
                    library_id=library_id,
                    customer_id=customer_id,
                    title=raw.title,
                    content=raw.content,
                    content_preview=generate_preview(raw.content),
                    metadata=raw.metadata,
                )
                existing_id = self._by_key.get(item.dedup_key)

                if existing_id:
                    existing = self._items[existing_id]
                    self._items[existing_id] = existing.model_copy(
                        update={
                            "title": item.title,
                            "content": item.content,
                            "content_preview": item.content_preview,
                            "metadata": item.metadata,
                        }
                    )
                    skipped += 1
                    continue

                self._items[item.id] = item
                self._by_key[item.dedup_key] = item.id
                staged += 1

        logger.info(
            f"Staged {staged} new {source_type.value} items for library {library_id} "
            f"({skipped} already known)"
        )
        return StageResult(staged=staged, skipped=skipped, total=len(items))

    def get_item(self, item_id: str) -> Optional[StagedItem]:
        with self._lock:
            return self._items.get(item_id)

    def query(
        self,
        library_id: Optional[str] = None,
        source_type: Optional[SourceType] = None,
        customer_id: Optional[str] = None,
        pending_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[StagedItem], int]:
        """
        Query staged items, newest first.

        Returns:
            Tuple of (page of items, total matching count)
        """
        with self._lock:
            items = list(self._items.values())

        if library_id:
            items = [i for i in items if i.library_id == library_id]
        if source_type:
            items = [i for i in items if i.source_type == source_type]
        if customer_id:
            items = [i for i in items if i.customer_id == customer_id]
        if pending_only:
            items = [i for i in items if i.incorporated_at is None]

        items.sort(key=lambda i: i.staged_at, reverse=True)
        return items[offset:offset + limit], len(items)

    def mark_incorporated(self, item_id: str) -> Optional[StagedItem]:
        """Mark a staged item as incorporated into a knowledge unit."""
        with self._lock:
            item = self._items.get(item_id)
            if item is None:
                return None
            updated = item.model_copy(update={"incorporated_at": datetime.now(timezone.utc)})
            self._items[item_id] = updated
        logger.info(f"Marked staged item {item_id} as incorporated")
        return updated
