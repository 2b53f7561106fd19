"""
Base Provider Adapter

Every external content source (Slack, Zendesk, ...) exposes one paginated list
call. An adapter declares whether it continues with a cursor token or a page
number; the discovery loop never chooses for it.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from kbsync.models.staging import PageRequest, PaginationStyle, ProviderPage, SourceType

logger = logging.getLogger(__name__)


class ProviderAdapter(ABC):
    """Abstract base class for provider adapters."""

    source_type: SourceType
    display_name: str
    item_label: str = "items"
    pagination: PaginationStyle = PaginationStyle.PAGE
    page_delay_seconds: Optional[float] = None  # None: use the configured default

    @abstractmethod
    async def list_items(self, request: PageRequest) -> ProviderPage:
        """
        Fetch one page of items updated since request.since.

        Cursor adapters read request.cursor (None for the first page) and set
        next_cursor whenever has_more is true. Page adapters read request.page.
        """

    async def test_connection(self) -> Dict[str, object]:
        """Validate credentials. Override where the provider supports it."""
        return {"success": True}


class AdapterRegistry:
    """Provider adapters available to the discovery service, by source type."""

    def __init__(self, adapters: Optional[List[ProviderAdapter]] = None):
        self._adapters: Dict[SourceType, ProviderAdapter] = {}
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: ProviderAdapter) -> None:
        self._adapters[adapter.source_type] = adapter
        logger.debug(f"Registered provider adapter: {adapter.source_type.value}")

    def get(self, source_type: SourceType) -> Optional[ProviderAdapter]:
        return self._adapters.get(source_type)

    def info(self) -> List[Dict[str, str]]:
        """Adapter display names for UI."""
        return [
            {"source_type": a.source_type.value, "display_name": a.display_name}
            for a in self._adapters.values()
        ]
