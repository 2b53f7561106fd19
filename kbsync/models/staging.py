"""
Staging and Discovery Models

Raw provider items, staged items, and the continuation state of a discovery run.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4
from pydantic import BaseModel, Field


class SourceType(str, Enum):
    """External content provider type."""

    SLACK = "slack"
    ZENDESK = "zendesk"
    NOTION = "notion"
    GONG = "gong"
    URL = "url"
    DOCUMENT = "document"


class PaginationStyle(str, Enum):
    """How a provider continues a listing. Declared by the adapter."""

    CURSOR = "cursor"
    PAGE = "page"


class RawItem(BaseModel):
    """An item as discovered from a provider, before staging."""

    external_id: str = Field(..., description="Provider-side unique id")
    title: str
    content: str = ""
    metadata: Dict[str, Any] = Field(
        default_factory=dict, description="Provider-specific, opaque to the core"
    )


class StagedItem(BaseModel):
    """Raw content held pending assignment to a knowledge unit."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    source_type: SourceType
    external_id: str
    library_id: str
    customer_id: Optional[str] = None
    title: str
    content: str = ""
    content_preview: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)
    staged_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    incorporated_at: Optional[datetime] = None

    @property
    def dedup_key(self) -> Tuple[str, str, str, Optional[str]]:
        return (self.source_type.value, self.external_id, self.library_id, self.customer_id)


class StageResult(BaseModel):
    """Counts returned by the staging collaborator for one batch."""

    staged: int = Field(0, description="Newly staged items")
    skipped: int = Field(0, description="Items already known")
    total: int = Field(0, description="Items in the batch")


class PageRequest(BaseModel):
    """Arguments for one provider list call."""

    cursor: Optional[str] = None
    page: Optional[int] = None
    since: datetime
    window_days: int
    customer_id: Optional[str] = None
    limit: int = 25


class ProviderPage(BaseModel):
    """One page of provider results."""

    items: List[RawItem] = Field(default_factory=list)
    has_more: bool = False
    next_cursor: Optional[str] = None


class DiscoveryCursor(BaseModel):
    """
    Continuation state for one (provider, library, customer) key.

    Exactly one of cursor/page carries the position within a run. An empty
    cursor (no since, no cursor, no page) means the next run opens a fresh window.
    """

    source_type: SourceType
    library_id: str
    customer_id: Optional[str] = None
    cursor: Optional[str] = None
    page: Optional[int] = None
    since: Optional[datetime] = None

    @property
    def key(self) -> Tuple[str, str, Optional[str]]:
        return (self.source_type.value, self.library_id, self.customer_id)

    @property
    def is_empty(self) -> bool:
        return self.since is None and self.cursor is None and self.page is None

    def reset(self) -> "DiscoveryCursor":
        """Return an empty cursor for the same key."""
        return DiscoveryCursor(
            source_type=self.source_type,
            library_id=self.library_id,
            customer_id=self.customer_id,
        )


class DiscoveryStatus(str, Enum):
    """Why a discovery invocation returned."""

    COMPLETED = "completed"  # New items staged, or the provider has no more pages
    EXHAUSTED = "exhausted"  # Provider returned zero items
    ITERATION_LIMIT = "iteration_limit"  # Max page fetches reached without progress
    CANCELLED = "cancelled"


class DiscoveryResult(BaseModel):
    """Cumulative outcome of one discovery invocation."""

    source_type: SourceType
    status: DiscoveryStatus
    staged: int = 0
    skipped: int = 0
    total: int = 0
    pages_fetched: int = 0
    has_more: bool = False
    message: Optional[str] = None
    warning: Optional[str] = None
