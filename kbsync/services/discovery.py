"""
Incremental Discovery Service

Drives one provider's paginated API through repeated fetch -> stage cycles:

    Idle -> Fetching -> Staging -> {ContinuePaging | Exhausted}

- The first run of a window fixes `since = now - window_days`; later runs
  resume from the stored cursor/page.
- A page whose items were all already staged does not end the run: the loop
  advances to the next page on its own, so an incremental sync never stops on
  a page of duplicates.
- The run stops once something new is staged or the provider has no more
  pages, and reports cumulative staged/skipped totals.
- Page fetches per run are capped; hitting the cap returns a warning result.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from kbsync.config import get_settings
from kbsync.errors import ContractViolationError
from kbsync.integrations.base import AdapterRegistry, ProviderAdapter
from kbsync.models.staging import (
    DiscoveryCursor,
    DiscoveryResult,
    DiscoveryStatus,
    PageRequest,
    PaginationStyle,
    SourceType,
)
from kbsync.services.discovery_state import DiscoveryStateStore
from kbsync.services.staging_store import StagingCollaborator
from kbsync.utils.cancellation import CancellationToken, is_cancelled

logger = logging.getLogger(__name__)


@dataclass
class DiscoveryOutcome:
    """Result of one invocation plus the state to persist for the next one."""

    result: DiscoveryResult
    state: DiscoveryCursor


class DiscoveryPaginator:
    """
    Runs the fetch -> stage loop for one (provider, library, customer) key.

    Holds no state between calls: the continuation state is passed in and the
    updated state is returned.
    """

    def __init__(
        self,
        staging: StagingCollaborator,
        max_iterations: Optional[int] = None,
        page_delay_seconds: Optional[float] = None,
        page_size: Optional[int] = None,
    ):
        settings = get_settings()
        self.staging = staging
        self.max_iterations = (
            max_iterations if max_iterations is not None else settings.discovery_max_iterations
        )
        self.default_page_delay = (
            page_delay_seconds
            if page_delay_seconds is not None
            else settings.discovery_page_delay_seconds
        )
        self.page_size = page_size if page_size is not None else settings.discovery_page_size

    def _validate_state(self, adapter: ProviderAdapter, state: DiscoveryCursor) -> None:
        if state.source_type != adapter.source_type:
            raise ContractViolationError(
                f"State for {state.source_type.value} passed to {adapter.source_type.value} adapter"
            )
        if adapter.pagination == PaginationStyle.PAGE and state.cursor is not None:
            raise ContractViolationError(
                f"{adapter.display_name} uses page pagination but state carries a cursor"
            )
        if adapter.pagination == PaginationStyle.CURSOR and state.page is not None:
            raise ContractViolationError(
                f"{adapter.display_name} uses cursor pagination but state carries a page"
            )

    async def _wait_between_pages(
        self, delay: float, cancel_token: Optional[CancellationToken]
    ) -> bool:
        """Observe the inter-page delay. Returns True if cancelled meanwhile."""
        if cancel_token is not None:
            return await cancel_token.sleep(delay)
        await asyncio.sleep(delay)
        return False

    async def discover(
        self,
        adapter: ProviderAdapter,
        state: DiscoveryCursor,
        window_days: int,
        cancel_token: Optional[CancellationToken] = None,
    ) -> DiscoveryOutcome:
        """
        Run one discovery invocation.

        Args:
            adapter: Provider adapter to page through
            state: Continuation state for this key (empty for a fresh window)
            window_days: Size of the time window when opening a fresh one
            cancel_token: Checked before every page fetch and staging call

        Returns:
            DiscoveryOutcome with cumulative counters and the next state

        Raises:
            ContractViolationError: On mixed page/cursor pagination
        """
        self._validate_state(adapter, state)

        uses_cursor = adapter.pagination == PaginationStyle.CURSOR
        delay = (
            adapter.page_delay_seconds
            if adapter.page_delay_seconds is not None
            else self.default_page_delay
        )

        since = state.since
        if since is None:
            since = datetime.now(timezone.utc) - timedelta(days=window_days)
            logger.info(
                f"Opening new {adapter.source_type.value} discovery window since {since.isoformat()}"
            )
        cursor = state.cursor if uses_cursor else None
        page = None if uses_cursor else (state.page or 1)

        staged_total = 0
        skipped_total = 0
        pages_fetched = 0

        def position() -> DiscoveryCursor:
            # Points at the next page not yet staged
            return DiscoveryCursor(
                source_type=state.source_type,
                library_id=state.library_id,
                customer_id=state.customer_id,
                cursor=cursor,
                page=page,
                since=since,
            )

        def result(status: DiscoveryStatus, **kwargs) -> DiscoveryResult:
            return DiscoveryResult(
                source_type=adapter.source_type,
                status=status,
                staged=staged_total,
                skipped=skipped_total,
                total=staged_total + skipped_total,
                pages_fetched=pages_fetched,
                **kwargs,
            )

        while True:
            if pages_fetched >= self.max_iterations:
                warning = (
                    f"Stopped after {pages_fetched} pages without new {adapter.item_label}; "
                    f"run discovery again to continue"
                )
                logger.warning(f"{adapter.display_name}: {warning}")
                return DiscoveryOutcome(
                    result(DiscoveryStatus.ITERATION_LIMIT, has_more=True, warning=warning),
                    position(),
                )

            if is_cancelled(cancel_token):
                logger.info(f"{adapter.display_name} discovery cancelled before page fetch")
                return DiscoveryOutcome(
                    result(DiscoveryStatus.CANCELLED, has_more=True), position()
                )

            if pages_fetched > 0 and delay > 0:
                if await self._wait_between_pages(delay, cancel_token):
                    logger.info(f"{adapter.display_name} discovery cancelled between pages")
                    return DiscoveryOutcome(
                        result(DiscoveryStatus.CANCELLED, has_more=True), position()
                    )

            request = PageRequest(
                cursor=cursor,
                page=page,
                since=since,
                window_days=window_days,
                customer_id=state.customer_id,
                limit=self.page_size,
            )
            logger.info(
                f"Fetching {adapter.item_label} from {adapter.display_name} "
                f"({'cursor=' + str(cursor) if uses_cursor else 'page=' + str(page)})"
            )
            provider_page = await adapter.list_items(request)
            pages_fetched += 1

            if not provider_page.items:
                logger.info(f"No {adapter.item_label} returned, resetting discovery window")
                return DiscoveryOutcome(
                    result(
                        DiscoveryStatus.EXHAUSTED,
                        has_more=False,
                        message=f"No new {adapter.item_label} found in this time range",
                    ),
                    state.reset(),
                )

            has_more = provider_page.has_more
            if uses_cursor and has_more and not provider_page.next_cursor:
                raise ContractViolationError(
                    f"{adapter.display_name} reported more pages without a cursor"
                )

            if is_cancelled(cancel_token):
                logger.info(f"{adapter.display_name} discovery cancelled before staging")
                return DiscoveryOutcome(
                    result(DiscoveryStatus.CANCELLED, has_more=True), position()
                )

            stage_result = await self.staging.stage(
                provider_page.items,
                adapter.source_type,
                state.library_id,
                state.customer_id,
            )
            staged_total += stage_result.staged
            skipped_total += stage_result.skipped

            if uses_cursor:
                cursor = provider_page.next_cursor
            else:
                page += 1

            if stage_result.staged > 0 or not has_more:
                next_state = position() if has_more else state.reset()
                logger.info(
                    f"{adapter.display_name} discovery finished: {staged_total} staged, "
                    f"{skipped_total} skipped over {pages_fetched} pages (has_more={has_more})"
                )
                return DiscoveryOutcome(
                    result(DiscoveryStatus.COMPLETED, has_more=has_more), next_state
                )

            logger.info(
                f"All {len(provider_page.items)} {adapter.item_label} on this page were already "
                f"staged, advancing to the next page"
            )


class DiscoveryService:
    """
    Runs discovery for a (source_type, library, customer) key using the stored
    state, serializing runs for the same key.
    """

    def __init__(
        self,
        adapters: AdapterRegistry,
        staging: StagingCollaborator,
        state_store: Optional[DiscoveryStateStore] = None,
        paginator: Optional[DiscoveryPaginator] = None,
    ):
        self.adapters = adapters
        self.staging = staging
        self.state_store = state_store or DiscoveryStateStore()
        self.paginator = paginator or DiscoveryPaginator(staging)

    async def run(
        self,
        source_type: SourceType,
        library_id: str,
        customer_id: Optional[str] = None,
        window_days: Optional[int] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> DiscoveryResult:
        """
        Raises:
            ContractViolationError: If no adapter is registered for source_type
        """
        adapter = self.adapters.get(source_type)
        if adapter is None:
            raise ContractViolationError(
                f"Discovery not supported for source type: {source_type.value}"
            )

        window_days = window_days or get_settings().discovery_window_days

        async with self.state_store.hold(source_type, library_id, customer_id):
            state = self.state_store.get(source_type, library_id, customer_id)
            outcome = await self.paginator.discover(
                adapter, state, window_days, cancel_token=cancel_token
            )
            self.state_store.save(outcome.state)

        return outcome.result
