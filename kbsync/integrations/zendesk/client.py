"""
Zendesk Ticket Adapter

Responsibilities:
- search.json: tickets updated since the window start, newest first
- tickets/{id}/comments.json: public comments appended to the ticket content
- Page pagination (page=N, next_page signals more)
- One RawItem per ticket, external id = ticket id
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from kbsync.errors import ProviderError
from kbsync.integrations.base import ProviderAdapter
from kbsync.models.staging import (
    PageRequest,
    PaginationStyle,
    ProviderPage,
    RawItem,
    SourceType,
)
from kbsync.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)


class ZendeskTicketAdapter(ProviderAdapter):
    """Zendesk tickets as discovery items."""

    source_type = SourceType.ZENDESK
    display_name = "Zendesk Tickets"
    item_label = "tickets"
    pagination = PaginationStyle.PAGE

    def __init__(
        self,
        credentials: Optional[CredentialStore] = None,
        session: Optional[requests.Session] = None,
    ):
        self.credentials = credentials or CredentialStore()
        self.session = session or requests.Session()

    @property
    def base_url(self) -> str:
        subdomain = self.credentials.get("zendesk_subdomain")
        if not subdomain:
            raise ProviderError("ZENDESK_SUBDOMAIN not configured")
        return f"https://{subdomain}.zendesk.com/api/v2"

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Authenticated GET against the Zendesk API (blocking)."""
        email = self.credentials.get("zendesk_email")
        token = self.credentials.get("zendesk_api_token")
        try:
            response = self.session.get(
                f"{self.base_url}{path}",
                params=params,
                auth=(f"{email}/token", token),
                timeout=self.credentials.settings.http_timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Zendesk API error on {path}: {e}")
            raise ProviderError(f"Zendesk API error: {e}") from e
        return response.json()

    async def list_items(self, request: PageRequest) -> ProviderPage:
        page = request.page or 1
        query = f"type:ticket updated>{request.since.date().isoformat()}"

        logger.info(f"Searching Zendesk tickets: query='{query}', page={page}")
        result = await asyncio.to_thread(
            self._get,
            "/search.json",
            {
                "query": query,
                "per_page": request.limit,
                "page": page,
                "sort_by": "updated_at",
                "sort_order": "desc",
            },
        )

        tickets = result.get("results", [])
        items = []
        for ticket in tickets:
            comments = await asyncio.to_thread(
                self._get, f"/tickets/{ticket['id']}/comments.json"
            )
            items.append(self._build_item(ticket, comments.get("comments", [])))

        has_more = bool(result.get("next_page"))
        logger.info(f"Fetched {len(items)} tickets (has_more={has_more})")
        return ProviderPage(items=items, has_more=has_more)

    async def test_connection(self) -> Dict[str, object]:
        try:
            await asyncio.to_thread(self._get, "/users/me.json")
        except ProviderError as e:
            return {"success": False, "error": str(e)}
        return {"success": True}

    def _build_item(self, ticket: Dict[str, Any], comments: List[Dict[str, Any]]) -> RawItem:
        ticket_id = ticket["id"]
        subject = ticket.get("subject") or "(No subject)"

        created = ticket.get("created_at")
        title = f"[TICKET #{ticket_id}]: {subject}"
        if created:
            created_date = datetime.fromisoformat(created.replace("Z", "+00:00"))
            title += f" ({created_date.strftime('%b %d, %Y')})"

        return RawItem(
            external_id=str(ticket_id),
            title=title,
            content=self._build_content(ticket, comments),
            metadata={
                "ticket_id": ticket_id,
                "status": ticket.get("status"),
                "priority": ticket.get("priority"),
                "tags": ticket.get("tags", []),
                "ticket_created_at": created,
                "ticket_updated_at": ticket.get("updated_at"),
                "comment_count": len(comments),
            },
        )

    @staticmethod
    def _build_content(ticket: Dict[str, Any], comments: List[Dict[str, Any]]) -> str:
        parts = [f"# {ticket.get('subject') or '(No subject)'}", ""]
        parts.append(f"Status: {ticket.get('status')}")
        if ticket.get("priority"):
            parts.append(f"Priority: {ticket['priority']}")
        if ticket.get("tags"):
            parts.append(f"Tags: {', '.join(ticket['tags'])}")
        parts.extend(["", "## Description", ticket.get("description") or "(No description)", ""])

        public_comments = [c for c in comments if c.get("public")]
        if public_comments:
            parts.extend(["## Comments", ""])
            for comment in public_comments:
                parts.append(f"### {comment.get('created_at', '')}")
                parts.append(comment.get("body", ""))
                parts.append("")

        return "\n".join(parts)
