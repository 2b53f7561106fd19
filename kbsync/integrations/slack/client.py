"""
Slack Channel Adapter

Responsibilities:
- conversations.history: list top-level channel messages since the window start
- conversations.replies: expand threads into the parent item's content
- Cursor pagination (response_metadata.next_cursor)
- One RawItem per top-level message, external id "<channel>:<ts>"
"""

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError
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
from typing import List, Optional, Dict, Any
from datetime import datetime, timezone
import asyncio
import logging

logger = logging.getLogger(__name__)

# Message subtypes that carry no knowledge (joins, topic changes, ...)
IGNORED_SUBTYPES = {
    "channel_join",
    "channel_leave",
    "channel_topic",
    "channel_purpose",
    "channel_name",
    "bot_add",
    "bot_remove",
}

TITLE_MAX_LENGTH = 80

# Extra history pages fetched within one list call when a page has no threads
MAX_FILTERED_PAGES = 10


class SlackChannelAdapter(ProviderAdapter):
    """Slack channel threads as discovery items."""

    source_type = SourceType.SLACK
    display_name = "Slack Threads"
    item_label = "threads"
    pagination = PaginationStyle.CURSOR

    def __init__(
        self,
        credentials: Optional[CredentialStore] = None,
        client: Optional[WebClient] = None,
        channel_id: Optional[str] = None,
    ):
        self.credentials = credentials or CredentialStore()
        self._client = client
        self._channel_id = channel_id

    @property
    def client(self) -> WebClient:
        if self._client is not None:
            return self._client
        return WebClient(token=self.credentials.get("slack_bot_token"))

    @property
    def channel_id(self) -> str:
        channel_id = self._channel_id or self.credentials.get("slack_channel_id")
        if not channel_id:
            raise ProviderError("No channel_id provided and SLACK_CHANNEL_ID not configured")
        return channel_id

    async def list_items(self, request: PageRequest) -> ProviderPage:
        """
        Fetch one page of top-level messages and expand their threads.

        Returns:
            ProviderPage with next_cursor set whenever Slack reports more messages
        """
        channel_id = self.channel_id
        client = self.client
        cursor = request.cursor

        # Pages holding only joins or thread replies are followed, so an
        # empty page always means the channel has nothing left in the window
        for _ in range(MAX_FILTERED_PAGES + 1):
            api_params: Dict[str, Any] = {
                "channel": channel_id,
                "oldest": str(int(request.since.timestamp())),
                "limit": min(request.limit, 200),
            }
            if cursor:
                api_params["cursor"] = cursor

            logger.info(
                f"Fetching conversation history from channel {channel_id}, "
                f"since={request.since.isoformat()}, cursor={cursor}"
            )

            try:
                result = await asyncio.to_thread(client.conversations_history, **api_params)
            except SlackApiError as e:
                logger.error(f"Slack API error: {e.response['error']}")
                raise ProviderError(f"Slack API error: {e.response['error']}") from e

            raw_messages = result.get("messages", [])
            next_cursor = (result.get("response_metadata") or {}).get("next_cursor") or None
            has_more = bool(result.get("has_more"))

            items = []
            for msg_data in raw_messages:
                if not self._is_top_level(msg_data):
                    continue
                replies = []
                if msg_data.get("reply_count", 0) > 0:
                    replies = await self.fetch_thread_replies(client, channel_id, msg_data["ts"])
                items.append(self._build_item(channel_id, msg_data, replies))

            logger.info(
                f"Fetched {len(raw_messages)} messages, {len(items)} threads (has_more={has_more})"
            )
            if items or not has_more or not next_cursor:
                break
            logger.debug(f"No threads on page, following cursor {next_cursor}")
            cursor = next_cursor

        return ProviderPage(items=items, has_more=has_more, next_cursor=next_cursor)

    async def fetch_thread_replies(
        self, client: WebClient, channel_id: str, thread_ts: str
    ) -> List[Dict[str, Any]]:
        """
        Fetch the replies of a thread, without the parent message.
        """
        try:
            logger.debug(f"Fetching thread replies for {thread_ts}")
            result = await asyncio.to_thread(
                client.conversations_replies, channel=channel_id, ts=thread_ts
            )
        except SlackApiError as e:
            logger.error(f"Slack API error fetching thread {thread_ts}: {e.response['error']}")
            raise ProviderError(f"Slack API error: {e.response['error']}") from e

        raw_messages = result.get("messages", [])
        return [m for m in raw_messages if m.get("ts") != thread_ts]

    async def test_connection(self) -> Dict[str, object]:
        try:
            channel_info = await asyncio.to_thread(
                self.client.conversations_info, channel=self.channel_id
            )
        except SlackApiError as e:
            return {"success": False, "error": e.response.get("error", "unknown_error")}
        except ProviderError as e:
            return {"success": False, "error": str(e)}
        return {"success": True, "channel_name": channel_info["channel"]["name"]}

    @staticmethod
    def _is_top_level(msg_data: Dict[str, Any]) -> bool:
        if msg_data.get("subtype") in IGNORED_SUBTYPES:
            return False
        thread_ts = msg_data.get("thread_ts")
        return not thread_ts or thread_ts == msg_data.get("ts")

    def _build_item(
        self, channel_id: str, msg_data: Dict[str, Any], replies: List[Dict[str, Any]]
    ) -> RawItem:
        ts = msg_data["ts"]
        text = msg_data.get("text", "")

        lines = [f"{msg_data.get('user', 'unknown')}: {text}"]
        for reply in replies:
            lines.append(f"  {reply.get('user', 'unknown')}: {reply.get('text', '')}")

        last = replies[-1] if replies else msg_data
        return RawItem(
            external_id=f"{channel_id}:{ts}",
            title=self._thread_title(text),
            content="\n".join(lines),
            metadata={
                "channel_id": channel_id,
                "thread_ts": ts,
                "reply_count": msg_data.get("reply_count", 0),
                "participants": sorted(
                    {m.get("user", "unknown") for m in [msg_data, *replies]}
                ),
                "reactions": msg_data.get("reactions", []),
                "thread_started_at": _ts_to_iso(ts),
                "last_reply_at": _ts_to_iso(last["ts"]),
            },
        )

    @staticmethod
    def _thread_title(text: str) -> str:
        first_line = text.strip().split("\n")[0] if text.strip() else ""
        if not first_line:
            return "Slack thread"
        if len(first_line) > TITLE_MAX_LENGTH:
            return first_line[:TITLE_MAX_LENGTH].rstrip() + "..."
        return first_line


def _ts_to_iso(ts: str) -> str:
    return datetime.fromtimestamp(float(ts), tz=timezone.utc).isoformat()
