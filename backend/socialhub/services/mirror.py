"""
SocialHub Backend — Mirror Sink
=================================

What:  Best-effort copy of selected state changes into a spreadsheet.
How:   mirror() schedules a detached asyncio task and returns immediately.
       The task writes through a TabularStore (Google Sheets in production,
       NullTabularStore when no spreadsheet is configured, an in-memory
       recorder in tests).
Who:   UserService (logins, user stats), PostService (new posts, likes,
       saves) and CommentService (comment counts).

Guarantees:
    - mirror() never raises and never blocks the response.
    - A failed write is logged with logger.warning and dropped. There is no
      retry and no cancellation.
    - The spreadsheet is write-only; nothing reads it back.

Events:
    post_created → append a row to Posts
    post_stats   → rewrite Likes / Comments / Saved of the Posts row whose
                   Post ID matches
    user_login   → append a row to Logins
    user_stats   → append a row to UserStats
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Set

logger = logging.getLogger(__name__)

# ── Table Layout ──────────────────────────────────────────────────────────
# Header rows written by socialhub.scripts.init_sheets. Column order is the wire
# format of every appended row.
TABLE_HEADERS: Dict[str, List[str]] = {
    "Posts": [
        "Post ID", "Author ID", "Type", "Caption", "Text Content",
        "Likes", "Comments", "Saved", "Created At",
    ],
    "Logins": ["User ID", "Username", "Login Timestamp", "Recorded At"],
    "UserStats": ["User ID", "Followers Count", "Following Count", "Posts Count", "Updated At"],
}

# Posts columns rewritten by post_stats, keyed by payload field
POST_STAT_COLUMNS = {"likes_count": "F", "comments_count": "G", "saved_count": "H"}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class TabularStore(ABC):
    """Row-oriented writer for the mirror tables."""

    enabled: bool = True

    @abstractmethod
    async def append_row(self, table: str, row: List[Any]) -> None:
        ...

    @abstractmethod
    async def update_cells(self, table: str, key: str, cells: Mapping[str, Any]) -> bool:
        """
        Overwrites cells of the first row whose column A equals `key`.

        `cells` maps column letters to values. Returns False when no row
        matched.
        """
        ...

    @abstractmethod
    async def write_headers(self, table: str, headers: List[str]) -> None:
        ...


class NullTabularStore(TabularStore):
    """Used when no spreadsheet is configured. Accepts and discards writes."""

    enabled = False

    async def append_row(self, table: str, row: List[Any]) -> None:
        return None

    async def update_cells(self, table: str, key: str, cells: Mapping[str, Any]) -> bool:
        return True

    async def write_headers(self, table: str, headers: List[str]) -> None:
        return None


class MirrorSink:
    """Fire-and-forget writer in front of a TabularStore."""

    def __init__(self, store: TabularStore):
        self.store = store
        self._pending: Set[asyncio.Task] = set()
        self._handlers: Dict[str, Callable[[Mapping[str, Any]], Awaitable[None]]] = {
            "post_created": self._post_created,
            "post_stats": self._post_stats,
            "user_login": self._user_login,
            "user_stats": self._user_stats,
        }

    @property
    def enabled(self) -> bool:
        return self.store.enabled

    @property
    def pending(self) -> int:
        return len(self._pending)

    def mirror(self, event_kind: str, payload: Mapping[str, Any]) -> None:
        """Schedules the write and returns at once."""
        if event_kind not in self._handlers:
            logger.warning("Mirror: unknown event kind '%s' ignored", event_kind)
            return
        if not self.store.enabled:
            return

        try:
            task = asyncio.get_running_loop().create_task(self._run(event_kind, dict(payload)))
        except RuntimeError:
            logger.warning("Mirror: no running event loop, dropped %s", event_kind)
            return
        # Strong reference until done; the loop only keeps weak ones
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Waits for every scheduled write. Used at shutdown and in tests."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _run(self, event_kind: str, payload: Dict[str, Any]) -> None:
        try:
            await self._handlers[event_kind](payload)
        except Exception as e:
            logger.warning("Mirror write %s failed: %s", event_kind, str(e), exc_info=True)

    # ── Event Handlers ────────────────────────────────────────────────────

    async def _post_created(self, payload: Mapping[str, Any]) -> None:
        await self.store.append_row(
            "Posts",
            [
                str(payload["post_id"]),
                str(payload["author_id"]),
                payload["type"],
                payload.get("caption") or "",
                payload.get("text_content") or "",
                payload.get("likes_count", 0),
                payload.get("comments_count", 0),
                payload.get("saved_count", 0),
                _now_iso(),
            ],
        )

    async def _post_stats(self, payload: Mapping[str, Any]) -> None:
        cells = {
            column: payload[name]
            for name, column in POST_STAT_COLUMNS.items()
            if payload.get(name) is not None
        }
        if not cells:
            return
        found = await self.store.update_cells("Posts", str(payload["post_id"]), cells)
        if not found:
            logger.warning("Mirror: post %s not found in Posts sheet", payload["post_id"])

    async def _user_login(self, payload: Mapping[str, Any]) -> None:
        await self.store.append_row(
            "Logins",
            [
                str(payload["user_id"]),
                payload["username"],
                payload.get("timestamp") or _now_iso(),
                _now_iso(),
            ],
        )

    async def _user_stats(self, payload: Mapping[str, Any]) -> None:
        await self.store.append_row(
            "UserStats",
            [
                str(payload["user_id"]),
                payload.get("followers_count") or 0,
                payload.get("following_count") or 0,
                payload.get("posts_count") or 0,
                _now_iso(),
            ],
        )
